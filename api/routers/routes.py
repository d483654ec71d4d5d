# -*- coding: utf-8 -*-
"""
Route scoring API Router
========================
Scores router candidates (plus synthesized multi-leg / transit journeys),
ranks them for the rider's persona and stores every candidate in SQLite.
"""
import asyncio
import logging
import os
import sqlite3
from pathlib import Path

from fastapi import APIRouter, HTTPException

from api.dependencies import registry
from api.schemas import RouteScoreRequest, RouteScoreResponse, StoredRouteResponse
from rci.models import RouterRoute, RouterStep
from rci.persona import parse_persona

router = APIRouter()

DB_PATH = Path(os.getenv(
    "RCI_DB_PATH",
    str(Path(__file__).parent.parent.parent / "data" / "routes.db"),
))

RECORD_COLUMNS = (
    "route_id", "mode_type", "name", "start_lat", "start_lng", "end_lat", "end_lng",
    "distance", "base_eta", "geometry", "time_window",
    "on_time_prob", "transfer_success", "crowd_stability", "delay_variance", "last_mile_avail",
    "rci_score", "created_at",
)


_db_initialized = False


def _init_db():
    """Initialize database and create tables/indexes once."""
    global _db_initialized
    if _db_initialized:
        return
    DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(DB_PATH))
    conn.execute("""
        CREATE TABLE IF NOT EXISTS routes (
            route_id TEXT PRIMARY KEY,
            mode_type TEXT NOT NULL,
            name TEXT NOT NULL,
            start_lat REAL NOT NULL,
            start_lng REAL NOT NULL,
            end_lat REAL NOT NULL,
            end_lng REAL NOT NULL,
            distance REAL NOT NULL,
            base_eta REAL NOT NULL,
            geometry TEXT NOT NULL,
            time_window TEXT NOT NULL,
            on_time_prob REAL NOT NULL,
            transfer_success REAL NOT NULL,
            crowd_stability REAL NOT NULL,
            delay_variance REAL NOT NULL,
            last_mile_avail REAL NOT NULL,
            rci_score REAL NOT NULL,
            created_at TEXT NOT NULL
        )
    """)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_routes_time_window ON routes(time_window)")
    conn.execute("CREATE INDEX IF NOT EXISTS idx_routes_created_at ON routes(created_at)")
    conn.commit()
    conn.close()
    _db_initialized = True


def _get_connection() -> sqlite3.Connection:
    """Get SQLite connection (database already initialized)."""
    _init_db()
    conn = sqlite3.connect(str(DB_PATH))
    conn.row_factory = sqlite3.Row
    return conn


def save_records(records):
    conn = _get_connection()
    try:
        placeholders = ", ".join("?" for _ in RECORD_COLUMNS)
        conn.executemany(
            f"INSERT OR REPLACE INTO routes ({', '.join(RECORD_COLUMNS)}) VALUES ({placeholders})",
            [tuple(r[c] for c in RECORD_COLUMNS) for r in records],
        )
        conn.commit()
    finally:
        conn.close()


def _to_router_routes(req: RouteScoreRequest):
    return [
        RouterRoute(
            geometry=r.geometry,
            distance_m=r.distance,
            duration_s=r.duration,
            summary=r.summary,
            steps=tuple(
                RouterStep(
                    maneuver=s.maneuver,
                    modifier=s.modifier,
                    distance=s.distance,
                    duration=s.duration,
                    name=s.name,
                )
                for s in r.steps
            ),
        )
        for r in req.routes
    ]


@router.post(
    "/routes/score",
    response_model=RouteScoreResponse,
    summary="경로 신뢰도(RCI) 평가 및 페르소나 랭킹",
    description="라우터가 반환한 후보 경로들에 대해 RCI(Route Confidence Index)를 계산하고, "
    "환승(자동차+기차+도보 등) 및 대중교통(기차/메트로) 경로를 합성하여 함께 평가합니다. "
    "실패 이력, 시간대 혼잡 패턴, 주의 구역(advisory zone) 페널티가 반영되며, "
    "선택한 페르소나 기준으로 정렬됩니다. 각 후보는 SQLite에 저장됩니다.",
    response_description="페르소나 기준 정렬된 후보 경로, 선호 경로 ID, 비교 문구, 시간대, 통계",
)
async def score_routes(req: RouteScoreRequest):
    planner = registry.get_planner()
    persona = parse_persona(req.persona)
    start = (req.start.lat, req.start.lng)
    end = (req.end.lat, req.end.lng)

    if start == end:
        raise HTTPException(status_code=400, detail="출발지와 도착지가 같을 수 없습니다")

    try:
        result = await asyncio.to_thread(
            planner.plan,
            start,
            end,
            _to_router_routes(req),
            persona,
            req.departure_time,
            req.include_multimodal,
            req.include_transit,
        )
    except Exception as e:
        logging.error(f"Route scoring failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="경로 평가 중 오류가 발생했습니다")

    if not result.routes:
        raise HTTPException(status_code=404, detail="평가 가능한 경로가 없습니다")

    try:
        save_records(result.persistence_records())
    except sqlite3.Error:
        logging.exception("Failed to persist scored routes")

    return result.to_output()


@router.get(
    "/routes/{route_id}",
    response_model=StoredRouteResponse,
    summary="저장된 경로 조회",
    description="이전에 평가된 경로의 저장 레코드(구간 정보, 5개 구성 요소, 최종 RCI, 시간대)를 반환합니다.",
    response_description="저장된 경로 레코드",
)
async def get_route(route_id: str):
    conn = _get_connection()
    try:
        row = conn.execute("SELECT * FROM routes WHERE route_id = ?", (route_id,)).fetchone()
    finally:
        conn.close()
    if row is None:
        raise HTTPException(status_code=404, detail=f"경로를 찾을 수 없습니다: {route_id}")
    return dict(row)
