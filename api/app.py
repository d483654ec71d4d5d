# -*- coding: utf-8 -*-
"""
Route Confidence FastAPI Application
"""
import os
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import registry
from api.routers import routes, zones, personas, hubs, calibrate


@asynccontextmanager
async def lifespan(app: FastAPI):
    registry.load()
    yield


app = FastAPI(title="Route Confidence", version="1.0.0", lifespan=lifespan)


allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:8000,http://127.0.0.1:8000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(GZipMiddleware, minimum_size=500)

app.include_router(routes.router, prefix="/api", tags=["routes"])
app.include_router(zones.router, prefix="/api", tags=["zones"])
app.include_router(personas.router, prefix="/api", tags=["personas"])
app.include_router(hubs.router, prefix="/api", tags=["hubs"])
app.include_router(calibrate.router, prefix="/api", tags=["calibrate"])


@app.get(
    "/health",
    summary="서비스 상태 확인",
    description="엔진 로드 여부와 조회 테이블(실패 이력, 혼잡 패턴, 주의 구역) 크기를 반환합니다.",
    response_description="status(healthy/degraded/unavailable), version, 테이블별 레코드 수",
)
async def health():
    try:
        engine = registry.get_engine()
        tables = {
            "failure_history": len(engine.failure_store),
            "congestion_patterns": len(engine.congestion_table),
            "advisory_zones": len(registry.get_zone_store()),
        }
        # 혼잡 패턴이 없으면 시간대 페널티가 전부 0이 된다
        has_data = tables["congestion_patterns"] > 0
        return {
            "status": "healthy" if has_data else "degraded",
            "version": "1.0.0",
            "tables": tables,
        }
    except RuntimeError:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "detail": "Engine not loaded"},
        )


@app.post(
    "/api/reload",
    summary="데이터 리로드",
    description="CSV 조회 테이블이 갱신된 후, 실패 이력/혼잡 패턴/주의 구역을 메모리에 다시 로드합니다. "
    "보정된 파라미터는 기본값으로 초기화됩니다.",
    response_description="리로드 성공 여부(status), 메시지, 테이블별 레코드 수",
)
async def reload_data():
    """데이터를 다시 로드한다. 새 CSV 파일 반영 시 사용."""
    try:
        with registry.engine_lock:
            registry.load()
        engine = registry.get_engine()
        return {
            "status": "ok",
            "message": "데이터가 성공적으로 다시 로드되었습니다.",
            "tables": {
                "failure_history": len(engine.failure_store),
                "congestion_patterns": len(engine.congestion_table),
                "advisory_zones": len(registry.get_zone_store()),
            },
        }
    except Exception as e:
        logging.exception("Data reload failed")
        return JSONResponse(
            status_code=500,
            content={"status": "error", "detail": f"데이터 리로드 실패: {str(e)}"},
        )
