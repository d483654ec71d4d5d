# -*- coding: utf-8 -*-
from typing import Optional

from fastapi import APIRouter, Query
from api.schemas import NearestHubItem, NearestHubResponse, VALID_HUB_TYPE
from rci.geo import distance_km
from rci.multimodal import TRANSPORT_HUBS

router = APIRouter()


@router.get(
    "/hubs/nearest",
    response_model=NearestHubResponse,
    summary="최근접 교통 거점 조회",
    description="주어진 위도/경도에서 가까운 교통 거점(기차역, 공항, 버스터미널)을 "
    "Haversine 거리 순으로 반환합니다. 환승 경로 합성에 쓰이는 거점 목록과 동일합니다.",
    response_description="가까운 거점 목록 (이름, 종류, 거리 km, 좌표)",
)
async def get_nearest_hubs(
    lat: float = Query(..., ge=-90, le=90, description="위도 (예: 40.7128)"),
    lng: float = Query(..., ge=-180, le=180, description="경도 (예: -74.0060)"),
    hub_type: Optional[VALID_HUB_TYPE] = Query(None, description="거점 종류 필터"),
    limit: int = Query(3, ge=1, le=10),
):
    """Return the nearest transport hubs to the given coordinates."""
    distances = []
    for hub in TRANSPORT_HUBS:
        if hub_type and hub.hub_type.value != hub_type:
            continue
        distances.append((hub, distance_km((lat, lng), hub.coord)))

    distances.sort(key=lambda x: x[1])

    return NearestHubResponse(
        hubs=[
            NearestHubItem(
                name=hub.name,
                hub_type=hub.hub_type.value,
                distance_km=round(dist, 3),
                lat=hub.lat,
                lng=hub.lng,
            )
            for hub, dist in distances[:limit]
        ]
    )
