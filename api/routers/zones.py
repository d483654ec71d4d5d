# -*- coding: utf-8 -*-
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query
from api.dependencies import registry
from api.schemas import ZoneItem, ZoneListResponse
from rci.geo import is_within_radius
from rci.zones import decayed_severity, severity_label, zone_tooltip

router = APIRouter()


@router.get(
    "/zones",
    response_model=ZoneListResponse,
    summary="활성 주의 구역 조회",
    description="현재 유효한 주의 구역(OSINT advisory zone) 목록을 반환합니다. "
    "심각도는 조회 시점 기준으로 지수 감쇠된 값이며, 저장 값은 변경되지 않습니다. "
    "lat/lng를 함께 지정하면 해당 지점을 포함하는 구역을 nearby_zones로 따로 반환합니다.",
    response_description="활성 구역 목록 (감쇠 심각도, 등급, 툴팁 포함)",
)
async def list_zones(
    lat: Optional[float] = Query(None, ge=-90, le=90, description="위도"),
    lng: Optional[float] = Query(None, ge=-180, le=180, description="경도"),
):
    store = registry.get_zone_store()
    now = datetime.now()
    active = store.active(now)
    zones = [
        ZoneItem(
            id=z.id,
            zone_type=z.zone_type.value,
            description=z.description,
            center_lat=z.center_lat,
            center_lng=z.center_lng,
            radius_km=z.radius_km,
            base_severity=z.severity,
            decayed_severity=round(decayed_severity(z, now), 3),
            severity_label=severity_label(z, now),
            window_start=z.window_start,
            window_end=z.window_end,
            tooltip=zone_tooltip(z, now),
        )
        for z in active
    ]

    if lat is None or lng is None:
        return ZoneListResponse(evaluated_at=now, zones=zones)

    # 지정 지점을 포함하는 구역만
    nearby = [
        item for z, item in zip(active, zones)
        if is_within_radius((lat, lng), z.center, z.radius_km)
    ]
    return ZoneListResponse(
        evaluated_at=now,
        zones=zones,
        nearby_zones=nearby,
        nearby_count=len(nearby),
    )
