# -*- coding: utf-8 -*-
import math
import os
from dataclasses import replace
from fastapi import APIRouter, HTTPException, Header, Depends
from api.schemas import CalibrationRequest, CalibrationResponse
from api.dependencies import registry
from typing import Optional

router = APIRouter()

# 요청 필드 → RCIParams.weights 키
WEIGHT_FIELDS = {
    "w_on_time": "on_time_prob",
    "w_transfer": "transfer_success",
    "w_crowd": "crowd_stability",
    "w_delay_variance": "delay_variance",
    "w_last_mile": "last_mile_avail",
}
SCALAR_FIELDS = (
    "failure_weight", "congestion_weight", "transfer_discount",
    "high_tier", "medium_tier", "min_rci",
)


def verify_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """API Key 검증 (env var RCI_API_KEY가 설정된 경우만)"""
    api_key = os.getenv("RCI_API_KEY")
    if api_key:  # env var가 설정된 경우만 검증
        if not x_api_key or x_api_key != api_key:
            raise HTTPException(status_code=403, detail="유효하지 않은 API 키입니다")


def _response(params) -> CalibrationResponse:
    return CalibrationResponse(
        weights=dict(params.weights),
        failure_weight=params.failure_weight,
        congestion_weight=params.congestion_weight,
        transfer_discount=params.transfer_discount,
        high_tier=params.high_tier,
        medium_tier=params.medium_tier,
        min_rci=params.min_rci,
    )


@router.post(
    "/calibrate",
    response_model=CalibrationResponse,
    summary="RCI 파라미터 조정",
    description="RCI 엔진의 구성 요소 가중치, 페널티 계수, 환승 할인, 신뢰도 등급 기준을 "
    "런타임에 조정합니다. 가중치 합은 1이어야 하며, MEDIUM 기준은 HIGH 기준 이하여야 합니다.",
    response_description="적용된 파라미터 값",
)
async def calibrate(req: CalibrationRequest, _: None = Depends(verify_api_key)):
    """RCI 파라미터를 런타임에 조정한다."""
    engine = registry.get_engine()

    with registry.engine_lock:
        current_params = engine.params

        weights = dict(current_params.weights)
        for field_name, key in WEIGHT_FIELDS.items():
            value = getattr(req, field_name)
            if value is not None:
                weights[key] = value
        if not math.isclose(sum(weights.values()), 1.0, abs_tol=1e-6):
            raise HTTPException(
                status_code=400,
                detail=f"가중치 합은 1이어야 합니다 (현재 {sum(weights.values()):.3f})",
            )

        changes = {
            name: getattr(req, name)
            for name in SCALAR_FIELDS
            if getattr(req, name) is not None
        }
        new_params = replace(current_params, weights=weights, **changes)
        if new_params.medium_tier > new_params.high_tier:
            raise HTTPException(status_code=400, detail="MEDIUM 기준은 HIGH 기준보다 클 수 없습니다")

        engine.params = new_params
        params = engine.params

    return _response(params)


@router.get(
    "/calibrate",
    response_model=CalibrationResponse,
    summary="현재 파라미터 조회",
    description="현재 설정된 RCI 파라미터(가중치, 페널티 계수, 환승 할인, 등급 기준)를 반환합니다.",
    response_description="현재 설정된 파라미터 값",
)
async def get_calibration():
    """현재 파라미터 값을 반환한다."""
    engine = registry.get_engine()
    return _response(engine.params)
