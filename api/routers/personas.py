# -*- coding: utf-8 -*-
from typing import List

from fastapi import APIRouter
from api.schemas import PersonaInferRequest, PersonaInferResponse, PersonaItem
from rci.models import JourneyProfile, Persona
from rci.persona import infer_persona, persona_description

router = APIRouter()


@router.get(
    "/personas",
    response_model=List[PersonaItem],
    summary="페르소나 목록 조회",
    description="경로 랭킹에 사용되는 4가지 통근자 페르소나와 설명을 반환합니다. "
    "지정하지 않거나 잘못된 값은 SAFE_PLANNER로 처리됩니다.",
    response_description="페르소나 이름과 설명",
)
async def list_personas():
    return [PersonaItem(persona=p.value, description=persona_description(p)) for p in Persona]


@router.post(
    "/persona/infer",
    response_model=PersonaInferResponse,
    summary="통근 기록 기반 페르소나 추정",
    description="속도 선호, 재탐색 성향, 혼잡/환승 허용도, 위험 수용도(0~1)를 가중합하여 "
    "가장 잘 맞는 페르소나와 신뢰도(최고 점수 / 점수 합)를 반환합니다.",
    response_description="추정 페르소나, 신뢰도, 페르소나별 점수",
)
async def infer(req: PersonaInferRequest):
    result = infer_persona(JourneyProfile(**req.model_dump()))
    return PersonaInferResponse(
        persona=result.persona.value,
        description=persona_description(result.persona),
        confidence=round(result.confidence, 4),
        scores={p.value: round(s, 4) for p, s in result.scores.items()},
    )
