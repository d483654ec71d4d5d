# -*- coding: utf-8 -*-
"""페르소나 랭킹 / 추정 테스트"""
import pytest

from rci import persona as persona_module
from rci.models import JourneyProfile, ModeType, Persona
from rci.persona import (
    apply_persona_weight,
    infer_persona,
    parse_persona,
    persona_description,
    persona_inputs,
    rank_routes_by_persona,
)


class TestPersonaScores:
    """페르소나별 점수 공식 테스트"""

    def test_safe_planner_transfer_penalty(self, make_candidate):
        """RCI 0.80, 환승 2회 → 0.80 - 0.16 = 0.64"""
        route = make_candidate(rci=0.80, mode_type=ModeType.MULTI, transfer_count=2, crowd_score=0.5)
        score, explanation = apply_persona_weight(route, Persona.SAFE_PLANNER)
        assert score == pytest.approx(0.64)
        assert "(2 transfers)" in explanation

    @pytest.mark.parametrize("duration", [1.0, 30.0, 200.0])
    def test_rusher_rejects_low_reliability(self, make_candidate, duration):
        """RCI 0.40은 소요 시간과 무관하게 0.20 이하"""
        route = make_candidate(rci=0.40, duration=duration)
        score, explanation = apply_persona_weight(route, Persona.RUSHER)
        assert score <= 0.20
        assert "rejected due to low reliability" in explanation

    def test_rusher_speed_bonus(self, make_candidate):
        route = make_candidate(rci=0.80, duration=30.0)
        score, _ = apply_persona_weight(route, Persona.RUSHER)
        assert score == pytest.approx(0.80 + 30 * 0.008)

    def test_comfort_seeker_uses_components_for_single(self, make_candidate):
        route = make_candidate(rci=0.80, crowd_stability=0.9)
        score, _ = apply_persona_weight(route, Persona.COMFORT_SEEKER)
        assert score == pytest.approx(0.80 - 0.1 * 0.15 - 0.15 * 0.10)

    def test_explorer_balanced_score(self, make_candidate):
        route = make_candidate(rci=0.80, duration=60.0, crowd_stability=0.9)
        score, explanation = apply_persona_weight(route, Persona.EXPLORER)
        assert score == pytest.approx(0.4 * 0.8 + 0.3 * 0.5 + 0.3 * 0.9)
        assert explanation.startswith("Explorer: Balanced route")

    def test_composite_inputs_use_leg_aggregates(self, make_candidate):
        """합성 경로의 혼잡 안정성은 1 - 구간 평균 혼잡도"""
        route = make_candidate(
            mode_type=ModeType.TRANSIT, transfer_count=1, crowd_score=0.3, transfer_success=0.85,
        )
        x = persona_inputs(route)
        assert x.crowd_stability == pytest.approx(0.7)
        assert x.transfer_success == pytest.approx(0.85)
        assert x.transfer_count == 1


class TestRanking:
    """정렬 및 폴백 테스트"""

    def test_sorted_best_first(self, make_candidate):
        routes = [make_candidate(rci=r, name=str(r)) for r in (0.6, 0.9, 0.75)]
        ranked = rank_routes_by_persona(routes, Persona.SAFE_PLANNER)
        assert [r.name for r in ranked] == ["0.9", "0.75", "0.6"]
        assert all(r.persona_score is not None for r in ranked)

    def test_ties_keep_input_order(self, make_candidate):
        routes = [make_candidate(rci=0.8, name=n) for n in ("a", "b", "c")]
        ranked = rank_routes_by_persona(routes, Persona.SAFE_PLANNER)
        assert [r.name for r in ranked] == ["a", "b", "c"]

    def test_rci_is_not_modified(self, make_candidate):
        routes = [make_candidate(rci=0.8, duration=10.0)]
        ranked = rank_routes_by_persona(routes, Persona.RUSHER)
        assert ranked[0].rci == 0.8
        assert ranked[0].persona_score > 0.8

    def test_empty_input(self):
        assert rank_routes_by_persona([], Persona.RUSHER) == []

    def test_scoring_failure_falls_back_to_rci_order(self, make_candidate, monkeypatch):
        """점수 계산 실패 시 RCI 순으로 정렬하고 페르소나 필드는 비운다."""
        def broken(_inputs):
            raise RuntimeError("boom")

        monkeypatch.setitem(persona_module.PERSONA_SCORERS, Persona.EXPLORER, broken)
        routes = [make_candidate(rci=r, name=str(r)) for r in (0.5, 0.9, 0.7)]
        ranked = rank_routes_by_persona(routes, Persona.EXPLORER)

        assert [r.name for r in ranked] == ["0.9", "0.7", "0.5"]
        assert all(r.persona_score is None for r in ranked)

    def test_non_finite_score_falls_back(self, make_candidate, monkeypatch):
        monkeypatch.setitem(
            persona_module.PERSONA_SCORERS, Persona.RUSHER, lambda _x: (float("nan"), "")
        )
        routes = [make_candidate(rci=0.5, name="low"), make_candidate(rci=0.9, name="high")]
        ranked = rank_routes_by_persona(routes, Persona.RUSHER)
        assert [r.name for r in ranked] == ["high", "low"]
        assert ranked[0].persona_explanation is None


class TestParsePersona:
    """페르소나 파싱 테스트"""

    @pytest.mark.parametrize("value,expected", [
        ("RUSHER", Persona.RUSHER),
        ("comfort_seeker", Persona.COMFORT_SEEKER),
        (" explorer ", Persona.EXPLORER),
        (Persona.RUSHER, Persona.RUSHER),
        ("PILOT", Persona.SAFE_PLANNER),
        ("", Persona.SAFE_PLANNER),
        (None, Persona.SAFE_PLANNER),
        (42, Persona.SAFE_PLANNER),
    ])
    def test_parse(self, value, expected):
        assert parse_persona(value) is expected

    def test_description_for_unknown_defaults_to_safe_planner(self):
        assert persona_description("nope") == persona_description(Persona.SAFE_PLANNER)


class TestInferPersona:
    """통근 기록 기반 페르소나 추정 테스트"""

    def test_fast_risk_taker_is_rusher(self):
        profile = JourneyProfile(
            speed_preference=1.0, reroute_tendency=1.0, risk_acceptance=1.0,
        )
        result = infer_persona(profile)
        assert result.persona is Persona.RUSHER
        assert result.scores[Persona.RUSHER] == pytest.approx(1.0)
        assert result.confidence == pytest.approx(1.0 / (1.0 + 0.1 + 0.4 + 0.85))

    def test_crowd_averse_is_comfort_seeker(self):
        profile = JourneyProfile(
            speed_preference=0.0, reroute_tendency=0.2, crowd_tolerance=0.0,
            transfer_tolerance=0.0, risk_acceptance=0.5,
        )
        assert infer_persona(profile).persona is Persona.COMFORT_SEEKER

    def test_cautious_is_safe_planner(self):
        profile = JourneyProfile(
            speed_preference=0.3, reroute_tendency=0.0, crowd_tolerance=0.8,
            transfer_tolerance=0.6, risk_acceptance=0.0,
        )
        assert infer_persona(profile).persona is Persona.SAFE_PLANNER

    def test_tie_breaks_by_declaration_order(self):
        """최고 점수가 같으면 선언 순서상 앞선 페르소나 (RUSHER = EXPLORER)"""
        profile = JourneyProfile(
            speed_preference=1.0, reroute_tendency=1.0, crowd_tolerance=1.0,
            transfer_tolerance=1.0, risk_acceptance=1.0,
        )
        result = infer_persona(profile)
        assert result.scores[Persona.RUSHER] == result.scores[Persona.EXPLORER]
        assert result.persona is Persona.RUSHER
        assert result.confidence == pytest.approx(1.0 / 2.2)
