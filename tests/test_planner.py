# -*- coding: utf-8 -*-
"""경로 계획(RoutePlanner) 테스트"""
from datetime import datetime
from pathlib import Path

import pytest

from rci.models import ModeType, Persona, RouterRoute, RouterStep
from rci.multimodal import MultiLegSynthesizer
from rci.planner import RoutePlanner
from rci.transit import TransitSynthesizer
from rci.zones import AdvisoryZoneStore

DATA_DIR = Path(__file__).parent.parent / "data"

OFF_PEAK = datetime(2026, 2, 4, 18, 30)
NYC_START = (40.7128, -74.0060)
NYC_END = (40.7306, -73.9866)


@pytest.fixture
def router_routes():
    return [
        RouterRoute(
            geometry="_p~iF~ps|U_ulLnnqC",
            distance_m=4200,
            duration_s=900,
            summary="FDR Drive",
            steps=(RouterStep("depart", "", 120.0, 30.0, "Broadway"),),
        ),
        RouterRoute(geometry="_ulLnnqC_mqNvxq`@", distance_m=5100, duration_s=1260),
    ]


@pytest.fixture
def planner(fixed_engine, fixed_rng):
    return RoutePlanner(fixed_engine, rng=fixed_rng)


class TestRoutePlanner:
    """후보 평가 + 합성 + 랭킹 테스트"""

    def test_plan_includes_all_route_kinds(self, planner, router_routes):
        result = planner.plan(NYC_START, NYC_END, router_routes, Persona.RUSHER, now=OFF_PEAK)
        stats = result.route_stats()

        assert stats["single_mode_routes"] == 2
        assert stats["multi_modal_routes"] == 2
        assert stats["transit_routes"] == 3
        assert stats["total_routes"] == 7
        assert result.time_window == "18:30-18:45"
        assert result.selected_persona is Persona.RUSHER

    def test_router_routes_are_converted(self, planner, router_routes):
        result = planner.plan(
            NYC_START, NYC_END, router_routes, now=OFF_PEAK,
            include_multimodal=False, include_transit=False,
        )
        by_name = {r.name: r for r in result.routes}

        first = by_name["FDR Drive"]
        assert first.distance == pytest.approx(4.2)
        assert first.duration == pytest.approx(15.0)
        assert first.is_maps_preferred
        assert first.steps[0].name == "Broadway"
        assert result.maps_preferred_route_id == first.route_id
        assert not by_name["Route 2"].is_maps_preferred

    def test_ranked_by_persona_score(self, planner, router_routes):
        result = planner.plan(NYC_START, NYC_END, router_routes, Persona.EXPLORER, now=OFF_PEAK)
        scores = [r.persona_score for r in result.routes]
        assert scores == sorted(scores, reverse=True)
        assert result.rci_preferred_route_id == result.routes[0].route_id
        assert result.persona_explanation == result.routes[0].persona_explanation

    def test_route_comparison_for_two_singles(self, planner, router_routes):
        result = planner.plan(NYC_START, NYC_END, router_routes, now=OFF_PEAK)
        # 구성 요소가 고정이므로 두 경로의 RCI가 같다
        assert result.route_comparison.startswith("Both routes have similar reliability")

    def test_single_router_route_has_no_comparison(self, planner, router_routes):
        result = planner.plan(NYC_START, NYC_END, router_routes[:1], now=OFF_PEAK)
        assert result.route_comparison == ""

    def test_synthesis_failure_keeps_single_routes(self, planner, router_routes, monkeypatch):
        """다구간/대중교통 합성이 실패해도 단일 경로는 반환된다."""
        def broken(self, start, end):
            raise RuntimeError("hub table unavailable")

        monkeypatch.setattr(MultiLegSynthesizer, "plans", broken)
        monkeypatch.setattr(TransitSynthesizer, "journeys", broken)

        result = planner.plan(NYC_START, NYC_END, router_routes, now=OFF_PEAK)
        assert len(result.routes) == 2
        assert all(r.mode_type is ModeType.SINGLE for r in result.routes)

    def test_unscorable_router_route_is_skipped(self, planner, router_routes):
        bad = RouterRoute(geometry="", distance_m=1000, duration_s=float("nan"))
        result = planner.plan(
            NYC_START, NYC_END, [bad, *router_routes], now=OFF_PEAK,
            include_multimodal=False, include_transit=False,
        )
        assert len(result.routes) == 2

    def test_no_router_routes_still_synthesizes(self, planner):
        result = planner.plan(NYC_START, NYC_END, [], now=OFF_PEAK)
        assert result.maps_preferred_route_id is None
        assert result.route_stats()["single_mode_routes"] == 0
        assert len(result.routes) == 5

    def test_active_zones_are_applied(self, fixed_engine, fixed_rng, router_routes):
        zones = AdvisoryZoneStore.from_csv(DATA_DIR / "advisory_zones.csv", loaded_at=OFF_PEAK)
        planner = RoutePlanner(fixed_engine, zones, rng=fixed_rng)
        result = planner.plan(
            (40.7158, -74.0074), NYC_END, router_routes, now=OFF_PEAK,
            include_multimodal=False, include_transit=False,
        )
        assert all(r.confidence.osint_penalty > 0 for r in result.routes)


class TestPlanOutput:
    """출력 / 저장 레코드 테스트"""

    def test_to_output_shape(self, planner, router_routes):
        out = planner.plan(NYC_START, NYC_END, router_routes, Persona.COMFORT_SEEKER, now=OFF_PEAK).to_output()

        assert out["selected_persona"] == "COMFORT_SEEKER"
        assert out["route_stats"]["total_routes"] == len(out["routes"])
        for route in out["routes"]:
            assert "persona_score" in route
            assert set(route["components"]) == {
                "on_time_prob", "transfer_success", "crowd_stability",
                "delay_variance", "last_mile_avail",
            }
            if route["mode_type"] == "SINGLE":
                assert "steps" in route
            else:
                assert route["legs"]

    def test_persistence_records(self, planner, router_routes):
        result = planner.plan(NYC_START, NYC_END, router_routes, now=OFF_PEAK)
        records = result.persistence_records()

        assert len(records) == len(result.routes)
        record = records[0]
        assert record["route_id"] == result.routes[0].route_id
        assert record["rci_score"] == result.routes[0].rci
        assert record["start_lat"] == NYC_START[0]
        assert record["end_lng"] == NYC_END[1]
        assert record["time_window"] == "18:30-18:45"
        assert record["created_at"] == OFF_PEAK.isoformat()
        assert 0.0 <= record["on_time_prob"] <= 1.0
