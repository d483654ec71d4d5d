# -*- coding: utf-8 -*-
"""환승(다구간) 경로 합성 테스트"""
import json
from datetime import datetime

import pytest

from rci.models import Leg, ModeType, TransportMode
from rci.multimodal import (
    HubType,
    MultiLegSynthesizer,
    aggregate_legs,
    create_leg,
    find_nearest_hub,
    leg_geometry,
    validate_route,
)
from rci.utils import FixedSequenceRandom

OFF_PEAK = datetime(2026, 2, 4, 18, 30)
NYC_START = (40.7128, -74.0060)
NYC_END = (40.7306, -73.9866)
LOS_ANGELES = (34.0522, -118.2437)


def make_leg(travel_time, wait_time=0.0, crowd_score=0.5, mode=TransportMode.CAR):
    return Leg(
        mode=mode,
        start_lat=40.0,
        start_lng=-74.0,
        end_lat=40.1,
        end_lng=-74.1,
        travel_time=travel_time,
        wait_time=wait_time,
        crowd_score=crowd_score,
        distance_km=1.0,
    )


class BrokenEngine:
    def compute(self, *args, **kwargs):
        raise RuntimeError("engine down")


class TestValidateRoute:
    """경로 유효성 검사 테스트"""

    def test_over_six_hours_is_rejected(self):
        """총 400분 경로는 거부된다."""
        legs = [make_leg(300, 40), make_leg(60)]
        assert validate_route(legs) is False

    def test_exactly_six_hours_is_accepted(self):
        assert validate_route([make_leg(350, 10)]) is True

    def test_empty_and_negative_are_rejected(self):
        assert validate_route([]) is False
        assert validate_route([make_leg(-1)]) is False
        assert validate_route([make_leg(10, wait_time=-5)]) is False


class TestLegs:
    """구간 생성 / 집계 테스트"""

    def test_create_train_leg(self):
        leg = create_leg(TransportMode.TRAIN, (0.0, 0.0), (0.0, 1.0), FixedSequenceRandom([0.5]))
        assert leg.distance_km == pytest.approx(111.19, abs=0.01)
        assert leg.travel_time == round(111.19 / 80 * 60)
        assert leg.wait_time == 10
        assert leg.crowd_score == pytest.approx(0.7)

    def test_car_and_walk_have_no_wait(self):
        rng = FixedSequenceRandom([0.9])
        assert create_leg(TransportMode.CAR, (0.0, 0.0), (0.0, 0.1), rng).wait_time == 0
        assert create_leg(TransportMode.WALK, (0.0, 0.0), (0.0, 0.01), rng).wait_time == 0

    def test_crowd_is_duration_weighted(self):
        agg = aggregate_legs([make_leg(10, crowd_score=0.2), make_leg(20, 10, crowd_score=0.6)])
        assert agg.total_time == 40
        assert agg.wait_time == 10
        assert agg.crowd_score == pytest.approx((10 * 0.2 + 30 * 0.6) / 40)
        assert agg.transfer_count == 1
        assert agg.transfer_success == pytest.approx(0.85)

    def test_zero_duration_uses_plain_mean(self):
        agg = aggregate_legs([make_leg(0, crowd_score=0.2), make_leg(0, crowd_score=0.4)])
        assert agg.crowd_score == pytest.approx(0.3)

    def test_transfer_success_floor(self):
        agg = aggregate_legs([make_leg(5) for _ in range(5)])
        assert agg.transfer_count == 4
        assert agg.transfer_success == 0.5

    def test_leg_geometry_lists_endpoints(self):
        coords = json.loads(leg_geometry([make_leg(5), make_leg(5)]))
        assert coords == [[40.0, -74.0], [40.1, -74.1], [40.1, -74.1]]


class TestHubs:
    """거점 탐색 테스트"""

    def test_nearest_train_station(self):
        hub = find_nearest_hub((40.7500, -73.9970), HubType.TRAIN_STATION)
        assert hub.name == "Penn Station"

    def test_nearest_airport(self):
        assert find_nearest_hub((40.7700, -73.8800), HubType.AIRPORT).name == "LaGuardia"

    def test_nothing_in_range(self):
        assert find_nearest_hub((0.0, 0.0), HubType.AIRPORT) is None


class TestMultiLegSynthesizer:
    """다구간 합성 테스트"""

    def test_short_trip_plans(self, fixed_engine):
        synth = MultiLegSynthesizer(fixed_engine, FixedSequenceRandom([0.5]))
        names = [name for name, _ in synth.plans(NYC_START, NYC_END)]
        assert names == ["Car + Train + Walk", "Car + Train Alternative + Walk"]

    def test_long_trip_includes_flight_plan(self, fixed_engine):
        synth = MultiLegSynthesizer(fixed_engine, FixedSequenceRandom([0.5]))
        names = [name for name, _ in synth.plans(NYC_START, LOS_ANGELES)]
        assert "Car + Flight + Car" in names

    def test_generated_candidates(self, fixed_engine):
        synth = MultiLegSynthesizer(fixed_engine, FixedSequenceRandom([0.5]))
        routes = synth.generate(NYC_START, NYC_END, OFF_PEAK)

        assert len(routes) == 2
        for route in routes:
            assert route.mode_type is ModeType.MULTI
            assert len(route.legs) == 3
            assert route.transfer_count == 2
            assert route.transfer_success == pytest.approx(0.70)
            assert route.confidence.transfer_penalty == pytest.approx(0.06)
            assert route.duration == pytest.approx(sum(leg.total_time for leg in route.legs))
            assert validate_route(route.legs)

    def test_overlong_routes_never_returned(self, fixed_engine):
        """6시간을 넘는 합성 경로는 결과에 포함되지 않는다."""
        synth = MultiLegSynthesizer(fixed_engine, FixedSequenceRandom([0.5]))
        assert synth.generate(NYC_START, LOS_ANGELES, OFF_PEAK) == []

    def test_engine_failure_returns_empty(self):
        synth = MultiLegSynthesizer(BrokenEngine(), FixedSequenceRandom([0.5]))
        assert synth.generate(NYC_START, NYC_END, OFF_PEAK) == []

    def test_composite_output_has_legs(self, fixed_engine):
        route = MultiLegSynthesizer(fixed_engine, FixedSequenceRandom([0.5])).generate(
            NYC_START, NYC_END, OFF_PEAK,
        )[0]
        out = route.to_output()
        assert out["mode_type"] == "MULTI"
        assert [leg["mode"] for leg in out["legs"]] == ["CAR", "TRAIN", "WALK"]
        assert out["transfer_count"] == 2
        assert "steps" not in out
