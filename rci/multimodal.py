"""
Multi-leg route synthesis
=========================
Composite journeys through known transport hubs:

    Car + Train + Walk              start → nearest station (car) → station near end (train) → end (walk)
    Car + Flight + Car              only when great-circle distance > 300 km
    Car + Train Alternative + Walk  start → another station (car) → nearest station (train) → end (walk)

Each leg:
    travel_time = round(distance / speed × 60)
    speed (km/h): CAR 50, TRAIN 80, FLIGHT 900, WALK 5, METRO 40

Aggregates:
    crowd_score      = duration-weighted mean of leg crowd scores
    transfer_success = max(0.5, 1 - 0.15 × transfers)

The RCI engine is called once per journey with the aggregated totals and the
transfer count. The per-transfer reliability discount is applied there only.
"""
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from rci.engine import RCIEngine, TransitOptions
from rci.geo import Coord, distance_km, planar_distance
from rci.models import Leg, ModeType, Persona, RouteCandidate, TransportMode
from rci.utils import RandomSource, clamp, default_random, jitter
from rci.zones import AdvisoryZone

logger = logging.getLogger(__name__)


class HubType(str, Enum):
    TRAIN_STATION = "TRAIN_STATION"
    AIRPORT = "AIRPORT"
    BUS_STATION = "BUS_STATION"
    METRO_STOP = "METRO_STOP"


@dataclass(frozen=True)
class TransportHub:
    name: str
    lat: float
    lng: float
    hub_type: HubType
    wait_time: Optional[float] = None  # minutes, synthetic hubs only

    @property
    def coord(self) -> Coord:
        return self.lat, self.lng


TRANSPORT_HUBS: Tuple[TransportHub, ...] = (
    TransportHub("Penn Station", 40.7505, -73.9972, HubType.TRAIN_STATION),
    TransportHub("Grand Central", 40.7527, -73.9772, HubType.TRAIN_STATION),
    TransportHub("LaGuardia", 40.7769, -73.8740, HubType.AIRPORT),
    TransportHub("JFK", 40.6413, -73.7781, HubType.AIRPORT),
    TransportHub("Newark Airport", 40.6895, -74.1745, HubType.AIRPORT),
    TransportHub("Port Authority", 40.7562, -73.9897, HubType.BUS_STATION),
)

MAX_HUB_DISTANCE = 50.0  # planar degrees; effectively "anywhere nearby"
LONG_DISTANCE_KM = 300.0
MAX_ROUTE_MINUTES = 360

LEG_SPEEDS_KMH: Dict[TransportMode, float] = {
    TransportMode.CAR: 50,
    TransportMode.TRAIN: 80,
    TransportMode.FLIGHT: 900,
    TransportMode.WALK: 5,
    TransportMode.METRO: 40,
}

# (min, max) wait in minutes
WAIT_RANGES: Dict[TransportMode, Tuple[float, float]] = {
    TransportMode.CAR: (0, 0),
    TransportMode.TRAIN: (5, 15),
    TransportMode.FLIGHT: (90, 150),
    TransportMode.WALK: (0, 0),
    TransportMode.METRO: (2, 8),
}

BASE_CROWD: Dict[TransportMode, float] = {
    TransportMode.CAR: 0.5,
    TransportMode.TRAIN: 0.7,
    TransportMode.FLIGHT: 0.3,
    TransportMode.WALK: 0.2,
    TransportMode.METRO: 0.65,
}
CROWD_SPREAD = 0.1


def find_nearest_hub(
    point: Coord,
    hub_type: Optional[HubType] = None,
    hubs: Sequence[TransportHub] = TRANSPORT_HUBS,
    max_distance: float = MAX_HUB_DISTANCE,
) -> Optional[TransportHub]:
    """Nearest hub (optionally of one type) by planar degree distance."""
    nearest = None
    best = float("inf")
    for hub in hubs:
        if hub_type is not None and hub.hub_type is not hub_type:
            continue
        d = planar_distance(point, hub.coord)
        if d < best:
            best, nearest = d, hub
    return nearest if best < max_distance else None


def create_leg(mode: TransportMode, start: Coord, end: Coord, rng: RandomSource) -> Leg:
    dist = distance_km(start, end)
    low, high = WAIT_RANGES[mode]
    return Leg(
        mode=mode,
        start_lat=start[0],
        start_lng=start[1],
        end_lat=end[0],
        end_lng=end[1],
        travel_time=round(dist / LEG_SPEEDS_KMH[mode] * 60),
        wait_time=round(jitter(rng, low, high)),
        crowd_score=clamp(BASE_CROWD[mode] + jitter(rng, -CROWD_SPREAD, CROWD_SPREAD)),
        distance_km=dist,
    )


def validate_route(legs: Sequence[Leg], max_minutes: float = MAX_ROUTE_MINUTES) -> bool:
    """Reject empty journeys, journeys over 6 hours and negative leg times."""
    if not legs:
        return False
    if any(leg.travel_time < 0 or leg.wait_time < 0 for leg in legs):
        return False
    return sum(leg.total_time for leg in legs) <= max_minutes


@dataclass(frozen=True)
class LegAggregate:
    total_time: float
    travel_time: float
    wait_time: float
    distance: float
    transfer_count: int
    crowd_score: float
    transfer_success: float


def aggregate_legs(legs: Sequence[Leg]) -> LegAggregate:
    times = np.array([leg.total_time for leg in legs], dtype=float)
    crowds = np.array([leg.crowd_score for leg in legs], dtype=float)
    if times.sum() > 0:
        crowd = float(np.average(crowds, weights=times))
    else:
        crowd = float(crowds.mean())

    transfers = len(legs) - 1
    return LegAggregate(
        total_time=float(times.sum()),
        travel_time=float(sum(leg.travel_time for leg in legs)),
        wait_time=float(sum(leg.wait_time for leg in legs)),
        distance=float(sum(leg.distance_km for leg in legs)),
        transfer_count=transfers,
        crowd_score=crowd,
        transfer_success=max(0.5, 1.0 - 0.15 * transfers),
    )


def leg_geometry(legs: Sequence[Leg]) -> str:
    """JSON list of [lat, lng] leg endpoints: first start, then every end."""
    coords = [[legs[0].start_lat, legs[0].start_lng]]
    coords.extend([leg.end_lat, leg.end_lng] for leg in legs)
    return json.dumps(coords)


def build_composite_candidate(
    engine: RCIEngine,
    name: str,
    legs: Sequence[Leg],
    mode_type: ModeType,
    start: Coord,
    end: Coord,
    now: datetime,
    persona: Persona,
    zones: Optional[Sequence[AdvisoryZone]],
) -> RouteCandidate:
    agg = aggregate_legs(legs)
    transit = None
    if mode_type is ModeType.TRANSIT:
        transit = TransitOptions(
            transit_mode=True,
            crowd_stability=agg.crowd_score,
            transfer_count=agg.transfer_count,
        )
    confidence = engine.compute(
        start, end, agg.total_time, agg.distance, now,
        persona=persona, zones=zones, transit=transit, transfer_count=agg.transfer_count,
    )
    return RouteCandidate(
        route_id=str(uuid.uuid4()),
        mode_type=mode_type,
        name=name,
        geometry=leg_geometry(legs),
        distance=agg.distance,
        duration=agg.total_time,
        confidence=confidence,
        legs=tuple(legs),
        transfer_count=agg.transfer_count,
        crowd_score=agg.crowd_score,
        transfer_success=agg.transfer_success,
        wait_time=agg.wait_time,
    )


class MultiLegSynthesizer:
    """Builds MULTI candidates from the fixed hub table."""

    def __init__(
        self,
        engine: RCIEngine,
        rng: Optional[RandomSource] = None,
        hubs: Sequence[TransportHub] = TRANSPORT_HUBS,
    ):
        self.engine = engine
        self.rng = rng or default_random()
        self.hubs = tuple(hubs)

    def plans(self, start: Coord, end: Coord) -> List[Tuple[str, List[Leg]]]:
        """Candidate (name, legs) pairs before validation."""
        rng = self.rng
        plans: List[Tuple[str, List[Leg]]] = []

        station = find_nearest_hub(start, HubType.TRAIN_STATION, self.hubs)
        dest_station = find_nearest_hub(end, HubType.TRAIN_STATION, self.hubs)
        if station and dest_station:
            plans.append(("Car + Train + Walk", [
                create_leg(TransportMode.CAR, start, station.coord, rng),
                create_leg(TransportMode.TRAIN, station.coord, dest_station.coord, rng),
                create_leg(TransportMode.WALK, dest_station.coord, end, rng),
            ]))

        start_airport = find_nearest_hub(start, HubType.AIRPORT, self.hubs)
        end_airport = find_nearest_hub(end, HubType.AIRPORT, self.hubs)
        if start_airport and end_airport and distance_km(start, end) > LONG_DISTANCE_KM:
            plans.append(("Car + Flight + Car", [
                create_leg(TransportMode.CAR, start, start_airport.coord, rng),
                create_leg(TransportMode.FLIGHT, start_airport.coord, end_airport.coord, rng),
                create_leg(TransportMode.CAR, end_airport.coord, end, rng),
            ]))

        alt = next(
            (h for h in self.hubs if h.hub_type is HubType.TRAIN_STATION and h != station),
            None,
        )
        if station and alt:
            plans.append(("Car + Train Alternative + Walk", [
                create_leg(TransportMode.CAR, start, alt.coord, rng),
                create_leg(TransportMode.TRAIN, alt.coord, station.coord, rng),
                create_leg(TransportMode.WALK, station.coord, end, rng),
            ]))
        return plans

    def generate(
        self,
        start: Coord,
        end: Coord,
        now: datetime,
        persona: Persona = Persona.SAFE_PLANNER,
        zones: Optional[Sequence[AdvisoryZone]] = None,
    ) -> List[RouteCandidate]:
        try:
            return [
                build_composite_candidate(
                    self.engine, name, legs, ModeType.MULTI, start, end, now, persona, zones,
                )
                for name, legs in self.plans(start, end)
                if validate_route(legs)
            ]
        except Exception:
            logger.warning("Multi-leg synthesis failed; returning no MULTI routes", exc_info=True)
            return []
