"""
Transit-only (train / metro) route synthesis.

Hubs are synthetic: a handful of stops scattered around each endpoint, every
4th one a train station. Journeys are metro-only, train-only and a mixed
metro → train transfer, with a single metro leg as the last resort.
"""
import logging
import math
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from rci.engine import RCIEngine
from rci.geo import Coord, distance_km, normalize_coordinates
from rci.models import Leg, ModeType, Persona, RouteCandidate, TransportMode
from rci.multimodal import HubType, TransportHub, build_composite_candidate, validate_route
from rci.utils import RandomSource, clamp, default_random, jitter, pick
from rci.zones import AdvisoryZone

logger = logging.getLogger(__name__)

HUB_RADIUS_KM = 2.5
STATIONS_PER_KM = 0.8
MIN_HUBS = 3
MAX_ACCESS_KM = 2.0
KM_PER_DEGREE = 111.0

# (point, rng) -> hubs scattered around the point
HubSource = Callable[[Coord, RandomSource], List[TransportHub]]

TRANSIT_SPEEDS_KMH = {TransportMode.TRAIN: 80, TransportMode.METRO: 40}
TRANSIT_BASE_CROWD = {TransportMode.TRAIN: 0.5, TransportMode.METRO: 0.65}
TRANSIT_CROWD_SPREAD = 0.15

LINE_NAMES = [
    "Red Line", "Blue Line", "Green Line", "Yellow Line", "Purple Line",
    "Central Express", "Downtown Local", "Airport Link", "Circle Local",
]

STATION_NAMES = {
    "mumbai": [
        "Bandra Terminus", "Dadar Junction", "Mahim Station", "Fort Central",
        "Colaba Depot", "Worli Hub", "Lower Parel", "Thane East",
        "Borivali North", "Churchgate", "CST Central", "Mumbai Central",
        "Powai Interchange", "Goregaon West", "Malad East", "Andheri Station",
        "Navi Mumbai Junction", "Vile Parle", "Matunga Road", "Parel Station",
    ],
    "new_york": [
        "Penn Station", "Grand Central", "Union Square", "Herald Square",
        "34th Street", "Times Square", "42nd Street", "Port Authority",
        "Brooklyn Bridge", "Canal Street", "Cortlandt", "Liberty",
        "Chambers St", "Spring St", "Prince St", "Park Ave",
    ],
    "default": [
        "Central Hub", "North Station", "South Terminal", "East Plaza",
        "West Junction", "Downtown Core", "Uptown Link", "Midtown Hub",
        "Express Station", "Local Stop", "Transit Center", "Platform A",
        "Main Terminal", "Depot Station", "Crossing", "Exchange Point",
    ],
}

# city key -> (lat, lng) anchor, matched within 1 degree
CITY_ANCHORS = {
    "mumbai": (19.07, 72.88),
    "new_york": (40.71, -74.00),
}


def city_key(point: Coord) -> str:
    for key, (lat, lng) in CITY_ANCHORS.items():
        if abs(point[0] - lat) < 1 and abs(point[1] - lng) < 1:
            return key
    return "default"


def station_names(key: str, count: int) -> List[str]:
    base = STATION_NAMES.get(key, STATION_NAMES["default"])
    names = []
    for i in range(count):
        name = base[i % len(base)]
        if i >= len(base):
            name += f" ({i // len(base) + 1})"
        names.append(name)
    return names


def generate_transit_hubs(
    point: Coord,
    rng: RandomSource,
    radius_km: float = HUB_RADIUS_KM,
) -> List[TransportHub]:
    """Scatter synthetic stops around a point, biased toward the centre."""
    lat, lng = point
    count = max(MIN_HUBS, math.ceil(radius_km * STATIONS_PER_KM))
    names = station_names(city_key(point), count)

    hubs = []
    for i in range(count):
        angle = rng.random() * 2 * math.pi
        dist = math.sqrt(rng.random()) * radius_km
        dlat = dist / KM_PER_DEGREE * math.cos(angle)
        dlng = dist / (KM_PER_DEGREE * math.cos(math.radians(lat))) * math.sin(angle)

        if i % 4 == 0:
            hub_type, wait_s = HubType.TRAIN_STATION, jitter(rng, 300, 720)
        else:
            hub_type, wait_s = HubType.METRO_STOP, jitter(rng, 120, 480)
        # offsets near the poles or the antimeridian can leave the valid range
        hub_lat, hub_lng = normalize_coordinates(lat + dlat, lng + dlng)
        hubs.append(TransportHub(
            name=names[i],
            lat=hub_lat,
            lng=hub_lng,
            hub_type=hub_type,
            wait_time=round(math.floor(wait_s) / 60),
        ))
    return hubs


def by_distance(point: Coord, hubs: Sequence[TransportHub], hub_type: Optional[HubType] = None):
    selected = [h for h in hubs if hub_type is None or h.hub_type is hub_type]
    return sorted(selected, key=lambda h: distance_km(point, h.coord))


def nearest_transit_hub(point: Coord, hubs: Sequence[TransportHub]) -> Optional[TransportHub]:
    """Nearest hub by great-circle distance, only if within walking range (2 km)."""
    ranked = by_distance(point, hubs)
    if ranked and distance_km(point, ranked[0].coord) <= MAX_ACCESS_KM:
        return ranked[0]
    return None


def create_transit_leg(
    origin: TransportHub,
    dest: TransportHub,
    mode: TransportMode,
    rng: RandomSource,
) -> Leg:
    dist = distance_km(origin.coord, dest.coord)
    crowd = TRANSIT_BASE_CROWD[mode] + jitter(rng, -TRANSIT_CROWD_SPREAD, TRANSIT_CROWD_SPREAD)
    if mode is TransportMode.TRAIN:
        stops = math.floor(dist / 10) + 2
    else:
        stops = math.floor(dist / 1.5) + 3
    return Leg(
        mode=mode,
        start_lat=origin.lat,
        start_lng=origin.lng,
        end_lat=dest.lat,
        end_lng=dest.lng,
        travel_time=math.ceil(dist / TRANSIT_SPEEDS_KMH[mode] * 60),
        wait_time=origin.wait_time or 0,
        crowd_score=clamp(crowd),
        distance_km=dist,
        line_name=pick(rng, LINE_NAMES),
        stop_count=stops,
        start_station=origin.name,
        end_station=dest.name,
    )


def _mode_label(legs: Sequence[Leg]) -> str:
    return " + ".join(leg.mode.value.title() for leg in legs)


class TransitSynthesizer:
    """Builds TRANSIT candidates over synthetic hubs near both endpoints."""

    def __init__(
        self,
        engine: RCIEngine,
        rng: Optional[RandomSource] = None,
        hub_source: HubSource = generate_transit_hubs,
    ):
        self.engine = engine
        self.rng = rng or default_random()
        self.hub_source = hub_source

    def hubs(self, start: Coord, end: Coord) -> Tuple[List[TransportHub], List[TransportHub]]:
        return self.hub_source(start, self.rng), self.hub_source(end, self.rng)

    def plans(
        self,
        start: Coord,
        end: Coord,
        start_hubs: Sequence[TransportHub],
        end_hubs: Sequence[TransportHub],
    ) -> List[List[Leg]]:
        """Metro-only, train-only and metro → train journeys the hubs allow."""
        rng = self.rng
        start_metro = by_distance(start, start_hubs, HubType.METRO_STOP)
        start_train = by_distance(start, start_hubs, HubType.TRAIN_STATION)
        end_metro = by_distance(end, end_hubs, HubType.METRO_STOP)
        end_train = by_distance(end, end_hubs, HubType.TRAIN_STATION)

        plans: List[List[Leg]] = []
        if start_metro and end_metro:
            plans.append([create_transit_leg(start_metro[0], end_metro[0], TransportMode.METRO, rng)])
        if start_train and end_train:
            plans.append([create_transit_leg(start_train[0], end_train[0], TransportMode.TRAIN, rng)])
        if start_metro and start_train and end_train:
            # metro to the local train station, then train across
            plans.append([
                create_transit_leg(start_metro[0], start_train[0], TransportMode.METRO, rng),
                create_transit_leg(start_train[0], end_train[0], TransportMode.TRAIN, rng),
            ])
        return plans

    def fallback_plan(self, origin: TransportHub, dest: TransportHub) -> List[Leg]:
        """Single metro leg between the hubs nearest each endpoint."""
        return [create_transit_leg(origin, dest, TransportMode.METRO, self.rng)]

    def journeys(self, start: Coord, end: Coord) -> List[List[Leg]]:
        start_hubs, end_hubs = self.hubs(start, end)
        origin = nearest_transit_hub(start, start_hubs)
        dest = nearest_transit_hub(end, end_hubs)
        if origin is None or dest is None:
            logger.warning("No transit hub within %.0f km of an endpoint", MAX_ACCESS_KM)
            return []

        valid = [legs for legs in self.plans(start, end, start_hubs, end_hubs) if validate_route(legs)]
        if valid:
            return valid

        fallback = self.fallback_plan(origin, dest)
        if validate_route(fallback):
            logger.info("Falling back to a single metro leg %s -> %s", origin.name, dest.name)
            return [fallback]
        return []

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
                    self.engine, _mode_label(legs), legs, ModeType.TRANSIT,
                    start, end, now, persona, zones,
                )
                for legs in self.journeys(start, end)
            ]
        except Exception:
            logger.warning("Transit synthesis failed; returning no TRANSIT routes", exc_info=True)
            return []
