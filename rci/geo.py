"""Geo helpers: great-circle distance and 15-minute time windows."""
import math
from datetime import datetime
from typing import Tuple

EARTH_RADIUS_KM = 6371.0
TIME_WINDOW_MINUTES = 15

Coord = Tuple[float, float]  # (lat, lng)


# 하버사인 공식
def distance_km(a: Coord, b: Coord) -> float:
    """Haversine distance in kilometers between two (lat, lng) points."""
    lat1, lng1 = a
    lat2, lng2 = b
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def planar_distance(a: Coord, b: Coord) -> float:
    """Straight-line distance in raw degree units (coarse hub search)."""
    return math.hypot(b[0] - a[0], b[1] - a[1])


def is_within_radius(point: Coord, center: Coord, radius_km: float) -> bool:
    return distance_km(point, center) <= radius_km


def to_local_naive(instant: datetime) -> datetime:
    """Offset-aware instants are converted to naive local time; naive ones pass through."""
    if instant.tzinfo is None:
        return instant
    return instant.astimezone().replace(tzinfo=None)


def bucket_time(instant: datetime) -> str:
    """
    Map an instant to its 15-minute window label, e.g. 08:47 -> "08:45-09:00".

    Only the local hour/minute are used; date and tzinfo are ignored so the
    label can be used as a join key for failure history and congestion tables.
    """
    start_min = (instant.minute // TIME_WINDOW_MINUTES) * TIME_WINDOW_MINUTES
    end_total = instant.hour * 60 + start_min + TIME_WINDOW_MINUTES
    end_hour, end_min = divmod(end_total % (24 * 60), 60)
    return f"{instant.hour:02d}:{start_min:02d}-{end_hour:02d}:{end_min:02d}"


def normalize_coordinates(lat: float, lng: float) -> Coord:
    """Wrap latitude into [-90, 90] and longitude into [-180, 180]."""
    while lat > 90:
        lat -= 180
    while lat < -90:
        lat += 180
    while lng > 180:
        lng -= 360
    while lng < -180:
        lng += 360
    return lat, lng
