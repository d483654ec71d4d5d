"""
Advisory (OSINT) zone scoring
=============================
Time-bound circular geofences that softly reduce route confidence.

    decayed_severity(z, t) = clamp(severity * exp(-decay_rate * elapsed_h), 1, 5)
    overlap                = min(1, Σ decayed_severity * 0.1)   over affected zones
    soft_penalty           = overlap * ((avg_severity - 1) / 4) * 0.15

A zone affects a route when either endpoint lies inside its radius. Zones
never eliminate a route; the penalty is capped at 15%.

All zone data is simulated. Severity is computed at read time and never
written back to the store.
"""
import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from rci.geo import Coord, distance_km
from rci.utils import clamp


MIN_SEVERITY = 1.0
MAX_SEVERITY = 5.0
OVERLAP_WEIGHT = 0.1
MAX_SOFT_PENALTY = 0.15

SEVERITY_LABELS = ["Low", "Low-Medium", "Medium", "High", "Critical"]


class ZoneType(str, Enum):
    PROTEST = "protest"
    CONGESTION = "congestion"
    HEALTH_ALERT = "health_alert"
    WEATHER_DISRUPTION = "weather_disruption"
    INFRASTRUCTURE_ISSUE = "infrastructure_issue"
    TRANSIT_DELAY = "transit_delay"


@dataclass(frozen=True)
class AdvisoryZone:
    id: str
    zone_type: ZoneType
    severity: float  # 1-5
    center_lat: float
    center_lng: float
    radius_km: float
    description: str
    window_start: datetime
    window_end: datetime
    decay_rate: float
    is_active: bool = True

    @property
    def center(self) -> Coord:
        return self.center_lat, self.center_lng

    def is_live(self, now: datetime) -> bool:
        return self.is_active and self.window_start <= now <= self.window_end


@dataclass(frozen=True)
class AdvisoryImpact:
    penalty: float
    overlap: float
    avg_severity: float
    affected_zones: Tuple[AdvisoryZone, ...]


def decayed_severity(zone: AdvisoryZone, now: datetime) -> float:
    """Severity decayed exponentially from the zone's window start."""
    elapsed_hours = max(0.0, (now - zone.window_start).total_seconds() / 3600.0)
    value = zone.severity * math.exp(-zone.decay_rate * elapsed_hours)
    return clamp(value, MIN_SEVERITY, MAX_SEVERITY)


def overlap(
    start: Coord,
    end: Coord,
    zones: Iterable[AdvisoryZone],
    now: datetime,
) -> Tuple[List[AdvisoryZone], float]:
    """
    Endpoint-only overlap estimate.

    Returns (affected zones, overlap score in [0, 1]). Zones outside their
    validity window or flagged inactive are skipped.
    """
    affected: List[AdvisoryZone] = []
    score = 0.0
    for zone in zones:
        if not zone.is_live(now):
            continue
        if (distance_km(start, zone.center) < zone.radius_km
                or distance_km(end, zone.center) < zone.radius_km):
            affected.append(zone)
            score += decayed_severity(zone, now) * OVERLAP_WEIGHT
    return affected, min(1.0, score)


def soft_penalty(overlap_score: float, avg_severity: float) -> float:
    severity_weight = clamp((avg_severity - 1.0) / 4.0)
    return clamp(overlap_score) * severity_weight * MAX_SOFT_PENALTY


def apply_advisory_scoring(
    start: Coord,
    end: Coord,
    zones: Optional[Sequence[AdvisoryZone]],
    now: datetime,
) -> AdvisoryImpact:
    if not zones:
        return AdvisoryImpact(penalty=0.0, overlap=0.0, avg_severity=MIN_SEVERITY, affected_zones=())

    affected, overlap_score = overlap(start, end, zones, now)
    avg_sev = MIN_SEVERITY
    if affected:
        avg_sev = sum(decayed_severity(z, now) for z in affected) / len(affected)

    return AdvisoryImpact(
        penalty=soft_penalty(overlap_score, avg_sev),
        overlap=overlap_score,
        avg_severity=avg_sev,
        affected_zones=tuple(affected),
    )


def severity_label(zone: AdvisoryZone, now: datetime) -> str:
    idx = int(math.floor(decayed_severity(zone, now))) - 1
    return SEVERITY_LABELS[max(0, min(idx, len(SEVERITY_LABELS) - 1))]


def zone_tooltip(zone: AdvisoryZone, now: datetime) -> str:
    """Short informational summary of a zone for hover text."""
    title = zone.zone_type.value.upper().replace("_", " ")
    return (
        f"[{title}]\n{zone.description}\n\n"
        f"Severity: {severity_label(zone, now)}\n"
        f"Active until: {zone.window_end.strftime('%H:%M')}\n\n"
        "Informational only - does not predict outcomes"
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class AdvisoryZoneStore:
    """
    Read-only table of advisory zones, loaded once at process start.

    The CSV stores validity windows as hour offsets relative to load time
    (``start_offset_h``, ``end_offset_h``) so the simulated zones are always
    current when the service boots.
    """

    REQUIRED_COLUMNS = (
        "id", "zone_type", "severity", "center_lat", "center_lng", "radius_km",
        "description", "start_offset_h", "end_offset_h", "decay_rate", "is_active",
    )

    def __init__(self, zones: Sequence[AdvisoryZone] = ()):
        self._zones: Tuple[AdvisoryZone, ...] = tuple(zones)

    @classmethod
    def from_csv(cls, csv_path, loaded_at: Optional[datetime] = None) -> "AdvisoryZoneStore":
        csv_path = Path(csv_path)
        if not csv_path.exists():
            print(f"  Advisory zones: {csv_path.name} not found (no zones)")
            return cls()

        df = pd.read_csv(csv_path, encoding="utf-8-sig")
        missing = [c for c in cls.REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise ValueError(f"{csv_path.name}: missing columns {missing}")

        base = loaded_at or datetime.now()
        zones = [
            AdvisoryZone(
                id=str(row["id"]),
                zone_type=ZoneType(row["zone_type"]),
                severity=float(clamp(row["severity"], MIN_SEVERITY, MAX_SEVERITY)),
                center_lat=float(row["center_lat"]),
                center_lng=float(row["center_lng"]),
                radius_km=float(row["radius_km"]),
                description=str(row["description"]),
                window_start=base + timedelta(hours=float(row["start_offset_h"])),
                window_end=base + timedelta(hours=float(row["end_offset_h"])),
                decay_rate=float(row["decay_rate"]),
                is_active=bool(row["is_active"]),
            )
            for _, row in df.iterrows()
        ]
        print(f"  Advisory zones: {len(zones)} zones")
        return cls(zones)

    def __len__(self) -> int:
        return len(self._zones)

    @property
    def zones(self) -> Tuple[AdvisoryZone, ...]:
        return self._zones

    def active(self, now: datetime) -> List[AdvisoryZone]:
        return [z for z in self._zones if z.is_live(now)]

    def get(self, zone_id: str) -> Optional[AdvisoryZone]:
        for zone in self._zones:
            if zone.id == zone_id:
                return zone
        return None
