"""Route, leg and confidence records shared by the engine, synthesizers and API."""
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class ModeType(str, Enum):
    SINGLE = "SINGLE"
    MULTI = "MULTI"
    TRANSIT = "TRANSIT"


class TransportMode(str, Enum):
    CAR = "CAR"
    TRAIN = "TRAIN"
    FLIGHT = "FLIGHT"
    WALK = "WALK"
    METRO = "METRO"


class ConfidenceTier(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Persona(str, Enum):
    RUSHER = "RUSHER"
    SAFE_PLANNER = "SAFE_PLANNER"
    COMFORT_SEEKER = "COMFORT_SEEKER"
    EXPLORER = "EXPLORER"


@dataclass(frozen=True)
class RCIComponents:
    """Five weighted sub-scores, each in [0, 1]."""
    on_time_prob: float
    transfer_success: float
    crowd_stability: float
    delay_variance: float
    last_mile_avail: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class ConfidenceResult:
    rci: float
    original_rci: float
    explanation: str
    failure_penalty: float
    time_window_penalty: float
    osint_penalty: float
    persona_bonus: float
    components: RCIComponents
    risk_factors: Tuple[str, ...]
    confidence_level: ConfidenceTier
    time_window: str
    transfer_penalty: float = 0.0


@dataclass(frozen=True)
class Leg:
    """One homogeneous-mode segment of a composite journey."""
    mode: TransportMode
    start_lat: float
    start_lng: float
    end_lat: float
    end_lng: float
    travel_time: float  # minutes
    wait_time: float  # minutes
    crowd_score: float  # 0 = empty, 1 = packed
    distance_km: float
    line_name: Optional[str] = None
    stop_count: Optional[int] = None
    start_station: Optional[str] = None
    end_station: Optional[str] = None

    @property
    def total_time(self) -> float:
        return self.travel_time + self.wait_time

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["mode"] = self.mode.value
        return data


@dataclass(frozen=True)
class RouterStep:
    """Turn-by-turn step from the road router. Passed through untouched."""
    maneuver: str = "continue"
    modifier: str = ""
    distance: float = 0.0  # meters
    duration: float = 0.0  # seconds
    name: str = ""


@dataclass(frozen=True)
class RouterRoute:
    """Raw candidate as returned by the external road router."""
    geometry: str
    distance_m: float
    duration_s: float
    summary: str = ""
    steps: Tuple[RouterStep, ...] = ()


@dataclass(frozen=True)
class RouteCandidate:
    route_id: str
    mode_type: ModeType
    name: str
    geometry: str
    distance: float  # km
    duration: float  # minutes
    confidence: ConfidenceResult
    legs: Tuple[Leg, ...] = ()
    transfer_count: int = 0
    crowd_score: Optional[float] = None
    transfer_success: Optional[float] = None
    wait_time: float = 0.0
    steps: Tuple[RouterStep, ...] = ()
    is_maps_preferred: bool = False
    persona_score: Optional[float] = None
    persona_explanation: Optional[str] = None

    @property
    def rci(self) -> float:
        return self.confidence.rci

    def to_output(self) -> Dict[str, Any]:
        """Serialize to the public per-candidate output contract."""
        c = self.confidence
        out: Dict[str, Any] = {
            "route_id": self.route_id,
            "mode_type": self.mode_type.value,
            "name": self.name,
            "geometry": self.geometry,
            "distance": round(self.distance, 3),
            "duration": round(self.duration, 1),
            "rci": round(c.rci, 4),
            "original_rci": round(c.original_rci, 4),
            "confidence_level": c.confidence_level.value,
            "explanation": c.explanation,
            "risk_factors": list(c.risk_factors),
            "failure_penalty": round(c.failure_penalty, 4),
            "time_window_penalty": round(c.time_window_penalty, 4),
            "osint_penalty": round(c.osint_penalty, 4),
            "transfer_penalty": round(c.transfer_penalty, 4),
            "persona_bonus": round(c.persona_bonus, 4),
            "components": {k: round(v, 4) for k, v in c.components.as_dict().items()},
            "is_maps_preferred": self.is_maps_preferred,
        }
        if self.mode_type is ModeType.SINGLE:
            out["steps"] = [asdict(s) for s in self.steps]
        else:
            out["legs"] = [leg.as_dict() for leg in self.legs]
            out["transfer_count"] = self.transfer_count
            out["wait_time"] = round(self.wait_time, 1)
        if self.persona_score is not None:
            out["persona_score"] = round(self.persona_score, 4)
            out["persona_explanation"] = self.persona_explanation
        return out


def to_persistence_record(
    candidate: RouteCandidate,
    start: Tuple[float, float],
    end: Tuple[float, float],
    created_at: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Denormalized row handed to the persistence collaborator."""
    c = candidate.confidence
    record = {
        "route_id": candidate.route_id,
        "mode_type": candidate.mode_type.value,
        "name": candidate.name,
        "start_lat": start[0],
        "start_lng": start[1],
        "end_lat": end[0],
        "end_lng": end[1],
        "distance": candidate.distance,
        "base_eta": candidate.duration,
        "geometry": candidate.geometry,
        "time_window": c.time_window,
        "rci_score": c.rci,
        "created_at": (created_at or datetime.now()).isoformat(),
    }
    record.update(c.components.as_dict())
    return record


@dataclass(frozen=True)
class JourneyProfile:
    """Aggregated journey behaviour used to infer a persona. All fields 0-1."""
    speed_preference: float = 0.5
    reroute_tendency: float = 0.5
    crowd_tolerance: float = 0.5
    transfer_tolerance: float = 0.5
    risk_acceptance: float = 0.5
