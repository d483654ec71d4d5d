from datetime import datetime
from pydantic import BaseModel, Field
from typing import List, Literal, Optional, Dict


VALID_MODE_TYPE = Literal["SINGLE", "MULTI", "TRANSIT"]
VALID_TIER = Literal["HIGH", "MEDIUM", "LOW"]
VALID_HUB_TYPE = Literal["TRAIN_STATION", "AIRPORT", "BUS_STATION"]


class Coordinate(BaseModel):
    lat: float = Field(ge=-90.0, le=90.0)
    lng: float = Field(ge=-180.0, le=180.0)


# --- Route scoring ---

class RouterStepIn(BaseModel):
    maneuver: str = Field("continue", max_length=50)
    modifier: str = Field("", max_length=50)
    distance: float = Field(0.0, ge=0.0)  # meters
    duration: float = Field(0.0, ge=0.0)  # seconds
    name: str = Field("", max_length=200)


class RouterRouteIn(BaseModel):
    geometry: str = ""  # 라우터가 준 polyline 그대로 저장
    distance: float = Field(ge=0.0)  # meters
    duration: float = Field(ge=0.0)  # seconds
    summary: str = Field("", max_length=200)
    steps: List[RouterStepIn] = []


class RouteScoreRequest(BaseModel):
    start: Coordinate
    end: Coordinate
    persona: Optional[str] = Field(None, max_length=30)  # 잘못된 값이면 SAFE_PLANNER
    departure_time: Optional[datetime] = None  # None이면 현재 시각
    routes: List[RouterRouteIn] = Field(default_factory=list, max_length=10)
    include_multimodal: bool = True
    include_transit: bool = True


class RCIComponentsOut(BaseModel):
    on_time_prob: float
    transfer_success: float
    crowd_stability: float
    delay_variance: float
    last_mile_avail: float


class StepOut(BaseModel):
    maneuver: str
    modifier: str
    distance: float
    duration: float
    name: str


class LegOut(BaseModel):
    mode: str
    start_lat: float
    start_lng: float
    end_lat: float
    end_lng: float
    travel_time: float  # minutes
    wait_time: float  # minutes
    crowd_score: float
    distance_km: float
    line_name: Optional[str] = None
    stop_count: Optional[int] = None
    start_station: Optional[str] = None
    end_station: Optional[str] = None


class RouteOut(BaseModel):
    route_id: str
    mode_type: VALID_MODE_TYPE
    name: str
    geometry: str
    distance: float  # km
    duration: float  # minutes
    rci: float
    original_rci: float
    confidence_level: VALID_TIER
    explanation: str
    risk_factors: List[str]
    failure_penalty: float
    time_window_penalty: float
    osint_penalty: float
    transfer_penalty: float
    persona_bonus: float
    components: RCIComponentsOut
    is_maps_preferred: bool = False
    steps: Optional[List[StepOut]] = None  # SINGLE only
    legs: Optional[List[LegOut]] = None  # MULTI / TRANSIT only
    transfer_count: Optional[int] = None
    wait_time: Optional[float] = None
    persona_score: Optional[float] = None
    persona_explanation: Optional[str] = None


class RouteStats(BaseModel):
    total_routes: int
    single_mode_routes: int
    multi_modal_routes: int
    transit_routes: int


class RouteScoreResponse(BaseModel):
    routes: List[RouteOut]
    maps_preferred_route_id: Optional[str] = None
    rci_preferred_route_id: Optional[str] = None
    route_comparison: str = ""
    persona_explanation: str = ""
    selected_persona: str
    time_window: str
    route_stats: RouteStats


class StoredRouteResponse(BaseModel):
    route_id: str
    mode_type: str
    name: str
    start_lat: float
    start_lng: float
    end_lat: float
    end_lng: float
    distance: float
    base_eta: float
    geometry: str
    time_window: str
    on_time_prob: float
    transfer_success: float
    crowd_stability: float
    delay_variance: float
    last_mile_avail: float
    rci_score: float
    created_at: str


# --- Advisory zones ---

class ZoneItem(BaseModel):
    id: str
    zone_type: str
    description: str
    center_lat: float
    center_lng: float
    radius_km: float
    base_severity: float
    decayed_severity: float
    severity_label: str
    window_start: datetime
    window_end: datetime
    tooltip: str


class ZoneListResponse(BaseModel):
    evaluated_at: datetime
    zones: List[ZoneItem]
    nearby_zones: Optional[List[ZoneItem]] = None
    nearby_count: Optional[int] = None


# --- Personas ---

class PersonaItem(BaseModel):
    persona: str
    description: str


class PersonaInferRequest(BaseModel):
    speed_preference: float = Field(0.5, ge=0.0, le=1.0)  # 최단 경로 대비 절약 시간 선호
    reroute_tendency: float = Field(0.5, ge=0.0, le=1.0)  # 재탐색 비율
    crowd_tolerance: float = Field(0.5, ge=0.0, le=1.0)  # 평균 혼잡도
    transfer_tolerance: float = Field(0.5, ge=0.0, le=1.0)  # 평균 환승 횟수 (정규화)
    risk_acceptance: float = Field(0.5, ge=0.0, le=1.0)  # 평균 (1 - RCI)


class PersonaInferResponse(BaseModel):
    persona: str
    description: str
    confidence: float
    scores: Dict[str, float]


# --- Hubs ---

class NearestHubItem(BaseModel):
    name: str
    hub_type: str
    distance_km: float
    lat: float
    lng: float


class NearestHubResponse(BaseModel):
    hubs: List[NearestHubItem]


# --- Calibration ---

class CalibrationRequest(BaseModel):
    w_on_time: Optional[float] = Field(None, ge=0.0, le=1.0)
    w_transfer: Optional[float] = Field(None, ge=0.0, le=1.0)
    w_crowd: Optional[float] = Field(None, ge=0.0, le=1.0)
    w_delay_variance: Optional[float] = Field(None, ge=0.0, le=1.0)
    w_last_mile: Optional[float] = Field(None, ge=0.0, le=1.0)
    failure_weight: Optional[float] = Field(None, ge=0.0, le=1.0)
    congestion_weight: Optional[float] = Field(None, ge=0.0, le=1.0)
    transfer_discount: Optional[float] = Field(None, ge=0.0, le=0.2)
    high_tier: Optional[float] = Field(None, ge=0.0, le=1.0)
    medium_tier: Optional[float] = Field(None, ge=0.0, le=1.0)
    min_rci: Optional[float] = Field(None, ge=0.0, le=0.5)


class CalibrationResponse(BaseModel):
    weights: Dict[str, float]
    failure_weight: float
    congestion_weight: float
    transfer_discount: float
    high_tier: float
    medium_tier: float
    min_rci: float
