"""
Route planning: scores router candidates, adds synthesized multi-leg and
transit journeys, and ranks everything for the rider's persona.

Single-mode candidates are always returned. Multi-leg and transit synthesis
degrade to an empty list on failure.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from rci.engine import RCIEngine, compare_routes_for_reliability
from rci.geo import Coord, bucket_time, to_local_naive
from rci.models import ModeType, Persona, RouteCandidate, RouterRoute, to_persistence_record
from rci.multimodal import MultiLegSynthesizer
from rci.persona import rank_routes_by_persona
from rci.transit import TransitSynthesizer
from rci.utils import RandomSource
from rci.zones import AdvisoryZone, AdvisoryZoneStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlanResult:
    start: Coord
    end: Coord
    routes: Tuple[RouteCandidate, ...]
    selected_persona: Persona
    time_window: str
    maps_preferred_route_id: Optional[str] = None
    route_comparison: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def rci_preferred_route_id(self) -> Optional[str]:
        return self.routes[0].route_id if self.routes else None

    @property
    def persona_explanation(self) -> str:
        if self.routes and self.routes[0].persona_explanation:
            return self.routes[0].persona_explanation
        return ""

    def route_stats(self) -> Dict[str, int]:
        counts = {m: 0 for m in ModeType}
        for r in self.routes:
            counts[r.mode_type] += 1
        return {
            "total_routes": len(self.routes),
            "single_mode_routes": counts[ModeType.SINGLE],
            "multi_modal_routes": counts[ModeType.MULTI],
            "transit_routes": counts[ModeType.TRANSIT],
        }

    def persistence_records(self) -> List[Dict[str, Any]]:
        return [to_persistence_record(r, self.start, self.end, self.created_at) for r in self.routes]

    def to_output(self) -> Dict[str, Any]:
        return {
            "routes": [r.to_output() for r in self.routes],
            "maps_preferred_route_id": self.maps_preferred_route_id,
            "rci_preferred_route_id": self.rci_preferred_route_id,
            "route_comparison": self.route_comparison,
            "persona_explanation": self.persona_explanation,
            "selected_persona": self.selected_persona.value,
            "time_window": self.time_window,
            "route_stats": self.route_stats(),
        }


class RoutePlanner:
    def __init__(
        self,
        engine: RCIEngine,
        zone_store: Optional[AdvisoryZoneStore] = None,
        rng: Optional[RandomSource] = None,
    ):
        self.engine = engine
        self.zone_store = zone_store if zone_store is not None else AdvisoryZoneStore()
        self.multi = MultiLegSynthesizer(engine, rng)
        self.transit = TransitSynthesizer(engine, rng)

    def score_router_routes(
        self,
        start: Coord,
        end: Coord,
        router_routes: Sequence[RouterRoute],
        now: datetime,
        persona: Persona,
        zones: Sequence[AdvisoryZone],
    ) -> List[RouteCandidate]:
        candidates = []
        for i, rr in enumerate(router_routes):
            try:
                eta_min = round(rr.duration_s / 60)
                distance = rr.distance_m / 1000
                confidence = self.engine.compute(
                    start, end, eta_min, distance, now, persona=persona, zones=zones,
                )
                candidates.append(RouteCandidate(
                    route_id=str(uuid.uuid4()),
                    mode_type=ModeType.SINGLE,
                    name=rr.summary or f"Route {i + 1}",
                    geometry=rr.geometry,
                    distance=distance,
                    duration=rr.duration_s / 60,
                    confidence=confidence,
                    steps=rr.steps,
                    is_maps_preferred=(i == 0),
                ))
            except Exception:
                logger.exception("Failed to score router route %d", i)
        return candidates

    def plan(
        self,
        start: Coord,
        end: Coord,
        router_routes: Sequence[RouterRoute],
        persona: Persona = Persona.SAFE_PLANNER,
        now: Optional[datetime] = None,
        include_multimodal: bool = True,
        include_transit: bool = True,
    ) -> PlanResult:
        now = to_local_naive(now or datetime.now())
        zones = self.zone_store.active(now)

        singles = self.score_router_routes(start, end, router_routes, now, persona, zones)
        comparison = ""
        if len(singles) >= 2:
            comparison = compare_routes_for_reliability(
                singles[0].confidence, singles[0].duration,
                singles[1].confidence, singles[1].duration,
            )

        routes: List[RouteCandidate] = list(singles)
        if include_multimodal:
            multi = self.multi.generate(start, end, now, persona, zones)
            logger.info("Generated %d multi-leg routes alongside %d single-mode routes", len(multi), len(singles))
            routes.extend(multi)
        if include_transit:
            transit = self.transit.generate(start, end, now, persona, zones)
            logger.info("Generated %d transit routes", len(transit))
            routes.extend(transit)

        ranked = rank_routes_by_persona(routes, persona)
        return PlanResult(
            start=start,
            end=end,
            routes=tuple(ranked),
            selected_persona=persona,
            time_window=bucket_time(now),
            maps_preferred_route_id=singles[0].route_id if singles else None,
            route_comparison=comparison,
            created_at=now,
        )
