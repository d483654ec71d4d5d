"""
Route Confidence Index (RCI) Engine
===================================
Combines five base component scores with time-windowed failure history,
congestion patterns, advisory zones, transfer count and persona into a
single confidence score.

Formula:
    RCI_orig  = Σ w_k · component_k
                (on_time 0.35, transfer 0.25, crowd 0.20, delay_var 0.10, last_mile 0.10)
    RCI_final = clamp(RCI_orig - P_fail - P_cong - P_adv - P_xfer + B_persona, 0.1, 1.0)

    Where:
        P_fail  = failure_rate × 0.30                  (failure history, same signature & window)
        P_cong  = (1 - reliability_multiplier) × 0.25  (congestion pattern of the window)
        P_adv   = advisory soft penalty                 (≤ 0.15, see zones.py)
        P_xfer  = 0.03 × transfers                     (applied once, here only)
        B_persona : SAFE_PLANNER reliability bonus / transit persona table

Components:
    on_time_prob    : scaled by (1 - failure_rate) and by reliability_multiplier
    delay_variance  : scaled by (1 - P_fail)
    crowd_stability : scaled by (1 - congestion_level × 0.3)

Base components come from a ComponentModel. The default SimulatedTelemetry
draws them from narrow random bands; there is no live telemetry feed.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from rci.geo import Coord, bucket_time, to_local_naive
from rci.history import (
    CongestionPattern,
    CongestionPatternTable,
    FailureHistoryRecord,
    FailureHistoryStore,
    congestion_penalty,
    failure_penalty,
    route_signature,
)
from rci.models import ConfidenceResult, ConfidenceTier, Persona, RCIComponents
from rci.utils import RandomSource, clamp, default_random, jitter
from rci.zones import AdvisoryZone, apply_advisory_scoring

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RCIParams:
    weights: Dict[str, float] = field(default_factory=lambda: {
        "on_time_prob": 0.35,
        "transfer_success": 0.25,
        "crowd_stability": 0.20,
        "delay_variance": 0.10,
        "last_mile_avail": 0.10,
    })
    failure_weight: float = 0.30
    congestion_weight: float = 0.25
    congestion_crowd_factor: float = 0.3
    failure_risk_threshold: float = 0.10  # failure rate, not penalty (rate 0.10 -> penalty 0.03)
    congestion_risk_threshold: float = 0.75
    high_tier: float = 0.75
    medium_tier: float = 0.55
    min_rci: float = 0.1
    transfer_discount: float = 0.03
    safe_planner_bonus: float = 0.15
    safe_planner_bonus_threshold: float = 0.7
    failure_escalation: float = 0.20
    failure_escalation_threshold: float = 0.15


@dataclass(frozen=True)
class TransitOptions:
    """
    Transit-mode inputs.

    ``crowd_stability`` carries the aggregated crowd score of the journey
    (0 = empty, 1 = packed). The reported crowd component is ``1 - crowd``.
    """
    transit_mode: bool = True
    crowd_stability: Optional[float] = None
    transfer_count: int = 0


# 환승 교통 오버라이드 값
TRANSIT_TRANSFER_SUCCESS = 0.85
TRANSIT_DEFAULT_CROWD_STABILITY = 0.65
TRANSIT_DELAY_VARIANCE = 0.88
TRANSIT_LAST_MILE = 0.90
TRANSIT_TRANSFER_STEP = 0.05


def compute_rci(components: RCIComponents, weights: Dict[str, float]) -> float:
    """Weighted sum of the five components, clamped to [0, 1]."""
    values = components.as_dict()
    return clamp(sum(weights[k] * values[k] for k in weights))


def confidence_tier(rci: float, params: RCIParams) -> ConfidenceTier:
    if rci >= params.high_tier:
        return ConfidenceTier.HIGH
    if rci >= params.medium_tier:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


# ---------------------------------------------------------------------------
# Base components
# ---------------------------------------------------------------------------

class ComponentModel(Protocol):
    def sample(self) -> RCIComponents:
        ...


class SimulatedTelemetry:
    """Draws the five base components from fixed bands."""

    def __init__(self, rng: Optional[RandomSource] = None):
        self.rng = rng or default_random()

    def sample(self) -> RCIComponents:
        delay_risk = jitter(self.rng, 0.20, 0.35)
        return RCIComponents(
            on_time_prob=1.0 - delay_risk,
            transfer_success=jitter(self.rng, 0.75, 0.90),
            crowd_stability=jitter(self.rng, 0.80, 0.95),
            delay_variance=jitter(self.rng, 0.70, 0.90),
            last_mile_avail=jitter(self.rng, 0.85, 0.95),
        )


# ---------------------------------------------------------------------------
# Transit persona table
# ---------------------------------------------------------------------------
# (bonus, crowd_penalty, notes). crowd_penalty is the part of the bonus
# attributable to crowding, used to pick the dominant explanation factor.

TransitRule = Callable[[int, Optional[float], float], Tuple[float, float, List[str]]]


def _transit_rusher(transfers, crowd, base_eta):
    bonus = 0.0
    if transfers == 1:
        bonus += 0.05
    elif transfers > 1:
        bonus -= transfers * 0.03
    bonus -= (base_eta / 60.0) * 0.01
    return bonus, 0.0, ["Rusher prefers express routes with minimal transfers"]


def _transit_safe_planner(transfers, crowd, base_eta):
    if crowd and crowd > 0.75:
        return 0.0, 0.08, ["Safe planner avoids crowded transit during peak"]
    return 0.08, 0.0, ["Transit uncrowded - favorable for safe planner"]


def _transit_comfort_seeker(transfers, crowd, base_eta):
    bonus, crowd_pen, notes = 0.0, 0.0, []
    if crowd and crowd < 0.5:
        bonus += 0.10
        notes.append("Comfort seeker enjoys spacious, uncrowded metro")
    elif crowd and crowd > 0.8:
        bonus -= 0.12
        crowd_pen = 0.12
        notes.append("Comfort seeker dislikes crowded transit")
    bonus -= transfers * 0.04
    return bonus, crowd_pen, notes


def _transit_explorer(transfers, crowd, base_eta):
    return 0.12 + transfers * 0.02, 0.0, ["Explorer enjoys diverse transit routes"]


TRANSIT_PERSONA_RULES: Dict[Persona, TransitRule] = {
    Persona.RUSHER: _transit_rusher,
    Persona.SAFE_PLANNER: _transit_safe_planner,
    Persona.COMFORT_SEEKER: _transit_comfort_seeker,
    Persona.EXPLORER: _transit_explorer,
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

class RCIEngine:
    """
    Stateless scorer over read-only lookup stores.

    ``params`` is replaced wholesale (``dataclasses.replace``) by calibration;
    the engine never mutates it.
    """

    def __init__(
        self,
        failure_store: Optional[FailureHistoryStore] = None,
        congestion_table: Optional[CongestionPatternTable] = None,
        params: Optional[RCIParams] = None,
        component_model: Optional[ComponentModel] = None,
        rng: Optional[RandomSource] = None,
    ):
        self.failure_store = failure_store if failure_store is not None else FailureHistoryStore()
        self.congestion_table = congestion_table if congestion_table is not None else CongestionPatternTable()
        self.params = params or RCIParams()
        self.component_model = component_model or SimulatedTelemetry(rng)

    def compute(
        self,
        start: Coord,
        end: Coord,
        base_eta: float,
        distance: float,
        now: datetime,
        persona: Persona = Persona.SAFE_PLANNER,
        zones: Optional[Sequence[AdvisoryZone]] = None,
        transit: Optional[TransitOptions] = None,
        transfer_count: int = 0,
    ) -> ConfidenceResult:
        p = self.params
        now = to_local_naive(now)
        window = bucket_time(now)
        risk_factors: List[str] = []
        transit_mode = bool(transit and transit.transit_mode)
        transfers = max(transfer_count, transit.transfer_count if transit else 0)

        # 1. base components
        base = self.component_model.sample()
        on_time = base.on_time_prob
        transfer_success = base.transfer_success
        crowd_stability = base.crowd_stability
        delay_variance = base.delay_variance
        last_mile = base.last_mile_avail

        # 2. failure history
        record = self.failure_store.lookup(route_signature(start, end), window)
        fail_pen = failure_penalty(record, p.failure_weight)
        if record is not None:
            on_time *= 1.0 - record.failure_rate
            delay_variance *= 1.0 - fail_pen
            if record.failure_rate >= p.failure_risk_threshold:
                risk_factors.extend(_failure_risk_factors(record, window))

        # 3. congestion pattern
        pattern = self.congestion_table.lookup(window)
        cong_pen = congestion_penalty(pattern, p.congestion_weight)
        if pattern is not None:
            on_time *= pattern.reliability_multiplier
            crowd_stability *= 1.0 - pattern.congestion_level * p.congestion_crowd_factor
            if pattern.congestion_level > p.congestion_risk_threshold:
                risk_factors.extend(_congestion_risk_factors(pattern))

        # 4. advisory zones (soft penalty against a 1.0 baseline)
        impact = apply_advisory_scoring(start, end, zones, now)
        if impact.affected_zones:
            risk_factors.append(f"Route affected by {len(impact.affected_zones)} advisory zone(s)")
            for zone in impact.affected_zones:
                risk_factors.append(f"  - {zone.zone_type.value}: {zone.description}")

        # 5. original RCI
        components = RCIComponents(
            on_time_prob=clamp(on_time),
            transfer_success=clamp(transfer_success),
            crowd_stability=clamp(crowd_stability),
            delay_variance=clamp(delay_variance),
            last_mile_avail=clamp(last_mile),
        )
        original_rci = compute_rci(components, p.weights)

        # 6. transit override (reported components only)
        if transit_mode:
            crowd = transit.crowd_stability
            transit_success = TRANSIT_TRANSFER_SUCCESS
            if transfers > 0:
                transit_success -= transfers * TRANSIT_TRANSFER_STEP
                risk_factors.append(
                    f"{transfers} transfer(s) required (each -5% transfer success)"
                )
            components = RCIComponents(
                on_time_prob=components.on_time_prob,
                transfer_success=clamp(transit_success),
                crowd_stability=clamp(
                    1.0 - crowd if crowd is not None else TRANSIT_DEFAULT_CROWD_STABILITY
                ),
                delay_variance=TRANSIT_DELAY_VARIANCE,
                last_mile_avail=TRANSIT_LAST_MILE,
            )

        # 7. persona
        persona_bonus = 0.0
        if persona is Persona.SAFE_PLANNER:
            if original_rci > p.safe_planner_bonus_threshold:
                persona_bonus = p.safe_planner_bonus
            elif fail_pen > p.failure_escalation_threshold:
                fail_pen += p.failure_escalation

        crowd_pen = 0.0
        if transit_mode:
            rule = TRANSIT_PERSONA_RULES[persona]
            bonus, crowd_pen, notes = rule(transfers, transit.crowd_stability, base_eta)
            persona_bonus += bonus
            risk_factors.extend(notes)
            risk_factors.append(f"Transit route with {transfers + 1} leg(s)")

        # 8. final score
        transfer_pen = p.transfer_discount * transfers
        if transfer_pen > 0:
            risk_factors.append(
                f"{transfers} transfer(s) lower reliability by {transfer_pen * 100:.0f}%"
            )
        final = original_rci - fail_pen - cong_pen - impact.penalty - transfer_pen + persona_bonus
        final = clamp(final, p.min_rci, 1.0)

        # 9-10. tier & explanation
        tier = confidence_tier(final, p)
        dominant = _dominant_factor({
            "failure": fail_pen,
            "congestion": cong_pen,
            "advisory": impact.penalty,
            "crowded transit": crowd_pen,
        })
        explanation = _explain(final, tier, dominant, record is not None, fail_pen, window)

        logger.debug("RCI %s %s -> %.3f (%s)", route_signature(start, end), window, final, tier.value)

        return ConfidenceResult(
            rci=final,
            original_rci=original_rci,
            explanation=explanation,
            failure_penalty=fail_pen,
            time_window_penalty=cong_pen,
            osint_penalty=impact.penalty,
            persona_bonus=persona_bonus,
            components=components,
            risk_factors=tuple(risk_factors),
            confidence_level=tier,
            time_window=window,
            transfer_penalty=transfer_pen,
        )


def _failure_risk_factors(record: FailureHistoryRecord, window: str) -> List[str]:
    return [
        f"{record.failure_rate * 100:.0f}% failure rate in {window} time window "
        f"({record.failure_count}/{record.total_journeys} journeys)",
        f"Avg delay: {record.avg_delay_minutes:g} min in past failures",
    ]


def _congestion_risk_factors(pattern: CongestionPattern) -> List[str]:
    return [
        f"High congestion period ({pattern.congestion_level * 100:.0f}% congestion level)",
        f"Typical delay: +{pattern.typical_delay_minutes:g} min at this time",
    ]


def _dominant_factor(penalties: Dict[str, float]) -> Optional[str]:
    name, value = max(penalties.items(), key=lambda kv: kv[1])
    return name if value > 0 else None


_FACTOR_PHRASES = {
    "failure": "frequent failures recorded in this time window",
    "congestion": "congestion expected in {window}",
    "advisory": "route passes through active advisory zones",
    "crowded transit": "crowded transit",
}


def _explain(
    rci: float,
    tier: ConfidenceTier,
    dominant: Optional[str],
    has_history: bool,
    fail_pen: float,
    window: str,
) -> str:
    pct = f"{rci * 100:.0f}%"
    if tier is ConfidenceTier.HIGH:
        text = f"Highly reliable route (RCI: {pct})"
        if has_history:
            return text + " despite historical delays. Time window is favorable."
        return text + ". No major failures recorded in this time window."

    if tier is ConfidenceTier.MEDIUM:
        text = f"Moderately reliable (RCI: {pct})"
    else:
        text = f"Lower reliability (RCI: {pct})"
    if dominant is not None:
        text += ". Main risk: " + _FACTOR_PHRASES[dominant].format(window=window)
        if dominant == "failure":
            text += f" ({fail_pen * 100:.0f}% failure penalty)"
    text += "."
    if tier is ConfidenceTier.LOW:
        text += " Consider alternative routes."
    return text


def compare_routes_for_reliability(
    first: ConfidenceResult,
    first_eta: float,
    second: ConfidenceResult,
    second_eta: float,
) -> str:
    """Plain-text recommendation between two scored routes."""
    rci_diff = first.rci - second.rci
    eta_diff = second_eta - first_eta  # positive if the first route is faster

    if abs(rci_diff) < 0.05:
        return "Both routes have similar reliability (±5%). Choose based on ETA preference."

    if rci_diff > 0.10:
        if eta_diff < -10:
            return (
                f"Route 1 recommended: {rci_diff * 100:.0f}% more reliable, despite being "
                f"{abs(eta_diff):.0f} min slower. Reliability prioritized."
            )
        return f"Route 1 recommended: {rci_diff * 100:.0f}% more reliable and similar/faster ETA."

    if rci_diff < -0.10:
        if eta_diff > 10:
            return (
                f"Route 2 recommended: {abs(rci_diff) * 100:.0f}% more reliable, despite being "
                f"{eta_diff:.0f} min slower. Reliability prioritized."
            )
        return f"Route 2 recommended: {abs(rci_diff) * 100:.0f}% more reliable and similar/faster ETA."

    return "Routes have marginal reliability difference. Choose based on personal preference."
