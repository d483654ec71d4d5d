"""
Persona-based route ranking
===========================
Re-scores already confidence-rated routes for one of four rider archetypes.
The RCI itself is never modified; the persona score is attached alongside it.

    RUSHER         : rci < 0.50 → rci × 0.5
                     else rci + max(0, (60 - min) × 0.008) - 0.02 × transfers
    SAFE_PLANNER   : rci - 0.08 × transfers
    COMFORT_SEEKER : rci - ((1 - crowd) × 0.15 + (1 - transfer_success) × 0.10 + 0.05 × transfers)
    EXPLORER       : 0.4 × rci + 0.3 × max(0, 1 - min/120) + 0.3 × crowd + 0.01 × transfers

``crowd`` here is crowd *stability* (1 = empty, 0 = packed).
"""
import logging
import math
from dataclasses import dataclass, replace
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from rci.models import JourneyProfile, ModeType, Persona, RouteCandidate
from rci.utils import clamp

logger = logging.getLogger(__name__)

DEFAULT_PERSONA = Persona.SAFE_PLANNER

MIN_ACCEPTABLE_RCI = 0.50
TIME_WEIGHT = 0.008
CROWD_WEIGHT = 0.15
DEFAULT_CROWD_STABILITY = 0.75
DEFAULT_TRANSFER_SUCCESS = 0.85

PERSONA_DESCRIPTIONS = {
    Persona.RUSHER: "Prioritizes fastest routes with acceptable reliability",
    Persona.SAFE_PLANNER: "Prioritizes highest reliability, avoids failure hotspots",
    Persona.COMFORT_SEEKER: "Prioritizes comfort, avoids crowds and transfers",
    Persona.EXPLORER: "Balanced approach across speed, reliability, and comfort",
}


@dataclass(frozen=True)
class PersonaInputs:
    rci: float
    duration_min: float
    transfer_count: int = 0
    crowd_stability: float = DEFAULT_CROWD_STABILITY
    transfer_success: float = DEFAULT_TRANSFER_SUCCESS


def persona_inputs(route: RouteCandidate) -> PersonaInputs:
    """
    Ranking inputs for a candidate.

    Single-mode routes use their confidence components. Composite routes use
    the leg aggregates: crowd stability = 1 - aggregated crowd score.
    """
    comps = route.confidence.components
    if route.mode_type is ModeType.SINGLE:
        crowd = comps.crowd_stability
        transfer = comps.transfer_success
    else:
        crowd = 1.0 - route.crowd_score if route.crowd_score is not None else DEFAULT_CROWD_STABILITY
        transfer = route.transfer_success if route.transfer_success is not None else DEFAULT_TRANSFER_SUCCESS
    return PersonaInputs(
        rci=route.rci,
        duration_min=route.duration,
        transfer_count=route.transfer_count,
        crowd_stability=crowd,
        transfer_success=transfer,
    )


def _transfer_note(n: int) -> str:
    if n <= 0:
        return ""
    return f" ({n} transfer{'s' if n != 1 else ''})"


def score_rusher(x: PersonaInputs) -> Tuple[float, str]:
    if x.rci < MIN_ACCEPTABLE_RCI:
        return x.rci * 0.5, (
            f"Rusher mode: Route rejected due to low reliability "
            f"({x.rci * 100:.0f}% < {MIN_ACCEPTABLE_RCI * 100:.0f}%)"
        )
    speed_bonus = max(0.0, (60 - x.duration_min) * TIME_WEIGHT)
    score = x.rci + speed_bonus - 0.02 * x.transfer_count
    return score, (
        f"Rusher mode: Fastest route with acceptable confidence "
        f"({x.rci * 100:.0f}% RCI, {x.duration_min:.0f} min){_transfer_note(x.transfer_count)}"
    )


def score_safe_planner(x: PersonaInputs) -> Tuple[float, str]:
    score = x.rci - 0.08 * x.transfer_count
    return score, (
        f"Safe Planner: Highest reliability route ({x.rci * 100:.0f}% RCI)"
        f"{_transfer_note(x.transfer_count)}"
    )


def score_comfort_seeker(x: PersonaInputs) -> Tuple[float, str]:
    crowd_pen = (1 - x.crowd_stability) * CROWD_WEIGHT
    transfer_pen = (1 - x.transfer_success) * 0.10 + x.transfer_count * 0.05
    return x.rci - crowd_pen - transfer_pen, (
        f"Comfort Seeker: Less crowded route ({x.crowd_stability * 100:.0f}% comfort, "
        f"{x.transfer_success * 100:.0f}% smooth transfers){_transfer_note(x.transfer_count)}"
    )


def score_explorer(x: PersonaInputs) -> Tuple[float, str]:
    normalized_time = clamp(1 - x.duration_min / 120)
    score = (
        0.4 * x.rci
        + 0.3 * normalized_time
        + 0.3 * x.crowd_stability
        + 0.01 * x.transfer_count
    )
    return score, (
        f"Explorer: Balanced route ({x.rci * 100:.0f}% RCI, {x.duration_min:.0f} min, "
        f"{x.crowd_stability * 100:.0f}% comfort){_transfer_note(x.transfer_count)}"
    )


PERSONA_SCORERS: Dict[Persona, Callable[[PersonaInputs], Tuple[float, str]]] = {
    Persona.RUSHER: score_rusher,
    Persona.SAFE_PLANNER: score_safe_planner,
    Persona.COMFORT_SEEKER: score_comfort_seeker,
    Persona.EXPLORER: score_explorer,
}


def parse_persona(value) -> Persona:
    """Invalid or missing persona → SAFE_PLANNER."""
    if isinstance(value, Persona):
        return value
    if isinstance(value, str):
        try:
            return Persona(value.strip().upper())
        except ValueError:
            pass
    return DEFAULT_PERSONA


def persona_description(persona) -> str:
    return PERSONA_DESCRIPTIONS.get(parse_persona(persona), "Safe Planner (default)")


def apply_persona_weight(route: RouteCandidate, persona: Persona) -> Tuple[float, str]:
    score, explanation = PERSONA_SCORERS[persona](persona_inputs(route))
    if not math.isfinite(score):
        raise ValueError(f"non-finite persona score for route {route.route_id}")
    return score, explanation


def rank_routes_by_persona(
    routes: Sequence[RouteCandidate],
    persona: Persona = DEFAULT_PERSONA,
) -> List[RouteCandidate]:
    """
    Attach persona score/explanation and sort best-first.

    Stable: equal scores keep their input order. If any route fails to score,
    the whole list is returned sorted by RCI without persona fields.
    """
    if not routes:
        return []
    try:
        scored = []
        for route in routes:
            score, explanation = apply_persona_weight(route, persona)
            scored.append(replace(route, persona_score=score, persona_explanation=explanation))
    except Exception:
        logger.warning("Persona scoring failed (%s); falling back to RCI order", persona.value, exc_info=True)
        return sorted(routes, key=lambda r: r.rci, reverse=True)
    return sorted(scored, key=lambda r: r.persona_score, reverse=True)


# ---------------------------------------------------------------------------
# Persona inference from journey statistics
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PersonaInference:
    persona: Persona
    scores: Dict[Persona, float]
    confidence: float


def infer_persona(profile: JourneyProfile) -> PersonaInference:
    """Pick the archetype whose weighted profile match is highest."""
    p = profile
    scores = {
        Persona.RUSHER: 0.4 * p.speed_preference + 0.3 * p.reroute_tendency + 0.3 * p.risk_acceptance,
        Persona.SAFE_PLANNER: (
            0.5 * (1 - p.risk_acceptance)
            + 0.3 * (1 - p.reroute_tendency)
            + 0.2 * p.transfer_tolerance
        ),
        Persona.COMFORT_SEEKER: (
            0.5 * (1 - p.crowd_tolerance)
            + 0.3 * (1 - p.transfer_tolerance)
            + 0.2 * (1 - p.speed_preference)
        ),
        Persona.EXPLORER: 0.4 * p.reroute_tendency + 0.3 * p.transfer_tolerance + 0.3 * p.risk_acceptance,
    }
    scores = {k: clamp(v) for k, v in scores.items()}

    total = sum(scores.values())
    best: Optional[Persona] = None
    for persona in Persona:  # declaration order breaks ties
        if best is None or scores[persona] > scores[best]:
            best = persona
    confidence = scores[best] / (total or 1)
    return PersonaInference(persona=best, scores=scores, confidence=confidence)
