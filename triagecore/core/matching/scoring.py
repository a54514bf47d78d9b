"""Score registry and provider ranking.

Each component is registered with its cap; a component's contribution is
clamped to ``[0, cap]`` and the total to 100.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from ...schemas.providers import GeoPoint, MatchCriteria, ProviderProfile, ScoreBreakdown, ScoredProvider
from ..config import Settings, get_settings
from ..normalizer.text import normalize_text
from ..triage.specialty import SpecialtyRouter, get_router
from .eligibility import GENERAL_MEDICINE

__all__ = [
    "ScoreContext",
    "haversine_km",
    "rank_providers",
    "register",
    "registered_caps",
    "score_provider",
]

logger = logging.getLogger(__name__)

MAX_SCORE = 100.0
EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class ScoreContext:
    provider: ProviderProfile
    mode: str
    criteria: MatchCriteria
    router: SpecialtyRouter
    distance_decay_km: float


ScoreFunc = Callable[[ScoreContext], float]

_REGISTRY: Dict[str, Tuple[float, ScoreFunc]] = {}


def register(name: str, cap: float) -> Callable[[ScoreFunc], ScoreFunc]:
    def decorator(func: ScoreFunc) -> ScoreFunc:
        _REGISTRY[name] = (cap, func)
        return func

    return decorator


def registered_caps() -> Dict[str, float]:
    return {name: cap for name, (cap, _) in _REGISTRY.items()}


@register("specialty_fit", cap=40)
def _specialty_fit(ctx: ScoreContext) -> float:
    wanted = ctx.criteria.specialty
    specialties = ctx.provider.specialties
    if wanted in specialties:
        return 40
    if GENERAL_MEDICINE in specialties:
        if any(ctx.router.is_adjacent(wanted, other) for other in specialties):
            return 28
        return 20
    return 0


@register("availability", cap=20)
def _availability(ctx: ScoreContext) -> float:
    return 20 if ctx.provider.slots_for(ctx.mode) else 0


@register("experience", cap=20)
def _experience(ctx: ScoreContext) -> float:
    return min(ctx.provider.experience_years, 20)


@register("language", cap=10)
def _language(ctx: ScoreContext) -> float:
    preferred = normalize_text(ctx.criteria.preferred_language or "")
    if not preferred:
        return 10
    spoken = {normalize_text(language) for language in ctx.provider.languages}
    return 10 if preferred in spoken else 0


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    lat1, lon1, lat2, lon2 = map(math.radians, (a.latitude, a.longitude, b.latitude, b.longitude))
    h = math.sin((lat2 - lat1) / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin((lon2 - lon1) / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


@register("distance", cap=10)
def _distance(ctx: ScoreContext) -> float:
    # Online visits and unknown locations get the neutral midpoint.
    if ctx.mode == "ONLINE":
        return 5
    origin = ctx.criteria.location
    points = [clinic.location for clinic in ctx.provider.clinics if clinic.location is not None]
    if origin is None or not points:
        return 5
    km = min(haversine_km(origin, point) for point in points)
    return 10 / (1 + km / ctx.distance_decay_km)


@register("rating", cap=5)
def _rating(ctx: ScoreContext) -> float:
    return ctx.provider.rating


def score_provider(ctx: ScoreContext) -> ScoredProvider:
    parts = {}
    for name, (cap, func) in _REGISTRY.items():
        parts[name] = round(min(cap, max(0.0, float(func(ctx)))), 2)
    total = round(min(MAX_SCORE, sum(parts.values())), 2)
    return ScoredProvider(
        provider=ctx.provider,
        mode=ctx.mode,
        score=total,
        score_breakdown=ScoreBreakdown(**parts),
    )


def rank_providers(
    pairs: Iterable[Tuple[ProviderProfile, str]],
    criteria: MatchCriteria,
    limit: Optional[int] = None,
    *,
    router: Optional[SpecialtyRouter] = None,
    settings: Optional[Settings] = None,
) -> Tuple[ScoredProvider, ...]:
    """Score eligible provider/mode pairs, best first, ties by provider id.

    An empty result is a valid outcome.
    """

    settings = settings if settings is not None else get_settings()
    router = router if router is not None else get_router()
    limit = settings.ranking_limit if limit is None else limit
    scored: Sequence[ScoredProvider] = [
        score_provider(
            ScoreContext(
                provider=provider,
                mode=mode,
                criteria=criteria,
                router=router,
                distance_decay_km=settings.distance_decay_km,
            )
        )
        for provider, mode in pairs
    ]
    ranked = sorted(scored, key=lambda item: (-item.score, item.provider.id, item.mode))
    logger.info("Ranked %d provider option(s), returning top %d", len(ranked), min(limit, len(ranked)))
    return tuple(ranked[: max(0, limit)])
