"""Provider eligibility rules.

A provider may be offered for a mode only when every rule holds. Each
decision records the reasons it failed so the outcome can be audited.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from ...schemas.providers import EligibilityDecision, MatchCriteria, ProviderProfile

__all__ = ["patient_age_group", "explain_eligibility", "filter_eligible"]

GENERAL_MEDICINE = "general_medicine"

_GENDER_CARE = {"MALE": "male", "FEMALE": "female"}


def patient_age_group(age: Optional[int], pediatric_age_limit: int) -> Optional[str]:
    if age is None:
        return None
    return "PEDIATRIC" if age < pediatric_age_limit else "ADULT"


def explain_eligibility(
    provider: ProviderProfile, criteria: MatchCriteria, mode: str, pediatric_age_limit: int
) -> EligibilityDecision:
    reasons: List[str] = []
    if not provider.active:
        reasons.append("inactive")
    if not provider.verified:
        reasons.append("unverified")
    if mode not in provider.consultation_modes:
        reasons.append(f"mode_not_offered:{mode}")
    if criteria.specialty not in provider.specialties and GENERAL_MEDICINE not in provider.specialties:
        reasons.append(f"specialty_mismatch:{criteria.specialty}")

    group = patient_age_group(criteria.age, pediatric_age_limit)
    if "ALL" not in provider.age_groups and (group is None or group not in provider.age_groups):
        reasons.append(f"age_group_not_covered:{group or 'unknown'}")

    care = provider.gender_care
    if care in _GENDER_CARE and criteria.gender != _GENDER_CARE[care]:
        reasons.append(f"gender_care_restricted:{care}")

    return EligibilityDecision(
        provider_id=provider.id,
        mode=mode,
        eligible=not reasons,
        reasons=tuple(reasons),
    )


def filter_eligible(
    providers: Iterable[ProviderProfile],
    criteria: MatchCriteria,
    modes: Sequence[str],
    pediatric_age_limit: int,
) -> Tuple[Tuple[Tuple[ProviderProfile, str], ...], Tuple[EligibilityDecision, ...]]:
    """Split the provider x mode matrix into eligible pairs and all decisions."""

    pairs = []
    decisions = []
    for provider in providers:
        for mode in modes:
            decision = explain_eligibility(provider, criteria, mode, pediatric_age_limit)
            decisions.append(decision)
            if decision.eligible:
                pairs.append((provider, mode))
    return tuple(pairs), tuple(decisions)
