"""Deterministic triage classification with fail-safe-high overrides.

Urgency starts from the triage category and can only be raised: a positive
emergency screen, a critical red flag or an immediate category force
``emergency``; an incomplete or ambiguous screen never yields less than
``urgent``.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from ...content import load_pack
from ...schemas.intake import EncounterBundle
from ...schemas.triage import URGENCY_RANK, AppointmentUrgencyContext, TriageResult
from ..config import Settings, get_settings
from .priority import calculate_priority_score, category_for_score
from .specialty import SpecialtyRouter, get_router

__all__ = ["TriageClassifier", "classify", "to_urgency_context"]

logger = logging.getLogger(__name__)


def _raise_to(current: str, floor: str) -> str:
    return floor if URGENCY_RANK[floor] > URGENCY_RANK[current] else current


class TriageClassifier:
    def __init__(
        self,
        router: Optional[SpecialtyRouter] = None,
        settings: Optional[Settings] = None,
        urgency_pack: Optional[Mapping[str, Any]] = None,
    ):
        self.router = router if router is not None else get_router()
        self.settings = settings if settings is not None else get_settings()
        self.urgency_pack = urgency_pack if urgency_pack is not None else load_pack("urgency")

    def classify(self, bundle: EncounterBundle) -> TriageResult:
        priority = bundle.priority_score
        if priority is None:
            priority = calculate_priority_score(bundle, self.urgency_pack)
        category = bundle.triage_category or category_for_score(priority, self.urgency_pack)
        urgency = self.urgency_pack["category_to_urgency"].get(category, "routine")

        reasons: List[str] = []
        if bundle.screening.is_positive:
            reasons.append("emergency_screening_positive:" + ",".join(bundle.screening.positive_checkpoints))
        critical = [flag.id for flag in bundle.red_flags if flag.severity == "CRITICAL"]
        if critical:
            reasons.append("critical_red_flag:" + ",".join(critical))
        if category == "IMMEDIATE":
            reasons.append("immediate_category")

        is_emergency = bool(reasons)
        if is_emergency:
            urgency = "emergency"
        elif bundle.screening.is_ambiguous:
            raised = _raise_to(urgency, "urgent")
            if raised != urgency:
                reasons.append("screening_incomplete")
                urgency = raised

        action = None
        if bundle.screening.recommended_action != "continue":
            action = bundle.screening.recommended_action
        elif is_emergency:
            action = "go_to_er"

        specialty, rule_id = self.router.route(bundle, self.settings.pediatric_age_limit)

        result = TriageResult(
            category=category,
            urgency=urgency,
            priority_score=priority,
            recommended_specialty=specialty,
            red_flags=bundle.red_flags,
            emergency_action=action,
            is_emergency=is_emergency,
            override_reasons=tuple(reasons),
            matched_specialty_rule=rule_id,
        )
        logger.info(
            "Triage classified: correlation_id=%s category=%s urgency=%s priority=%d specialty=%s",
            bundle.correlation_id,
            category,
            urgency,
            priority,
            specialty,
        )
        return result

    def to_urgency_context(
        self, result: TriageResult, blocked_modes: Iterable[str] = ()
    ) -> AppointmentUrgencyContext:
        wait_time = self.urgency_pack["wait_time"][result.urgency]
        return AppointmentUrgencyContext(
            urgency_level=result.urgency,
            specialty=result.recommended_specialty,
            specialty_label_en=self.router.label(result.recommended_specialty, "en"),
            specialty_label_ur=self.router.label(result.recommended_specialty, "ur"),
            is_emergency_case=result.is_emergency,
            emergency_action=result.emergency_action,
            wait_time_en=wait_time["en"],
            wait_time_ur=wait_time["ur"],
            blocked_modes=tuple(blocked_modes),
            red_flag_warnings=tuple(flag.description for flag in result.red_flags),
            priority_score=result.priority_score,
        )


def classify(bundle: EncounterBundle) -> TriageResult:
    """Classify with the packaged rule tables and current settings."""

    return TriageClassifier().classify(bundle)


def to_urgency_context(result: TriageResult, blocked_modes: Iterable[str] = ()) -> AppointmentUrgencyContext:
    return TriageClassifier().to_urgency_context(result, blocked_modes)
