"""Assemble typed intake phases into an encounter bundle."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import TypeAdapter

from ...schemas.intake import (
    CHECKPOINTS,
    ComplaintPhase,
    DemographicsPhase,
    DetectedRedFlag,
    EmergencyScreeningPhase,
    EncounterBundle,
    IntakePhase,
    RedFlagFinding,
    ScreeningSummary,
    SelectionSet,
    SelectionSnapshot,
    TimelinePhase,
)
from ..normalizer.synonyms import map_complaint_type
from ..normalizer.text import normalize_text
from ..registry.zones import BodyZoneRegistry, get_registry
from ..rules.engine import ClinicalRuleSet, evaluate_clinical_rules

__all__ = [
    "CHECKPOINT_PROTOCOLS",
    "assemble_encounter",
    "parse_phase",
    "parse_yes_no",
    "screening_from_text",
    "summarize_screening",
]

logger = logging.getLogger(__name__)

_YES = frozenset(normalize_text(word) for word in ("yes", "y", "yeah", "yep", "ہاں", "جی", "جی ہاں", "haan", "ji"))
_NO = frozenset(normalize_text(word) for word in ("no", "n", "nope", "نہیں", "nahi", "nahin"))

CHECKPOINT_PROTOCOLS: Mapping[str, str] = {
    "chest_pain_now": "ACS_PROTOCOL",
    "breathing_difficulty_now": "RESPIRATORY_DISTRESS",
    "loss_of_consciousness": "NEURO_EMERGENCY",
    "one_sided_weakness": "STROKE_PROTOCOL",
    "uncontrolled_bleeding": "HEMORRHAGE_PROTOCOL",
    "self_harm": "PSYCHIATRIC_EMERGENCY",
}

_PHASE_ADAPTER: TypeAdapter = TypeAdapter(IntakePhase)


def parse_yes_no(answer: Any) -> str:
    """Map a free-text answer to ``YES``, ``NO`` or ``INVALID``.

    The whole normalised answer must equal a vocabulary entry; partial
    matches such as ``"not yet"`` are ``INVALID``, never ``NO``.
    """

    if isinstance(answer, bool):
        return "YES" if answer else "NO"
    text = normalize_text(answer) if isinstance(answer, str) else ""
    if text in _YES:
        return "YES"
    if text in _NO:
        return "NO"
    return "INVALID"


def screening_from_text(answers: Mapping[str, Any]) -> EmergencyScreeningPhase:
    """Build a screening phase from raw checkpoint answers.

    Unknown checkpoint ids are ignored.
    """

    parsed = {
        checkpoint: parse_yes_no(answers[checkpoint]) for checkpoint in CHECKPOINTS if checkpoint in answers
    }
    return EmergencyScreeningPhase(answers=parsed)


def parse_phase(payload: Mapping[str, Any]) -> IntakePhase:
    """Validate a raw phase payload against the tagged union."""

    return _PHASE_ADAPTER.validate_python(payload)


def summarize_screening(phase: Optional[EmergencyScreeningPhase]) -> ScreeningSummary:
    if phase is None:
        return ScreeningSummary(status="incomplete")
    positive = tuple(checkpoint for checkpoint in CHECKPOINTS if phase.answers.get(checkpoint) == "YES")
    if positive:
        return ScreeningSummary(
            status="positive",
            positive_checkpoints=positive,
            recommended_action="call_1122",
            protocols=tuple(CHECKPOINT_PROTOCOLS[checkpoint] for checkpoint in positive),
        )
    invalid = tuple(checkpoint for checkpoint in CHECKPOINTS if phase.answers.get(checkpoint) != "NO")
    if invalid:
        return ScreeningSummary(status="incomplete", invalid_checkpoints=invalid)
    return ScreeningSummary(status="negative")


class _Draft:
    """Mutable scratch state while phases are folded into a bundle."""

    def __init__(self) -> None:
        self.screening: Optional[EmergencyScreeningPhase] = None
        self.complaint_type: Optional[str] = None
        self.complaint_text: str = ""
        self.severity: Optional[int] = None
        self.onset: Optional[str] = None
        self.worsening: bool = False
        self.associated: List[str] = []
        self.age: Optional[int] = None
        self.gender: Optional[str] = None
        self.preferred_language: Optional[str] = None


def _on_screening(draft: _Draft, phase: EmergencyScreeningPhase) -> None:
    draft.screening = phase


def _on_complaint(draft: _Draft, phase: ComplaintPhase) -> None:
    draft.complaint_type = phase.complaint_type
    draft.complaint_text = phase.text


def _on_timeline(draft: _Draft, phase: TimelinePhase) -> None:
    draft.severity = phase.severity
    draft.onset = phase.onset
    draft.worsening = bool(phase.worsening)
    draft.associated = list(dict.fromkeys(phase.associated_symptoms))


def _on_demographics(draft: _Draft, phase: DemographicsPhase) -> None:
    draft.age = phase.age
    draft.gender = phase.gender
    draft.preferred_language = phase.preferred_language


_HANDLERS: Dict[type, Callable[[_Draft, Any], None]] = {
    EmergencyScreeningPhase: _on_screening,
    ComplaintPhase: _on_complaint,
    TimelinePhase: _on_timeline,
    DemographicsPhase: _on_demographics,
}


def assemble_encounter(
    selection_set: SelectionSet,
    phases: Iterable[Any],
    findings: Sequence[RedFlagFinding] = (),
    *,
    correlation_id: Optional[str] = None,
    triage_category: Optional[str] = None,
    priority_score: Optional[int] = None,
    registry: Optional[BodyZoneRegistry] = None,
    rule_set: Optional[ClinicalRuleSet] = None,
) -> EncounterBundle:
    """Fold validated selections, intake phases and body-map findings into a bundle.

    Phases may be model instances or raw dicts tagged with ``phase``; a later
    phase of the same kind replaces an earlier one. Any value that is not an
    intake phase raises :class:`TypeError`.
    """

    registry = registry if registry is not None else get_registry()
    draft = _Draft()
    for phase in phases:
        if isinstance(phase, Mapping):
            phase = parse_phase(phase)
        handler = _HANDLERS.get(type(phase))
        if handler is None:
            raise TypeError(f"Unsupported intake phase: {type(phase).__name__}")
        handler(draft, phase)

    snapshots = []
    for selection in selection_set.selections:
        zone = registry.get_zone(selection.zone_id)
        snapshots.append(
            SelectionSnapshot(
                zone_id=zone.id,
                category=zone.category,
                zone_priority=zone.priority,
                intensity=selection.intensity,
                onset=selection.onset,
                radiation=tuple(selection.radiation),
            )
        )

    onset = draft.onset
    if onset is None and snapshots:
        onset = "sudden" if any(item.onset == "sudden" for item in snapshots) else "gradual"

    chief_complaint = str(selection_set.primary_complaint or "").strip() or draft.complaint_text
    complaint_type = draft.complaint_type
    inferred = False
    if complaint_type is None:
        complaint_type = map_complaint_type(
            " ".join(filter(None, (chief_complaint, draft.complaint_text))), default=None
        )
        inferred = complaint_type is not None

    bundle = EncounterBundle(
        correlation_id=correlation_id or uuid.uuid4().hex,
        chief_complaint=chief_complaint,
        complaint_type=complaint_type,
        complaint_type_inferred=inferred,
        screening=summarize_screening(draft.screening),
        selections=tuple(snapshots),
        red_flags=tuple(DetectedRedFlag.from_finding(finding) for finding in findings),
        symptom_severity=draft.severity,
        onset=onset,
        worsening=draft.worsening,
        associated_symptoms=tuple(draft.associated),
        age=draft.age,
        gender=draft.gender,
        preferred_language=draft.preferred_language,
        triage_category=triage_category,
        priority_score=priority_score,
    )

    rule_flags = evaluate_clinical_rules(bundle, rule_set)
    if rule_flags:
        known = {flag.id for flag in bundle.red_flags}
        extra = tuple(flag for flag in rule_flags if flag.id not in known)
        bundle = bundle.model_copy(update={"red_flags": bundle.red_flags + extra})
    logger.info(
        "Encounter assembled: correlation_id=%s screening=%s flags=%d",
        bundle.correlation_id,
        bundle.screening.status,
        len(bundle.red_flags),
    )
    return bundle
