"""Validation and scoring of patient body-map selections."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from ...schemas.common import BilingualText
from ...schemas.intake import (
    BodySelection,
    RedFlagFinding,
    SelectionSet,
    SelectionSetReport,
    ValidationWarning,
)
from ..errors import (
    ComplaintRequiredError,
    InvalidIntensityError,
    InvalidOnsetError,
    InvalidTimestampError,
    InvalidZoneIdError,
    NonSelectableZoneError,
    SelectionRequiredError,
    TriageCoreError,
)
from ..registry.zones import BodyZoneRegistry, get_registry

__all__ = [
    "validate_selection",
    "validate_selection_set",
    "collect_errors",
    "requires_emergency_attention",
    "calculate_triage_score",
    "check_red_flags",
]

logger = logging.getLogger(__name__)

VALID_ONSETS = ("sudden", "gradual")
EMERGENCY_ZONE_PRIORITY = 8
EMERGENCY_INTENSITY = 7
SUDDEN_ONSET_FACTOR = 1.2

_SEVERITY_RANK = {"monitor": 0, "urgent": 1, "immediate": 2}
_FINDING_SEVERITY = {"immediate": "CRITICAL", "urgent": "HIGH", "monitor": "MODERATE"}


def _registry(registry: Optional[BodyZoneRegistry]) -> BodyZoneRegistry:
    return registry if registry is not None else get_registry()


def validate_selection(selection: BodySelection, registry: Optional[BodyZoneRegistry] = None) -> None:
    """Raise the first problem found with *selection*, checked in a fixed order."""

    intensity = selection.intensity
    if isinstance(intensity, bool) or not isinstance(intensity, int) or not 1 <= intensity <= 10:
        raise InvalidIntensityError(intensity)
    if selection.onset not in VALID_ONSETS:
        raise InvalidOnsetError(selection.onset)
    if not isinstance(selection.timestamp, datetime):
        raise InvalidTimestampError(selection.timestamp)
    registry = _registry(registry)
    zone = registry.find_zone(selection.zone_id)
    if zone is None:
        raise InvalidZoneIdError(selection.zone_id)
    if not zone.terminal:
        raise NonSelectableZoneError(zone.id)
    for target in selection.radiation:
        if registry.find_zone(target) is None:
            raise InvalidZoneIdError(target, field="radiation")


def validate_selection_set(
    selection_set: SelectionSet, registry: Optional[BodyZoneRegistry] = None
) -> SelectionSetReport:
    """Validate the whole set, raising the first error.

    The returned report depends only on the input, so repeated calls
    serialise identically.
    """

    registry = _registry(registry)
    if not selection_set.selections:
        raise SelectionRequiredError()
    if not str(selection_set.primary_complaint or "").strip():
        raise ComplaintRequiredError()

    warnings: List[ValidationWarning] = []
    zone_ids: List[str] = []
    for selection in selection_set.selections:
        validate_selection(selection, registry)
        zone = registry.get_zone(selection.zone_id)
        zone_ids.append(zone.id)
        if selection.intensity >= 8 and not selection.duration.strip():
            warnings.append(
                ValidationWarning(
                    zone_id=zone.id,
                    code="DURATION_MISSING",
                    message=BilingualText(
                        en="Please specify how long you have had this pain",
                        ur="براہ کرم بتائیں کہ یہ درد کب سے ہے",
                    ),
                )
            )
        if zone.priority >= EMERGENCY_ZONE_PRIORITY and not selection.character:
            warnings.append(
                ValidationWarning(
                    zone_id=zone.id,
                    code="CHARACTER_MISSING",
                    message=BilingualText(
                        en="Please describe the type of pain (sharp, dull, burning...)",
                        ur="براہ کرم درد کی قسم بیان کریں (تیز، ہلکا، جلن...)",
                    ),
                )
            )
    return SelectionSetReport(
        selection_count=len(selection_set.selections),
        zone_ids=tuple(zone_ids),
        warnings=tuple(warnings),
    )


def collect_errors(
    selection_set: SelectionSet, registry: Optional[BodyZoneRegistry] = None
) -> Tuple[TriageCoreError, ...]:
    """Every validation problem in the set, for display next to the form."""

    registry = _registry(registry)
    errors: List[TriageCoreError] = []
    if not selection_set.selections:
        errors.append(SelectionRequiredError())
    if not str(selection_set.primary_complaint or "").strip():
        errors.append(ComplaintRequiredError())
    for index, selection in enumerate(selection_set.selections):
        try:
            validate_selection(selection, registry)
        except TriageCoreError as exc:
            exc.details.setdefault("index", index)
            errors.append(exc)
    return tuple(errors)


def _resolved(selection_set: SelectionSet, registry: BodyZoneRegistry):
    for selection in selection_set.selections:
        yield selection, registry.get_zone(selection.zone_id)


def requires_emergency_attention(
    selection_set: SelectionSet, registry: Optional[BodyZoneRegistry] = None
) -> bool:
    registry = _registry(registry)
    return any(
        zone.priority >= EMERGENCY_ZONE_PRIORITY and selection.intensity >= EMERGENCY_INTENSITY
        for selection, zone in _resolved(selection_set, registry)
    )


def calculate_triage_score(
    selection_set: SelectionSet, registry: Optional[BodyZoneRegistry] = None
) -> float:
    """Capped average of per-selection severity, in [0, 1].

    Each selection contributes ``priority/10 * intensity/10``, raised by 20%
    for a sudden onset.
    """

    registry = _registry(registry)
    if not selection_set.selections:
        return 0.0
    total = 0.0
    for selection, zone in _resolved(selection_set, registry):
        weight = (zone.priority / 10) * (selection.intensity / 10)
        if selection.onset == "sudden":
            weight *= SUDDEN_ONSET_FACTOR
        total += weight
    return min(total / len(selection_set.selections), 1.0)


def check_red_flags(
    selection_set: SelectionSet, registry: Optional[BodyZoneRegistry] = None
) -> Tuple[RedFlagFinding, ...]:
    """Findings for selections in zones that carry red-flag metadata.

    Findings follow selection order and are not deduplicated. Messages carry
    both languages; use ``finding.text(locale)`` to pick one.
    """

    registry = _registry(registry)
    findings: List[RedFlagFinding] = []
    for selection, zone in _resolved(selection_set, registry):
        if not zone.has_red_flags:
            continue
        worst = max(zone.clinical.red_flags, key=lambda flag: _SEVERITY_RANK[flag.severity])
        severity = _FINDING_SEVERITY[worst.severity]
        label_en = zone.label("en")
        label_ur = zone.label("ur")
        if selection.intensity >= EMERGENCY_INTENSITY:
            findings.append(
                RedFlagFinding(
                    zone_id=zone.id,
                    trigger="severe_intensity",
                    severity=severity,
                    message=BilingualText(
                        en=f"Severe pain ({selection.intensity}/10) in {label_en}",
                        ur=f"{label_ur} میں شدید درد ({selection.intensity}/10)",
                    ),
                )
            )
        if selection.onset == "sudden" and zone.priority >= EMERGENCY_ZONE_PRIORITY:
            findings.append(
                RedFlagFinding(
                    zone_id=zone.id,
                    trigger="sudden_onset",
                    severity=severity,
                    message=BilingualText(
                        en=f"Sudden onset pain in {label_en}",
                        ur=f"{label_ur} میں اچانک درد",
                    ),
                )
            )
        spread = {target for target in selection.radiation if registry.find_zone(target) is not None}
        if len(spread) >= 2 and zone.priority >= EMERGENCY_ZONE_PRIORITY:
            findings.append(
                RedFlagFinding(
                    zone_id=zone.id,
                    trigger="multi_radiation",
                    severity=severity,
                    message=BilingualText(
                        en=f"Pain from {label_en} spreading to several areas",
                        ur=f"{label_ur} سے درد کئی جگہوں تک پھیل رہا ہے",
                    ),
                )
            )
    if findings:
        logger.info("Body-map red flags: %s", ", ".join(f"{f.zone_id}:{f.trigger}" for f in findings))
    return tuple(findings)
