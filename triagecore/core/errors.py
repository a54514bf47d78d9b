"""Error taxonomy for the triage decision core.

Every error carries a machine code plus a bilingual message so the calling
UI can surface it without its own translation table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

__all__ = [
    "TriageCoreError",
    "ValidationError",
    "InvalidIntensityError",
    "InvalidOnsetError",
    "InvalidTimestampError",
    "InvalidZoneIdError",
    "NonSelectableZoneError",
    "MissingDataError",
    "SelectionRequiredError",
    "ComplaintRequiredError",
    "UnknownZoneError",
    "RegistryIntegrityError",
    "RosterUnavailableError",
    "RuleEvaluationError",
    "AuditWriteFailure",
]


class TriageCoreError(Exception):
    """Base class for every error raised by the decision core."""

    code = "TRIAGE_CORE_ERROR"

    def __init__(
        self,
        messages: Mapping[str, str],
        *,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(messages.get("en", self.code))
        self.messages = dict(messages)
        self.field = field
        self.details = details or {}

    def message(self, locale: str = "en") -> str:
        return self.messages.get(locale) or self.messages.get("en", self.code)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "field": self.field,
            "messages": dict(self.messages),
            "details": dict(self.details),
        }


class ValidationError(TriageCoreError):
    """Malformed selection or selection set; the user can correct it."""

    code = "VALIDATION_ERROR"


class InvalidIntensityError(ValidationError):
    code = "INVALID_INTENSITY"

    def __init__(self, value: Any, *, field: str = "intensity") -> None:
        super().__init__(
            {
                "en": "Pain level must be a whole number between 1 and 10",
                "ur": "درد کی سطح 1 سے 10 کے درمیان ہونی چاہیے",
            },
            field=field,
            details={"value": repr(value)},
        )


class InvalidOnsetError(ValidationError):
    code = "INVALID_ONSET"

    def __init__(self, value: Any, *, field: str = "onset") -> None:
        super().__init__(
            {
                "en": 'Onset must be either "sudden" or "gradual"',
                "ur": 'آغاز "اچانک" یا "بتدریج" ہونا چاہیے',
            },
            field=field,
            details={"value": repr(value)},
        )


class InvalidTimestampError(ValidationError):
    code = "INVALID_TIMESTAMP"

    def __init__(self, value: Any, *, field: str = "timestamp") -> None:
        super().__init__(
            {"en": "Invalid timestamp", "ur": "غلط ٹائم سٹیمپ"},
            field=field,
            details={"value": repr(value)},
        )


class InvalidZoneIdError(ValidationError):
    code = "INVALID_ZONE_ID"

    def __init__(self, zone_id: Any, *, field: str = "zone_id") -> None:
        super().__init__(
            {
                "en": f'Zone "{zone_id}" is not recognized',
                "ur": f'زون "{zone_id}" تسلیم شدہ نہیں ہے',
            },
            field=field,
            details={"zone_id": zone_id},
        )


class NonSelectableZoneError(InvalidZoneIdError):
    code = "NON_SELECTABLE_ZONE"

    def __init__(self, zone_id: str, *, field: str = "zone_id") -> None:
        super().__init__(zone_id, field=field)
        self.messages = {
            "en": f'Zone "{zone_id}" is a region, please choose a more specific area',
            "ur": f'زون "{zone_id}" ایک بڑا حصہ ہے، براہ کرم زیادہ مخصوص جگہ منتخب کریں',
        }
        self.args = (self.messages["en"],)


class MissingDataError(TriageCoreError):
    """Required intake data is absent; no default is substituted."""

    code = "MISSING_DATA"


class SelectionRequiredError(MissingDataError):
    code = "BODY_SELECTION_REQUIRED"

    def __init__(self) -> None:
        super().__init__(
            {
                "en": "Please indicate where you are experiencing symptoms",
                "ur": "براہ کرم بتائیں کہ آپ کہاں علامات محسوس کر رہے ہیں",
            },
            field="selections",
        )


class ComplaintRequiredError(MissingDataError):
    code = "COMPLAINT_REQUIRED"

    def __init__(self) -> None:
        super().__init__(
            {
                "en": "Please describe your main concern",
                "ur": "براہ کرم اپنی اہم تشویش بیان کریں",
            },
            field="primary_complaint",
        )


class UnknownZoneError(TriageCoreError):
    """A zone id that does not exist in the registry (data corruption)."""

    code = "UNKNOWN_ZONE"

    def __init__(self, zone_id: Any) -> None:
        super().__init__(
            {
                "en": f'Unknown body zone "{zone_id}"',
                "ur": f'نامعلوم جسمانی زون "{zone_id}"',
            },
            field="zone_id",
            details={"zone_id": zone_id},
        )
        self.zone_id = zone_id


class RegistryIntegrityError(TriageCoreError):
    """The zone definition pack violates a structural invariant."""

    code = "REGISTRY_INTEGRITY"

    def __init__(self, problem: str, **details: Any) -> None:
        super().__init__(
            {"en": f"Body zone registry is invalid: {problem}", "ur": f"جسمانی زون رجسٹری غلط ہے: {problem}"},
            details=details,
        )


class RosterUnavailableError(TriageCoreError):
    """The provider roster could not be fetched or is too old to trust."""

    code = "ROSTER_UNAVAILABLE"

    def __init__(self, reason: str, **details: Any) -> None:
        super().__init__(
            {
                "en": "Doctor list is currently unavailable, no recommendation can be made",
                "ur": "ڈاکٹروں کی فہرست اس وقت دستیاب نہیں، کوئی سفارش نہیں کی جا سکتی",
            },
            details={"reason": reason, **details},
        )
        self.reason = reason


class RuleEvaluationError(TriageCoreError):
    """A clinical rule expression uses unsupported syntax or names."""

    code = "RULE_EVALUATION"

    def __init__(self, problem: str) -> None:
        super().__init__({"en": problem, "ur": problem})


@dataclass(frozen=True)
class AuditWriteFailure:
    """Record of an audit entry that could not be written.

    Never raised: the decision it describes stands, callers alert on it.
    """

    correlation_id: str
    action: str
    error: str
    occurred_at: datetime
    metadata: Dict[str, Any] = field(default_factory=dict)

    code = "AUDIT_WRITE_FAILURE"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.code,
            "correlation_id": self.correlation_id,
            "action": self.action,
            "detail": self.error,
            "occurred_at": self.occurred_at.isoformat(),
        }
