"""Patient intake data: body-map selections and typed intake phases."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, Literal, Mapping, Optional, Tuple, Union

from pydantic import Field

from .common import BilingualText, StrictModel

Onset = Literal["sudden", "gradual"]
YesNo = Literal["YES", "NO", "INVALID"]
CheckpointId = Literal[
    "chest_pain_now",
    "breathing_difficulty_now",
    "loss_of_consciousness",
    "one_sided_weakness",
    "uncontrolled_bleeding",
    "self_harm",
]
EmergencyAction = Literal["call_1122", "go_to_er", "urgent_visit", "continue"]
ComplaintType = Literal[
    "chest_pain",
    "neuro_deficit",
    "shortness_of_breath",
    "fever",
    "headache",
    "abdominal_pain",
    "back_pain",
    "joint_pain",
    "injury",
    "skin_rash",
    "ear_nose_throat",
    "cough_cold",
    "urinary_symptoms",
    "womens_health",
    "anxiety_depression",
    "other",
]
AssociatedSymptom = Literal[
    "fever",
    "neck_stiffness",
    "breathing_difficulty",
    "confusion",
    "nausea",
    "sweating",
    "numbness",
    "speech_difficulty",
    "vision_changes",
    "heavy_bleeding",
]
FlagSeverity = Literal["CRITICAL", "HIGH", "MODERATE"]
FlagTrigger = Literal["severe_intensity", "sudden_onset", "multi_radiation"]
FlagSource = Literal["body_map", "clinical_rule", "intake"]
Gender = Literal["male", "female", "other"]
ScreeningStatus = Literal["positive", "negative", "incomplete"]

CHECKPOINTS: Tuple[str, ...] = (
    "chest_pain_now",
    "breathing_difficulty_now",
    "loss_of_consciousness",
    "one_sided_weakness",
    "uncontrolled_bleeding",
    "self_harm",
)


def _parse_timestamp(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    return value


@dataclass(frozen=True)
class BodySelection:
    """One patient-reported symptom location.

    Values are stored as given; the selection validator decides whether they
    are acceptable.
    """

    zone_id: Any
    intensity: Any
    onset: Any
    duration: str = ""
    character: Tuple[str, ...] = ()
    radiation: Tuple[str, ...] = ()
    timestamp: Any = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        object.__setattr__(self, "character", tuple(self.character or ()))
        object.__setattr__(self, "radiation", tuple(self.radiation or ()))

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BodySelection":
        kwargs: Dict[str, Any] = {
            "zone_id": payload.get("zone_id"),
            "intensity": payload.get("intensity"),
            "onset": payload.get("onset"),
            "duration": payload.get("duration") or "",
            "character": payload.get("character") or (),
            "radiation": payload.get("radiation") or (),
        }
        if "timestamp" in payload:
            kwargs["timestamp"] = _parse_timestamp(payload["timestamp"])
        return cls(**kwargs)

    def corrected(self, **changes: Any) -> "BodySelection":
        """Return a copy with *changes* applied; the original is untouched."""

        return dataclasses.replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        timestamp = self.timestamp.isoformat() if isinstance(self.timestamp, datetime) else self.timestamp
        return {
            "zone_id": self.zone_id,
            "intensity": self.intensity,
            "onset": self.onset,
            "duration": self.duration,
            "character": list(self.character),
            "radiation": list(self.radiation),
            "timestamp": timestamp,
        }


@dataclass(frozen=True)
class SelectionSet:
    selections: Tuple[BodySelection, ...] = ()
    primary_complaint: str = ""
    laterality: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "selections", tuple(self.selections or ()))

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "SelectionSet":
        return cls(
            selections=tuple(BodySelection.from_dict(item) for item in payload.get("selections") or ()),
            primary_complaint=payload.get("primary_complaint") or "",
            laterality=payload.get("laterality"),
        )

    @property
    def is_complete(self) -> bool:
        return bool(self.selections) and bool(str(self.primary_complaint or "").strip())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selections": [item.to_dict() for item in self.selections],
            "primary_complaint": self.primary_complaint,
            "laterality": self.laterality,
        }


class ValidationWarning(StrictModel):
    zone_id: str
    code: str
    message: BilingualText


class SelectionSetReport(StrictModel):
    """Outcome of a successful selection-set validation."""

    selection_count: int
    zone_ids: Tuple[str, ...]
    warnings: Tuple[ValidationWarning, ...] = ()


class RedFlagFinding(StrictModel):
    zone_id: str
    trigger: FlagTrigger
    severity: FlagSeverity
    message: BilingualText

    def text(self, locale: str = "en") -> str:
        return self.message.get(locale)


class DetectedRedFlag(StrictModel):
    id: str
    description: str
    description_ur: str = ""
    severity: FlagSeverity
    source: FlagSource = "body_map"

    @classmethod
    def from_finding(cls, finding: RedFlagFinding) -> "DetectedRedFlag":
        return cls(
            id=f"{finding.zone_id}:{finding.trigger}",
            description=finding.message.en,
            description_ur=finding.message.ur,
            severity=finding.severity,
            source="body_map",
        )


# --- typed intake phases -------------------------------------------------------


class EmergencyScreeningPhase(StrictModel):
    phase: Literal["emergency_screening"] = "emergency_screening"
    answers: Dict[CheckpointId, YesNo] = Field(default_factory=dict)


class ComplaintPhase(StrictModel):
    phase: Literal["complaint"] = "complaint"
    complaint_type: Optional[ComplaintType] = None
    text: str = ""


class TimelinePhase(StrictModel):
    phase: Literal["timeline"] = "timeline"
    severity: Optional[int] = Field(default=None, ge=0, le=10)
    onset: Optional[Literal["sudden", "gradual", "chronic"]] = None
    worsening: Optional[bool] = None
    associated_symptoms: Tuple[AssociatedSymptom, ...] = ()


class DemographicsPhase(StrictModel):
    phase: Literal["demographics"] = "demographics"
    age: Optional[int] = Field(default=None, ge=0, le=130)
    gender: Optional[Gender] = None
    preferred_language: Optional[str] = None


IntakePhase = Annotated[
    Union[EmergencyScreeningPhase, ComplaintPhase, TimelinePhase, DemographicsPhase],
    Field(discriminator="phase"),
]


class ScreeningSummary(StrictModel):
    status: ScreeningStatus = "incomplete"
    positive_checkpoints: Tuple[CheckpointId, ...] = ()
    invalid_checkpoints: Tuple[CheckpointId, ...] = ()
    recommended_action: EmergencyAction = "continue"
    protocols: Tuple[str, ...] = ()

    @property
    def is_positive(self) -> bool:
        return self.status == "positive"

    @property
    def is_ambiguous(self) -> bool:
        return self.status == "incomplete"


class SelectionSnapshot(StrictModel):
    zone_id: str
    category: str
    zone_priority: int
    intensity: int
    onset: Onset
    radiation: Tuple[str, ...] = ()


class EncounterBundle(StrictModel):
    """Everything the classifier needs, assembled from validated intake."""

    correlation_id: str
    chief_complaint: str
    complaint_type: Optional[ComplaintType] = None
    # True when complaint_type was read off free text rather than chosen at intake.
    complaint_type_inferred: bool = False
    screening: ScreeningSummary = ScreeningSummary()
    selections: Tuple[SelectionSnapshot, ...] = ()
    red_flags: Tuple[DetectedRedFlag, ...] = ()
    symptom_severity: Optional[int] = None
    onset: Optional[Literal["sudden", "gradual", "chronic"]] = None
    worsening: bool = False
    associated_symptoms: Tuple[AssociatedSymptom, ...] = ()
    age: Optional[int] = None
    gender: Optional[Gender] = None
    preferred_language: Optional[str] = None
    triage_category: Optional[str] = None
    priority_score: Optional[int] = Field(default=None, ge=0, le=100)

    @property
    def max_intensity(self) -> int:
        values = [item.intensity for item in self.selections]
        if self.symptom_severity is not None:
            values.append(self.symptom_severity)
        return max(values, default=0)

    @property
    def zone_categories(self) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(item.category for item in self.selections))
