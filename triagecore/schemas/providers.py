"""Provider roster and match-result schemas."""

from __future__ import annotations

from datetime import datetime, time
from typing import Literal, Optional, Tuple

from pydantic import Field, model_validator

from .common import StrictModel
from .triage import ConsultationMode, Specialty

AgeGroup = Literal["ADULT", "PEDIATRIC", "ALL"]
GenderCare = Literal["MALE", "FEMALE", "ALL"]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class TimeSlot(StrictModel):
    day: Weekday
    start: time
    end: time

    @model_validator(mode="after")
    def _check_order(self) -> "TimeSlot":
        if self.end <= self.start:
            raise ValueError("slot end must be after start")
        return self


class GeoPoint(StrictModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class Clinic(StrictModel):
    name: str
    city: str = ""
    location: Optional[GeoPoint] = None
    schedule: Tuple[TimeSlot, ...] = ()


class ProviderProfile(StrictModel):
    id: str
    full_name: str
    active: bool = True
    verified: bool = False
    specialties: Tuple[Specialty, ...] = ()
    consultation_modes: Tuple[ConsultationMode, ...] = ()
    age_groups: Tuple[AgeGroup, ...] = ("ALL",)
    gender_care: Optional[GenderCare] = None
    languages: Tuple[str, ...] = ()
    experience_years: int = Field(default=0, ge=0)
    rating: float = Field(default=0.0, ge=0, le=5)
    clinics: Tuple[Clinic, ...] = ()
    online_schedule: Tuple[TimeSlot, ...] = ()

    def slots_for(self, mode: str) -> Tuple[TimeSlot, ...]:
        if mode == "ONLINE":
            return self.online_schedule
        return tuple(slot for clinic in self.clinics for slot in clinic.schedule)


class ProviderRoster(StrictModel):
    """Read-only roster snapshot handed to the matcher."""

    providers: Tuple[ProviderProfile, ...] = ()
    fetched_at: datetime
    source: str = "snapshot"


class ScoreBreakdown(StrictModel):
    specialty_fit: float = 0.0
    availability: float = 0.0
    experience: float = 0.0
    language: float = 0.0
    distance: float = 0.0
    rating: float = 0.0


class ScoredProvider(StrictModel):
    provider: ProviderProfile
    mode: ConsultationMode
    score: float = Field(ge=0, le=100)
    score_breakdown: ScoreBreakdown


class EligibilityDecision(StrictModel):
    provider_id: str
    mode: ConsultationMode
    eligible: bool
    reasons: Tuple[str, ...] = ()


class SafeModes(StrictModel):
    allowed: Tuple[ConsultationMode, ...]
    blocked: Tuple[ConsultationMode, ...] = ()
    primary: Optional[ConsultationMode] = None
    reasons: Tuple[str, ...] = ()


class MatchCriteria(StrictModel):
    """Patient-side inputs for eligibility and ranking."""

    specialty: Specialty
    age: Optional[int] = Field(default=None, ge=0, le=130)
    gender: Optional[Literal["male", "female", "other"]] = None
    preferred_language: Optional[str] = None
    location: Optional[GeoPoint] = None
