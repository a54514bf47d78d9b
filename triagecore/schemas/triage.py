"""Schemas for triage classification output."""

from __future__ import annotations

from typing import Literal, Optional, Tuple

from pydantic import Field

from .common import StrictModel
from .intake import DetectedRedFlag

TriageCategory = Literal["IMMEDIATE", "URGENT", "SEMI_URGENT", "NON_URGENT", "INFORMATIONAL"]
Urgency = Literal["emergency", "urgent", "semi-urgent", "routine"]
Specialty = Literal[
    "general_medicine",
    "pediatrics",
    "gynecology",
    "cardiology",
    "pulmonology",
    "dermatology",
    "orthopedics",
    "ent",
    "psychiatry",
    "neurology",
    "gastroenterology",
    "urology",
]
ConsultationMode = Literal["ONLINE", "PHYSICAL"]
TriageAction = Literal["call_1122", "go_to_er", "urgent_visit"]

URGENCY_RANK = {"routine": 0, "semi-urgent": 1, "urgent": 2, "emergency": 3}


class TriageResult(StrictModel):
    category: TriageCategory
    urgency: Urgency
    priority_score: int = Field(ge=0, le=100)
    recommended_specialty: Specialty
    red_flags: Tuple[DetectedRedFlag, ...] = ()
    emergency_action: Optional[TriageAction] = None
    is_emergency: bool = False
    override_reasons: Tuple[str, ...] = ()
    matched_specialty_rule: str = "default"


class AppointmentUrgencyContext(StrictModel):
    urgency_level: Urgency
    specialty: Specialty
    specialty_label_en: str
    specialty_label_ur: str
    is_emergency_case: bool
    emergency_action: Optional[TriageAction] = None
    wait_time_en: str
    wait_time_ur: str
    blocked_modes: Tuple[ConsultationMode, ...] = ()
    red_flag_warnings: Tuple[str, ...] = ()
    priority_score: int = Field(ge=0, le=100)
