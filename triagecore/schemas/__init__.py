"""Data contracts shared across the triage core."""

from .audit import AuditAction, AuditLogEntry
from .common import BilingualText, StrictModel
from .intake import (
    BodySelection,
    ComplaintPhase,
    DemographicsPhase,
    DetectedRedFlag,
    EmergencyScreeningPhase,
    EncounterBundle,
    IntakePhase,
    RedFlagFinding,
    ScreeningSummary,
    SelectionSet,
    SelectionSetReport,
    TimelinePhase,
)
from .providers import (
    Clinic,
    EligibilityDecision,
    GeoPoint,
    MatchCriteria,
    ProviderProfile,
    ProviderRoster,
    SafeModes,
    ScoreBreakdown,
    ScoredProvider,
    TimeSlot,
)
from .triage import AppointmentUrgencyContext, TriageResult
from .zones import BodyZoneDefinition

__all__ = [
    "AppointmentUrgencyContext",
    "AuditAction",
    "AuditLogEntry",
    "BilingualText",
    "BodySelection",
    "BodyZoneDefinition",
    "Clinic",
    "ComplaintPhase",
    "DemographicsPhase",
    "DetectedRedFlag",
    "EligibilityDecision",
    "EmergencyScreeningPhase",
    "EncounterBundle",
    "GeoPoint",
    "IntakePhase",
    "MatchCriteria",
    "ProviderProfile",
    "ProviderRoster",
    "RedFlagFinding",
    "SafeModes",
    "ScoreBreakdown",
    "ScoredProvider",
    "ScreeningSummary",
    "SelectionSet",
    "SelectionSetReport",
    "StrictModel",
    "TimeSlot",
    "TimelinePhase",
    "TriageResult",
]
