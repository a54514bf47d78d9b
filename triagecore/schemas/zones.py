"""Schemas describing the anatomical body zone knowledge base."""

from __future__ import annotations

from typing import Literal, Optional, Tuple

from pydantic import Field

from .common import StrictModel

ZoneCategory = Literal[
    "head_neck",
    "chest",
    "abdomen",
    "back",
    "pelvis",
    "upper_extremity",
    "lower_extremity",
]
BodySystem = Literal[
    "cardiovascular",
    "respiratory",
    "gastrointestinal",
    "neurological",
    "musculoskeletal",
    "genitourinary",
    "lymphatic",
    "endocrine",
    "integumentary",
    "reproductive",
]
ZoneRedFlagSeverity = Literal["immediate", "urgent", "monitor"]
ZoneRelationship = Literal["radiation", "referred", "adjacent", "dermatomal"]


class ZoneRedFlag(StrictModel):
    symptom: str
    symptom_ur: str = ""
    severity: ZoneRedFlagSeverity
    condition: str
    action: str = ""


class RelatedZone(StrictModel):
    zone_id: str
    relationship: ZoneRelationship


class ClinicalMetadata(StrictModel):
    common_diagnoses: Tuple[str, ...] = ()
    red_flags: Tuple[ZoneRedFlag, ...] = ()
    coding_refs: Tuple[str, ...] = ()
    related_zones: Tuple[RelatedZone, ...] = ()


class BodyZoneDefinition(StrictModel):
    id: str = Field(pattern=r"^[a-z_]+(\.[a-z0-9_]+)*$")
    label_en: str
    label_ur: str
    clinical_term: str = ""
    aliases: Tuple[str, ...] = ()
    category: ZoneCategory
    systems: Tuple[BodySystem, ...] = ()
    priority: int = Field(default=5, ge=1, le=10)
    terminal: bool = False
    clinical: ClinicalMetadata = ClinicalMetadata()
    parent_id: Optional[str] = None
    child_ids: Tuple[str, ...] = ()

    def label(self, locale: str = "en") -> str:
        return self.label_ur if locale == "ur" and self.label_ur else self.label_en

    @property
    def has_red_flags(self) -> bool:
        return bool(self.clinical.red_flags)
