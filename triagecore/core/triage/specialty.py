"""Ordered, declarative specialty routing."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Iterable, Mapping, Optional, Tuple

from ...content import load_pack
from ...schemas.intake import EncounterBundle
from ..config import get_settings
from ..normalizer.text import matches_keyword

__all__ = ["SpecialtyRule", "SpecialtyRouter", "get_router"]


@dataclass(frozen=True)
class SpecialtyRule:
    id: str
    specialty: str
    complaint_types: Tuple[str, ...] = ()
    keywords: Tuple[str, ...] = ()
    zone_categories: Tuple[str, ...] = ()
    pediatric_age: bool = False

    def matches(self, bundle: EncounterBundle, pediatric_age_limit: int) -> bool:
        if not bundle.complaint_type_inferred and bundle.complaint_type in self.complaint_types:
            return True
        if self.keywords and any(matches_keyword(bundle.chief_complaint, word) for word in self.keywords):
            return True
        if self.zone_categories and any(cat in self.zone_categories for cat in bundle.zone_categories):
            return True
        if self.pediatric_age and bundle.age is not None and bundle.age < pediatric_age_limit:
            return True
        return False


class SpecialtyRouter:
    """First matching rule wins; no match falls back to the default specialty."""

    def __init__(
        self,
        rules: Iterable[SpecialtyRule],
        default: str = "general_medicine",
        adjacent: Optional[Mapping[str, Iterable[str]]] = None,
        labels: Optional[Mapping[str, Mapping[str, str]]] = None,
    ):
        self.rules: Tuple[SpecialtyRule, ...] = tuple(rules)
        self.default = default
        self.adjacent = {key: tuple(value) for key, value in (adjacent or {}).items()}
        self.labels = {key: dict(value) for key, value in (labels or {}).items()}

    @classmethod
    def from_pack(cls, pack_id: str = "specialty_rules") -> "SpecialtyRouter":
        pack = load_pack(pack_id)
        rules = [
            SpecialtyRule(
                id=record["id"],
                specialty=record["specialty"],
                complaint_types=tuple(record.get("complaint_types", ()) or ()),
                keywords=tuple(record.get("keywords", ()) or ()),
                zone_categories=tuple(record.get("zone_categories", ()) or ()),
                pediatric_age=bool(record.get("pediatric_age", False)),
            )
            for record in pack.get("rules", []) or []
        ]
        return cls(
            rules,
            default=pack.get("default", "general_medicine"),
            adjacent=pack.get("adjacent", {}),
            labels=pack.get("labels", {}),
        )

    def route(self, bundle: EncounterBundle, pediatric_age_limit: Optional[int] = None) -> Tuple[str, str]:
        """Return ``(specialty, rule_id)`` for *bundle*."""

        limit = pediatric_age_limit if pediatric_age_limit is not None else get_settings().pediatric_age_limit
        for rule in self.rules:
            if rule.matches(bundle, limit):
                return rule.specialty, rule.id
        return self.default, "default"

    def is_adjacent(self, specialty: str, other: str) -> bool:
        return other in self.adjacent.get(specialty, ())

    def label(self, specialty: str, locale: str = "en") -> str:
        names = self.labels.get(specialty, {})
        return names.get(locale) or names.get("en") or specialty


@lru_cache(maxsize=1)
def get_router() -> SpecialtyRouter:
    return SpecialtyRouter.from_pack()
