"""Body zone registry: an immutable id -> definition arena.

Zones are declared as a flat list with explicit parent ids. All links are
resolved and checked once, when the registry is built, so traversal never
meets a dangling reference.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from ...content import load_pack
from ...schemas.zones import BodyZoneDefinition
from ..errors import RegistryIntegrityError, UnknownZoneError
from ..normalizer.text import normalize_text

__all__ = ["BodyZoneRegistry", "get_registry"]

logger = logging.getLogger(__name__)


class BodyZoneRegistry:
    """Read-only lookup over validated body zone definitions."""

    def __init__(self, zones: Mapping[str, BodyZoneDefinition]):
        self._zones: Mapping[str, BodyZoneDefinition] = MappingProxyType(dict(zones))
        self._terminal: Tuple[BodyZoneDefinition, ...] = tuple(
            zone for zone in self._zones.values() if zone.terminal
        )

    # -- construction ------------------------------------------------------

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "BodyZoneRegistry":
        raw: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
        for record in records:
            payload = dict(record)
            zone_id = payload.get("id")
            if not isinstance(zone_id, str) or not zone_id:
                raise RegistryIntegrityError("zone without id", record=repr(record))
            if zone_id in raw:
                raise RegistryIntegrityError(f"duplicate zone id {zone_id!r}", zone_id=zone_id)
            payload["parent_id"] = payload.pop("parent", None)
            payload.pop("child_ids", None)
            raw[zone_id] = payload

        children: Dict[str, List[str]] = {zone_id: [] for zone_id in raw}
        for zone_id, payload in raw.items():
            parent_id = payload["parent_id"]
            if parent_id is None:
                continue
            if parent_id not in raw:
                raise RegistryIntegrityError(
                    f"zone {zone_id!r} references missing parent {parent_id!r}",
                    zone_id=zone_id,
                    parent_id=parent_id,
                )
            children[parent_id].append(zone_id)

        _check_acyclic(raw)

        zones: Dict[str, BodyZoneDefinition] = {}
        for zone_id, payload in raw.items():
            try:
                zones[zone_id] = BodyZoneDefinition(**payload, child_ids=tuple(children[zone_id]))
            except PydanticValidationError as exc:
                raise RegistryIntegrityError(f"zone {zone_id!r} is malformed: {exc}", zone_id=zone_id) from exc

        for zone in zones.values():
            if zone.terminal and zone.child_ids:
                raise RegistryIntegrityError(f"terminal zone {zone.id!r} has children", zone_id=zone.id)
            for related in zone.clinical.related_zones:
                if related.zone_id not in zones:
                    raise RegistryIntegrityError(
                        f"zone {zone.id!r} relates to missing zone {related.zone_id!r}",
                        zone_id=zone.id,
                        related_zone_id=related.zone_id,
                    )
        return cls(zones)

    @classmethod
    def from_pack(cls, pack_id: str = "body_zones") -> "BodyZoneRegistry":
        pack = load_pack(pack_id)
        registry = cls.from_records(pack.get("zones", []) or [])
        logger.info(
            "Loaded body zone registry: %d zones, %d selectable (pack=%s)",
            len(registry),
            len(registry.get_terminal_zones()),
            pack_id,
        )
        return registry

    # -- lookups -----------------------------------------------------------

    def __len__(self) -> int:
        return len(self._zones)

    def __contains__(self, zone_id: object) -> bool:
        return self.find_zone(zone_id) is not None

    def find_zone(self, zone_id: object) -> Optional[BodyZoneDefinition]:
        if not isinstance(zone_id, str):
            return None
        return self._zones.get(zone_id) or self._zones.get(zone_id.strip().lower())

    def get_zone(self, zone_id: str) -> BodyZoneDefinition:
        zone = self.find_zone(zone_id)
        if zone is None:
            raise UnknownZoneError(zone_id)
        return zone

    def get_children(self, zone_id: str) -> Tuple[BodyZoneDefinition, ...]:
        return tuple(self._zones[child] for child in self.get_zone(zone_id).child_ids)

    def get_parent(self, zone_id: str) -> Optional[BodyZoneDefinition]:
        parent_id = self.get_zone(zone_id).parent_id
        return self._zones[parent_id] if parent_id else None

    def get_zone_path(self, zone_id: str) -> Tuple[BodyZoneDefinition, ...]:
        """Definitions from the root category down to *zone_id*."""

        path: List[BodyZoneDefinition] = []
        zone: Optional[BodyZoneDefinition] = self.get_zone(zone_id)
        while zone is not None:
            path.append(zone)
            zone = self._zones[zone.parent_id] if zone.parent_id else None
        return tuple(reversed(path))

    def get_zone_path_labels(self, zone_id: str, locale: str = "en") -> Tuple[str, ...]:
        return tuple(zone.label(locale) for zone in self.get_zone_path(zone_id))

    def get_zones_by_category(self, category: str) -> Tuple[BodyZoneDefinition, ...]:
        return tuple(zone for zone in self._zones.values() if zone.category == category)

    def get_terminal_zones(self) -> Tuple[BodyZoneDefinition, ...]:
        return self._terminal

    def get_related_zones(self, zone_id: str) -> Tuple[BodyZoneDefinition, ...]:
        zone = self.get_zone(zone_id)
        return tuple(self._zones[related.zone_id] for related in zone.clinical.related_zones)

    def roots(self) -> Tuple[BodyZoneDefinition, ...]:
        return tuple(zone for zone in self._zones.values() if zone.parent_id is None)

    def all_zones(self) -> Tuple[BodyZoneDefinition, ...]:
        return tuple(self._zones.values())

    def has_children(self, zone_id: str) -> bool:
        return bool(self.get_zone(zone_id).child_ids)

    def is_selectable(self, zone_id: str) -> bool:
        zone = self.find_zone(zone_id)
        return zone is not None and zone.terminal

    def search_zones(self, query: str, locale: str = "en") -> Tuple[BodyZoneDefinition, ...]:
        """Selectable zones whose label, clinical term, alias or id contains *query*."""

        needle = normalize_text(query)
        if not needle:
            return ()
        hits = []
        for zone in self._terminal:
            haystacks = (zone.label(locale), zone.label_en, zone.clinical_term, zone.id, *zone.aliases)
            if any(needle in normalize_text(text) for text in haystacks):
                hits.append(zone)
        return tuple(hits)


def _check_acyclic(raw: Mapping[str, Mapping[str, Any]]) -> None:
    for start in raw:
        seen = {start}
        current = raw[start]["parent_id"]
        while current is not None:
            if current in seen:
                raise RegistryIntegrityError(f"parent cycle through {current!r}", zone_id=start)
            seen.add(current)
            current = raw[current]["parent_id"]


@lru_cache(maxsize=1)
def get_registry() -> BodyZoneRegistry:
    """Registry built from the packaged zone definitions, shared per process."""

    return BodyZoneRegistry.from_pack()
