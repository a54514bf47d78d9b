"""Body zone registry."""

from .zones import BodyZoneRegistry, get_registry

__all__ = ["BodyZoneRegistry", "get_registry"]
