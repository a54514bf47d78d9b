"""Helpers to load the clinical content packs shipped with the package."""

from __future__ import annotations

from functools import lru_cache
from importlib import resources
from typing import Any, Dict

import yaml

__all__ = ["load_pack"]


@lru_cache(maxsize=16)
def load_pack(pack_id: str) -> Dict[str, Any]:
    """Load the YAML pack identified by *pack_id* (file name without ``.yml``).

    Packs are parsed once per process; callers must treat the result as
    read-only.
    """

    with resources.files(__name__).joinpath(f"{pack_id}.yml").open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}
