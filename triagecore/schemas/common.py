"""Common schema utilities for the triage core."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

Locale = Literal["en", "ur"]


class StrictModel(BaseModel):
    """Base model forbidding unexpected fields; instances are read-only."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class BilingualText(StrictModel):
    en: str
    ur: str = ""

    def get(self, locale: str = "en") -> str:
        if locale == "ur" and self.ur:
            return self.ur
        return self.en
