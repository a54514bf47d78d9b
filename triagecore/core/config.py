"""Runtime configuration for the triage decision core."""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, PositiveInt, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralised settings backed by environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    # Ranking
    ranking_limit: PositiveInt = Field(default=5, alias="RANKING_LIMIT")
    distance_decay_km: float = Field(default=10.0, alias="DISTANCE_DECAY_KM")

    # Eligibility
    pediatric_age_limit: PositiveInt = Field(default=18, alias="PEDIATRIC_AGE_LIMIT")

    # Provider roster freshness
    roster_max_age_seconds: float = Field(default=900.0, alias="ROSTER_MAX_AGE_SECONDS")

    # Audit / logging
    audit_log_path: Optional[Path] = Field(default=None, alias="AUDIT_LOG_PATH")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Localisation of error and guidance text
    default_locale: Literal["en", "ur"] = Field(default="en", alias="DEFAULT_LOCALE")

    @field_validator("distance_decay_km", "roster_max_age_seconds", mode="after")
    @classmethod
    def _ensure_positive_float(cls, value: float) -> float:
        return max(0.1, float(value))

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_level(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            return "INFO"
        return value.strip().upper()

    @field_validator("audit_log_path", mode="before")
    @classmethod
    def _blank_path_is_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
