"""Priority score (0-100) from screening, red flags, pain, onset and trend."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ...content import load_pack
from ...schemas.intake import EncounterBundle

__all__ = ["calculate_priority_score", "category_for_score"]


def _config(pack: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return (pack if pack is not None else load_pack("urgency"))["priority_score"]


def calculate_priority_score(bundle: EncounterBundle, pack: Optional[Mapping[str, Any]] = None) -> int:
    cfg = _config(pack)
    if bundle.screening.is_positive:
        return int(cfg["screening_positive"])

    score = int(cfg["base"])
    severities = {flag.severity for flag in bundle.red_flags}
    if "CRITICAL" in severities:
        score = max(score, int(cfg["critical_flag_floor"]))
    elif "HIGH" in severities:
        score = max(score, int(cfg["high_flag_floor"]))

    pain = bundle.max_intensity
    severe, moderate = cfg["severe_pain"], cfg["moderate_pain"]
    if pain >= severe["min_intensity"]:
        score = max(score, int(severe["floor"]))
    elif pain >= moderate["min_intensity"]:
        score = max(score, int(moderate["floor"]))

    if bundle.onset == "sudden":
        score = min(100, score + int(cfg["sudden_onset_bonus"]))
    if bundle.worsening:
        score = min(100, score + int(cfg["worsening_bonus"]))
    return score


def category_for_score(score: int, pack: Optional[Mapping[str, Any]] = None) -> str:
    bands = (pack if pack is not None else load_pack("urgency"))["score_bands"]
    for band in bands:
        if score >= band["min_score"]:
            return band["category"]
    return "NON_URGENT"
