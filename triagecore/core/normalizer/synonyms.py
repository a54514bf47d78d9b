"""Map free-text complaints onto the structured complaint vocabulary."""

from __future__ import annotations

from typing import Optional, Tuple

from .text import matches_keyword

__all__ = ["map_complaint_type"]


# Ordered: the first complaint type with a matching keyword wins, so the
# safety-relevant types are listed first.
_COMPLAINT_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    (
        "chest_pain",
        ("chest", "heart pain", "angina", "سینے میں درد", "سینے", "سینہ", "seene mein dard", "seena"),
    ),
    (
        "neuro_deficit",
        ("numb*", "one sided weakness", "facial droop", "slurred", "stroke", "paraly*", "فالج", "falij"),
    ),
    (
        "shortness_of_breath",
        ("breath*", "shortness", "short of breath", "wheez*", "gasp*", "سانس", "saans"),
    ),
    ("headache", ("headache*", "migraine*", "سر درد", "sar dard")),
    ("fever", ("fever*", "temperature", "بخار", "bukhar")),
    ("abdominal_pain", ("stomach*", "abdomen", "abdominal", "پیٹ", "pait", "pet dard")),
    ("back_pain", ("back pain", "backache", "کمر", "kamar")),
    ("joint_pain", ("joint*", "knee pain", "arthritis", "جوڑ", "ghutna")),
    ("injury", ("injur*", "fractur*", "fall", "fell", "sprain*", "چوٹ", "chot")),
    ("skin_rash", ("rash*", "itch*", "skin", "خارش", "kharish")),
    ("ear_nose_throat", ("ear", "ears", "earache", "sore throat", "throat", "sinus*", "گلا", "gala")),
    ("cough_cold", ("cough*", "cold", "flu", "runny nose", "کھانسی", "khansi", "nazla")),
    ("urinary_symptoms", ("urine", "urinary", "urination", "پیشاب", "peshab")),
    ("womens_health", ("pregnan*", "period*", "menstru*", "حمل", "hamal")),
    ("anxiety_depression", ("anxi*", "depress*", "panic", "stress*", "گھبراہٹ", "ghabrahat")),
)


def map_complaint_type(text: str, default: Optional[str] = "other") -> Optional[str]:
    """Return the first complaint type with a keyword present in *text*.

    Keywords match whole words of normalised text (a trailing ``*`` allows a
    prefix), never raw substrings, so ``"ear"`` does not fire for ``"heart"``.
    """

    if not text:
        return default
    for complaint_type, keywords in _COMPLAINT_KEYWORDS:
        if any(matches_keyword(text, keyword) for keyword in keywords):
            return complaint_type
    return default


