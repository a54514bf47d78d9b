"""Utilities for normalising free-text complaint and answer inputs."""

from __future__ import annotations

import re
import unicodedata

__all__ = ["normalize_text", "matches_keyword"]


_WHITESPACE_RE = re.compile(r"\s+")
_PUNCTUATION_RE = re.compile(r"[^\w\s]", re.UNICODE)
# Urdu diacritics (zer/zabar/pesh etc.) and the tatweel are dropped before matching.
_URDU_MARKS_RE = re.compile(r"[\u064B-\u065F\u0670\u0640]")


def normalize_text(value: str) -> str:
    """Return a case-folded, accentless version of *value* suitable for matching.

    Latin accents are stripped; Arabic-script letters are kept so Urdu answers
    still compare equal to their vocabulary entries.
    """

    if not isinstance(value, str):
        return ""
    decomposed = unicodedata.normalize("NFKD", value)
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _URDU_MARKS_RE.sub("", stripped)
    normalized = unicodedata.normalize("NFC", stripped).casefold()
    normalized = _PUNCTUATION_RE.sub(" ", normalized.replace("_", " "))
    return _WHITESPACE_RE.sub(" ", normalized).strip()


def matches_keyword(text: str, keyword: str) -> bool:
    """True when *keyword* occurs as whole words in normalised *text*.

    A trailing ``*`` turns the last word into a prefix: ``"depress*"``
    matches ``"depression"``. Plain ``"ear"`` does not match ``"early"`` or
    ``"heart"``.
    """

    prefix = keyword.endswith("*")
    needle = normalize_text(keyword.rstrip("*"))
    if not needle:
        return False
    tail = "" if prefix else r"(?:\s|$)"
    pattern = r"(?:^|\s)" + re.escape(needle) + tail
    return re.search(pattern, normalize_text(text)) is not None
