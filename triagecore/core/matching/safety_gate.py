"""Online safety gate: removes remote consultation where it is unsafe."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from ...content import load_pack
from ...schemas.intake import DetectedRedFlag
from ...schemas.providers import ProviderProfile, SafeModes
from ...schemas.triage import TriageResult

__all__ = ["OnlineSafetyGate"]

logger = logging.getLogger(__name__)

ONLINE = "ONLINE"
PHYSICAL = "PHYSICAL"


class OnlineSafetyGate:
    def __init__(self, pack: Optional[Mapping[str, Any]] = None):
        pack = pack if pack is not None else load_pack("online_safety")
        self.blocked_urgencies = frozenset(pack.get("blocked_urgencies", ("emergency", "urgent")))
        self.block_on_any_red_flag = bool(pack.get("block_on_any_red_flag", True))
        self.blocked_complaint_types = frozenset(pack.get("blocked_complaint_types", ()))
        self.reason_text = pack.get("reasons", {})

    def block_reasons(
        self,
        urgency: str,
        red_flags: Sequence[DetectedRedFlag],
        complaint_type: Optional[str],
    ) -> Tuple[str, ...]:
        reasons: List[str] = []
        if urgency in self.blocked_urgencies:
            reasons.append(f"urgency:{urgency}")
        if self.block_on_any_red_flag and red_flags:
            reasons.append("red_flag:" + ",".join(flag.id for flag in red_flags))
        if complaint_type in self.blocked_complaint_types:
            reasons.append(f"complaint:{complaint_type}")
        return tuple(reasons)

    def allows_online(
        self, urgency: str, red_flags: Sequence[DetectedRedFlag], complaint_type: Optional[str]
    ) -> bool:
        return not self.block_reasons(urgency, red_flags, complaint_type)

    def safe_modes(self, result: TriageResult, complaint_type: Optional[str]) -> SafeModes:
        reasons = self.block_reasons(result.urgency, result.red_flags, complaint_type)
        if reasons:
            return SafeModes(allowed=(PHYSICAL,), blocked=(ONLINE,), primary=PHYSICAL, reasons=reasons)
        return SafeModes(allowed=(ONLINE, PHYSICAL), primary=ONLINE)

    def explain(self, reasons: Iterable[str], locale: str = "en") -> Tuple[str, ...]:
        """Patient-facing text for machine reasons, one line per kind."""

        lines = []
        for reason in reasons:
            kind = reason.split(":", 1)[0]
            text = self.reason_text.get(kind, {})
            line = text.get(locale) or text.get("en")
            if line and line not in lines:
                lines.append(line)
        return tuple(lines)

    def apply(
        self,
        pairs: Sequence[Tuple[ProviderProfile, str]],
        result: TriageResult,
        complaint_type: Optional[str],
    ) -> Tuple[Tuple[Tuple[ProviderProfile, str], ...], Tuple[Tuple[ProviderProfile, str], ...], SafeModes]:
        """Drop ONLINE pairs when unsafe; other pairs pass through untouched."""

        modes = self.safe_modes(result, complaint_type)
        kept = tuple(pair for pair in pairs if pair[1] in modes.allowed)
        removed = tuple(pair for pair in pairs if pair[1] not in modes.allowed)
        if removed:
            logger.info("Online blocked for %d provider(s): %s", len(removed), "; ".join(modes.reasons))
        return kept, removed, modes
