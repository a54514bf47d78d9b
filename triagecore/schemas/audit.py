"""Audit trail entry schema."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Literal

from .common import StrictModel

AuditAction = Literal[
    "SELECTION_VALIDATED",
    "VALIDATION_REJECTED",
    "TRIAGE_CLASSIFIED",
    "EMERGENCY_REDIRECT",
    "ELIGIBILITY_FILTERED",
    "SAFETY_GATE_PASSED",
    "ONLINE_BLOCKED",
    "PROVIDERS_RANKED",
    "NO_ELIGIBLE_PROVIDERS",
    "ROSTER_REJECTED",
]


class AuditLogEntry(StrictModel):
    id: str
    sequence: int
    correlation_id: str
    action: AuditAction
    reason: str
    metadata: Dict[str, Any]
    created_at: datetime
