"""Audit logger for automated triage and matching decisions.

Entries are immutable and numbered with a process-local sequence. A failing
sink never changes the decision being recorded: the failure is kept, logged
and handed to the optional ``on_failure`` hook.
"""

from __future__ import annotations

import itertools
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, List, Mapping, Optional, Tuple

from ...schemas.audit import AuditLogEntry
from ..errors import AuditWriteFailure
from .sinks import AuditSink, InMemoryAuditSink

__all__ = ["AuditLogger"]

logger = logging.getLogger("triagecore.audit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLogger:
    def __init__(
        self,
        sink: Optional[AuditSink] = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
        on_failure: Optional[Callable[[AuditWriteFailure], None]] = None,
    ):
        self.sink = sink if sink is not None else InMemoryAuditSink()
        self._clock = clock
        self._on_failure = on_failure
        self._counter = itertools.count(1)
        self._lock = threading.Lock()
        self._failures: List[AuditWriteFailure] = []

    @property
    def failures(self) -> Tuple[AuditWriteFailure, ...]:
        with self._lock:
            return tuple(self._failures)

    def log(
        self,
        action: str,
        reason: str,
        metadata: Optional[Mapping[str, Any]] = None,
        *,
        correlation_id: str,
    ) -> Optional[AuditLogEntry]:
        """Record one decision; returns ``None`` when the entry could not be written."""

        with self._lock:
            sequence = next(self._counter)
        entry = AuditLogEntry(
            id=uuid.uuid4().hex,
            sequence=sequence,
            correlation_id=correlation_id,
            action=action,
            reason=reason,
            metadata=dict(metadata or {}),
            created_at=self._clock(),
        )
        try:
            self.sink.append(entry)
        except Exception as exc:  # noqa: BLE001
            failure = AuditWriteFailure(
                correlation_id=correlation_id,
                action=action,
                error=f"{type(exc).__name__}: {exc}",
                occurred_at=self._clock(),
                metadata={"sequence": sequence, "reason": reason},
            )
            with self._lock:
                self._failures.append(failure)
            logger.error(
                "Audit write failed: correlation_id=%s action=%s error=%s", correlation_id, action, failure.error
            )
            if self._on_failure is not None:
                try:
                    self._on_failure(failure)
                except Exception:  # noqa: BLE001
                    logger.exception("Audit failure hook raised: correlation_id=%s action=%s", correlation_id, action)
            return None
        logger.debug("Audit %s #%d correlation_id=%s", action, sequence, correlation_id)
        return entry

    def failures_for(self, correlation_id: str) -> Tuple[AuditWriteFailure, ...]:
        return tuple(failure for failure in self.failures if failure.correlation_id == correlation_id)

