"""Append-only destinations for audit entries."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import List, Protocol, Tuple, Union

from ...schemas.audit import AuditLogEntry

__all__ = ["AuditSink", "InMemoryAuditSink", "JsonlAuditSink"]


class AuditSink(Protocol):
    def append(self, entry: AuditLogEntry) -> None: ...


class InMemoryAuditSink:
    """Keeps entries in process memory; used by tests and as the default."""

    def __init__(self) -> None:
        self._entries: List[AuditLogEntry] = []
        self._lock = threading.Lock()

    def append(self, entry: AuditLogEntry) -> None:
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> Tuple[AuditLogEntry, ...]:
        with self._lock:
            return tuple(self._entries)

    def for_correlation(self, correlation_id: str) -> Tuple[AuditLogEntry, ...]:
        return tuple(entry for entry in self.entries if entry.correlation_id == correlation_id)


class JsonlAuditSink:
    """Appends one JSON document per line; existing lines are never rewritten."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()

    def append(self, entry: AuditLogEntry) -> None:
        line = json.dumps(entry.model_dump(mode="json"), ensure_ascii=False, sort_keys=True)
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(line + "\n")
