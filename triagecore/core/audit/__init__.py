"""Decision audit trail."""

from .logger import AuditLogger
from .sinks import AuditSink, InMemoryAuditSink, JsonlAuditSink

__all__ = ["AuditLogger", "AuditSink", "InMemoryAuditSink", "JsonlAuditSink"]
