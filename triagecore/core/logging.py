"""Logging helpers for the triage decision core."""
from __future__ import annotations

import logging
import re
from typing import Optional, Union

# Pakistani CNIC (12345-1234567-1) and local/international phone numbers.
_RE_SENSITIVE = re.compile(
    r"(\b\d{5}-?\d{7}-?\d\b|(?:\+92|\b0)3\d{2}[- ]?\d{7}\b|\b\d{3,4}-\d{7,8}\b)"
)


class PHIRedactor(logging.Filter):
    """Filter that redacts simple personal identifiers from log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        if isinstance(record.msg, str):
            record.msg = _RE_SENSITIVE.sub("[REDACTED]", record.msg)
        if record.args:
            if isinstance(record.args, dict):
                record.args = {key: _redact(value) for key, value in record.args.items()}
            else:
                record.args = tuple(_redact(value) for value in record.args)
        return True


def _redact(value: object) -> object:
    if isinstance(value, str):
        return _RE_SENSITIVE.sub("[REDACTED]", value)
    return value


def setup_logging(level: Union[int, str] = logging.INFO, log_file: Optional[str] = None) -> None:
    """Configure global logging handlers."""

    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    redactor = PHIRedactor()
    for handler in handlers:
        handler.addFilter(redactor)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        handlers=handlers,
        force=True,
    )
    logging.getLogger("triagecore.audit").setLevel(level)
