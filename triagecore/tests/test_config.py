from __future__ import annotations

import logging

from triagecore.content import load_pack
from triagecore.core.config import Settings
from triagecore.core.errors import InvalidZoneIdError, NonSelectableZoneError, RosterUnavailableError
from triagecore.core.logging import PHIRedactor, setup_logging


def test_defaults(settings):
    assert settings.ranking_limit == 5
    assert settings.distance_decay_km == 10.0
    assert settings.pediatric_age_limit == 18
    assert settings.roster_max_age_seconds == 900.0
    assert settings.audit_log_path is None
    assert settings.default_locale == "en"


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("RANKING_LIMIT", "3")
    monkeypatch.setenv("LOG_LEVEL", " debug ")
    monkeypatch.setenv("DISTANCE_DECAY_KM", "-4")
    monkeypatch.setenv("AUDIT_LOG_PATH", "  ")
    settings = Settings(_env_file=None)
    assert settings.ranking_limit == 3
    assert settings.log_level == "DEBUG"
    assert settings.distance_decay_km == 0.1
    assert settings.audit_log_path is None


def test_redactor_masks_identifiers():
    record = logging.LogRecord(
        "triagecore", logging.INFO, __file__, 1, "patient %s called from %s", ("35202-1234567-1", "0300 1234567"), None
    )
    PHIRedactor().filter(record)
    message = record.getMessage()
    assert "35202" not in message
    assert "1234567" not in message
    assert message.count("[REDACTED]") == 2


def test_packs_are_cached():
    assert load_pack("urgency") is load_pack("urgency")
    assert load_pack("online_safety")["block_on_any_red_flag"] is True


def test_error_payload_is_bilingual():
    error = NonSelectableZoneError("chest")
    assert isinstance(error, InvalidZoneIdError)
    payload = error.to_dict()
    assert payload["error"] == "NON_SELECTABLE_ZONE"
    assert payload["messages"]["ur"]
    assert error.message("fr") == error.message("en")

    roster = RosterUnavailableError("fetch failed", source="directory")
    assert roster.details == {"reason": "fetch failed", "source": "directory"}


def test_setup_logging_installs_redactor(tmp_path):
    log_file = tmp_path / "triage.log"
    setup_logging("debug", str(log_file))
    try:
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert all(any(isinstance(f, PHIRedactor) for f in handler.filters) for handler in root.handlers)
        logging.getLogger("triagecore.test").info("callback on 03001234567")
        for handler in root.handlers:
            handler.flush()
        assert "[REDACTED]" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in logging.getLogger().handlers:
            handler.close()
        logging.basicConfig(force=True, level=logging.WARNING)
