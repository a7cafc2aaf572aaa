from __future__ import annotations

"""
Integration tests for the logging subsystem.

Verifies the queue-backed pipeline, idempotent configuration, log file
output and the recent-log reader.
"""

import logging
from pathlib import Path

import pytest

from repoprompt.infra.logging import (
    LoggingConfig,
    configure_logging,
    get_recent_logs,
    shutdown_logging,
)
from repoprompt.infra.logging.config import parse_level
from repoprompt.infra.logging.handlers import is_marked


@pytest.fixture(autouse=True)
def clean_logging():
    shutdown_logging()
    yield
    shutdown_logging()


def _marked_handlers():
    return [h for h in logging.getLogger().handlers if is_marked(h)]


def test_configure_is_idempotent() -> None:
    """TC-01: A second call without force installs nothing new."""
    cfg = LoggingConfig(level="INFO", console=True)
    configure_logging(cfg)
    first = _marked_handlers()

    configure_logging(cfg)

    assert len(first) == 1
    assert _marked_handlers() == first


def test_force_reconfigures(tmp_path: Path) -> None:
    """TC-02: force replaces the installed queue handler."""
    configure_logging(LoggingConfig(level="INFO", console=True))
    before = _marked_handlers()

    configure_logging(LoggingConfig(level="DEBUG", console=True), force=True)

    after = _marked_handlers()
    assert len(after) == 1
    assert after != before
    assert logging.getLogger().level == logging.DEBUG


def test_file_output_and_recent_logs(tmp_path: Path) -> None:
    """TC-03: Records reach the file once the listener is flushed."""
    log_file = tmp_path / "logs" / "app.log"
    configure_logging(LoggingConfig(level="INFO", console=False, log_file=str(log_file)))

    logging.getLogger("repoprompt.test").info("first line")
    logging.getLogger("repoprompt.test").info("second line")
    shutdown_logging()

    tail = get_recent_logs(1, str(log_file))
    assert "second line" in tail
    assert "first line" not in tail
    assert "first line" in get_recent_logs(10, str(log_file))


def test_recent_logs_missing_file(tmp_path: Path) -> None:
    """TC-04: A missing log file yields a notice, not an error."""
    assert get_recent_logs(5, str(tmp_path / "none.log")) == "Log file not found."


def test_no_targets_installs_nothing() -> None:
    """TC-05: Without console and file, no handler is added."""
    configure_logging(LoggingConfig(level="INFO", console=False))
    assert _marked_handlers() == []


def test_parse_level() -> None:
    """TC-06: Level names are case-insensitive with a fallback."""
    assert parse_level("debug") == logging.DEBUG
    assert parse_level("warn") == logging.WARNING
    assert parse_level("bogus") == logging.INFO
    assert parse_level(None, logging.ERROR) == logging.ERROR
