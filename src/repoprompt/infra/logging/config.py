from __future__ import annotations

"""
Logging Configuration Model.

Immutable settings consumed by configure_logging and the severity name
mapping shared with the configuration validator.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Optional

LEVEL_NAMES: Dict[str, int] = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def parse_level(level: Optional[str], fallback: int = logging.INFO) -> int:
    """Map a level name to its numeric constant; unknown names give the fallback."""
    if not level:
        return fallback
    return LEVEL_NAMES.get(str(level).strip().upper(), fallback)


@dataclass(frozen=True)
class LoggingConfig:
    """
    Logging subsystem settings.

    Attributes:
        level: Minimum severity name.
        console: Emit to stderr.
        log_file: Optional path of a rotating log file.
        max_bytes: Rollover threshold of the log file.
        backup_count: Rotated segments kept.
        console_fmt: Format of console records.
        file_fmt: Format of file records.
        datefmt: Timestamp format of file records.
    """
    level: str = "INFO"
    console: bool = True
    log_file: Optional[str] = None

    max_bytes: int = 1024 * 1024
    backup_count: int = 3

    console_fmt: str = "%(levelname)s | %(message)s"
    file_fmt: str = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"
