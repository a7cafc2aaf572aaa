from __future__ import annotations

"""
Logging Handler Factories.

Handlers created here carry a marker attribute so a later reconfiguration
removes exactly the handlers this package installed and leaves handlers
added by libraries or test harnesses (e.g. pytest's caplog) alone.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Optional

_MARKER_ATTR: str = "_repoprompt_handler"


def mark_handler(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _MARKER_ATTR, True)
    return handler


def is_marked(handler: logging.Handler) -> bool:
    return bool(getattr(handler, _MARKER_ATTR, False))


def create_console_handler(level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return mark_handler(handler)


def create_rotating_file_handler(
        log_file: str,
        level: int,
        formatter: logging.Formatter,
        max_bytes: int,
        backup_count: int,
) -> Optional[RotatingFileHandler]:
    """
    Build a rotating file handler, creating the parent folder if needed.

    Returns:
        Optional[RotatingFileHandler]: None if the file cannot be opened.
    """
    try:
        parent = os.path.dirname(os.path.abspath(log_file))
        os.makedirs(parent, exist_ok=True)
        handler = RotatingFileHandler(
            log_file,
            maxBytes=int(max_bytes),
            backupCount=int(backup_count),
            encoding="utf-8",
        )
    except OSError as e:
        sys.stderr.write(f"WARNING: Cannot write log file '{log_file}': {e}\n")
        return None

    handler.setLevel(level)
    handler.setFormatter(formatter)
    mark_handler(handler)
    return handler
