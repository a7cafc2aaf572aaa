from __future__ import annotations

"""
Logging Core Orchestrator.

Installs the root logging configuration once per process. Records are
pushed onto a queue and written by a QueueListener thread so file I/O never
runs on the event loop thread that drives selection and assembly.
"""

import atexit
import logging
import os
import queue
import sys
from logging.handlers import QueueHandler, QueueListener
from typing import List, Optional

from repoprompt.infra.fs import get_user_data_dir
from repoprompt.infra.logging.config import LoggingConfig, parse_level
from repoprompt.infra.logging.handlers import (
    create_console_handler,
    create_rotating_file_handler,
    is_marked,
    mark_handler,
)

_CONFIGURED_ATTR: str = "_repoprompt_configured"
_LISTENER_ATTR: str = "_repoprompt_listener"


# ==============================================================================
# PUBLIC API
# ==============================================================================

def get_default_log_path(file_name: str = "repoprompt.log") -> str:
    """Path of the persistent log file inside the user data directory."""
    return os.path.join(get_user_data_dir(), "logs", file_name)


def configure_logging(cfg: LoggingConfig, *, force: bool = False) -> logging.Logger:
    """
    Configure the root logger with a queue-backed pipeline.

    Calling it again is a no-op unless force is set, in which case the
    previously installed handlers and listener are torn down first.

    Args:
        cfg: Logging settings.
        force: Re-initialize even if already configured.

    Returns:
        logging.Logger: The root logger.
    """
    root = logging.getLogger()
    if getattr(root, _CONFIGURED_ATTR, False) and not force:
        return root

    try:
        level = parse_level(cfg.level)
        root.setLevel(level)
        _teardown(root)

        targets: List[logging.Handler] = []
        if cfg.console:
            targets.append(create_console_handler(level, logging.Formatter(cfg.console_fmt)))
        if cfg.log_file:
            fh = create_rotating_file_handler(
                cfg.log_file,
                level,
                logging.Formatter(cfg.file_fmt, datefmt=cfg.datefmt),
                cfg.max_bytes,
                cfg.backup_count,
            )
            if fh is not None:
                targets.append(fh)

        if not targets:
            return root

        records: queue.Queue = queue.Queue(-1)
        listener = QueueListener(records, *targets, respect_handler_level=True)
        listener.start()
        root.addHandler(mark_handler(QueueHandler(records)))

        setattr(root, _LISTENER_ATTR, listener)
        setattr(root, _CONFIGURED_ATTR, True)
        atexit.register(_stop_listener, listener)
        return root

    except (OSError, ValueError, RuntimeError) as e:
        # Emergency console so diagnostics are never lost entirely
        _teardown(root)
        fallback = logging.StreamHandler(sys.stderr)
        fallback.setFormatter(logging.Formatter("FALLBACK | %(levelname)s | %(message)s"))
        root.addHandler(mark_handler(fallback))
        root.setLevel(logging.INFO)
        root.warning(f"Logging setup failed ({e}). Using emergency console output.")
        return root


def shutdown_logging() -> None:
    """Flush and remove everything configure_logging installed."""
    root = logging.getLogger()
    _teardown(root)
    setattr(root, _CONFIGURED_ATTR, False)


def get_recent_logs(n_lines: int = 100, log_path: Optional[str] = None) -> str:
    """
    Return the last lines of the persistent log file.

    Args:
        n_lines: Maximum number of lines.
        log_path: Log file to read (defaults to the user data log).

    Returns:
        str: The tail, or a short notice if the file is missing or unreadable.
    """
    path = log_path or get_default_log_path()
    if not os.path.exists(path):
        return "Log file not found."
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            lines = f.readlines()
    except OSError as e:
        return f"Error retrieving logs: {e}"
    return "".join(lines[-n_lines:]) if n_lines > 0 else ""


# ==============================================================================
# PRIVATE HELPERS
# ==============================================================================

def _teardown(root: logging.Logger) -> None:
    listener = getattr(root, _LISTENER_ATTR, None)
    if listener is not None:
        _stop_listener(listener)
        setattr(root, _LISTENER_ATTR, None)

    for handler in list(root.handlers):
        if is_marked(handler):
            root.removeHandler(handler)
            handler.close()


def _stop_listener(listener: Optional[QueueListener]) -> None:
    """Stop a listener; safe to call twice (atexit after an explicit teardown)."""
    if listener is None or getattr(listener, "_thread", None) is None:
        return
    listener.stop()
    for handler in listener.handlers:
        handler.close()
