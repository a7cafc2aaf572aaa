from __future__ import annotations

"""
Configuration Domain Management.

Handles the persistent application configuration stored as JSON in the
user data directory, its defaults, and the validation/coercion applied to
untrusted input coming from the file or the CLI.
"""

import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple

from repoprompt.domain.constants import (
    CURRENT_CONFIG_VERSION,
    DEFAULT_COALESCE_DELAY_MS,
    DEFAULT_SERVER_ENDPOINT,
    DEFAULT_SESSION_NAME,
    DEFAULT_TOKEN_ENCODING,
    DEFAULT_WHITELIST,
)
from repoprompt.infra.fs import get_user_data_dir
from repoprompt.infra.logging.config import LEVEL_NAMES

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"


def get_config_path() -> str:
    return os.path.join(get_user_data_dir(), CONFIG_FILENAME)

# -----------------------------------------------------------------------------
# Defaults
# -----------------------------------------------------------------------------

def get_default_config() -> Dict[str, Any]:
    """
    Generate the default runtime configuration.

    Returns:
        Dict[str, Any]: Default configuration values.
    """
    return {
        # Selectability
        "whitelist": list(DEFAULT_WHITELIST),
        "respect_gitignore": True,

        # Scheduling
        "coalesce_delay_ms": DEFAULT_COALESCE_DELAY_MS,

        # Collaborators
        "server_endpoint": DEFAULT_SERVER_ENDPOINT,
        "session_name": DEFAULT_SESSION_NAME,

        # Output
        "token_encoding": DEFAULT_TOKEN_ENCODING,

        # Diagnostics
        "log_level": "INFO",
        "log_to_file": False,
    }

# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------

def validate_config(
        config: Any,
        *,
        strict: bool = False,
) -> Tuple[Dict[str, Any], List[str]]:
    """
    Validate and normalize a configuration dictionary.

    Missing keys are filled from the defaults and mistyped values coerced
    where the intent is clear, otherwise replaced by the default.

    Args:
        config: Raw configuration data.
        strict: Raise TypeError/ValueError instead of coercing.

    Returns:
        Tuple[Dict[str, Any], List[str]]: Normalized configuration and warnings.
    """
    warnings: List[str] = []
    defaults = get_default_config()

    if not isinstance(config, dict):
        msg = f"Invalid config type: expected dict, received {type(config).__name__}."
        if strict:
            raise TypeError(msg)
        warnings.append(f"{msg} Using defaults.")
        logger.warning(msg)
        return defaults, warnings

    merged: Dict[str, Any] = dict(defaults)
    merged.update(config)

    for field in ("server_endpoint", "session_name", "token_encoding", "log_level"):
        merged[field] = _as_str(merged.get(field), defaults[field], field, warnings, strict)

    for field in ("respect_gitignore", "log_to_file"):
        merged[field] = _as_bool(merged.get(field), defaults[field], field, warnings, strict)

    merged["coalesce_delay_ms"] = _as_non_negative_int(
        merged.get("coalesce_delay_ms"), defaults["coalesce_delay_ms"], "coalesce_delay_ms", warnings, strict
    )
    merged["whitelist"] = _as_list_str(
        merged.get("whitelist"), defaults["whitelist"], "whitelist", warnings, strict
    )

    level = merged["log_level"].upper()
    if level not in LEVEL_NAMES:
        msg = f"Unknown log level '{merged['log_level']}'."
        if strict:
            raise ValueError(msg)
        warnings.append(f"{msg} Using INFO.")
        level = "INFO"
    merged["log_level"] = level

    unknown = sorted(k for k in config if k not in defaults and k != "version")
    for key in unknown:
        warnings.append(f"Unknown config key '{key}' ignored.")
        merged.pop(key, None)

    return merged, warnings


def _as_str(value: Any, fallback: str, field: str, warnings: List[str], strict: bool) -> str:
    """Validate and sanitize string inputs."""
    if value is None:
        return fallback
    if isinstance(value, str):
        v = value.strip()
        return v if v else fallback

    msg = f"Invalid field '{field}': expected str, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_bool(value: Any, fallback: bool, field: str, warnings: List[str], strict: bool) -> bool:
    """Coerce various input types into native booleans."""
    if isinstance(value, bool):
        return value
    if value is None:
        return fallback

    if not strict:
        if isinstance(value, (int, float)) and value in (0, 1):
            warnings.append(f"Field '{field}' converted from number {value} to bool.")
            return bool(value)
        if isinstance(value, str):
            s = value.strip().lower()
            if s in ("true", "1", "yes", "y", "on"):
                warnings.append(f"Field '{field}' converted from '{value}' to True.")
                return True
            if s in ("false", "0", "no", "n", "off"):
                warnings.append(f"Field '{field}' converted from '{value}' to False.")
                return False

    msg = f"Invalid field '{field}': expected bool, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_non_negative_int(value: Any, fallback: int, field: str, warnings: List[str], strict: bool) -> int:
    if value is None:
        return fallback
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return value

    if not strict and isinstance(value, str) and value.strip().isdigit():
        warnings.append(f"Field '{field}' converted from '{value}' to int.")
        return int(value.strip())

    msg = f"Invalid field '{field}': expected non-negative int, received {value!r}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return fallback


def _as_list_str(value: Any, fallback: List[str], field: str, warnings: List[str], strict: bool) -> List[str]:
    """Ensure input is a list of sanitized strings, supporting CSV parsing."""
    if value is None:
        return list(fallback)

    if isinstance(value, str) and not strict:
        items = [x.strip() for x in value.split(",") if x.strip()]
        warnings.append(f"Field '{field}' converted from CSV string to list.")
        return items

    if isinstance(value, (list, tuple)):
        out: List[str] = []
        for item in value:
            if isinstance(item, str):
                if item.strip():
                    out.append(item.strip())
            elif strict:
                raise TypeError(f"Invalid item in '{field}': expected str, received {type(item).__name__}.")
            else:
                warnings.append(f"Non-string item in '{field}' dropped.")
        return out

    msg = f"Invalid field '{field}': expected list, received {type(value).__name__}."
    if strict:
        raise TypeError(msg)
    warnings.append(f"{msg} Using fallback.")
    return list(fallback)

# -----------------------------------------------------------------------------
# Persistence Logic
# -----------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the configuration from disk, merged over the defaults.

    A missing or corrupt file yields the defaults; validation warnings are
    logged, never raised.

    Args:
        config_path: Override of the config file location.

    Returns:
        Dict[str, Any]: Normalized configuration.
    """
    path = config_path or get_config_path()
    if not os.path.exists(path):
        logger.debug("Config file not found. Returning defaults.")
        return get_default_config()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Failed to load config: {e}. Using defaults.")
        return get_default_config()

    if not isinstance(data, dict):
        logger.warning("Corrupted config file. Resetting to defaults.")
        return get_default_config()

    cfg, warnings = validate_config(data)
    for w in warnings:
        logger.warning(f"Config: {w}")
    return cfg


def save_config(config: Dict[str, Any], config_path: Optional[str] = None) -> bool:
    """
    Persist the configuration, stamped with the current schema version.

    Returns:
        bool: True on success.
    """
    path = config_path or get_config_path()
    payload = dict(config)
    payload["version"] = CURRENT_CONFIG_VERSION
    try:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=4)
    except (OSError, TypeError) as e:
        logger.error(f"Failed to save configuration: {e}")
        return False
    logger.debug(f"Configuration saved to {path}")
    return True
