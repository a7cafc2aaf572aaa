from __future__ import annotations

"""
Unit tests for the configuration domain.

Validates defaults, type coercion, strict mode and the JSON persistence
round trip (including corrupt-file fallback).
"""

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from repoprompt.domain.config import get_default_config, load_config, save_config, validate_config
from repoprompt.domain.constants import CURRENT_CONFIG_VERSION, DEFAULT_WHITELIST

# -----------------------------------------------------------------------------
# VALIDATION
# -----------------------------------------------------------------------------

def test_defaults_are_complete(mock_config_dict: Dict[str, Any]) -> None:
    """TC-01: The default config carries every known key."""
    defaults = get_default_config()
    assert set(defaults) == set(mock_config_dict)
    assert defaults["whitelist"] == list(DEFAULT_WHITELIST)
    assert defaults["log_level"] == "INFO"


def test_valid_config_passes_untouched(mock_config_dict: Dict[str, Any]) -> None:
    """TC-02: A clean config produces no warnings."""
    cfg, warnings = validate_config(mock_config_dict)
    assert warnings == []
    assert cfg == mock_config_dict


def test_coercion_of_loose_values() -> None:
    """TC-03: Strings, numbers and CSV are coerced with warnings."""
    cfg, warnings = validate_config({
        "respect_gitignore": "no",
        "log_to_file": 1,
        "coalesce_delay_ms": "350",
        "whitelist": ".py, .md ,",
        "log_level": "debug",
    })

    assert cfg["respect_gitignore"] is False
    assert cfg["log_to_file"] is True
    assert cfg["coalesce_delay_ms"] == 350
    assert cfg["whitelist"] == [".py", ".md"]
    assert cfg["log_level"] == "DEBUG"
    assert len(warnings) == 4


def test_invalid_values_fall_back() -> None:
    """TC-04: Unusable values revert to defaults; unknown keys are dropped."""
    cfg, warnings = validate_config({
        "coalesce_delay_ms": -5,
        "log_level": "LOUD",
        "session_name": 42,
        "mystery": True,
    })
    defaults = get_default_config()

    assert cfg["coalesce_delay_ms"] == defaults["coalesce_delay_ms"]
    assert cfg["log_level"] == "INFO"
    assert cfg["session_name"] == defaults["session_name"]
    assert "mystery" not in cfg
    assert any("mystery" in w for w in warnings)


def test_non_dict_config_returns_defaults() -> None:
    """TC-05: A non-dict payload yields the defaults."""
    cfg, warnings = validate_config(["not", "a", "dict"])
    assert cfg == get_default_config()
    assert len(warnings) == 1


def test_strict_mode_raises() -> None:
    """TC-06: Strict validation raises instead of coercing."""
    with pytest.raises(TypeError):
        validate_config({"respect_gitignore": "yes"}, strict=True)
    with pytest.raises(ValueError):
        validate_config({"log_level": "LOUD"}, strict=True)

# -----------------------------------------------------------------------------
# PERSISTENCE
# -----------------------------------------------------------------------------

def test_save_and_load_round_trip(tmp_path: Path, mock_config_dict: Dict[str, Any]) -> None:
    """TC-07: Saved configs are stamped with the version and load back."""
    path = tmp_path / "cfg" / "config.json"

    assert save_config(mock_config_dict, str(path)) is True
    stored = json.loads(path.read_text(encoding="utf-8"))
    assert stored["version"] == CURRENT_CONFIG_VERSION

    loaded = load_config(str(path))
    assert loaded["whitelist"] == [".py", ".md"]
    assert loaded["session_name"] == "test"


def test_missing_or_corrupt_file_yields_defaults(tmp_path: Path) -> None:
    """TC-08: Missing and unparsable files fall back to the defaults."""
    assert load_config(str(tmp_path / "absent.json")) == get_default_config()

    corrupt = tmp_path / "config.json"
    corrupt.write_text("{ not json", encoding="utf-8")
    assert load_config(str(corrupt)) == get_default_config()

    corrupt.write_text("[1, 2, 3]", encoding="utf-8")
    assert load_config(str(corrupt)) == get_default_config()
