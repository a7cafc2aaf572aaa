from __future__ import annotations

"""
Selectability Whitelist.

Decides which files may take part in selection. Patterns are matched
against the file's base name, case-insensitively: a pattern without '*' is a
suffix literal ('.py', 'makefile'), a pattern with '*' is a glob anchored on
the whole name ('dockerfile*').
"""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from repoprompt.domain.constants import DEFAULT_WHITELIST

logger = logging.getLogger(__name__)

_SEPARATORS_RX = re.compile(r"[\\/]")


class Whitelist:
    """
    Ordered, de-duplicated set of lower-cased filename patterns.
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None) -> None:
        self._patterns: List[str] = []
        self._compiled: Dict[str, re.Pattern] = {}
        self.reset(DEFAULT_WHITELIST if patterns is None else patterns)

    # -------------------------------------------------------------------------
    # MATCHING
    # -------------------------------------------------------------------------

    def matches(self, path: str) -> bool:
        """
        Check whether a file path is selectable.

        Args:
            path: Full path or bare file name.

        Returns:
            bool: True if the base name matches any pattern.
        """
        name = _SEPARATORS_RX.split(path)[-1].lower()
        if not name:
            return False
        for pattern in self._patterns:
            compiled = self._compiled.get(pattern)
            if compiled is not None:
                if compiled.match(name):
                    return True
            elif name.endswith(pattern):
                return True
        return False

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------

    @property
    def patterns(self) -> List[str]:
        return sorted(self._patterns)

    def add(self, pattern: str) -> str:
        """
        Register a new pattern.

        Raises:
            ValueError: If the pattern is empty or already present.
        """
        normalized = _normalize(pattern)
        if not normalized:
            raise ValueError("Whitelist pattern cannot be empty.")
        if normalized in self._patterns:
            raise ValueError(f"Pattern '{normalized}' is already whitelisted.")
        self._store(normalized)
        logger.debug(f"Whitelist pattern added: {normalized}")
        return normalized

    def remove(self, pattern: str) -> bool:
        normalized = _normalize(pattern)
        if normalized not in self._patterns:
            return False
        self._patterns.remove(normalized)
        self._compiled.pop(normalized, None)
        logger.debug(f"Whitelist pattern removed: {normalized}")
        return True

    def reset(self, patterns: Iterable[str]) -> None:
        """Replace every pattern in place, keeping this object shared."""
        self._patterns = []
        self._compiled = {}
        for raw in patterns:
            pattern = _normalize(raw)
            if pattern and pattern not in self._patterns:
                self._store(pattern)

    def __contains__(self, pattern: object) -> bool:
        return isinstance(pattern, str) and _normalize(pattern) in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)

    # -------------------------------------------------------------------------
    # SERIALIZATION
    # -------------------------------------------------------------------------

    def to_json(self) -> List[str]:
        return list(self._patterns)

    @classmethod
    def from_json(cls, value: Any) -> "Whitelist":
        """
        Rebuild a whitelist from a persisted value.

        A value that is not a list of strings yields the default patterns.
        """
        if value is None:
            return cls()
        if not isinstance(value, list) or not all(isinstance(p, str) for p in value):
            logger.warning("Malformed persisted whitelist. Falling back to defaults.")
            return cls()
        return cls(value)

    def _store(self, pattern: str) -> None:
        self._patterns.append(pattern)
        if "*" in pattern:
            body = ".*".join(re.escape(chunk) for chunk in pattern.split("*"))
            self._compiled[pattern] = re.compile(f"^{body}$", re.IGNORECASE)


def _normalize(pattern: Any) -> str:
    if not isinstance(pattern, str):
        return ""
    return pattern.strip().lower()
