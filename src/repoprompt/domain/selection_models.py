from __future__ import annotations

"""
Selection Domain Data Models.

Value types shared by the selection engine and the workspace: the folder
tri-state and the origin of a directory's content.
"""

from enum import Enum


class TriState(str, Enum):
    """Checkbox state of a folder. Files are plain booleans."""
    SELECTED = "selected"
    UNSELECTED = "unselected"
    MIXED = "mixed"

    @classmethod
    def from_bool(cls, value: bool) -> "TriState":
        return cls.SELECTED if value else cls.UNSELECTED

    @property
    def is_definite(self) -> bool:
        return self is not TriState.MIXED


class SourceKind(str, Enum):
    """Where the contents of a directory's files come from."""
    PATH_BACKED = "path"
    IN_MEMORY = "memory"
