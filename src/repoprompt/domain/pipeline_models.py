from __future__ import annotations

"""
Pipeline Domain Data Models.

Defines the data structures exchanged between the content readers, the
assembler and the interface layers (CLI and subscribers).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional, Tuple

# -----------------------------------------------------------------------------
# CONTENT RESOLUTION
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class FileResult:
    """
    Outcome of reading a single file, mirroring the server's JSON entry.

    Attributes:
        success: Whether the content could be read.
        content: File text (empty on failure).
        error: Failure description (None on success).
    """
    success: bool
    content: str = ""
    error: Optional[str] = None

    @classmethod
    def ok(cls, content: str) -> "FileResult":
        return cls(success=True, content=content)

    @classmethod
    def fail(cls, error: str) -> "FileResult":
        return cls(success=False, error=error or "Unknown error")

    @classmethod
    def from_dict(cls, data: Any) -> "FileResult":
        """Tolerant conversion of a decoded JSON entry."""
        if not isinstance(data, dict):
            return cls.fail("Malformed response entry")
        if data.get("success") and isinstance(data.get("content"), str):
            return cls.ok(data["content"])
        return cls.fail(str(data.get("error") or "Unknown error"))

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "content": self.content}
        return {"success": False, "error": self.error}

# -----------------------------------------------------------------------------
# BUILD OUTPUT
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class BuildResult:
    """
    Notification delivered to subscribers after every completed pass.

    Attributes:
        bundle: The assembled four-section context text.
        failed: Paths that could not be resolved, sorted.
        dependencies: Unselected files referenced by the selection, mapped
                      to the selected files importing them.
        token_count: Estimated token count of the bundle.
    """
    bundle: str
    failed: Tuple[str, ...] = ()
    dependencies: Dict[str, FrozenSet[str]] = field(default_factory=dict)
    token_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bundle": self.bundle,
            "failed": list(self.failed),
            "dependencies": {k: sorted(v) for k, v in sorted(self.dependencies.items())},
            "token_count": self.token_count,
        }
