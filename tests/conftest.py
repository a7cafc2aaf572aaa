from __future__ import annotations

"""
Global Pytest Configuration and Fixtures.

This module sets up the testing environment, including:
1. Path manipulation to ensure the 'src' directory is importable.
2. Shared fixtures building workspaces, trees and in-memory collaborators.
"""

import os
import sys
from typing import Any, Callable, Dict, Iterable, List, Optional

import pytest

# -----------------------------------------------------------------------------
# Path Configuration
# -----------------------------------------------------------------------------
_SRC_PATH = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if _SRC_PATH not in sys.path:
    sys.path.insert(0, _SRC_PATH)

from repoprompt.core.selection.whitelist import Whitelist  # noqa: E402
from repoprompt.core.services.workspace import Directory, Workspace  # noqa: E402
from repoprompt.domain.pipeline_models import FileResult  # noqa: E402
from repoprompt.domain.selection_models import SourceKind  # noqa: E402
from repoprompt.domain.tree_models import TreeModel  # noqa: E402


# -----------------------------------------------------------------------------
# Test Doubles
# -----------------------------------------------------------------------------
class FakeReader:
    """Batch reader serving a fixed mapping and recording every call."""

    def __init__(self, files: Optional[Dict[str, str]] = None) -> None:
        self.files: Dict[str, str] = dict(files or {})
        self.batches: List[List[str]] = []

    def read_file(self, path: str) -> FileResult:
        if path in self.files:
            return FileResult.ok(self.files[path])
        return FileResult.fail(f"File not found: {path}")

    def read_files(self, paths: Iterable[str]) -> Dict[str, FileResult]:
        batch = list(paths)
        self.batches.append(batch)
        return {p: self.read_file(p) for p in batch}


# -----------------------------------------------------------------------------
# Shared Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def txt_whitelist() -> Whitelist:
    """Whitelist accepting '.txt' files only."""
    return Whitelist([".txt"])


@pytest.fixture
def make_directory() -> Callable[..., Directory]:
    """
    Factory registering a path-backed directory built from relative file paths.

    Usage: make_directory(workspace, "root", ["a.txt", "sub/c.txt"])
    """

    def _make(
            workspace: Workspace,
            root: str,
            files: Iterable[str],
            source_kind: SourceKind = SourceKind.PATH_BACKED,
    ) -> Directory:
        tree = TreeModel.from_paths(root, files)
        return workspace.add_directory(source_kind, root, tree)

    return _make


@pytest.fixture
def fake_reader() -> FakeReader:
    return FakeReader()


@pytest.fixture
def mock_config_dict() -> Dict[str, Any]:
    """
    Return a valid, complete configuration dictionary for testing.

    Reflects the structure defined in 'repoprompt.domain.config'.
    """
    return {
        "whitelist": [".py", ".md"],
        "respect_gitignore": True,
        "coalesce_delay_ms": 0,
        "server_endpoint": "http://localhost:3000",
        "session_name": "test",
        "token_encoding": "cl100k_base",
        "log_level": "INFO",
        "log_to_file": False,
    }
