from __future__ import annotations

"""
Integration tests for the local filesystem collaborators.

Builds real trees under tmp_path and checks listing order, ignore rules
and per-file read outcomes.
"""

import os
from pathlib import Path

import pytest

from repoprompt.domain.errors import PathRejected
from repoprompt.infra.fs import (
    LocalDirectoryLister,
    LocalFileReader,
    is_ignored,
    load_gitignore_patterns,
    normalize_path,
)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a10.txt").write_text("ten", encoding="utf-8")
    (tmp_path / "src" / "a2.txt").write_text("two", encoding="utf-8")
    (tmp_path / "build").mkdir()
    (tmp_path / "build" / "out.txt").write_text("artifact", encoding="utf-8")
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref", encoding="utf-8")
    (tmp_path / "debug.log").write_text("noise", encoding="utf-8")
    (tmp_path / "main.py").write_text("print('hi')\n", encoding="utf-8")
    (tmp_path / ".gitignore").write_text("# comment\nbuild/\n*.log\n!keep.log\n", encoding="utf-8")
    return tmp_path

# -----------------------------------------------------------------------------
# LISTING
# -----------------------------------------------------------------------------

def test_list_directory_respects_gitignore(project: Path) -> None:
    """TC-01: Ignored entries and .git are skipped; folders come first."""
    root, tree = LocalDirectoryLister().list_directory(str(project))

    assert root == os.path.realpath(str(project))
    assert list(tree) == ["src", ".gitignore", "main.py"]
    assert tree["src"]["type"] == "folder"
    assert list(tree["src"]["children"]) == ["a2.txt", "a10.txt"]
    assert tree["main.py"]["path"] == os.path.join(root, "main.py")


def test_list_directory_without_gitignore(project: Path) -> None:
    """TC-02: Disabling .gitignore keeps ignored entries but never .git."""
    _, tree = LocalDirectoryLister(respect_gitignore=False).list_directory(str(project))

    assert "build" in tree
    assert "debug.log" in tree
    assert ".git" not in tree


def test_list_directory_rejects_missing_and_file_paths(project: Path) -> None:
    """TC-03: Nonexistent paths and plain files are rejected."""
    lister = LocalDirectoryLister()

    with pytest.raises(PathRejected):
        lister.list_directory(str(project / "missing"))
    with pytest.raises(PathRejected):
        lister.list_directory(str(project / "main.py"))
    with pytest.raises(PathRejected):
        lister.list_directory("   ")


def test_gitignore_parsing_and_matching(project: Path) -> None:
    """TC-04: Comments and negations are dropped; slash rules match by path."""
    patterns = load_gitignore_patterns(str(project))

    assert patterns == ["build", "*.log"]
    assert is_ignored("debug.log", "debug.log", patterns)
    assert is_ignored(os.path.join("src", "a.txt"), "a.txt", ["/src"]) is False
    assert is_ignored(os.path.join("docs", "api", "x.md"), "x.md", ["docs/api"])
    assert load_gitignore_patterns(str(project / "src")) == []


def test_normalize_path_fallback(tmp_path: Path) -> None:
    """TC-05: Blank input resolves to the absolute fallback."""
    assert normalize_path("", str(tmp_path)) == os.path.abspath(str(tmp_path))
    assert os.path.isabs(normalize_path("relative/dir", str(tmp_path)))

# -----------------------------------------------------------------------------
# READING
# -----------------------------------------------------------------------------

def test_read_files_returns_one_entry_per_path(project: Path) -> None:
    """TC-06: Missing and binary files fail without affecting the others."""
    binary = project / "blob.bin"
    binary.write_bytes(b"\xff\xfe\x00\x81")
    good = str(project / "src" / "a2.txt")
    missing = str(project / "src" / "gone.txt")

    results = LocalFileReader().read_files([good, missing, str(binary)])

    assert set(results) == {good, missing, str(binary)}
    assert results[good].success is True
    assert results[good].content == "two"
    assert results[missing].success is False
    assert "not found" in results[missing].error
    assert results[str(binary)].success is False
