from __future__ import annotations

"""
Integration tests for the persistence backends.

JSON key-value documents and the SQLite blob store are exercised against
real files under tmp_path.
"""

import json
import os
from pathlib import Path

from repoprompt.infra.storage import (
    JsonFileKeyValueStore,
    MemoryBlobStore,
    SqliteBlobStore,
    session_file_path,
)

# -----------------------------------------------------------------------------
# KEY-VALUE STORE
# -----------------------------------------------------------------------------

def test_json_store_round_trip(tmp_path: Path) -> None:
    """TC-01: Values written by one store are read back by a fresh one."""
    path = str(tmp_path / "sessions" / "work.json")
    store = JsonFileKeyValueStore(path)
    store.set("userInstructions", "Be brief.")
    store.set("fileSelection_1", ["/w/a.txt"])

    reopened = JsonFileKeyValueStore(path)
    assert reopened.get("userInstructions") == "Be brief."
    assert reopened.get("fileSelection_1") == ["/w/a.txt"]
    assert reopened.get("missing") is None

    reopened.delete("fileSelection_1")
    with open(path, "r", encoding="utf-8") as f:
        assert json.load(f) == {"userInstructions": "Be brief."}


def test_json_store_corrupt_document_starts_empty(tmp_path: Path) -> None:
    """TC-02: A corrupt file reads as empty and is replaced on write."""
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")

    store = JsonFileKeyValueStore(str(path))
    assert store.get("anything") is None

    store.set("k", 1)
    assert json.loads(path.read_text(encoding="utf-8")) == {"k": 1}


def test_json_store_non_object_document(tmp_path: Path) -> None:
    """TC-03: A JSON array at the root is treated as malformed."""
    path = tmp_path / "list.json"
    path.write_text("[1, 2]", encoding="utf-8")

    assert JsonFileKeyValueStore(str(path)).get("k") is None


def test_session_file_path_sanitizes_name(tmp_path: Path) -> None:
    """TC-04: Unsafe characters are replaced; blank names map to default."""
    assert session_file_path("my project/v2", str(tmp_path)) == os.path.join(
        str(tmp_path), "sessions", "my_project_v2.json"
    )
    assert session_file_path("  ", str(tmp_path)).endswith("default.json")

# -----------------------------------------------------------------------------
# BLOB STORE
# -----------------------------------------------------------------------------

def test_sqlite_blob_store_namespaces(tmp_path: Path) -> None:
    """TC-05: Blobs are isolated per namespace and per directory."""
    db_path = str(tmp_path / "blobs.db")
    first = SqliteBlobStore(namespace="one", db_path=db_path)
    second = SqliteBlobStore(namespace="two", db_path=db_path)

    first.put(1, "a.txt", "alpha")
    first.put(2, "a.txt", "beta")
    second.put(1, "a.txt", "gamma")

    assert first.get(1, "a.txt") == "alpha"
    assert first.get(2, "a.txt") == "beta"
    assert second.get(1, "a.txt") == "gamma"
    assert first.get(1, "missing.txt") is None

    first.clear_directory(1)
    assert first.get(1, "a.txt") is None
    assert first.get(2, "a.txt") == "beta"

    first.clear()
    assert first.get(2, "a.txt") is None
    assert second.get(1, "a.txt") == "gamma"


def test_sqlite_blob_store_overwrite(tmp_path: Path) -> None:
    """TC-06: Writing the same key replaces the content."""
    store = SqliteBlobStore(db_path=str(tmp_path / "blobs.db"))
    store.put(1, "x.txt", "old")
    store.put(1, "x.txt", "new")

    assert store.get(1, "x.txt") == "new"


def test_sqlite_blob_store_unusable_path_degrades(tmp_path: Path) -> None:
    """TC-07: An unopenable database disables the store instead of raising."""
    store = SqliteBlobStore(db_path=str(tmp_path / "no" / "such" / "dir" / "blobs.db"))

    store.put(1, "x.txt", "content")
    assert store.get(1, "x.txt") is None
    store.clear()


def test_memory_blob_store_clear_directory() -> None:
    """TC-08: Clearing one directory leaves the others."""
    store = MemoryBlobStore()
    store.put(1, "a", "1")
    store.put(2, "a", "2")

    store.clear_directory(1)

    assert store.get(1, "a") is None
    assert store.get(2, "a") == "2"
