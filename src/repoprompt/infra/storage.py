from __future__ import annotations

"""
Local Persistence Services.

Key-value persistence (one JSON document per logical session) and the blob
content store used by in-memory (uploaded) directories. Both backends are
thread-safe; a storage error is logged and degrades to a miss instead of
interrupting selection or assembly.
"""

import json
import logging
import os
import re
import sqlite3
import threading
from typing import Any, Dict, Optional, Tuple

from repoprompt.domain.errors import MalformedPersistedState
from repoprompt.infra.fs import get_user_data_dir

logger = logging.getLogger(__name__)

SESSIONS_SUBDIR = "sessions"
_SAFE_NAME_RX = re.compile(r"[^A-Za-z0-9_.-]+")


def session_file_path(session_name: str, base_dir: Optional[str] = None) -> str:
    """Location of the JSON document backing a named session."""
    safe = _SAFE_NAME_RX.sub("_", session_name.strip()) or "default"
    return os.path.join(base_dir or get_user_data_dir(), SESSIONS_SUBDIR, f"{safe}.json")

# -----------------------------------------------------------------------------
# KEY-VALUE PERSISTENCE
# -----------------------------------------------------------------------------

class MemoryKeyValueStore:
    """Volatile key-value store (tests, --session-less runs)."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None) -> None:
        self._data: Dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def snapshot(self) -> Dict[str, Any]:
        return dict(self._data)


class JsonFileKeyValueStore:
    """
    Key-value store persisted as a single JSON object on disk.

    The document is loaded lazily on first access. A corrupt document is
    logged and replaced by an empty one on the next write.
    """

    def __init__(self, file_path: str) -> None:
        self._file_path = file_path
        self._lock = threading.Lock()
        self._data: Optional[Dict[str, Any]] = None

    @property
    def file_path(self) -> str:
        return self._file_path

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            data = self._load()
            data[key] = value
            self._flush(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._load()
            if data.pop(key, None) is not None:
                self._flush(data)

    def _load(self) -> Dict[str, Any]:
        if self._data is not None:
            return self._data
        try:
            self._data = self._read_document()
        except MalformedPersistedState as e:
            logger.warning(f"{e} Starting from an empty session.")
            self._data = {}
        return self._data

    def _read_document(self) -> Dict[str, Any]:
        if not os.path.exists(self._file_path):
            return {}
        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise MalformedPersistedState(f"Unreadable session file {self._file_path}: {e}") from e
        if not isinstance(data, dict):
            raise MalformedPersistedState(f"Session file {self._file_path} is not a JSON object.")
        return data

    def _flush(self, data: Dict[str, Any]) -> None:
        tmp_path = f"{self._file_path}.tmp"
        try:
            os.makedirs(os.path.dirname(self._file_path) or ".", exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self._file_path)
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to persist session state to {self._file_path}: {e}")

# -----------------------------------------------------------------------------
# BLOB CONTENT STORE
# -----------------------------------------------------------------------------

class MemoryBlobStore:
    """Volatile blob store keyed by (directory id, path)."""

    def __init__(self) -> None:
        self._blobs: Dict[Tuple[int, str], str] = {}

    def put(self, dir_id: int, path: str, content: str) -> None:
        self._blobs[(dir_id, path)] = content

    def get(self, dir_id: int, path: str) -> Optional[str]:
        return self._blobs.get((dir_id, path))

    def clear(self) -> None:
        self._blobs.clear()

    def clear_directory(self, dir_id: int) -> None:
        for key in [k for k in self._blobs if k[0] == dir_id]:
            del self._blobs[key]


class SqliteBlobStore:
    """
    SQLite-backed content store for uploaded files.

    Entries are namespaced per session so several sessions can share one
    database file. Storage failures disable the store instead of raising.
    """

    DB_FILENAME = "blobs.db"

    def __init__(self, namespace: str = "default", db_path: Optional[str] = None) -> None:
        self._db_path = db_path or os.path.join(get_user_data_dir(), self.DB_FILENAME)
        self._namespace = namespace
        self._lock = threading.Lock()
        self._enabled = True

        self._init_db()

    def _init_db(self) -> None:
        try:
            with self._lock:
                with sqlite3.connect(self._db_path) as conn:
                    cursor = conn.cursor()
                    cursor.execute("PRAGMA journal_mode=WAL;")
                    cursor.execute("""
                        CREATE TABLE IF NOT EXISTS blobs (
                            namespace TEXT NOT NULL,
                            dir_id INTEGER NOT NULL,
                            path TEXT NOT NULL,
                            content TEXT,
                            PRIMARY KEY (namespace, dir_id, path)
                        )
                    """)
                    conn.commit()
            logger.debug(f"SqliteBlobStore: Database initialized at {self._db_path}")

        except sqlite3.Error as e:
            logger.warning(f"SqliteBlobStore: Failed to initialize database. Store disabled. Error: {e}")
            self._enabled = False

    def put(self, dir_id: int, path: str, content: str) -> None:
        if not self._enabled:
            return
        try:
            with self._lock:
                with sqlite3.connect(self._db_path) as conn:
                    conn.execute(
                        "INSERT OR REPLACE INTO blobs (namespace, dir_id, path, content) VALUES (?, ?, ?, ?)",
                        (self._namespace, dir_id, path, content),
                    )
                    conn.commit()
        except sqlite3.Error as e:
            logger.warning(f"SqliteBlobStore: Write error for {path}: {e}")

    def get(self, dir_id: int, path: str) -> Optional[str]:
        if not self._enabled:
            return None
        try:
            with self._lock:
                with sqlite3.connect(self._db_path) as conn:
                    row = conn.execute(
                        "SELECT content FROM blobs WHERE namespace = ? AND dir_id = ? AND path = ?",
                        (self._namespace, dir_id, path),
                    ).fetchone()
            return None if row is None or row[0] is None else str(row[0])
        except sqlite3.Error as e:
            logger.warning(f"SqliteBlobStore: Read error for {path}: {e}")
            return None

    def clear(self) -> None:
        self._delete("DELETE FROM blobs WHERE namespace = ?", (self._namespace,))

    def clear_directory(self, dir_id: int) -> None:
        self._delete("DELETE FROM blobs WHERE namespace = ? AND dir_id = ?", (self._namespace, dir_id))

    def _delete(self, sql: str, params: Tuple[Any, ...]) -> None:
        if not self._enabled:
            return
        try:
            with self._lock:
                with sqlite3.connect(self._db_path) as conn:
                    conn.execute(sql, params)
                    conn.commit()
        except sqlite3.Error as e:
            logger.error(f"SqliteBlobStore: Failed to delete entries: {e}")
