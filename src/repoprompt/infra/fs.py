from __future__ import annotations

"""
FileSystem Infrastructure Layer.

Provides user data directory resolution, path validation, the local
directory lister (with .gitignore support) and the local file readers.
Acts as an abstraction over the 'os' module so every collaborator behaves
the same on Windows and Unix-like systems.
"""

import fnmatch
import logging
import os
from typing import Dict, Iterable, List, Optional, Tuple

from repoprompt.domain.constants import APP_NAME
from repoprompt.domain.errors import NotFoundOrPermission, PathRejected
from repoprompt.domain.pipeline_models import FileResult
from repoprompt.domain.tree_models import RawTree
from repoprompt.utils.natural_sort import sort_entries

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# GLOBAL CONSTANTS
# -----------------------------------------------------------------------------

APP_DIR_NAME = APP_NAME
UNIX_APP_DIR_NAME = ".repoprompt"

# Never listed, regardless of .gitignore
ALWAYS_IGNORED = {".git"}

# -----------------------------------------------------------------------------
# PATH RESOLUTION API
# -----------------------------------------------------------------------------

def get_user_data_dir() -> str:
    """
    Resolve the standard OS-specific directory for persistent application data.

    Automatically creates the hierarchy if it does not exist.
    Standards:
    - Windows: %LOCALAPPDATA%/RepoPrompt
    - Linux/Mac: ~/.repoprompt

    Returns:
        str: Absolute path to the application data directory.
    """
    path: str = ""

    if os.name == "nt":
        base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
        if base:
            path = os.path.join(base, APP_DIR_NAME)

    if not path:
        path = os.path.join(os.path.expanduser("~"), UNIX_APP_DIR_NAME)

    try:
        os.makedirs(path, exist_ok=True)
    except OSError:
        pass

    return os.path.abspath(path)


def normalize_path(path: Optional[str], fallback: str) -> str:
    """
    Normalize a path string into an absolute filesystem path.

    Handles environment variable expansion ($VAR/%VAR%) and user home
    shortcuts (~/). Reverts to fallback if the input is empty.
    """
    p = (path or "").strip()
    if not p:
        p = fallback
    p = os.path.expandvars(os.path.expanduser(p))
    return os.path.abspath(p)


def validate_path(requested_path: str) -> str:
    """
    Resolve a requested directory path.

    Args:
        requested_path: Raw path as typed by the user or received remotely.

    Returns:
        str: Canonical absolute path.

    Raises:
        PathRejected: If the path is empty or does not exist.
    """
    if not requested_path or not requested_path.strip():
        raise PathRejected("Path cannot be empty.")
    resolved = normalize_path(requested_path, os.getcwd())
    if not os.path.exists(resolved):
        raise PathRejected(f"Path does not exist: {requested_path}")
    return os.path.realpath(resolved)

# -----------------------------------------------------------------------------
# GITIGNORE INTEGRATION
# -----------------------------------------------------------------------------

def load_gitignore_patterns(root_path: str) -> List[str]:
    """
    Read the glob rules of the .gitignore file at the root of a tree.

    Comments, blank lines and negations are skipped; trailing slashes are
    dropped so folder rules match the folder name.
    """
    gitignore_path = os.path.join(root_path, ".gitignore")
    if not os.path.isfile(gitignore_path):
        return []

    patterns: List[str] = []
    try:
        with open(gitignore_path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#") or line.startswith("!"):
                    continue
                patterns.append(line.rstrip("/"))
    except OSError as e:
        logger.warning(f"Could not read .gitignore in {root_path}: {e}")
    return patterns


def is_ignored(rel_path: str, name: str, patterns: Iterable[str]) -> bool:
    """Match an entry against gitignore globs by name and by relative path."""
    rel = rel_path.replace(os.sep, "/")
    for pattern in patterns:
        anchored = pattern.lstrip("/")
        if "/" in anchored:
            if fnmatch.fnmatch(rel, anchored) or rel.startswith(anchored + "/"):
                return True
        elif fnmatch.fnmatch(name, anchored):
            return True
    return False

# -----------------------------------------------------------------------------
# LOCAL COLLABORATORS
# -----------------------------------------------------------------------------

class LocalDirectoryLister:
    """
    Lists a directory into the nested wire shape, folders first in natural order.
    """

    def __init__(self, respect_gitignore: bool = True) -> None:
        self.respect_gitignore = respect_gitignore

    def list_directory(self, path: str) -> Tuple[str, RawTree]:
        """
        Walk a directory.

        Args:
            path: Directory to list.

        Returns:
            Tuple[str, RawTree]: (canonical root, nested children of the root).

        Raises:
            PathRejected: If the path does not exist or is not a directory.
            NotFoundOrPermission: If the root cannot be read.
        """
        root = validate_path(path)
        if not os.path.isdir(root):
            raise PathRejected(f"Not a directory: {path}")

        patterns = load_gitignore_patterns(root) if self.respect_gitignore else []
        try:
            tree = self._build(root, root, patterns)
        except PermissionError as e:
            raise NotFoundOrPermission(f"Permission denied: {e}") from e
        except OSError as e:
            raise NotFoundOrPermission(f"Failed to read directory: {e}") from e

        logger.debug(f"Listed directory {root}")
        return root, tree

    def _build(self, root: str, current: str, patterns: List[str]) -> RawTree:
        triples = []
        with os.scandir(current) as it:
            for entry in it:
                if entry.name in ALWAYS_IGNORED:
                    continue
                rel = os.path.relpath(entry.path, root)
                if patterns and is_ignored(rel, entry.name, patterns):
                    continue
                try:
                    is_dir = entry.is_dir()
                except OSError:
                    is_dir = False
                triples.append((entry.name, is_dir, entry.path))

        tree: RawTree = {}
        for name, is_dir, full_path in sort_entries(triples):
            if is_dir:
                try:
                    children = self._build(root, full_path, patterns)
                except PermissionError:
                    logger.warning(f"Skipping unreadable folder: {full_path}")
                    children = {}
                tree[name] = {"type": "folder", "path": full_path, "children": children}
            else:
                tree[name] = {"type": "file", "path": full_path}
        return tree


class LocalFileReader:
    """
    Single and batch text readers over the local filesystem.

    Every path resolves independently: one unreadable file never affects
    the others.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def read_file(self, path: str) -> FileResult:
        try:
            with open(path, "r", encoding=self.encoding) as f:
                return FileResult.ok(f.read())
        except FileNotFoundError:
            return FileResult.fail(f"File not found: {path}")
        except PermissionError:
            return FileResult.fail(f"Permission denied: {path}")
        except UnicodeDecodeError as e:
            return FileResult.fail(f"Not a text file ({e.reason})")
        except OSError as e:
            return FileResult.fail(str(e))

    def read_files(self, paths: Iterable[str]) -> Dict[str, FileResult]:
        """K paths in, K entries out."""
        return {path: self.read_file(path) for path in paths}
