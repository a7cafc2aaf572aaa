from __future__ import annotations

"""
Collaborator Contracts.

Narrow interfaces consumed by the session and the assembler. All methods
are blocking; callers move them off the event loop with asyncio.to_thread.
Local and HTTP implementations live in infra.fs, infra.storage,
infra.network and core.analysis.dependency_analyzer.
"""

from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple

from repoprompt.domain.pipeline_models import FileResult
from repoprompt.domain.tree_models import RawTree


class DirectoryLister(Protocol):
    def list_directory(self, path: str) -> Tuple[str, RawTree]:
        """Return (canonical root, nested tree) or raise PathRejected/NotFoundOrPermission."""
        ...


class FileReader(Protocol):
    def read_file(self, path: str) -> FileResult:
        ...

    def read_files(self, paths: Iterable[str]) -> Dict[str, FileResult]:
        """One round trip; exactly one entry per requested path."""
        ...


class DependencyProvider(Protocol):
    def get_dependencies(self, path: str) -> Dict[str, List[str]]:
        ...


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, value: Any) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class BlobStore(Protocol):
    def put(self, dir_id: int, path: str, content: str) -> None:
        ...

    def get(self, dir_id: int, path: str) -> Optional[str]:
        ...

    def clear(self) -> None:
        ...

    def clear_directory(self, dir_id: int) -> None:
        ...
