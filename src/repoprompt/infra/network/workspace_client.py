from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Tuple

from repoprompt.domain.constants import DEFAULT_SERVER_ENDPOINT
from repoprompt.domain.errors import NetworkFailure, PathRejected
from repoprompt.domain.pipeline_models import FileResult
from repoprompt.domain.tree_models import RawTree
from repoprompt.infra.network.common import DEFAULT_TIMEOUT, request_json

logger = logging.getLogger(__name__)

BATCH_TIMEOUT = 30


class HttpWorkspaceClient:
    """
    Remote directory lister, file readers and dependency provider.

    Talks to a workspace server exposing /api/connect, /api/directory,
    /api/dependencies, /api/file and /api/files.
    """

    def __init__(self, endpoint: str = DEFAULT_SERVER_ENDPOINT, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout

    def _url(self, route: str) -> str:
        return f"{self.endpoint}{route}"

    def connect(self) -> bool:
        """Handshake with the server; never raises."""
        try:
            data = request_json("GET", self._url("/api/connect"), timeout=self.timeout)
        except NetworkFailure as e:
            logger.warning(f"Network: Workspace server unreachable: {e}")
            return False
        return bool(data.get("success"))

    def list_directory(self, path: str) -> Tuple[str, RawTree]:
        data = request_json("GET", self._url("/api/directory"), timeout=self.timeout, params={"path": path})
        if not data.get("success"):
            raise PathRejected(str(data.get("error") or f"Directory rejected: {path}"))
        tree = data.get("tree")
        if not isinstance(tree, dict):
            raise NetworkFailure("Malformed directory response: missing tree.")
        return str(data.get("root") or path), tree

    def get_dependencies(self, path: str) -> Dict[str, List[str]]:
        data = request_json("GET", self._url("/api/dependencies"), timeout=self.timeout, params={"path": path})
        if not data.get("success"):
            raise PathRejected(str(data.get("error") or f"Directory rejected: {path}"))
        return _coerce_graph(data.get("dependencyGraph"))

    def read_file(self, path: str) -> FileResult:
        data = request_json("GET", self._url("/api/file"), timeout=self.timeout, params={"path": path})
        return FileResult.from_dict(data)

    def read_files(self, paths: Iterable[str]) -> Dict[str, FileResult]:
        """
        Batch read in one round trip.

        Paths absent from the response come back as failures so the result
        always holds exactly one entry per requested path.

        Raises:
            NetworkFailure: If the whole batch fails.
        """
        requested = list(dict.fromkeys(paths))
        if not requested:
            return {}

        data = request_json(
            "POST", self._url("/api/files"), timeout=max(self.timeout, BATCH_TIMEOUT), json={"paths": requested}
        )
        if not data.get("success"):
            raise NetworkFailure(str(data.get("error") or "Batch read rejected by server."))

        files = data.get("files")
        if not isinstance(files, dict):
            files = {}

        results: Dict[str, FileResult] = {}
        for path in requested:
            if path in files:
                results[path] = FileResult.from_dict(files[path])
            else:
                results[path] = FileResult.fail("Missing from batch response")
        logger.debug(f"Network: Batch read of {len(requested)} file(s) completed.")
        return results


def _coerce_graph(value: Any) -> Dict[str, List[str]]:
    if not isinstance(value, dict):
        return {}
    graph: Dict[str, List[str]] = {}
    for source, deps in value.items():
        if isinstance(source, str) and isinstance(deps, list):
            graph[source] = [d for d in deps if isinstance(d, str)]
    return graph
