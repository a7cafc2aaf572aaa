from __future__ import annotations

"""
File Content Resolution.

Resolves the text of every selected file for one build. In-memory files come
from the blob store by (directory id, path); path-backed files are served
from the path-keyed cache or fetched through a single batch call per build.
Each file resolves independently: failures are recorded in the workspace's
failed set under (directory id, path) and yield empty content, successes
clear the entry.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

from repoprompt.core.services.workspace import Directory, Workspace
from repoprompt.domain.errors import PartialContentFailure, RepoPromptError
from repoprompt.domain.pipeline_models import FileResult
from repoprompt.domain.selection_models import SourceKind
from repoprompt.infra.contracts import BlobStore, FileReader

logger = logging.getLogger(__name__)

ContentKey = Tuple[int, str]


class ContentResolver:
    """
    Fetches contents for a build and maintains the cache and failed set.
    """

    def __init__(
            self,
            workspace: Workspace,
            reader: Optional[FileReader] = None,
            blobs: Optional[BlobStore] = None,
    ) -> None:
        self._workspace = workspace
        self._reader = reader
        self._blobs = blobs

    async def resolve(
            self,
            entries: Sequence[Tuple[Directory, str]],
    ) -> Tuple[Dict[ContentKey, str], List[PartialContentFailure]]:
        """
        Resolve contents for (directory, path) entries.

        Args:
            entries: Selected files with their owning directory.

        Returns:
            Tuple: ({(dir_id, path): content}, failures). Failed entries map
                   to an empty string.
        """
        contents: Dict[ContentKey, str] = {}
        failures: List[PartialContentFailure] = []

        in_memory: List[ContentKey] = []
        to_fetch: List[ContentKey] = []
        cache = self._workspace.content_cache

        for directory, path in entries:
            key = (directory.id, path)
            if directory.source_kind is SourceKind.IN_MEMORY:
                in_memory.append(key)
            elif path in cache:
                contents[key] = cache[path]
            else:
                to_fetch.append(key)

        if in_memory:
            blobs = await asyncio.to_thread(self._read_blobs, in_memory)
            for key in in_memory:
                self._record(key, blobs.get(key), contents, failures, cacheable=False)

        if to_fetch:
            results = await self._fetch_batch([path for _, path in to_fetch])
            for key in to_fetch:
                self._record(key, results.get(key[1]), contents, failures, cacheable=True)

        if failures:
            logger.warning(f"{len(failures)} file(s) could not be resolved in this build.")
        return contents, failures

    def evict(self, paths: Sequence[str]) -> int:
        """Drop cached contents so the next build fetches them again."""
        removed = 0
        for path in paths:
            if self._workspace.content_cache.pop(path, None) is not None:
                removed += 1
        return removed

    # -------------------------------------------------------------------------
    # PRIVATE HELPERS
    # -------------------------------------------------------------------------

    def _read_blobs(self, keys: Sequence[ContentKey]) -> Dict[ContentKey, FileResult]:
        out: Dict[ContentKey, FileResult] = {}
        for dir_id, path in keys:
            content = self._blobs.get(dir_id, path) if self._blobs is not None else None
            if content is None:
                out[(dir_id, path)] = FileResult.fail("Content not found in upload store")
            else:
                out[(dir_id, path)] = FileResult.ok(content)
        return out

    async def _fetch_batch(self, paths: List[str]) -> Dict[str, FileResult]:
        unique = list(dict.fromkeys(paths))
        if self._reader is None:
            return {p: FileResult.fail("No file reader configured") for p in unique}
        try:
            results = await asyncio.to_thread(self._reader.read_files, unique)
        except RepoPromptError as e:
            logger.error(f"Batch read of {len(unique)} file(s) failed: {e}")
            return {p: FileResult.fail(str(e)) for p in unique}
        logger.debug(f"Batch read returned {len(results)} of {len(unique)} requested file(s).")
        return results

    def _record(
            self,
            key: ContentKey,
            result: Optional[FileResult],
            contents: Dict[ContentKey, str],
            failures: List[PartialContentFailure],
            cacheable: bool,
    ) -> None:
        _, path = key
        if result is None:
            result = FileResult.fail("Missing from batch response")

        if result.success:
            contents[key] = result.content
            self._workspace.failed.discard(key)
            if cacheable:
                self._workspace.content_cache[path] = result.content
        else:
            contents[key] = ""
            self._workspace.failed.add(key)
            failures.append(PartialContentFailure(path=path, error=result.error or "Unknown error"))
            logger.debug(f"Content failure for {path}: {result.error}")
