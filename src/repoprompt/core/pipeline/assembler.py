from __future__ import annotations

"""
Context Bundle Assembler.

Turns the workspace selection into the four-section context bundle:
file maps, file contents, prompt snippets and user instructions. Builds are
driven by a coalescing scheduler (Idle -> Building -> Idle) and announced to
subscribers through a single BuildResult notification per pass.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from repoprompt.core.analysis.cross_reference import compute_highlights
from repoprompt.core.analysis.tree_renderer import render_selected_tree
from repoprompt.core.pipeline.content import ContentKey, ContentResolver
from repoprompt.core.pipeline.formatting import (
    format_file_block,
    format_file_contents,
    format_file_map,
    format_file_maps,
    format_instructions,
    format_prompts,
    join_sections,
)
from repoprompt.core.pipeline.scheduler import Debouncer
from repoprompt.core.processing.tokenizer import count_tokens
from repoprompt.core.services.workspace import Directory, Workspace
from repoprompt.domain.constants import DEFAULT_COALESCE_DELAY_MS, DEFAULT_TOKEN_ENCODING
from repoprompt.domain.pipeline_models import BuildResult
from repoprompt.domain.selection_models import SourceKind
from repoprompt.infra.contracts import BlobStore, FileReader

logger = logging.getLogger(__name__)

Subscriber = Callable[[BuildResult], Any]


class AssemblerState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"

# -----------------------------------------------------------------------------
# PURE RENDERING
# -----------------------------------------------------------------------------

def collect_selection(workspace: Workspace) -> List[Tuple[Directory, List[str]]]:
    """Directories with a non-empty selection, in registration order."""
    out: List[Tuple[Directory, List[str]]] = []
    for directory in workspace:
        selected = directory.selection.selected_files()
        if selected:
            out.append((directory, selected))
    return out


def render_bundle(workspace: Workspace, contents: Mapping[ContentKey, str]) -> str:
    """
    Render the bundle from the current selection and resolved contents.

    Identical selection, contents, prompts and instructions always give an
    identical string.

    Args:
        workspace: Source of selection, prompts and instructions.
        contents: Resolved text by (directory id, path); missing entries
                  render as empty blocks.

    Returns:
        str: The context bundle.
    """
    maps: List[str] = []
    blocks: List[str] = []
    for directory, selected in collect_selection(workspace):
        maps.append(format_file_map(directory.root, render_selected_tree(directory.tree, selected)))
        for path in selected:
            blocks.append(format_file_block(path, contents.get((directory.id, path), "")))

    prompts = [(name, workspace.prompts.get(name)) for name in workspace.prompt_selection]
    return join_sections(
        format_file_maps(maps),
        format_file_contents(blocks),
        format_prompts(prompts),
        format_instructions(workspace.instructions),
    )

# -----------------------------------------------------------------------------
# SCHEDULED ASSEMBLY
# -----------------------------------------------------------------------------

class ContextAssembler:
    """
    Debounced producer of BuildResults for a workspace.
    """

    def __init__(
            self,
            workspace: Workspace,
            reader: Optional[FileReader] = None,
            blobs: Optional[BlobStore] = None,
            delay_ms: int = DEFAULT_COALESCE_DELAY_MS,
            token_encoding: str = DEFAULT_TOKEN_ENCODING,
    ) -> None:
        self._workspace = workspace
        self._resolver = ContentResolver(workspace, reader=reader, blobs=blobs)
        self._debouncer = Debouncer(self._scheduled_pass, delay_ms)
        self._token_encoding = token_encoding
        self._subscribers: List[Subscriber] = []
        self._state = AssemblerState.IDLE
        self.latest: Optional[BuildResult] = None

    @property
    def state(self) -> AssemblerState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    @property
    def build_count(self) -> int:
        return self._debouncer.runs

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a 'bundle ready' listener (sync or async callable).

        Returns:
            Callable[[], None]: Unsubscribe function.
        """
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def schedule(self) -> None:
        """Restart the coalescing window; the trailing edge runs one build."""
        self._debouncer.trigger()

    def cancel(self) -> None:
        """Drop a scheduled pass that has not started yet."""
        self._debouncer.cancel()

    async def flush(self) -> Optional[BuildResult]:
        """Run a pending pass now and return the latest result."""
        await self._debouncer.flush()
        return self.latest

    def refresh_selected(self) -> int:
        """
        Evict selected path-backed files from the cache and schedule a pass.

        Returns:
            int: Number of cache entries evicted.
        """
        paths = [
            path
            for directory, selected in collect_selection(self._workspace)
            if directory.source_kind is SourceKind.PATH_BACKED
            for path in selected
        ]
        evicted = self._resolver.evict(paths)
        logger.info(f"Refreshing {len(paths)} selected file(s) ({evicted} cached).")
        self.schedule()
        return evicted

    async def build(self) -> BuildResult:
        """
        Execute one full pass immediately and notify subscribers.
        """
        self._state = AssemblerState.BUILDING
        try:
            entries = [
                (directory, path)
                for directory, selected in collect_selection(self._workspace)
                for path in selected
            ]
            contents, failures = await self._resolver.resolve(entries)
            bundle = render_bundle(self._workspace, contents)
            dependencies = compute_highlights(self._workspace)
            tokens = await asyncio.to_thread(count_tokens, bundle, self._token_encoding)
            result = BuildResult(
                bundle=bundle,
                failed=tuple(self._workspace.failed_paths()),
                dependencies=dependencies,
                token_count=tokens,
            )
        finally:
            self._state = AssemblerState.IDLE

        logger.debug(
            f"Bundle assembled: {len(entries)} file(s), {len(failures)} failure(s), {result.token_count} tokens."
        )
        self.latest = result
        await self._notify(result)
        return result

    async def _scheduled_pass(self) -> None:
        await self.build()

    async def _notify(self, result: BuildResult) -> None:
        for callback in list(self._subscribers):
            try:
                outcome = callback(result)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error(f"Bundle subscriber failed: {e}", exc_info=True)


def summarize(result: BuildResult) -> Dict[str, Any]:
    """Compact dict view of a result for logs and the CLI."""
    return {
        "chars": len(result.bundle),
        "tokens": result.token_count,
        "failed": len(result.failed),
        "dependencies": len(result.dependencies),
    }
