from __future__ import annotations

"""
Session Controller.

Single cooperative entry point used by the interfaces. Every user action
updates the selection synchronously and then schedules the debounced
assembly pass; I/O with the collaborators (listing, dependency analysis,
uploads, persistence) is awaited off the event loop. After every pass the
per-directory selection, collapse sets, prompt selection and instructions
are persisted to the key-value store.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set, Tuple

from repoprompt.core.analysis.dependency_analyzer import PythonDependencyAnalyzer
from repoprompt.core.analysis.graph_layout import LayoutWorker, build_graph_payload
from repoprompt.core.analysis.search import folders_to_reveal, search_files
from repoprompt.core.pipeline.assembler import ContextAssembler
from repoprompt.core.selection.propagator import SelectionPropagator
from repoprompt.core.selection.visibility import LazyVisibilitySync
from repoprompt.core.selection.whitelist import Whitelist
from repoprompt.core.services.prompts import PromptLibrary
from repoprompt.core.services.workspace import Directory, Workspace
from repoprompt.domain.constants import (
    DEFAULT_COALESCE_DELAY_MS,
    DEFAULT_INSTRUCTIONS,
    DEFAULT_SESSION_NAME,
    DEFAULT_TOKEN_ENCODING,
    KEY_PROMPT_SELECTION,
    KEY_PROMPTS,
    KEY_USER_INSTRUCTIONS,
    KEY_WHITELIST,
    collapsed_folders_key,
    file_selection_key,
)
from repoprompt.domain.errors import NetworkFailure, RepoPromptError
from repoprompt.domain.pipeline_models import BuildResult
from repoprompt.domain.selection_models import SourceKind
from repoprompt.domain.tree_models import TreeModel, normalize_relative_path
from repoprompt.infra.contracts import (
    BlobStore,
    DependencyProvider,
    DirectoryLister,
    FileReader,
    KeyValueStore,
)
from repoprompt.infra.fs import LocalDirectoryLister, LocalFileReader
from repoprompt.infra.ingest import read_zip_archive
from repoprompt.infra.network import HttpWorkspaceClient
from repoprompt.infra.storage import (
    JsonFileKeyValueStore,
    MemoryBlobStore,
    MemoryKeyValueStore,
    SqliteBlobStore,
    session_file_path,
)

logger = logging.getLogger(__name__)


class Session:
    """
    Workspace controller wiring the selection engine, the assembler and
    the collaborators together.
    """

    def __init__(
            self,
            store: KeyValueStore,
            lister: DirectoryLister,
            reader: FileReader,
            dependencies: Optional[DependencyProvider] = None,
            blobs: Optional[BlobStore] = None,
            whitelist: Optional[Whitelist] = None,
            delay_ms: int = DEFAULT_COALESCE_DELAY_MS,
            token_encoding: str = DEFAULT_TOKEN_ENCODING,
            layout_worker: Optional[LayoutWorker] = None,
    ) -> None:
        self.workspace = Workspace(whitelist)
        self.propagator = SelectionPropagator(self.workspace)
        self.visibility = LazyVisibilitySync(self.workspace)
        self._store = store
        self._lister = lister
        self._dependencies = dependencies
        self._blobs = blobs if blobs is not None else MemoryBlobStore()
        self._layout = layout_worker
        self._background: Set[asyncio.Future] = set()

        self.assembler = ContextAssembler(
            self.workspace,
            reader=reader,
            blobs=self._blobs,
            delay_ms=delay_ms,
            token_encoding=token_encoding,
        )
        self.assembler.subscribe(self._persist_after_pass)

    # -------------------------------------------------------------------------
    # LIFECYCLE
    # -------------------------------------------------------------------------

    def restore(self) -> None:
        """
        Load whitelist, prompts, prompt selection and instructions.

        Malformed persisted values fall back to the defaults.
        """
        ws = self.workspace

        raw_whitelist = self._store.get(KEY_WHITELIST)
        if raw_whitelist is not None:
            ws.whitelist.reset(Whitelist.from_json(raw_whitelist).to_json())
            ws.recompute_selectability()

        ws.prompts = PromptLibrary.from_json(self._store.get(KEY_PROMPTS))

        raw_selection = self._store.get(KEY_PROMPT_SELECTION)
        if isinstance(raw_selection, list):
            ws.prompt_selection = [n for n in dict.fromkeys(raw_selection) if isinstance(n, str) and n in ws.prompts]
        elif raw_selection is not None:
            logger.warning("Malformed persisted prompt selection. Ignoring it.")

        raw_instructions = self._store.get(KEY_USER_INSTRUCTIONS)
        if isinstance(raw_instructions, str):
            ws.instructions = raw_instructions
        elif raw_instructions is not None:
            logger.warning("Malformed persisted instructions. Using the default text.")
            ws.instructions = DEFAULT_INSTRUCTIONS

        logger.debug(
            f"Session restored: {len(ws.whitelist)} pattern(s), {len(ws.prompts)} prompt(s)."
        )

    def schedule(self) -> None:
        self.assembler.schedule()

    async def flush(self) -> Optional[BuildResult]:
        """Run any pending pass now and return the latest result."""
        return await self.assembler.flush()

    async def settle(self) -> Optional[BuildResult]:
        """Wait for background fetches (dependency graphs), then flush."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)
        return await self.flush()

    def close(self) -> None:
        self.assembler.cancel()
        for task in list(self._background):
            task.cancel()
        if self._layout is not None:
            self._layout.shutdown()

    # -------------------------------------------------------------------------
    # DIRECTORIES
    # -------------------------------------------------------------------------

    async def add_path_directory(self, path: str) -> Directory:
        """
        Register and list a filesystem-backed directory.

        A listing failure is stored on the directory and logged; the
        directory stays registered as an empty tree.
        """
        directory = self.workspace.add_directory(SourceKind.PATH_BACKED, path)
        if await self._load_tree(directory, path):
            self._restore_directory_state(directory)
            self._start_dependency_fetch(directory)
        self.schedule()
        return directory

    async def add_uploaded_directory(self, label: str, files: Dict[str, str]) -> Directory:
        """Register an in-memory directory whose contents go to the blob store."""
        tree = TreeModel.from_paths(label, files.keys(), name=label)
        directory = self.workspace.add_directory(SourceKind.IN_MEMORY, label, tree)
        await asyncio.to_thread(self._write_blobs, directory.id, dict(files))
        self._restore_directory_state(directory)
        logger.info(f"Uploaded directory #{directory.id} registered: {label} ({len(files)} file(s))")
        self.schedule()
        return directory

    async def add_zip_directory(self, zip_path: str) -> Directory:
        """
        Ingest a zip archive as an in-memory directory.

        Raises:
            PathRejected: If the archive is missing or invalid.
        """
        label, files = await asyncio.to_thread(read_zip_archive, zip_path)
        return await self.add_uploaded_directory(label, files)

    async def refresh_directory(self, dir_id: int) -> bool:
        """
        Re-list a path-backed directory, keeping selection by path.

        Returns:
            bool: False for unknown or in-memory directories and failed listings.
        """
        directory = self.workspace.get(dir_id)
        if directory is None or directory.source_kind is not SourceKind.PATH_BACKED:
            return False

        for path in directory.tree.files():
            self.workspace.content_cache.pop(path, None)
        ok = await self._load_tree(directory, directory.root)
        if ok:
            self._start_dependency_fetch(directory)
        self.schedule()
        return ok

    def remove_directory(self, dir_id: int) -> bool:
        directory = self.workspace.remove(dir_id)
        if directory is None:
            return False
        self._store.delete(file_selection_key(dir_id))
        self._store.delete(collapsed_folders_key(dir_id))
        if directory.source_kind is SourceKind.IN_MEMORY:
            self._blobs.clear_directory(dir_id)
        logger.info(f"Directory #{dir_id} removed: {directory.root}")
        self.schedule()
        return True

    # -------------------------------------------------------------------------
    # SELECTION
    # -------------------------------------------------------------------------

    def toggle_file(self, dir_id: int, path: str, value: bool) -> bool:
        applied = self.propagator.toggle_file(dir_id, path, value)
        if applied:
            self.schedule()
        return applied

    def toggle_folder(self, dir_id: int, path: str, value: bool) -> bool:
        applied = self.propagator.toggle_folder(dir_id, path, value)
        if applied:
            self.schedule()
        return applied

    def select_path(self, dir_id: int, path: str, value: bool = True) -> bool:
        """Toggle a file or a folder, whichever the path names."""
        directory = self.workspace.get(dir_id)
        if directory is None:
            return False
        if directory.tree.is_folder(path):
            return self.toggle_folder(dir_id, path, value)
        return self.toggle_file(dir_id, path, value)

    def expand(self, dir_id: int, folder: str) -> bool:
        applied = self.visibility.expand(dir_id, folder)
        if applied:
            self.schedule()
        return applied

    def collapse(self, dir_id: int, folder: str) -> bool:
        applied = self.visibility.collapse(dir_id, folder)
        if applied:
            self.schedule()
        return applied

    def search(self, dir_id: int, term: str, reveal: bool = False) -> List[Tuple[str, str]]:
        """
        Search file names of a directory; optionally expand the folders
        leading to the matches.
        """
        directory = self.workspace.get(dir_id)
        if directory is None:
            return []
        matches = search_files(directory.tree, term)
        if reveal:
            for folder in sorted(folders_to_reveal(directory.tree, [p for p, _ in matches]), key=len):
                if folder in directory.collapsed:
                    self.visibility.expand(dir_id, folder)
            self.schedule()
        return matches

    def refresh_contents(self) -> int:
        """Re-fetch the contents of the selected path-backed files on the next pass."""
        return self.assembler.refresh_selected()

    # -------------------------------------------------------------------------
    # PROMPTS, INSTRUCTIONS, WHITELIST
    # -------------------------------------------------------------------------

    def set_instructions(self, text: str) -> None:
        self.workspace.instructions = text if text and text.strip() else DEFAULT_INSTRUCTIONS
        self.schedule()

    def add_prompt(self, name: str, text: str) -> str:
        stored = self.workspace.prompts.add(name, text)
        self._store.set(KEY_PROMPTS, self.workspace.prompts.to_json())
        return stored

    def edit_prompt(self, old_name: str, new_name: str, new_text: str) -> str:
        stored = self.workspace.prompts.edit(old_name, new_name, new_text)
        ws = self.workspace
        ws.prompt_selection = [stored if n == old_name else n for n in ws.prompt_selection]
        self._store.set(KEY_PROMPTS, ws.prompts.to_json())
        self.schedule()
        return stored

    def remove_prompt(self, name: str) -> bool:
        removed = self.workspace.prompts.remove(name)
        if removed:
            self.workspace.prompt_selection = [n for n in self.workspace.prompt_selection if n != name]
            self._store.set(KEY_PROMPTS, self.workspace.prompts.to_json())
            self.schedule()
        return removed

    def select_prompt(self, name: str) -> bool:
        ws = self.workspace
        if name not in ws.prompts or name in ws.prompt_selection:
            return False
        ws.prompt_selection.append(name)
        self.schedule()
        return True

    def deselect_prompt(self, name: str) -> bool:
        ws = self.workspace
        if name not in ws.prompt_selection:
            return False
        ws.prompt_selection.remove(name)
        self.schedule()
        return True

    def add_whitelist_pattern(self, pattern: str) -> str:
        """
        Raises:
            ValueError: On empty or duplicate patterns.
        """
        stored = self.workspace.whitelist.add(pattern)
        self._whitelist_changed()
        return stored

    def remove_whitelist_pattern(self, pattern: str) -> bool:
        removed = self.workspace.whitelist.remove(pattern)
        if removed:
            self._whitelist_changed()
        return removed

    def set_whitelist(self, patterns: List[str]) -> None:
        self.workspace.whitelist.reset(patterns)
        self._whitelist_changed()

    # -------------------------------------------------------------------------
    # DEPENDENCY GRAPH
    # -------------------------------------------------------------------------

    async def layout_dependency_graph(self, width: int = 960, height: int = 600) -> Dict[str, Any]:
        """Lay out the current dependency graphs in the worker process."""
        if self._layout is None:
            self._layout = LayoutWorker()
        payload = build_graph_payload(self.workspace, width, height)
        return await self._layout.layout(payload)

    # -------------------------------------------------------------------------
    # PRIVATE HELPERS
    # -------------------------------------------------------------------------

    async def _load_tree(self, directory: Directory, path: str) -> bool:
        try:
            root, raw = await asyncio.to_thread(self._lister.list_directory, path)
        except RepoPromptError as e:
            directory.error = str(e)
            logger.warning(f"Directory #{directory.id} could not be listed: {e}")
            return False

        directory.root = root
        directory.replace_tree(TreeModel.from_raw(root, raw))
        logger.info(f"Directory #{directory.id} loaded: {root} ({len(directory.tree)} node(s))")
        return True

    def _restore_directory_state(self, directory: Directory) -> None:
        raw_paths = self._store.get(file_selection_key(directory.id))
        if isinstance(raw_paths, list):
            applied = directory.selection.apply_paths(raw_paths)
            logger.debug(f"Directory #{directory.id}: restored {applied} selected file(s).")
        elif raw_paths is not None:
            logger.warning(f"Malformed persisted selection for directory #{directory.id}. Ignoring it.")

        raw_collapsed = self._store.get(collapsed_folders_key(directory.id))
        if isinstance(raw_collapsed, list):
            directory.collapsed = {
                p for p in raw_collapsed if isinstance(p, str) and directory.tree.is_folder(p)
            }
        elif raw_collapsed is not None:
            logger.warning(f"Malformed persisted collapse set for directory #{directory.id}. Ignoring it.")

    def _start_dependency_fetch(self, directory: Directory) -> None:
        if self._dependencies is None:
            return
        task = asyncio.ensure_future(self._fetch_dependencies(directory))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _fetch_dependencies(self, directory: Directory) -> None:
        root = directory.root
        try:
            graph = await asyncio.to_thread(self._dependencies.get_dependencies, root)
        except RepoPromptError as e:
            logger.warning(f"Dependency graph unavailable for {root}: {e}")
            return

        # The directory may have been removed or refreshed meanwhile
        if self.workspace.get(directory.id) is not directory or directory.root != root:
            return
        directory.dependency_graph = graph
        logger.debug(f"Dependency graph received for directory #{directory.id}: {len(graph)} source(s).")
        self.schedule()

    def _write_blobs(self, dir_id: int, files: Dict[str, str]) -> None:
        for path, content in files.items():
            key = normalize_relative_path(path)
            if key:
                self._blobs.put(dir_id, key, content)

    def _whitelist_changed(self) -> None:
        self._store.set(KEY_WHITELIST, self.workspace.whitelist.to_json())
        self.workspace.recompute_selectability()
        self.schedule()

    def _snapshot(self) -> Dict[str, Any]:
        ws = self.workspace
        snapshot: Dict[str, Any] = {
            KEY_PROMPT_SELECTION: list(ws.prompt_selection),
            KEY_USER_INSTRUCTIONS: ws.instructions,
        }
        for directory in ws:
            snapshot[file_selection_key(directory.id)] = directory.selection.selected_files()
            snapshot[collapsed_folders_key(directory.id)] = sorted(directory.collapsed)
        return snapshot

    def _write_snapshot(self, snapshot: Dict[str, Any]) -> None:
        for key, value in snapshot.items():
            self._store.set(key, value)

    async def _persist_after_pass(self, result: BuildResult) -> None:
        await asyncio.to_thread(self._write_snapshot, self._snapshot())

# -----------------------------------------------------------------------------
# FACTORY
# -----------------------------------------------------------------------------

def create_session(
        config: Dict[str, Any],
        session_name: Optional[str] = None,
        server_url: Optional[str] = None,
        in_memory: bool = False,
) -> Session:
    """
    Wire a Session with the collaborators selected by the configuration.

    Args:
        config: Validated runtime configuration.
        session_name: Persistence namespace (defaults to the configured one).
        server_url: Workspace server to list and read through; local
                    filesystem access is used when omitted.
        in_memory: Keep persisted state and uploads in memory only.

    Returns:
        Session: Restored session, not yet holding any directory.

    Raises:
        NetworkFailure: If the workspace server does not answer the handshake.
    """
    name = session_name or config.get("session_name") or DEFAULT_SESSION_NAME

    lister: DirectoryLister
    reader: FileReader
    dependencies: DependencyProvider
    if server_url:
        client = HttpWorkspaceClient(server_url)
        if not client.connect():
            raise NetworkFailure(f"Workspace server unreachable at {server_url}")
        lister, reader, dependencies = client, client, client
        logger.info(f"Using workspace server at {server_url}")
    else:
        local_lister = LocalDirectoryLister(respect_gitignore=bool(config.get("respect_gitignore", True)))
        lister = local_lister
        reader = LocalFileReader()
        dependencies = PythonDependencyAnalyzer(local_lister)

    store: KeyValueStore
    blobs: BlobStore
    if in_memory:
        store = MemoryKeyValueStore()
        blobs = MemoryBlobStore()
    else:
        store = JsonFileKeyValueStore(session_file_path(name))
        blobs = SqliteBlobStore(namespace=name)
        # Directory ids restart at 1, so uploads of a previous run are stale
        blobs.clear()

    session = Session(
        store,
        lister,
        reader,
        dependencies=dependencies,
        blobs=blobs,
        whitelist=Whitelist(config.get("whitelist")),
        delay_ms=int(config.get("coalesce_delay_ms", DEFAULT_COALESCE_DELAY_MS)),
        token_encoding=str(config.get("token_encoding", DEFAULT_TOKEN_ENCODING)),
    )
    session.restore()
    logger.debug(f"Session '{name}' ready.")
    return session
