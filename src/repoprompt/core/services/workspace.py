from __future__ import annotations

"""
Workspace State Container.

Explicit owner of everything a session manipulates: the ordered directories,
the active whitelist, the prompt library and selection, the user
instructions, the path-keyed content cache of path-backed files and the
failed set. Failures are keyed by (directory id, path): uploads of
different directories can share relative paths. The workspace is passed
by reference to every component instead of living in module globals.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from repoprompt.core.selection.store import SelectionStore
from repoprompt.core.selection.whitelist import Whitelist
from repoprompt.core.services.prompts import PromptLibrary
from repoprompt.domain.constants import DEFAULT_INSTRUCTIONS
from repoprompt.domain.selection_models import SourceKind
from repoprompt.domain.tree_models import TreeModel

logger = logging.getLogger(__name__)


@dataclass
class Directory:
    """
    One registered file tree.

    Attributes:
        id: Workspace-issued identifier, stable across refreshes.
        source_kind: PathBacked (read through the file reader) or InMemory
                     (read from the blob store).
        root: Root path (or upload label) of the tree.
        tree: Current immutable snapshot.
        selection: Selection store bound to the snapshot.
        collapsed: Collapsed folder paths.
        dependency_graph: file -> referenced files, empty until it arrives.
        loaded: Whether the tree has been listed at least once.
        error: Last listing failure, if any.
    """
    id: int
    source_kind: SourceKind
    root: str
    tree: TreeModel
    selection: SelectionStore
    collapsed: Set[str] = field(default_factory=set)
    dependency_graph: Dict[str, List[str]] = field(default_factory=dict)
    loaded: bool = False
    error: Optional[str] = None

    @property
    def label(self) -> str:
        return self.tree.get(self.tree.root).name if self.tree.root in self.tree else self.root

    def replace_tree(self, tree: TreeModel) -> None:
        """Swap in a refreshed snapshot, keeping selection and collapse by path."""
        self.tree = tree
        self.selection.rebind(tree)
        self.collapsed = {p for p in self.collapsed if tree.is_folder(p)}
        self.loaded = True
        self.error = None


class Workspace:
    """
    Ordered collection of directories plus the shared bundle inputs.
    """

    def __init__(self, whitelist: Optional[Whitelist] = None) -> None:
        self.whitelist = whitelist if whitelist is not None else Whitelist()
        self.prompts = PromptLibrary()
        self.prompt_selection: List[str] = []
        self.instructions: str = DEFAULT_INSTRUCTIONS
        self.content_cache: Dict[str, str] = {}
        self.failed: Set[Tuple[int, str]] = set()
        self._directories: List[Directory] = []
        self._next_id = 1

    # -------------------------------------------------------------------------
    # DIRECTORIES
    # -------------------------------------------------------------------------

    def add_directory(
            self,
            source_kind: SourceKind,
            root: str,
            tree: Optional[TreeModel] = None,
    ) -> Directory:
        """
        Register a directory; without a tree it starts as a loading root.
        """
        snapshot = tree if tree is not None else TreeModel.empty(root)
        directory = Directory(
            id=self._next_id,
            source_kind=source_kind,
            root=root,
            tree=snapshot,
            selection=SelectionStore(snapshot, self.whitelist),
            loaded=tree is not None,
        )
        self._next_id += 1
        self._directories.append(directory)
        logger.debug(f"Directory #{directory.id} registered: {root} ({source_kind.value})")
        return directory

    def get(self, dir_id: int) -> Optional[Directory]:
        for directory in self._directories:
            if directory.id == dir_id:
                return directory
        return None

    def remove(self, dir_id: int) -> Optional[Directory]:
        directory = self.get(dir_id)
        if directory is None:
            return None
        self._directories.remove(directory)
        if directory.source_kind is SourceKind.PATH_BACKED:
            for path in directory.tree.files():
                self.content_cache.pop(path, None)
        self.failed = {key for key in self.failed if key[0] != dir_id}
        return directory

    @property
    def directories(self) -> List[Directory]:
        return list(self._directories)

    def __iter__(self) -> Iterator[Directory]:
        return iter(list(self._directories))

    def __len__(self) -> int:
        return len(self._directories)

    # -------------------------------------------------------------------------
    # DERIVED STATE
    # -------------------------------------------------------------------------

    def recompute_selectability(self) -> None:
        """Re-run counts and tri-states after a whitelist change."""
        for directory in self._directories:
            directory.selection.recompute_all()

    def failed_paths(self) -> List[str]:
        """Distinct failed paths across directories, sorted."""
        return sorted({path for _, path in self.failed})

    def selected_paths(self) -> List[str]:
        """Effective selection across all directories, registration order."""
        out: List[str] = []
        for directory in self._directories:
            out.extend(directory.selection.selected_files())
        return out
