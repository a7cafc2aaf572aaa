from __future__ import annotations

"""
Per-Directory Selection Store.

Single authoritative holder of one directory's selection:
- sparse leaf intent (selected file paths),
- cached folder tri-states derived bottom-up,
- per-folder counts of selectable descendant files,
- explicit pending flags: a folder whose hidden content still has to take a
  boolean on its next expansion.

The effective selection of a file is its leaf intent unless an ancestor
folder is pending, in which case the outermost pending ancestor decides.
Nothing in here raises on unknown paths; queries answer conservatively.
"""

import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from repoprompt.core.selection.whitelist import Whitelist
from repoprompt.domain.selection_models import TriState
from repoprompt.domain.tree_models import TreeModel

logger = logging.getLogger(__name__)


class SelectionStore:
    """
    Tri-state selection data bound to one TreeModel snapshot.
    """

    def __init__(self, tree: TreeModel, whitelist: Whitelist) -> None:
        self._tree = tree
        self._whitelist = whitelist
        self._intent: Set[str] = set()
        self._states: Dict[str, TriState] = {}
        self._counts: Dict[str, int] = {}
        self._pending: Dict[str, bool] = {}
        self._selectable: Set[str] = set()
        self.recompute_all()

    @property
    def tree(self) -> TreeModel:
        return self._tree

    @property
    def whitelist(self) -> Whitelist:
        return self._whitelist

    # -------------------------------------------------------------------------
    # QUERIES
    # -------------------------------------------------------------------------

    def is_selectable(self, path: str) -> bool:
        return path in self._selectable

    def selectable_count(self, path: str) -> int:
        """Number of selectable files below a folder (1 or 0 for a file)."""
        if self._tree.is_folder(path):
            return self._counts.get(path, 0)
        return 1 if path in self._selectable else 0

    def is_pending(self, folder: str) -> bool:
        return folder in self._pending

    def pending_folders(self) -> Dict[str, bool]:
        return dict(self._pending)

    def is_selected(self, path: str) -> bool:
        """Effective selection of a file, or 'fully selected' for a folder."""
        if self._tree.is_folder(path):
            return self.state_of(path) is TriState.SELECTED
        if path not in self._selectable:
            return False
        override = self._outermost_pending(path)
        if override is not None:
            return override[1]
        return path in self._intent

    def state_of(self, path: str) -> TriState:
        if self._tree.is_folder(path):
            return self._states.get(path, TriState.UNSELECTED)
        return TriState.from_bool(self.is_selected(path))

    def selected_files(self) -> List[str]:
        """Effectively selected, selectable files in tree order."""
        out: List[str] = []
        root = self._tree.get(self._tree.root)
        if root is None:
            return out

        stack: List[Tuple[str, Optional[bool]]] = [(root.path, None)]
        while stack:
            path, override = stack.pop()
            node = self._tree.get(path)
            if node is None:
                continue
            if node.is_folder:
                if override is None and path in self._pending:
                    override = self._pending[path]
                # Skip subtrees that cannot contribute
                if self._counts.get(path, 0) == 0:
                    continue
                if override is False:
                    continue
                stack.extend((c, override) for c in reversed(node.children))
            elif path in self._selectable:
                selected = override if override is not None else path in self._intent
                if selected:
                    out.append(path)
        return out

    # -------------------------------------------------------------------------
    # BULK OPERATIONS
    # -------------------------------------------------------------------------

    def apply_paths(self, paths: Iterable[str]) -> int:
        """
        Restore a persisted selection, replacing the current one.

        Unknown and folder paths are ignored.

        Returns:
            int: Number of file paths applied.
        """
        self._intent = {
            p for p in paths
            if isinstance(p, str) and p in self._tree and not self._tree.is_folder(p)
        }
        self._pending.clear()
        self.recompute_all()
        return len(self._intent)

    def clear(self) -> None:
        self._intent.clear()
        self._pending.clear()
        self.recompute_all()

    def rebind(self, tree: TreeModel) -> None:
        """
        Carry the effective selection over to a refreshed tree, keyed by path.
        """
        carried = self.selected_files()
        self._tree = tree
        self._intent = {p for p in carried if p in tree and not tree.is_folder(p)}
        self._pending.clear()
        self.recompute_all()
        logger.debug(f"Selection rebound to refreshed tree: {len(self._intent)} file(s) kept.")

    def recompute_all(self) -> None:
        """
        Recompute selectability, counts and every folder tri-state bottom-up.

        Used after a load, a restore or a whitelist change.
        """
        self._selectable = {p for p in self._tree.files() if self._whitelist.matches(p)}
        self._counts = {}
        self._states = {}
        for folder in self._tree.folders_bottom_up():
            count = 0
            for child in self._tree.children(folder):
                if child.is_folder:
                    count += self._counts.get(child.path, 0)
                elif child.path in self._selectable:
                    count += 1
            self._counts[folder] = count
            if count == 0:
                self._pending.pop(folder, None)
            self._states[folder] = self.derive(folder)

    # -------------------------------------------------------------------------
    # PRIMITIVES (used by the propagator and the visibility sync)
    # -------------------------------------------------------------------------

    def derive(self, folder: str) -> TriState:
        """
        Derive a folder's tri-state from its direct children's current states.

        Files contribute their leaf intent, sub-folders their cached state.
        Sub-folders without selectable descendants are left out of the count.
        """
        if self._counts.get(folder, 0) == 0:
            return TriState.UNSELECTED
        if folder in self._pending:
            return TriState.from_bool(self._pending[folder])

        some = False
        every = True
        for child in self._tree.children(folder):
            if child.is_folder:
                if self._counts.get(child.path, 0) == 0:
                    continue
                state = self._states.get(child.path, TriState.UNSELECTED)
                if state is TriState.SELECTED:
                    some = True
                elif state is TriState.MIXED:
                    some = True
                    every = False
                else:
                    every = False
            elif child.path in self._selectable:
                if child.path in self._intent:
                    some = True
                else:
                    every = False

        if every:
            return TriState.SELECTED
        return TriState.MIXED if some else TriState.UNSELECTED

    def set_intent(self, path: str, value: bool) -> None:
        if value:
            self._intent.add(path)
        else:
            self._intent.discard(path)

    def set_folder_value(self, folder: str, value: bool) -> None:
        """Record a definite boolean as the folder's own state."""
        if self._counts.get(folder, 0) == 0:
            self._states[folder] = TriState.UNSELECTED
        else:
            self._states[folder] = TriState.from_bool(value)

    def mark_pending(self, folder: str, value: bool) -> None:
        if self._counts.get(folder, 0) == 0:
            self._pending.pop(folder, None)
            return
        self._pending[folder] = value
        self._states[folder] = TriState.from_bool(value)

    def take_pending(self, folder: str) -> Optional[bool]:
        """Remove and return a folder's pending boolean, if any."""
        return self._pending.pop(folder, None)

    def recompute_ancestors(self, path: str) -> None:
        for ancestor in self._tree.ancestors(path):
            self._states[ancestor] = self.derive(ancestor)

    def push_down(self, folder: str, value: bool, collapsed: Optional[Set[str]] = None) -> int:
        """
        Force a boolean onto the descendants of a folder.

        With a collapsed set, the walk stops at collapsed sub-folders, which
        take the value as their own state plus a pending flag. Without one,
        the whole subtree is materialized and inner pending flags cleared.

        Returns:
            int: Number of nodes visited.
        """
        visited = 0
        stack = list(reversed(self._tree.children(folder)))
        while stack:
            node = stack.pop()
            visited += 1
            if not node.is_folder:
                if node.path in self._selectable:
                    self.set_intent(node.path, value)
                continue

            if self._counts.get(node.path, 0) == 0:
                self._pending.pop(node.path, None)
                continue

            target = TriState.from_bool(value)
            if collapsed is not None and node.path in collapsed:
                # Content stays untouched until the folder is expanded
                if self._states.get(node.path) is not target or (
                        node.path in self._pending and self._pending[node.path] != value
                ):
                    self.mark_pending(node.path, value)
                continue

            self._pending.pop(node.path, None)
            self._states[node.path] = target
            stack.extend(reversed(self._tree.children(node.path)))
        return visited

    def materialize_ancestors(self, path: str) -> bool:
        """
        Flush the pending flag of the outermost pending ancestor of a node.

        Returns:
            bool: True if a pending subtree was materialized.
        """
        found = self._outermost_pending(path)
        if found is None:
            return False
        folder, value = found
        self._pending.pop(folder, None)
        self.push_down(folder, value)
        logger.debug(f"Materialized pending folder '{folder}' -> {value}")
        return True

    def _outermost_pending(self, path: str) -> Optional[Tuple[str, bool]]:
        found: Optional[Tuple[str, bool]] = None
        if not self._pending:
            return found
        for ancestor in self._tree.ancestors(path):
            if ancestor in self._pending:
                found = (ancestor, self._pending[ancestor])
        return found
