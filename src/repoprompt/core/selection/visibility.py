from __future__ import annotations

"""
Lazy Visibility Synchronization.

Reconciles the selection of subtrees hidden behind collapsed folders. A
collapse is pure bookkeeping; the deferred work happens when a folder is
expanded again and its pending content becomes visible.
"""

import logging
from typing import List

from repoprompt.core.services.workspace import Directory, Workspace
from repoprompt.domain.selection_models import TriState

logger = logging.getLogger(__name__)


def is_visible(directory: Directory, path: str) -> bool:
    """A node is visible when none of its ancestors is collapsed."""
    if path not in directory.tree:
        return False
    return not any(a in directory.collapsed for a in directory.tree.ancestors(path))


def children_visible(directory: Directory, folder: str) -> bool:
    """True when the folder is expanded and itself visible."""
    return folder not in directory.collapsed and is_visible(directory, folder)


class LazyVisibilitySync:
    """
    Expand/collapse handler operating on the directories of a workspace.
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    def collapse(self, dir_id: int, folder: str) -> bool:
        directory = self._workspace.get(dir_id)
        if directory is None or not directory.tree.is_folder(folder):
            return False
        directory.collapsed.add(folder)
        return True

    def expand(self, dir_id: int, folder: str) -> bool:
        """
        Reveal a folder's children and reconcile what just became visible.

        A definite state is forced onto the newly visible nodes, stopping at
        collapsed sub-folders which become pending. A Mixed folder only
        materializes the pending sub-folders it reveals.

        Returns:
            bool: False if the directory or folder is unknown.
        """
        directory = self._workspace.get(dir_id)
        if directory is None or not directory.tree.is_folder(folder):
            return False

        store = directory.selection
        store.materialize_ancestors(folder)
        directory.collapsed.discard(folder)

        if not is_visible(directory, folder):
            # Still behind a collapsed ancestor; reconciled when that one opens
            return True

        pending = store.take_pending(folder)
        state = store.state_of(folder)
        if pending is not None:
            store.push_down(folder, pending, directory.collapsed)
        elif state.is_definite and store.selectable_count(folder) > 0:
            store.push_down(folder, state is TriState.SELECTED, directory.collapsed)
        else:
            self._reveal(directory, folder)
        return True

    def _reveal(self, directory: Directory, folder: str) -> None:
        store = directory.selection
        stack: List[str] = [folder]
        while stack:
            current = stack.pop()
            for child in directory.tree.children(current):
                if not child.is_folder or child.path in directory.collapsed:
                    continue
                value = store.take_pending(child.path)
                if value is not None:
                    store.push_down(child.path, value, directory.collapsed)
                    logger.debug(f"Revealed pending folder '{child.path}' -> {value}")
                else:
                    stack.append(child.path)
