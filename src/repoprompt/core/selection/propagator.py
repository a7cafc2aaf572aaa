from __future__ import annotations

"""
Selection Propagation.

Applies user toggles to a directory's SelectionStore. File toggles update
leaf intent and walk ancestors; folder toggles push a boolean through the
visible part of the subtree only, leaving collapsed content pending. Both
operations are silent no-ops on invalid targets and never raise.
"""

import logging

from repoprompt.core.selection.visibility import children_visible
from repoprompt.core.services.workspace import Workspace

logger = logging.getLogger(__name__)


class SelectionPropagator:
    """
    Toggle handler operating on the directories of a workspace.
    """

    def __init__(self, workspace: Workspace) -> None:
        self._workspace = workspace

    def toggle_file(self, dir_id: int, path: str, value: bool) -> bool:
        """
        Set the leaf intent of a selectable file and recompute its ancestors.

        Args:
            dir_id: Target directory.
            path: File path inside the directory.
            value: New selection value.

        Returns:
            bool: True if applied, False for an unknown or non-selectable file.
        """
        directory = self._workspace.get(dir_id)
        if directory is None:
            return False
        node = directory.tree.get(path)
        if node is None or node.is_folder:
            return False

        store = directory.selection
        if not store.is_selectable(path):
            logger.debug(f"Ignoring toggle of non-selectable file: {path}")
            return False

        store.materialize_ancestors(path)
        store.set_intent(path, bool(value))
        store.recompute_ancestors(path)
        return True

    def toggle_folder(self, dir_id: int, path: str, value: bool) -> bool:
        """
        Assign a boolean to a folder and its visible descendants.

        The folder records the boolean as its own state. If its children are
        on screen the value is pushed down to every visible node, collapsed
        sub-folders taking it as a pending flag; otherwise the folder itself
        becomes pending. Ancestors are then recomputed upward.

        Returns:
            bool: True if applied, False for an unknown folder.
        """
        directory = self._workspace.get(dir_id)
        if directory is None or not directory.tree.is_folder(path):
            return False

        store = directory.selection
        value = bool(value)
        store.materialize_ancestors(path)
        store.set_folder_value(path, value)

        if children_visible(directory, path):
            store.take_pending(path)
            visited = store.push_down(path, value, directory.collapsed)
            logger.debug(f"Folder '{path}' -> {value}: {visited} visible node(s) updated.")
        else:
            store.mark_pending(path, value)
            logger.debug(f"Folder '{path}' -> {value}: content deferred until expanded.")

        store.recompute_ancestors(path)
        return True
