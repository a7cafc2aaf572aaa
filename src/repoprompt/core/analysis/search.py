from __future__ import annotations

"""
File Name Search.

Case-insensitive substring search over the file names of a tree, plus the
set of folders to keep expanded so every match is reachable.
"""

from typing import Iterable, List, Set, Tuple

from repoprompt.domain.tree_models import TreeModel


def search_files(tree: TreeModel, term: str) -> List[Tuple[str, str]]:
    """
    Find files whose name contains the term.

    Args:
        tree: Directory snapshot.
        term: Search text; an empty or blank term matches nothing.

    Returns:
        List[Tuple[str, str]]: (path, name) pairs in tree order.
    """
    needle = (term or "").strip().lower()
    if not needle:
        return []
    return [
        (node.path, node.name)
        for node in tree.iter_subtree(tree.root)
        if not node.is_folder and needle in node.name.lower()
    ]


def folders_to_reveal(tree: TreeModel, paths: Iterable[str]) -> Set[str]:
    """Ancestor folders of the given matches."""
    folders: Set[str] = set()
    for path in paths:
        folders.update(tree.ancestors(path))
    return folders
