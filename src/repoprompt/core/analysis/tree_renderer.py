from __future__ import annotations

"""
Tree Renderer.

Converts a TreeModel restricted to a set of selected files into ASCII tree
lines for the file map. Folders are emitted only when they lead to at least
one selected file; ordering follows the model (folders first, natural order).
"""

from typing import Iterable, List, Set

from repoprompt.domain.tree_models import TreeModel

# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def render_selected_tree(tree: TreeModel, selected: Iterable[str]) -> List[str]:
    """
    Render the pruned tree of selected files.

    Args:
        tree: Directory snapshot.
        selected: Selected file paths (unknown paths are ignored).

    Returns:
        List[str]: Tree lines without the root line. Empty if nothing matches.
    """
    wanted: Set[str] = {p for p in selected if p in tree and not tree.is_folder(p)}
    if not wanted:
        return []

    # Every ancestor of a selected file is kept
    keep: Set[str] = set(wanted)
    for path in wanted:
        keep.update(tree.ancestors(path))

    lines: List[str] = []
    render_tree_structure(tree, tree.root, keep, lines)
    return lines


def render_tree_structure(
        tree: TreeModel,
        folder: str,
        keep: Set[str],
        lines: List[str],
        prefix: str = "",
) -> None:
    """
    Recursively append the kept children of a folder to the accumulator.

    Uses standard ASCII connectors (├──, └──) and manages indentation
    levels for nested folders.

    Args:
        tree: Directory snapshot.
        folder: Folder whose children are rendered.
        keep: Paths allowed in the output.
        lines: Accumulator list for output strings.
        prefix: Indentation prefix for the current recursion level.
    """
    entries = [child for child in tree.children(folder) if child.path in keep]
    total = len(entries)

    for i, node in enumerate(entries):
        is_last = (i == total - 1)
        connector = "└── " if is_last else "├── "
        lines.append(f"{prefix}{connector}{node.name}")

        if node.is_folder:
            new_prefix = prefix + ("    " if is_last else "│   ")
            render_tree_structure(tree, node.path, keep, lines, prefix=new_prefix)
