from __future__ import annotations

"""
Dependency Cross-Referencing.

Computes the advisory 'implied but unselected' set: files referenced by the
current selection that are not selected themselves, each mapped to the
selected files importing it. The result only drives highlighting; nothing
here ever changes the selection.
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from repoprompt.core.services.workspace import Workspace
from repoprompt.domain.tree_models import TreeModel

logger = logging.getLogger(__name__)

DependencyGraph = Mapping[str, Sequence[str]]


def cross_reference(
        selected: Iterable[str],
        graph: Optional[DependencyGraph],
) -> Dict[str, Set[str]]:
    """
    Map unselected dependencies of the selection to their importers.

    Cost is proportional to the summed out-degree of the selected files.

    Args:
        selected: Selected file paths (S).
        graph: file -> referenced files (may be empty or None).

    Returns:
        Dict[str, Set[str]]: D, with no key belonging to S.
    """
    selection = set(selected)
    result: Dict[str, Set[str]] = {}
    if not graph:
        return result

    for importer in selection:
        for dependency in graph.get(importer) or ():
            if dependency in selection:
                continue
            result.setdefault(dependency, set()).add(importer)
    return result


def compute_highlights(workspace: Workspace) -> Dict[str, FrozenSet[str]]:
    """
    Workspace-wide cross-reference.

    Selections of every directory are unioned and checked against every
    directory's graph, so an import across registered roots still counts.
    """
    selection: Set[str] = set(workspace.selected_paths())
    merged: Dict[str, Set[str]] = {}
    for directory in workspace:
        if not directory.dependency_graph:
            continue
        for dependency, importers in cross_reference(selection, directory.dependency_graph).items():
            merged.setdefault(dependency, set()).update(importers)

    if merged:
        logger.debug(f"Dependency highlights: {len(merged)} unselected file(s) referenced.")
    return {k: frozenset(v) for k, v in merged.items()}


def folders_with_dependencies(tree: TreeModel, dependencies: Iterable[str]) -> Set[str]:
    """Ancestor folders of highlighted files that belong to the given tree."""
    folders: Set[str] = set()
    for path in dependencies:
        if path in tree:
            folders.update(tree.ancestors(path))
    return folders


def describe_importers(importers: Iterable[str]) -> Tuple[str, str]:
    """
    Build the short indicator and the tooltip for a highlighted file.

    Returns:
        Tuple[str, str]: ('a.py, ...', 'Imported by: a.py, b.py'). The
                         ellipsis only appears with more than one importer.
    """
    names: List[str] = sorted(_basename(p) for p in importers)
    if not names:
        return "", ""
    short = names[0] if len(names) == 1 else f"{names[0]}, ..."
    return short, f"Imported by: {', '.join(names)}"


def _basename(path: str) -> str:
    return path.replace("\\", "/").rsplit("/", 1)[-1]
