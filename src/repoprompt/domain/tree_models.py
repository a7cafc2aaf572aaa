from __future__ import annotations

"""
Directory Tree Structure Data Models.

Immutable snapshot of one directory's hierarchy. Nodes live in an arena
addressed by path, with auxiliary child and parent indexes so every lookup
is O(1) and a refresh is a whole-object swap. The nested dictionary wire
shape produced by directory listers ('RawTree') is converted here.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from repoprompt.utils.natural_sort import sort_entries

# Wire shape: {name: {"type": "file" | "folder", "path": str, "children": RawTree}}
RawTree = Dict[str, Dict[str, Any]]


class NodeKind(str, Enum):
    FILE = "file"
    FOLDER = "folder"


# -----------------------------------------------------------------------------
# STRUCTURAL COMPONENTS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class TreeNode:
    """
    A single entry of the tree.

    Attributes:
        path: Unique identifier of the node inside its directory.
        kind: File or Folder.
        name: Display name (last path component).
        children: Ordered child paths, folders first then files.
    """
    path: str
    kind: NodeKind
    name: str
    children: Tuple[str, ...] = ()

    @property
    def is_folder(self) -> bool:
        return self.kind is NodeKind.FOLDER


class TreeModel:
    """
    Arena of TreeNodes rooted at a folder node whose path is the directory root.
    """

    def __init__(
            self,
            root: str,
            nodes: Dict[str, TreeNode],
            parents: Dict[str, Optional[str]],
    ) -> None:
        self._root = root
        self._nodes = nodes
        self._parents = parents

    # -------------------------------------------------------------------------
    # FACTORIES
    # -------------------------------------------------------------------------

    @classmethod
    def empty(cls, root: str, name: Optional[str] = None) -> "TreeModel":
        """A still-loading tree: the root folder with no children."""
        node = TreeNode(path=root, kind=NodeKind.FOLDER, name=name or _basename(root))
        return cls(root, {root: node}, {root: None})

    @classmethod
    def from_raw(cls, root: str, raw: Optional[RawTree], name: Optional[str] = None) -> "TreeModel":
        """
        Convert the nested lister payload into an arena.

        Entries without a usable path or duplicating an existing path are
        skipped so a malformed payload still yields a consistent tree.

        Args:
            root: Path of the directory root.
            raw: Nested children of the root.
            name: Optional display name for the root node.

        Returns:
            TreeModel: The immutable snapshot.
        """
        nodes: Dict[str, TreeNode] = {}
        parents: Dict[str, Optional[str]] = {root: None}
        nodes[root] = TreeNode(path=root, kind=NodeKind.FOLDER, name=name or _basename(root))

        # Iterative build: (parent path, raw children) work items
        pending: List[Tuple[str, RawTree]] = [(root, raw or {})]
        child_lists: Dict[str, List[str]] = {root: []}

        while pending:
            parent_path, raw_children = pending.pop()
            triples = []
            for entry_name, entry in raw_children.items():
                if not isinstance(entry, dict):
                    continue
                is_folder = entry.get("type") == NodeKind.FOLDER.value
                triples.append((str(entry_name), is_folder, entry))

            for entry_name, is_folder, entry in sort_entries(triples):
                path = entry.get("path")
                if not isinstance(path, str) or not path or path in nodes:
                    continue
                kind = NodeKind.FOLDER if is_folder else NodeKind.FILE
                nodes[path] = TreeNode(path=path, kind=kind, name=entry_name)
                parents[path] = parent_path
                child_lists[parent_path].append(path)
                if is_folder:
                    child_lists[path] = []
                    pending.append((path, entry.get("children") or {}))

        for folder_path, kids in child_lists.items():
            node = nodes[folder_path]
            nodes[folder_path] = TreeNode(
                path=node.path, kind=node.kind, name=node.name, children=tuple(kids)
            )

        return cls(root, nodes, parents)

    @classmethod
    def from_paths(cls, root: str, file_paths: Iterable[str], name: Optional[str] = None) -> "TreeModel":
        """
        Build a tree from slash-separated relative file paths (uploads, archives).

        Intermediate folders are synthesised with their relative path as id.
        """
        raw: RawTree = {}
        for file_path in file_paths:
            normalized = normalize_relative_path(file_path)
            if not normalized:
                continue
            parts = normalized.split("/")
            level = raw
            for depth, part in enumerate(parts[:-1]):
                folder_path = "/".join(parts[: depth + 1])
                folder = level.setdefault(
                    part, {"type": NodeKind.FOLDER.value, "path": folder_path, "children": {}}
                )
                if folder.get("type") != NodeKind.FOLDER.value:
                    break
                level = folder["children"]
            else:
                level.setdefault(
                    parts[-1], {"type": NodeKind.FILE.value, "path": "/".join(parts)}
                )
        return cls.from_raw(root, raw, name=name)

    # -------------------------------------------------------------------------
    # QUERIES
    # -------------------------------------------------------------------------

    @property
    def root(self) -> str:
        return self._root

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def get(self, path: str) -> Optional[TreeNode]:
        return self._nodes.get(path)

    def is_folder(self, path: str) -> bool:
        node = self._nodes.get(path)
        return bool(node and node.is_folder)

    def parent_of(self, path: str) -> Optional[str]:
        return self._parents.get(path)

    def ancestors(self, path: str) -> List[str]:
        """Ancestor folder paths, nearest first, root last."""
        out: List[str] = []
        current = self._parents.get(path)
        while current is not None:
            out.append(current)
            current = self._parents.get(current)
        return out

    def children(self, path: str) -> List[TreeNode]:
        node = self._nodes.get(path)
        if node is None:
            return []
        return [self._nodes[c] for c in node.children]

    def iter_subtree(self, path: str) -> Iterator[TreeNode]:
        """Pre-order walk starting at (and including) the given node."""
        start = self._nodes.get(path)
        if start is None:
            return
        stack = [start]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(self._nodes[c] for c in reversed(node.children))

    def folders_bottom_up(self) -> List[str]:
        """Folder paths ordered so every folder appears after all its sub-folders."""
        ordered = [n.path for n in self.iter_subtree(self._root) if n.is_folder]
        ordered.reverse()
        return ordered

    def files(self) -> List[str]:
        """File paths in tree order."""
        return [n.path for n in self.iter_subtree(self._root) if not n.is_folder]


def _basename(path: str) -> str:
    trimmed = path.rstrip("/\\")
    for sep in ("/", "\\"):
        if sep in trimmed:
            trimmed = trimmed.rsplit(sep, 1)[-1]
    return trimmed or path


def normalize_relative_path(file_path: str) -> str:
    """
    Canonical form of an upload-relative path: slash separators, no leading,
    trailing or repeated slashes. Tree ids and blob keys both use this form.
    """
    return "/".join(p for p in file_path.replace("\\", "/").split("/") if p)
