from __future__ import annotations

"""
Python Dependency Analysis Service.

Builds the file dependency graph of a local tree by parsing every Python
module with the 'ast' module and resolving intra-project imports to files.
Resolution tries the importing file's folder first and then the tree root,
accepting 'module.py' and 'package/__init__.py'. A dependency on a package
'__init__.py' is expanded transitively to what that package imports.
Unparseable or unreadable files are skipped, never fatal.
"""

import ast
import logging
import os
from typing import Dict, Iterable, List, Optional, Set

from repoprompt.infra.contracts import DirectoryLister
from repoprompt.infra.fs import LocalDirectoryLister
from repoprompt.domain.tree_models import RawTree
from repoprompt.utils.natural_sort import natural_key

logger = logging.getLogger(__name__)

_MODULE_SUFFIXES = (".py", os.sep + "__init__.py")


class PythonDependencyAnalyzer:
    """
    Local dependency graph provider for Python sources.
    """

    def __init__(self, lister: Optional[DirectoryLister] = None) -> None:
        self._lister = lister or LocalDirectoryLister()

    def get_dependencies(self, path: str) -> Dict[str, List[str]]:
        """
        List the tree at 'path' and analyze it.

        Raises:
            PathRejected / NotFoundOrPermission: Propagated from the lister.
        """
        root, raw = self._lister.list_directory(path)
        graph = analyze_files(root, collect_files(raw))
        return expand_init_dependencies(graph)


# -----------------------------------------------------------------------------
# PUBLIC API
# -----------------------------------------------------------------------------

def collect_files(raw: RawTree) -> List[str]:
    """All file paths of a nested wire tree."""
    files: List[str] = []
    stack = [raw]
    while stack:
        level = stack.pop()
        for entry in level.values():
            if not isinstance(entry, dict):
                continue
            if entry.get("type") == "file" and isinstance(entry.get("path"), str):
                files.append(entry["path"])
            elif entry.get("children"):
                stack.append(entry["children"])
    return files


def analyze_files(root: str, files: Iterable[str]) -> Dict[str, List[str]]:
    """
    Map each Python file to the project files it imports.

    Args:
        root: Absolute tree root; resolved targets must stay inside it.
        files: Absolute file paths of the tree.

    Returns:
        Dict[str, List[str]]: Graph with only files that have dependencies.
    """
    root = os.path.abspath(root)
    graph: Dict[str, List[str]] = {}
    py_files = [f for f in files if f.endswith(".py")]
    logger.debug(f"Scanning {len(py_files)} Python file(s) for imports.")

    for file_path in py_files:
        modules = extract_imports(file_path)
        deps: List[str] = []
        for module in modules:
            resolved = resolve_module(module, file_path, root)
            if resolved and resolved != file_path and resolved not in deps:
                deps.append(resolved)
        if deps:
            graph[file_path] = deps

    logger.info(f"Dependency analysis for '{root}' finished: {len(graph)} file(s) with dependencies.")
    return graph


def extract_imports(file_path: str) -> List[str]:
    """
    Parse a module and return its import targets as dotted names.

    Relative imports keep their leading dots ('.sibling', '..pkg.mod');
    'from . import a' yields '.a'.
    """
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            source = f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read '{os.path.basename(file_path)}': {e}")
        return []

    try:
        tree = ast.parse(source, filename=file_path)
    except (SyntaxError, ValueError) as e:
        logger.debug(f"Syntax error in {file_path}: {e}")
        return []

    modules: List[str] = []
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            modules.extend(alias.name for alias in node.names)
        elif isinstance(node, ast.ImportFrom):
            dots = "." * (node.level or 0)
            if node.module:
                modules.append(f"{dots}{node.module}")
                # 'from pkg import submodule' may name a module, not a symbol
                modules.extend(f"{dots}{node.module}.{a.name}" for a in node.names if a.name != "*")
            else:
                for alias in node.names:
                    modules.append(dots if alias.name == "*" else f"{dots}{alias.name}")
    return modules


def resolve_module(module: str, importer: str, root: str) -> Optional[str]:
    """
    Resolve a dotted import to a file inside the root.

    Returns:
        Optional[str]: Absolute path of the target file, or None.
    """
    level = len(module) - len(module.lstrip("."))
    dotted = module[level:]
    rel = dotted.replace(".", os.sep)

    bases: List[str] = []
    if level:
        base = os.path.dirname(importer)
        for _ in range(level - 1):
            base = os.path.dirname(base)
        bases.append(base)
    else:
        bases.extend([os.path.dirname(importer), root])

    for base in bases:
        if rel:
            candidates = [os.path.normpath(os.path.join(base, rel) + suffix) for suffix in _MODULE_SUFFIXES]
        else:
            # 'from . import name' where name is not a module: the package itself
            candidates = [os.path.normpath(os.path.join(base, "__init__.py"))]
        for candidate in candidates:
            if _inside(candidate, root) and os.path.isfile(candidate):
                return candidate
    return None


def expand_init_dependencies(graph: Dict[str, List[str]]) -> Dict[str, List[str]]:
    """
    Add everything a depended-on '__init__.py' imports, transitively.

    Dependency lists come back de-duplicated and naturally sorted.
    """
    expanded: Dict[str, List[str]] = {}
    for source, direct in graph.items():
        final: Set[str] = set(direct)
        for dep in direct:
            if os.path.basename(dep) == "__init__.py":
                _collect_init_deps(dep, graph, final, set())
        final.discard(source)
        expanded[source] = sorted(final, key=natural_key)
    return expanded


def _collect_init_deps(init_file: str, graph: Dict[str, List[str]], out: Set[str], visited: Set[str]) -> None:
    if init_file in visited:
        return
    visited.add(init_file)
    for dep in graph.get(init_file, ()):
        out.add(dep)
        if os.path.basename(dep) == "__init__.py":
            _collect_init_deps(dep, graph, out, visited)


def _inside(path: str, root: str) -> bool:
    try:
        return os.path.commonpath([path, root]) == root
    except ValueError:
        return False
