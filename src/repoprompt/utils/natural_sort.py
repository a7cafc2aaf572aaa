from __future__ import annotations

"""
Natural Ordering Helpers.

Numeric-aware, case-insensitive ordering used everywhere a tree is listed or
rendered: 'file2' sorts before 'file10' and 'Readme' sits next to 'readme'.
"""

import re
from typing import Any, Iterable, List, Tuple, TypeVar

_DIGITS_RX = re.compile(r"(\d+)")

T = TypeVar("T")


def natural_key(name: str) -> Tuple[List[Any], str]:
    """
    Build a sort key splitting the name into text and integer runs.

    Text runs sit at even positions and integer runs at odd positions, so
    two keys always compare like with like. The raw name is appended as a
    final tie-breaker to keep the order total.

    Args:
        name: Entry name to index.

    Returns:
        Tuple[List[Any], str]: Comparable key.
    """
    parts: List[Any] = []
    for i, chunk in enumerate(_DIGITS_RX.split(name)):
        if i % 2:
            parts.append(int(chunk))
        else:
            parts.append(chunk.casefold())
    return parts, name


def sort_entries(entries: Iterable[Tuple[str, bool, T]]) -> List[Tuple[str, bool, T]]:
    """
    Order (name, is_folder, payload) triples folders first, then files.

    Args:
        entries: Triples to sort.

    Returns:
        List[Tuple[str, bool, T]]: New sorted list.
    """
    items = list(entries)
    folders = sorted((e for e in items if e[1]), key=lambda e: natural_key(e[0]))
    files = sorted((e for e in items if not e[1]), key=lambda e: natural_key(e[0]))
    return folders + files
