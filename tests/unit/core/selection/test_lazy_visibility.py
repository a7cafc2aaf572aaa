from __future__ import annotations

"""
Unit tests for lazy visibility synchronization.

Folder toggles stop at collapsed sub-folders, which carry an explicit
pending flag until expansion. The effective selection must never depend on
whether a subtree has been materialized yet.
"""

from typing import Callable, List, Tuple

import pytest

from repoprompt.core.selection.propagator import SelectionPropagator
from repoprompt.core.selection.visibility import LazyVisibilitySync, children_visible, is_visible
from repoprompt.core.selection.whitelist import Whitelist
from repoprompt.core.services.workspace import Directory, Workspace
from repoprompt.domain.selection_models import TriState

FILES = ["src/a.txt", "src/deep/b.txt", "c.txt"]
ALL_TXT = ["src/deep/b.txt", "src/a.txt", "c.txt"]


@pytest.fixture
def env(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> Tuple[Directory, SelectionPropagator, LazyVisibilitySync]:
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", FILES)
    return d, SelectionPropagator(ws), LazyVisibilitySync(ws)


def _snapshot(d: Directory) -> List[str]:
    return d.selection.selected_files()


def test_visibility_queries(env) -> None:
    """TC-01: Nodes under a collapsed folder are hidden."""
    d, _, vis = env
    vis.collapse(d.id, "src")

    assert is_visible(d, "src")
    assert not is_visible(d, "src/a.txt")
    assert not is_visible(d, "src/deep/b.txt")
    assert not children_visible(d, "src")
    assert children_visible(d, "root")


def test_collapsed_child_becomes_pending(env) -> None:
    """TC-02: A root toggle marks the collapsed child pending, not its files."""
    d, prop, vis = env
    vis.collapse(d.id, "src")

    prop.toggle_folder(d.id, "root", True)

    assert d.selection.pending_folders() == {"src": True}
    assert d.selection.is_pending("src") and not d.selection.is_pending("root")
    assert d.selection.state_of("src") is TriState.SELECTED
    assert d.selection.state_of("root") is TriState.SELECTED
    # Effective selection already includes the hidden files
    assert _snapshot(d) == ALL_TXT
    assert d.selection.is_selected("src/deep/b.txt")


def test_expand_materializes_pending(env) -> None:
    """TC-03: Expansion clears the flag and writes leaf intent."""
    d, prop, vis = env
    vis.collapse(d.id, "src")
    prop.toggle_folder(d.id, "root", True)

    assert vis.expand(d.id, "src") is True

    assert d.selection.pending_folders() == {}
    assert _snapshot(d) == ALL_TXT
    assert d.selection.state_of("src/deep") is TriState.SELECTED


def test_pending_stops_again_at_nested_collapse(env) -> None:
    """TC-04: Expanding a pending folder pushes down to the next collapsed level only."""
    d, prop, vis = env
    vis.collapse(d.id, "src/deep")
    vis.collapse(d.id, "src")
    prop.toggle_folder(d.id, "root", True)

    vis.expand(d.id, "src")
    assert d.selection.pending_folders() == {"src/deep": True}
    assert _snapshot(d) == ALL_TXT

    vis.expand(d.id, "src/deep")
    assert d.selection.pending_folders() == {}
    assert _snapshot(d) == ALL_TXT


def test_collapse_expand_round_trip_preserves_selection(env) -> None:
    """TC-05: collapse then expand without toggles leaves the selection unchanged."""
    d, prop, vis = env
    prop.toggle_file(d.id, "src/a.txt", True)
    prop.toggle_file(d.id, "c.txt", True)
    before = (_snapshot(d), d.selection.state_of("src"), d.selection.state_of("root"))

    vis.collapse(d.id, "src")
    vis.expand(d.id, "src")
    vis.collapse(d.id, "root")
    vis.expand(d.id, "root")

    after = (_snapshot(d), d.selection.state_of("src"), d.selection.state_of("root"))
    assert after == before
    assert d.selection.pending_folders() == {}


def test_toggle_of_collapsed_folder_defers_content(env) -> None:
    """TC-06: Toggling a collapsed folder only flags it; a hidden file toggle materializes first."""
    d, prop, vis = env
    vis.collapse(d.id, "src")

    prop.toggle_folder(d.id, "src", True)
    assert d.selection.pending_folders() == {"src": True}
    assert d.selection.is_pending("src") and not d.selection.is_pending("root")
    assert d.selection.state_of("root") is TriState.MIXED

    prop.toggle_file(d.id, "src/a.txt", False)
    assert d.selection.pending_folders() == {}
    assert _snapshot(d) == ["src/deep/b.txt"]
    assert d.selection.state_of("src") is TriState.MIXED
    assert d.selection.state_of("src/deep") is TriState.SELECTED


def test_reveal_of_mixed_folder_materializes_inner_pending(env) -> None:
    """TC-07: A Mixed folder revealing an expanded pending child pushes that child's value."""
    d, prop, vis = env
    vis.collapse(d.id, "src/deep")
    prop.toggle_folder(d.id, "src/deep", True)
    assert d.selection.state_of("src") is TriState.MIXED

    vis.collapse(d.id, "src")
    # Expanding the hidden child only records it; the outer folder is still closed
    vis.expand(d.id, "src/deep")
    assert d.selection.pending_folders() == {"src/deep": True}

    vis.expand(d.id, "src")
    assert d.selection.pending_folders() == {}
    assert _snapshot(d) == ["src/deep/b.txt"]


def test_unknown_targets_are_rejected(env) -> None:
    """TC-08: Expand/collapse of files or unknown folders report False."""
    d, _, vis = env
    assert vis.collapse(d.id, "c.txt") is False
    assert vis.expand(d.id, "nope") is False
    assert vis.expand(42, "src") is False
