from __future__ import annotations

"""
Unit tests for the per-directory SelectionStore.

Covers selectability counts, restore from persisted paths, rebinding to a
refreshed tree and re-derivation after a whitelist change.
"""

from typing import Callable

from repoprompt.core.selection.whitelist import Whitelist
from repoprompt.core.services.workspace import Directory, Workspace
from repoprompt.domain.selection_models import TriState
from repoprompt.domain.tree_models import TreeModel

FILES = ["a.txt", "b.bin", "sub/c.txt", "bin/tool.bin"]


def test_counts_exclude_non_selectable_files(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> None:
    """TC-01: Only whitelisted files count as selectable descendants."""
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", FILES)
    store = d.selection

    assert store.selectable_count("root") == 2
    assert store.selectable_count("sub") == 1
    assert store.selectable_count("bin") == 0
    assert store.is_selectable("a.txt")
    assert not store.is_selectable("b.bin")
    assert store.state_of("root") is TriState.UNSELECTED


def test_apply_paths_restores_files_only(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> None:
    """TC-02: Persisted selections ignore folders and unknown paths."""
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", FILES)

    applied = d.selection.apply_paths(["a.txt", "sub", "gone.txt", "sub/c.txt", 7])

    assert applied == 2
    assert d.selection.selected_files() == ["sub/c.txt", "a.txt"]
    assert d.selection.state_of("root") is TriState.SELECTED
    assert d.selection.state_of("bin") is TriState.UNSELECTED


def test_non_selectable_intent_is_never_reported(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> None:
    """TC-03: A restored non-selectable path stays out of the selection."""
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", FILES)

    d.selection.apply_paths(["b.bin", "a.txt"])

    assert d.selection.selected_files() == ["a.txt"]
    assert d.selection.is_selected("b.bin") is False


def test_rebind_keeps_selection_by_path(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> None:
    """TC-04: A refreshed tree keeps surviving paths and drops vanished ones."""
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", FILES)
    d.selection.apply_paths(["a.txt", "sub/c.txt"])

    d.replace_tree(TreeModel.from_paths("root", ["a.txt", "new.txt", "other/d.txt"]))

    assert d.selection.selected_files() == ["a.txt"]
    assert d.selection.state_of("root") is TriState.MIXED
    assert d.selection.state_of("other") is TriState.UNSELECTED


def test_whitelist_change_rederives_states(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> None:
    """TC-05: Widening the whitelist turns a fully selected root into Mixed."""
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", FILES)
    d.selection.apply_paths(["a.txt", "sub/c.txt"])
    assert d.selection.state_of("root") is TriState.SELECTED

    ws.whitelist.add(".bin")
    ws.recompute_selectability()

    assert d.selection.selectable_count("root") == 4
    assert d.selection.state_of("root") is TriState.MIXED
    assert d.selection.state_of("bin") is TriState.UNSELECTED


def test_clear_resets_everything(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> None:
    """TC-06: clear() drops intent and pending flags."""
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", FILES)
    d.selection.apply_paths(["a.txt"])
    d.selection.mark_pending("sub", True)

    d.selection.clear()

    assert d.selection.selected_files() == []
    assert d.selection.pending_folders() == {}
