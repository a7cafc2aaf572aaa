from __future__ import annotations

"""
Unit tests for selection propagation.

Exercises folder and file toggles on fully visible trees: tri-state
derivation, idempotence, the folder-state invariant and the silent no-op
contract on invalid targets.
"""

from typing import Callable, Dict, List, Tuple

import pytest

from repoprompt.core.selection.propagator import SelectionPropagator
from repoprompt.core.selection.whitelist import Whitelist
from repoprompt.core.services.workspace import Directory, Workspace
from repoprompt.domain.selection_models import TriState


@pytest.fixture
def scenario(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> Tuple[Workspace, Directory, SelectionPropagator]:
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", ["a.txt", "b.bin", "sub/c.txt"])
    return ws, d, SelectionPropagator(ws)


def _folder_states(d: Directory) -> Dict[str, TriState]:
    return {f: d.selection.state_of(f) for f in d.tree.folders_bottom_up()}


def _assert_folder_invariant(d: Directory) -> None:
    for folder in d.tree.folders_bottom_up():
        assert d.selection.state_of(folder) is d.selection.derive(folder), folder


def test_selecting_root_selects_whitelisted_files(scenario) -> None:
    """TC-01: Root toggle selects a.txt and c.txt; root counts as Selected."""
    _, d, prop = scenario

    assert prop.toggle_folder(d.id, "root", True) is True

    assert d.selection.selected_files() == ["sub/c.txt", "a.txt"]
    assert d.selection.is_selected("b.bin") is False
    assert d.selection.state_of("root") is TriState.SELECTED
    assert d.selection.state_of("sub") is TriState.SELECTED


def test_deselecting_single_file_makes_parents_partial(scenario) -> None:
    """TC-02: Dropping c.txt leaves sub Unselected and root Mixed."""
    _, d, prop = scenario
    prop.toggle_folder(d.id, "root", True)

    assert prop.toggle_file(d.id, "sub/c.txt", False) is True

    assert d.selection.state_of("sub") is TriState.UNSELECTED
    assert d.selection.state_of("root") is TriState.MIXED
    assert d.selection.selected_files() == ["a.txt"]
    _assert_folder_invariant(d)


def test_toggles_are_idempotent(scenario) -> None:
    """TC-03: Applying the same toggle twice changes nothing the second time."""
    _, d, prop = scenario

    prop.toggle_folder(d.id, "sub", True)
    first = (_folder_states(d), d.selection.selected_files())
    prop.toggle_folder(d.id, "sub", True)
    assert (_folder_states(d), d.selection.selected_files()) == first

    prop.toggle_file(d.id, "a.txt", True)
    second = (_folder_states(d), d.selection.selected_files())
    prop.toggle_file(d.id, "a.txt", True)
    assert (_folder_states(d), d.selection.selected_files()) == second


def test_folder_invariant_after_mixed_sequence(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> None:
    """TC-04: Every folder state equals the one derived from its children."""
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", [
        "x/1.txt", "x/2.txt", "x/y/3.txt", "x/y/z/4.txt", "w/5.txt", "w/junk.bin", "6.txt",
    ])
    prop = SelectionPropagator(ws)

    steps: List[Tuple[str, str, bool]] = [
        ("folder", "root", True),
        ("file", "x/y/3.txt", False),
        ("folder", "x/y/z", False),
        ("file", "w/5.txt", False),
        ("folder", "x", True),
        ("file", "6.txt", False),
    ]
    for kind, path, value in steps:
        if kind == "folder":
            prop.toggle_folder(d.id, path, value)
        else:
            prop.toggle_file(d.id, path, value)
        _assert_folder_invariant(d)

    assert d.selection.selected_files() == ["x/y/z/4.txt", "x/y/3.txt", "x/1.txt", "x/2.txt"]
    assert d.selection.state_of("w") is TriState.UNSELECTED
    assert d.selection.state_of("root") is TriState.MIXED


def test_invalid_targets_are_noops(scenario) -> None:
    """TC-05: Unknown paths, kind mismatches and non-selectable files are ignored."""
    _, d, prop = scenario

    assert prop.toggle_file(d.id, "b.bin", True) is False
    assert prop.toggle_file(d.id, "missing.txt", True) is False
    assert prop.toggle_file(d.id, "sub", True) is False
    assert prop.toggle_folder(d.id, "a.txt", True) is False
    assert prop.toggle_folder(999, "root", True) is False
    assert d.selection.selected_files() == []


def test_folder_without_selectable_files_stays_unselected(
        txt_whitelist: Whitelist, make_directory: Callable[..., Directory]
) -> None:
    """TC-06: A folder of only non-selectable files never becomes Selected."""
    ws = Workspace(txt_whitelist)
    d = make_directory(ws, "root", ["bin/tool.bin", "a.txt"])
    prop = SelectionPropagator(ws)

    prop.toggle_folder(d.id, "bin", True)
    assert d.selection.state_of("bin") is TriState.UNSELECTED

    prop.toggle_file(d.id, "a.txt", True)
    assert d.selection.state_of("root") is TriState.SELECTED
