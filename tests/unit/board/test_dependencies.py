"""
taskboard-engine — unit tests for the dependency graph

File: tests/unit/board/test_dependencies.py
Last updated: 2026-10-19

Purpose
- Verify reachability, cycle checks, and cycle reporting.

What this test file should cover
- ``creates_cycle`` on direct, transitive, and self edges.
- Canonical cycle paths from ``detect_cycles``.
- Transitive dependency listing.
- ``creates_dependency_cycle`` against a seeded store.
"""

from __future__ import annotations

from taskboard.board.dependencies import DependencyGraph, creates_dependency_cycle
from taskboard.board.seed import create_seed_store


def test_has_path_follows_edges_in_direction() -> None:
    graph = DependencyGraph({"A": ["B"], "B": ["C"], "C": []})

    assert graph.has_path("A", "C")
    assert not graph.has_path("C", "A")
    assert graph.has_path("B", "B")


def test_creates_cycle_for_direct_transitive_and_self_edges() -> None:
    graph = DependencyGraph({"A": ["B"], "B": ["C"]})

    assert graph.creates_cycle("B", "A")
    assert graph.creates_cycle("C", "A")
    assert graph.creates_cycle("A", "A")
    assert not graph.creates_cycle("A", "C")


def test_with_edge_leaves_original_untouched() -> None:
    graph = DependencyGraph({"A": ["B"]})

    scratch = graph.with_edge("B", "A")

    assert scratch.detect_cycles() == (("A", "B", "A"),)
    assert graph.detect_cycles() == ()
    assert not graph.has_path("B", "A")


def test_detect_cycles_returns_canonical_paths() -> None:
    graph = DependencyGraph({"C": ["A"], "A": ["B"], "B": ["C"], "D": ["D"], "E": []})

    assert graph.detect_cycles() == (("A", "B", "C", "A"), ("D", "D"))


def test_transitive_dependencies_are_sorted_and_exclude_self() -> None:
    graph = DependencyGraph({"A": ["C", "B"], "B": ["D"], "C": ["A"], "D": []})

    assert graph.transitive_dependencies("A") == ("B", "C", "D")
    assert graph.transitive_dependencies("D") == ()


def test_seed_board_is_acyclic_and_cycle_check_uses_store() -> None:
    store = create_seed_store(1_700_000_000_000, root_count=30)

    assert DependencyGraph.from_tasks(store.by_id).detect_cycles() == ()
    # TASK-006 depends on TASK-004, so the reverse edge closes a loop.
    assert creates_dependency_cycle(store.by_id, "TASK-004", "TASK-006")
    assert not creates_dependency_cycle(store.by_id, "TASK-006", "TASK-001")
