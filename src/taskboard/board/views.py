"""Read-only projections derived from a board snapshot."""

from __future__ import annotations

import math
from collections.abc import Iterator

from taskboard.board.dependencies import DependencyGraph
from taskboard.constants import SUGGESTION_LIMIT
from taskboard.domain.models import (
    STATUS_ORDER,
    BoardState,
    StatusCount,
    Task,
    TaskStatus,
    TaskStore,
)
from taskboard.structures.trie import PrefixTrie

__all__ = [
    "build_title_index",
    "completion_percent",
    "dependency_edge_count",
    "history_counts",
    "iter_subtask_tree",
    "open_dependencies",
    "percentage",
    "root_tasks",
    "selection_percent",
    "status_overview",
    "suggest_tasks",
]


def percentage(part: int, total: int) -> int:
    """Whole-number percentage, 0 when ``total`` is not positive."""
    if total <= 0:
        return 0
    # Half-up, not banker's rounding.
    return math.floor(part * 100 / total + 0.5)


def root_tasks(store: TaskStore) -> tuple[Task, ...]:
    return tuple(store.by_id[task_id] for task_id in store.root_task_ids if task_id in store.by_id)


def status_overview(store: TaskStore) -> tuple[StatusCount, ...]:
    total = len(store.root_task_ids)
    return tuple(
        StatusCount(
            status=status,
            count=len(store.ids_by_status[status]),
            percent=percentage(len(store.ids_by_status[status]), total),
        )
        for status in STATUS_ORDER
    )


def completion_percent(store: TaskStore) -> int:
    return percentage(len(store.ids_by_status[TaskStatus.DONE]), len(store.root_task_ids))


def selection_percent(state: BoardState) -> int:
    return percentage(len(state.selected_task_ids), len(state.tasks.root_task_ids))


def dependency_edge_count(store: TaskStore) -> int:
    return sum(len(task.dependency_ids) for task in root_tasks(store))


def history_counts(state: BoardState) -> tuple[int, int]:
    """``(undo_depth, redo_depth)``."""
    return len(state.undo_stack), len(state.redo_stack)


def iter_subtask_tree(store: TaskStore, task_id: str) -> Iterator[tuple[Task, int]]:
    """Yield ``(task, depth)`` pairs in pre-order below ``task_id`` (depth starts at 1).

    Iterative, and each id is visited once even if the data contains a loop.
    """
    root = store.by_id.get(task_id)
    if root is None:
        return

    visited: set[str] = {task_id}
    stack: list[tuple[str, int]] = [(child_id, 1) for child_id in reversed(root.subtask_ids)]
    while stack:
        current_id, depth = stack.pop()
        if current_id in visited:
            continue
        visited.add(current_id)
        task = store.by_id.get(current_id)
        if task is None:
            continue
        yield task, depth
        stack.extend((child_id, depth + 1) for child_id in reversed(task.subtask_ids))


def open_dependencies(store: TaskStore, task_id: str) -> tuple[Task, ...]:
    """Transitive dependencies of ``task_id`` that are not done yet."""
    graph = DependencyGraph.from_tasks(store.by_id)
    return tuple(
        task
        for dependency_id in graph.transitive_dependencies(task_id)
        if (task := store.by_id.get(dependency_id)) is not None and task.status is not TaskStatus.DONE
    )


def build_title_index(store: TaskStore) -> PrefixTrie:
    trie = PrefixTrie()
    for task in root_tasks(store):
        trie.insert(task.title, task.id)
    return trie


def suggest_tasks(
    trie: PrefixTrie, store: TaskStore, query: str, limit: int = SUGGESTION_LIMIT
) -> tuple[Task, ...]:
    """Resolve trie suggestions back to tasks, dropping ids no longer in the store."""
    return tuple(
        task for task_id in trie.suggest(query, limit) if (task := store.by_id.get(task_id)) is not None
    )
