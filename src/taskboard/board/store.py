"""Task store construction, status transitions, and invariant checks."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from taskboard.domain.models import STATUS_ORDER, Task, TaskStatus, TaskStore

__all__ = [
    "apply_status_transition",
    "build_status_buckets",
    "build_store",
    "empty_status_map",
    "validate_store",
]


def empty_status_map() -> dict[TaskStatus, list[str]]:
    return {status: [] for status in STATUS_ORDER}


def build_status_buckets(
    by_id: Mapping[str, Task], root_task_ids: Iterable[str]
) -> dict[TaskStatus, tuple[str, ...]]:
    """Partition ``root_task_ids`` by status, keeping root order; unknown ids are skipped."""
    buckets = empty_status_map()
    for task_id in root_task_ids:
        task = by_id.get(task_id)
        if task is None:
            continue
        buckets[task.status].append(task.id)
    return {status: tuple(ids) for status, ids in buckets.items()}


def build_store(tasks: Iterable[Task]) -> TaskStore:
    """Build a store from tasks; roots are ordered by first appearance."""
    by_id: dict[str, Task] = {}
    root_task_ids: list[str] = []
    for task in tasks:
        if task.id in by_id:
            raise ValueError(f"duplicate task id {task.id!r}")
        by_id[task.id] = task
        if task.is_root:
            root_task_ids.append(task.id)
    return TaskStore(
        by_id=by_id,
        root_task_ids=tuple(root_task_ids),
        ids_by_status=build_status_buckets(by_id, root_task_ids),
    )


def apply_status_transition(
    store: TaskStore, status_by_task_id: Mapping[str, TaskStatus], *, now_ms: int
) -> TaskStore:
    """Apply a status map to root tasks.

    Absent ids, subtasks, and tasks already in the requested status are
    skipped. Returns ``store`` itself (identity preserved) when nothing
    changes; otherwise a new store with rebuilt status buckets.
    """
    next_by_id: dict[str, Task] | None = None
    for task_id, status in status_by_task_id.items():
        task = store.by_id.get(task_id)
        if task is None or not task.is_root or task.status == status:
            continue
        if next_by_id is None:
            next_by_id = dict(store.by_id)
        next_by_id[task_id] = task.with_status(status, updated_at=now_ms)

    if next_by_id is None:
        return store

    return TaskStore(
        by_id=next_by_id,
        root_task_ids=store.root_task_ids,
        ids_by_status=build_status_buckets(next_by_id, store.root_task_ids),
    )


def validate_store(store: TaskStore) -> tuple[str, ...]:
    """Return human-readable invariant violations; empty when the store is sound."""
    issues: list[str] = []
    seen_roots: set[str] = set()

    for task_id in store.root_task_ids:
        task = store.by_id.get(task_id)
        if task is None:
            issues.append(f"root_task_ids: unknown task {task_id!r}")
            continue
        if not task.is_root:
            issues.append(f"root_task_ids: {task_id!r} has parent {task.parent_id!r}")
        if task_id in seen_roots:
            issues.append(f"root_task_ids: duplicate {task_id!r}")
        seen_roots.add(task_id)

    for task_id, task in store.by_id.items():
        if task.id != task_id:
            issues.append(f"by_id[{task_id!r}]: id mismatch {task.id!r}")
        if task.is_root and task_id not in seen_roots:
            issues.append(f"by_id[{task_id!r}]: root task missing from root_task_ids")
        if task.parent_id is not None:
            parent = store.by_id.get(task.parent_id)
            if parent is None:
                issues.append(f"by_id[{task_id!r}]: unknown parent {task.parent_id!r}")
            elif task_id not in parent.subtask_ids:
                issues.append(f"by_id[{task_id!r}]: not listed in parent {task.parent_id!r}")
        for subtask_id in task.subtask_ids:
            subtask = store.by_id.get(subtask_id)
            if subtask is None:
                issues.append(f"by_id[{task_id!r}]: unknown subtask {subtask_id!r}")
            elif subtask.parent_id != task_id:
                issues.append(f"by_id[{task_id!r}]: subtask {subtask_id!r} has another parent")
        for dependency_id in task.dependency_ids:
            if dependency_id not in store.by_id:
                issues.append(f"by_id[{task_id!r}]: unknown dependency {dependency_id!r}")

    expected = build_status_buckets(store.by_id, store.root_task_ids)
    for status in STATUS_ORDER:
        if tuple(store.ids_by_status[status]) != expected[status]:
            issues.append(f"ids_by_status[{status.value}]: does not match root statuses")

    return tuple(issues)
