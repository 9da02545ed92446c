"""Bounded undo/redo history of bulk status moves."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from taskboard.constants import MAX_HISTORY
from taskboard.domain.models import MoveRecord, Task, TaskStatus

__all__ = ["append_history", "create_move_record"]


def append_history(
    stack: tuple[MoveRecord, ...], record: MoveRecord, *, capacity: int = MAX_HISTORY
) -> tuple[MoveRecord, ...]:
    """Push ``record``; beyond ``capacity`` the oldest entries are evicted first."""
    if capacity <= 0:
        raise ValueError(f"history capacity must be positive, got {capacity}")
    combined = (*stack, record)
    if len(combined) <= capacity:
        return combined
    return combined[len(combined) - capacity :]


def create_move_record(
    task_ids: Iterable[str],
    next_status: TaskStatus,
    by_id: Mapping[str, Task],
    *,
    changed_at: int,
) -> MoveRecord | None:
    """Describe moving ``task_ids`` to ``next_status``, or ``None`` if nothing would change.

    Ids are de-duplicated keeping first occurrence; unknown ids, subtasks, and
    tasks already in ``next_status`` are left out.
    """
    from_status_by_id: dict[str, TaskStatus] = {}
    to_status_by_id: dict[str, TaskStatus] = {}

    for task_id in dict.fromkeys(task_ids):
        task = by_id.get(task_id)
        if task is None or not task.is_root or task.status == next_status:
            continue
        from_status_by_id[task_id] = task.status
        to_status_by_id[task_id] = next_status

    if not to_status_by_id:
        return None

    return MoveRecord(
        from_status_by_id=from_status_by_id,
        to_status_by_id=to_status_by_id,
        changed_at=changed_at,
    )
