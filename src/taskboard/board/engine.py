"""
taskboard-engine — board reducer

File: src/taskboard/board/engine.py

Purpose
- Pure, synchronous reducer: ``reduce_board(state, intent) -> state'``.
- Every accepted mutation produces a new ``BoardState``; rejected or no-op
  intents return the input object itself or a state that only differs by a
  queued notification.

Behavioral contract
- Invalid intents never raise. Rejected moves and dependencies are reported
  through toasts; unknown statuses, tones, or toast priorities are ignored.
- ``revision`` increases by exactly one per successful move, undo, redo, or
  dependency addition and never otherwise.
- Undo and redo stacks are bounded by ``EngineSettings.history_capacity``.
- Timestamps come from the injected ``Clock`` so reductions are reproducible.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Final

from taskboard.board.dependencies import creates_dependency_cycle
from taskboard.board.history import append_history, create_move_record
from taskboard.board.notifications import enqueue_toast, flush_visible_toasts
from taskboard.board.store import apply_status_transition
from taskboard.constants import MAX_ACTIVE_TOASTS, MAX_HISTORY
from taskboard.domain.intents import (
    AddDependency,
    BoardIntent,
    BulkMoveSelected,
    ClearSelection,
    DeselectMany,
    DismissToast,
    EnqueueToast,
    MoveTasks,
    RedoMove,
    SelectMany,
    ToggleTaskSelection,
    UndoMove,
)
from taskboard.domain.models import (
    TOAST_PRIORITIES,
    BoardState,
    MoveRecord,
    TaskStatus,
    TaskStore,
    ToastTone,
)

Clock = Callable[[], int]
"""Returns the current time in epoch milliseconds."""

logger = logging.getLogger(__name__)


def system_clock() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True, slots=True)
class EngineSettings:
    history_capacity: int = MAX_HISTORY
    max_active_toasts: int = MAX_ACTIVE_TOASTS

    def __post_init__(self) -> None:
        if self.history_capacity <= 0:
            raise ValueError(f"history_capacity must be positive, got {self.history_capacity}")
        if self.max_active_toasts <= 0:
            raise ValueError(f"max_active_toasts must be positive, got {self.max_active_toasts}")


DEFAULT_ENGINE_SETTINGS: Final[EngineSettings] = EngineSettings()

MSG_NOTHING_MOVED: Final[str] = "No eligible tasks were moved."
MSG_EMPTY_SELECTION: Final[str] = "Select tasks before bulk move."
MSG_UNDO_EMPTY: Final[str] = "Undo stack is empty."
MSG_REDO_EMPTY: Final[str] = "Redo stack is empty."
MSG_UNDONE: Final[str] = "Undid last move."
MSG_REDONE: Final[str] = "Redid last move."
MSG_INVALID_DEPENDENCY: Final[str] = "Invalid dependency target."
MSG_SELF_DEPENDENCY: Final[str] = "A task cannot depend on itself."
MSG_DUPLICATE_DEPENDENCY: Final[str] = "Dependency already exists."
MSG_DEPENDENCY_CYCLE: Final[str] = "Dependency rejected: cycle detected."


class _Reduction:
    """Per-call context bundling the clock and limits."""

    __slots__ = ("clock", "settings")

    def __init__(self, clock: Clock, settings: EngineSettings) -> None:
        self.clock = clock
        self.settings = settings

    def notify(self, state: BoardState, message: str, priority: int, tone: ToastTone) -> BoardState:
        return enqueue_toast(
            state,
            message,
            priority,
            tone,
            now_ms=self.clock(),
            max_active=self.settings.max_active_toasts,
        )

    def push_history(
        self, stack: tuple[MoveRecord, ...], record: MoveRecord
    ) -> tuple[MoveRecord, ...]:
        return append_history(stack, record, capacity=self.settings.history_capacity)


def _is_root_task(store: TaskStore, task_id: str) -> bool:
    task = store.by_id.get(task_id)
    return task is not None and task.is_root


def _coerce_status(value: object) -> TaskStatus | None:
    try:
        return TaskStatus(value)
    except (TypeError, ValueError):
        return None


def _coerce_tone(value: object) -> ToastTone | None:
    try:
        return ToastTone(value)
    except (TypeError, ValueError):
        return None


def _toggle_selection(state: BoardState, intent: ToggleTaskSelection, ctx: _Reduction) -> BoardState:
    if not _is_root_task(state.tasks, intent.task_id):
        return state
    return replace(state, selected_task_ids=state.selected_task_ids ^ {intent.task_id})


def _select_many(state: BoardState, intent: SelectMany, ctx: _Reduction) -> BoardState:
    additions = {task_id for task_id in intent.task_ids if _is_root_task(state.tasks, task_id)}
    if additions <= state.selected_task_ids:
        return state
    return replace(state, selected_task_ids=state.selected_task_ids | additions)


def _deselect_many(state: BoardState, intent: DeselectMany, ctx: _Reduction) -> BoardState:
    if not state.selected_task_ids or not intent.task_ids:
        return state
    remaining = state.selected_task_ids.difference(intent.task_ids)
    if len(remaining) == len(state.selected_task_ids):
        return state
    return replace(state, selected_task_ids=remaining)


def _clear_selection(state: BoardState, intent: ClearSelection, ctx: _Reduction) -> BoardState:
    if not state.selected_task_ids:
        return state
    return replace(state, selected_task_ids=frozenset())


def _move(
    state: BoardState, task_ids: tuple[str, ...], next_status: TaskStatus, ctx: _Reduction
) -> BoardState:
    now_ms = ctx.clock()
    record = create_move_record(task_ids, next_status, state.tasks.by_id, changed_at=now_ms)
    if record is None:
        logger.debug("move rejected: no eligible tasks for %s", next_status.value)
        return ctx.notify(state, MSG_NOTHING_MOVED, 1, ToastTone.INFO)

    tasks = apply_status_transition(state.tasks, record.to_status_by_id, now_ms=now_ms)
    moved = len(record)
    next_state = replace(
        state,
        tasks=tasks,
        selected_task_ids=frozenset(),
        undo_stack=ctx.push_history(state.undo_stack, record),
        redo_stack=(),
        revision=state.revision + 1,
    )
    logger.info(
        "moved %d task(s) to %s at revision %d", moved, next_status.value, next_state.revision
    )
    suffix = "s" if moved > 1 else ""
    return ctx.notify(next_state, f"Moved {moved} task{suffix}.", 2, ToastTone.SUCCESS)


def _move_tasks(state: BoardState, intent: MoveTasks, ctx: _Reduction) -> BoardState:
    next_status = _coerce_status(intent.next_status)
    if next_status is None:
        logger.debug("ignoring move to unknown status %r", intent.next_status)
        return state
    return _move(state, intent.task_ids, next_status, ctx)


def _bulk_move_selected(state: BoardState, intent: BulkMoveSelected, ctx: _Reduction) -> BoardState:
    next_status = _coerce_status(intent.next_status)
    if next_status is None:
        logger.debug("ignoring bulk move to unknown status %r", intent.next_status)
        return state
    if not state.selected_task_ids:
        return ctx.notify(state, MSG_EMPTY_SELECTION, 1, ToastTone.WARNING)
    # Board order keeps the move record deterministic.
    ordered = tuple(
        task_id for task_id in state.tasks.root_task_ids if task_id in state.selected_task_ids
    )
    return _move(state, ordered, next_status, ctx)


def _undo_move(state: BoardState, intent: UndoMove, ctx: _Reduction) -> BoardState:
    if not state.undo_stack:
        return ctx.notify(state, MSG_UNDO_EMPTY, 1, ToastTone.INFO)

    record = state.undo_stack[-1]
    next_state = replace(
        state,
        tasks=apply_status_transition(state.tasks, record.from_status_by_id, now_ms=ctx.clock()),
        undo_stack=state.undo_stack[:-1],
        redo_stack=ctx.push_history(state.redo_stack, record),
        revision=state.revision + 1,
    )
    logger.info("undid move of %d task(s) at revision %d", len(record), next_state.revision)
    return ctx.notify(next_state, MSG_UNDONE, 2, ToastTone.SUCCESS)


def _redo_move(state: BoardState, intent: RedoMove, ctx: _Reduction) -> BoardState:
    if not state.redo_stack:
        return ctx.notify(state, MSG_REDO_EMPTY, 1, ToastTone.INFO)

    record = state.redo_stack[-1]
    next_state = replace(
        state,
        tasks=apply_status_transition(state.tasks, record.to_status_by_id, now_ms=ctx.clock()),
        redo_stack=state.redo_stack[:-1],
        undo_stack=ctx.push_history(state.undo_stack, record),
        revision=state.revision + 1,
    )
    logger.info("redid move of %d task(s) at revision %d", len(record), next_state.revision)
    return ctx.notify(next_state, MSG_REDONE, 2, ToastTone.SUCCESS)


def _add_dependency(state: BoardState, intent: AddDependency, ctx: _Reduction) -> BoardState:
    by_id = state.tasks.by_id
    task = by_id.get(intent.task_id)
    dependency = by_id.get(intent.depends_on_task_id)

    if task is None or dependency is None:
        return ctx.notify(state, MSG_INVALID_DEPENDENCY, 1, ToastTone.ERROR)
    if task.id == dependency.id:
        return ctx.notify(state, MSG_SELF_DEPENDENCY, 1, ToastTone.ERROR)
    if dependency.id in task.dependency_ids:
        return ctx.notify(state, MSG_DUPLICATE_DEPENDENCY, 1, ToastTone.ERROR)
    if creates_dependency_cycle(by_id, task.id, dependency.id):
        logger.info("dependency %s -> %s rejected: cycle", task.id, dependency.id)
        return ctx.notify(state, MSG_DEPENDENCY_CYCLE, 3, ToastTone.ERROR)

    next_by_id = dict(by_id)
    next_by_id[task.id] = task.with_dependency(dependency.id, updated_at=ctx.clock())
    tasks = TaskStore(
        by_id=next_by_id,
        root_task_ids=state.tasks.root_task_ids,
        ids_by_status=state.tasks.ids_by_status,
    )
    next_state = replace(state, tasks=tasks, revision=state.revision + 1)
    logger.info("dependency %s -> %s added at revision %d", task.id, dependency.id, next_state.revision)
    return ctx.notify(
        next_state, f"Dependency added: {task.id} -> {dependency.id}", 2, ToastTone.SUCCESS
    )


def _dismiss_toast(state: BoardState, intent: DismissToast, ctx: _Reduction) -> BoardState:
    remaining = tuple(toast for toast in state.active_toasts if toast.id != intent.toast_id)
    if len(remaining) == len(state.active_toasts):
        return state
    return flush_visible_toasts(
        replace(state, active_toasts=remaining), max_active=ctx.settings.max_active_toasts
    )


def _enqueue_toast(state: BoardState, intent: EnqueueToast, ctx: _Reduction) -> BoardState:
    tone = _coerce_tone(intent.tone)
    if intent.priority not in TOAST_PRIORITIES or tone is None:
        logger.debug("ignoring toast with priority %r and tone %r", intent.priority, intent.tone)
        return state
    return ctx.notify(state, intent.message, intent.priority, tone)


_HANDLERS: Final[dict[type, Callable[[BoardState, BoardIntent, _Reduction], BoardState]]] = {
    ToggleTaskSelection: _toggle_selection,
    SelectMany: _select_many,
    DeselectMany: _deselect_many,
    ClearSelection: _clear_selection,
    MoveTasks: _move_tasks,
    BulkMoveSelected: _bulk_move_selected,
    UndoMove: _undo_move,
    RedoMove: _redo_move,
    AddDependency: _add_dependency,
    DismissToast: _dismiss_toast,
    EnqueueToast: _enqueue_toast,
}


def reduce_board(
    state: BoardState,
    intent: BoardIntent,
    *,
    clock: Clock = system_clock,
    settings: EngineSettings = DEFAULT_ENGINE_SETTINGS,
) -> BoardState:
    """Apply one intent. Unknown intents return ``state`` unchanged."""
    handler = _HANDLERS.get(type(intent))
    if handler is None:
        logger.debug("ignoring unknown intent %r", type(intent).__name__)
        return state
    return handler(state, intent, _Reduction(clock, settings))


def create_initial_board_state(
    store: TaskStore,
    *,
    clock: Clock = system_clock,
    settings: EngineSettings = DEFAULT_ENGINE_SETTINGS,
) -> BoardState:
    """Fresh state at revision 1 with the seeding notice already visible."""
    base = BoardState(tasks=store)
    ctx = _Reduction(clock, settings)
    return ctx.notify(base, f"Board seeded with {len(store.root_task_ids)} tasks.", 1, ToastTone.INFO)


__all__ = [
    "Clock",
    "DEFAULT_ENGINE_SETTINGS",
    "EngineSettings",
    "create_initial_board_state",
    "reduce_board",
    "system_clock",
]
