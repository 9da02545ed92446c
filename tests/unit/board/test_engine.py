"""
taskboard-engine — unit tests for the board reducer

File: tests/unit/board/test_engine.py
Last updated: 2026-10-19

Purpose
- Exercise every intent through ``reduce_board`` and pin the resulting
  state, history, revision, and notification behavior.

What this test file should cover
- Selection intents and their identity-preserving no-ops.
- Moves, bulk moves, undo, and redo including bounded history.
- Dependency acceptance and each rejection path.
- Toast dismissal, promotion, and explicit enqueue.

Functional requirements
- Deterministic: the clock is injected.
"""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from taskboard.board.dependencies import DependencyGraph
from taskboard.board.engine import (
    MSG_DEPENDENCY_CYCLE,
    MSG_DUPLICATE_DEPENDENCY,
    MSG_EMPTY_SELECTION,
    MSG_INVALID_DEPENDENCY,
    MSG_NOTHING_MOVED,
    MSG_REDO_EMPTY,
    MSG_REDONE,
    MSG_SELF_DEPENDENCY,
    MSG_UNDO_EMPTY,
    MSG_UNDONE,
    EngineSettings,
    create_initial_board_state,
    reduce_board,
)
from taskboard.board.store import build_store, validate_store
from taskboard.domain.ids import parse_toast_sequence
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
    BoardState,
    Task,
    TaskPriority,
    TaskStatus,
    TaskStore,
    ToastMessage,
    ToastTone,
)


class _TickClock:
    """Monotonic fake clock advancing one millisecond per read."""

    def __init__(self, start: int = 1_000) -> None:
        self.now = start

    def __call__(self) -> int:
        self.now += 1
        return self.now


def _task(
    task_id: str,
    status: TaskStatus,
    *,
    parent_id: str | None = None,
    subtask_ids: tuple[str, ...] = (),
) -> Task:
    return Task(
        id=task_id,
        title=f"Task {task_id}",
        description="",
        status=status,
        priority=TaskPriority.MEDIUM,
        subtask_ids=subtask_ids,
        parent_id=parent_id,
    )


def _store() -> TaskStore:
    return build_store(
        [
            _task("T1", TaskStatus.BACKLOG, subtask_ids=("T1-S1",)),
            _task("T1-S1", TaskStatus.TODO, parent_id="T1"),
            _task("T2", TaskStatus.BACKLOG),
            _task("T3", TaskStatus.TODO),
            _task("T4", TaskStatus.DONE),
        ]
    )


@dataclass
class _Board:
    clock: _TickClock
    settings: EngineSettings
    state: BoardState

    def apply(self, *intents: BoardIntent) -> BoardState:
        for intent in intents:
            self.state = reduce_board(
                self.state, intent, clock=self.clock, settings=self.settings
            )
        return self.state


def _board(settings: EngineSettings | None = None) -> _Board:
    clock = _TickClock()
    resolved = settings or EngineSettings()
    state = create_initial_board_state(_store(), clock=clock, settings=resolved)
    return _Board(clock=clock, settings=resolved, state=state)


def _latest_toast(state: BoardState) -> ToastMessage:
    toasts = (*state.active_toasts, *state.toast_heap)
    return max(toasts, key=lambda toast: parse_toast_sequence(toast.id))


def _statuses(state: BoardState) -> dict[str, TaskStatus]:
    return {task_id: task.status for task_id, task in state.tasks.by_id.items()}


def test_initial_state_has_seeding_notice() -> None:
    board = _board()

    assert board.state.revision == 1
    assert board.state.toast_sequence == 1
    assert [toast.id for toast in board.state.active_toasts] == ["toast-1"]
    toast = board.state.active_toasts[0]
    assert toast.message == "Board seeded with 4 tasks."
    assert (toast.priority, toast.tone) == (1, ToastTone.INFO)


def test_move_then_undo_then_redo() -> None:
    board = _board()
    before = _statuses(board.state)
    before_buckets = dict(board.state.tasks.ids_by_status)

    moved = board.apply(MoveTasks(("T1", "T2"), TaskStatus.DONE))

    assert moved.tasks.by_id["T1"].status is TaskStatus.DONE
    assert moved.tasks.by_id["T2"].status is TaskStatus.DONE
    assert moved.revision == 2
    assert len(moved.undo_stack) == 1
    assert len(moved.undo_stack[0]) == 2
    assert moved.redo_stack == ()
    latest = _latest_toast(moved)
    assert (latest.message, latest.priority, latest.tone) == (
        "Moved 2 tasks.",
        2,
        ToastTone.SUCCESS,
    )
    after = _statuses(moved)

    undone = board.apply(UndoMove())

    assert _statuses(undone) == before
    assert dict(undone.tasks.ids_by_status) == before_buckets
    assert undone.revision == 3
    assert (len(undone.undo_stack), len(undone.redo_stack)) == (0, 1)
    assert _latest_toast(undone).message == MSG_UNDONE

    redone = board.apply(RedoMove())

    assert _statuses(redone) == after
    assert redone.revision == 4
    assert (len(redone.undo_stack), len(redone.redo_stack)) == (1, 0)
    assert _latest_toast(redone).message == MSG_REDONE


def test_single_task_move_message_is_singular() -> None:
    board = _board()

    state = board.apply(MoveTasks(("T3",), TaskStatus.IN_PROGRESS))

    assert _latest_toast(state).message == "Moved 1 task."
    assert state.tasks.ids_by_status[TaskStatus.IN_PROGRESS] == ("T3",)


def test_move_with_no_eligible_tasks_only_notifies() -> None:
    board = _board()
    initial = board.state

    state = board.apply(MoveTasks(("T4", "T1-S1", "ghost"), TaskStatus.DONE))

    assert state.tasks is initial.tasks
    assert state.revision == initial.revision
    assert state.undo_stack == ()
    latest = _latest_toast(state)
    assert (latest.message, latest.priority, latest.tone) == (
        MSG_NOTHING_MOVED,
        1,
        ToastTone.INFO,
    )


def test_mixed_move_counts_only_changed_tasks() -> None:
    board = _board()

    state = board.apply(MoveTasks(("T4", "T3"), TaskStatus.DONE))

    assert _latest_toast(state).message == "Moved 1 task."
    assert tuple(state.undo_stack[-1].task_ids) == ("T3",)


def test_new_move_clears_redo_and_selection() -> None:
    board = _board()
    board.apply(MoveTasks(("T1",), TaskStatus.TODO), UndoMove(), SelectMany(("T2",)))
    assert len(board.state.redo_stack) == 1

    state = board.apply(MoveTasks(("T3",), TaskStatus.DONE))

    assert state.redo_stack == ()
    assert state.selected_task_ids == frozenset()


def test_toggle_selection_ignores_subtasks_and_unknown_ids() -> None:
    board = _board()
    initial = board.state

    assert board.apply(ToggleTaskSelection("T1-S1")) is initial
    assert board.apply(ToggleTaskSelection("ghost")) is initial

    selected = board.apply(ToggleTaskSelection("T2"))
    assert selected.selected_task_ids == frozenset({"T2"})
    assert selected.revision == initial.revision

    cleared = board.apply(ToggleTaskSelection("T2"))
    assert cleared.selected_task_ids == frozenset()


def test_select_deselect_and_clear_no_ops_keep_identity() -> None:
    board = _board()

    selected = board.apply(SelectMany(("T1", "T2", "T1-S1")))
    assert selected.selected_task_ids == frozenset({"T1", "T2"})
    assert board.apply(SelectMany(("T1",))) is selected
    assert board.apply(DeselectMany(("T3",))) is selected

    partial = board.apply(DeselectMany(("T1",)))
    assert partial.selected_task_ids == frozenset({"T2"})

    emptied = board.apply(ClearSelection())
    assert emptied.selected_task_ids == frozenset()
    assert board.apply(ClearSelection()) is emptied
    assert board.apply(DeselectMany(("T2",))) is emptied


def test_bulk_move_requires_selection() -> None:
    board = _board()

    state = board.apply(BulkMoveSelected(TaskStatus.DONE))

    latest = _latest_toast(state)
    assert (latest.message, latest.priority, latest.tone) == (
        MSG_EMPTY_SELECTION,
        1,
        ToastTone.WARNING,
    )
    assert state.revision == 1


def test_bulk_move_follows_board_order_and_clears_selection() -> None:
    board = _board()
    board.apply(ToggleTaskSelection("T3"), ToggleTaskSelection("T1"))

    state = board.apply(BulkMoveSelected(TaskStatus.IN_PROGRESS))

    assert state.selected_task_ids == frozenset()
    assert state.undo_stack[-1].task_ids == ("T1", "T3")
    assert state.tasks.ids_by_status[TaskStatus.IN_PROGRESS] == ("T1", "T3")


def test_undo_and_redo_on_empty_stacks_notify() -> None:
    board = _board()

    undo_state = board.apply(UndoMove())
    assert _latest_toast(undo_state).message == MSG_UNDO_EMPTY
    redo_state = board.apply(RedoMove())
    assert _latest_toast(redo_state).message == MSG_REDO_EMPTY
    assert redo_state.revision == 1


def test_history_is_bounded_by_capacity() -> None:
    board = _board(EngineSettings(history_capacity=2, max_active_toasts=3))

    board.apply(
        MoveTasks(("T1",), TaskStatus.TODO),
        MoveTasks(("T1",), TaskStatus.IN_PROGRESS),
        MoveTasks(("T1",), TaskStatus.DONE),
    )

    assert len(board.state.undo_stack) == 2
    assert board.state.undo_stack[0].from_status_by_id["T1"] is TaskStatus.TODO

    board.apply(UndoMove(), UndoMove(), UndoMove())
    assert board.state.tasks.by_id["T1"].status is TaskStatus.TODO
    assert len(board.state.redo_stack) == 2
    assert _latest_toast(board.state).message == MSG_UNDO_EMPTY


def test_add_dependency_accepts_and_bumps_revision() -> None:
    board = _board()
    initial = board.state

    state = board.apply(AddDependency("T1", "T2"))

    assert state.tasks.by_id["T1"].dependency_ids == ("T2",)
    assert state.revision == 2
    assert state.tasks.ids_by_status == initial.tasks.ids_by_status
    assert initial.tasks.by_id["T1"].dependency_ids == ()
    latest = _latest_toast(state)
    assert (latest.message, latest.priority, latest.tone) == (
        "Dependency added: T1 -> T2",
        2,
        ToastTone.SUCCESS,
    )
    assert validate_store(state.tasks) == ()


@pytest.mark.parametrize(
    ("intent", "message", "priority"),
    [
        (AddDependency("T1", "ghost"), MSG_INVALID_DEPENDENCY, 1),
        (AddDependency("ghost", "T1"), MSG_INVALID_DEPENDENCY, 1),
        (AddDependency("T2", "T2"), MSG_SELF_DEPENDENCY, 1),
    ],
)
def test_add_dependency_rejections(intent: AddDependency, message: str, priority: int) -> None:
    board = _board()
    initial = board.state

    state = board.apply(intent)

    assert state.tasks is initial.tasks
    assert state.revision == initial.revision
    latest = _latest_toast(state)
    assert (latest.message, latest.priority, latest.tone) == (message, priority, ToastTone.ERROR)


def test_duplicate_dependency_is_rejected() -> None:
    board = _board()
    accepted = board.apply(AddDependency("T1", "T2"))

    state = board.apply(AddDependency("T1", "T2"))

    assert state.tasks is accepted.tasks
    assert state.tasks.by_id["T1"].dependency_ids == ("T2",)
    latest = _latest_toast(state)
    assert (latest.message, latest.tone) == (MSG_DUPLICATE_DEPENDENCY, ToastTone.ERROR)


def test_reverse_dependency_is_rejected_as_cycle() -> None:
    board = _board()
    board.apply(AddDependency("T1", "T2"))

    state = board.apply(AddDependency("T2", "T1"))

    assert state.tasks.by_id["T2"].dependency_ids == ()
    assert state.revision == 2
    latest = _latest_toast(state)
    assert (latest.message, latest.priority, latest.tone) == (
        MSG_DEPENDENCY_CYCLE,
        3,
        ToastTone.ERROR,
    )


def test_transitive_cycle_is_rejected() -> None:
    board = _board()
    board.apply(AddDependency("T1", "T2"), AddDependency("T2", "T3"))

    state = board.apply(AddDependency("T3", "T1"))

    assert state.tasks.by_id["T3"].dependency_ids == ()
    assert DependencyGraph.from_tasks(state.tasks.by_id).detect_cycles() == ()


def test_dismiss_promotes_pending_toast() -> None:
    board = _board()
    board.apply(*(EnqueueToast(f"note {index}", 1, ToastTone.INFO) for index in range(4)))
    assert len(board.state.active_toasts) == 3
    assert len(board.state.toast_heap) == 2

    state = board.apply(DismissToast("toast-1"))

    assert "toast-1" not in {toast.id for toast in state.active_toasts}
    assert len(state.active_toasts) == 3
    assert len(state.toast_heap) == 1
    # Newest of the equal-priority pending toasts is promoted first.
    assert state.active_toasts[-1].id == "toast-5"


def test_dismiss_unknown_toast_keeps_identity() -> None:
    board = _board()
    initial = board.state

    assert board.apply(DismissToast("toast-99")) is initial


def test_urgent_toast_jumps_pending_queue() -> None:
    board = _board()
    board.apply(
        EnqueueToast("a", 1, ToastTone.INFO),
        EnqueueToast("b", 1, ToastTone.INFO),
        EnqueueToast("c", 1, ToastTone.INFO),
        EnqueueToast("urgent", 3, ToastTone.ERROR),
    )

    state = board.apply(DismissToast("toast-2"))

    assert state.active_toasts[-1].message == "urgent"
    assert state.active_toasts[-1].priority == 3


def test_unknown_intent_is_ignored() -> None:
    board = _board()

    @dataclass(frozen=True)
    class Unsupported:
        pass

    unsupported: object = Unsupported()
    assert reduce_board(board.state, unsupported, clock=board.clock) is board.state  # type: ignore[arg-type]


def test_plain_string_status_is_coerced() -> None:
    board = _board()

    state = board.apply(MoveTasks(("T1",), "done"))  # type: ignore[arg-type]

    assert state.tasks.by_id["T1"].status is TaskStatus.DONE
    assert state.revision == 2
    assert state.undo_stack[-1].to_status_by_id == {"T1": TaskStatus.DONE}


@pytest.mark.parametrize(
    "intent",
    [
        MoveTasks(("T1",), "archived"),  # type: ignore[arg-type]
        BulkMoveSelected("nowhere"),  # type: ignore[arg-type]
        EnqueueToast("too loud", 7, ToastTone.INFO),
        EnqueueToast("odd tone", 2, "shouting"),  # type: ignore[arg-type]
    ],
)
def test_malformed_intents_leave_state_untouched(intent: BoardIntent) -> None:
    board = _board()
    board.apply(SelectMany(("T1", "T2")))
    before = board.state

    assert reduce_board(before, intent, clock=board.clock) is before


def test_enqueue_toast_accepts_plain_string_tone() -> None:
    board = _board()

    state = board.apply(EnqueueToast("heads up", 2, "warning"))  # type: ignore[arg-type]

    toast = _latest_toast(state)
    assert toast.message == "heads up"
    assert toast.tone is ToastTone.WARNING


def test_engine_settings_validation() -> None:
    with pytest.raises(ValueError, match="history_capacity"):
        EngineSettings(history_capacity=0)
    with pytest.raises(ValueError, match="max_active_toasts"):
        EngineSettings(max_active_toasts=0)
