"""
taskboard-engine — property tests for the board reducer

File: tests/unit/board/test_engine_properties.py
Last updated: 2026-10-19

Purpose
- Drive the reducer with deterministic random intent sequences and check the
  invariants that must hold after every step.

What this test file should cover
- Status buckets always partition the root ids in root order.
- Revision never decreases and only moves by one per step.
- Undo and redo stacks stay within capacity.
- Accepted dependencies never form a cycle.
- Undo restores the statuses seen before the matching move.

Non-functional requirements
- Deterministic (derandomized) and offline.
"""

from __future__ import annotations

import pytest

from taskboard.board.dependencies import DependencyGraph
from taskboard.board.engine import EngineSettings, create_initial_board_state, reduce_board
from taskboard.board.seed import create_seed_store
from taskboard.board.store import build_status_buckets, validate_store
from taskboard.domain.intents import (
    AddDependency,
    BoardIntent,
    BulkMoveSelected,
    ClearSelection,
    DeselectMany,
    DismissToast,
    MoveTasks,
    RedoMove,
    SelectMany,
    ToggleTaskSelection,
    UndoMove,
)
from taskboard.domain.models import STATUS_ORDER, BoardState, TaskStatus

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st

    _HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    _HYPOTHESIS_AVAILABLE = False

_ROOT_COUNT = 12
_SETTINGS = EngineSettings(history_capacity=5, max_active_toasts=3)
_TASK_IDS = tuple(f"TASK-{index:03d}" for index in range(1, _ROOT_COUNT + 1)) + (
    "TASK-003-S1",
    "ghost",
)


def _fixed_clock() -> int:
    return 1_700_000_000_000


def _initial_state() -> BoardState:
    store = create_seed_store(_fixed_clock(), root_count=_ROOT_COUNT)
    return create_initial_board_state(store, clock=_fixed_clock, settings=_SETTINGS)


def _assert_invariants(state: BoardState) -> None:
    store = state.tasks
    expected = build_status_buckets(store.by_id, store.root_task_ids)
    for status in STATUS_ORDER:
        assert store.ids_by_status[status] == expected[status]
    assert sorted(id_ for ids in store.ids_by_status.values() for id_ in ids) == sorted(
        store.root_task_ids
    )
    assert len(state.undo_stack) <= _SETTINGS.history_capacity
    assert len(state.redo_stack) <= _SETTINGS.history_capacity
    assert len(state.active_toasts) <= _SETTINGS.max_active_toasts
    assert state.selected_task_ids <= set(store.root_task_ids)
    assert DependencyGraph.from_tasks(store.by_id).detect_cycles() == ()
    assert validate_store(store) == ()


if _HYPOTHESIS_AVAILABLE:
    _task_id = st.sampled_from(_TASK_IDS)
    _status = st.sampled_from(tuple(TaskStatus))
    _intent: st.SearchStrategy[BoardIntent] = st.one_of(
        st.builds(ToggleTaskSelection, _task_id),
        st.builds(SelectMany, st.lists(_task_id, max_size=4).map(tuple)),
        st.builds(DeselectMany, st.lists(_task_id, max_size=4).map(tuple)),
        st.just(ClearSelection()),
        st.builds(MoveTasks, st.lists(_task_id, max_size=4).map(tuple), _status),
        st.builds(BulkMoveSelected, _status),
        st.just(UndoMove()),
        st.just(RedoMove()),
        st.builds(AddDependency, _task_id, _task_id),
        st.builds(DismissToast, st.sampled_from(("toast-1", "toast-2", "toast-5", "toast-9"))),
    )

    @settings(max_examples=25, derandomize=True, deadline=None)
    @given(intents=st.lists(_intent, max_size=40))
    def test_property_invariants_hold_after_every_intent(intents: list[BoardIntent]) -> None:
        state = _initial_state()
        _assert_invariants(state)

        for intent in intents:
            previous = state
            state = reduce_board(state, intent, clock=_fixed_clock, settings=_SETTINGS)
            assert state.revision - previous.revision in (0, 1)
            _assert_invariants(state)

    @settings(max_examples=25, derandomize=True, deadline=None)
    @given(
        moves=st.lists(
            st.tuples(st.lists(_task_id, min_size=1, max_size=4).map(tuple), _status),
            min_size=1,
            max_size=5,
        )
    )
    def test_property_undo_restores_pre_move_statuses(
        moves: list[tuple[tuple[str, ...], TaskStatus]],
    ) -> None:
        state = _initial_state()
        snapshots: list[dict[str, TaskStatus]] = []

        for task_ids, status in moves:
            before = {task_id: task.status for task_id, task in state.tasks.by_id.items()}
            next_state = reduce_board(
                state, MoveTasks(task_ids, status), clock=_fixed_clock, settings=_SETTINGS
            )
            if next_state.revision > state.revision:
                snapshots.append(before)
            state = next_state

        after_moves = {task_id: task.status for task_id, task in state.tasks.by_id.items()}
        for expected in reversed(snapshots):
            state = reduce_board(state, UndoMove(), clock=_fixed_clock, settings=_SETTINGS)
            assert {task_id: task.status for task_id, task in state.tasks.by_id.items()} == expected

        for _ in snapshots:
            state = reduce_board(state, RedoMove(), clock=_fixed_clock, settings=_SETTINGS)
        assert {task_id: task.status for task_id, task in state.tasks.by_id.items()} == after_moves

else:

    def test_property_invariants_hold_after_every_intent() -> None:
        pytest.skip("hypothesis is not installed")

    def test_property_undo_restores_pre_move_statuses() -> None:
        pytest.skip("hypothesis is not installed")
