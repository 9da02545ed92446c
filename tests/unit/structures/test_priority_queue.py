"""
taskboard-engine — unit tests for the comparator-driven priority queue

File: tests/unit/structures/test_priority_queue.py
Last updated: 2026-10-19

Purpose
- Verify max-heap ordering, size accounting, and empty-queue behavior.

What this test file should cover
- Pops are non-increasing by (priority, newer first on ties).
- ``size`` tracks pushes minus pops.
- Seeding from an existing sequence heapifies it.
- Deterministic property coverage over random push/pop sequences.
"""

from __future__ import annotations

import pytest

from taskboard.board.notifications import toast_comparator
from taskboard.domain.models import ToastMessage, ToastTone
from taskboard.structures.priority_queue import PriorityQueue

try:
    from hypothesis import given, settings
    from hypothesis import strategies as st

    _HYPOTHESIS_AVAILABLE = True
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    _HYPOTHESIS_AVAILABLE = False


def _int_queue() -> PriorityQueue[int]:
    return PriorityQueue(lambda left, right: left - right)


def _toast(sequence: int, priority: int, created_at: int) -> ToastMessage:
    return ToastMessage(
        id=f"toast-{sequence}",
        message=f"message {sequence}",
        priority=priority,
        tone=ToastTone.INFO,
        created_at=created_at,
    )


def test_pop_returns_largest_first() -> None:
    queue = _int_queue()
    for value in (5, 1, 9, 3, 7):
        queue.push(value)

    assert queue.peek() == 9
    assert [queue.pop() for _ in range(5)] == [9, 7, 5, 3, 1]


def test_empty_queue_pop_and_peek_return_none() -> None:
    queue = _int_queue()

    assert queue.pop() is None
    assert queue.peek() is None
    assert queue.size == 0
    assert not queue


def test_size_tracks_pushes_and_pops() -> None:
    queue = _int_queue()
    queue.push(2)
    queue.push(4)
    queue.push(6)
    queue.pop()

    assert queue.size == 2
    assert len(queue) == 2
    assert sorted(queue.to_list()) == [2, 4]


def test_seeded_queue_is_heapified() -> None:
    queue = PriorityQueue(lambda left, right: left - right, [3, 8, 1, 6])

    assert queue.pop() == 8
    assert queue.pop() == 6


def test_to_list_is_a_copy() -> None:
    queue = _int_queue()
    queue.push(1)
    snapshot = queue.to_list()
    snapshot.append(100)

    assert queue.size == 1


def test_toast_ordering_prefers_priority_then_newer() -> None:
    queue = PriorityQueue(toast_comparator)
    queue.push(_toast(1, 1, created_at=10))
    queue.push(_toast(2, 3, created_at=20))
    queue.push(_toast(3, 2, created_at=30))
    queue.push(_toast(4, 3, created_at=40))

    popped = [queue.pop() for _ in range(4)]

    assert [toast.id for toast in popped if toast is not None] == [
        "toast-4",
        "toast-2",
        "toast-3",
        "toast-1",
    ]


if _HYPOTHESIS_AVAILABLE:

    @settings(max_examples=25, derandomize=True, deadline=None)
    @given(
        operations=st.lists(
            st.one_of(
                st.tuples(st.integers(min_value=1, max_value=3), st.integers(0, 1_000)),
                st.none(),
            ),
            max_size=60,
        )
    )
    def test_property_pops_are_non_increasing_between_pushes(
        operations: list[tuple[int, int] | None],
    ) -> None:
        queue = PriorityQueue(toast_comparator)
        pushed = 0
        popped = 0
        for index, operation in enumerate(operations):
            if operation is None:
                if queue.pop() is not None:
                    popped += 1
                continue
            priority, created_at = operation
            queue.push(_toast(index + 1, priority, created_at))
            pushed += 1

        assert queue.size == pushed - popped

        drained: list[ToastMessage] = []
        while (item := queue.pop()) is not None:
            drained.append(item)
        ranks = [(toast.priority, toast.created_at) for toast in drained]
        assert ranks == sorted(ranks, reverse=True)

else:

    def test_property_pops_are_non_increasing_between_pushes() -> None:
        pytest.skip("hypothesis is not installed")
