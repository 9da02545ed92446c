"""Ranked toast notifications: pending max-heap plus a bounded active list."""

from __future__ import annotations

from dataclasses import replace

from taskboard.constants import MAX_ACTIVE_TOASTS, TOAST_BASE_TIMEOUT_MS, TOAST_PRIORITY_STEP_MS
from taskboard.domain.ids import format_toast_id
from taskboard.domain.models import BoardState, ToastMessage, ToastTone
from taskboard.structures.priority_queue import PriorityQueue

__all__ = [
    "create_toast",
    "enqueue_toast",
    "flush_visible_toasts",
    "toast_comparator",
    "toast_timeout_ms",
]


def toast_comparator(left: ToastMessage, right: ToastMessage) -> int:
    """Higher priority ranks first; equal priorities favour the newer toast."""
    if left.priority != right.priority:
        return left.priority - right.priority
    return left.created_at - right.created_at


def create_toast(
    sequence: int, message: str, priority: int, tone: ToastTone, *, created_at: int
) -> ToastMessage:
    return ToastMessage(
        id=format_toast_id(sequence),
        message=message,
        priority=priority,
        tone=tone,
        created_at=created_at,
    )


def flush_visible_toasts(state: BoardState, *, max_active: int = MAX_ACTIVE_TOASTS) -> BoardState:
    """Promote pending toasts in rank order until the active list is full."""
    if len(state.active_toasts) >= max_active or not state.toast_heap:
        return state

    queue = PriorityQueue(toast_comparator, state.toast_heap)
    active = list(state.active_toasts)
    while len(active) < max_active:
        next_toast = queue.pop()
        if next_toast is None:
            break
        active.append(next_toast)

    return replace(state, toast_heap=tuple(queue.to_list()), active_toasts=tuple(active))


def enqueue_toast(
    state: BoardState,
    message: str,
    priority: int,
    tone: ToastTone,
    *,
    now_ms: int,
    max_active: int = MAX_ACTIVE_TOASTS,
) -> BoardState:
    """Push a freshly numbered toast onto the pending heap, then flush."""
    sequence = state.toast_sequence + 1
    queue = PriorityQueue(toast_comparator, state.toast_heap)
    queue.push(create_toast(sequence, message, priority, tone, created_at=now_ms))
    pending = replace(state, toast_heap=tuple(queue.to_list()), toast_sequence=sequence)
    return flush_visible_toasts(pending, max_active=max_active)


def toast_timeout_ms(toast: ToastMessage) -> int:
    """Auto-dismiss delay; more urgent toasts leave sooner."""
    return TOAST_BASE_TIMEOUT_MS - toast.priority * TOAST_PRIORITY_STEP_MS
