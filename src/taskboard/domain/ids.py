"""Canonical ID formatting and validation for tasks, subtasks, and toasts."""

from __future__ import annotations

import re
from typing import Final

TASK_ID_PREFIX: Final[str] = "TASK"
TOAST_ID_PREFIX: Final[str] = "toast"
SUBTASK_SEPARATOR: Final[str] = "-S"

TASK_ID_PATTERN_DESCRIPTION: Final[str] = "TASK-001"

_ROOT_TASK_ID_RE: Final[re.Pattern[str]] = re.compile(r"^TASK-(\d{3,})$")
_TOAST_ID_RE: Final[re.Pattern[str]] = re.compile(r"^toast-(\d+)$")

__all__ = [
    "SUBTASK_SEPARATOR",
    "TASK_ID_PATTERN_DESCRIPTION",
    "TASK_ID_PREFIX",
    "TOAST_ID_PREFIX",
    "format_nested_subtask_id",
    "format_subtask_id",
    "format_task_id",
    "format_toast_id",
    "parse_toast_sequence",
    "validate_root_task_id",
]


def format_task_id(index: int) -> str:
    """Return the zero-padded root id for ``index`` (``TASK-001``)."""
    if isinstance(index, bool) or not isinstance(index, int) or index < 1:
        raise ValueError(f"task index must be a positive integer, got {index!r}")
    return f"{TASK_ID_PREFIX}-{index:03d}"


def format_subtask_id(parent_id: str, ordinal: int) -> str:
    if ordinal < 1:
        raise ValueError(f"subtask ordinal must be >= 1, got {ordinal}")
    return f"{parent_id}{SUBTASK_SEPARATOR}{ordinal}"


def format_nested_subtask_id(subtask_id: str, ordinal: int) -> str:
    return f"{subtask_id}{SUBTASK_SEPARATOR}{ordinal}A"


def format_toast_id(sequence: int) -> str:
    if sequence < 1:
        raise ValueError(f"toast sequence must be >= 1, got {sequence}")
    return f"{TOAST_ID_PREFIX}-{sequence}"


def parse_toast_sequence(toast_id: str) -> int:
    match = _TOAST_ID_RE.fullmatch(toast_id)
    if match is None:
        raise ValueError(f"invalid toast id {toast_id!r}")
    return int(match.group(1))


def validate_root_task_id(task_id: str) -> None:
    """Validate generated root ids of the form ``TASK-001``."""
    if not isinstance(task_id, str):
        raise ValueError(f"task_id must be a string, got {type(task_id).__name__}")
    if _ROOT_TASK_ID_RE.fullmatch(task_id) is None:
        raise ValueError(
            f"invalid task_id {task_id!r}; expected format like {TASK_ID_PATTERN_DESCRIPTION}"
        )
