"""Board intents: the closed set of commands the reducer accepts.

Intents are plain frozen records. ``parse_intent`` turns an untrusted mapping
(YAML/JSON scripts, CLI input) into a typed intent, raising
``IntentParseError`` with a field path on malformed input.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
from enum import StrEnum
from typing import ClassVar, Final

from taskboard.domain.models import (
    TOAST_PRIORITIES,
    TaskStatus,
    ToastTone,
    _as_enum,
    _as_int,
    _as_str,
    _as_str_tuple,
    _expect_object,
)


class IntentParseError(ValueError):
    """Raised when an intent mapping cannot be parsed."""


class IntentKind(StrEnum):
    TOGGLE_TASK_SELECTION = "toggle_task_selection"
    SELECT_MANY = "select_many"
    DESELECT_MANY = "deselect_many"
    CLEAR_SELECTION = "clear_selection"
    MOVE_TASKS = "move_tasks"
    BULK_MOVE_SELECTED = "bulk_move_selected"
    UNDO_MOVE = "undo_move"
    REDO_MOVE = "redo_move"
    ADD_DEPENDENCY = "add_dependency"
    DISMISS_TOAST = "dismiss_toast"
    ENQUEUE_TOAST = "enqueue_toast"


@dataclass(frozen=True, slots=True)
class ToggleTaskSelection:
    task_id: str
    kind: ClassVar[IntentKind] = IntentKind.TOGGLE_TASK_SELECTION


@dataclass(frozen=True, slots=True)
class SelectMany:
    task_ids: tuple[str, ...]
    kind: ClassVar[IntentKind] = IntentKind.SELECT_MANY


@dataclass(frozen=True, slots=True)
class DeselectMany:
    task_ids: tuple[str, ...]
    kind: ClassVar[IntentKind] = IntentKind.DESELECT_MANY


@dataclass(frozen=True, slots=True)
class ClearSelection:
    kind: ClassVar[IntentKind] = IntentKind.CLEAR_SELECTION


@dataclass(frozen=True, slots=True)
class MoveTasks:
    task_ids: tuple[str, ...]
    next_status: TaskStatus
    kind: ClassVar[IntentKind] = IntentKind.MOVE_TASKS


@dataclass(frozen=True, slots=True)
class BulkMoveSelected:
    next_status: TaskStatus
    kind: ClassVar[IntentKind] = IntentKind.BULK_MOVE_SELECTED


@dataclass(frozen=True, slots=True)
class UndoMove:
    kind: ClassVar[IntentKind] = IntentKind.UNDO_MOVE


@dataclass(frozen=True, slots=True)
class RedoMove:
    kind: ClassVar[IntentKind] = IntentKind.REDO_MOVE


@dataclass(frozen=True, slots=True)
class AddDependency:
    task_id: str
    depends_on_task_id: str
    kind: ClassVar[IntentKind] = IntentKind.ADD_DEPENDENCY


@dataclass(frozen=True, slots=True)
class DismissToast:
    toast_id: str
    kind: ClassVar[IntentKind] = IntentKind.DISMISS_TOAST


@dataclass(frozen=True, slots=True)
class EnqueueToast:
    message: str
    priority: int
    tone: ToastTone
    kind: ClassVar[IntentKind] = IntentKind.ENQUEUE_TOAST


BoardIntent = (
    ToggleTaskSelection
    | SelectMany
    | DeselectMany
    | ClearSelection
    | MoveTasks
    | BulkMoveSelected
    | UndoMove
    | RedoMove
    | AddDependency
    | DismissToast
    | EnqueueToast
)


def _parse_toggle(data: dict[str, object]) -> BoardIntent:
    return ToggleTaskSelection(task_id=_as_str(data["task_id"], "intent.task_id"))


def _parse_select(data: dict[str, object]) -> BoardIntent:
    return SelectMany(task_ids=_as_str_tuple(data["task_ids"], "intent.task_ids"))


def _parse_deselect(data: dict[str, object]) -> BoardIntent:
    return DeselectMany(task_ids=_as_str_tuple(data["task_ids"], "intent.task_ids"))


def _parse_move(data: dict[str, object]) -> BoardIntent:
    return MoveTasks(
        task_ids=_as_str_tuple(data["task_ids"], "intent.task_ids"),
        next_status=_as_enum(data["next_status"], TaskStatus, "intent.next_status"),
    )


def _parse_bulk_move(data: dict[str, object]) -> BoardIntent:
    return BulkMoveSelected(
        next_status=_as_enum(data["next_status"], TaskStatus, "intent.next_status")
    )


def _parse_dependency(data: dict[str, object]) -> BoardIntent:
    return AddDependency(
        task_id=_as_str(data["task_id"], "intent.task_id"),
        depends_on_task_id=_as_str(data["depends_on_task_id"], "intent.depends_on_task_id"),
    )


def _parse_dismiss(data: dict[str, object]) -> BoardIntent:
    return DismissToast(toast_id=_as_str(data["toast_id"], "intent.toast_id"))


def _parse_enqueue(data: dict[str, object]) -> BoardIntent:
    priority = _as_int(data["priority"], "intent.priority")
    if priority not in TOAST_PRIORITIES:
        raise ValueError(f"intent.priority: must be one of {TOAST_PRIORITIES}, got {priority}")
    return EnqueueToast(
        message=_as_str(data["message"], "intent.message"),
        priority=priority,
        tone=_as_enum(data.get("tone", ToastTone.INFO.value), ToastTone, "intent.tone"),
    )


_FIELDS: Final[dict[IntentKind, tuple[set[str], set[str]]]] = {
    IntentKind.TOGGLE_TASK_SELECTION: ({"task_id"}, set()),
    IntentKind.SELECT_MANY: ({"task_ids"}, set()),
    IntentKind.DESELECT_MANY: ({"task_ids"}, set()),
    IntentKind.CLEAR_SELECTION: (set(), set()),
    IntentKind.MOVE_TASKS: ({"task_ids", "next_status"}, set()),
    IntentKind.BULK_MOVE_SELECTED: ({"next_status"}, set()),
    IntentKind.UNDO_MOVE: (set(), set()),
    IntentKind.REDO_MOVE: (set(), set()),
    IntentKind.ADD_DEPENDENCY: ({"task_id", "depends_on_task_id"}, set()),
    IntentKind.DISMISS_TOAST: ({"toast_id"}, set()),
    IntentKind.ENQUEUE_TOAST: ({"message", "priority"}, {"tone"}),
}

_PARSERS: Final = {
    IntentKind.TOGGLE_TASK_SELECTION: _parse_toggle,
    IntentKind.SELECT_MANY: _parse_select,
    IntentKind.DESELECT_MANY: _parse_deselect,
    IntentKind.CLEAR_SELECTION: lambda _data: ClearSelection(),
    IntentKind.MOVE_TASKS: _parse_move,
    IntentKind.BULK_MOVE_SELECTED: _parse_bulk_move,
    IntentKind.UNDO_MOVE: lambda _data: UndoMove(),
    IntentKind.REDO_MOVE: lambda _data: RedoMove(),
    IntentKind.ADD_DEPENDENCY: _parse_dependency,
    IntentKind.DISMISS_TOAST: _parse_dismiss,
    IntentKind.ENQUEUE_TOAST: _parse_enqueue,
}


def parse_intent(data: Mapping[str, object]) -> BoardIntent:
    """Parse ``{"type": <kind>, ...fields}`` into a typed intent."""
    if not isinstance(data, Mapping):
        raise IntentParseError(f"intent: expected object, got {type(data).__name__}")
    raw_kind = data.get("type")
    try:
        kind = _as_enum(raw_kind, IntentKind, "intent.type")
        required, optional = _FIELDS[kind]
        body = {key: value for key, value in data.items() if key != "type"}
        parsed = _expect_object(body, f"intent[{kind.value}]", required=required, optional=optional)
        return _PARSERS[kind](parsed)
    except ValueError as exc:
        if isinstance(exc, IntentParseError):
            raise
        raise IntentParseError(str(exc)) from exc


def intent_to_dict(intent: BoardIntent) -> dict[str, object]:
    payload: dict[str, object] = {"type": intent.kind.value}
    for item in fields(intent):
        value = getattr(intent, item.name)
        if isinstance(value, tuple):
            payload[item.name] = list(value)
        elif isinstance(value, StrEnum):
            payload[item.name] = value.value
        else:
            payload[item.name] = value
    return payload


__all__ = [
    "AddDependency",
    "BoardIntent",
    "BulkMoveSelected",
    "ClearSelection",
    "DeselectMany",
    "DismissToast",
    "EnqueueToast",
    "IntentKind",
    "IntentParseError",
    "MoveTasks",
    "RedoMove",
    "SelectMany",
    "ToggleTaskSelection",
    "UndoMove",
    "intent_to_dict",
    "parse_intent",
]
