"""Frozen dataclass domain models for the board engine with canonical serialization."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum, StrEnum
from types import MappingProxyType
from typing import Final, NoReturn, TypeVar

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

TEnum = TypeVar("TEnum", bound=Enum)

_MAX_TEXT: Final[int] = 8192


class TaskStatus(StrEnum):
    BACKLOG = "backlog"
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


class TaskPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ToastTone(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


STATUS_ORDER: Final[tuple[TaskStatus, ...]] = (
    TaskStatus.BACKLOG,
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DONE,
)

STATUS_LABELS: Final[Mapping[TaskStatus, str]] = MappingProxyType(
    {
        TaskStatus.BACKLOG: "Backlog",
        TaskStatus.TODO: "To Do",
        TaskStatus.IN_PROGRESS: "In Progress",
        TaskStatus.DONE: "Done",
    }
)

# 3 is the most urgent toast priority.
TOAST_PRIORITIES: Final[tuple[int, ...]] = (1, 2, 3)


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _expect_object(
    value: object,
    path: str,
    *,
    required: set[str],
    optional: set[str] | None = None,
) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    allowed = required | (optional or set())
    unknown = sorted(key for key in parsed if key not in allowed)
    if unknown:
        _fail(path, f"unexpected fields: {unknown}")

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")

    return parsed


def _as_str(value: object, path: str, *, min_len: int = 1, max_len: int = _MAX_TEXT) -> str:
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip()
    if len(normalized) < min_len:
        _fail(path, f"must be at least {min_len} character(s)")
    if len(normalized) > max_len:
        _fail(path, f"must be <= {max_len} characters")
    return normalized


def _as_optional_str(value: object, path: str) -> str | None:
    if value is None:
        return None
    return _as_str(value, path)


def _as_int(value: object, path: str, *, minimum: int | None = None) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        _fail(path, f"must be >= {minimum}")
    return value


def _as_enum(value: object, enum_type: type[TEnum], path: str) -> TEnum:
    if isinstance(value, enum_type):
        return value
    if not isinstance(value, str):
        _fail(path, f"expected string enum value, got {type(value).__name__}")
    try:
        return enum_type(value.strip())
    except ValueError:
        allowed = ", ".join(str(member.value) for member in enum_type)
        _fail(path, f"invalid value {value!r}; expected one of: {allowed}")


def _as_str_tuple(value: object, path: str) -> tuple[str, ...]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        _fail(path, f"expected array of strings, got {type(value).__name__}")
    items: list[str] = []
    for index, item in enumerate(value):
        items.append(_as_str(item, f"{path}[{index}]"))
    return tuple(items)


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


@dataclass(frozen=True, slots=True)
class Task:
    """One work item. Root tasks have ``parent_id is None``."""

    id: str
    title: str
    description: str
    status: TaskStatus
    priority: TaskPriority
    dependency_ids: tuple[str, ...] = ()
    subtask_ids: tuple[str, ...] = ()
    parent_id: str | None = None
    created_at: int = 0
    updated_at: int = 0

    def __post_init__(self) -> None:
        if not self.id:
            _fail("Task.id", "must not be empty")
        object.__setattr__(self, "status", _as_enum(self.status, TaskStatus, "Task.status"))
        object.__setattr__(
            self, "priority", _as_enum(self.priority, TaskPriority, "Task.priority")
        )
        object.__setattr__(self, "dependency_ids", tuple(self.dependency_ids))
        object.__setattr__(self, "subtask_ids", tuple(self.subtask_ids))

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    def with_status(self, status: TaskStatus, *, updated_at: int) -> Task:
        return replace(self, status=status, updated_at=updated_at)

    def with_dependency(self, depends_on_task_id: str, *, updated_at: int) -> Task:
        return replace(
            self,
            dependency_ids=(*self.dependency_ids, depends_on_task_id),
            updated_at=updated_at,
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "dependency_ids": list(self.dependency_ids),
            "subtask_ids": list(self.subtask_ids),
            "parent_id": self.parent_id,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Task:
        parsed = _expect_object(
            data,
            "Task",
            required={"id", "title", "status"},
            optional={
                "description",
                "priority",
                "dependency_ids",
                "subtask_ids",
                "parent_id",
                "created_at",
                "updated_at",
            },
        )
        task_id = _as_str(parsed["id"], "Task.id")
        path = f"Task[{task_id}]"
        return cls(
            id=task_id,
            title=_as_str(parsed["title"], f"{path}.title"),
            description=_as_str(parsed.get("description", ""), f"{path}.description", min_len=0),
            status=_as_enum(parsed["status"], TaskStatus, f"{path}.status"),
            priority=_as_enum(parsed.get("priority", "medium"), TaskPriority, f"{path}.priority"),
            dependency_ids=_as_str_tuple(parsed.get("dependency_ids", ()), f"{path}.dependency_ids"),
            subtask_ids=_as_str_tuple(parsed.get("subtask_ids", ()), f"{path}.subtask_ids"),
            parent_id=_as_optional_str(parsed.get("parent_id"), f"{path}.parent_id"),
            created_at=_as_int(parsed.get("created_at", 0), f"{path}.created_at", minimum=0),
            updated_at=_as_int(parsed.get("updated_at", 0), f"{path}.updated_at", minimum=0),
        )


@dataclass(frozen=True, slots=True)
class TaskStore:
    """Normalized task table: entity map, root ordering, and status buckets.

    ``ids_by_status`` is a derived index and must always equal the partition of
    ``root_task_ids`` by task status, in ``root_task_ids`` order.
    """

    by_id: Mapping[str, Task]
    root_task_ids: tuple[str, ...]
    ids_by_status: Mapping[TaskStatus, tuple[str, ...]]

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_id", MappingProxyType(dict(self.by_id)))
        object.__setattr__(self, "root_task_ids", tuple(self.root_task_ids))
        buckets = {status: tuple(self.ids_by_status.get(status, ())) for status in STATUS_ORDER}
        object.__setattr__(self, "ids_by_status", MappingProxyType(buckets))

    def get(self, task_id: str) -> Task | None:
        return self.by_id.get(task_id)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self.by_id

    def __len__(self) -> int:
        return len(self.by_id)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "tasks": [self.by_id[task_id].to_dict() for task_id in sorted(self.by_id)],
            "root_task_ids": list(self.root_task_ids),
            "ids_by_status": {
                status.value: list(self.ids_by_status[status]) for status in STATUS_ORDER
            },
        }


@dataclass(frozen=True, slots=True)
class MoveRecord:
    """Atomic bulk status transition; never created with zero entries."""

    from_status_by_id: Mapping[str, TaskStatus]
    to_status_by_id: Mapping[str, TaskStatus]
    changed_at: int

    def __post_init__(self) -> None:
        if not self.to_status_by_id:
            _fail("MoveRecord", "must change at least one task")
        if set(self.from_status_by_id) != set(self.to_status_by_id):
            _fail("MoveRecord", "from/to mappings must cover the same task ids")
        object.__setattr__(self, "from_status_by_id", MappingProxyType(dict(self.from_status_by_id)))
        object.__setattr__(self, "to_status_by_id", MappingProxyType(dict(self.to_status_by_id)))

    @property
    def task_ids(self) -> tuple[str, ...]:
        return tuple(self.to_status_by_id)

    def __len__(self) -> int:
        return len(self.to_status_by_id)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "from_status_by_id": {key: value.value for key, value in self.from_status_by_id.items()},
            "to_status_by_id": {key: value.value for key, value in self.to_status_by_id.items()},
            "changed_at": self.changed_at,
        }


@dataclass(frozen=True, slots=True)
class ToastMessage:
    id: str
    message: str
    priority: int
    tone: ToastTone
    created_at: int

    def __post_init__(self) -> None:
        if self.priority not in TOAST_PRIORITIES:
            _fail("ToastMessage.priority", f"must be one of {TOAST_PRIORITIES}, got {self.priority!r}")
        object.__setattr__(self, "tone", _as_enum(self.tone, ToastTone, "ToastMessage.tone"))

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "message": self.message,
            "priority": self.priority,
            "tone": self.tone.value,
            "created_at": self.created_at,
        }


@dataclass(frozen=True, slots=True)
class BoardState:
    """Immutable board snapshot produced by the reducer for every accepted intent.

    ``toast_sequence`` carries the toast id counter so the engine has no
    process-wide mutable state.
    """

    tasks: TaskStore
    selected_task_ids: frozenset[str] = frozenset()
    undo_stack: tuple[MoveRecord, ...] = ()
    redo_stack: tuple[MoveRecord, ...] = ()
    toast_heap: tuple[ToastMessage, ...] = ()
    active_toasts: tuple[ToastMessage, ...] = ()
    revision: int = 1
    toast_sequence: int = 0

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "revision": self.revision,
            "selected_task_ids": sorted(self.selected_task_ids),
            "undo_depth": len(self.undo_stack),
            "redo_depth": len(self.redo_stack),
            "pending_toasts": len(self.toast_heap),
            "active_toasts": [toast.to_dict() for toast in self.active_toasts],
        }

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())


@dataclass(frozen=True, slots=True)
class ColumnPage:
    """One cursor page of a status column, annotated with cache provenance."""

    task_ids: tuple[str, ...]
    total_items: int
    cursor: int
    page_size: int
    total_pages: int
    current_page: int
    page_window: tuple[int, ...]
    next_cursor: int | None
    prev_cursor: int | None
    cache_hit: bool = False

    @classmethod
    def empty(cls, page_size: int) -> ColumnPage:
        return cls(
            task_ids=(),
            total_items=0,
            cursor=0,
            page_size=page_size,
            total_pages=1,
            current_page=1,
            page_window=(1,),
            next_cursor=None,
            prev_cursor=None,
        )

    def with_cache_hit(self, cache_hit: bool) -> ColumnPage:
        return replace(self, cache_hit=cache_hit)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "task_ids": list(self.task_ids),
            "total_items": self.total_items,
            "cursor": self.cursor,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
            "current_page": self.current_page,
            "page_window": list(self.page_window),
            "next_cursor": self.next_cursor,
            "prev_cursor": self.prev_cursor,
            "cache_hit": self.cache_hit,
        }


@dataclass(frozen=True, slots=True)
class StatusCount:
    status: TaskStatus
    count: int
    percent: int
    label: str = field(default="")

    def __post_init__(self) -> None:
        if not self.label:
            object.__setattr__(self, "label", STATUS_LABELS[self.status])


__all__ = [
    "BoardState",
    "ColumnPage",
    "JSONScalar",
    "JSONValue",
    "MoveRecord",
    "STATUS_LABELS",
    "STATUS_ORDER",
    "StatusCount",
    "TOAST_PRIORITIES",
    "Task",
    "TaskPriority",
    "TaskStatus",
    "TaskStore",
    "ToastMessage",
    "ToastTone",
]
