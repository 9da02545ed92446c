"""Deterministic seed board and YAML board fixtures."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Final, TypeAlias, cast

import yaml

from taskboard.board.store import build_store, validate_store
from taskboard.constants import FIXTURE_SCHEMA_VERSION, SEED_ROOT_TASK_COUNT
from taskboard.domain.ids import format_nested_subtask_id, format_subtask_id, format_task_id
from taskboard.domain.models import Task, TaskPriority, TaskStatus, TaskStore

PathLike: TypeAlias = str | os.PathLike[str]

STATUS_PATTERN: Final[tuple[TaskStatus, ...]] = (
    TaskStatus.BACKLOG,
    TaskStatus.TODO,
    TaskStatus.IN_PROGRESS,
    TaskStatus.DONE,
)
PRIORITY_PATTERN: Final[tuple[TaskPriority, ...]] = (
    TaskPriority.LOW,
    TaskPriority.MEDIUM,
    TaskPriority.HIGH,
    TaskPriority.MEDIUM,
)
FOCUS_AREAS: Final[tuple[str, ...]] = (
    "Authentication",
    "Billing",
    "Roadmap",
    "Editor",
    "Analytics",
    "Automation",
    "Deployment",
    "Search",
    "Notifications",
    "Performance",
    "Integrations",
    "Reporting",
)
ACTION_VERBS: Final[tuple[str, ...]] = (
    "Refactor",
    "Implement",
    "Audit",
    "Backfill",
    "Stabilize",
    "Prototype",
    "Document",
    "Optimize",
)

__all__ = [
    "ACTION_VERBS",
    "FOCUS_AREAS",
    "FixtureError",
    "PRIORITY_PATTERN",
    "STATUS_PATTERN",
    "create_seed_store",
    "dump_store_fixture",
    "load_store_fixture",
    "parse_store_fixture",
]


class FixtureError(ValueError):
    """Raised when a board fixture cannot be read or violates store invariants."""


def _seed_dependencies(index: int) -> tuple[str, ...]:
    dependencies: list[str] = []
    if index > 5 and index % 3 == 0:
        dependencies.append(format_task_id(index - 2))
    if index > 8 and index % 7 == 0:
        dependencies.append(format_task_id(index - 5))
    if index > 20 and index % 11 == 0:
        dependencies.append(format_task_id(index - 9))
    return tuple(dict.fromkeys(dependencies))


def _subtask_count(index: int) -> int:
    if index % 6 == 0:
        return 3
    if index % 4 == 0:
        return 2
    if index % 3 == 0:
        return 1
    return 0


def _child_task(
    parent: Task, task_id: str, title: str, ordinal: int, now_ms: int, subtask_ids: tuple[str, ...] = ()
) -> Task:
    return Task(
        id=task_id,
        title=title,
        description=f"Breakdown item {ordinal} attached to {parent.title}.",
        status=TaskStatus.DONE if parent.status is TaskStatus.DONE else TaskStatus.TODO,
        priority=parent.priority,
        subtask_ids=subtask_ids,
        parent_id=parent.id,
        created_at=now_ms - ordinal * 4_000,
        updated_at=now_ms - ordinal * 2_000,
    )


def _seed_family(index: int, now_ms: int) -> list[Task]:
    """Root task ``index`` followed by its subtasks (and nested subtasks)."""
    area = FOCUS_AREAS[index % len(FOCUS_AREAS)]
    verb = ACTION_VERBS[index % len(ACTION_VERBS)]
    root_id = format_task_id(index)
    subtask_ids = tuple(
        format_subtask_id(root_id, ordinal) for ordinal in range(1, _subtask_count(index) + 1)
    )
    root = Task(
        id=root_id,
        title=f"{verb} {area} workflow {index}",
        description=f"Delivery slice {index} for {area.lower()} in sprint {index // 10 + 1}.",
        status=STATUS_PATTERN[index % len(STATUS_PATTERN)],
        priority=PRIORITY_PATTERN[index % len(PRIORITY_PATTERN)],
        dependency_ids=_seed_dependencies(index),
        subtask_ids=subtask_ids,
        created_at=now_ms - index * 50_000,
        updated_at=now_ms - index * 30_000,
    )

    family = [root]
    for ordinal, subtask_id in enumerate(subtask_ids, start=1):
        nested_ids: tuple[str, ...] = ()
        if index % 9 == 0 and ordinal == 2:
            nested_ids = (format_nested_subtask_id(subtask_id, 1),)
        subtask = _child_task(
            root, subtask_id, f"Subtask {ordinal} for {root_id}", ordinal, now_ms, nested_ids
        )
        family.append(subtask)
        for nested_id in nested_ids:
            family.append(_child_task(subtask, nested_id, f"Nested 1 for {subtask_id}", 1, now_ms))
    return family


def create_seed_store(now_ms: int, *, root_count: int = SEED_ROOT_TASK_COUNT) -> TaskStore:
    """Generate the demo board: ``root_count`` roots with subtasks and dependencies.

    Output is a pure function of ``now_ms`` and ``root_count``.
    """
    if root_count < 0:
        raise ValueError(f"root_count must be >= 0, got {root_count}")
    tasks: list[Task] = []
    for index in range(1, root_count + 1):
        tasks.extend(_seed_family(index, now_ms))
    return build_store(tasks)


def load_store_fixture(path: PathLike) -> TaskStore:
    """Load a YAML board fixture.

    Root order follows the document order of tasks without a ``parent_id``.
    """
    fixture_path = Path(path)
    try:
        with fixture_path.open("r", encoding="utf-8") as handle:
            loaded = cast("object", yaml.safe_load(handle))
    except OSError as exc:
        raise FixtureError(f"{fixture_path}: unable to read fixture ({exc})") from exc
    except yaml.YAMLError as exc:
        raise FixtureError(f"{fixture_path}: invalid YAML ({exc})") from exc

    return parse_store_fixture(loaded, source=str(fixture_path))


def parse_store_fixture(loaded: object, *, source: str = "<fixture>") -> TaskStore:
    if not isinstance(loaded, Mapping):
        raise FixtureError(f"{source}: expected top-level mapping, got {type(loaded).__name__}")

    unknown = sorted(str(key) for key in loaded if key not in {"schema_version", "tasks"})
    if unknown:
        raise FixtureError(f"{source}: unexpected fields: {unknown}")

    version = loaded.get("schema_version", FIXTURE_SCHEMA_VERSION)
    if version != FIXTURE_SCHEMA_VERSION:
        raise FixtureError(
            f"{source}: unsupported schema_version {version!r}; expected {FIXTURE_SCHEMA_VERSION}"
        )

    raw_tasks = loaded.get("tasks")
    if not isinstance(raw_tasks, list):
        raise FixtureError(f"{source}: 'tasks' must be a sequence")

    tasks: list[Task] = []
    for index, item in enumerate(raw_tasks):
        try:
            tasks.append(Task.from_dict(cast("Mapping[str, object]", item)))
        except ValueError as exc:
            raise FixtureError(f"{source}: tasks[{index}]: {exc}") from exc

    try:
        store = build_store(tasks)
    except ValueError as exc:
        raise FixtureError(f"{source}: {exc}") from exc

    issues = validate_store(store)
    if issues:
        preview = "; ".join(issues[:5])
        suffix = f" (+{len(issues) - 5} more)" if len(issues) > 5 else ""
        raise FixtureError(f"{source}: invalid board: {preview}{suffix}")
    return store


def dump_store_fixture(store: TaskStore, path: PathLike) -> Path:
    """Write ``store`` as a fixture that ``load_store_fixture`` reads back."""
    destination = Path(path)
    ordered: list[dict[str, object]] = []
    for root_id in store.root_task_ids:
        stack = [root_id]
        while stack:
            task = store.by_id[stack.pop()]
            ordered.append(cast("dict[str, object]", task.to_dict()))
            stack.extend(reversed(task.subtask_ids))

    rendered = yaml.safe_dump(
        {"schema_version": FIXTURE_SCHEMA_VERSION, "tasks": ordered},
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=False,
        width=120,
    )
    if not rendered.endswith("\n"):
        rendered = rendered + "\n"

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(rendered, encoding="utf-8")
    return destination
