"""
taskboard-engine — unit tests for the seed board and YAML fixtures

File: tests/unit/board/test_seed.py
Last updated: 2026-10-19

Purpose
- Pin the generated demo board and the fixture read/write contract.

What this test file should cover
- Seed counts, id formats, status spread, and determinism.
- Fixture dump/load round trip.
- Fixture validation errors with a source prefix.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from taskboard.board.seed import (
    FixtureError,
    create_seed_store,
    dump_store_fixture,
    load_store_fixture,
    parse_store_fixture,
)
from taskboard.board.store import validate_store
from taskboard.domain.models import STATUS_ORDER, TaskStatus

NOW_MS = 1_700_000_000_000


def test_seed_has_180_roots_spread_evenly() -> None:
    store = create_seed_store(NOW_MS)

    assert len(store.root_task_ids) == 180
    assert store.root_task_ids[0] == "TASK-001"
    assert store.root_task_ids[-1] == "TASK-180"
    assert {len(store.ids_by_status[status]) for status in STATUS_ORDER} == {45}
    assert store.by_id["TASK-004"].status is TaskStatus.BACKLOG
    assert store.by_id["TASK-001"].status is TaskStatus.TODO
    assert validate_store(store) == ()


def test_seed_subtasks_and_nested_subtasks() -> None:
    store = create_seed_store(NOW_MS, root_count=18)

    assert store.by_id["TASK-006"].subtask_ids == ("TASK-006-S1", "TASK-006-S2", "TASK-006-S3")
    assert store.by_id["TASK-008"].subtask_ids == ("TASK-008-S1", "TASK-008-S2")
    assert store.by_id["TASK-001"].subtask_ids == ()
    assert store.by_id["TASK-018-S2"].subtask_ids == ("TASK-018-S2-S1A",)
    nested = store.by_id["TASK-018-S2-S1A"]
    assert nested.parent_id == "TASK-018-S2"
    assert not nested.is_root
    assert "TASK-018-S2" not in store.root_task_ids


def test_seed_is_deterministic_for_same_clock() -> None:
    assert create_seed_store(NOW_MS, root_count=20) == create_seed_store(NOW_MS, root_count=20)
    assert create_seed_store(NOW_MS, root_count=0).root_task_ids == ()
    with pytest.raises(ValueError):
        create_seed_store(NOW_MS, root_count=-1)


def test_fixture_round_trip(tmp_path: Path) -> None:
    store = create_seed_store(NOW_MS, root_count=12)

    written = dump_store_fixture(store, tmp_path / "nested" / "board.yaml")
    loaded = load_store_fixture(written)

    assert written.exists()
    assert loaded.root_task_ids == store.root_task_ids
    assert dict(loaded.by_id) == dict(store.by_id)
    assert dict(loaded.ids_by_status) == dict(store.ids_by_status)


def test_parse_fixture_accepts_minimal_tasks() -> None:
    store = parse_store_fixture(
        {
            "schema_version": 1,
            "tasks": [
                {"id": "A", "title": "Alpha", "status": "todo", "subtask_ids": ["A-1"]},
                {"id": "A-1", "title": "Alpha child", "status": "todo", "parent_id": "A"},
                {"id": "B", "title": "Beta", "status": "done", "dependency_ids": ["A"]},
            ],
        }
    )

    assert store.root_task_ids == ("A", "B")
    assert store.ids_by_status[TaskStatus.DONE] == ("B",)


@pytest.mark.parametrize(
    ("payload", "fragment"),
    [
        ([], "expected top-level mapping"),
        ({"tasks": [], "owner": "x"}, "unexpected fields"),
        ({"schema_version": 2, "tasks": []}, "unsupported schema_version"),
        ({"tasks": {"id": "A"}}, "'tasks' must be a sequence"),
        ({"tasks": [{"id": "A", "status": "todo"}]}, "tasks[0]"),
        (
            {
                "tasks": [
                    {"id": "A", "title": "a", "status": "todo"},
                    {"id": "A", "title": "b", "status": "todo"},
                ]
            },
            "duplicate task id",
        ),
        (
            {"tasks": [{"id": "A", "title": "a", "status": "todo", "dependency_ids": ["Z"]}]},
            "unknown dependency",
        ),
    ],
)
def test_parse_fixture_errors(payload: object, fragment: str) -> None:
    with pytest.raises(FixtureError) as excinfo:
        parse_store_fixture(payload, source="board.yaml")

    assert str(excinfo.value).startswith("board.yaml: ")
    assert fragment in str(excinfo.value)


def test_load_fixture_reports_io_and_yaml_errors(tmp_path: Path) -> None:
    with pytest.raises(FixtureError, match="unable to read"):
        load_store_fixture(tmp_path / "missing.yaml")

    broken = tmp_path / "broken.yaml"
    broken.write_text("tasks: [unterminated\n", encoding="utf-8")
    with pytest.raises(FixtureError, match="invalid YAML"):
        load_store_fixture(broken)


def test_dumped_fixture_is_plain_yaml(tmp_path: Path) -> None:
    store = create_seed_store(NOW_MS, root_count=3)

    written = dump_store_fixture(store, tmp_path / "board.yaml")
    document = yaml.safe_load(written.read_text(encoding="utf-8"))

    assert document["schema_version"] == 1
    assert [task["id"] for task in document["tasks"]] == [
        "TASK-001",
        "TASK-002",
        "TASK-003",
        "TASK-003-S1",
    ]
