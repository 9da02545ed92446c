"""
taskboard-engine — in-process CLI command contracts

File: tests/integration/test_cli_commands.py
Last updated: 2026-10-19

Purpose
- Drive every CLI command through ``run_cli`` against the generated seed board
  and check the deterministic JSON payloads, exit codes, and side effects.

What this test file should cover
- summary / page / search / apply / deps / seed / config commands.
- Intent scripts round-tripping through YAML fixtures.
- Input errors mapping to exit code 2 with a message on stderr.
- Optional JSON-lines logging with command correlation.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
import yaml

from taskboard.ui.cli import run_cli

NOW_MS = "1700000000000"
COMMON = ("--now-ms", NOW_MS, "--set", "query.fetch_latency_seconds=0", "--json")


@pytest.fixture(autouse=True)
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)
    for name in list(os.environ):
        if name.startswith("TASKBOARD_"):
            monkeypatch.delenv(name)


def _run_json(capsys: pytest.CaptureFixture[str], *args: str) -> dict[str, object]:
    exit_code = run_cli([*args, *COMMON])
    captured = capsys.readouterr()
    assert exit_code == 0, captured.err
    return json.loads(captured.out)


def _write_script(path: Path, intents: list[dict[str, object]]) -> Path:
    path.write_text(yaml.safe_dump({"intents": intents}, sort_keys=False), encoding="utf-8")
    return path


def _column_counts(payload: dict[str, object]) -> dict[str, int]:
    columns = payload["columns"]
    assert isinstance(columns, list)
    return {column["status"]: column["count"] for column in columns}


def test_summary_reports_seed_board(capsys: pytest.CaptureFixture[str]) -> None:
    payload = _run_json(capsys, "summary")

    assert payload["command"] == "summary"
    assert payload["revision"] == 1
    assert payload["root_tasks"] == 180
    assert _column_counts(payload) == {"backlog": 45, "todo": 45, "in_progress": 45, "done": 45}
    assert payload["completion_percent"] == 25
    assert payload["dependency_cycles"] == []
    assert payload["undo_depth"] == 0
    assert payload["active_toasts"] == [
        {
            "created_at": 1_700_000_000_000,
            "id": "toast-1",
            "message": "Board seeded with 180 tasks.",
            "priority": 1,
            "timeout_ms": 2900,
            "tone": "info",
        }
    ]


def test_summary_json_is_deterministic(capsys: pytest.CaptureFixture[str]) -> None:
    run_cli(["summary", *COMMON])
    first = capsys.readouterr().out
    run_cli(["summary", *COMMON])
    second = capsys.readouterr().out

    assert first == second


def test_page_filters_and_reports_visible_rows(capsys: pytest.CaptureFixture[str]) -> None:
    payload = _run_json(capsys, "page", "todo", "--query", "Billing", "--page-size", "24")

    page = payload["page"]
    assert isinstance(page, dict)
    assert payload["status"] == "todo"
    assert page["total_items"] == 15
    assert page["task_ids"][0] == "TASK-001"
    assert page["total_pages"] == 1
    assert page["cache_hit"] is False
    visible = payload["visible_rows"]
    assert visible["start_index"] == 0
    assert visible["total_height"] == 15 * 260


def test_page_cursor_is_clamped(capsys: pytest.CaptureFixture[str]) -> None:
    payload = _run_json(capsys, "page", "backlog", "--cursor", "500", "--page-size", "24")

    page = payload["page"]
    assert isinstance(page, dict)
    assert page["cursor"] == 24
    assert page["current_page"] == 2
    assert page["next_cursor"] is None
    assert len(page["task_ids"]) == 21


def test_search_suggests_in_board_order(capsys: pytest.CaptureFixture[str]) -> None:
    payload = _run_json(capsys, "search", "refac", "--limit", "3")

    suggestions = payload["suggestions"]
    assert isinstance(suggestions, list)
    assert [item["id"] for item in suggestions] == ["TASK-008", "TASK-016", "TASK-024"]
    assert payload["prefix"] == "refac"


def test_apply_replays_intents_and_writes_fixture(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    script = _write_script(
        tmp_path / "intents.yaml",
        [
            {"type": "select_many", "task_ids": ["TASK-001", "TASK-002"]},
            {"type": "bulk_move_selected", "next_status": "done"},
            {"type": "undo_move"},
            {"type": "redo_move"},
            {"type": "add_dependency", "task_id": "TASK-001", "depends_on_task_id": "TASK-004"},
            {"type": "add_dependency", "task_id": "TASK-004", "depends_on_task_id": "TASK-001"},
        ],
    )
    output = tmp_path / "after.yaml"

    payload = _run_json(capsys, "apply", str(script), "--output", str(output))

    assert payload["revision"] == 5
    assert _column_counts(payload)["done"] == 47
    assert payload["undo_depth"] == 1
    assert payload["redo_depth"] == 0
    assert payload["selected"] == []
    assert payload["output"] == output.as_posix()
    applied = payload["applied"]
    assert isinstance(applied, list)
    assert applied[1] == {"type": "bulk_move_selected", "next_status": "done"}
    assert [toast["id"] for toast in payload["active_toasts"]] == ["toast-1", "toast-2", "toast-3"]
    assert payload["queued_toasts"] == 3

    reloaded = _run_json(capsys, "summary", "--fixture", str(output))
    assert reloaded["revision"] == 1
    assert _column_counts(reloaded)["done"] == 47
    assert reloaded["dependency_edges"] == payload["dependency_edges"]


def test_deps_lists_open_transitive_dependencies(capsys: pytest.CaptureFixture[str]) -> None:
    payload = _run_json(capsys, "deps", "TASK-021")

    assert payload["task_id"] == "TASK-021"
    assert [item["id"] for item in payload["open_dependencies"]] == ["TASK-016"]


def test_seed_writes_fixture(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    output = tmp_path / "fixtures" / "seed.yaml"

    payload = _run_json(
        capsys, "seed", "--output", str(output), "--set", "board.seed_root_task_count=6"
    )

    assert payload["root_tasks"] == 6
    assert payload["tasks"] == 12
    assert output.exists()
    document = yaml.safe_load(output.read_text(encoding="utf-8"))
    assert len(document["tasks"]) == 12


def test_config_shows_profile_overlay(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run_cli(["config", "--profile", "fast", "--json"])
    payload = json.loads(capsys.readouterr().out)

    assert exit_code == 0
    assert payload["active_profile"] == "fast"
    assert payload["config"]["query"]["fetch_latency_seconds"] == 0.0


def test_text_summary_renders_columns(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = run_cli(["summary", "--now-ms", NOW_MS, "--no-color"])
    out = capsys.readouterr().out

    assert exit_code == 0
    assert "Revision: 1" in out
    assert "Columns" in out
    assert "Board seeded with 180 tasks. (2900 ms)" in out


@pytest.mark.parametrize(
    ("args", "fragment"),
    [
        (("deps", "TASK-999"), "unknown task: TASK-999"),
        (("summary", "--set", "board.history_capacity=0"), "board.history_capacity"),
        (("summary", "--set", "nonsense"), "expected KEY=VALUE"),
        (("summary", "--config", "missing.toml"), "config file not found"),
        (("summary", "--fixture", "missing.yaml"), "unable to read"),
        (("search", "ref", "--limit", "0"), "invalid limit"),
        (("page", "todo", "--page-size", "0"), "invalid page_size"),
        (("apply", "missing-script.yaml"), "unable to read intent script"),
    ],
)
def test_input_errors_exit_with_code_2(
    capsys: pytest.CaptureFixture[str], args: tuple[str, ...], fragment: str
) -> None:
    exit_code = run_cli([*args, "--now-ms", NOW_MS])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert captured.err.startswith("error: ")
    assert fragment in captured.err


def test_apply_rejects_malformed_intent(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    script = _write_script(tmp_path / "bad.yaml", [{"type": "undo_move"}, {"type": "teleport"}])

    exit_code = run_cli(["apply", str(script), "--now-ms", NOW_MS])
    captured = capsys.readouterr()

    assert exit_code == 2
    assert "intents[1]" in captured.err


def test_log_flag_writes_correlated_json_lines(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    script = _write_script(
        tmp_path / "intents.yaml",
        [{"type": "move_tasks", "task_ids": ["TASK-001", "TASK-002"], "next_status": "backlog"}],
    )

    exit_code = run_cli(["apply", str(script), "--log", *COMMON])
    capsys.readouterr()

    assert exit_code == 0
    log_files = sorted((tmp_path / "logs").glob("*/taskboard.jsonl"))
    assert len(log_files) == 1
    entries = [json.loads(line) for line in log_files[0].read_text(encoding="utf-8").splitlines()]
    moved = [entry for entry in entries if str(entry["message"]).startswith("moved 2 task(s)")]
    assert moved
    assert moved[0]["command"] == "apply"
    assert moved[0]["logger"] == "taskboard.board.engine"
