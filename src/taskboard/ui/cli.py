"""Command-line interface router for taskboard-engine."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
import time
from collections.abc import Mapping, Sequence
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import yaml

from taskboard.board.dependencies import DependencyGraph
from taskboard.board.engine import Clock, system_clock
from taskboard.board.notifications import toast_timeout_ms
from taskboard.board.seed import (
    FixtureError,
    create_seed_store,
    dump_store_fixture,
    load_store_fixture,
)
from taskboard.board.session import BoardSession
from taskboard.board.views import (
    completion_percent,
    dependency_edge_count,
    history_counts,
    open_dependencies,
    selection_percent,
    status_overview,
)
from taskboard.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from taskboard.domain.intents import (
    BoardIntent,
    IntentParseError,
    intent_to_dict,
    parse_intent,
)
from taskboard.domain.models import STATUS_LABELS, BoardState, Task, TaskStatus, ToastMessage
from taskboard.observability.logging import (
    configure_structlog,
    correlation_scope,
    setup_logging,
)
from taskboard.structures.pagination import build_prefix_sums, get_virtual_range
from taskboard.ui.render import CLIRenderer, create_renderer

STATUS_CHOICES: Final[tuple[str, ...]] = tuple(status.value for status in TaskStatus)


@dataclass(slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router for all supported CLI workflows."""

    parser = argparse.ArgumentParser(
        prog="taskboard",
        description=(
            "taskboard-engine — in-memory task board with reversible bulk moves.\n\n"
            "Common workflows:\n"
            "  taskboard summary                 Column counts, history, notifications\n"
            "  taskboard page todo --query api   One cached column page\n"
            "  taskboard search ref              Title prefix suggestions\n"
            "  taskboard apply intents.yaml      Replay a script of intents\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to taskboard TOML config (default: ./taskboard.toml if present).",
    )
    common.add_argument("--profile", default=None, help="Optional config profile overlay name.")
    common.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Dotted config override, e.g. query.fetch_latency_seconds=0 (repeatable).",
    )
    common.add_argument(
        "--fixture",
        default=None,
        help="YAML board fixture to load instead of the generated seed board.",
    )
    common.add_argument(
        "--now-ms",
        type=int,
        default=None,
        help="Freeze the clock at this epoch-millisecond value for reproducible output.",
    )
    common.add_argument(
        "--log",
        action="store_true",
        default=False,
        help="Write JSON-lines logs under observability.log_dir.",
    )
    common.add_argument("--json", action="store_true", help="Emit deterministic JSON output")
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    summary_parser = subparsers.add_parser(
        "summary", parents=[common], help="Show column counts, history, and notifications"
    )
    summary_parser.set_defaults(handler=_cmd_summary)

    page_parser = subparsers.add_parser(
        "page",
        parents=[common],
        help="Fetch one page of a status column",
        description=(
            "Fetch a cursor-paginated page of one column, optionally filtered.\n\n"
            "Examples:\n"
            "  taskboard page backlog\n"
            "  taskboard page todo --cursor 48 --query billing\n"
            "  taskboard page done --page-size 24 --scroll-top 1040\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    page_parser.add_argument("status", choices=STATUS_CHOICES, help="Column to read")
    page_parser.add_argument("--cursor", type=int, default=0, help="Zero-based item offset")
    page_parser.add_argument("--query", default="", help="Substring filter over title/description")
    page_parser.add_argument("--page-size", type=int, default=None, help="Items per page")
    page_parser.add_argument(
        "--scroll-top",
        type=float,
        default=0.0,
        help="Scroll offset in pixels used to compute the rendered row range.",
    )
    page_parser.set_defaults(handler=_cmd_page)

    search_parser = subparsers.add_parser(
        "search", parents=[common], help="Suggest root tasks by title prefix"
    )
    search_parser.add_argument("prefix", help="Prefix to complete")
    search_parser.add_argument("--limit", type=int, default=None, help="Maximum suggestions")
    search_parser.set_defaults(handler=_cmd_search)

    apply_parser = subparsers.add_parser(
        "apply",
        parents=[common],
        help="Dispatch a YAML/JSON list of intents",
        description=(
            "Replay intents against the board and print the resulting summary.\n\n"
            "The script is either a list of intents or a mapping with an 'intents' list;\n"
            "each intent is an object with a 'type' key, e.g.\n"
            "  - {type: select_many, task_ids: [TASK-001, TASK-002]}\n"
            "  - {type: bulk_move_selected, next_status: done}\n"
            "  - {type: undo_move}\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    apply_parser.add_argument("script", help="Path to the intent script")
    apply_parser.add_argument(
        "--output", default=None, help="Write the resulting board as a YAML fixture"
    )
    apply_parser.set_defaults(handler=_cmd_apply)

    deps_parser = subparsers.add_parser(
        "deps", parents=[common], help="List open transitive dependencies of a task"
    )
    deps_parser.add_argument("task_id", help="Task id, e.g. TASK-012")
    deps_parser.set_defaults(handler=_cmd_deps)

    seed_parser = subparsers.add_parser(
        "seed", parents=[common], help="Write the generated seed board as a YAML fixture"
    )
    seed_parser.add_argument("--output", required=True, help="Destination fixture path")
    seed_parser.set_defaults(handler=_cmd_seed)

    config_parser = subparsers.add_parser(
        "config", parents=[common], help="Show the effective configuration"
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    configure_structlog()
    try:
        with ExitStack() as stack:
            if _flag(namespace, "log"):
                config = _load_effective_config(namespace)
                handle = setup_logging(config["observability"], run_id=_run_id())
                stack.callback(handle.shutdown)
            stack.enter_context(correlation_scope(command=namespace.command))
            result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


def main(argv: Sequence[str] | None = None) -> int:
    return run_cli(argv)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_summary(args: argparse.Namespace) -> int:
    session = _build_session(args)
    payload = _summary_payload(session.state)
    payload["command"] = "summary"

    if _flag(args, "json"):
        _emit_json(payload)
        return 0

    _render_summary(_get_renderer(args), session.state)
    return 0


def _cmd_page(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    session = _build_session(args, config)
    status = TaskStatus(args.status)
    page_size = args.page_size
    if page_size is not None and page_size <= 0:
        raise CLIError("invalid page_size: must be > 0", exit_code=2)

    page = asyncio.run(session.fetch_page(status, args.cursor, args.query, page_size))

    viewport = config["viewport"]
    prefix = build_prefix_sums([viewport["row_height"]] * len(page.task_ids))
    visible = get_virtual_range(
        prefix, max(0.0, args.scroll_top), viewport["height"], viewport["overscan"]
    )

    payload: dict[str, object] = {
        "command": "page",
        "status": status.value,
        "query": args.query,
        "page": page.to_dict(),
        "visible_rows": {
            "start_index": visible.start_index,
            "end_index": visible.end_index,
            "total_height": visible.total_height,
        },
    }
    if _flag(args, "json"):
        _emit_json(payload)
        return 0

    renderer = _get_renderer(args)
    renderer.page(STATUS_LABELS[status], page)
    renderer.kv("Rendered rows", f"{visible.start_index}..{visible.end_index}")
    return 0


def _cmd_search(args: argparse.Namespace) -> int:
    limit = args.limit
    if limit is not None and limit <= 0:
        raise CLIError("invalid limit: must be > 0", exit_code=2)
    session = _build_session(args)
    suggestions = session.suggest(args.prefix, limit)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "search",
                "prefix": args.prefix,
                "suggestions": [_task_row(task) for task in suggestions],
            }
        )
        return 0

    renderer = _get_renderer(args)
    if not suggestions:
        renderer.text(f"No tasks match {args.prefix!r}")
        return 0
    renderer.tasks(suggestions)
    return 0


def _cmd_apply(args: argparse.Namespace) -> int:
    script_path = Path(_require_str(args.script, "script")).expanduser()
    intents = [
        _parse_script_item(index, item) for index, item in enumerate(_load_script(script_path))
    ]

    session = _build_session(args)
    state = session.dispatch_many(intents)

    written: str | None = None
    output = _optional_str(getattr(args, "output", None))
    if output is not None:
        written = dump_store_fixture(state.tasks, output).as_posix()

    payload = _summary_payload(state)
    payload["command"] = "apply"
    payload["applied"] = [intent_to_dict(intent) for intent in intents]
    payload["output"] = written

    if _flag(args, "json"):
        _emit_json(payload)
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Applied intents", len(intents))
    _render_summary(renderer, state)
    if written is not None:
        renderer.kv("Wrote fixture", written)
    return 0


def _cmd_deps(args: argparse.Namespace) -> int:
    session = _build_session(args)
    task_id = _require_str(args.task_id, "task_id")
    if task_id not in session.state.tasks:
        raise CLIError(f"unknown task: {task_id}", exit_code=2)
    blocking = open_dependencies(session.state.tasks, task_id)

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "deps",
                "task_id": task_id,
                "open_dependencies": [_task_row(task) for task in blocking],
            }
        )
        return 0

    renderer = _get_renderer(args)
    if not blocking:
        renderer.text(f"{task_id} has no open dependencies")
        return 0
    renderer.tasks(blocking, title=f"Open dependencies of {task_id}")
    return 0


def _cmd_seed(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    store = create_seed_store(
        _clock(args)(), root_count=config["board"]["seed_root_task_count"]
    )
    written = dump_store_fixture(store, _require_str(args.output, "output"))

    if _flag(args, "json"):
        _emit_json(
            {
                "command": "seed",
                "output": written.as_posix(),
                "root_tasks": len(store.root_task_ids),
                "tasks": len(store),
            }
        )
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Wrote fixture", written.as_posix())
    renderer.kv("Tasks", f"{len(store)} ({len(store.root_task_ids)} root)")
    return 0


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args)
    profile = _optional_str(getattr(args, "profile", None))

    if _flag(args, "json"):
        _emit_json({"command": "config", "active_profile": profile, "config": config})
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Active profile", profile or "(default)")
    renderer.text(dump_effective_config(config))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _summary_payload(state: BoardState) -> dict[str, object]:
    store = state.tasks
    undo, redo = history_counts(state)
    cycles = DependencyGraph.from_tasks(store.by_id).detect_cycles()
    return {
        "revision": state.revision,
        "tasks": len(store),
        "root_tasks": len(store.root_task_ids),
        "columns": [
            {
                "status": item.status.value,
                "label": item.label,
                "count": item.count,
                "percent": item.percent,
            }
            for item in status_overview(store)
        ],
        "completion_percent": completion_percent(store),
        "selected": sorted(state.selected_task_ids),
        "selection_percent": selection_percent(state),
        "undo_depth": undo,
        "redo_depth": redo,
        "dependency_edges": dependency_edge_count(store),
        "dependency_cycles": [list(cycle) for cycle in cycles],
        "active_toasts": [_toast_row(toast) for toast in state.active_toasts],
        "queued_toasts": len(state.toast_heap),
    }


def _render_summary(renderer: CLIRenderer, state: BoardState) -> None:
    store = state.tasks
    undo, redo = history_counts(state)
    renderer.kv("Revision", state.revision)
    renderer.kv("Tasks", f"{len(store)} ({len(store.root_task_ids)} root)")
    renderer.kv("Completion", f"{completion_percent(store)}%")
    renderer.kv(
        "Selected",
        f"{len(state.selected_task_ids)} ({selection_percent(state)}%)",
    )
    renderer.kv("History", f"undo={undo} redo={redo}")
    renderer.kv("Dependency edges", dependency_edge_count(store))
    renderer.status_overview(status_overview(store))
    renderer.toasts(state.active_toasts)


def _toast_row(toast: ToastMessage) -> dict[str, object]:
    return {**toast.to_dict(), "timeout_ms": toast_timeout_ms(toast)}


def _task_row(task: Task) -> dict[str, object]:
    return {
        "id": task.id,
        "title": task.title,
        "status": task.status.value,
        "priority": task.priority.value,
    }


def _load_script(path: Path) -> list[object]:
    try:
        with path.open("r", encoding="utf-8") as handle:
            loaded: object = yaml.safe_load(handle)
    except OSError as exc:
        raise CLIError(f"unable to read intent script {path}: {exc}", exit_code=2) from exc
    except yaml.YAMLError as exc:
        raise CLIError(f"invalid intent script {path}: {exc}", exit_code=2) from exc

    if isinstance(loaded, Mapping):
        loaded = loaded.get("intents")
    if loaded is None:
        return []
    if not isinstance(loaded, list):
        raise CLIError(f"intent script {path} must contain a list of intents", exit_code=2)
    return loaded


def _parse_script_item(index: int, item: object) -> BoardIntent:
    if not isinstance(item, Mapping):
        raise CLIError(f"intents[{index}]: expected object", exit_code=2)
    try:
        return parse_intent(item)
    except IntentParseError as exc:
        raise CLIError(f"intents[{index}]: {exc}", exit_code=2) from exc


def _build_session(
    args: argparse.Namespace, config: Mapping[str, Any] | None = None
) -> BoardSession:
    effective = config if config is not None else _load_effective_config(args)
    fixture = _optional_str(getattr(args, "fixture", None))
    store = None
    if fixture is not None:
        try:
            store = load_store_fixture(Path(fixture).expanduser())
        except FixtureError as exc:
            raise CLIError(str(exc), exit_code=2) from exc
    try:
        return BoardSession.from_config(effective, store=store, clock=_clock(args))
    except ValueError as exc:
        raise CLIError(f"unable to start board session: {exc}", exit_code=2) from exc


def _clock(args: argparse.Namespace) -> Clock:
    frozen = getattr(args, "now_ms", None)
    if frozen is None:
        return system_clock
    if frozen < 0:
        raise CLIError("invalid now_ms: must be >= 0", exit_code=2)
    return lambda: frozen


def _load_effective_config(args: argparse.Namespace) -> dict[str, Any]:
    config_path = _optional_str(getattr(args, "config_path", None))
    profile = _optional_str(getattr(args, "profile", None))
    overrides = _parse_overrides(getattr(args, "overrides", None) or [])

    try:
        return load_config(config_path, profile=profile, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


def _parse_overrides(raw_items: Sequence[str]) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for raw in raw_items:
        key, separator, value = raw.partition("=")
        key = key.strip()
        if not separator or not key:
            raise CLIError(f"invalid override {raw!r}: expected KEY=VALUE", exit_code=2)
        try:
            overrides[key] = yaml.safe_load(value) if value.strip() else ""
        except yaml.YAMLError as exc:
            raise CLIError(f"invalid override value for {key}: {exc}", exit_code=2) from exc
    return overrides


def _run_id() -> str:
    return time.strftime("cli-%Y%m%dT%H%M%SZ", time.gmtime())


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(no_color=_flag(args, "no_color"))


def _require_str(value: object, name: str) -> str:
    if not isinstance(value, str):
        raise CLIError(f"invalid {name}: expected string", exit_code=2)
    cleaned = value.strip()
    if not cleaned:
        raise CLIError(f"invalid {name}: value cannot be empty", exit_code=2)
    return cleaned


def _optional_str(value: object) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise CLIError("invalid optional string argument", exit_code=2)
    cleaned = value.strip()
    return cleaned or None


def _flag(args: argparse.Namespace, name: str) -> bool:
    return bool(getattr(args, name, False))


__all__ = [
    "CLIError",
    "build_parser",
    "main",
    "run_cli",
]
