"""Plain-text rendering for the taskboard CLI.

File: src/taskboard/ui/render.py

Purpose
- Provide a thin rendering layer for human-readable CLI output.
- Respect the NO_COLOR environment variable and the --no-color CLI flag.

Functional requirements
- Output is deterministic for a given board snapshot.
- All public methods must be safe to call in any environment.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, Final

from taskboard.board.notifications import toast_timeout_ms

if TYPE_CHECKING:
    from collections.abc import Sequence

    from taskboard.domain.models import ColumnPage, StatusCount, Task, ToastMessage

_TONE_MARKERS: Final[dict[str, str]] = {
    "info": "i",
    "success": "+",
    "warning": "!",
    "error": "x",
}
_ANSI_BOLD: Final[str] = "\x1b[1m"
_ANSI_RESET: Final[str] = "\x1b[0m"


def _color_allowed(no_color_flag: bool) -> bool:
    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


class CLIRenderer:
    """Line-oriented renderer for board snapshots, pages, and toasts."""

    def __init__(self, *, no_color: bool = False, verbose: bool = False) -> None:
        self.verbose = verbose
        self._color = _color_allowed(no_color)

    def heading(self, text: str) -> None:
        print(f"{_ANSI_BOLD}{text}{_ANSI_RESET}" if self._color else text)

    def kv(self, key: str, value: object) -> None:
        print(f"{key}: {value}")

    def text(self, line: str) -> None:
        print(line)

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""
        print()
        self.heading(title)

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            print(f"  {prefix}{entry}")

    def table(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[object]],
        *,
        title: str | None = None,
    ) -> None:
        """Print a left-aligned ASCII table; nothing at all when ``rows`` is empty."""
        if not rows:
            return

        cells = [[str(cell) for cell in row] for row in rows]
        widths = [len(header) for header in headers]
        for row in cells:
            for index, cell in enumerate(row[: len(widths)]):
                widths[index] = max(widths[index], len(cell))

        def _line(values: Sequence[str]) -> str:
            padded = (
                (values[index] if index < len(values) else "").ljust(width)
                for index, width in enumerate(widths)
            )
            return "  " + "  ".join(padded).rstrip()

        if title:
            self.section(title)
        print(_line(list(headers)))
        print(_line(["-" * width for width in widths]))
        for row in cells:
            print(_line(row))

    def status_overview(self, counts: Sequence[StatusCount]) -> None:
        self.table(
            ("Status", "Count", "Share"),
            [(item.label, item.count, f"{item.percent}%") for item in counts],
            title="Columns",
        )

    def tasks(self, tasks: Sequence[Task], *, title: str | None = None) -> None:
        self.table(
            ("Id", "Status", "Priority", "Title"),
            [(task.id, task.status.value, task.priority.value, task.title) for task in tasks],
            title=title,
        )

    def page(self, status_label: str, page: ColumnPage) -> None:
        self.heading(
            f"{status_label}: page {page.current_page}/{page.total_pages} "
            f"({page.total_items} matching, cursor {page.cursor})"
        )
        if page.cache_hit:
            self.text("(served from cache)")
        self.items(list(page.task_ids))
        window = " ".join(str(number) for number in page.page_window)
        self.kv("Pages", window or "-")

    def toasts(self, toasts: Sequence[ToastMessage]) -> None:
        if not toasts:
            return
        self.section("Notifications")
        for toast in toasts:
            marker = _TONE_MARKERS.get(toast.tone.value, "?")
            self.text(
                f"  [{marker}] P{toast.priority} {toast.message} ({toast_timeout_ms(toast)} ms)"
            )


def create_renderer(*, no_color: bool = False, verbose: bool = False) -> CLIRenderer:
    return CLIRenderer(no_color=no_color, verbose=verbose)


__all__ = ["CLIRenderer", "create_renderer"]
