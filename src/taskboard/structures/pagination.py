"""Cursor-window and virtual-scroll arithmetic for paginated, virtualized columns.

All functions are pure. Cursors are item offsets, pages are 1-based, and a
prefix-sum array has ``len(heights) + 1`` entries with ``prefix[0] == 0``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from taskboard.constants import PAGE_WINDOW_SIZE

__all__ = [
    "CursorWindow",
    "VirtualRange",
    "binary_search_prefix",
    "build_prefix_sums",
    "get_cursor_window",
    "get_virtual_range",
]


@dataclass(frozen=True, slots=True)
class CursorWindow:
    total_pages: int
    current_page: int
    cursor: int
    page_window: tuple[int, ...]
    next_cursor: int | None
    prev_cursor: int | None


@dataclass(frozen=True, slots=True)
class VirtualRange:
    """Half-open ``[start_index, end_index)`` slice of rows to render."""

    start_index: int
    end_index: int
    total_height: float


def get_cursor_window(
    total_items: int,
    requested_cursor: int,
    page_size: int,
    window_size: int = PAGE_WINDOW_SIZE,
) -> CursorWindow:
    """Clamp ``requested_cursor`` and compute the page window around it.

    The window holds up to ``window_size`` consecutive page numbers, centred on
    the current page where possible and shifted to stay inside
    ``[1, total_pages]``.
    """
    safe_page_size = max(page_size, 1)
    total_pages = max(1, math.ceil(total_items / safe_page_size))
    max_cursor = max(0, (total_pages - 1) * safe_page_size)
    cursor = max(0, min(requested_cursor, max_cursor))
    current_page = cursor // safe_page_size + 1

    half_window = window_size // 2
    start_page = max(1, current_page - half_window)
    end_page = min(total_pages, start_page + window_size - 1)
    start_page = max(1, end_page - window_size + 1)

    prev_cursor = cursor - safe_page_size if current_page > 1 else None
    next_cursor = cursor + safe_page_size if current_page < total_pages else None

    return CursorWindow(
        total_pages=total_pages,
        current_page=current_page,
        cursor=cursor,
        page_window=tuple(range(start_page, end_page + 1)),
        next_cursor=next_cursor,
        prev_cursor=prev_cursor,
    )


def build_prefix_sums(heights: Sequence[float]) -> list[float]:
    prefix: list[float] = [0]
    running: float = 0
    for height in heights:
        running += height
        prefix.append(running)
    return prefix


def binary_search_prefix(prefix: Sequence[float], target: float) -> int:
    """Return the largest index ``i`` with ``prefix[i] <= target`` (0 if none)."""
    left = 0
    right = len(prefix) - 1
    while left < right:
        middle = (left + right + 1) // 2
        if prefix[middle] <= target:
            left = middle
        else:
            right = middle - 1
    return left


def get_virtual_range(
    prefix: Sequence[float],
    scroll_top: float,
    viewport_height: float,
    overscan: int,
) -> VirtualRange:
    item_count = max(0, len(prefix) - 1)
    if item_count == 0:
        return VirtualRange(start_index=0, end_index=0, total_height=0)

    start = max(0, binary_search_prefix(prefix, scroll_top) - overscan)
    bottom = scroll_top + viewport_height
    end = min(item_count, binary_search_prefix(prefix, bottom) + overscan + 1)
    return VirtualRange(start_index=start, end_index=end, total_height=prefix[-1])
