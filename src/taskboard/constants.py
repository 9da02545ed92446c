"""Stable constants shared across the board engine, query layer, and CLI."""

from __future__ import annotations

from typing import Final

# Schema versions for configuration and fixtures.
CONFIG_SCHEMA_VERSION: Final[int] = 1
FIXTURE_SCHEMA_VERSION: Final[int] = 1

# Board engine bounds.
MAX_HISTORY: Final[int] = 60
MAX_ACTIVE_TOASTS: Final[int] = 3
SEED_ROOT_TASK_COUNT: Final[int] = 180

# Column query defaults.
RESPONSE_CACHE_CAPACITY: Final[int] = 120
FETCH_LATENCY_SECONDS: Final[float] = 0.1
FETCH_TIMEOUT_SECONDS: Final[float] = 5.0
PAGE_SIZE_OPTIONS: Final[tuple[int, ...]] = (24, 48, 72)
DEFAULT_PAGE_SIZE: Final[int] = PAGE_SIZE_OPTIONS[1]
PAGE_WINDOW_SIZE: Final[int] = 5
QUERY_MAX_CONCURRENCY: Final[int] = 4
SUGGESTION_LIMIT: Final[int] = 6

# Virtualized column geometry (pixels).
VIEWPORT_HEIGHT: Final[int] = 480
OVERSCAN: Final[int] = 3
TASK_CARD_HEIGHT: Final[int] = 252
TASK_ROW_HEIGHT: Final[int] = TASK_CARD_HEIGHT + 8

# Toast auto-dismiss timing (milliseconds).
TOAST_BASE_TIMEOUT_MS: Final[int] = 3200
TOAST_PRIORITY_STEP_MS: Final[int] = 300

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_PAGE_SIZE",
    "FETCH_LATENCY_SECONDS",
    "FETCH_TIMEOUT_SECONDS",
    "FIXTURE_SCHEMA_VERSION",
    "MAX_ACTIVE_TOASTS",
    "MAX_HISTORY",
    "OVERSCAN",
    "PAGE_SIZE_OPTIONS",
    "PAGE_WINDOW_SIZE",
    "QUERY_MAX_CONCURRENCY",
    "RESPONSE_CACHE_CAPACITY",
    "SEED_ROOT_TASK_COUNT",
    "SUGGESTION_LIMIT",
    "TASK_CARD_HEIGHT",
    "TASK_ROW_HEIGHT",
    "TOAST_BASE_TIMEOUT_MS",
    "TOAST_PRIORITY_STEP_MS",
    "VIEWPORT_HEIGHT",
]
