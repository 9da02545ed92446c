"""Cached, cursor-paginated reads of status columns.

A page is a pure function of ``(revision, status, normalized query, cursor,
page size)``, which is also the cache key. Any accepted mutation bumps the
revision, so stale pages are never served; they just age out of the LRU.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from typing import Any, Final

import structlog

from taskboard.constants import (
    DEFAULT_PAGE_SIZE,
    FETCH_LATENCY_SECONDS,
    FETCH_TIMEOUT_SECONDS,
    PAGE_WINDOW_SIZE,
    QUERY_MAX_CONCURRENCY,
    RESPONSE_CACHE_CAPACITY,
)
from taskboard.domain.models import STATUS_ORDER, BoardState, ColumnPage, TaskStatus, TaskStore
from taskboard.observability import metrics as metric_names
from taskboard.observability.metrics import MetricsRegistry
from taskboard.structures.lru_cache import LRUCache
from taskboard.structures.pagination import get_cursor_window
from taskboard.structures.trie import normalize_search_term
from taskboard.utils.concurrency import KeyedLock, WorkerPool, run_with_timeout

Sleep = Callable[[float], Awaitable[Any]]

CACHE_KEY_SEPARATOR: Final[str] = "|"

__all__ = [
    "ColumnQueryService",
    "QuerySettings",
    "build_cache_key",
    "compute_column_page",
    "matching_task_ids",
]


@dataclass(frozen=True, slots=True)
class QuerySettings:
    cache_capacity: int = RESPONSE_CACHE_CAPACITY
    fetch_latency_seconds: float = FETCH_LATENCY_SECONDS
    fetch_timeout_seconds: float = FETCH_TIMEOUT_SECONDS
    default_page_size: int = DEFAULT_PAGE_SIZE
    window_size: int = PAGE_WINDOW_SIZE
    max_concurrency: int = QUERY_MAX_CONCURRENCY

    def __post_init__(self) -> None:
        if self.cache_capacity <= 0:
            raise ValueError(f"cache_capacity must be positive, got {self.cache_capacity}")
        if self.fetch_latency_seconds < 0:
            raise ValueError("fetch_latency_seconds must be >= 0")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError("fetch_timeout_seconds must be > 0")
        if self.default_page_size <= 0:
            raise ValueError("default_page_size must be > 0")
        if self.window_size <= 0:
            raise ValueError("window_size must be > 0")
        if self.max_concurrency <= 0:
            raise ValueError("max_concurrency must be > 0")


def build_cache_key(
    revision: int, status: TaskStatus, normalized_query: str, cursor: int, page_size: int
) -> str:
    return CACHE_KEY_SEPARATOR.join(
        (str(revision), status.value, normalized_query, str(cursor), str(page_size))
    )


def matching_task_ids(store: TaskStore, status: TaskStatus, normalized_query: str) -> tuple[str, ...]:
    """Bucket ids whose lowercase ``title + " " + description`` contains the query."""
    bucket = store.ids_by_status[status]
    if not normalized_query:
        return tuple(bucket)

    matches: list[str] = []
    for task_id in bucket:
        task = store.by_id.get(task_id)
        if task is None:
            continue
        if normalized_query in f"{task.title} {task.description}".lower():
            matches.append(task_id)
    return tuple(matches)


def compute_column_page(
    store: TaskStore,
    status: TaskStatus,
    cursor: int,
    normalized_query: str,
    page_size: int,
    *,
    window_size: int = PAGE_WINDOW_SIZE,
) -> ColumnPage:
    matches = matching_task_ids(store, status, normalized_query)
    window = get_cursor_window(len(matches), cursor, page_size, window_size)
    return ColumnPage(
        task_ids=matches[window.cursor : window.cursor + max(page_size, 0)],
        total_items=len(matches),
        cursor=window.cursor,
        page_size=page_size,
        total_pages=window.total_pages,
        current_page=window.current_page,
        page_window=window.page_window,
        next_cursor=window.next_cursor,
        prev_cursor=window.prev_cursor,
        cache_hit=False,
    )


class ColumnQueryService:
    """Serves column pages from an LRU cache, computing misses after simulated latency.

    Concurrent requests for the same key are serialized so the page is
    computed once; different keys proceed independently. Failed or timed-out
    loads are never cached.
    """

    def __init__(
        self,
        settings: QuerySettings | None = None,
        *,
        metrics: MetricsRegistry | None = None,
        logger: Any | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings or QuerySettings()
        self._cache: LRUCache[str, ColumnPage] = LRUCache(self._settings.cache_capacity)
        self._locks = KeyedLock()
        self._metrics = metrics
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._sleep = sleep

    @property
    def settings(self) -> QuerySettings:
        return self._settings

    @property
    def cache(self) -> LRUCache[str, ColumnPage]:
        return self._cache

    async def fetch_page(
        self,
        state: BoardState,
        status: TaskStatus,
        cursor: int = 0,
        query: str = "",
        page_size: int | None = None,
    ) -> ColumnPage:
        size = self._settings.default_page_size if page_size is None else page_size
        normalized_query = normalize_search_term(query)
        key = build_cache_key(state.revision, status, normalized_query, cursor, size)

        cached = self._lookup(key, status)
        if cached is not None:
            return cached

        async with self._locks.hold(key):
            cached = self._lookup(key, status)
            if cached is not None:
                return cached

            self._count(metric_names.QUERY_CACHE_MISSES, status)
            started = time.perf_counter()
            try:
                page = await run_with_timeout(
                    self._load(state.tasks, status, cursor, normalized_query, size),
                    self._settings.fetch_timeout_seconds,
                )
            except Exception as exc:
                self._count(metric_names.QUERY_FAILURES, status)
                self._logger.warning(
                    "column_page_fetch_failed",
                    cache_key=key,
                    status=status.value,
                    error=f"{type(exc).__name__}: {exc}",
                )
                raise

            self._cache.set(key, page)
            if self._metrics is not None:
                self._metrics.observe(
                    metric_names.QUERY_FETCH_SECONDS,
                    time.perf_counter() - started,
                    labels={"status": status.value},
                )
                self._metrics.set_gauge(metric_names.QUERY_CACHE_SIZE, len(self._cache))
            self._logger.debug(
                "column_page_cache_miss",
                cache_key=key,
                total_items=page.total_items,
                returned=len(page.task_ids),
            )
            return page

    async def fetch_page_or_empty(
        self,
        state: BoardState,
        status: TaskStatus,
        cursor: int = 0,
        query: str = "",
        page_size: int | None = None,
    ) -> ColumnPage:
        """Like ``fetch_page`` but maps a failed load to an empty page."""
        size = self._settings.default_page_size if page_size is None else page_size
        try:
            return await self.fetch_page(state, status, cursor, query, size)
        except Exception:
            return ColumnPage.empty(size)

    async def fetch_columns(
        self,
        state: BoardState,
        statuses: Iterable[TaskStatus] = STATUS_ORDER,
        query: str = "",
        page_size: int | None = None,
    ) -> dict[TaskStatus, ColumnPage]:
        """Load the first page of each status concurrently, bounded by ``max_concurrency``."""
        ordered = tuple(dict.fromkeys(statuses))

        async def _one(status: TaskStatus) -> tuple[TaskStatus, ColumnPage]:
            return status, await self.fetch_page_or_empty(state, status, 0, query, page_size)

        pool: WorkerPool[tuple[TaskStatus, ColumnPage]] = WorkerPool(self._settings.max_concurrency)
        loaded: dict[TaskStatus, ColumnPage] = {}
        async for status, page in pool.run(_one(status) for status in ordered):
            loaded[status] = page
        return {status: loaded[status] for status in ordered}

    def clear(self) -> None:
        self._cache.clear()

    def _lookup(self, key: str, status: TaskStatus) -> ColumnPage | None:
        cached = self._cache.get(key)
        if cached is None:
            return None
        self._count(metric_names.QUERY_CACHE_HITS, status)
        self._logger.debug("column_page_cache_hit", cache_key=key)
        return cached.with_cache_hit(True)

    async def _load(
        self,
        store: TaskStore,
        status: TaskStatus,
        cursor: int,
        normalized_query: str,
        page_size: int,
    ) -> ColumnPage:
        if self._settings.fetch_latency_seconds > 0:
            await self._sleep(self._settings.fetch_latency_seconds)
        return compute_column_page(
            store,
            status,
            cursor,
            normalized_query,
            page_size,
            window_size=self._settings.window_size,
        )

    def _count(self, name: str, status: TaskStatus) -> None:
        if self._metrics is not None:
            self._metrics.inc(name, labels={"status": status.value})
