"""
taskboard-engine — stateful board session

File: src/taskboard/board/session.py

Purpose
- Own the current ``BoardState`` and route intents through the pure reducer.
- Front the cached column query service and the title search index.

Behavioral contract
- ``dispatch`` never raises for well-typed intents; rejected intents surface as
  toasts exactly as the reducer reports them.
- Column reads always use the state current at call time.
- ``fetch_latest`` returns ``None`` for a response superseded by a newer
  request on the same column.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from taskboard.board.engine import (
    DEFAULT_ENGINE_SETTINGS,
    Clock,
    EngineSettings,
    create_initial_board_state,
    reduce_board,
    system_clock,
)
from taskboard.board.query import ColumnQueryService
from taskboard.board.seed import create_seed_store
from taskboard.board.views import build_title_index, suggest_tasks
from taskboard.constants import SUGGESTION_LIMIT
from taskboard.domain.intents import BoardIntent
from taskboard.domain.models import (
    STATUS_ORDER,
    BoardState,
    ColumnPage,
    Task,
    TaskStatus,
    TaskStore,
)
from taskboard.observability import metrics as metric_names
from taskboard.observability.metrics import MetricsRegistry
from taskboard.structures.trie import PrefixTrie
from taskboard.utils.concurrency import RequestGenerationGuard

__all__ = ["BoardSession"]


class BoardSession:
    """Mutable shell around an immutable board snapshot."""

    def __init__(
        self,
        state: BoardState,
        *,
        engine_settings: EngineSettings = DEFAULT_ENGINE_SETTINGS,
        query_service: ColumnQueryService | None = None,
        suggestion_limit: int = SUGGESTION_LIMIT,
        clock: Clock = system_clock,
        metrics: MetricsRegistry | None = None,
        logger: Any | None = None,
    ) -> None:
        if suggestion_limit <= 0:
            raise ValueError(f"suggestion_limit must be positive, got {suggestion_limit}")
        self._state = state
        self._engine_settings = engine_settings
        self._clock = clock
        self._metrics = metrics if metrics is not None else MetricsRegistry()
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._query = (
            query_service
            if query_service is not None
            else ColumnQueryService(metrics=self._metrics, logger=self._logger)
        )
        self._suggestion_limit = suggestion_limit
        self._generations = RequestGenerationGuard()
        self._trie: PrefixTrie | None = None
        self._trie_roots: tuple[str, ...] | None = None

    @classmethod
    def create(
        cls,
        store: TaskStore,
        *,
        engine_settings: EngineSettings = DEFAULT_ENGINE_SETTINGS,
        clock: Clock = system_clock,
        **kwargs: Any,
    ) -> BoardSession:
        """Start a session from ``store`` with the seeding notice queued."""
        state = create_initial_board_state(store, clock=clock, settings=engine_settings)
        return cls(state, engine_settings=engine_settings, clock=clock, **kwargs)

    @classmethod
    def from_config(
        cls,
        config: Mapping[str, Any],
        *,
        store: TaskStore | None = None,
        clock: Clock = system_clock,
        metrics: MetricsRegistry | None = None,
        logger: Any | None = None,
    ) -> BoardSession:
        """Build a session from a validated config, seeding a board when ``store`` is None."""
        from taskboard.config.loader import engine_settings_from_config, query_settings_from_config

        registry = metrics if metrics is not None else MetricsRegistry()
        bound_logger = logger if logger is not None else structlog.get_logger(__name__)
        if store is None:
            store = create_seed_store(clock(), root_count=config["board"]["seed_root_task_count"])
        query_service = ColumnQueryService(
            query_settings_from_config(config), metrics=registry, logger=bound_logger
        )
        return cls.create(
            store,
            engine_settings=engine_settings_from_config(config),
            clock=clock,
            query_service=query_service,
            suggestion_limit=config["query"]["suggestion_limit"],
            metrics=registry,
            logger=bound_logger,
        )

    @property
    def state(self) -> BoardState:
        return self._state

    @property
    def metrics(self) -> MetricsRegistry:
        return self._metrics

    @property
    def query_service(self) -> ColumnQueryService:
        return self._query

    def dispatch(self, intent: BoardIntent) -> BoardState:
        previous = self._state
        self._state = reduce_board(
            previous, intent, clock=self._clock, settings=self._engine_settings
        )
        kind = type(intent).__name__
        self._metrics.inc(metric_names.INTENTS_DISPATCHED, labels={"intent": kind})
        if self._state is not previous:
            self._metrics.inc(metric_names.STATE_CHANGES, labels={"intent": kind})
        self._metrics.set_gauge(metric_names.BOARD_REVISION, self._state.revision)
        self._logger.debug(
            "intent_dispatched",
            intent=kind,
            changed=self._state is not previous,
            revision=self._state.revision,
        )
        return self._state

    def dispatch_many(self, intents: Iterable[BoardIntent]) -> BoardState:
        for intent in intents:
            self.dispatch(intent)
        return self._state

    async def fetch_page(
        self,
        status: TaskStatus,
        cursor: int = 0,
        query: str = "",
        page_size: int | None = None,
    ) -> ColumnPage:
        return await self._query.fetch_page(self._state, status, cursor, query, page_size)

    async def fetch_page_or_empty(
        self,
        status: TaskStatus,
        cursor: int = 0,
        query: str = "",
        page_size: int | None = None,
    ) -> ColumnPage:
        return await self._query.fetch_page_or_empty(
            self._state, status, cursor, query, page_size
        )

    async def fetch_columns(
        self,
        statuses: Iterable[TaskStatus] = STATUS_ORDER,
        query: str = "",
        page_size: int | None = None,
    ) -> dict[TaskStatus, ColumnPage]:
        return await self._query.fetch_columns(self._state, statuses, query, page_size)

    async def fetch_latest(
        self,
        status: TaskStatus,
        cursor: int = 0,
        query: str = "",
        page_size: int | None = None,
    ) -> ColumnPage | None:
        """Fetch a page, returning ``None`` if a newer request for ``status`` began meanwhile."""
        token = self._generations.begin(status)
        page = await self.fetch_page_or_empty(status, cursor, query, page_size)
        if not self._generations.is_current(status, token):
            self._logger.debug("column_page_superseded", status=status.value, token=token)
            return None
        return page

    def suggest(self, query: str, limit: int | None = None) -> tuple[Task, ...]:
        self._metrics.inc(metric_names.SEARCH_REQUESTS)
        return suggest_tasks(
            self._title_index(),
            self._state.tasks,
            query,
            self._suggestion_limit if limit is None else limit,
        )

    def _title_index(self) -> PrefixTrie:
        roots = self._state.tasks.root_task_ids
        if self._trie is None or self._trie_roots is not roots:
            self._trie = build_title_index(self._state.tasks)
            self._trie_roots = roots
        return self._trie
