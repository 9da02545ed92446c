"""
taskboard-engine — board layer

File: src/taskboard/board/__init__.py

Purpose
- Re-export the reducer, the stateful session, and the column query service.
"""

from taskboard.board.dependencies import DependencyGraph, creates_dependency_cycle
from taskboard.board.engine import (
    DEFAULT_ENGINE_SETTINGS,
    EngineSettings,
    create_initial_board_state,
    reduce_board,
    system_clock,
)
from taskboard.board.query import ColumnQueryService, QuerySettings
from taskboard.board.seed import FixtureError, create_seed_store, load_store_fixture
from taskboard.board.session import BoardSession
from taskboard.board.store import apply_status_transition, build_store, validate_store

__all__ = [
    "BoardSession",
    "ColumnQueryService",
    "DEFAULT_ENGINE_SETTINGS",
    "DependencyGraph",
    "EngineSettings",
    "FixtureError",
    "QuerySettings",
    "apply_status_transition",
    "build_store",
    "create_initial_board_state",
    "create_seed_store",
    "creates_dependency_cycle",
    "load_store_fixture",
    "reduce_board",
    "system_clock",
    "validate_store",
]
