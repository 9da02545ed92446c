"""
taskboard-engine — package root

File: src/taskboard/__init__.py

Purpose
- In-memory task-tracking engine: normalized task store, reversible bulk status
  moves, ranked notifications, prefix search, and cached cursor pagination.

Import boundary rules
- No side effects at import time (no config loading, no logging init).
- Submodules are imported lazily by callers; keep this module small.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
