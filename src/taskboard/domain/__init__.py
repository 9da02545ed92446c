"""
taskboard-engine — domain package

File: src/taskboard/domain/__init__.py

Purpose
- Domain types shared across the engine: Task, TaskStore, MoveRecord,
  ToastMessage, BoardState, ColumnPage, and the board intents.

What should be included in this file
- Nothing beyond this docstring; import from the submodules directly.

Non-functional requirements
- Domain layer stays free of IO side effects and third-party dependencies.
"""
