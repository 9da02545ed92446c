"""Utility exports for async concurrency helpers."""

from taskboard.utils.concurrency import (
    BoundedSemaphore,
    CancellationToken,
    KeyedLock,
    RequestGenerationGuard,
    WorkerPool,
    run_with_timeout,
)

__all__ = [
    "BoundedSemaphore",
    "CancellationToken",
    "KeyedLock",
    "RequestGenerationGuard",
    "WorkerPool",
    "run_with_timeout",
]
