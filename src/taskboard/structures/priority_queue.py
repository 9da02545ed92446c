"""Comparator-driven binary max-heap used for pending toast scheduling."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Generic, TypeVar

T = TypeVar("T")

Comparator = Callable[[T, T], float]
"""Positive when ``left`` ranks ahead of ``right``; zero when equal."""

__all__ = ["Comparator", "PriorityQueue"]


class PriorityQueue(Generic[T]):
    """Array-backed max-heap. ``pop`` returns the highest-ranked item per ``compare``.

    Ties are not stable: equal-rank items may pop in any order.
    """

    __slots__ = ("_compare", "_heap")

    def __init__(self, compare: Comparator[T], seed: Iterable[T] | None = None) -> None:
        self._compare = compare
        self._heap: list[T] = list(seed) if seed is not None else []
        if len(self._heap) > 1:
            self._heapify()

    @property
    def size(self) -> int:
        return len(self._heap)

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)

    def to_list(self) -> list[T]:
        """Return a copy of the backing array in heap order (not sorted order)."""
        return list(self._heap)

    def peek(self) -> T | None:
        return self._heap[0] if self._heap else None

    def push(self, value: T) -> None:
        self._heap.append(value)
        self._sift_up(len(self._heap) - 1)

    def pop(self) -> T | None:
        if not self._heap:
            return None
        if len(self._heap) == 1:
            return self._heap.pop()

        top = self._heap[0]
        self._heap[0] = self._heap.pop()
        self._sift_down(0)
        return top

    def _heapify(self) -> None:
        for index in range(len(self._heap) // 2 - 1, -1, -1):
            self._sift_down(index)

    def _sift_up(self, index: int) -> None:
        heap = self._heap
        current = index
        while current > 0:
            parent = (current - 1) // 2
            if self._compare(heap[current], heap[parent]) <= 0:
                break
            heap[current], heap[parent] = heap[parent], heap[current]
            current = parent

    def _sift_down(self, index: int) -> None:
        heap = self._heap
        length = len(heap)
        current = index
        while True:
            left = current * 2 + 1
            right = left + 1
            largest = current
            if left < length and self._compare(heap[left], heap[largest]) > 0:
                largest = left
            if right < length and self._compare(heap[right], heap[largest]) > 0:
                largest = right
            if largest == current:
                return
            heap[current], heap[largest] = heap[largest], heap[current]
            current = largest
