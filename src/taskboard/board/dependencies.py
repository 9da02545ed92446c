"""Dependency graph over tasks with reachability and cycle detection.

Edges point from a task to the tasks it depends on (``task -> dependency``),
preserving each task's ``dependency_ids`` order. Graphs are derived fresh
from a store snapshot and never cached across revisions.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence

from taskboard.domain.models import Task


class DependencyGraph:
    """Ordered adjacency list keyed by task id."""

    __slots__ = ("_edges",)

    def __init__(self, edges: Mapping[str, Sequence[str]] | None = None) -> None:
        self._edges: dict[str, list[str]] = {}
        if edges is not None:
            for task_id, dependency_ids in edges.items():
                self._edges[task_id] = list(dependency_ids)

    @classmethod
    def from_tasks(cls, by_id: Mapping[str, Task]) -> DependencyGraph:
        return cls({task_id: task.dependency_ids for task_id, task in by_id.items()})

    def with_edge(self, task_id: str, depends_on_task_id: str) -> DependencyGraph:
        """Return a scratch copy with one extra edge; ``self`` is untouched."""
        scratch = DependencyGraph(self._edges)
        scratch._edges.setdefault(task_id, []).append(depends_on_task_id)
        return scratch

    def has_path(self, start: str, target: str) -> bool:
        """Whether ``target`` is reachable from ``start`` (trivially true when equal)."""
        if start == target:
            return True

        visited: set[str] = set()
        pending: list[str] = [start]
        while pending:
            node = pending.pop()
            if node in visited:
                continue
            visited.add(node)
            for neighbor in self._edges.get(node, ()):
                if neighbor == target:
                    return True
                if neighbor not in visited:
                    pending.append(neighbor)
        return False

    def creates_cycle(self, task_id: str, depends_on_task_id: str) -> bool:
        """Whether adding ``task_id -> depends_on_task_id`` would close a cycle."""
        scratch = self.with_edge(task_id, depends_on_task_id)
        return scratch.has_path(depends_on_task_id, task_id)

    def transitive_dependencies(self, task_id: str) -> tuple[str, ...]:
        """All tasks reachable from ``task_id``, sorted, excluding ``task_id`` itself."""
        visited: set[str] = set()
        pending: list[str] = list(self._edges.get(task_id, ()))
        while pending:
            node = pending.pop()
            if node in visited:
                continue
            visited.add(node)
            for neighbor in self._edges.get(node, ()):
                if neighbor not in visited:
                    pending.append(neighbor)
        visited.discard(task_id)
        return tuple(sorted(visited))

    def detect_cycles(self) -> tuple[tuple[str, ...], ...]:
        """
        Detect dependency cycles.

        Returns closed paths in canonical rotation, e.g. ``("A", "B", "A")``.
        """
        state: dict[str, int] = {}
        stack: list[str] = []
        stack_index: dict[str, int] = {}
        cycles: dict[tuple[str, ...], None] = {}

        for start in sorted(self._edges):
            if state.get(start, 0) != 0:
                continue

            state[start] = 1
            stack.append(start)
            stack_index[start] = len(stack) - 1
            frames: list[tuple[str, Iterator[str]]] = [(start, iter(self._edges[start]))]

            while frames:
                node, child_iter = frames[-1]

                try:
                    child = next(child_iter)
                except StopIteration:
                    frames.pop()
                    state[node] = 2
                    stack.pop()
                    del stack_index[node]
                    continue

                child_state = state.get(child, 0)
                if child_state == 0:
                    state[child] = 1
                    stack_index[child] = len(stack)
                    stack.append(child)
                    frames.append((child, iter(self._edges.get(child, ()))))
                    continue

                if child_state == 1:
                    cycle = tuple(stack[stack_index[child] :] + [child])
                    cycles[_canonicalize_cycle(cycle)] = None

        return tuple(sorted(cycles))


def _canonicalize_cycle(cycle: Sequence[str]) -> tuple[str, ...]:
    core = tuple(cycle[:-1])
    if len(core) == 1:
        return (core[0], core[0])

    best = min(core[offset:] + core[:offset] for offset in range(len(core)))
    return best + (best[0],)


def creates_dependency_cycle(
    by_id: Mapping[str, Task], task_id: str, depends_on_task_id: str
) -> bool:
    """Whether ``task_id`` depending on ``depends_on_task_id`` closes a cycle."""
    return DependencyGraph.from_tasks(by_id).creates_cycle(task_id, depends_on_task_id)


__all__ = ["DependencyGraph", "creates_dependency_cycle"]
