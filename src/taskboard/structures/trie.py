"""Character-level prefix trie over normalized task titles."""

from __future__ import annotations

import re
from collections import deque
from typing import Final

_WHITESPACE_RE: Final[re.Pattern[str]] = re.compile(r"\s+")

__all__ = ["PrefixTrie", "normalize_search_term"]


def normalize_search_term(term: str) -> str:
    """Trim, lowercase, and collapse internal whitespace runs to one space."""
    return _WHITESPACE_RE.sub(" ", term.strip().lower())


class _TrieNode:
    __slots__ = ("children", "task_ids")

    def __init__(self) -> None:
        self.children: dict[str, _TrieNode] = {}
        # Insertion-ordered set; dict keeps first-seen order.
        self.task_ids: dict[str, None] = {}


class PrefixTrie:
    """Prefix index mapping title prefixes (and word prefixes) to task ids.

    Every node on an inserted segment's path records the id, so a prefix walk
    lands on a node that already knows every matching id. Suggestions come out
    in breadth-first order from that node; because the node already holds
    every match, that is first-insertion order. There is no deletion;
    rebuild the trie when the indexed titles change.
    """

    __slots__ = ("_root", "_size")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._size = 0

    def __len__(self) -> int:
        """Number of ``insert`` calls that indexed something."""
        return self._size

    def insert(self, text: str, task_id: str) -> None:
        normalized = normalize_search_term(text)
        if not normalized:
            return
        segments = dict.fromkeys([normalized, *(word for word in normalized.split(" ") if word)])
        for segment in segments:
            self._insert_segment(segment, task_id)
        self._size += 1

    def suggest(self, prefix: str, limit: int = 8) -> list[str]:
        normalized = normalize_search_term(prefix)
        if not normalized or limit <= 0:
            return []

        node = self._root
        for char in normalized:
            next_node = node.children.get(char)
            if next_node is None:
                return []
            node = next_node
        return self._collect(node, limit)

    def _insert_segment(self, segment: str, task_id: str) -> None:
        node = self._root
        for char in segment:
            next_node = node.children.get(char)
            if next_node is None:
                next_node = _TrieNode()
                node.children[char] = next_node
            node = next_node
            node.task_ids[task_id] = None

    @staticmethod
    def _collect(start: _TrieNode, limit: int) -> list[str]:
        output: list[str] = []
        seen: set[str] = set()
        queue: deque[_TrieNode] = deque([start])
        while queue:
            current = queue.popleft()
            for task_id in current.task_ids:
                if task_id in seen:
                    continue
                seen.add(task_id)
                output.append(task_id)
                if len(output) >= limit:
                    return output
            queue.extend(current.children.values())
        return output
