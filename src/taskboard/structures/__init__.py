"""Standalone data structures: priority queue, prefix trie, LRU cache, and pagination math."""

from taskboard.structures.lru_cache import LRUCache
from taskboard.structures.pagination import (
    CursorWindow,
    VirtualRange,
    binary_search_prefix,
    build_prefix_sums,
    get_cursor_window,
    get_virtual_range,
)
from taskboard.structures.priority_queue import Comparator, PriorityQueue
from taskboard.structures.trie import PrefixTrie, normalize_search_term

__all__ = [
    "Comparator",
    "CursorWindow",
    "LRUCache",
    "PrefixTrie",
    "PriorityQueue",
    "VirtualRange",
    "binary_search_prefix",
    "build_prefix_sums",
    "get_cursor_window",
    "get_virtual_range",
    "normalize_search_term",
]
