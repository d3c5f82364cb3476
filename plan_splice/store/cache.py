"""Shared cache of built external plan trees, keyed by resolved file path."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from plan_splice.engine.tree import TreeNode

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    stored: int = 0
    discarded: int = 0  # puts that lost a first-writer race


class FragmentCache:
    """
    Maps a FragmentKey to the TreeNode built from that file.

    Entries live until ``invalidate``/``clear``; there is no size or time
    eviction. Trees handed out by ``get``/``put`` are shared between every
    referencing controller and must be cloned before mutation.
    """

    def __init__(self) -> None:
        self._entries: dict[str, TreeNode] = {}
        self._lock = threading.Lock()
        self.stats = CacheStats()

    def get(self, key: str) -> TreeNode | None:
        with self._lock:
            tree = self._entries.get(key)
            if tree is None:
                self.stats.misses += 1
            else:
                self.stats.hits += 1
        if tree is not None:
            logger.debug("Fragment cache hit: %s", key)
        return tree

    def put(self, key: str, tree: TreeNode) -> TreeNode:
        """Store ``tree`` unless ``key`` already has a value; return the stored value."""
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                self.stats.discarded += 1
                return existing
            self._entries[key] = tree
            self.stats.stored += 1
        logger.debug("Fragment cache stored: %s", key)
        return tree

    def invalidate(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
        if removed:
            logger.debug("Fragment cache invalidated: %s", key)
        return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
