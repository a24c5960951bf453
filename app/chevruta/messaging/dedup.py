"""Bounded record of processed event keys -- suppresses redelivered events."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 1000
DEFAULT_EVICT = 500


class DeduplicationCache:
    """Insertion-ordered key set with half-eviction once over capacity."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY, evict: int = DEFAULT_EVICT) -> None:
        self._capacity = capacity
        self._evict = evict
        self._keys: dict[str, None] = {}
        self._lock = threading.Lock()

    def seen(self, key: str) -> bool:
        with self._lock:
            return key in self._keys

    def mark_seen(self, key: str) -> None:
        with self._lock:
            self._insert(key)

    def check_and_mark(self, key: str) -> bool:
        """Atomically mark *key*; True only for the first caller."""
        with self._lock:
            if key in self._keys:
                return False
            self._insert(key)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._keys)

    def _insert(self, key: str) -> None:
        self._keys[key] = None
        if len(self._keys) > self._capacity:
            for old in list(self._keys)[: self._evict]:
                del self._keys[old]
            logger.debug("[dedup] Evicted %d oldest keys", self._evict)
