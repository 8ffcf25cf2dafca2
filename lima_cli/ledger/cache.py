"""Bounded cache of parsed transactions keyed by ordinal."""

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable

from .types import Transaction


class TransactionCache:
    """Thread-safe fixed-capacity LRU cache.

    Eviction drops the least recently used ordinal. Evicted entries are simply
    re-parsed from their indexed offset on the next access.
    """

    def __init__(self, max_size: int = 100) -> None:
        if max_size < 1:
            raise ValueError("cache size must be at least 1")
        self.max_size = max_size
        self._entries: OrderedDict[int, Transaction] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0
        self.evictions = 0

    def get(self, key: int) -> Transaction | None:
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return value

    def put(self, key: int, value: Transaction) -> None:
        with self._lock:
            self._put_unlocked(key, value)

    def get_or_load(self, key: int, loader: Callable[[int], Transaction]) -> Transaction:
        """Return the cached value or load, store and return it.

        The loader runs under the cache lock so concurrent callers asking for
        the same ordinal parse it once.
        """
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
                self.hits += 1
                return value
            self.misses += 1
            value = loader(key)
            self._put_unlocked(key, value)
            return value

    def _put_unlocked(self, key: int, value: Transaction) -> None:
        if key in self._entries:
            self._entries.move_to_end(key)
        self._entries[key] = value
        while len(self._entries) > self.max_size:
            self._entries.popitem(last=False)
            self.evictions += 1

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def keys(self) -> list[int]:
        with self._lock:
            return list(self._entries.keys())

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
