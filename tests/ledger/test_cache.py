from __future__ import annotations

from datetime import date

import pytest

from lima_cli.ledger.cache import TransactionCache
from lima_cli.ledger.types import Transaction, TransactionFlag


def _tx(narration: str) -> Transaction:
    return Transaction(date=date(2025, 1, 1), flag=TransactionFlag.CLEARED, narration=narration)


def test_least_recently_used_entry_is_evicted() -> None:
    cache = TransactionCache(max_size=2)
    cache.put(0, _tx("zero"))
    cache.put(1, _tx("one"))
    assert cache.get(0) is not None

    cache.put(2, _tx("two"))

    assert cache.keys() == [0, 2]
    assert 1 not in cache
    assert cache.evictions == 1


def test_get_or_load_calls_loader_once() -> None:
    cache = TransactionCache(max_size=4)
    calls: list[int] = []

    def loader(key: int) -> Transaction:
        calls.append(key)
        return _tx(f"tx-{key}")

    first = cache.get_or_load(3, loader)
    second = cache.get_or_load(3, loader)

    assert first is second
    assert calls == [3]
    assert (cache.hits, cache.misses) == (1, 1)


def test_loader_errors_leave_cache_untouched() -> None:
    cache = TransactionCache(max_size=4)

    def loader(key: int) -> Transaction:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        cache.get_or_load(0, loader)
    assert len(cache) == 0


def test_clear_and_invalid_size() -> None:
    cache = TransactionCache(max_size=1)
    cache.put(0, _tx("zero"))
    cache.clear()
    assert len(cache) == 0

    with pytest.raises(ValueError):
        TransactionCache(max_size=0)
