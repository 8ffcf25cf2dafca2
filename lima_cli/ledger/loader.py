"""Random access to the transactions of an indexed ledger."""

from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from lima_cli.shared.exceptions import TransactionNotFoundError

from .cache import TransactionCache
from .indexer import build_index
from .parser import read_transaction_at
from .types import Index, Transaction, TransactionIndex

_LOGGER = logging.getLogger(__name__)

DEFAULT_CACHE_SIZE = 100


class LedgerFile:
    """An opened ledger: resident position index plus a bounded parse cache.

    Opening scans the ledger (and its includes) once. Transactions are parsed
    on demand by seeking back to their recorded byte offset; no file handle is
    held between calls. The index never changes after opening.
    """

    def __init__(self, path: str | Path, *, cache_size: int = DEFAULT_CACHE_SIZE) -> None:
        self.path = Path(path)
        self._index: Index = build_index(self.path)
        self._cache = TransactionCache(cache_size)

    @classmethod
    def open(cls, path: str | Path, *, cache_size: int = DEFAULT_CACHE_SIZE) -> LedgerFile:
        return cls(path, cache_size=cache_size)

    def close(self) -> None:
        self._cache.clear()

    def __enter__(self) -> LedgerFile:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def cache(self) -> TransactionCache:
        return self._cache

    @property
    def accounts(self) -> list[str]:
        return list(self._index.accounts)

    @property
    def commodities(self) -> list[str]:
        return list(self._index.commodities)

    @property
    def files(self) -> list[Path]:
        return list(self._index.files)

    def transaction_count(self) -> int:
        return len(self._index.transactions)

    def __len__(self) -> int:
        return self.transaction_count()

    def index_entry(self, index: int) -> TransactionIndex:
        self._check_range(index)
        return self._index.transactions[index]

    def index_entries(self) -> list[TransactionIndex]:
        return list(self._index.transactions)

    def get_transaction(self, index: int) -> Transaction:
        """Return transaction ``index`` (0-based), parsing it if not cached."""
        self._check_range(index)
        return self._cache.get_or_load(index, self._load)

    def get_transactions_by_date_range(self, start: date, end: date) -> list[Transaction]:
        """All transactions dated within ``[start, end]``, in index order."""
        return [
            self.get_transaction(position)
            for position, entry in enumerate(self._index.transactions)
            if start <= entry.date <= end
        ]

    def _check_range(self, index: int) -> None:
        count = len(self._index.transactions)
        if not 0 <= index < count:
            raise TransactionNotFoundError(index, count)

    def _load(self, index: int) -> Transaction:
        entry = self._index.transactions[index]
        _LOGGER.debug("Cache miss for transaction %d; parsing %s:%d", index, entry.file_path, entry.line_number)
        return read_transaction_at(entry.file_path, entry.file_position, entry.line_number)


def open_ledger(path: str | Path, *, cache_size: int = DEFAULT_CACHE_SIZE) -> LedgerFile:
    """Open and index a ledger; raises :class:`LedgerFileError` when unreadable."""
    return LedgerFile(path, cache_size=cache_size)
