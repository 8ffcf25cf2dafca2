from __future__ import annotations

import threading
from datetime import date
from decimal import Decimal

import pytest

from lima_cli.ledger.loader import LedgerFile, open_ledger
from lima_cli.ledger.types import Amount, TransactionFlag
from lima_cli.shared.exceptions import LedgerFileError, LedgerParseError, TransactionNotFoundError


def test_open_ledger_exposes_index(sample_ledger) -> None:
    with open_ledger(sample_ledger) as ledger:
        assert ledger.transaction_count() == 3
        assert len(ledger) == 3
        assert ledger.index_entry(1).payee == "Weekly groceries"
        assert ledger.accounts[0] == "Assets:Checking"
        assert ledger.files == [sample_ledger.resolve()]


def test_get_transaction_parses_block(sample_ledger) -> None:
    ledger = LedgerFile(sample_ledger)

    tx = ledger.get_transaction(0)

    assert tx.flag is TransactionFlag.CLEARED
    assert tx.payee == "STARBUCKS #12345"
    assert tx.narration == "Morning coffee"
    assert tx.tags == ("coffee",)
    assert tx.links == ("receipt-1",)
    assert tx.amounts() == [Amount(Decimal("-5.00"), "USD"), Amount(Decimal("5.00"), "USD")]
    assert tx.line_number == 6

    pending = ledger.get_transaction(1)
    assert pending.flag is TransactionFlag.PENDING
    assert pending.payee is None
    assert pending.metadata == {"receipt": "scan-42.pdf"}

    trade = ledger.get_transaction(2)
    assert trade.postings[0].cost == Amount(Decimal("200.00"), "USD")


def test_get_transaction_is_idempotent_and_cached(sample_ledger) -> None:
    ledger = LedgerFile(sample_ledger)

    first = ledger.get_transaction(2)
    second = ledger.get_transaction(2)

    assert first == second
    assert ledger.cache.misses == 1
    assert ledger.cache.hits == 1


def test_evicted_transactions_are_reparsed(sample_ledger) -> None:
    ledger = LedgerFile(sample_ledger, cache_size=2)
    originals = [ledger.get_transaction(position) for position in range(3)]

    assert ledger.cache.keys() == [1, 2]
    assert ledger.get_transaction(0) == originals[0]
    assert ledger.cache.evictions == 2


@pytest.mark.parametrize("position", [-1, 3, 100])
def test_out_of_range_ordinal(sample_ledger, position) -> None:
    ledger = LedgerFile(sample_ledger)

    with pytest.raises(TransactionNotFoundError):
        ledger.get_transaction(position)


def test_date_range_is_inclusive(sample_ledger) -> None:
    ledger = LedgerFile(sample_ledger)

    in_range = ledger.get_transactions_by_date_range(date(2025, 1, 2), date(2025, 1, 5))
    assert [tx.narration for tx in in_range] == ["Weekly groceries", "Buy shares"]

    assert ledger.get_transactions_by_date_range(date(2024, 1, 1), date(2024, 12, 31)) == []


def test_transactions_from_included_files(write_file) -> None:
    main = write_file("main.beancount", 'include "2025/q1.beancount"\n')
    write_file("2025/q1.beancount", '2025-03-31 * "Quarter end"\n  Assets:Cash  -9.99 USD\n')

    ledger = LedgerFile(main)

    assert ledger.get_transaction(0).narration == "Quarter end"


def test_changed_file_surfaces_parse_error(write_file) -> None:
    path = write_file("ledger.beancount", '\n\n\n\n\n2025-01-01 * "Original"\n')
    ledger = LedgerFile(path)
    path.write_text("this is not a ledger any more\n" * 3, encoding="utf-8")

    with pytest.raises(LedgerParseError, match="invalid transaction header"):
        ledger.get_transaction(0)


def test_deleted_file_surfaces_file_error(write_file) -> None:
    path = write_file("ledger.beancount", '2025-01-01 * "Original"\n')
    ledger = LedgerFile(path)
    path.unlink()

    with pytest.raises(LedgerFileError):
        ledger.get_transaction(0)


def test_concurrent_reads_agree(sample_ledger) -> None:
    ledger = LedgerFile(sample_ledger, cache_size=1)
    results: list[str] = []
    lock = threading.Lock()

    def worker() -> None:
        for position in (0, 1, 2, 0):
            narration = ledger.get_transaction(position).narration
            with lock:
                results.append(narration)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert sorted(set(results)) == ["Buy shares", "Morning coffee", "Weekly groceries"]
    assert len(results) == 16
