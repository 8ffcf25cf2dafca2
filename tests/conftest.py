from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Callable

import pytest

from lima_cli.categorizer.types import MatchField, Pattern
from lima_cli.ledger.types import Amount, Posting, Transaction, TransactionFlag
from lima_cli.shared.config import AppConfig, default_config

SAMPLE_LEDGER = """\
option "operating_currency" "USD"

2025-01-01 open Assets:Checking USD
2025-01-01 open Expenses:Food:DiningOut

2025-01-01 * "STARBUCKS #12345" "Morning coffee" #coffee ^receipt-1
  Assets:Checking  -5.00 USD
  Expenses:Food:DiningOut  5.00 USD

; a comment between transactions
2025-01-02 ! "Weekly groceries"
  receipt: "scan-42.pdf"
  Assets:Checking  -150.00 USD
  Expenses:Food:Groceries  150.00 USD

2025-01-05 * "Broker" "Buy shares"
  Assets:Brokerage  10 VTI {200.00 USD}
  Assets:Checking  -2000.00 USD
"""


@pytest.fixture
def write_file(tmp_path: Path) -> Callable[[str, str], Path]:
    def _write(name: str, content: str) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def sample_ledger(write_file: Callable[[str, str], Path]) -> Path:
    return write_file("main.beancount", SAMPLE_LEDGER)


@pytest.fixture
def make_tx() -> Callable[..., Transaction]:
    def _make(
        payee: str | None = None,
        narration: str = "",
        *,
        amounts: tuple[str, ...] = (),
        tags: tuple[str, ...] = (),
    ) -> Transaction:
        postings = tuple(
            Posting(account=f"Expenses:Leg{position}", amount=Amount(Decimal(value), "USD"))
            for position, value in enumerate(amounts)
        )
        return Transaction(
            date=date(2025, 1, 1),
            flag=TransactionFlag.CLEARED,
            payee=payee,
            narration=narration,
            tags=tags,
            postings=postings,
        )

    return _make


@pytest.fixture
def make_pattern() -> Callable[..., Pattern]:
    def _make(pattern_id: str, regex: str, category: str, **kwargs) -> Pattern:
        kwargs.setdefault("name", pattern_id.replace("-", " ").title())
        fields = kwargs.pop("fields", (MatchField.ANY,))
        return Pattern(id=pattern_id, pattern=regex, category=category, fields=fields, **kwargs)

    return _make


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Defaults with the patterns file pointed into the test's tmp dir."""
    return default_config().with_patterns_file(tmp_path / "patterns.yaml")
