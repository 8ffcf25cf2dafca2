"""Data records produced by the ledger indexer and parser."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Mapping


class TransactionFlag(str, Enum):
    CLEARED = "*"
    PENDING = "!"


@dataclass(frozen=True, slots=True)
class Amount:
    number: Decimal
    commodity: str

    def __str__(self) -> str:
        return f"{self.number} {self.commodity}"


@dataclass(frozen=True, slots=True)
class Posting:
    account: str
    amount: Amount | None = None  # None for auto-balanced legs
    cost: Amount | None = None
    price: Amount | None = None
    metadata: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Transaction:
    """A fully parsed transaction block.

    ``tags`` and ``links`` keep first-seen order with duplicates removed; they
    are compared as sets by the categorizer.
    """

    date: date
    flag: TransactionFlag
    narration: str
    payee: str | None = None
    tags: tuple[str, ...] = ()
    links: tuple[str, ...] = ()
    postings: tuple[Posting, ...] = ()
    metadata: Mapping[str, str] = field(default_factory=dict)
    file_position: int = 0
    line_number: int = 0

    def amounts(self) -> list[Amount]:
        return [posting.amount for posting in self.postings if posting.amount is not None]


@dataclass(frozen=True, slots=True)
class TransactionIndex:
    """Resident pointer to a transaction header; enough to seek back to it."""

    date: date
    payee: str  # falls back to the narration when the header has no payee
    file_path: Path
    file_position: int  # byte offset of the header line
    line_number: int


@dataclass(slots=True)
class Index:
    """Position index built by a single forward scan of a ledger."""

    transactions: list[TransactionIndex] = field(default_factory=list)
    accounts: list[str] = field(default_factory=list)
    commodities: list[str] = field(default_factory=list)
    files: list[Path] = field(default_factory=list)
