"""Pattern and suggestion records for rule-based categorization."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from lima_cli.ledger.types import Transaction


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MatchField(str, Enum):
    """Transaction text a pattern's regex is tested against."""

    PAYEE = "payee"
    NARRATION = "narration"
    ANY = "any"


class SuggestionSource(str, Enum):
    PATTERN = "pattern"
    ML = "ml"
    HISTORY = "history"
    MANUAL = "manual"


@dataclass(slots=True)
class PatternStatistics:
    """Learned usage counters for a pattern.

    ``accuracy`` is derived from the accept/reject counters on every read.
    """

    match_count: int = 0
    accept_count: int = 0
    reject_count: int = 0
    last_matched: datetime | None = None

    @property
    def feedback_count(self) -> int:
        return self.accept_count + self.reject_count

    @property
    def accuracy(self) -> float:
        total = self.feedback_count
        if total == 0:
            return 0.0
        return self.accept_count / total

    def record(self, accepted: bool, *, when: datetime | None = None) -> None:
        self.match_count += 1
        if accepted:
            self.accept_count += 1
        else:
            self.reject_count += 1
        self.last_matched = when or utcnow()


@dataclass(slots=True)
class Pattern:
    """A compiled categorization rule.

    The regex is compiled from ``pattern`` when not supplied, so an invalid
    expression raises :class:`re.error` at construction. ID uniqueness is checked
    by the store and the owning :class:`~lima_cli.categorizer.categorizer.Categorizer`.
    """

    id: str
    name: str
    pattern: str
    category: str
    fields: tuple[MatchField, ...] = (MatchField.ANY,)
    priority: int = 0
    confidence: float = 0.7
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    tags: tuple[str, ...] = ()
    metadata: dict[str, str] = field(default_factory=dict)
    statistics: PatternStatistics = field(default_factory=PatternStatistics)
    created: datetime = field(default_factory=utcnow)
    updated: datetime = field(default_factory=utcnow)
    regex: re.Pattern[str] | None = field(default=None, repr=False, compare=False)

    def __post_init__(self) -> None:
        if self.regex is None:
            self.regex = re.compile(self.pattern)
        self.fields = tuple(MatchField(value) for value in self.fields)
        self.tags = tuple(self.tags)
        for attr in ("min_amount", "max_amount"):
            value = getattr(self, attr)
            if value is not None and not isinstance(value, Decimal):
                setattr(self, attr, Decimal(str(value)))

    @property
    def has_amount_constraint(self) -> bool:
        return self.min_amount is not None or self.max_amount is not None

    def matches(self, tx: Transaction) -> bool:
        """Amount and tag constraints AND-ed with the field test.

        The field test itself is OR-ed across the listed fields; ``any`` (or no
        fields at all) means payee or narration.
        """
        if self.regex is None:
            return False
        if self.has_amount_constraint and not self._matches_amount(tx):
            return False
        if self.tags and not self._matches_tags(tx):
            return False

        payee = tx.payee or ""
        if not self.fields or MatchField.ANY in self.fields:
            return bool(self.regex.search(payee) or self.regex.search(tx.narration))
        for match_field in self.fields:
            if match_field is MatchField.PAYEE and self.regex.search(payee):
                return True
            if match_field is MatchField.NARRATION and self.regex.search(tx.narration):
                return True
        return False

    def _matches_amount(self, tx: Transaction) -> bool:
        # Bounds apply to the largest posting magnitude; 0 when nothing has an amount.
        magnitude = max((abs(amount.number) for amount in tx.amounts()), default=Decimal(0))
        if self.min_amount is not None and magnitude < self.min_amount:
            return False
        if self.max_amount is not None and magnitude > self.max_amount:
            return False
        return True

    def _matches_tags(self, tx: Transaction) -> bool:
        present = set(tx.tags)
        return all(tag in present for tag in self.tags)

    def update_statistics(self, accepted: bool) -> None:
        now = utcnow()
        self.statistics.record(accepted, when=now)
        self.updated = now


@dataclass(frozen=True, slots=True)
class Alternative:
    category: str
    confidence: float
    reason: str
    pattern_id: str | None = None


@dataclass(slots=True)
class Suggestion:
    transaction: Transaction
    category: str
    confidence: float  # blended with learned accuracy when history exists
    source: SuggestionSource = SuggestionSource.PATTERN
    pattern: Pattern | None = None
    reason: str = ""
    alternatives: list[Alternative] = field(default_factory=list)
    created: datetime = field(default_factory=utcnow)
