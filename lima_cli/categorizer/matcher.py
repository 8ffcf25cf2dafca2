"""Ranked rule matching for categorization patterns."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

from lima_cli.ledger.types import Transaction
from lima_cli.shared.exceptions import PatternNotFoundError

from .types import Alternative, Pattern, Suggestion, SuggestionSource

DEFAULT_EARLY_EXIT_THRESHOLD = 0.95
DEFAULT_MAX_ALTERNATIVES = 3

BASE_CONFIDENCE_WEIGHT = 0.7
ACCURACY_WEIGHT = 0.3


@dataclass(frozen=True, slots=True)
class MatcherConfig:
    early_exit_threshold: float = DEFAULT_EARLY_EXIT_THRESHOLD  # 1.0+ disables early exit
    max_alternatives: int = DEFAULT_MAX_ALTERNATIVES


class RankedRuleSet(Protocol):
    """A rule set evaluated best-first with early termination."""

    def match(self, tx: Transaction) -> Suggestion | None: ...

    def match_all(self, tx: Transaction) -> list[Suggestion]: ...

    def add_pattern(self, pattern: Pattern) -> None: ...

    def remove_pattern(self, pattern_id: str) -> bool: ...

    def get_pattern(self, pattern_id: str) -> Pattern | None: ...

    def update_statistics(self, pattern_id: str, accepted: bool) -> None: ...


def rank_key(pattern: Pattern) -> tuple[int, float, float]:
    return (-pattern.priority, -pattern.confidence, -pattern.statistics.accuracy)


def calculate_confidence(pattern: Pattern) -> float:
    """Blend authored confidence with learned accuracy once feedback exists."""
    if pattern.statistics.feedback_count == 0:
        return pattern.confidence
    return BASE_CONFIDENCE_WEIGHT * pattern.confidence + ACCURACY_WEIGHT * pattern.statistics.accuracy


def generate_reason(pattern: Pattern) -> str:
    reason = f"Matched pattern '{pattern.name}'"
    total = pattern.statistics.feedback_count
    if total > 0:
        reason += f" (accuracy: {pattern.statistics.accuracy * 100:.0f}% from {total} previous matches)"
    return reason


class PatternMatcher:
    """Linear scan over patterns sorted by priority, confidence, then accuracy.

    ``match`` stops as soon as the first matching pattern's authored confidence
    reaches ``early_exit_threshold``; otherwise it keeps scanning until it has
    ``max_alternatives`` runners-up.
    """

    def __init__(self, patterns: Iterable[Pattern] = (), config: MatcherConfig | None = None) -> None:
        config = config or MatcherConfig()
        self.early_exit_threshold = config.early_exit_threshold
        self.max_alternatives = config.max_alternatives
        self._patterns: list[Pattern] = list(patterns)
        self._sort()

    @property
    def patterns(self) -> list[Pattern]:
        return list(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def _sort(self) -> None:
        # list.sort is stable, so equal keys keep insertion order.
        self._patterns.sort(key=rank_key)

    def add_pattern(self, pattern: Pattern) -> None:
        self._patterns.append(pattern)
        self._sort()

    def remove_pattern(self, pattern_id: str) -> bool:
        for position, pattern in enumerate(self._patterns):
            if pattern.id == pattern_id:
                del self._patterns[position]
                return True
        return False

    def get_pattern(self, pattern_id: str) -> Pattern | None:
        for pattern in self._patterns:
            if pattern.id == pattern_id:
                return pattern
        return None

    def match(self, tx: Transaction) -> Suggestion | None:
        """Best suggestion for ``tx`` or ``None`` when no pattern matches."""
        if tx is None:
            raise ValueError("transaction cannot be None")

        best: Pattern | None = None
        alternatives: list[Pattern] = []
        for pattern in self._patterns:
            if best is not None and len(alternatives) >= self.max_alternatives:
                break
            if not pattern.matches(tx):
                continue
            if best is None:
                best = pattern
                if pattern.confidence >= self.early_exit_threshold:
                    break
            else:
                alternatives.append(pattern)

        if best is None:
            return None
        return self._create_suggestion(tx, best, alternatives)

    def match_all(self, tx: Transaction) -> list[Suggestion]:
        """Every matching pattern as its own suggestion, best blended confidence first."""
        if tx is None:
            raise ValueError("transaction cannot be None")

        suggestions = [
            Suggestion(
                transaction=tx,
                category=pattern.category,
                confidence=calculate_confidence(pattern),
                source=SuggestionSource.PATTERN,
                pattern=pattern,
                reason=generate_reason(pattern),
            )
            for pattern in self._patterns
            if pattern.matches(tx)
        ]
        suggestions.sort(key=lambda suggestion: suggestion.confidence, reverse=True)
        return suggestions

    def _create_suggestion(self, tx: Transaction, best: Pattern, matches: list[Pattern]) -> Suggestion:
        alternatives = [
            Alternative(
                category=pattern.category,
                confidence=calculate_confidence(pattern),
                reason=generate_reason(pattern),
                pattern_id=pattern.id,
            )
            for pattern in matches
            if pattern.id != best.id
        ][: self.max_alternatives]
        return Suggestion(
            transaction=tx,
            category=best.category,
            confidence=calculate_confidence(best),
            source=SuggestionSource.PATTERN,
            pattern=best,
            reason=generate_reason(best),
            alternatives=alternatives,
        )

    def update_statistics(self, pattern_id: str, accepted: bool) -> None:
        """Record feedback for ``pattern_id`` and re-rank."""
        pattern = self.get_pattern(pattern_id)
        if pattern is None:
            raise PatternNotFoundError(pattern_id)
        pattern.update_statistics(accepted)
        self._sort()
