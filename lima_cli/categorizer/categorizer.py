"""Categorizer: owns the pattern set and mediates suggestions and learning."""

from __future__ import annotations

import logging
from pathlib import Path

from lima_cli.ledger.types import Transaction
from lima_cli.shared.config import AppConfig, CategorizationSettings, default_config
from lima_cli.shared.exceptions import (
    CategorizationError,
    DuplicatePatternError,
    PatternNotFoundError,
    PatternsFileNotFoundError,
)
from lima_cli.shared.locks import ReadWriteLock

from .matcher import MatcherConfig, PatternMatcher
from .store import PatternStore, StoreConfig
from .types import Pattern, Suggestion

_LOGGER = logging.getLogger(__name__)


class Categorizer:
    """Thread-safe entry point for rule-based categorization.

    ``suggest``/``suggest_all`` share a read lock; loading, adding, removing and
    feedback (including the save that follows it) take the write lock.
    """

    def __init__(self, config: AppConfig | None = None, *, store: PatternStore | None = None) -> None:
        self.config = config or default_config().with_patterns_file(None)
        self._enabled = self.config.categorization.enabled
        self.store = store or PatternStore(StoreConfig(strict=self.config.categorization.strict_patterns))
        self._lock = ReadWriteLock()
        self._patterns: list[Pattern] = []
        self._matcher = PatternMatcher((), self._matcher_config())

        patterns_file = self.config.files.patterns_file
        if patterns_file is not None:
            try:
                self.load_patterns(patterns_file)
            except PatternsFileNotFoundError:
                _LOGGER.debug("No patterns file at %s; starting with an empty pattern set", patterns_file)

    @property
    def settings(self) -> CategorizationSettings:
        return self.config.categorization

    def _matcher_config(self) -> MatcherConfig:
        return MatcherConfig(
            early_exit_threshold=self.settings.confidence_threshold,
            max_alternatives=self.settings.max_alternatives,
        )

    def load_patterns(self, path: str | Path) -> None:
        """Replace the whole pattern set with the contents of ``path``."""
        patterns = self.store.load_file(path)
        seen: set[str] = set()
        for pattern in patterns:
            if pattern.id in seen:
                raise DuplicatePatternError(f"Pattern with ID '{pattern.id}' already exists")
            seen.add(pattern.id)
        with self._lock.write():
            self._patterns = patterns
            self._matcher = PatternMatcher(patterns, self._matcher_config())
        _LOGGER.debug("Categorizer loaded %d pattern(s)", len(patterns))

    def reload_patterns(self) -> None:
        patterns_file = self.config.files.patterns_file
        if patterns_file is None:
            raise CategorizationError("No patterns file configured")
        self.load_patterns(patterns_file)

    def suggest(self, tx: Transaction) -> Suggestion | None:
        if not self._enabled:
            return None
        if tx is None:
            raise ValueError("transaction cannot be None")
        with self._lock.read():
            return self._matcher.match(tx)

    def suggest_all(self, tx: Transaction) -> list[Suggestion]:
        if not self._enabled:
            return []
        if tx is None:
            raise ValueError("transaction cannot be None")
        with self._lock.read():
            return self._matcher.match_all(tx)

    def feedback(self, suggestion: Suggestion, accepted: bool) -> None:
        """Record whether ``suggestion`` was accepted.

        Suggestions without an originating pattern are ignored. When learning is
        enabled the full pattern set is saved before returning; a failed save is
        raised but the in-memory statistics keep the update.
        """
        if suggestion is None:
            raise ValueError("suggestion cannot be None")
        if suggestion.pattern is None:
            return

        with self._lock.write():
            self._matcher.update_statistics(suggestion.pattern.id, accepted)
            patterns_file = self.config.files.patterns_file
            if self.settings.learn_from_edits and patterns_file is not None:
                self.store.save_file(patterns_file, self._patterns)
        _LOGGER.debug(
            "Recorded %s feedback for pattern %s",
            "positive" if accepted else "negative",
            suggestion.pattern.id,
        )

    def save_patterns(self, path: str | Path) -> Path:
        with self._lock.read():
            return self.store.save_file(path, self._patterns)

    def add_pattern(self, pattern: Pattern) -> None:
        if pattern is None:
            raise ValueError("pattern cannot be None")
        with self._lock.write():
            if any(existing.id == pattern.id for existing in self._patterns):
                raise DuplicatePatternError(f"Pattern with ID '{pattern.id}' already exists")
            self._patterns.append(pattern)
            self._matcher.add_pattern(pattern)

    def remove_pattern(self, pattern_id: str) -> None:
        with self._lock.write():
            for position, pattern in enumerate(self._patterns):
                if pattern.id == pattern_id:
                    del self._patterns[position]
                    break
            else:
                raise PatternNotFoundError(pattern_id)
            self._matcher.remove_pattern(pattern_id)

    def get_pattern(self, pattern_id: str) -> Pattern:
        with self._lock.read():
            for pattern in self._patterns:
                if pattern.id == pattern_id:
                    return pattern
        raise PatternNotFoundError(pattern_id)

    def get_patterns(self) -> list[Pattern]:
        """Snapshot of the pattern list in load/insertion order."""
        with self._lock.read():
            return list(self._patterns)

    def pattern_count(self) -> int:
        with self._lock.read():
            return len(self._patterns)

    def is_enabled(self) -> bool:
        return self._enabled

    def set_enabled(self, enabled: bool) -> None:
        self._enabled = enabled
