from __future__ import annotations

import threading

import pytest

from lima_cli.categorizer.categorizer import Categorizer
from lima_cli.categorizer.store import PatternStore
from lima_cli.categorizer.types import Suggestion, SuggestionSource
from lima_cli.shared.exceptions import (
    CategorizationError,
    DuplicatePatternError,
    PatternNotFoundError,
    PatternStoreError,
    PatternValidationError,
)

PATTERNS = """
version: "1"
patterns:
  - id: starbucks
    name: Starbucks
    pattern: STARBUCKS
    category: Expenses:Food:DiningOut
    fields: [payee]
    priority: 10
    confidence: 0.9
  - id: coffee
    name: Coffee
    pattern: (?i)coffee
    category: Expenses:Food:Coffee
    fields: [narration]
    priority: 5
    confidence: 0.7
"""


@pytest.fixture
def patterns_file(app_config):
    path = app_config.files.patterns_file
    path.write_text(PATTERNS, encoding="utf-8")
    return path


def test_missing_patterns_file_starts_empty(app_config) -> None:
    categorizer = Categorizer(app_config)

    assert categorizer.pattern_count() == 0
    assert categorizer.is_enabled()


def test_reload_without_patterns_file() -> None:
    categorizer = Categorizer()

    with pytest.raises(CategorizationError, match="No patterns file configured"):
        categorizer.reload_patterns()


def test_suggest_with_default_settings(app_config, patterns_file, make_tx) -> None:
    categorizer = Categorizer(app_config)

    suggestion = categorizer.suggest(make_tx("STARBUCKS #12345", "Morning coffee"))

    assert categorizer.pattern_count() == 2
    assert suggestion.category == "Expenses:Food:DiningOut"
    assert [alt.category for alt in suggestion.alternatives] == ["Expenses:Food:Coffee"]
    assert suggestion.reason == "Matched pattern 'Starbucks'"


def test_suggest_all_returns_every_match(app_config, patterns_file, make_tx) -> None:
    categorizer = Categorizer(app_config)

    suggestions = categorizer.suggest_all(make_tx("STARBUCKS #12345", "Morning coffee"))

    assert [s.category for s in suggestions] == ["Expenses:Food:DiningOut", "Expenses:Food:Coffee"]
    assert categorizer.suggest_all(make_tx("Hardware Store", "Nails")) == []


def test_feedback_updates_and_persists_statistics(app_config, patterns_file, make_tx) -> None:
    categorizer = Categorizer(app_config)
    suggestion = categorizer.suggest(make_tx("STARBUCKS #12345", "Morning coffee"))

    categorizer.feedback(suggestion, accepted=True)
    categorizer.feedback(suggestion, accepted=True)
    categorizer.feedback(suggestion, accepted=False)

    stats = categorizer.get_pattern("starbucks").statistics
    assert (stats.accept_count, stats.reject_count, stats.match_count) == (2, 1, 3)
    assert stats.accuracy == pytest.approx(2 / 3)

    saved = {pattern.id: pattern for pattern in PatternStore().load_file(patterns_file)}
    assert saved["starbucks"].statistics.accept_count == 2
    assert saved["starbucks"].statistics.reject_count == 1
    assert saved["coffee"].statistics.feedback_count == 0

    blended = categorizer.suggest(make_tx("STARBUCKS #12345", "Morning coffee"))
    assert blended.confidence == pytest.approx(0.7 * 0.9 + 0.3 * (2 / 3))
    assert "accuracy: 67% from 3 previous matches" in blended.reason


def test_feedback_without_learning_does_not_save(app_config, patterns_file, make_tx) -> None:
    config = app_config.with_categorization(learn_from_edits=False)
    categorizer = Categorizer(config)
    suggestion = categorizer.suggest(make_tx("STARBUCKS #12345", ""))

    categorizer.feedback(suggestion, accepted=True)

    assert categorizer.get_pattern("starbucks").statistics.accept_count == 1
    assert patterns_file.read_text(encoding="utf-8") == PATTERNS


def test_feedback_save_failure_keeps_memory_update(app_config, make_pattern, make_tx) -> None:
    categorizer = Categorizer(app_config)
    categorizer.add_pattern(make_pattern("shop", "SHOP", "Expenses:Shopping"))
    app_config.files.patterns_file.mkdir()
    suggestion = categorizer.suggest(make_tx("SHOP"))

    with pytest.raises(PatternStoreError):
        categorizer.feedback(suggestion, accepted=True)

    assert categorizer.get_pattern("shop").statistics.accept_count == 1


def test_feedback_edge_cases(app_config, make_tx) -> None:
    categorizer = Categorizer(app_config)
    manual = Suggestion(
        transaction=make_tx("Cash"),
        category="Expenses:Misc",
        confidence=1.0,
        source=SuggestionSource.MANUAL,
    )

    categorizer.feedback(manual, accepted=True)
    with pytest.raises(ValueError):
        categorizer.feedback(None, accepted=True)


def test_disabled_categorizer(app_config, patterns_file, make_tx) -> None:
    categorizer = Categorizer(app_config.with_categorization(enabled=False))
    tx = make_tx("STARBUCKS #12345", "Morning coffee")

    assert categorizer.suggest(tx) is None
    assert categorizer.suggest_all(tx) == []

    categorizer.set_enabled(True)
    assert categorizer.suggest(tx).category == "Expenses:Food:DiningOut"


def test_pattern_management(app_config, patterns_file, make_pattern) -> None:
    categorizer = Categorizer(app_config)

    categorizer.add_pattern(make_pattern("rent", "(?i)landlord", "Expenses:Housing:Rent", priority=20))
    with pytest.raises(DuplicatePatternError):
        categorizer.add_pattern(make_pattern("rent", "x", "Expenses:Other"))
    with pytest.raises(ValueError):
        categorizer.add_pattern(None)

    assert [pattern.id for pattern in categorizer.get_patterns()] == ["starbucks", "coffee", "rent"]

    categorizer.remove_pattern("coffee")
    with pytest.raises(PatternNotFoundError):
        categorizer.remove_pattern("coffee")
    with pytest.raises(PatternNotFoundError):
        categorizer.get_pattern("coffee")
    assert categorizer.pattern_count() == 2


def test_save_and_reload_patterns(app_config, patterns_file, make_pattern, tmp_path) -> None:
    categorizer = Categorizer(app_config)
    categorizer.add_pattern(make_pattern("rent", "(?i)landlord", "Expenses:Housing:Rent"))
    exported = categorizer.save_patterns(tmp_path / "export.yaml")

    categorizer.load_patterns(exported)
    assert categorizer.pattern_count() == 3

    categorizer.reload_patterns()
    assert categorizer.pattern_count() == 2


def test_strict_and_lenient_loading(app_config) -> None:
    app_config.files.patterns_file.write_text(
        'patterns:\n  - {id: ok, name: Ok, pattern: OK, category: A}\n  - {id: broken, name: B, pattern: "(", category: B}\n',
        encoding="utf-8",
    )

    with pytest.raises(PatternValidationError):
        Categorizer(app_config)

    lenient = Categorizer(app_config.with_categorization(strict_patterns=False))
    assert [pattern.id for pattern in lenient.get_patterns()] == ["ok"]


def test_concurrent_suggest_and_feedback(app_config, patterns_file, make_tx) -> None:
    categorizer = Categorizer(app_config.with_categorization(learn_from_edits=False))
    tx = make_tx("STARBUCKS #12345", "Morning coffee")
    errors: list[Exception] = []

    def reader() -> None:
        try:
            for _ in range(50):
                assert categorizer.suggest(tx).category == "Expenses:Food:DiningOut"
        except Exception as exc:
            errors.append(exc)

    def writer() -> None:
        suggestion = categorizer.suggest(tx)
        for _ in range(25):
            categorizer.feedback(suggestion, accepted=True)

    threads = [threading.Thread(target=reader) for _ in range(3)]
    threads += [threading.Thread(target=writer) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=10)

    assert errors == []
    assert categorizer.get_pattern("starbucks").statistics.accept_count == 50


DUPLICATE_IDS = """
version: "1"
patterns:
  - {id: dup, name: A, pattern: SHOP, category: Expenses:A, priority: 1}
  - {id: dup, name: B, pattern: SHOP, category: Expenses:B, priority: 9}
"""


def test_repeated_ids_never_reach_the_matcher(app_config, make_tx) -> None:
    app_config.files.patterns_file.write_text(DUPLICATE_IDS, encoding="utf-8")

    with pytest.raises(PatternValidationError, match="duplicate pattern ID: dup"):
        Categorizer(app_config)

    lenient = Categorizer(app_config.with_categorization(strict_patterns=False))
    suggestion = lenient.suggest(make_tx("SHOP"))
    lenient.feedback(suggestion, accepted=True)

    assert lenient.pattern_count() == 1
    assert suggestion.pattern is lenient.get_pattern("dup")
    assert lenient.get_pattern("dup").statistics.accept_count == 1


class _PassThroughStore(PatternStore):
    def __init__(self, patterns) -> None:
        super().__init__()
        self._canned = patterns

    def load_file(self, path):
        return list(self._canned)


def test_load_patterns_rejects_repeated_ids_from_any_store(make_pattern, tmp_path) -> None:
    store = _PassThroughStore([make_pattern("dup", "A", "Expenses:A"), make_pattern("dup", "B", "Expenses:B")])
    categorizer = Categorizer(store=store)

    with pytest.raises(DuplicatePatternError, match="dup"):
        categorizer.load_patterns(tmp_path / "ignored.yaml")
    assert categorizer.pattern_count() == 0
