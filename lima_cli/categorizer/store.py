"""YAML persistence for categorization patterns.

Document shape::

    version: "1"
    patterns:
      - id: starbucks
        name: Starbucks
        pattern: STARBUCKS
        category: Expenses:Food:DiningOut
        fields: [payee]          # optional, defaults to [any]
        priority: 10             # optional, defaults to 0
        confidence: 0.9          # optional, defaults to 0.7
        min_amount: 1.00         # optional
        max_amount: "25.50"      # optional, strings keep full precision
        tags: [coffee]           # optional, all must be present
        metadata: {source: manual}
        statistics:              # optional, written back after feedback
          match_count: 4
          accept_count: 3
          reject_count: 1
          last_matched: "2025-01-05T10:00:00+00:00"

Regexes are compiled while loading, so a loaded pattern is always usable.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from lima_cli.shared.exceptions import (
    PatternStoreError,
    PatternValidationError,
    PatternsFileNotFoundError,
)

from .types import MatchField, Pattern, PatternStatistics, utcnow

_LOGGER = logging.getLogger(__name__)

SUPPORTED_VERSION = "1"
REQUIRED_FIELDS = ("id", "name", "pattern", "category")


@dataclass(frozen=True, slots=True)
class StoreConfig:
    default_confidence: float = 0.7
    default_fields: tuple[MatchField, ...] = (MatchField.ANY,)
    strict: bool = True


@dataclass(slots=True)
class LoadReport:
    """Outcome of the most recent load; ``skipped`` is only filled in lenient mode."""

    loaded: int = 0
    skipped: list[PatternValidationError] = field(default_factory=list)


class PatternStore:
    """Load and save pattern files.

    In strict mode the first invalid pattern aborts the whole load. In lenient
    mode invalid patterns are logged and skipped while the rest load in order.
    A repeated ``id`` counts as invalid; the first occurrence wins.
    """

    def __init__(self, config: StoreConfig | None = None) -> None:
        self.config = config or StoreConfig()
        self.last_report = LoadReport()

    @property
    def strict(self) -> bool:
        return self.config.strict

    def load_file(self, path: str | Path) -> list[Pattern]:
        resolved = Path(path)
        try:
            text = resolved.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise PatternsFileNotFoundError(resolved) from exc
        except OSError as exc:
            raise PatternStoreError(f"Failed to read patterns file {resolved}: {exc}") from exc
        patterns = self.load_yaml(text)
        _LOGGER.debug("Loaded %d pattern(s) from %s", len(patterns), resolved)
        return patterns

    def load_yaml(self, text: str | bytes) -> list[Pattern]:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise PatternStoreError(f"Failed to parse patterns YAML: {exc}") from exc
        return self.load_document(document)

    def load_document(self, document: Any) -> list[Pattern]:
        if document is None:
            document = {}
        if not isinstance(document, Mapping):
            raise PatternStoreError("Patterns file must define a mapping root object.")

        version = document.get("version")
        if version is not None and str(version) != SUPPORTED_VERSION:
            raise PatternStoreError(
                f"Unsupported patterns file version: {version} (expected: {SUPPORTED_VERSION})"
            )

        raw_patterns = document.get("patterns") or []
        if not isinstance(raw_patterns, Sequence) or isinstance(raw_patterns, (str, bytes)):
            raise PatternStoreError("'patterns' must be a list.")

        report = LoadReport()
        patterns: list[Pattern] = []
        seen_ids: set[str] = set()
        for position, raw in enumerate(raw_patterns):
            try:
                pattern = self._convert(raw, position)
                if pattern.id in seen_ids:
                    raise PatternValidationError(
                        f"duplicate pattern ID: {pattern.id}", index=position, pattern_id=pattern.id
                    )
                seen_ids.add(pattern.id)
                patterns.append(pattern)
            except PatternValidationError as exc:
                if self.config.strict:
                    raise
                _LOGGER.warning("Skipping invalid pattern: %s", exc)
                report.skipped.append(exc)
        report.loaded = len(patterns)
        self.last_report = report
        return patterns

    def validate_pattern(self, raw: Mapping[str, Any]) -> Pattern:
        """Validate and convert a single raw mapping; raises on any problem."""
        return self._convert(raw, None)

    def _convert(self, raw: Any, position: int | None) -> Pattern:
        raw_id = raw.get("id") if isinstance(raw, Mapping) else None
        pattern_id = str(raw_id) if raw_id not in (None, "") else None

        def fail(message: str) -> PatternValidationError:
            return PatternValidationError(message, index=position, pattern_id=pattern_id)

        if not isinstance(raw, Mapping):
            raise fail("pattern entry must be a mapping")

        values: dict[str, str] = {}
        for name in REQUIRED_FIELDS:
            value = raw.get(name)
            if value is None or str(value) == "":
                raise fail(f"missing required field: {name}")
            values[name] = str(value)

        try:
            regex = re.compile(values["pattern"])
        except re.error as exc:
            raise fail(f"invalid regex pattern: {exc}") from exc

        fields = _parse_fields(raw.get("fields"), self.config.default_fields, fail)

        confidence_raw = raw.get("confidence")
        confidence = self.config.default_confidence if confidence_raw is None else confidence_raw
        if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
            raise fail(f"confidence must be a number, got: {confidence!r}")
        confidence = float(confidence)
        if not 0.0 <= confidence <= 1.0:
            raise fail(f"confidence must be between 0 and 1, got: {confidence}")

        priority_raw = raw.get("priority", 0)
        if priority_raw is None:
            priority_raw = 0
        if isinstance(priority_raw, bool) or not isinstance(priority_raw, int):
            raise fail(f"priority must be an integer, got: {priority_raw!r}")

        min_amount = _parse_decimal(raw.get("min_amount"), "min_amount", fail)
        max_amount = _parse_decimal(raw.get("max_amount"), "max_amount", fail)
        if min_amount is not None and max_amount is not None and min_amount > max_amount:
            raise fail(f"min_amount ({min_amount}) cannot be greater than max_amount ({max_amount})")

        tags_raw = raw.get("tags") or []
        if isinstance(tags_raw, str) or not isinstance(tags_raw, Sequence):
            raise fail("tags must be a list")
        metadata_raw = raw.get("metadata") or {}
        if not isinstance(metadata_raw, Mapping):
            raise fail("metadata must be a mapping")

        now = utcnow()
        return Pattern(
            id=values["id"],
            name=values["name"],
            pattern=values["pattern"],
            regex=regex,
            category=values["category"],
            fields=fields,
            priority=priority_raw,
            confidence=confidence,
            min_amount=min_amount,
            max_amount=max_amount,
            tags=tuple(str(tag) for tag in tags_raw),
            metadata={str(key): str(value) for key, value in metadata_raw.items()},
            statistics=_parse_statistics(raw.get("statistics"), fail),
            created=_parse_timestamp(raw.get("created"), "created", fail) or now,
            updated=_parse_timestamp(raw.get("updated"), "updated", fail) or now,
        )

    def dump_yaml(self, patterns: Sequence[Pattern]) -> str:
        document = {
            "version": SUPPORTED_VERSION,
            "patterns": [pattern_to_dict(pattern) for pattern in patterns],
        }
        return yaml.safe_dump(document, sort_keys=False, allow_unicode=True)

    def save_file(self, path: str | Path, patterns: Sequence[Pattern]) -> Path:
        """Write ``patterns`` atomically (temp file + rename in the same directory)."""
        resolved = Path(path)
        content = self.dump_yaml(patterns)
        try:
            resolved.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(suffix=".tmp", prefix=".patterns_", dir=resolved.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                    handle.flush()
                    os.fsync(handle.fileno())
                os.replace(temp_path, resolved)
            except Exception:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise
        except OSError as exc:
            raise PatternStoreError(f"Failed to write patterns file {resolved}: {exc}") from exc
        _LOGGER.debug("Saved %d pattern(s) to %s", len(patterns), resolved)
        return resolved


def pattern_to_dict(pattern: Pattern) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": pattern.id,
        "name": pattern.name,
        "pattern": pattern.pattern,
        "category": pattern.category,
        "fields": [match_field.value for match_field in pattern.fields],
        "priority": pattern.priority,
        "confidence": pattern.confidence,
    }
    if pattern.min_amount is not None:
        data["min_amount"] = _decimal_to_yaml(pattern.min_amount)
    if pattern.max_amount is not None:
        data["max_amount"] = _decimal_to_yaml(pattern.max_amount)
    if pattern.tags:
        data["tags"] = list(pattern.tags)
    if pattern.metadata:
        data["metadata"] = dict(pattern.metadata)
    stats = pattern.statistics
    if stats.match_count or stats.feedback_count:
        data["statistics"] = {
            "match_count": stats.match_count,
            "accept_count": stats.accept_count,
            "reject_count": stats.reject_count,
            "last_matched": stats.last_matched.isoformat() if stats.last_matched else None,
        }
    data["created"] = pattern.created.isoformat()
    data["updated"] = pattern.updated.isoformat()
    return data


def _decimal_to_yaml(value: Decimal) -> int | str:
    # Fractional bounds are written as strings so no precision goes through float.
    if value == value.to_integral_value():
        return int(value)
    return format(value, "f")


def _parse_fields(raw: Any, default: tuple[MatchField, ...], fail) -> tuple[MatchField, ...]:
    if raw is None or raw == []:
        return default
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, Sequence):
        raise fail("fields must be a list")
    fields: list[MatchField] = []
    for value in raw:
        try:
            fields.append(MatchField(str(value)))
        except ValueError:
            raise fail(f"invalid field: {value} (must be: payee, narration, or any)") from None
    return tuple(fields)


def _parse_decimal(raw: Any, name: str, fail) -> Decimal | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise fail(f"{name} must be a number, got: {raw!r}")
    try:
        return Decimal(str(raw))
    except InvalidOperation:
        raise fail(f"{name} must be a number, got: {raw!r}") from None


def _parse_timestamp(raw: Any, name: str, fail) -> datetime | None:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        value = raw
    else:
        try:
            value = datetime.fromisoformat(str(raw))
        except ValueError:
            raise fail(f"{name} must be an ISO-8601 timestamp, got: {raw!r}") from None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _parse_statistics(raw: Any, fail) -> PatternStatistics:
    if raw is None:
        return PatternStatistics()
    if not isinstance(raw, Mapping):
        raise fail("statistics must be a mapping")
    counts: dict[str, int] = {}
    for name in ("match_count", "accept_count", "reject_count"):
        value = raw.get(name, 0) or 0
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise fail(f"statistics.{name} must be a non-negative integer, got: {value!r}")
        counts[name] = value
    return PatternStatistics(
        match_count=counts["match_count"],
        accept_count=counts["accept_count"],
        reject_count=counts["reject_count"],
        last_matched=_parse_timestamp(raw.get("last_matched"), "statistics.last_matched", fail),
    )
