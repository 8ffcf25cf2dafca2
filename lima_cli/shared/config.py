"""Configuration loading utilities for the ledger tools."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping, MutableMapping

import yaml

from . import paths
from .exceptions import ConfigurationError


@dataclass(frozen=True, slots=True)
class FilesSettings:
    """Locations of the ledger and the categorization patterns."""

    default_ledger: Path
    patterns_file: Path | None


@dataclass(frozen=True, slots=True)
class LedgerSettings:
    """Lazy loading behaviour for opened ledgers."""

    cache_size: int


@dataclass(frozen=True, slots=True)
class CategorizationSettings:
    """Rule-based categorization configuration."""

    enabled: bool
    confidence_threshold: float  # early-exit threshold for the matcher
    learn_from_edits: bool
    max_alternatives: int
    strict_patterns: bool


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Top-level application configuration."""

    source_path: Path
    files: FilesSettings
    ledger: LedgerSettings
    categorization: CategorizationSettings

    def with_patterns_file(self, new_path: str | Path | None) -> AppConfig:
        """Return a copy pointing at a different patterns file (``None`` disables it)."""
        resolved = paths.resolve_path(new_path) if new_path else None
        return replace(self, files=replace(self.files, patterns_file=resolved))

    def with_ledger(self, new_path: str | Path) -> AppConfig:
        """Return a copy with an updated default ledger path."""
        resolved = paths.resolve_path(new_path)
        return replace(self, files=replace(self.files, default_ledger=resolved))

    def with_categorization(self, **changes: Any) -> AppConfig:
        return replace(self, categorization=replace(self.categorization, **changes))


def _default_config(env: Mapping[str, str]) -> dict[str, Any]:
    return {
        "files": {
            "default_ledger": str(paths.default_ledger_path()),
            "patterns_file": str(paths.default_patterns_path(env=env)),
        },
        "ledger": {
            "cache_size": 100,
        },
        "categorization": {
            "enabled": True,
            "confidence_threshold": 0.95,
            "learn_from_edits": True,
            "max_alternatives": 3,
            "strict_patterns": True,
        },
    }


ENV_OVERRIDE_SPEC: dict[str, tuple[str, type]] = {
    "files.default_ledger": (paths.LEDGER_PATH_ENV, str),
    "files.patterns_file": (paths.PATTERNS_FILE_ENV, str),
    "ledger.cache_size": ("LIMA_CACHE_SIZE", int),
    "categorization.enabled": ("LIMA_CATEGORIZATION_ENABLED", bool),
    "categorization.confidence_threshold": ("LIMA_CONFIDENCE_THRESHOLD", float),
    "categorization.learn_from_edits": ("LIMA_LEARN_FROM_EDITS", bool),
    "categorization.max_alternatives": ("LIMA_MAX_ALTERNATIVES", int),
    "categorization.strict_patterns": ("LIMA_STRICT_PATTERNS", bool),
}


def default_config(env: Mapping[str, str] | None = None) -> AppConfig:
    """Return the built-in defaults without reading any file or overrides."""
    env = dict(env or {})
    return _build_config(_default_config(env), paths.default_config_path(env=env))


def load_config(
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """Load configuration from defaults, YAML file, and env overrides."""
    env = dict(env or os.environ)
    resolved_config_path = _resolve_config_path(config_path, env)
    file_data = _load_yaml(resolved_config_path)
    defaults = _default_config(env)
    merged: dict[str, Any] = _deep_merge(defaults, file_data)
    merged = _apply_env_overrides(merged, env)
    return _build_config(merged, resolved_config_path)


def _resolve_config_path(
    config_path: str | Path | None, env: Mapping[str, str]
) -> Path:
    if config_path:
        return paths.resolve_path(config_path)
    return paths.default_config_path(env=env)


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse config file {path}: {exc}") from exc
    if not isinstance(data, MutableMapping):
        raise ConfigurationError(f"Config file at {path} must define a mapping root object.")
    return dict(data)


def _deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], Mapping) and isinstance(value, Mapping):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _apply_env_overrides(config: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    config_copy = _deep_merge(config, {})
    for dotted_key, (env_key, expected_type) in ENV_OVERRIDE_SPEC.items():
        if env_key not in env:
            continue
        raw_value = env[env_key]
        try:
            value = _coerce_env_value(raw_value, expected_type)
        except ValueError as exc:
            raise ConfigurationError(
                f"Environment override {env_key} has invalid value '{raw_value}': {exc}"
            ) from exc
        _assign_nested(config_copy, dotted_key.split("."), value)
    return config_copy


def _coerce_env_value(raw: str, expected_type: type) -> Any:
    cleaned = raw.strip()
    if expected_type is bool:
        lowered = cleaned.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError("expected boolean (true/false)")
    if expected_type is int:
        return int(cleaned)
    if expected_type is float:
        return float(cleaned)
    return cleaned


def _as_bool(value: Any, key: str) -> bool:
    """Accept YAML booleans and the same strings the env overrides accept."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        try:
            return _coerce_env_value(value, bool)
        except ValueError as exc:
            raise ConfigurationError(f"{key} has invalid value '{value}': {exc}") from exc
    raise ConfigurationError(f"{key} must be a boolean, got: {value!r}")


def _assign_nested(target: MutableMapping[str, Any], keys: list[str], value: Any) -> None:
    current = target
    for key in keys[:-1]:
        if key not in current or not isinstance(current[key], MutableMapping):
            current[key] = {}
        current = current[key]  # type: ignore[assignment]
    current[keys[-1]] = value


def _build_config(data: Mapping[str, Any], source_path: Path) -> AppConfig:
    try:
        files_cfg = data["files"]
        patterns_raw = files_cfg.get("patterns_file")
        files = FilesSettings(
            default_ledger=paths.resolve_path(str(files_cfg["default_ledger"])),
            patterns_file=paths.resolve_path(str(patterns_raw)) if patterns_raw else None,
        )
        ledger = LedgerSettings(cache_size=int(data["ledger"]["cache_size"]))
        cat_cfg = data["categorization"]
        categorization = CategorizationSettings(
            enabled=_as_bool(cat_cfg["enabled"], "categorization.enabled"),
            confidence_threshold=float(cat_cfg["confidence_threshold"]),
            learn_from_edits=_as_bool(cat_cfg["learn_from_edits"], "categorization.learn_from_edits"),
            max_alternatives=int(cat_cfg["max_alternatives"]),
            strict_patterns=_as_bool(cat_cfg["strict_patterns"], "categorization.strict_patterns"),
        )
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise ConfigurationError(f"Invalid configuration structure: {exc}") from exc

    if not 0.0 <= categorization.confidence_threshold <= 1.0:
        raise ConfigurationError("categorization.confidence_threshold must be between 0 and 1")
    if categorization.max_alternatives < 0:
        raise ConfigurationError("categorization.max_alternatives cannot be negative")
    if ledger.cache_size < 1:
        raise ConfigurationError("ledger.cache_size must be at least 1")

    return AppConfig(
        source_path=source_path,
        files=files,
        ledger=ledger,
        categorization=categorization,
    )
