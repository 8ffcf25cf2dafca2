from __future__ import annotations

from pathlib import Path

import pytest

from lima_cli.shared import paths
from lima_cli.shared.config import AppConfig, load_config
from lima_cli.shared.exceptions import ConfigurationError


def test_load_config_defaults(tmp_path: Path) -> None:
    env = {paths.CONFIG_DIR_ENV: str(tmp_path / "config")}
    cfg = load_config(env=env)
    assert isinstance(cfg, AppConfig)
    assert cfg.files.patterns_file == tmp_path / "config" / "patterns.yaml"
    assert cfg.ledger.cache_size == 100
    assert cfg.categorization.enabled is True
    assert cfg.categorization.confidence_threshold == pytest.approx(0.95)
    assert cfg.categorization.learn_from_edits is True
    assert cfg.categorization.max_alternatives == 3
    assert cfg.categorization.strict_patterns is True


def test_load_config_from_yaml(tmp_path: Path) -> None:
    cfg_dir = tmp_path / "config"
    cfg_dir.mkdir()
    cfg_file = cfg_dir / "config.yaml"
    cfg_file.write_text(
        """
        files:
          default_ledger: ~/books/main.beancount
          patterns_file: /srv/lima/patterns.yaml
        ledger:
          cache_size: 16
        categorization:
          confidence_threshold: 0.8
          learn_from_edits: false
        """,
        encoding="utf-8",
    )
    cfg = load_config(config_path=cfg_file, env={paths.CONFIG_DIR_ENV: str(cfg_dir)})
    assert cfg.source_path == cfg_file
    assert cfg.files.default_ledger == paths.resolve_path("~/books/main.beancount")
    assert cfg.files.patterns_file == Path("/srv/lima/patterns.yaml")
    assert cfg.ledger.cache_size == 16
    assert cfg.categorization.confidence_threshold == pytest.approx(0.8)
    assert cfg.categorization.learn_from_edits is False
    assert cfg.categorization.enabled is True


def test_load_config_env_overrides(tmp_path: Path) -> None:
    env = {
        paths.CONFIG_DIR_ENV: str(tmp_path),
        "LIMA_PATTERNS_FILE": str(tmp_path / "custom.yaml"),
        "LIMA_CACHE_SIZE": "7",
        "LIMA_CATEGORIZATION_ENABLED": "off",
        "LIMA_CONFIDENCE_THRESHOLD": "0.5",
        "LIMA_STRICT_PATTERNS": "no",
    }
    cfg = load_config(env=env)
    assert cfg.files.patterns_file == tmp_path / "custom.yaml"
    assert cfg.ledger.cache_size == 7
    assert cfg.categorization.enabled is False
    assert cfg.categorization.confidence_threshold == pytest.approx(0.5)
    assert cfg.categorization.strict_patterns is False


def test_invalid_env_value_raises(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path), "LIMA_LEARN_FROM_EDITS": "maybe"})


def test_invalid_yaml_raises_configuration_error(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("- just a list", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(config_path=cfg_file, env={})


def test_threshold_out_of_range_rejected(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text("categorization:\n  confidence_threshold: 1.5\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="confidence_threshold"):
        load_config(config_path=cfg_file, env={})


def test_cache_size_must_be_positive(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError, match="cache_size"):
        load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path), "LIMA_CACHE_SIZE": "0"})


def test_with_patterns_file_none_disables(tmp_path: Path) -> None:
    cfg = load_config(env={paths.CONFIG_DIR_ENV: str(tmp_path)})
    assert cfg.with_patterns_file(None).files.patterns_file is None
    assert cfg.files.patterns_file is not None


def test_yaml_string_booleans_are_coerced(tmp_path: Path) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(
        'categorization:\n  enabled: "no"\n  learn_from_edits: "off"\n  strict_patterns: "yes"\n',
        encoding="utf-8",
    )
    cfg = load_config(config_path=cfg_file, env={paths.CONFIG_DIR_ENV: str(tmp_path)})
    assert cfg.categorization.enabled is False
    assert cfg.categorization.learn_from_edits is False
    assert cfg.categorization.strict_patterns is True


@pytest.mark.parametrize("raw", ['"sometimes"', "1", "[true]"])
def test_non_boolean_yaml_values_rejected(tmp_path: Path, raw: str) -> None:
    cfg_file = tmp_path / "config.yaml"
    cfg_file.write_text(f"categorization:\n  enabled: {raw}\n", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="categorization.enabled"):
        load_config(config_path=cfg_file, env={paths.CONFIG_DIR_ENV: str(tmp_path)})
