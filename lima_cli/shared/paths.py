"""Utilities for resolving and managing application paths."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

DEFAULT_CONFIG_DIR = "~/.config/lima"
DEFAULT_CONFIG_FILE = "config.yaml"
DEFAULT_PATTERNS_FILE = "patterns.yaml"
DEFAULT_LEDGER_PATH = "~/finances/main.beancount"

CONFIG_DIR_ENV = "LIMA_CONFIG_DIR"
CONFIG_FILE_ENV = "LIMA_CONFIG_PATH"
LEDGER_PATH_ENV = "LIMA_DEFAULT_LEDGER"
PATTERNS_FILE_ENV = "LIMA_PATTERNS_FILE"


def _expand(path_str: str) -> Path:
    """Return a Path with user and environment variables expanded."""
    return Path(os.path.expandvars(path_str)).expanduser()


def get_config_dir(create: bool = False, env: Mapping[str, str] | None = None) -> Path:
    """Return the configuration directory, optionally creating it."""
    env = env or os.environ
    raw = env.get(CONFIG_DIR_ENV, DEFAULT_CONFIG_DIR)
    path = _expand(raw)
    if create:
        path.mkdir(parents=True, exist_ok=True)
    return path


def default_config_path(create_parents: bool = False, env: Mapping[str, str] | None = None) -> Path:
    """Return the default config file path, optionally ensuring parent dirs exist."""
    env = env or os.environ
    override = env.get(CONFIG_FILE_ENV)
    if override:
        path = _expand(override)
        if create_parents:
            path.parent.mkdir(parents=True, exist_ok=True)
        return path
    config_dir = get_config_dir(create=create_parents, env=env)
    return config_dir / DEFAULT_CONFIG_FILE


def default_patterns_path(env: Mapping[str, str] | None = None) -> Path:
    """Return the default categorization patterns file path."""
    return get_config_dir(create=False, env=env) / DEFAULT_PATTERNS_FILE


def default_ledger_path() -> Path:
    return _expand(DEFAULT_LEDGER_PATH)


def resolve_path(path_str: str | Path) -> Path:
    """Expand user and environment variables for arbitrary paths."""
    if isinstance(path_str, Path):
        return _expand(str(path_str))
    return _expand(path_str)
