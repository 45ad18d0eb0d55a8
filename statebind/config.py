"""
Configuration
=============

YAML configuration merged over defaults. Looked up, in order, from the
explicit path, ``$STATEBIND_CONFIG``, then ``config.yaml`` at the
project root.

    paths:
      state_dir: ./state
    database:
      url: sqlite:///./state/records.db
    logging:
      level: INFO
    tables:
      orders:
        property: status
        initial_state: pending
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from rich.logging import RichHandler

from .exceptions import ConfigurationError

DEFAULT_CONFIG: dict = {
    "paths": {"state_dir": "./state"},
    "database": {"url": None},
    "logging": {"level": "INFO"},
    "tables": {},
}

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config.yaml"


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str | Path] = None) -> dict:
    """Load configuration from YAML, falling back to defaults"""
    explicit = path is not None or "STATEBIND_CONFIG" in os.environ
    config_path = Path(path or os.environ.get("STATEBIND_CONFIG") or DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        if explicit:
            raise ConfigurationError(f"config file not found: {config_path}")
        return copy.deepcopy(DEFAULT_CONFIG)

    with open(config_path, encoding="utf-8") as f:
        loaded = yaml.safe_load(f) or {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(f"{config_path}: top level must be a mapping")
    return _merge(DEFAULT_CONFIG, loaded)


def table_config(config: dict, table: str) -> dict:
    """Settings for one table: state property and initial state"""
    tables = config.get("tables") or {}
    if table not in tables:
        raise ConfigurationError(f"table {table!r} is not configured")
    settings = tables[table] or {}
    if not settings.get("initial_state"):
        raise ConfigurationError(f"table {table!r} has no initial_state")
    return settings


def setup_logging(level: Any = "INFO") -> None:
    """Route log records through rich"""
    logging.basicConfig(
        level=str(level).upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )
