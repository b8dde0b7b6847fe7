"""Read config.yaml and build a Config on top of it."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger

from flowbot.core.config.schema import Config
from flowbot.core.errors import ValidationError

CONFIG_ENV = "FLOWBOT_CONFIG"
DEFAULT_CONFIG = "config.yaml"


def load_config(config_path: str | Path | None = None) -> Config:
    """
    Build the runtime Config.

    The YAML file is looked up in this order: ``config_path``, then
    ``$FLOWBOT_CONFIG``, then ``./config.yaml``. A missing file is not an
    error; defaults apply. Env vars and ``.env`` still override whatever
    the file sets.
    """
    path = _find_file(config_path)
    return Config(**_read_mapping(path))


def _find_file(config_path: str | Path | None) -> Path | None:
    candidate = config_path or os.environ.get(CONFIG_ENV)
    if candidate:
        return Path(candidate).expanduser()
    fallback = Path(DEFAULT_CONFIG)
    return fallback if fallback.is_file() else None


def _read_mapping(path: Path | None) -> dict[str, Any]:
    if path is None or not path.is_file():
        if path is not None:
            logger.debug(f"Config file {path} not found, using defaults")
        return {}

    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError(f"{path}: top-level YAML must be a mapping, got {type(data).__name__}")
    logger.debug(f"Config loaded from {path}")
    return data
