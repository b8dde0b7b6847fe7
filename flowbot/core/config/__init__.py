"""Configuration: YAML file + env overrides."""

from flowbot.core.config.loader import load_config
from flowbot.core.config.schema import Config

__all__ = ["Config", "load_config"]
