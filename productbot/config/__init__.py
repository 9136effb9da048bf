"""Configuration module for productbot."""

from productbot.config.loader import load_config, save_config, get_config_path
from productbot.config.schema import Config

__all__ = ["Config", "load_config", "save_config", "get_config_path"]
