"""Configuration loading."""

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from productbot.config.schema import Config


def get_config_path() -> Path:
    """Default location of the config file."""
    return Path.home() / ".productbot" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from a JSON file, falling back to defaults.

    Environment variables (PRODUCTBOT_*) are applied on top of the
    defaults in either case.

    Args:
        config_path: Optional explicit path. Uses ~/.productbot/config.json otherwise.

    Returns:
        Loaded Config.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return Config(**data)
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            logger.warning("Using default configuration")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Write configuration to disk as JSON."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(), indent=2), encoding="utf-8")
