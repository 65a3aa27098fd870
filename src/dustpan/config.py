"""User configuration for dustpan."""

import tomllib
from pathlib import Path
from typing import Optional

from platformdirs import PlatformDirs
from pydantic import BaseModel, Field, ValidationError, field_validator

APP_NAME = "dustpan"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class ConfigError(Exception):
    """Raised when the config file cannot be read or is invalid."""


class Settings(BaseModel):
    """Effective settings, defaults first, overridden by config.toml."""

    refresh_interval: float = Field(
        0.1, gt=0, description="Seconds between progress polls in the TUI"
    )
    confirm_delete: bool = Field(True, description="Ask before deleting")
    log_level: str = Field("INFO", description="Minimum level written to the log file")
    top_processes: int = Field(5, ge=1, le=50, description="Processes shown on the dashboard")
    show_hidden: bool = Field(True, description="List dotfiles in the browser")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level


def _dirs() -> PlatformDirs:
    return PlatformDirs(appname=APP_NAME, appauthor=False)


def default_config_path() -> Path:
    """Path of the user's config.toml (may not exist)."""
    return Path(_dirs().user_config_dir) / "config.toml"


def default_log_dir() -> Path:
    """Directory for dustpan's log files."""
    return Path(_dirs().user_log_dir)


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings from a TOML file.

    Args:
        path: Config file; defaults to default_config_path()

    Returns:
        Settings, all defaults when the file does not exist

    Raises:
        ConfigError: if the file is not valid TOML or has invalid values
    """
    path = path or default_config_path()
    if not path.exists():
        return Settings()

    try:
        with path.open("rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigError(f"{path}: {e}") from e
