"""
hotrun Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

import logging
from functools import lru_cache
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env from the project being watched into os.environ so the
# nested BaseSettings classes can read the values
load_dotenv()


DEFAULT_WATCH_PATTERNS = [r"\.go$"]
DEFAULT_IGNORE_PATTERNS = [r"\.(js|html|bat|txt|md|exe|exe~)$"]


def _split_csv(v: str | list[str]) -> list[str]:
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    return v


class WatcherSettings(BaseSettings):
    """File watcher configuration settings."""

    model_config = SettingsConfigDict(env_prefix="WATCHER_")

    watch_patterns: Annotated[list[str], NoDecode] = Field(
        default=DEFAULT_WATCH_PATTERNS,
        description="Regular expressions selecting files that trigger a rebuild",
    )
    ignore_patterns: Annotated[list[str], NoDecode] = Field(
        default=DEFAULT_IGNORE_PATTERNS,
        description="Regular expressions excluding files, checked before watch_patterns",
    )
    debounce_delay_ms: int = Field(default=1000, ge=100, le=10000)
    recursive: bool = Field(default=True)

    @field_validator("watch_patterns", "ignore_patterns", mode="before")
    @classmethod
    def parse_patterns(cls, v: str | list[str]) -> list[str]:
        """Parse patterns from comma-separated string or list."""
        return _split_csv(v)


class BuildSettings(BaseSettings):
    """Build tool configuration settings."""

    model_config = SettingsConfigDict(env_prefix="BUILD_")

    command: Annotated[list[str], NoDecode] = Field(default=["go"], description="Build tool executable and leading args")
    tags: str = Field(default="", description="Value passed to -tags, empty to omit")
    env: dict[str, str] = Field(
        default={"GOGC": "off"},
        description="Environment overrides applied while building",
    )

    @field_validator("command", mode="before")
    @classmethod
    def parse_command(cls, v: str | list[str]) -> list[str]:
        """Parse the command from comma-separated string or list."""
        return _split_csv(v)


class ProcessSettings(BaseSettings):
    """Supervised process settings."""

    model_config = SettingsConfigDict(env_prefix="PROCESS_")

    kill_timeout: float = Field(default=5.0, ge=0.0, description="Seconds to wait for a killed process")


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"

    @field_validator("level")
    @classmethod
    def parse_level(cls, v: str) -> str:
        """Normalize the level name and reject unknown ones."""
        level = v.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level: {v}")
        return level


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="hotrun")
    app_version: str = Field(default="0.1.0")

    # Sub-settings
    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    build: BuildSettings = Field(default_factory=BuildSettings)
    process: ProcessSettings = Field(default_factory=ProcessSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings; call get_settings.cache_clear()
    after changing the environment.
    """
    return Settings()
