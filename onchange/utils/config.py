"""
Onchange Configuration Module.

Environment defaults via Pydantic Settings and the immutable run configuration
built from command-line options.
Requires Python 3.11+.
"""

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from onchange.utils.errors import ConfigError

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
load_dotenv()

# Version-control metadata is never watched.
VCS_EXCLUDE = ".git"

_NANOSECOND = 1e-9
_MILLISECOND = 1e-3


class WatcherSettings(BaseSettings):
    """Defaults for the watch loop, overridden by CLI flags."""

    model_config = SettingsConfigDict(env_prefix="ONCHANGE_")

    interval: str = Field(default="1000ms", description="Check interval (ms/ns)")
    exclude: str = Field(default="", description="Comma-separated exclude substrings")


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = Field(default="onchange")
    app_version: str = Field(default="0.1.0")

    watcher: WatcherSettings = Field(default_factory=WatcherSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()


def parse_interval(text: str) -> float:
    """
    Parse a check interval such as ``"1000ms"`` or ``"500ns"`` into seconds.

    Every occurrence of the unit is stripped and the remainder must be an
    integer count of that unit. ``ns`` wins when both units are present.

    Raises:
        ConfigError: On an unknown unit, a non-integer count or a
            non-positive duration
    """
    if "ns" in text:
        count, unit = text.replace("ns", ""), _NANOSECOND
    elif "ms" in text:
        count, unit = text.replace("ms", ""), _MILLISECOND
    else:
        raise ConfigError(f"unknown interval: {text}")

    try:
        value = int(count)
    except ValueError:
        raise ConfigError(f"invalid interval: {text}") from None

    if value <= 0:
        raise ConfigError(f"interval must be positive: {text}")
    return value * unit


def parse_excludes(text: str) -> tuple[str, ...]:
    """Build the exclude list: VCS metadata first, then comma-separated entries."""
    patterns = [VCS_EXCLUDE]
    if text:
        patterns.extend(p for p in text.split(",") if p)
    return tuple(patterns)


class RestartConfig(BaseModel):
    """Immutable configuration for one onchange run."""

    model_config = ConfigDict(frozen=True)

    watch_dir: Path
    command: str
    check_interval: float = Field(gt=0, description="Seconds between flag checks")
    exclude_patterns: tuple[str, ...] = (VCS_EXCLUDE,)

    @field_validator("command")
    @classmethod
    def command_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("command is required!")
        return v

    @property
    def argv(self) -> list[str]:
        """Command split on whitespace; quoting is not interpreted."""
        return self.command.split()

    @classmethod
    def from_options(
        cls,
        watch_dir: str | None,
        command: str | None,
        interval: str | None = None,
        exclude: str | None = None,
    ) -> "RestartConfig":
        """
        Validate raw CLI options and build a configuration.

        Missing interval/exclude values fall back to ``WatcherSettings``.

        Raises:
            ConfigError: If a required option is missing or invalid
        """
        settings = get_settings()

        if not watch_dir:
            raise ConfigError("watch-dir is required!")
        if not command or not command.strip():
            raise ConfigError("command is required!")

        return cls(
            watch_dir=Path(watch_dir),
            command=command,
            check_interval=parse_interval(
                interval if interval is not None else settings.watcher.interval
            ),
            exclude_patterns=parse_excludes(
                exclude if exclude is not None else settings.watcher.exclude
            ),
        )
