"""Settings management using Pydantic for type validation and configuration."""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_level: str = Field(
        default="INFO",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    console_colors: bool = Field(
        default=True, description="Enable colored console output (auto-detected)"
    )

    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_level: str = Field(default="DEBUG", description="File log level")
    file_path: Optional[Path] = Field(default=None, description="Log file location")
    max_log_files: int = Field(default=5, description="Rotated log files to keep")

    @field_validator("console_level", "file_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        """Upper-case level names so YAML and env values are interchangeable."""
        level = v.upper()
        if level != "VERBOSE" and not isinstance(getattr(logging, level, None), int):
            raise ValueError(f"Unknown log level: {v}")
        return level


class ImportSettings(BaseSettings):
    """Feed import and duplicate squashing settings with environment variable support."""

    # Time handling
    default_timezone: str = Field(
        default="America/Los_Angeles",
        description="Timezone used for floating times and unresolvable TZIDs",
    )
    skip_old_events: bool = Field(default=True, description="Skip events that already ended")
    skip_old_cutoff_days: int = Field(
        default=1, description="Events ending before now minus this many days are old"
    )

    # Fetching
    fetch_timeout: int = Field(default=30, description="HTTP timeout for feed requests")
    user_agent: str = Field(default="calimport/1.0", description="User-Agent for feed requests")

    # Duplicate detection
    default_match_fields: str = Field(
        default="title", description="Match spec used when none is given: all, any, or a field list"
    )

    logging: LoggingSettings = Field(
        default_factory=LoggingSettings, description="Logging settings"
    )

    model_config = SettingsConfigDict(
        env_prefix="CALIMPORT_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    @field_validator("skip_old_cutoff_days", "fetch_timeout")
    @classmethod
    def non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must not be negative")
        return v


def load_settings(config_file: Optional[Union[str, Path]] = None, **overrides: Any) -> ImportSettings:
    """Build settings from environment, an optional YAML file and keyword overrides.

    Values from the YAML file win over environment variables; keyword overrides
    win over both.

    Args:
        config_file: YAML file whose top-level keys match ``ImportSettings`` fields
        **overrides: Explicit values that win over everything else

    Returns:
        ImportSettings: Validated settings
    """
    data: dict[str, Any] = {}
    if config_file is not None:
        path = Path(config_file)
        with path.open(encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"Configuration file {path} must contain a mapping")
        data.update(loaded)
        logger.debug(f"Loaded configuration from {path}")
    data.update(overrides)
    return ImportSettings(**data)


# Global settings management
_settings_instance: Optional[ImportSettings] = None


def get_settings() -> ImportSettings:
    """Get the global settings instance, creating it lazily if needed.

    Returns:
        ImportSettings: The global settings instance
    """
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = ImportSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
