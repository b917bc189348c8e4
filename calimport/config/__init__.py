"""Configuration package."""

from .settings import ImportSettings, LoggingSettings, get_settings, load_settings, reset_settings

__all__ = [
    "ImportSettings",
    "LoggingSettings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
