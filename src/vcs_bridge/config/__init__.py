"""Configuration management module."""

from .settings import (
    Settings,
    AppConfig,
    ProviderConfig,
    LoggingConfig,
    get_settings,
    reload_settings,
)

__all__ = [
    "Settings",
    "AppConfig",
    "ProviderConfig",
    "LoggingConfig",
    "get_settings",
    "reload_settings",
]
