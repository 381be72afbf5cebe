"""Configuration package."""

from splitly.config.settings import (
    ApiSettings,
    AppSettings,
    ChannelSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "ApiSettings",
    "AppSettings",
    "ChannelSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
