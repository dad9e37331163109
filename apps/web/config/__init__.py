"""Configuration - environment settings and logging."""

from apps.web.config.settings import (
    ImproperlyConfigured,
    Settings,
    configure_logging,
    load_settings,
)

__all__ = [
    "ImproperlyConfigured",
    "Settings",
    "configure_logging",
    "load_settings",
]
