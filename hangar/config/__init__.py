"""Config package - Application settings and configuration."""

from hangar.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
]
