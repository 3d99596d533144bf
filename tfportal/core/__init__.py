"""Core configuration and factory components."""

from tfportal.core.config import Settings, get_settings
from tfportal.core.factory import ComponentFactory

__all__ = [
    "Settings",
    "get_settings",
    "ComponentFactory",
]
