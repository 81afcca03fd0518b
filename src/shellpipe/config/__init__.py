"""Configuration for shellpipe."""

from shellpipe.config.settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
