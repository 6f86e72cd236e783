"""Configuration management."""

from room_scout.config.settings import Config, Settings, settings

__all__ = ["Config", "Settings", "settings"]
