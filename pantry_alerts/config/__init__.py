"""
Configuration management for pantry-alerts.

Loads settings from environment variables and an optional .env file.
Exposes a single source of truth for all service configuration.
"""

from pantry_alerts.config.settings import Settings, get_settings, load_settings  # noqa: F401

__all__ = ["Settings", "get_settings", "load_settings"]
