"""
Configuration module for the OTA updates server.

Provides centralized configuration for:
- Public hostname used in asset URLs
- Code signing key location
- Blob storage backend selection
"""

from backend.src.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
