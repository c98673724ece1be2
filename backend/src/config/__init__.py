"""
Configuration module for the TeamRSVP backend.

Provides centralized configuration for:
- Club timezone
- Fixture feed access
- Periodic fixture import scheduling
"""

from backend.src.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
