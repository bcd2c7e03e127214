"""
Configuration module for the clan roster backend.

Provides centralized configuration for:
- Database connection
- Communication tree auto-generation constants
"""

from backend.src.config.settings import AppSettings, get_settings

__all__ = [
    "AppSettings",
    "get_settings",
]
