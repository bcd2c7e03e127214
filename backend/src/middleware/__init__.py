"""
Middleware components for the clan roster backend.

This module provides:
- get_current_actor: FastAPI dependency resolving the acting user
"""

from backend.src.middleware.auth import get_current_actor

__all__ = [
    "get_current_actor",
]
