"""
Utility modules for the clan roster backend.

This package contains shared utilities used across the application:
- logging_config: Structured logging setup
- event_locks: Per-event serialization of roster mutations
- html_sanitizer: Allow-list cleaning of rich-text event briefings
"""

from backend.src.utils.event_locks import EventLockRegistry, default_event_locks

__all__ = [
    "EventLockRegistry",
    "default_event_locks",
]
