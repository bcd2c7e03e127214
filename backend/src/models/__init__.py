"""
SQLAlchemy models for the clan roster backend.

This module provides the declarative base class and imports all models
to ensure they are registered with SQLAlchemy's metadata.
"""

from sqlalchemy.orm import declarative_base

# Create the declarative base class
# All models will inherit from this Base class
Base = declarative_base()


# Import all models here so they are registered with Base.metadata
# This is required for Alembic autogenerate to detect models
from backend.src.models.clan import Clan
from backend.src.models.user import User, UserRole
from backend.src.models.event import Event, EventStatus, GameType
from backend.src.models.squad import Squad
from backend.src.models.slot import Slot, SlotStatus
from backend.src.models.communication_node import CommunicationNode, NodeType
from backend.src.models.absence import Absence
from backend.src.models.audit_entry import AuditEntry, AuditAction

__all__ = [
    "Base",
    "Clan",
    "User",
    "UserRole",
    "Event",
    "EventStatus",
    "GameType",
    "Squad",
    "Slot",
    "SlotStatus",
    "CommunicationNode",
    "NodeType",
    "Absence",
    "AuditEntry",
    "AuditAction",
]
