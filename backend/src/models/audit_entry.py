"""
Audit log entry model.

Append-only record of every roster mutation. Entries outlive the entities
they describe: event_id is a plain value (no foreign key) so deleting an
event keeps its history, and entity_guid stores the external identifier.

details holds a structured payload whose shape depends on action; it is
validated on write and exposed back as a typed object through
typed_details.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum, JSON, Index

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class AuditAction(enum.Enum):
    """Tag of the mutation an audit entry records."""
    EVENT_CREATED = "EVENT_CREATED"
    EVENT_UPDATED = "EVENT_UPDATED"
    EVENT_STATUS_CHANGED = "EVENT_STATUS_CHANGED"
    EVENT_DELETED = "EVENT_DELETED"
    SQUAD_CREATED = "SQUAD_CREATED"
    SQUAD_UPDATED = "SQUAD_UPDATED"
    SQUAD_DELETED = "SQUAD_DELETED"
    SLOT_CREATED = "SLOT_CREATED"
    SLOT_UPDATED = "SLOT_UPDATED"
    SLOT_DELETED = "SLOT_DELETED"
    SLOT_ASSIGNED = "SLOT_ASSIGNED"
    SLOT_UNASSIGNED = "SLOT_UNASSIGNED"
    ABSENCE_MARKED = "ABSENCE_MARKED"
    COMM_NODE_CREATED = "COMM_NODE_CREATED"
    COMM_NODE_UPDATED = "COMM_NODE_UPDATED"
    COMM_NODE_DELETED = "COMM_NODE_DELETED"
    COMM_NODE_POSITIONS_UPDATED = "COMM_NODE_POSITIONS_UPDATED"
    COMM_TREE_AUTO_GENERATED = "COMM_TREE_AUTO_GENERATED"


class AuditEntry(Base, GuidMixin):
    """
    Audit log entry.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (aud_xxx, inherited from GuidMixin)
        action: AuditAction tag
        entity: Entity type name (Event, Squad, Slot, CommunicationNode)
        entity_guid: GUID of the affected entity
        user_id: Acting user (FK SET NULL)
        event_id: Event the mutation belongs to (plain value, nullable)
        details: Per-action structured payload (JSON)
        created_at: When the mutation happened
    """

    __tablename__ = "audit_entries"

    GUID_PREFIX = "aud"

    id = Column(Integer, primary_key=True, autoincrement=True)

    action = Column(
        Enum(AuditAction, name="audit_action", native_enum=False, length=40),
        nullable=False,
        index=True,
    )
    entity = Column(String(50), nullable=False)
    entity_guid = Column(String(30), nullable=False)
    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    event_id = Column(Integer, nullable=True, index=True)
    details = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("idx_audit_entries_event_created", "event_id", "created_at"),
    )

    @property
    def typed_details(self):
        """details parsed into the pydantic model registered for action."""
        from backend.src.schemas.audit import parse_audit_details
        return parse_audit_details(self.action, self.details)

    def __repr__(self) -> str:
        return (
            f"<AuditEntry("
            f"id={self.id}, "
            f"action={self.action.value if self.action else None}, "
            f"entity_guid='{self.entity_guid}'"
            f")>"
        )
