"""
Communication node model for an event's radio hierarchy.

Nodes belong to exactly one event and form a forest through parent_id.
The hierarchy is expressed only by parent_id; ownership is flat (the event
owns every node directly).

Invariants (enforced by CommunicationTreeService):
- parent_id, if set, references a node of the same event
- Following parent_id transitively never reaches the node itself
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class NodeType(enum.Enum):
    """Kind of radio net a node represents."""
    COMMAND = "command"
    SQUAD = "squad"
    ELEMENT = "element"
    SUPPORT = "support"


class CommunicationNode(Base, GuidMixin):
    """
    Node of the communication tree.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (cnd_xxx, inherited from GuidMixin)
        event_id: Owning event (FK, cascade delete)
        name: Call sign / net name
        frequency: Radio frequency label (e.g. "42.00"), optional
        type: COMMAND, SQUAD, ELEMENT or SUPPORT
        parent_id: Parent node in the same event (nullable for roots)
        position_x / position_y: Editor canvas coordinates (presentational)
        order: Listing order within the event

    Relationships:
        event: Owning event (many-to-one)
        parent: Parent node (many-to-one, self-referential)
        children: Child nodes (one-to-many, cascade delete)
    """

    __tablename__ = "communication_nodes"

    GUID_PREFIX = "cnd"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    frequency = Column(String(20), nullable=True)
    type = Column(
        Enum(NodeType, name="node_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    parent_id = Column(
        Integer,
        ForeignKey("communication_nodes.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    position_x = Column(Float, default=0, nullable=False)
    position_y = Column(Float, default=0, nullable=False)
    order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    event = relationship("Event", back_populates="communication_nodes")
    parent = relationship(
        "CommunicationNode",
        remote_side=[id],
        back_populates="children",
    )
    children = relationship(
        "CommunicationNode",
        back_populates="parent",
        # Detaching a child keeps it as a root; only parent deletion cascades
        cascade="all",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_comm_nodes_event_order", "event_id", "order"),
    )

    def __repr__(self) -> str:
        return (
            f"<CommunicationNode("
            f"id={self.id}, "
            f"name='{self.name}', "
            f"type={self.type.value if self.type else None}, "
            f"parent_id={self.parent_id}"
            f")>"
        )

    def __str__(self) -> str:
        return self.name
