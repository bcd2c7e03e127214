"""
Slot model.

A Slot is a single roster position inside a Squad, occupied by at most one
user. Occupancy is expressed only through user_id; status is derived from
it and cannot be set independently.

Invariants (enforced by the assignment and roster services):
- A non-null user_id appears in at most one slot per event
- An occupied slot cannot be deleted individually
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class SlotStatus(enum.Enum):
    """Derived occupancy status."""
    FREE = "free"
    OCCUPIED = "occupied"


class Slot(Base, GuidMixin):
    """
    Roster position.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (slt_xxx, inherited from GuidMixin)
        squad_id: Owning squad (FK, cascade delete)
        role: Free-text role label (e.g. "Medic")
        order: Display position within the squad
        user_id: Occupying user (nullable, weak reference)
        status: OCCUPIED iff user_id is set (read-only property)

    Relationships:
        squad: Owning squad (many-to-one)
        user: Occupying user (many-to-one, optional)
    """

    __tablename__ = "slots"

    GUID_PREFIX = "slt"

    id = Column(Integer, primary_key=True, autoincrement=True)

    squad_id = Column(
        Integer,
        ForeignKey("squads.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = Column(String(100), nullable=False)
    order = Column(Integer, default=0, nullable=False)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    squad = relationship("Squad", back_populates="slots")
    user = relationship("User", lazy="joined")

    __table_args__ = (
        Index("idx_slots_squad_order", "squad_id", "order"),
    )

    @property
    def status(self) -> SlotStatus:
        return SlotStatus.OCCUPIED if self.user_id is not None else SlotStatus.FREE

    @property
    def is_occupied(self) -> bool:
        return self.user_id is not None

    def __repr__(self) -> str:
        return (
            f"<Slot("
            f"id={self.id}, "
            f"role='{self.role}', "
            f"user_id={self.user_id}"
            f")>"
        )

    def __str__(self) -> str:
        return self.role
