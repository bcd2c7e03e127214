"""
Squad model.

A Squad is an ordered group of Slots inside exactly one Event. Deleting a
squad removes its slots unconditionally, occupied or not.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Squad(Base, GuidMixin):
    """
    Ordered group of roster slots.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (sqd_xxx, inherited from GuidMixin)
        event_id: Owning event (FK, cascade delete)
        name: Squad name (e.g. "Alpha")
        order: Display position within the event (not unique)

    Relationships:
        event: Owning event (many-to-one)
        slots: Slots ordered by their order column (one-to-many, cascade)
    """

    __tablename__ = "squads"

    GUID_PREFIX = "sqd"

    id = Column(Integer, primary_key=True, autoincrement=True)

    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(100), nullable=False)
    order = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    event = relationship("Event", back_populates="squads")
    slots = relationship(
        "Slot",
        back_populates="squad",
        order_by="Slot.order",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_squads_event_order", "event_id", "order"),
    )

    def __repr__(self) -> str:
        return f"<Squad(id={self.id}, name='{self.name}', order={self.order})>"

    def __str__(self) -> str:
        return self.name
