"""
Event model for scheduled clan missions.

An Event owns an ordered partition of roster positions (Squads holding
Slots), a flat collection of communication nodes, and the absences
declared against it. Deleting an event cascades to all of them.

Design Rationale:
- status is a two-state toggle (ACTIVE/INACTIVE); deletion is a separate
  destructive action, not a status transition
- Slot self-service is only possible while the event is ACTIVE and its
  scheduled date has not passed; past ACTIVE events are switched to
  INACTIVE by EventService.expire_past_events()
- Occupancy counters are derived from slots, never stored
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum, Index
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class EventStatus(enum.Enum):
    """Event status. Slot self-service requires ACTIVE."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class GameType(enum.Enum):
    """Game the mission is played in."""
    ARMA_3 = "arma_3"
    ARMA_REFORGER = "arma_reforger"


class Event(Base, GuidMixin):
    """
    Scheduled mission with its roster.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (evt_xxx, inherited from GuidMixin)
        name: Mission name
        description: Short description (optional)
        briefing: Long-form briefing text (optional)
        game_type: Game the mission is played in
        status: ACTIVE or INACTIVE
        scheduled_date: When the mission takes place
        creator_id: FK to the user that created the event

    Relationships:
        creator: Owning user (many-to-one)
        squads: Squads ordered by their order column (one-to-many, cascade)
        communication_nodes: Radio tree nodes (one-to-many, cascade)
        absences: Declared absences (one-to-many, cascade)
    """

    __tablename__ = "events"

    GUID_PREFIX = "evt"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    briefing = Column(Text, nullable=True)
    game_type = Column(
        Enum(GameType, name="game_type", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    status = Column(
        Enum(EventStatus, name="event_status", values_callable=lambda e: [m.value for m in e]),
        default=EventStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    scheduled_date = Column(DateTime, nullable=False, index=True)

    creator_id = Column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.utcnow,
        onupdate=datetime.utcnow,
        nullable=False
    )

    creator = relationship("User", lazy="joined")
    squads = relationship(
        "Squad",
        back_populates="event",
        order_by="Squad.order",
        cascade="all, delete-orphan",
        lazy="select",
    )
    communication_nodes = relationship(
        "CommunicationNode",
        back_populates="event",
        order_by="CommunicationNode.order",
        cascade="all, delete-orphan",
        lazy="select",
    )
    absences = relationship(
        "Absence",
        back_populates="event",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        Index("idx_events_status_date", "status", "scheduled_date"),
    )

    @property
    def is_active(self) -> bool:
        return self.status == EventStatus.ACTIVE

    @property
    def has_taken_place(self) -> bool:
        return self.scheduled_date is not None and self.scheduled_date < datetime.utcnow()

    @property
    def total_slots(self) -> int:
        return sum(len(squad.slots) for squad in self.squads)

    @property
    def occupied_slots(self) -> int:
        return sum(
            1 for squad in self.squads for slot in squad.slots if slot.is_occupied
        )

    def __repr__(self) -> str:
        return (
            f"<Event("
            f"id={self.id}, "
            f"name='{self.name}', "
            f"status={self.status.value if self.status else None}"
            f")>"
        )

    def __str__(self) -> str:
        return self.name
