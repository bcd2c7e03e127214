"""
Absence model.

Records a user's declared inability to attend an event. Declaring an
absence releases the user's slot in that event, if any.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Absence(Base, GuidMixin):
    """
    Declared absence of a user from an event.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (abs_xxx, inherited from GuidMixin)
        user_id: Absent user
        event_id: Event the user will miss (FK, cascade delete)
        reason: Free-text reason (optional)
    """

    __tablename__ = "absences"

    GUID_PREFIX = "abs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    user_id = Column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_id = Column(
        Integer,
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reason = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    event = relationship("Event", back_populates="absences")
    user = relationship("User", lazy="joined")

    def __repr__(self) -> str:
        return f"<Absence(id={self.id}, user_id={self.user_id}, event_id={self.event_id})>"
