"""
Clan model.

Clans group users. The roster core only reads a clan's identity to scope
clan-leader proxy actions; clan profile management lives elsewhere.
"""

from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class Clan(Base, GuidMixin):
    """
    Gaming clan.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (cln_xxx, inherited from GuidMixin)
        name: Clan display name (unique)
        tag: Short tag shown next to member nicknames (e.g. "MTLH")

    Relationships:
        members: Users belonging to this clan (one-to-many)
    """

    __tablename__ = "clans"

    GUID_PREFIX = "cln"

    id = Column(Integer, primary_key=True, autoincrement=True)

    name = Column(String(100), unique=True, nullable=False)
    tag = Column(String(10), nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    members = relationship("User", back_populates="clan", lazy="select")

    def __repr__(self) -> str:
        return f"<Clan(id={self.id}, tag='{self.tag}')>"

    def __str__(self) -> str:
        return f"[{self.tag}] {self.name}"
