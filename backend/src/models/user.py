"""
User model for roster participants.

Users are owned by the (external) authentication subsystem. The roster
core reads only what it needs to authorize and display assignments:
nickname, role and clan membership.

Design Rationale:
- Roles are a fixed three-tier set (member, clan leader, admin)
- clan_id is nullable: users may not belong to any clan
- Deleting a user clears slot occupancy (FK SET NULL on slots.user_id)
"""

import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from backend.src.models import Base
from backend.src.models.mixins import GuidMixin


class UserRole(enum.Enum):
    """
    Platform role.

    - MEMBER: may act on their own slots and absences
    - CLAN_LEADER: may additionally act on members of their own clan
    - ADMIN: may act on anyone
    """
    MEMBER = "member"
    CLAN_LEADER = "clan_leader"
    ADMIN = "admin"


class User(Base, GuidMixin):
    """
    User model representing a player.

    Attributes:
        id: Primary key (internal, never exposed)
        guid: GUID string property (usr_xxx, inherited from GuidMixin)
        nickname: In-game nickname (unique)
        role: Platform role (member, clan_leader, admin)
        clan_id: Clan membership (nullable)

    Relationships:
        clan: Clan this user belongs to (many-to-one)
    """

    __tablename__ = "users"

    GUID_PREFIX = "usr"

    id = Column(Integer, primary_key=True, autoincrement=True)

    nickname = Column(String(50), unique=True, nullable=False, index=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [m.value for m in e]),
        default=UserRole.MEMBER,
        nullable=False,
    )
    clan_id = Column(
        Integer,
        ForeignKey("clans.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    clan = relationship("Clan", back_populates="members", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<User("
            f"id={self.id}, "
            f"nickname='{self.nickname}', "
            f"role={self.role.value if self.role else None}"
            f")>"
        )

    def __str__(self) -> str:
        return self.nickname
