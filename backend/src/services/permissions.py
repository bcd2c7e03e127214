"""
Permission evaluation for roster operations.

Defines the acting user (Actor) and the single place where the
self / clan-leader / admin matrix is decided. Every mutating service
operation asks a PermissionEvaluator before touching state.

Design:
- Three primitive predicates: act on self, act on a member of the actor's
  clan (clan leaders only), act on anyone (admins only)
- Composite rules are built from the primitives and named after the
  operation family they guard
- Evaluation is pure: callers pass the entities the rule depends on
"""

from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from backend.src.models.user import UserRole
from backend.src.services.exceptions import PermissionDeniedError
from backend.src.utils.logging_config import get_logger

if TYPE_CHECKING:
    from backend.src.models import Event, User


logger = get_logger("services")


@dataclass(frozen=True)
class Actor:
    """
    The authenticated user performing a request.

    Attributes:
        user_id: Internal user ID
        role: Platform role
        clan_id: Internal clan ID (None when the user has no clan)
        user_guid: External user GUID, for logging
    """

    user_id: int
    role: UserRole
    clan_id: Optional[int] = None
    user_guid: Optional[str] = None

    @classmethod
    def from_user(cls, user: "User") -> "Actor":
        """Build an Actor from a loaded User row."""
        return cls(
            user_id=user.id,
            role=user.role,
            clan_id=user.clan_id,
            user_guid=user.guid,
        )

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_clan_leader(self) -> bool:
        return self.role == UserRole.CLAN_LEADER


class PermissionEvaluator:
    """
    Stateless predicate set parameterized by the acting user.

    Usage:
        >>> permissions = PermissionEvaluator(actor)
        >>> permissions.require(
        ...     permissions.can_act_on_user(target),
        ...     "You can only assign yourself or members of your clan",
        ... )
    """

    def __init__(self, actor: Actor):
        self.actor = actor

    # ------------------------------------------------------------------
    # Primitives
    # ------------------------------------------------------------------

    def can_act_on_self(self, target_user_id: Optional[int]) -> bool:
        """Any authenticated actor may act on records targeting themself."""
        return target_user_id is not None and target_user_id == self.actor.user_id

    def can_act_on_clan_member(self, target_clan_id: Optional[int]) -> bool:
        """Clan leaders may act on members of their own clan."""
        return (
            self.actor.is_clan_leader
            and self.actor.clan_id is not None
            and self.actor.clan_id == target_clan_id
        )

    def can_act_on_any(self) -> bool:
        """Admins may act on anyone."""
        return self.actor.is_admin

    # ------------------------------------------------------------------
    # Composite rules
    # ------------------------------------------------------------------

    def can_act_on_user(self, target: "User") -> bool:
        """Self-service, clan-leader proxy or admin, keyed off a target user."""
        return (
            self.can_act_on_self(target.id)
            or self.can_act_on_clan_member(target.clan_id)
            or self.can_act_on_any()
        )

    def can_proxy_for(self, target: "User") -> bool:
        """Roster a user on their behalf (admin tools): admin or same-clan leader."""
        return self.can_act_on_any() or self.can_act_on_clan_member(target.clan_id)

    def can_manage_roster(self, event: "Event") -> bool:
        """
        Edit squads, slots and the communication tree of an event.

        The clan leader must lead the clan of the event's creator, not the
        clan of any assigned user.
        """
        return self.can_act_on_any() or self.can_act_on_clan_member(
            event.creator.clan_id if event.creator else None
        )

    def can_manage_event(self, event: "Event") -> bool:
        """Edit, re-status or delete an event: roster managers plus its creator."""
        return self.can_manage_roster(event) or self.can_act_on_self(event.creator_id)

    def can_create_events(self) -> bool:
        """Only admins and clan leaders schedule events."""
        return self.actor.is_admin or self.actor.is_clan_leader

    # ------------------------------------------------------------------
    # Enforcement
    # ------------------------------------------------------------------

    def require(self, allowed: bool, message: str) -> None:
        """
        Raise PermissionDeniedError unless allowed.

        Raises:
            PermissionDeniedError: If allowed is False
        """
        if not allowed:
            logger.warning(
                f"Permission denied for {self.actor.user_guid or self.actor.user_id}: {message}",
                extra={"actor_role": self.actor.role.value},
            )
            raise PermissionDeniedError(message)
