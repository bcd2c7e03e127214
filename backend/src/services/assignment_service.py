"""
Assignment engine: occupying and releasing slots.

Operations:
- assign / unassign: self-service, clan-leader proxy or admin, only while
  the event is ACTIVE
- admin_assign / admin_unassign: admin or clan-leader tools that ignore the
  event status and may displace a current occupant
- mark_absence: record that a user will not attend, freeing their slot

Invariant: a user holds at most one slot per event. Assigning a user who
already holds a slot in the same event releases the old slot in the same
transaction that occupies the new one (auto-release).

Every operation resolves the slot's event, then performs its
read-validate-write-commit sequence inside event_unit_of_work(), so two
assignment operations on the same event never interleave.
"""

from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from backend.src.models import Absence, AuditAction, Event, Slot, Squad, User
from backend.src.schemas.audit import (
    AbsenceMarkedDetails,
    SlotAssignedDetails,
    SlotUnassignedDetails,
)
from backend.src.services.audit_service import AuditService
from backend.src.services.event_scope import event_unit_of_work
from backend.src.services.exceptions import ConflictError, InvalidStateError, NotFoundError
from backend.src.services.lookups import get_by_guid
from backend.src.services.permissions import Actor, PermissionEvaluator
from backend.src.utils.event_locks import EventLockRegistry, default_event_locks
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


@dataclass
class AbsenceResult:
    """Outcome of mark_absence."""
    absence: Absence
    slot_freed: bool
    freed_slot: Optional[Slot] = None


class AssignmentService:
    """
    Service implementing the slot assignment algorithm.

    Usage:
        >>> service = AssignmentService(db_session)
        >>> slot = service.assign(slot_guid, user.guid, actor)
        >>> service.unassign(slot_guid, actor)
    """

    def __init__(self, db: Session, locks: Optional[EventLockRegistry] = None):
        """
        Initialize assignment service.

        Args:
            db: SQLAlchemy database session
            locks: Per-event lock registry (process-wide default if omitted)
        """
        self.db = db
        self.locks = locks if locks is not None else default_event_locks
        self.audit = AuditService(db)

    # =========================================================================
    # Self-service / clan-leader proxy
    # =========================================================================

    def assign(self, slot_guid: str, user_guid: str, actor: Actor) -> Slot:
        """
        Put a user into a free slot of an active event.

        Steps, all in one transaction under the event lock:
        1. Reload the slot (NotFound) and the target user (NotFound)
        2. Event must be ACTIVE and not yet past its date (InvalidState)
        3. Slot must be FREE (Conflict)
        4. Actor must be the target, the target's clan leader or an admin
        5. Release any other slot the target holds in the event
        6. Occupy the slot and write the audit entry

        Args:
            slot_guid: Slot to occupy
            user_guid: User to put in the slot
            actor: Acting user

        Returns:
            The occupied slot

        Raises:
            NotFoundError: If the slot or user doesn't exist
            InvalidStateError: If the event is not ACTIVE or already took place
            ConflictError: If the slot is already occupied
            PermissionDeniedError: If the actor may not assign the target
        """
        event_id = self._event_id_for_slot(slot_guid)

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            slot = self._reload_slot(slot_guid)
            target = get_by_guid(self.db, User, user_guid)

            if not event.is_active:
                raise InvalidStateError("Slots can only be taken while the event is active")
            if event.has_taken_place:
                raise InvalidStateError("Slots can no longer be taken, the event has already taken place")
            if slot.is_occupied:
                raise ConflictError("Slot is already occupied", slot_guid=slot.guid)

            permissions = PermissionEvaluator(actor)
            permissions.require(
                permissions.can_act_on_user(target),
                "You can only assign yourself or members of your clan",
            )

            released = self._release_user_slots(event, target, keep=slot)
            self._occupy(slot, target)

            self.audit.record(
                AuditAction.SLOT_ASSIGNED, slot, actor,
                SlotAssignedDetails(
                    assigned_user_guid=target.guid,
                    slot_role=slot.role,
                    squad_name=slot.squad.name,
                    previous_slot_guid=released[0].guid if released else None,
                ),
                event_id=event.id,
            )

        logger.info(
            f"Assigned {target.nickname} to slot {slot.guid}",
            extra={"event_id": event_id, "auto_released": len(released)},
        )
        return slot

    def unassign(self, slot_guid: str, actor: Actor) -> Slot:
        """
        Free an occupied slot of an active event.

        Authorization is keyed off the current occupant: the occupant
        themself, their clan leader or an admin.

        Raises:
            NotFoundError: If the slot doesn't exist
            InvalidStateError: If the event is not ACTIVE, already took place,
                or the slot is FREE
            PermissionDeniedError: If the actor may not act on the occupant
        """
        event_id = self._event_id_for_slot(slot_guid)

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            slot = self._reload_slot(slot_guid)

            if not event.is_active:
                raise InvalidStateError("Slots can only be released while the event is active")
            if event.has_taken_place:
                raise InvalidStateError("Slots can no longer be released, the event has already taken place")
            if not slot.is_occupied:
                raise InvalidStateError("Slot is not occupied")

            occupant = slot.user
            permissions = PermissionEvaluator(actor)
            permissions.require(
                permissions.can_act_on_user(occupant),
                "You can only release your own slot or slots of members of your clan",
            )

            self._release(slot)

            self.audit.record(
                AuditAction.SLOT_UNASSIGNED, slot, actor,
                SlotUnassignedDetails(unassigned_user_guid=occupant.guid, slot_role=slot.role),
                event_id=event.id,
            )

        logger.info(f"Released slot {slot.guid} held by {occupant.nickname}")
        return slot

    # =========================================================================
    # Admin tools
    # =========================================================================

    def admin_assign(self, slot_guid: str, user_guid: str, actor: Actor) -> Slot:
        """
        Roster a user regardless of event status, displacing any occupant.

        Admins may roster anyone. Clan leaders may roster members of their
        own clan and may only displace members of their own clan. The
        one-slot-per-event invariant still applies. Assigning the current
        occupant to their own slot changes nothing.

        Raises:
            NotFoundError: If the slot or user doesn't exist
            PermissionDeniedError: If the actor is not an admin/clan leader,
                or the target or displaced occupant is outside their clan
        """
        self._require_admin_tools(actor)
        event_id = self._event_id_for_slot(slot_guid)

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            slot = self._reload_slot(slot_guid)
            target = get_by_guid(self.db, User, user_guid)

            permissions = PermissionEvaluator(actor)
            permissions.require(
                permissions.can_proxy_for(target),
                "Clan leaders can only roster members of their own clan",
            )

            if slot.user_id == target.id:
                logger.debug(f"Admin assign of {target.nickname} to slot {slot.guid}: already the occupant")
                return slot

            displaced = slot.user
            if displaced is not None:
                permissions.require(
                    permissions.can_proxy_for(displaced),
                    "Clan leaders can only displace members of their own clan",
                )
                self._release(slot)

            released = self._release_user_slots(event, target, keep=slot)
            self._occupy(slot, target)

            self.audit.record(
                AuditAction.SLOT_ASSIGNED, slot, actor,
                SlotAssignedDetails(
                    assigned_user_guid=target.guid,
                    slot_role=slot.role,
                    squad_name=slot.squad.name,
                    previous_slot_guid=released[0].guid if released else None,
                    displaced_user_guid=displaced.guid if displaced else None,
                    admin_override=True,
                ),
                event_id=event.id,
            )

        if displaced is not None:
            logger.info(f"Admin override: {displaced.nickname} displaced from slot {slot.guid}")
        logger.info(
            f"Admin-assigned {target.nickname} to slot {slot.guid}",
            extra={"event_id": event_id, "auto_released": len(released)},
        )
        return slot

    def admin_unassign(self, slot_guid: str, actor: Actor) -> Slot:
        """
        Free a slot regardless of event status.

        A FREE slot is returned unchanged.

        Raises:
            NotFoundError: If the slot doesn't exist
            PermissionDeniedError: If the actor is not an admin/clan leader,
                or the occupant is outside a clan leader's clan
        """
        self._require_admin_tools(actor)
        event_id = self._event_id_for_slot(slot_guid)

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            slot = self._reload_slot(slot_guid)
            if not slot.is_occupied:
                return slot

            occupant = slot.user
            permissions = PermissionEvaluator(actor)
            permissions.require(
                permissions.can_proxy_for(occupant),
                "Clan leaders can only release members of their own clan",
            )

            self._release(slot)

            self.audit.record(
                AuditAction.SLOT_UNASSIGNED, slot, actor,
                SlotUnassignedDetails(
                    unassigned_user_guid=occupant.guid,
                    slot_role=slot.role,
                    admin_override=True,
                ),
                event_id=event.id,
            )

        logger.info(f"Admin-released slot {slot.guid} held by {occupant.nickname}")
        return slot

    # =========================================================================
    # Absences
    # =========================================================================

    def mark_absence(
        self,
        event_guid: str,
        actor: Actor,
        user_guid: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> AbsenceResult:
        """
        Record that a user will not attend an event.

        Whatever slot the user holds in the event is freed. The absence is
        recorded whether or not a slot was held, and regardless of the
        event status.

        Args:
            event_guid: Event the absence applies to
            actor: Acting user
            user_guid: Absent user (defaults to the actor)
            reason: Optional free-text reason

        Returns:
            AbsenceResult with the absence and whether a slot was freed

        Raises:
            NotFoundError: If the event or user doesn't exist
            PermissionDeniedError: If the actor is not the user, their clan
                leader or an admin
        """
        event_id = get_by_guid(self.db, Event, event_guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            if user_guid is None:
                target = self._actor_user(actor)
            else:
                target = get_by_guid(self.db, User, user_guid)

            permissions = PermissionEvaluator(actor)
            permissions.require(
                permissions.can_act_on_user(target),
                "You can only mark absences for yourself or members of your clan",
            )

            released = self._release_user_slots(event, target)
            freed_slot = released[0] if released else None

            absence = Absence(event_id=event.id, user_id=target.id, reason=reason)
            absence.user = target
            self.db.add(absence)
            self.db.flush()

            self.audit.record(
                AuditAction.ABSENCE_MARKED, absence, actor,
                AbsenceMarkedDetails(
                    absent_user_guid=target.guid,
                    reason=reason,
                    slot_freed=freed_slot is not None,
                    freed_slot_guid=freed_slot.guid if freed_slot else None,
                ),
                event_id=event.id,
            )

        logger.info(
            f"{target.nickname} marked absent from event {event_guid}",
            extra={"slot_freed": freed_slot is not None},
        )
        return AbsenceResult(
            absence=absence, slot_freed=freed_slot is not None, freed_slot=freed_slot
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _event_id_for_slot(self, slot_guid: str) -> int:
        slot = get_by_guid(self.db, Slot, slot_guid)
        return slot.squad.event_id

    def _reload_slot(self, slot_guid: str) -> Slot:
        """Re-read a slot inside the event lock, discarding cached state."""
        return get_by_guid(self.db, Slot, slot_guid, refresh=True)

    @staticmethod
    def _require_admin_tools(actor: Actor) -> None:
        permissions = PermissionEvaluator(actor)
        permissions.require(
            permissions.can_create_events(),
            "Only admins and clan leaders can use roster admin tools",
        )

    def _actor_user(self, actor: Actor) -> User:
        user = self.db.query(User).filter(User.id == actor.user_id).first()
        if user is None:
            raise NotFoundError("User", actor.user_guid or actor.user_id)
        return user

    def _slots_held_by(self, event: Event, user: User) -> List[Slot]:
        # Pending releases must be visible before rows are refreshed
        self.db.flush()
        return (
            self.db.query(Slot)
            .join(Squad, Slot.squad_id == Squad.id)
            .filter(Squad.event_id == event.id, Slot.user_id == user.id)
            .populate_existing()
            .all()
        )

    def _release_user_slots(
        self, event: Event, user: User, keep: Optional[Slot] = None
    ) -> List[Slot]:
        """Free every slot the user holds in the event except keep."""
        released = []
        for held in self._slots_held_by(event, user):
            if keep is not None and held.id == keep.id:
                continue
            self._release(held)
            released.append(held)
            logger.info(f"Auto-released slot {held.guid} held by {user.nickname}")
        return released

    @staticmethod
    def _occupy(slot: Slot, user: User) -> None:
        slot.user = user
        slot.user_id = user.id

    @staticmethod
    def _release(slot: Slot) -> None:
        slot.user = None
        slot.user_id = None
