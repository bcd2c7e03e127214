"""
Roster service for squads and slots of an event.

Provides create/update/delete for squads and slots. Every operation is
gated by PermissionEvaluator.can_manage_roster (admin, or leader of the
clan that created the event) and runs inside event_unit_of_work(), the
same lock the assignment engine uses, so the occupancy guard of
delete_slot cannot race an assignment.

Design:
- delete_slot refuses an OCCUPIED slot (unassign first)
- delete_squad removes its slots whatever their occupancy; occupants are
  released with the squad and listed in the audit entry (bulk cleanup)
- Squad order defaults to one past the highest in the event, slot order
  to one past the highest in the squad
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.src.models import AuditAction, Event, Slot, Squad
from backend.src.schemas.audit import (
    SlotCreatedDetails,
    SlotDeletedDetails,
    SlotUpdatedDetails,
    SquadCreatedDetails,
    SquadDeletedDetails,
    SquadUpdatedDetails,
)
from backend.src.schemas.roster import (
    SlotCreate,
    SlotUpdate,
    SquadCreate,
    SquadDeleteResponse,
    SquadUpdate,
)
from backend.src.services.audit_service import AuditService
from backend.src.services.event_scope import event_unit_of_work
from backend.src.services.exceptions import ConflictError, ValidationError
from backend.src.services.lookups import get_by_guid
from backend.src.services.permissions import Actor, PermissionEvaluator
from backend.src.utils.event_locks import EventLockRegistry, default_event_locks
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

ROSTER_DENIED = "Only an admin or a leader of the event creator's clan can edit the roster"


class RosterService:
    """
    Service for editing the squad/slot partition of an event.

    Usage:
        >>> service = RosterService(db_session)
        >>> squad = service.create_squad(event.guid, SquadCreate(...), actor)
        >>> service.delete_slot(squad.slots[0].guid, actor)
    """

    def __init__(self, db: Session, locks: Optional[EventLockRegistry] = None):
        self.db = db
        self.locks = locks if locks is not None else default_event_locks
        self.audit = AuditService(db)

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_squad_by_guid(self, guid: str) -> Squad:
        return get_by_guid(self.db, Squad, guid)

    def get_slot_by_guid(self, guid: str) -> Slot:
        return get_by_guid(self.db, Slot, guid)

    # =========================================================================
    # Squads
    # =========================================================================

    def create_squad(self, event_guid: str, data: SquadCreate, actor: Actor) -> Squad:
        """
        Add a squad with its slots to an event.

        Raises:
            NotFoundError: If the event doesn't exist
            PermissionDeniedError: If the actor cannot manage the roster
            ValidationError: If no slots are given
        """
        if not data.slots:
            raise ValidationError("A squad needs at least one slot", field="slots")

        event_id = get_by_guid(self.db, Event, event_guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_roster_manager(actor, event)

            order = data.order
            if order is None:
                order = self._next_order(Squad.order, Squad.event_id == event.id)

            squad = Squad(event_id=event.id, name=data.name, order=order)
            squad.slots = [
                Slot(role=spec.role, order=spec.order if spec.order is not None else index)
                for index, spec in enumerate(data.slots)
            ]
            self.db.add(squad)
            self.db.flush()

            self.audit.record(
                AuditAction.SQUAD_CREATED, squad, actor,
                SquadCreatedDetails(squad_name=squad.name, slot_count=len(squad.slots)),
                event_id=event.id,
            )

        logger.info(f"Created squad '{squad.name}' ({squad.guid}) with {len(data.slots)} slots")
        return squad

    def update_squad(self, guid: str, data: SquadUpdate, actor: Actor) -> Squad:
        """
        Rename or reorder a squad.

        Raises:
            NotFoundError: If the squad doesn't exist
            PermissionDeniedError: If the actor cannot manage the roster
            ValidationError: If no field is supplied
        """
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not changes:
            raise ValidationError("No fields to update")

        event_id = self.get_squad_by_guid(guid).event_id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_roster_manager(actor, event)
            squad = get_by_guid(self.db, Squad, guid, refresh=True)

            for field, value in changes.items():
                setattr(squad, field, value)

            self.audit.record(
                AuditAction.SQUAD_UPDATED, squad, actor,
                SquadUpdatedDetails(squad_name=squad.name, changed_fields=sorted(changes)),
                event_id=event.id,
            )

        logger.info(f"Updated squad {squad.guid}: {', '.join(sorted(changes))}")
        return squad

    def delete_squad(self, guid: str, actor: Actor) -> SquadDeleteResponse:
        """
        Delete a squad and all its slots, occupied ones included.

        Returns:
            GUID of the deleted squad and the number of slots removed

        Raises:
            NotFoundError: If the squad doesn't exist
            PermissionDeniedError: If the actor cannot manage the roster
        """
        event_id = self.get_squad_by_guid(guid).event_id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_roster_manager(actor, event)
            squad = get_by_guid(self.db, Squad, guid, refresh=True)

            released = [slot.user.guid for slot in squad.slots if slot.user is not None]
            result = SquadDeleteResponse(guid=squad.guid, deleted_slots=len(squad.slots))

            self.audit.record(
                AuditAction.SQUAD_DELETED, squad, actor,
                SquadDeletedDetails(
                    squad_name=squad.name,
                    deleted_slots=result.deleted_slots,
                    released_user_guids=released,
                ),
                event_id=event.id,
            )
            self.db.delete(squad)

        if released:
            logger.info(f"Squad {result.guid} deleted with {len(released)} occupied slots released")
        logger.info(f"Deleted squad {result.guid} ({result.deleted_slots} slots)")
        return result

    # =========================================================================
    # Slots
    # =========================================================================

    def create_slot(self, squad_guid: str, data: SlotCreate, actor: Actor) -> Slot:
        """
        Append a FREE slot to a squad.

        Raises:
            NotFoundError: If the squad doesn't exist
            PermissionDeniedError: If the actor cannot manage the roster
        """
        event_id = self.get_squad_by_guid(squad_guid).event_id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_roster_manager(actor, event)
            squad = get_by_guid(self.db, Squad, squad_guid, refresh=True)

            order = data.order
            if order is None:
                order = self._next_order(Slot.order, Slot.squad_id == squad.id)

            slot = Slot(squad_id=squad.id, role=data.role, order=order)
            self.db.add(slot)
            self.db.flush()

            self.audit.record(
                AuditAction.SLOT_CREATED, slot, actor,
                SlotCreatedDetails(role=slot.role, squad_name=squad.name),
                event_id=event.id,
            )

        logger.info(f"Created slot '{slot.role}' ({slot.guid}) in squad {squad_guid}")
        return slot

    def update_slot(self, guid: str, data: SlotUpdate, actor: Actor) -> Slot:
        """
        Change a slot's role label or order. Occupancy is untouched.

        Raises:
            NotFoundError: If the slot doesn't exist
            PermissionDeniedError: If the actor cannot manage the roster
            ValidationError: If no field is supplied
        """
        changes = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        if not changes:
            raise ValidationError("No fields to update")

        event_id = self._event_id_of_slot(self.get_slot_by_guid(guid))

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_roster_manager(actor, event)
            slot = get_by_guid(self.db, Slot, guid, refresh=True)

            for field, value in changes.items():
                setattr(slot, field, value)

            self.audit.record(
                AuditAction.SLOT_UPDATED, slot, actor,
                SlotUpdatedDetails(role=slot.role, changed_fields=sorted(changes)),
                event_id=event.id,
            )

        logger.info(f"Updated slot {slot.guid}: {', '.join(sorted(changes))}")
        return slot

    def delete_slot(self, guid: str, actor: Actor) -> None:
        """
        Delete a FREE slot.

        Raises:
            NotFoundError: If the slot doesn't exist
            PermissionDeniedError: If the actor cannot manage the roster
            ConflictError: If the slot is occupied
        """
        event_id = self._event_id_of_slot(self.get_slot_by_guid(guid))

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_roster_manager(actor, event)
            slot = get_by_guid(self.db, Slot, guid, refresh=True)

            if slot.is_occupied:
                raise ConflictError(
                    "Cannot delete an occupied slot; unassign it first", slot_guid=slot.guid
                )

            self.audit.record(
                AuditAction.SLOT_DELETED, slot, actor,
                SlotDeletedDetails(role=slot.role, squad_name=slot.squad.name),
                event_id=event.id,
            )
            self.db.delete(slot)

        logger.info(f"Deleted slot {guid}")

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_roster_manager(actor: Actor, event: Event) -> None:
        permissions = PermissionEvaluator(actor)
        permissions.require(permissions.can_manage_roster(event), ROSTER_DENIED)

    @staticmethod
    def _event_id_of_slot(slot: Slot) -> int:
        return slot.squad.event_id

    def _next_order(self, column, criterion) -> int:
        current = self.db.query(func.max(column)).filter(criterion).scalar()
        return 0 if current is None else current + 1
