"""
Event service for managing scheduled clan missions.

Provides business logic for creating (from scratch or from a template),
listing, retrieving, updating, re-statusing and deleting events.

Design:
- An event is always created together with its full roster; an event
  without squads, or a squad without slots, is rejected before any write
- Template cloning copies roster shape (names, order, roles), never occupancy
- Status is an ACTIVE/INACTIVE toggle; deletion is a separate action that
  cascades to squads, slots, communication nodes and absences
- Mutations of an existing event run inside event_unit_of_work()
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from backend.src.models import Absence, AuditAction, CommunicationNode, Event, Slot, Squad
from backend.src.models.event import EventStatus, GameType
from backend.src.schemas.audit import (
    EventCreatedDetails,
    EventDeletedDetails,
    EventStatusChangedDetails,
    EventUpdatedDetails,
)
from backend.src.schemas.event import (
    EventCreate,
    EventDeleteResponse,
    EventFromTemplate,
    EventUpdate,
)
from backend.src.schemas.roster import SlotSpec, SquadCreate
from backend.src.services.audit_service import AuditService
from backend.src.services.event_scope import event_unit_of_work
from backend.src.services.exceptions import InvalidStateError, ValidationError
from backend.src.services.lookups import get_by_guid
from backend.src.services.permissions import Actor, PermissionEvaluator
from backend.src.utils.event_locks import EventLockRegistry, default_event_locks
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")


class EventService:
    """
    Service for managing events and their lifecycle.

    Usage:
        >>> service = EventService(db_session)
        >>> event = service.create_event(EventCreate(...), actor)
        >>> service.change_status(event.guid, EventStatus.INACTIVE, actor)
    """

    def __init__(self, db: Session, locks: Optional[EventLockRegistry] = None):
        """
        Initialize event service.

        Args:
            db: SQLAlchemy database session
            locks: Per-event lock registry (process-wide default if omitted)
        """
        self.db = db
        self.locks = locks if locks is not None else default_event_locks
        self.audit = AuditService(db)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_by_guid(self, guid: str) -> Event:
        """
        Get an event by GUID.

        An ACTIVE event whose date has passed is switched to INACTIVE first.

        Raises:
            NotFoundError: If the GUID is invalid or the event doesn't exist
        """
        event = get_by_guid(self.db, Event, guid)
        if event.is_active and event.has_taken_place:
            self.expire_past_events(event_ids=[event.id])
            self.db.refresh(event)
        return event

    def list(
        self,
        status: Optional[EventStatus] = EventStatus.ACTIVE,
        game_type: Optional[GameType] = None,
        upcoming: bool = False,
    ) -> List[Event]:
        """
        List events ordered by scheduled date.

        Args:
            status: Filter by status (None for all statuses)
            game_type: Filter by game
            upcoming: Only events scheduled from now on

        Returns:
            Events with squads and slots preloaded for occupancy counters
        """
        self.expire_past_events()

        query = self.db.query(Event).options(
            selectinload(Event.squads).selectinload(Squad.slots)
        )

        if status is not None:
            query = query.filter(Event.status == status)
        if game_type is not None:
            query = query.filter(Event.game_type == game_type)
        if upcoming:
            query = query.filter(Event.scheduled_date >= datetime.utcnow())

        return query.order_by(Event.scheduled_date.asc(), Event.id.asc()).all()

    def list_absences(self, guid: str) -> List[Absence]:
        """Absences declared for an event, oldest first."""
        event = self.get_by_guid(guid)
        return (
            self.db.query(Absence)
            .filter(Absence.event_id == event.id)
            .order_by(Absence.created_at.asc(), Absence.id.asc())
            .all()
        )

    # =========================================================================
    # Creation
    # =========================================================================

    def create_event(self, data: EventCreate, actor: Actor) -> Event:
        """
        Create an event with its full roster.

        All slots start FREE. The roster is validated as a whole before
        anything is written.

        Args:
            data: Event fields plus squads and their slots
            actor: Acting user (becomes the event creator)

        Returns:
            Created Event

        Raises:
            PermissionDeniedError: If the actor is not an admin or clan leader
            ValidationError: If there are no squads or a squad has no slots
        """
        permissions = PermissionEvaluator(actor)
        permissions.require(
            permissions.can_create_events(),
            "Only admins and clan leaders can create events",
        )
        self._validate_roster(data.squads)

        event = Event(
            name=data.name,
            description=data.description,
            briefing=data.briefing,
            game_type=data.game_type,
            status=EventStatus.ACTIVE,
            scheduled_date=data.scheduled_date,
            creator_id=actor.user_id,
        )
        event.squads = self._build_squads(data.squads)

        self._persist_new_event(event, actor, template_guid=None)

        logger.info(
            f"Created event: {event.name} ({event.guid})",
            extra={"squads": len(data.squads), "slots": event.total_slots},
        )
        return event

    def create_event_from_template(
        self, template_guid: str, data: EventFromTemplate, actor: Actor
    ) -> Event:
        """
        Create an event reusing the squad/slot shape of an existing event.

        Only names, order and roles are copied. Every slot of the new event
        is FREE whatever the template's occupancy is.

        Args:
            template_guid: GUID of the event to copy the roster from
            data: Name, date and optional overrides for the new event
            actor: Acting user (becomes the event creator)

        Raises:
            NotFoundError: If the template doesn't exist
            PermissionDeniedError: If the actor is not an admin or clan leader
            ValidationError: If the template roster is empty
        """
        permissions = PermissionEvaluator(actor)
        permissions.require(
            permissions.can_create_events(),
            "Only admins and clan leaders can create events",
        )
        template = self.get_by_guid(template_guid)

        shape = [
            SquadCreate(
                name=squad.name,
                order=squad.order,
                slots=[SlotSpec(role=slot.role, order=slot.order) for slot in squad.slots],
            )
            for squad in template.squads
        ]
        self._validate_roster(shape)

        event = Event(
            name=data.name,
            description=data.description if data.description is not None else template.description,
            briefing=data.briefing if data.briefing is not None else template.briefing,
            game_type=data.game_type or template.game_type,
            status=EventStatus.ACTIVE,
            scheduled_date=data.scheduled_date,
            creator_id=actor.user_id,
        )
        event.squads = self._build_squads(shape)

        self._persist_new_event(event, actor, template_guid=template.guid)

        logger.info(
            f"Created event {event.guid} from template {template.guid}",
            extra={"squads": len(shape), "slots": event.total_slots},
        )
        return event

    # =========================================================================
    # Mutations
    # =========================================================================

    def update_event(self, guid: str, data: EventUpdate, actor: Actor) -> Event:
        """
        Update event fields.

        Raises:
            NotFoundError: If event doesn't exist
            PermissionDeniedError: If the actor cannot manage the event
            ValidationError: If no field is supplied or a required field is null
        """
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        for required in ("name", "game_type", "scheduled_date"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be null", field=required)

        event_id = self.get_by_guid(guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            permissions = PermissionEvaluator(actor)
            permissions.require(
                permissions.can_manage_event(event),
                "Only the creator, a leader of the creator's clan or an admin can edit this event",
            )

            for field, value in changes.items():
                setattr(event, field, value)

            self.audit.record(
                AuditAction.EVENT_UPDATED, event, actor,
                EventUpdatedDetails(changed_fields=sorted(changes)),
                event_id=event.id,
            )

        logger.info(f"Updated event {event.guid}: {', '.join(sorted(changes))}")
        return event

    def change_status(self, guid: str, new_status: EventStatus, actor: Actor) -> Event:
        """
        Toggle an event between ACTIVE and INACTIVE.

        Setting the status the event already has is a no-op.

        Raises:
            NotFoundError: If event doesn't exist
            PermissionDeniedError: If the actor cannot manage the event
            InvalidStateError: If re-activating an event whose date has passed
        """
        event_id = self.get_by_guid(guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            permissions = PermissionEvaluator(actor)
            permissions.require(
                permissions.can_manage_event(event),
                "Only the creator, a leader of the creator's clan or an admin can change this event's status",
            )

            previous = event.status
            if previous == new_status:
                return event

            if new_status == EventStatus.ACTIVE and event.scheduled_date < datetime.utcnow():
                raise InvalidStateError("Cannot re-activate an event whose date has already passed")

            event.status = new_status

            self.audit.record(
                AuditAction.EVENT_STATUS_CHANGED, event, actor,
                EventStatusChangedDetails(
                    previous_status=previous.value, new_status=new_status.value
                ),
                event_id=event.id,
            )

        logger.info(f"Event {event.guid} status: {previous.value} -> {new_status.value}")
        return event

    def delete_event(self, guid: str, actor: Actor) -> EventDeleteResponse:
        """
        Delete an event and everything it owns.

        Returns:
            Counts of cascaded squads, slots and communication nodes

        Raises:
            NotFoundError: If event doesn't exist
            PermissionDeniedError: If the actor cannot manage the event
        """
        event_id = self.get_by_guid(guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            permissions = PermissionEvaluator(actor)
            permissions.require(
                permissions.can_manage_event(event),
                "Only the creator, a leader of the creator's clan or an admin can delete this event",
            )

            result = EventDeleteResponse(
                guid=event.guid,
                deleted_squads=len(event.squads),
                deleted_slots=event.total_slots,
                deleted_nodes=(
                    self.db.query(CommunicationNode)
                    .filter(CommunicationNode.event_id == event.id)
                    .count()
                ),
            )

            self.audit.record(
                AuditAction.EVENT_DELETED, event, actor,
                EventDeletedDetails(
                    name=event.name,
                    deleted_squads=result.deleted_squads,
                    deleted_slots=result.deleted_slots,
                    deleted_nodes=result.deleted_nodes,
                ),
                event_id=event.id,
            )
            self.db.delete(event)

        self.locks.discard(event_id)

        logger.info(
            f"Deleted event {result.guid}",
            extra={
                "deleted_squads": result.deleted_squads,
                "deleted_slots": result.deleted_slots,
                "deleted_nodes": result.deleted_nodes,
            },
        )
        return result

    def expire_past_events(self, event_ids: Optional[List[int]] = None) -> int:
        """
        Switch ACTIVE events whose scheduled date has passed to INACTIVE.

        Runs before every list and get, so a finished event stops taking
        slot changes without anyone toggling it. Each event is flipped in
        its own unit of work and audited without an acting user.

        Args:
            event_ids: Restrict the sweep to these events (all when omitted)

        Returns:
            Number of events switched off
        """
        query = self.db.query(Event.id).filter(
            Event.status == EventStatus.ACTIVE,
            Event.scheduled_date < datetime.utcnow(),
        )
        if event_ids is not None:
            query = query.filter(Event.id.in_(event_ids))

        expired = 0
        for (event_id,) in query.all():
            with event_unit_of_work(self.db, self.locks, event_id) as event:
                # Another request may have expired or re-dated it meanwhile
                if not (event.is_active and event.has_taken_place):
                    continue
                event.status = EventStatus.INACTIVE
                self.audit.record(
                    AuditAction.EVENT_STATUS_CHANGED, event, None,
                    EventStatusChangedDetails(
                        previous_status=EventStatus.ACTIVE.value,
                        new_status=EventStatus.INACTIVE.value,
                        expired=True,
                    ),
                    event_id=event.id,
                )
            expired += 1

        if expired:
            logger.info(f"Expired {expired} past event(s)")
        return expired

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _validate_roster(squads: List[SquadCreate]) -> None:
        if not squads:
            raise ValidationError("An event needs at least one squad", field="squads")
        for squad in squads:
            if not squad.slots:
                raise ValidationError(
                    f"Squad '{squad.name}' needs at least one slot", field="squads"
                )

    @staticmethod
    def _build_squads(specs: List[SquadCreate]) -> List[Squad]:
        squads = []
        for index, spec in enumerate(specs):
            squad = Squad(name=spec.name, order=spec.order if spec.order is not None else index)
            squad.slots = [
                Slot(role=slot.role, order=slot.order if slot.order is not None else i)
                for i, slot in enumerate(spec.slots)
            ]
            squads.append(squad)
        return squads

    def _persist_new_event(
        self, event: Event, actor: Actor, template_guid: Optional[str]
    ) -> None:
        try:
            self.db.add(event)
            self.db.flush()
            self.audit.record(
                AuditAction.EVENT_CREATED, event, actor,
                EventCreatedDetails(
                    name=event.name,
                    game_type=event.game_type.value,
                    squad_count=len(event.squads),
                    total_slots=event.total_slots,
                    template_guid=template_guid,
                ),
                event_id=event.id,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(event)
