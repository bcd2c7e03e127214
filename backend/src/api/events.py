"""
Events API endpoints.

Provides:
- List events (filter by status, game, upcoming)
- Get event details with its roster
- Create events (from scratch or from a template event)
- Update event fields, toggle status, delete
- Mark absences and list them
- Add squads to an event

Design:
- Uses dependency injection for services
- Service errors are mapped to HTTP status codes by the application's
  exception handlers
- All endpoints use GUID format (evt_xxx) for identifiers
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import get_current_actor
from backend.src.models.event import EventStatus, GameType
from backend.src.schemas.event import (
    AbsenceCreate,
    AbsenceResponse,
    EventCreate,
    EventDeleteResponse,
    EventFromTemplate,
    EventListResponse,
    EventResponse,
    EventStatusUpdate,
    EventUpdate,
    MarkAbsenceResponse,
    absence_to_response,
    event_to_list_item,
    event_to_response,
)
from backend.src.schemas.roster import SquadCreate, SquadResponse, squad_to_response
from backend.src.services.assignment_service import AssignmentService
from backend.src.services.event_service import EventService
from backend.src.services.permissions import Actor
from backend.src.services.roster_service import RosterService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/events",
    tags=["Events"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_event_service(db: Session = Depends(get_db)) -> EventService:
    """Create EventService instance with database session."""
    return EventService(db=db)


def get_roster_service(db: Session = Depends(get_db)) -> RosterService:
    """Create RosterService instance with database session."""
    return RosterService(db=db)


def get_assignment_service(db: Session = Depends(get_db)) -> AssignmentService:
    """Create AssignmentService instance with database session."""
    return AssignmentService(db=db)


# ============================================================================
# Events
# ============================================================================


@router.get(
    "",
    response_model=EventListResponse,
    summary="List events",
)
async def list_events(
    status_filter: Optional[EventStatus] = Query(
        default=EventStatus.ACTIVE, alias="status", description="Filter by status"
    ),
    any_status: bool = Query(default=False, description="Ignore the status filter"),
    game_type: Optional[GameType] = Query(default=None),
    upcoming: bool = Query(default=False, description="Only events from now on"),
    actor: Actor = Depends(get_current_actor),
    event_service: EventService = Depends(get_event_service),
) -> EventListResponse:
    """
    List events ordered by scheduled date.

    Defaults to ACTIVE events.

    Example:
        GET /api/events?game_type=arma_3&upcoming=true
    """
    events = event_service.list(
        status=None if any_status else status_filter,
        game_type=game_type,
        upcoming=upcoming,
    )
    return EventListResponse(
        events=[event_to_list_item(e) for e in events],
        total=len(events),
    )


@router.post(
    "",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create event",
)
async def create_event(
    data: EventCreate,
    actor: Actor = Depends(get_current_actor),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    """
    Create an event together with its squads and slots.

    Example:
        POST /api/events
        {
          "name": "Operation Dawn",
          "game_type": "arma_3",
          "scheduled_date": "2026-11-01T20:00:00",
          "squads": [{"name": "Alpha", "slots": [{"role": "Leader"}]}]
        }
    """
    event = event_service.create_event(data, actor)
    return event_to_response(event)


@router.post(
    "/{guid}/clone",
    response_model=EventResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create event from template",
)
async def create_event_from_template(
    guid: str,
    data: EventFromTemplate,
    actor: Actor = Depends(get_current_actor),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    """Create a new event reusing the roster shape of event {guid}."""
    event = event_service.create_event_from_template(guid, data, actor)
    return event_to_response(event)


@router.get(
    "/{guid}",
    response_model=EventResponse,
    summary="Get event",
)
async def get_event(
    guid: str,
    actor: Actor = Depends(get_current_actor),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    return event_to_response(event_service.get_by_guid(guid))


@router.patch(
    "/{guid}",
    response_model=EventResponse,
    summary="Update event",
)
async def update_event(
    guid: str,
    data: EventUpdate,
    actor: Actor = Depends(get_current_actor),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    event = event_service.update_event(guid, data, actor)
    return event_to_response(event)


@router.put(
    "/{guid}/status",
    response_model=EventResponse,
    summary="Change event status",
)
async def change_event_status(
    guid: str,
    data: EventStatusUpdate,
    actor: Actor = Depends(get_current_actor),
    event_service: EventService = Depends(get_event_service),
) -> EventResponse:
    event = event_service.change_status(guid, data.status, actor)
    return event_to_response(event)


@router.delete(
    "/{guid}",
    response_model=EventDeleteResponse,
    summary="Delete event",
)
async def delete_event(
    guid: str,
    actor: Actor = Depends(get_current_actor),
    event_service: EventService = Depends(get_event_service),
) -> EventDeleteResponse:
    """Delete an event with its squads, slots, communication tree and absences."""
    return event_service.delete_event(guid, actor)


# ============================================================================
# Absences
# ============================================================================


@router.post(
    "/{guid}/absence",
    response_model=MarkAbsenceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Mark absence",
)
async def mark_absence(
    guid: str,
    data: AbsenceCreate,
    actor: Actor = Depends(get_current_actor),
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> MarkAbsenceResponse:
    """
    Declare that a user (the caller by default) will not attend.

    Any slot the user holds in the event is freed.
    """
    result = assignment_service.mark_absence(
        guid, actor, user_guid=data.user_guid, reason=data.reason
    )
    return MarkAbsenceResponse(
        absence=absence_to_response(result.absence),
        slot_freed=result.slot_freed,
        freed_slot_guid=result.freed_slot.guid if result.freed_slot else None,
    )


@router.get(
    "/{guid}/absences",
    response_model=List[AbsenceResponse],
    summary="List absences",
)
async def list_absences(
    guid: str,
    actor: Actor = Depends(get_current_actor),
    event_service: EventService = Depends(get_event_service),
) -> List[AbsenceResponse]:
    return [absence_to_response(a) for a in event_service.list_absences(guid)]


# ============================================================================
# Squads
# ============================================================================


@router.post(
    "/{guid}/squads",
    response_model=SquadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add squad",
)
async def create_squad(
    guid: str,
    data: SquadCreate,
    actor: Actor = Depends(get_current_actor),
    roster_service: RosterService = Depends(get_roster_service),
) -> SquadResponse:
    squad = roster_service.create_squad(guid, data, actor)
    logger.info(f"Squad {squad.guid} added to event {guid}")
    return squad_to_response(squad)
