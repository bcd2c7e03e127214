"""
Squads API endpoints.

Provides:
- Rename / reorder a squad
- Delete a squad with all its slots
- Add a slot to a squad

Squads are created through POST /api/events/{guid}/squads.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import get_current_actor
from backend.src.schemas.roster import (
    SlotCreate,
    SlotResponse,
    SquadDeleteResponse,
    SquadResponse,
    SquadUpdate,
    slot_to_response,
    squad_to_response,
)
from backend.src.services.permissions import Actor
from backend.src.services.roster_service import RosterService


router = APIRouter(
    prefix="/squads",
    tags=["Roster"],
)


def get_roster_service(db: Session = Depends(get_db)) -> RosterService:
    """Create RosterService instance with database session."""
    return RosterService(db=db)


@router.patch(
    "/{guid}",
    response_model=SquadResponse,
    summary="Update squad",
)
async def update_squad(
    guid: str,
    data: SquadUpdate,
    actor: Actor = Depends(get_current_actor),
    roster_service: RosterService = Depends(get_roster_service),
) -> SquadResponse:
    return squad_to_response(roster_service.update_squad(guid, data, actor))


@router.delete(
    "/{guid}",
    response_model=SquadDeleteResponse,
    summary="Delete squad",
)
async def delete_squad(
    guid: str,
    actor: Actor = Depends(get_current_actor),
    roster_service: RosterService = Depends(get_roster_service),
) -> SquadDeleteResponse:
    """Delete a squad and every slot in it, occupied or not."""
    return roster_service.delete_squad(guid, actor)


@router.post(
    "/{guid}/slots",
    response_model=SlotResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add slot",
)
async def create_slot(
    guid: str,
    data: SlotCreate,
    actor: Actor = Depends(get_current_actor),
    roster_service: RosterService = Depends(get_roster_service),
) -> SlotResponse:
    return slot_to_response(roster_service.create_slot(guid, data, actor))
