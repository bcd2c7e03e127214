"""
Slots API endpoints.

Provides:
- Update / delete a slot
- Self-service assign and unassign
- Admin / clan-leader assign and unassign (ignore event status, may
  displace the current occupant)

Every assignment endpoint returns the slot with its occupant, squad and
event summaries.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import get_current_actor
from backend.src.schemas.roster import (
    AdminAssignRequest,
    AssignRequest,
    SlotAssignmentResponse,
    SlotResponse,
    SlotUpdate,
    slot_to_assignment_response,
    slot_to_response,
)
from backend.src.services.assignment_service import AssignmentService
from backend.src.services.permissions import Actor
from backend.src.services.roster_service import RosterService
from backend.src.utils.logging_config import get_logger


logger = get_logger("api")

router = APIRouter(
    prefix="/slots",
    tags=["Roster"],
)


# ============================================================================
# Dependencies
# ============================================================================


def get_roster_service(db: Session = Depends(get_db)) -> RosterService:
    """Create RosterService instance with database session."""
    return RosterService(db=db)


def get_assignment_service(db: Session = Depends(get_db)) -> AssignmentService:
    """Create AssignmentService instance with database session."""
    return AssignmentService(db=db)


# ============================================================================
# Slot CRUD
# ============================================================================


@router.patch(
    "/{guid}",
    response_model=SlotResponse,
    summary="Update slot",
)
async def update_slot(
    guid: str,
    data: SlotUpdate,
    actor: Actor = Depends(get_current_actor),
    roster_service: RosterService = Depends(get_roster_service),
) -> SlotResponse:
    return slot_to_response(roster_service.update_slot(guid, data, actor))


@router.delete(
    "/{guid}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete slot",
)
async def delete_slot(
    guid: str,
    actor: Actor = Depends(get_current_actor),
    roster_service: RosterService = Depends(get_roster_service),
) -> Response:
    """Delete a FREE slot. Occupied slots must be unassigned first (409)."""
    roster_service.delete_slot(guid, actor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ============================================================================
# Assignment
# ============================================================================


@router.post(
    "/{guid}/assign",
    response_model=SlotAssignmentResponse,
    summary="Assign slot",
)
async def assign_slot(
    guid: str,
    data: AssignRequest,
    actor: Actor = Depends(get_current_actor),
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> SlotAssignmentResponse:
    """
    Take a free slot, for yourself or (clan leaders, admins) another user.

    Any other slot the user holds in the same event is released.

    Example:
        POST /api/slots/slt_01hgw2bbg.../assign
        {}
    """
    user_guid = data.user_guid or actor.user_guid
    slot = assignment_service.assign(guid, user_guid, actor)
    return slot_to_assignment_response(slot)


@router.post(
    "/{guid}/unassign",
    response_model=SlotAssignmentResponse,
    summary="Unassign slot",
)
async def unassign_slot(
    guid: str,
    actor: Actor = Depends(get_current_actor),
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> SlotAssignmentResponse:
    slot = assignment_service.unassign(guid, actor)
    return slot_to_assignment_response(slot)


@router.post(
    "/{guid}/admin-assign",
    response_model=SlotAssignmentResponse,
    summary="Admin assign slot",
)
async def admin_assign_slot(
    guid: str,
    data: AdminAssignRequest,
    actor: Actor = Depends(get_current_actor),
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> SlotAssignmentResponse:
    slot = assignment_service.admin_assign(guid, data.user_guid, actor)
    return slot_to_assignment_response(slot)


@router.post(
    "/{guid}/admin-unassign",
    response_model=SlotAssignmentResponse,
    summary="Admin unassign slot",
)
async def admin_unassign_slot(
    guid: str,
    actor: Actor = Depends(get_current_actor),
    assignment_service: AssignmentService = Depends(get_assignment_service),
) -> SlotAssignmentResponse:
    slot = assignment_service.admin_unassign(guid, actor)
    return slot_to_assignment_response(slot)
