"""
Pydantic schemas for squads, slots and slot assignment.

Provides data validation and serialization for:
- Squad and slot creation/update requests
- Assignment requests (self-service and admin override)
- Slot responses with occupant, squad and event summaries

Design:
- Slot status is derived from occupancy and only ever appears in responses
- GUIDs are exposed via guid property, never internal IDs
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from backend.src.models import Event, Slot, Squad, User
from backend.src.models.event import EventStatus
from backend.src.models.slot import SlotStatus
from backend.src.models.user import UserRole


def _strip_required(v: str) -> str:
    if not v.strip():
        raise ValueError("Value cannot be empty or whitespace")
    return v.strip()


# ============================================================================
# Request Schemas
# ============================================================================


class SlotSpec(BaseModel):
    """A slot inside a squad creation payload."""

    role: str = Field(..., min_length=1, max_length=100, description="Role label, e.g. Medic")
    order: Optional[int] = Field(default=None, ge=0, description="Defaults to list index")

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return _strip_required(v)


class SquadCreate(BaseModel):
    """
    Schema for creating a squad together with its slots.

    Example:
        >>> SquadCreate(name="Alpha", slots=[SlotSpec(role="Leader")])
    """

    name: str = Field(..., min_length=1, max_length=100)
    order: Optional[int] = Field(
        default=None, ge=0, description="Defaults to one past the highest order in the event"
    )
    slots: List[SlotSpec] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Alpha",
                "slots": [{"role": "Leader"}, {"role": "Rifleman"}],
            }
        }
    }


class SquadUpdate(BaseModel):
    """Partial squad update. At least one field must be supplied."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    order: Optional[int] = Field(default=None, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required(v)


class SlotCreate(BaseModel):
    """Add a single slot to an existing squad."""

    role: str = Field(..., min_length=1, max_length=100)
    order: Optional[int] = Field(
        default=None, ge=0, description="Defaults to one past the highest order in the squad"
    )

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        return _strip_required(v)


class SlotUpdate(BaseModel):
    """Partial slot update. At least one field must be supplied."""

    role: Optional[str] = Field(default=None, min_length=1, max_length=100)
    order: Optional[int] = Field(default=None, ge=0)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _strip_required(v)


class AssignRequest(BaseModel):
    """
    Assign a user to a slot.

    user_guid defaults to the acting user (self-service) when omitted.
    """

    user_guid: Optional[str] = Field(default=None, description="User to assign (usr_xxx)")


class AdminAssignRequest(BaseModel):
    """Admin/clan-leader assignment of a specific user."""

    user_guid: str = Field(..., description="User to assign (usr_xxx)")


# ============================================================================
# Response Schemas
# ============================================================================


class UserSummary(BaseModel):
    guid: str
    nickname: str
    role: UserRole
    clan_guid: Optional[str] = None
    clan_tag: Optional[str] = None


class SquadSummary(BaseModel):
    guid: str
    name: str
    order: int


class EventSummary(BaseModel):
    guid: str
    name: str
    status: EventStatus
    scheduled_date: datetime


class SlotResponse(BaseModel):
    """Slot as listed inside its squad."""

    guid: str
    role: str
    order: int
    status: SlotStatus
    user: Optional[UserSummary] = None


class SlotAssignmentResponse(SlotResponse):
    """Slot returned by assignment operations, with its squad and event."""

    squad: SquadSummary
    event: EventSummary


class SquadResponse(BaseModel):
    guid: str
    name: str
    order: int
    slots: List[SlotResponse]


class SquadDeleteResponse(BaseModel):
    guid: str
    deleted_slots: int


# ============================================================================
# Builders
# ============================================================================


def user_to_summary(user: Optional[User]) -> Optional[UserSummary]:
    if user is None:
        return None
    return UserSummary(
        guid=user.guid,
        nickname=user.nickname,
        role=user.role,
        clan_guid=user.clan.guid if user.clan else None,
        clan_tag=user.clan.tag if user.clan else None,
    )


def event_to_summary(event: Event) -> EventSummary:
    return EventSummary(
        guid=event.guid,
        name=event.name,
        status=event.status,
        scheduled_date=event.scheduled_date,
    )


def slot_to_response(slot: Slot) -> SlotResponse:
    return SlotResponse(
        guid=slot.guid,
        role=slot.role,
        order=slot.order,
        status=slot.status,
        user=user_to_summary(slot.user),
    )


def slot_to_assignment_response(slot: Slot) -> SlotAssignmentResponse:
    """Slot with the squad/event context shown after an assignment change."""
    squad = slot.squad
    return SlotAssignmentResponse(
        **slot_to_response(slot).model_dump(),
        squad=SquadSummary(guid=squad.guid, name=squad.name, order=squad.order),
        event=event_to_summary(squad.event),
    )


def squad_to_response(squad: Squad) -> SquadResponse:
    return SquadResponse(
        guid=squad.guid,
        name=squad.name,
        order=squad.order,
        slots=[slot_to_response(slot) for slot in squad.slots],
    )
