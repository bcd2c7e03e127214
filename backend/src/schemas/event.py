"""
Pydantic schemas for event API request/response validation.

Provides data validation and serialization for:
- Event creation (with its full squad/slot roster)
- Event creation from a template event
- Event updates and status changes
- Event responses with derived occupancy counters
- Absence requests and responses

Design:
- Roster completeness (>=1 squad, >=1 slot per squad) is enforced by the
  service so the whole batch is rejected before any write
- GUIDs are exposed via guid property, never internal IDs
- Briefing HTML is sanitized on input against a rich-text allow-list
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from backend.src.models import Absence, Event
from backend.src.models.event import EventStatus, GameType
from backend.src.schemas.roster import (
    SquadCreate,
    SquadResponse,
    UserSummary,
    squad_to_response,
    user_to_summary,
)
from backend.src.utils.html_sanitizer import sanitize_html


# ============================================================================
# Event Request Schemas
# ============================================================================


class EventCreate(BaseModel):
    """
    Schema for creating an event with its roster.

    Example:
        >>> EventCreate(
        ...     name="Operation Dawn",
        ...     game_type=GameType.ARMA_3,
        ...     scheduled_date=datetime(2026, 11, 1, 20, 0),
        ...     squads=[SquadCreate(name="Alpha", slots=[SlotSpec(role="Leader")])],
        ... )
    """

    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    briefing: Optional[str] = Field(default=None)
    game_type: GameType = Field(default=GameType.ARMA_3)
    scheduled_date: datetime
    squads: List[SquadCreate] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name_not_whitespace(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace")
        return v.strip()

    @field_validator("briefing")
    @classmethod
    def sanitize_briefing(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_html(v)

    model_config = {
        "json_schema_extra": {
            "example": {
                "name": "Operation Dawn",
                "game_type": "arma_3",
                "scheduled_date": "2026-11-01T20:00:00",
                "squads": [
                    {"name": "Alpha", "slots": [{"role": "Leader"}, {"role": "Rifleman"}]},
                    {"name": "Bravo", "slots": [{"role": "Medic"}]},
                ],
            }
        }
    }


class EventFromTemplate(BaseModel):
    """
    Create an event reusing the squad/slot shape of a template event.

    Occupancy is never copied. game_type, description and briefing fall back
    to the template's values when omitted.
    """

    name: str = Field(..., min_length=1, max_length=200)
    scheduled_date: datetime
    description: Optional[str] = Field(default=None, max_length=2000)
    briefing: Optional[str] = None
    game_type: Optional[GameType] = None

    @field_validator("name")
    @classmethod
    def validate_name_not_whitespace(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace")
        return v.strip()

    @field_validator("briefing")
    @classmethod
    def sanitize_briefing(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_html(v)


class EventUpdate(BaseModel):
    """Partial event update. Only provided fields are changed."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    briefing: Optional[str] = None
    game_type: Optional[GameType] = None
    scheduled_date: Optional[datetime] = None

    @field_validator("briefing")
    @classmethod
    def sanitize_briefing(cls, v: Optional[str]) -> Optional[str]:
        return sanitize_html(v)


class EventStatusUpdate(BaseModel):
    status: EventStatus


class AbsenceCreate(BaseModel):
    """
    Declare an absence.

    user_guid defaults to the acting user when omitted.
    """

    user_guid: Optional[str] = None
    reason: Optional[str] = Field(default=None, max_length=500)


# ============================================================================
# Event Response Schemas
# ============================================================================


class EventResponse(BaseModel):
    guid: str
    name: str
    description: Optional[str] = None
    briefing: Optional[str] = None
    game_type: GameType
    status: EventStatus
    scheduled_date: datetime
    creator: Optional[UserSummary] = None
    total_slots: int
    occupied_slots: int
    squads: List[SquadResponse]
    created_at: datetime
    updated_at: datetime


class EventListItem(BaseModel):
    """Event without its roster, as shown in listings."""

    guid: str
    name: str
    game_type: GameType
    status: EventStatus
    scheduled_date: datetime
    creator: Optional[UserSummary] = None
    total_slots: int
    occupied_slots: int


class EventListResponse(BaseModel):
    events: List[EventListItem]
    total: int


class EventDeleteResponse(BaseModel):
    guid: str
    deleted_squads: int
    deleted_slots: int
    deleted_nodes: int


class AbsenceResponse(BaseModel):
    guid: str
    user: UserSummary
    reason: Optional[str] = None
    created_at: datetime


class MarkAbsenceResponse(BaseModel):
    absence: AbsenceResponse
    slot_freed: bool
    freed_slot_guid: Optional[str] = None


# ============================================================================
# Builders
# ============================================================================


def event_to_response(event: Event) -> EventResponse:
    return EventResponse(
        guid=event.guid,
        name=event.name,
        description=event.description,
        briefing=event.briefing,
        game_type=event.game_type,
        status=event.status,
        scheduled_date=event.scheduled_date,
        creator=user_to_summary(event.creator),
        total_slots=event.total_slots,
        occupied_slots=event.occupied_slots,
        squads=[squad_to_response(squad) for squad in event.squads],
        created_at=event.created_at,
        updated_at=event.updated_at,
    )


def event_to_list_item(event: Event) -> EventListItem:
    return EventListItem(
        guid=event.guid,
        name=event.name,
        game_type=event.game_type,
        status=event.status,
        scheduled_date=event.scheduled_date,
        creator=user_to_summary(event.creator),
        total_slots=event.total_slots,
        occupied_slots=event.occupied_slots,
    )


def absence_to_response(absence: Absence) -> AbsenceResponse:
    return AbsenceResponse(
        guid=absence.guid,
        user=user_to_summary(absence.user),
        reason=absence.reason,
        created_at=absence.created_at,
    )
