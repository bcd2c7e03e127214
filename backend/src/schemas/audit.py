"""
Audit entry detail schemas.

Each AuditAction has exactly one pydantic model describing its details
payload. Payloads are validated before they are written, stored as JSON,
and parsed back into the same model on read, so audit records stay
type-checked and queryable rather than opaque text.
"""

from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, Field

from backend.src.models.audit_entry import AuditAction


class AuditDetails(BaseModel):
    """Base class for per-action audit payloads."""

    model_config = {"extra": "forbid"}


# ============================================================================
# Event lifecycle
# ============================================================================


class EventCreatedDetails(AuditDetails):
    name: str
    game_type: str
    squad_count: int = Field(..., ge=0)
    total_slots: int = Field(..., ge=0)
    template_guid: Optional[str] = Field(
        default=None, description="Template event the roster shape was cloned from"
    )


class EventUpdatedDetails(AuditDetails):
    changed_fields: List[str]


class EventStatusChangedDetails(AuditDetails):
    previous_status: str
    new_status: str
    expired: bool = Field(
        default=False, description="Switched off automatically because the event date passed"
    )


class EventDeletedDetails(AuditDetails):
    name: str
    deleted_squads: int = Field(..., ge=0)
    deleted_slots: int = Field(..., ge=0)
    deleted_nodes: int = Field(..., ge=0)


# ============================================================================
# Roster
# ============================================================================


class SquadCreatedDetails(AuditDetails):
    squad_name: str
    slot_count: int = Field(..., ge=0)


class SquadUpdatedDetails(AuditDetails):
    squad_name: str
    changed_fields: List[str]


class SquadDeletedDetails(AuditDetails):
    squad_name: str
    deleted_slots: int = Field(..., ge=0)
    released_user_guids: List[str] = Field(default_factory=list)


class SlotCreatedDetails(AuditDetails):
    role: str
    squad_name: str


class SlotUpdatedDetails(AuditDetails):
    role: str
    changed_fields: List[str]


class SlotDeletedDetails(AuditDetails):
    role: str
    squad_name: str


# ============================================================================
# Assignment
# ============================================================================


class SlotAssignedDetails(AuditDetails):
    assigned_user_guid: str
    slot_role: str
    squad_name: str
    previous_slot_guid: Optional[str] = Field(
        default=None, description="Slot released automatically by this assignment"
    )
    displaced_user_guid: Optional[str] = Field(
        default=None, description="Occupant removed by an admin override"
    )
    admin_override: bool = False


class SlotUnassignedDetails(AuditDetails):
    unassigned_user_guid: str
    slot_role: str
    admin_override: bool = False


class AbsenceMarkedDetails(AuditDetails):
    absent_user_guid: str
    reason: Optional[str] = None
    slot_freed: bool
    freed_slot_guid: Optional[str] = None


# ============================================================================
# Communication tree
# ============================================================================


class CommNodeCreatedDetails(AuditDetails):
    node_name: str
    node_type: str
    parent_guid: Optional[str] = None


class CommNodeUpdatedDetails(AuditDetails):
    node_name: str
    changed_fields: List[str]


class CommNodeDeletedDetails(AuditDetails):
    node_name: str
    deleted_descendants: int = Field(..., ge=0)


class CommNodePositionsUpdatedDetails(AuditDetails):
    node_count: int = Field(..., ge=0)


class CommTreeAutoGeneratedDetails(AuditDetails):
    squad_count: int = Field(..., ge=0)
    node_count: int = Field(..., ge=0)


AUDIT_DETAILS_BY_ACTION: Dict[AuditAction, Type[AuditDetails]] = {
    AuditAction.EVENT_CREATED: EventCreatedDetails,
    AuditAction.EVENT_UPDATED: EventUpdatedDetails,
    AuditAction.EVENT_STATUS_CHANGED: EventStatusChangedDetails,
    AuditAction.EVENT_DELETED: EventDeletedDetails,
    AuditAction.SQUAD_CREATED: SquadCreatedDetails,
    AuditAction.SQUAD_UPDATED: SquadUpdatedDetails,
    AuditAction.SQUAD_DELETED: SquadDeletedDetails,
    AuditAction.SLOT_CREATED: SlotCreatedDetails,
    AuditAction.SLOT_UPDATED: SlotUpdatedDetails,
    AuditAction.SLOT_DELETED: SlotDeletedDetails,
    AuditAction.SLOT_ASSIGNED: SlotAssignedDetails,
    AuditAction.SLOT_UNASSIGNED: SlotUnassignedDetails,
    AuditAction.ABSENCE_MARKED: AbsenceMarkedDetails,
    AuditAction.COMM_NODE_CREATED: CommNodeCreatedDetails,
    AuditAction.COMM_NODE_UPDATED: CommNodeUpdatedDetails,
    AuditAction.COMM_NODE_DELETED: CommNodeDeletedDetails,
    AuditAction.COMM_NODE_POSITIONS_UPDATED: CommNodePositionsUpdatedDetails,
    AuditAction.COMM_TREE_AUTO_GENERATED: CommTreeAutoGeneratedDetails,
}


def check_audit_details(action: AuditAction, details: AuditDetails) -> None:
    """
    Ensure a payload has the model registered for its action.

    Raises:
        TypeError: If the payload type does not match the action
    """
    expected = AUDIT_DETAILS_BY_ACTION[action]
    if not isinstance(details, expected):
        raise TypeError(
            f"{action.value} expects {expected.__name__}, got {type(details).__name__}"
        )


def parse_audit_details(action: AuditAction, raw: Dict[str, Any]) -> AuditDetails:
    """Parse a stored JSON payload into the model registered for action."""
    return AUDIT_DETAILS_BY_ACTION[action].model_validate(raw or {})
