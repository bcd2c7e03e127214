"""
Pydantic schemas for API request/response validation.

This module exports all schema classes for use in API endpoints.
"""

from backend.src.schemas.event import (
    EventCreate,
    EventFromTemplate,
    EventUpdate,
    EventStatusUpdate,
    AbsenceCreate,
    EventResponse,
    EventListItem,
    EventListResponse,
    EventDeleteResponse,
    AbsenceResponse,
    MarkAbsenceResponse,
    event_to_response,
    event_to_list_item,
    absence_to_response,
)
from backend.src.schemas.roster import (
    SlotSpec,
    SquadCreate,
    SquadUpdate,
    SlotCreate,
    SlotUpdate,
    AssignRequest,
    AdminAssignRequest,
    UserSummary,
    SquadSummary,
    EventSummary,
    SlotResponse,
    SlotAssignmentResponse,
    SquadResponse,
    SquadDeleteResponse,
    user_to_summary,
    event_to_summary,
    slot_to_response,
    slot_to_assignment_response,
    squad_to_response,
)
from backend.src.schemas.communication_tree import (
    NodeCreate,
    NodeUpdate,
    NodePosition,
    NodePositionsUpdate,
    NodeResponse,
    TreeResponse,
    NodeDeleteResponse,
    PositionsUpdateResponse,
    node_to_response,
)
from backend.src.schemas.audit import (
    AuditDetails,
    AUDIT_DETAILS_BY_ACTION,
    check_audit_details,
    parse_audit_details,
)

__all__ = [
    # Event schemas
    "EventCreate",
    "EventFromTemplate",
    "EventUpdate",
    "EventStatusUpdate",
    "AbsenceCreate",
    "EventResponse",
    "EventListItem",
    "EventListResponse",
    "EventDeleteResponse",
    "AbsenceResponse",
    "MarkAbsenceResponse",
    "event_to_response",
    "event_to_list_item",
    "absence_to_response",
    # Roster schemas
    "SlotSpec",
    "SquadCreate",
    "SquadUpdate",
    "SlotCreate",
    "SlotUpdate",
    "AssignRequest",
    "AdminAssignRequest",
    "UserSummary",
    "SquadSummary",
    "EventSummary",
    "SlotResponse",
    "SlotAssignmentResponse",
    "SquadResponse",
    "SquadDeleteResponse",
    "user_to_summary",
    "event_to_summary",
    "slot_to_response",
    "slot_to_assignment_response",
    "squad_to_response",
    # Communication tree schemas
    "NodeCreate",
    "NodeUpdate",
    "NodePosition",
    "NodePositionsUpdate",
    "NodeResponse",
    "TreeResponse",
    "NodeDeleteResponse",
    "PositionsUpdateResponse",
    "node_to_response",
    # Audit detail schemas
    "AuditDetails",
    "AUDIT_DETAILS_BY_ACTION",
    "check_audit_details",
    "parse_audit_details",
]
