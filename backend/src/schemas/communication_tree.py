"""
Pydantic schemas for the per-event communication tree.

Nodes reference their parent by GUID. parent_guid may be set to null on
update to detach a node and make it a root.
"""

from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from backend.src.models import CommunicationNode
from backend.src.models.communication_node import NodeType


class NodeCreate(BaseModel):
    """
    Schema for creating a communication node.

    Example:
        >>> NodeCreate(name="ALPHA", type=NodeType.SQUAD, frequency="42.00",
        ...            parent_guid="cnd_01hgw2bbg...")
    """

    name: str = Field(..., min_length=1, max_length=100)
    frequency: Optional[str] = Field(default=None, max_length=20)
    type: NodeType = Field(default=NodeType.SQUAD)
    parent_guid: Optional[str] = None
    position_x: float = 0
    position_y: float = 0
    order: int = Field(default=0, ge=0)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Name cannot be empty or whitespace")
        return v.strip()


class NodeUpdate(BaseModel):
    """
    Partial node update.

    Fields left out are unchanged; parent_guid explicitly set to null
    detaches the node.
    """

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    frequency: Optional[str] = Field(default=None, max_length=20)
    type: Optional[NodeType] = None
    parent_guid: Optional[str] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    order: Optional[int] = Field(default=None, ge=0)


class NodePosition(BaseModel):
    guid: str
    x: float
    y: float


class NodePositionsUpdate(BaseModel):
    positions: List[NodePosition]


class NodeResponse(BaseModel):
    guid: str
    name: str
    frequency: Optional[str] = None
    type: NodeType
    parent_guid: Optional[str] = None
    position_x: float
    position_y: float
    order: int


class TreeResponse(BaseModel):
    event_guid: str
    nodes: List[NodeResponse]


class NodeDeleteResponse(BaseModel):
    guid: str
    deleted_descendants: int


class PositionsUpdateResponse(BaseModel):
    updated: int


def node_to_response(node: CommunicationNode) -> NodeResponse:
    return NodeResponse(
        guid=node.guid,
        name=node.name,
        frequency=node.frequency,
        type=node.type,
        parent_guid=node.parent.guid if node.parent else None,
        position_x=node.position_x,
        position_y=node.position_y,
        order=node.order,
    )
