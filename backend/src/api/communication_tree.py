"""
Communication tree API endpoints.

Provides, per event:
- Get the tree (flat node list ordered by order)
- Create / update / delete nodes
- Bulk position update (canvas drag and drop)
- Auto-generate the tree from the squad list
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from backend.src.db.database import get_db
from backend.src.middleware.auth import get_current_actor
from backend.src.schemas.communication_tree import (
    NodeCreate,
    NodeDeleteResponse,
    NodePositionsUpdate,
    NodeResponse,
    NodeUpdate,
    PositionsUpdateResponse,
    TreeResponse,
    node_to_response,
)
from backend.src.services.communication_tree_service import CommunicationTreeService
from backend.src.services.permissions import Actor


router = APIRouter(
    prefix="/events/{event_guid}/communication-tree",
    tags=["Communication Tree"],
)


def get_tree_service(db: Session = Depends(get_db)) -> CommunicationTreeService:
    """Create CommunicationTreeService instance with database session."""
    return CommunicationTreeService(db=db)


@router.get(
    "",
    response_model=TreeResponse,
    summary="Get communication tree",
)
async def get_tree(
    event_guid: str,
    actor: Actor = Depends(get_current_actor),
    tree_service: CommunicationTreeService = Depends(get_tree_service),
) -> TreeResponse:
    nodes = tree_service.get_tree(event_guid)
    return TreeResponse(event_guid=event_guid, nodes=[node_to_response(n) for n in nodes])


@router.post(
    "/nodes",
    response_model=NodeResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create node",
)
async def create_node(
    event_guid: str,
    data: NodeCreate,
    actor: Actor = Depends(get_current_actor),
    tree_service: CommunicationTreeService = Depends(get_tree_service),
) -> NodeResponse:
    return node_to_response(tree_service.create_node(event_guid, data, actor))


@router.patch(
    "/nodes/{node_guid}",
    response_model=NodeResponse,
    summary="Update node",
)
async def update_node(
    event_guid: str,
    node_guid: str,
    data: NodeUpdate,
    actor: Actor = Depends(get_current_actor),
    tree_service: CommunicationTreeService = Depends(get_tree_service),
) -> NodeResponse:
    """
    Update a node. Sending "parent_guid": null detaches it.

    Re-parenting under the node itself or one of its descendants is
    rejected with 409.
    """
    return node_to_response(tree_service.update_node(event_guid, node_guid, data, actor))


@router.delete(
    "/nodes/{node_guid}",
    response_model=NodeDeleteResponse,
    summary="Delete node",
)
async def delete_node(
    event_guid: str,
    node_guid: str,
    actor: Actor = Depends(get_current_actor),
    tree_service: CommunicationTreeService = Depends(get_tree_service),
) -> NodeDeleteResponse:
    return tree_service.delete_node(event_guid, node_guid, actor)


@router.put(
    "/positions",
    response_model=PositionsUpdateResponse,
    summary="Update node positions",
)
async def update_positions(
    event_guid: str,
    data: NodePositionsUpdate,
    actor: Actor = Depends(get_current_actor),
    tree_service: CommunicationTreeService = Depends(get_tree_service),
) -> PositionsUpdateResponse:
    updated = tree_service.update_positions(event_guid, data.positions, actor)
    return PositionsUpdateResponse(updated=updated)


@router.post(
    "/auto-generate",
    response_model=TreeResponse,
    summary="Auto-generate tree from squads",
)
async def auto_generate_tree(
    event_guid: str,
    actor: Actor = Depends(get_current_actor),
    tree_service: CommunicationTreeService = Depends(get_tree_service),
) -> TreeResponse:
    """
    Replace the tree with a COMMAND root and one SQUAD node per squad.

    Example response nodes for squads Alpha and Bravo:
        COMANDO CENTRAL (41.00) -> ALPHA (42.00), BRAVO (43.00)
    """
    nodes = tree_service.auto_generate_tree(event_guid, actor)
    return TreeResponse(event_guid=event_guid, nodes=[node_to_response(n) for n in nodes])
