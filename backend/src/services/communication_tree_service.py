"""
Communication tree service.

Each event carries a flat set of radio nodes whose parent links form a
forest. This service reads and edits that forest and can regenerate it
from the event's squad list.

Design:
- A parent must be a node of the same event
- Re-parenting is rejected with CycleDetectedError when the new parent is
  the node itself or one of its descendants; the ancestry walk keeps a
  visited set so pre-existing corrupt data cannot loop forever
- Deleting a node deletes its whole subtree
- Auto-generation is destructive: all nodes are replaced by one COMMAND
  root plus one SQUAD node per squad, laid out in a centred row
- All mutations run inside event_unit_of_work()
"""

from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from backend.src.config.settings import AppSettings, get_settings
from backend.src.models import AuditAction, CommunicationNode, Event, Squad
from backend.src.models.communication_node import NodeType
from backend.src.schemas.audit import (
    CommNodeCreatedDetails,
    CommNodeDeletedDetails,
    CommNodePositionsUpdatedDetails,
    CommNodeUpdatedDetails,
    CommTreeAutoGeneratedDetails,
)
from backend.src.schemas.communication_tree import (
    NodeCreate,
    NodeDeleteResponse,
    NodePosition,
    NodeUpdate,
)
from backend.src.services.audit_service import AuditService
from backend.src.services.event_scope import event_unit_of_work
from backend.src.services.exceptions import CycleDetectedError, NotFoundError, ValidationError
from backend.src.services.lookups import get_by_guid
from backend.src.services.permissions import Actor, PermissionEvaluator
from backend.src.utils.event_locks import EventLockRegistry, default_event_locks
from backend.src.utils.logging_config import get_logger


logger = get_logger("services")

TREE_DENIED = (
    "Only an admin or a leader of the event creator's clan can edit the communication tree"
)


class CommunicationTreeService:
    """
    Service for the per-event communication tree.

    Usage:
        >>> service = CommunicationTreeService(db_session)
        >>> nodes = service.auto_generate_tree(event.guid, actor)
        >>> service.update_node(event.guid, nodes[1].guid, NodeUpdate(parent_guid=None), actor)
    """

    def __init__(
        self,
        db: Session,
        locks: Optional[EventLockRegistry] = None,
        settings: Optional[AppSettings] = None,
    ):
        """
        Initialize communication tree service.

        Args:
            db: SQLAlchemy database session
            locks: Per-event lock registry (process-wide default if omitted)
            settings: Auto-generation constants (application settings if omitted)
        """
        self.db = db
        self.locks = locks if locks is not None else default_event_locks
        self.settings = settings or get_settings()
        self.audit = AuditService(db)

    # =========================================================================
    # Reads
    # =========================================================================

    def get_tree(self, event_guid: str) -> List[CommunicationNode]:
        """
        All nodes of an event ordered by their order column.

        Raises:
            NotFoundError: If the event doesn't exist
        """
        event = get_by_guid(self.db, Event, event_guid)
        return self._nodes_of(event.id)

    # =========================================================================
    # Node CRUD
    # =========================================================================

    def create_node(self, event_guid: str, data: NodeCreate, actor: Actor) -> CommunicationNode:
        """
        Add a node to the tree.

        Raises:
            NotFoundError: If the event or parent node doesn't exist
            ValidationError: If the parent belongs to another event
            PermissionDeniedError: If the actor cannot manage the event's tree
        """
        event_id = get_by_guid(self.db, Event, event_guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_tree_manager(actor, event)

            parent = None
            if data.parent_guid is not None:
                parent = self._resolve_parent(event, data.parent_guid)

            node = CommunicationNode(
                event_id=event.id,
                name=data.name,
                frequency=data.frequency,
                type=data.type,
                parent_id=parent.id if parent else None,
                position_x=data.position_x,
                position_y=data.position_y,
                order=data.order,
            )
            node.parent = parent
            self.db.add(node)
            self.db.flush()

            self.audit.record(
                AuditAction.COMM_NODE_CREATED, node, actor,
                CommNodeCreatedDetails(
                    node_name=node.name,
                    node_type=node.type.value,
                    parent_guid=parent.guid if parent else None,
                ),
                event_id=event.id,
            )

        logger.info(f"Created communication node '{node.name}' ({node.guid})")
        return node

    def update_node(
        self, event_guid: str, node_guid: str, data: NodeUpdate, actor: Actor
    ) -> CommunicationNode:
        """
        Update a node. Setting parent_guid to null makes the node a root.

        Raises:
            NotFoundError: If the event, node or new parent doesn't exist
            ValidationError: If no field is supplied, a required field is
                null, or the parent belongs to another event
            CycleDetectedError: If the new parent is the node or a descendant
            PermissionDeniedError: If the actor cannot manage the event's tree
        """
        changes = data.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError("No fields to update")
        for required in ("name", "type", "position_x", "position_y", "order"):
            if required in changes and changes[required] is None:
                raise ValidationError(f"{required} cannot be null", field=required)

        event_id = get_by_guid(self.db, Event, event_guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_tree_manager(actor, event)
            node = self._get_node(event, node_guid)

            if "parent_guid" in changes:
                parent_guid = changes.pop("parent_guid")
                if parent_guid is None:
                    node.parent = None
                    node.parent_id = None
                else:
                    parent = self._resolve_parent(event, parent_guid)
                    self._ensure_acyclic(event, node, parent)
                    node.parent = parent
                    node.parent_id = parent.id
                changed_fields = sorted(list(changes) + ["parent_guid"])
            else:
                changed_fields = sorted(changes)

            for field, value in changes.items():
                setattr(node, field, value)

            self.audit.record(
                AuditAction.COMM_NODE_UPDATED, node, actor,
                CommNodeUpdatedDetails(node_name=node.name, changed_fields=changed_fields),
                event_id=event.id,
            )

        logger.info(f"Updated communication node {node.guid}: {', '.join(changed_fields)}")
        return node

    def delete_node(self, event_guid: str, node_guid: str, actor: Actor) -> NodeDeleteResponse:
        """
        Delete a node and its whole subtree.

        Returns:
            GUID of the deleted node and the number of descendants removed

        Raises:
            NotFoundError: If the event or node doesn't exist
            PermissionDeniedError: If the actor cannot manage the event's tree
        """
        event_id = get_by_guid(self.db, Event, event_guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_tree_manager(actor, event)
            nodes = self._nodes_of(event.id)
            node = self._get_node(event, node_guid)

            descendants = self._count_descendants(node.id, nodes)
            result = NodeDeleteResponse(guid=node.guid, deleted_descendants=descendants)

            self.audit.record(
                AuditAction.COMM_NODE_DELETED, node, actor,
                CommNodeDeletedDetails(node_name=node.name, deleted_descendants=descendants),
                event_id=event.id,
            )
            self.db.delete(node)

        logger.info(f"Deleted communication node {result.guid} with {descendants} descendants")
        return result

    def update_positions(
        self, event_guid: str, positions: List[NodePosition], actor: Actor
    ) -> int:
        """
        Move nodes on the canvas.

        Entries whose GUID is malformed or not a node of the event are
        ignored.

        Returns:
            Number of nodes updated

        Raises:
            NotFoundError: If the event doesn't exist
            PermissionDeniedError: If the actor cannot manage the event's tree
        """
        event_id = get_by_guid(self.db, Event, event_guid).id

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_tree_manager(actor, event)
            by_guid = {node.guid: node for node in self._nodes_of(event.id)}

            updated = 0
            for position in positions:
                node = by_guid.get(position.guid.lower()) if position.guid else None
                if node is None:
                    continue
                node.position_x = position.x
                node.position_y = position.y
                updated += 1

            self.audit.record(
                AuditAction.COMM_NODE_POSITIONS_UPDATED, event, actor,
                CommNodePositionsUpdatedDetails(node_count=updated),
                event_id=event.id,
            )

        logger.info(f"Updated positions of {updated} communication nodes in event {event_guid}")
        return updated

    # =========================================================================
    # Auto-generation
    # =========================================================================

    def auto_generate_tree(self, event_guid: str, actor: Actor) -> List[CommunicationNode]:
        """
        Replace the tree with a projection of the event's squads.

        Creates one COMMAND root named after the configured root name on the
        base frequency at (0, 0), then one SQUAD node per squad (in squad
        order) with the upper-cased squad name, the next sequential
        frequency, and x positions centred around the root.

        Returns:
            The regenerated nodes, root first

        Raises:
            NotFoundError: If the event doesn't exist
            PermissionDeniedError: If the actor cannot manage the event's tree
        """
        event_id = get_by_guid(self.db, Event, event_guid).id
        settings = self.settings

        with event_unit_of_work(self.db, self.locks, event_id) as event:
            self._require_tree_manager(actor, event)

            squads = (
                self.db.query(Squad)
                .filter(Squad.event_id == event.id)
                .order_by(Squad.order.asc(), Squad.id.asc())
                .all()
            )

            for existing in self._nodes_of(event.id):
                self.db.delete(existing)
            self.db.flush()

            root = CommunicationNode(
                event_id=event.id,
                name=settings.comm_root_name,
                frequency=self.format_frequency(settings.comm_base_frequency),
                type=NodeType.COMMAND,
                position_x=0,
                position_y=0,
                order=0,
            )
            self.db.add(root)
            self.db.flush()

            count = len(squads)
            generated = [root]
            for index, squad in enumerate(squads):
                node = CommunicationNode(
                    event_id=event.id,
                    name=squad.name.upper(),
                    frequency=self.format_frequency(settings.comm_base_frequency + 1 + index),
                    type=NodeType.SQUAD,
                    parent_id=root.id,
                    position_x=(index - (count - 1) / 2) * settings.comm_column_spacing,
                    position_y=settings.comm_row_offset,
                    order=index + 1,
                )
                node.parent = root
                self.db.add(node)
                generated.append(node)
            self.db.flush()

            self.audit.record(
                AuditAction.COMM_TREE_AUTO_GENERATED, event, actor,
                CommTreeAutoGeneratedDetails(squad_count=count, node_count=len(generated)),
                event_id=event.id,
            )

        logger.info(
            f"Auto-generated communication tree for event {event_guid}",
            extra={"squad_count": count},
        )
        return generated

    @staticmethod
    def format_frequency(value: int) -> str:
        """Radio frequency label, e.g. 41 -> '41.00'."""
        return f"{value:.2f}"

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _require_tree_manager(actor: Actor, event: Event) -> None:
        permissions = PermissionEvaluator(actor)
        permissions.require(permissions.can_manage_roster(event), TREE_DENIED)

    def _nodes_of(self, event_id: int) -> List[CommunicationNode]:
        return (
            self.db.query(CommunicationNode)
            .filter(CommunicationNode.event_id == event_id)
            .order_by(CommunicationNode.order.asc(), CommunicationNode.id.asc())
            .populate_existing()
            .all()
        )

    def _get_node(self, event: Event, node_guid: str) -> CommunicationNode:
        node = get_by_guid(self.db, CommunicationNode, node_guid, refresh=True)
        if node.event_id != event.id:
            raise NotFoundError("CommunicationNode", node_guid)
        return node

    def _resolve_parent(self, event: Event, parent_guid: str) -> CommunicationNode:
        parent = get_by_guid(self.db, CommunicationNode, parent_guid, refresh=True)
        if parent.event_id != event.id:
            raise ValidationError(
                "Parent node belongs to a different event", field="parent_guid"
            )
        return parent

    def _ensure_acyclic(
        self, event: Event, node: CommunicationNode, parent: CommunicationNode
    ) -> None:
        """
        Reject a parent that is the node itself or one of its descendants.

        Raises:
            CycleDetectedError: If attaching node under parent closes a loop
        """
        if parent.id == node.id:
            raise CycleDetectedError(node.guid, parent.guid)

        parent_of: Dict[int, Optional[int]] = {
            n.id: n.parent_id for n in self._nodes_of(event.id)
        }
        visited = set()
        current: Optional[int] = parent.id
        while current is not None and current not in visited:
            if current == node.id:
                raise CycleDetectedError(node.guid, parent.guid)
            visited.add(current)
            current = parent_of.get(current)

    @staticmethod
    def _count_descendants(node_id: int, nodes: List[CommunicationNode]) -> int:
        children: Dict[int, List[int]] = {}
        for n in nodes:
            if n.parent_id is not None:
                children.setdefault(n.parent_id, []).append(n.id)

        seen = set()
        stack = list(children.get(node_id, []))
        while stack:
            current = stack.pop()
            if current in seen or current == node_id:
                continue
            seen.add(current)
            stack.extend(children.get(current, []))
        return len(seen)
