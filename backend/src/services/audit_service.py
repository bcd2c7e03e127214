"""
Audit log sink.

Every mutating roster operation appends one AuditEntry. Writes are
classified by effect:

- PRIMARY: failure propagates and rolls back the caller's unit of work
- BEST_EFFORT: written inside a SAVEPOINT; on a database error the
  savepoint is rolled back, the failure is logged at WARNING and the
  caller's primary write is kept

Audit entries are BEST_EFFORT by default. The caller owns the outer
transaction and commits it.
"""

import enum
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.src.models import AuditAction, AuditEntry
from backend.src.schemas.audit import AuditDetails, check_audit_details
from backend.src.services.permissions import Actor
from backend.src.utils.logging_config import get_logger


logger = get_logger("db")


class WriteEffect(enum.Enum):
    """How a failed write affects the operation that issued it."""
    PRIMARY = "primary"
    BEST_EFFORT = "best_effort"


class AuditService:
    """
    Append-only writer for audit entries.

    Usage:
        >>> audit = AuditService(db)
        >>> audit.record(
        ...     AuditAction.SLOT_ASSIGNED, slot, actor,
        ...     SlotAssignedDetails(...), event_id=event.id,
        ... )
    """

    def __init__(self, db: Session):
        self.db = db

    def record(
        self,
        action: AuditAction,
        entity,
        actor: Optional[Actor],
        details: AuditDetails,
        event_id: Optional[int] = None,
        effect: WriteEffect = WriteEffect.BEST_EFFORT,
    ) -> Optional[AuditEntry]:
        """
        Append an audit entry to the current transaction.

        Args:
            action: Audited action
            entity: The GuidMixin model instance the action applied to
            actor: Acting user (None for system-initiated changes)
            details: Payload model registered for action
            event_id: Internal ID of the event the action belongs to
            effect: PRIMARY or BEST_EFFORT

        Returns:
            The flushed AuditEntry, or None if a best-effort write failed

        Raises:
            TypeError: If details does not match action
            SQLAlchemyError: If a PRIMARY write fails
        """
        check_audit_details(action, details)

        # Primary writes flush outside the savepoint; new entities get
        # their GUID on insert
        self.db.flush()

        entry = AuditEntry(
            action=action,
            entity=type(entity).__name__,
            entity_guid=entity.guid,
            user_id=actor.user_id if actor is not None else None,
            event_id=event_id,
            details=details.model_dump(mode="json"),
        )

        if effect is WriteEffect.PRIMARY:
            self._write(entry)
            return entry

        nested = self.db.begin_nested()
        try:
            self._write(entry)
            nested.commit()
        except SQLAlchemyError as e:
            nested.rollback()
            logger.warning(
                f"Audit entry {action.value} for {entry.entity_guid} dropped: {e}",
                extra={"action": action.value, "event_id": event_id},
            )
            return None

        return entry

    def list_for_event(self, event_id: int) -> List[AuditEntry]:
        """Audit entries of an event, oldest first."""
        return (
            self.db.query(AuditEntry)
            .filter(AuditEntry.event_id == event_id)
            .order_by(AuditEntry.created_at.asc(), AuditEntry.id.asc())
            .all()
        )

    def _write(self, entry: AuditEntry) -> None:
        self.db.add(entry)
        self.db.flush()
