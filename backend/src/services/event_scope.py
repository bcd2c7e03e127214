"""
Per-event unit of work.

All roster, assignment and communication-tree mutations of one event run
through event_unit_of_work(): the in-process event lock is held for the
whole read-validate-write-commit sequence, the Event row is re-read (and
row-locked where the database supports SELECT ... FOR UPDATE), and any
exception rolls the session back before it propagates.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session, lazyload

from backend.src.models import Event
from backend.src.services.exceptions import NotFoundError
from backend.src.utils.event_locks import EventLockRegistry


def is_sqlite_session(db: Session) -> bool:
    """Check if the session is bound to SQLite (no FOR UPDATE support)."""
    try:
        return db.get_bind().dialect.name == "sqlite"
    except Exception:
        return False


def load_event_for_update(db: Session, event_id: int) -> Event:
    """
    Re-read an event inside the current transaction.

    On PostgreSQL the row is locked until commit. Eager joins are
    disabled for the locking query since FOR UPDATE cannot apply to the
    nullable side of an outer join.

    Raises:
        NotFoundError: If the event was deleted meanwhile
    """
    query = db.query(Event).filter(Event.id == event_id).populate_existing()
    if not is_sqlite_session(db):
        query = query.options(lazyload('*')).with_for_update()

    event = query.first()
    if event is None:
        raise NotFoundError("Event", event_id)
    return event


@contextmanager
def event_unit_of_work(
    db: Session, locks: EventLockRegistry, event_id: int
) -> Iterator[Event]:
    """
    Run one atomic mutation against an event.

    Yields the freshly loaded Event. Commits when the block exits cleanly,
    rolls back and re-raises otherwise.
    """
    with locks.hold(event_id):
        try:
            event = load_event_for_update(db, event_id)
            yield event
            db.commit()
        except Exception:
            db.rollback()
            raise
