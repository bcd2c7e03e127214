"""
Per-event lock registry.

Every mutation of an event's roster or communication tree runs its
read-validate-write-commit sequence while holding the lock for that event,
so two requests touching the same event never interleave. Requests for
different events proceed in parallel.

This serializes writers inside one process. Services additionally lock the
Event row (SELECT ... FOR UPDATE) on databases that support it, which covers
multiple worker processes.
"""

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class EventLockRegistry:
    """
    Hands out one re-entrant lock per event id.

    Thread Safety:
        Lock creation is guarded by an internal lock, so concurrent callers
        asking for the same event always receive the same lock object.

    Usage:
        locks = EventLockRegistry()
        with locks.hold(event.id):
            ...  # read, validate, write, commit
    """

    def __init__(self):
        self._locks: Dict[int, threading.RLock] = {}
        self._guard = threading.Lock()

    def get(self, event_id: int) -> threading.RLock:
        """Return the lock for an event, creating it on first use."""
        with self._guard:
            lock = self._locks.get(event_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[event_id] = lock
            return lock

    @contextmanager
    def hold(self, event_id: int) -> Iterator[None]:
        """Hold the event's lock for the duration of the with-block."""
        lock = self.get(event_id)
        with lock:
            yield

    def discard(self, event_id: int) -> None:
        """Forget the lock of a deleted event."""
        with self._guard:
            self._locks.pop(event_id, None)

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by all services of this process unless a registry is injected
default_event_locks = EventLockRegistry()
