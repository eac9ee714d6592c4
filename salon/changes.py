# salon/changes.py

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChangeEvent:
    seq: int
    table: str
    action: str  # insert, update or delete
    row_id: str
    at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class ChangeFeed:
    """Row-level change notifications for slots, appointments and services.

    Listeners can either subscribe a callback (push) or poll with
    ``since(cursor)``. Events are published after the change is committed,
    and nothing in the booking core reads them back.
    """

    def __init__(self, maxlen: int = 1000) -> None:
        self._events: Deque[ChangeEvent] = deque(maxlen=maxlen)
        self._listeners: List[Callable[[ChangeEvent], None]] = []
        self._seq = 0
        self._lock = threading.Lock()

    @property
    def cursor(self) -> int:
        return self._seq

    def subscribe(self, callback: Callable[[ChangeEvent], None]) -> None:
        with self._lock:
            self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[ChangeEvent], None]) -> None:
        with self._lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def publish(self, table: str, action: str, row_id) -> ChangeEvent:
        with self._lock:
            self._seq += 1
            event = ChangeEvent(seq=self._seq, table=table, action=action, row_id=str(row_id))
            self._events.append(event)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                # a broken subscriber must not fail the write that already committed
                logger.exception("changes.listener_failed", extra={"table": table, "row_id": str(row_id)})
        return event

    def since(self, cursor: int = 0) -> List[ChangeEvent]:
        with self._lock:
            return [e for e in self._events if e.seq > cursor]


# Process-wide feed used by the HTTP app and the sweep worker
feed = ChangeFeed()
