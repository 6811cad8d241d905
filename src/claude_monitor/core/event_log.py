"""
Bounded, ordered store of ingested events.

The log owns the sequence counter. Ids are assigned in increasing order and
appended in that order, so the deque is always sorted by sequence. Once the
capacity is reached the oldest events fall off the left end.
"""

from collections import deque
from typing import Iterable, Optional

from claude_monitor.exceptions import ValidationError
from claude_monitor.logger import get_logger
from claude_monitor.models import SessionEvent, format_event_id, parse_event_id

logger = get_logger(__name__)

DEFAULT_CAPACITY = 1000
MAX_QUERY_LIMIT = 1000


def validate_limit(limit: Optional[int], default: int) -> int:
    """None -> default; otherwise the limit must be in 1..MAX_QUERY_LIMIT."""
    if limit is None:
        return default
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValidationError("Limit must be a positive integer")
    if limit > MAX_QUERY_LIMIT:
        raise ValidationError(f"Limit too large (max {MAX_QUERY_LIMIT})")
    return limit


def _cursor(since: Optional[str | int]) -> Optional[int]:
    if since is None or since == "":
        return None
    if isinstance(since, int):
        return since
    return parse_event_id(since)


class EventLog:
    """FIFO of the most recent ``capacity`` events plus the id counter."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._events: deque[SessionEvent] = deque(maxlen=capacity)
        self._last_sequence = 0

    def __len__(self) -> int:
        return len(self._events)

    @property
    def last_sequence(self) -> int:
        """Highest sequence number ever handed out (survives eviction)."""
        return self._last_sequence

    @property
    def last_event_id(self) -> Optional[str]:
        """Id of the newest retained event, or None when the log is empty."""
        if not self._events:
            return None
        return self._events[-1].event_id

    def next_sequence(self) -> int:
        """Reserve the next sequence number. Never rolled back."""
        self._last_sequence += 1
        return self._last_sequence

    def next_event_id(self) -> str:
        return format_event_id(self.next_sequence())

    def append(self, event: SessionEvent) -> None:
        if self._events and event.sequence <= self._events[-1].sequence:
            raise ValueError(
                f"Event {event.event_id} is not newer than {self._events[-1].event_id}"
            )
        self._events.append(event)

    def query(
        self,
        session_id: Optional[str] = None,
        since: Optional[str | int] = None,
        limit: int = 50,
    ) -> tuple[list[SessionEvent], bool]:
        """
        Most recent matching events, oldest first.

        Args:
            session_id: Only events of this session when given
            since: Exclusive lower bound cursor (``evt_<n>`` or ``n``)
            limit: Maximum number of events returned

        Returns:
            (events, has_more) where has_more is True iff more events matched
            than were returned.
        """
        limit = validate_limit(limit, 50)
        cursor = _cursor(since)

        matching = [
            event
            for event in self._events
            if (session_id is None or event.session_id == session_id)
            and (cursor is None or event.sequence > cursor)
        ]
        if len(matching) > limit:
            return matching[-limit:], True
        return matching, False

    def since(self, since: Optional[str | int] = None, limit: int = 100) -> list[SessionEvent]:
        """Global poll: the ``limit`` most recent events after the cursor."""
        events, _ = self.query(since=since, limit=limit)
        return events

    def events(self) -> list[SessionEvent]:
        """All retained events, oldest first."""
        return list(self._events)

    def restore(self, events: Iterable[SessionEvent], last_sequence: int) -> None:
        """
        Replace contents from a snapshot.

        Events are re-sorted by sequence and trimmed to capacity. The counter
        is never set below the highest retained id so restored ids cannot be
        reissued.
        """
        ordered = sorted(events, key=lambda e: e.sequence)
        self._events = deque(ordered[-self.capacity :], maxlen=self.capacity)
        highest = self._events[-1].sequence if self._events else 0
        if highest > last_sequence:
            logger.warning(
                f"Snapshot counter {last_sequence} is behind retained event "
                f"{highest}; continuing from {highest}"
            )
        self._last_sequence = max(last_sequence, highest)
