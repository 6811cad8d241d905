"""
Event ingestion: validate, number, apply, schedule persistence.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from claude_monitor.core.event_log import EventLog
from claude_monitor.core.registry import SessionRegistry
from claude_monitor.exceptions import InternalError
from claude_monitor.logger import get_logger
from claude_monitor.models import SessionEvent
from claude_monitor.validation import validate_hook_payload

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventIngestor:
    """
    Turns hook payloads into events and session transitions.

    Args:
        registry: Session records
        event_log: Bounded event store (owns the id counter)
        write_lock: The monitor's single write lock
        schedule_snapshot: Called after every accepted event
        clock: Returns the receipt time stamped on events
    """

    def __init__(
        self,
        registry: SessionRegistry,
        event_log: EventLog,
        write_lock: threading.RLock,
        schedule_snapshot: Optional[Callable[[], None]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.registry = registry
        self.event_log = event_log
        self._lock = write_lock
        self._schedule_snapshot = schedule_snapshot
        self._clock = clock

    def ingest(self, payload: Any) -> SessionEvent:
        """
        Ingest one hook payload.

        Returns:
            The stored event.

        Raises:
            ValidationError: Payload is missing event_type or data.session_id,
                or has mistyped fields. Nothing is mutated.
            InternalError: Applying the event failed. The id it consumed is
                not reused, and neither the log nor the registry changed.
        """
        hook = validate_hook_payload(payload)
        session_id = hook.data["session_id"]

        with self._lock:
            event_id = self.event_log.next_event_id()
            try:
                event = SessionEvent(
                    event_id=event_id,
                    session_id=session_id,
                    event_type=hook.event_type,
                    timestamp=self._clock(),
                    data=hook.data,
                )
                session = self.registry.transition(
                    event,
                    machine_id=hook.machine_id or "",
                    machine_name=hook.machine_name,
                )
            except Exception as e:
                logger.error(f"Failed to apply {hook.event_type} for {session_id}: {e}")
                raise InternalError(f"Failed to apply event {event_id}") from e

            self.event_log.append(event)
            self.registry.put(session)

        logger.debug(
            f"Ingested {event.event_id} {event.event_type} for {session_id} "
            f"-> {session.status.value}"
        )

        if self._schedule_snapshot is not None:
            try:
                self._schedule_snapshot()
            except Exception as e:
                logger.error(f"Failed to schedule snapshot after {event.event_id}: {e}")

        return event
