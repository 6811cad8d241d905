"""
Read-only projections over the registry and event log.
"""

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from claude_monitor.core.event_log import EventLog
from claude_monitor.core.ingestor import utc_now
from claude_monitor.core.registry import SessionRegistry
from claude_monitor.exceptions import NotFound
from claude_monitor.models import Session, SessionEvent, SessionStatus

SESSION_LIST_LIMIT = 50
SESSION_EVENTS_LIMIT = 50
RECENT_EVENTS_LIMIT = 100


def start_of_day(now: datetime) -> datetime:
    """Midnight UTC of the day ``now`` falls on."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


class QueryService:
    """
    Listing, detail, pagination and stats.

    Reads copy what they return under the write lock so a response never mixes
    state from before and after a concurrent ingest.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        event_log: EventLog,
        write_lock: threading.RLock,
        sweep: Optional[Callable[[], list]] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.registry = registry
        self.event_log = event_log
        self._lock = write_lock
        self._sweep = sweep
        self._clock = clock

    def _sweep_first(self) -> None:
        if self._sweep is not None:
            self._sweep()

    def list_sessions(self, limit: int = SESSION_LIST_LIMIT) -> dict[str, Any]:
        """Most recently active sessions, after a stale sweep."""
        self._sweep_first()
        with self._lock:
            sessions = sorted(
                self.registry.all(),
                key=lambda s: s.last_activity_at,
                reverse=True,
            )[:limit]
            total = len(self.registry)

        return {
            "sessions": sessions,
            "activeSessions": sum(1 for s in sessions if s.status == SessionStatus.ACTIVE),
            "totalSessions": total,
        }

    def get_session(self, session_id: str) -> Session:
        with self._lock:
            session = self.registry.get(session_id)
        if session is None:
            raise NotFound(session_id)
        return session

    def session_events(
        self,
        session_id: str,
        since: Optional[str | int] = None,
        limit: int = SESSION_EVENTS_LIMIT,
    ) -> tuple[list[SessionEvent], bool]:
        with self._lock:
            return self.event_log.query(session_id=session_id, since=since, limit=limit)

    def recent_events(
        self, since: Optional[str | int] = None, limit: int = RECENT_EVENTS_LIMIT
    ) -> tuple[list[SessionEvent], Optional[str]]:
        """Global poll: events after the cursor plus the newest retained id."""
        self._sweep_first()
        with self._lock:
            events = self.event_log.since(since, limit)
            return events, self.event_log.last_event_id

    def get_stats(self, now: Optional[datetime] = None) -> dict[str, Any]:
        """Today's activity (UTC day) and overall totals."""
        day_start = start_of_day(now or self._clock())
        with self._lock:
            sessions = self.registry.all()
            event_count = len(self.event_log)

        today = [s for s in sessions if s.started_at >= day_start]
        return {
            "today": {
                "sessions": len(today),
                "messages": sum(s.message_count for s in today),
                "toolCalls": sum(s.tool_call_count for s in today),
            },
            "total": {
                "sessions": len(sessions),
                "events": event_count,
            },
            "activeSessions": sum(1 for s in sessions if s.status == SessionStatus.ACTIVE),
        }

    def service_info(self) -> dict[str, Any]:
        with self._lock:
            return {
                "service": "claude-monitor",
                "status": "ok",
                "sessions": len(self.registry),
                "events": len(self.event_log),
            }
