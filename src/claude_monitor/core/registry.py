"""
Session registry and the per-session state machine.

Transitions by event type:
- session_start -> active, record re-initialized
- (first event for an unknown id) -> active, record created
- session_end -> ended
- prompt -> active, message_count + 1
- tool -> active, tool_call_count + 1
- stop -> idle
- anything else -> status unchanged

Every event moves last_activity_at forward to the event timestamp. Records
are never edited in place: each transition builds a new Session and swaps it
into the map, so a reader holding a record never sees half an update.
"""

from datetime import datetime, timedelta
from typing import Iterable, Optional

from claude_monitor.logger import get_logger
from claude_monitor.models import (
    Session,
    SessionEvent,
    SessionStatus,
    extract_project_name,
)

logger = get_logger(__name__)

SESSION_START = "session_start"
SESSION_END = "session_end"
PROMPT = "prompt"
TOOL = "tool"
STOP = "stop"


def new_session(
    event: SessionEvent, machine_id: str = "", machine_name: Optional[str] = None
) -> Session:
    """Fresh active record for the session an event belongs to."""
    payload = event.payload
    cwd = payload.cwd or ""
    return Session(
        session_id=event.session_id,
        machine_id=machine_id,
        machine_name=machine_name or machine_id,
        project_path=cwd,
        project_name=extract_project_name(cwd),
        status=SessionStatus.ACTIVE,
        model=payload.model,
        started_at=event.timestamp,
        last_activity_at=event.timestamp,
    )


class SessionRegistry:
    """Owns session records keyed by session id."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def get(self, session_id: str) -> Optional[Session]:
        return self._sessions.get(session_id)

    def all(self) -> list[Session]:
        return list(self._sessions.values())

    def active_count(self) -> int:
        return sum(1 for s in self._sessions.values() if s.status == SessionStatus.ACTIVE)

    def transition(
        self,
        event: SessionEvent,
        machine_id: str = "",
        machine_name: Optional[str] = None,
    ) -> Session:
        """
        Compute the record that results from applying an event.

        Does not touch the registry; pair with put().
        """
        current = self._sessions.get(event.session_id)

        if event.event_type == SESSION_START or current is None:
            if current is not None and current.status == SessionStatus.ENDED:
                logger.warning(
                    f"session_start for ended session {event.session_id}; "
                    "discarding previous record"
                )
            elif current is not None:
                logger.info(f"Re-initializing session {event.session_id}")
            session = new_session(event, machine_id, machine_name)
        else:
            session = current.model_copy(deep=True)
            if event.payload.model:
                session.model = event.payload.model

        session.last_activity_at = max(event.timestamp, session.started_at)

        if event.event_type == SESSION_START:
            session.status = SessionStatus.ACTIVE
        elif event.event_type == SESSION_END:
            session.status = SessionStatus.ENDED
        elif event.event_type == PROMPT:
            session.message_count += 1
            session.status = SessionStatus.ACTIVE
        elif event.event_type == TOOL:
            session.tool_call_count += 1
            session.status = SessionStatus.ACTIVE
        elif event.event_type == STOP:
            session.status = SessionStatus.IDLE

        return session

    def put(self, session: Session) -> None:
        self._sessions[session.session_id] = session

    def apply(
        self,
        event: SessionEvent,
        machine_id: str = "",
        machine_name: Optional[str] = None,
    ) -> Session:
        session = self.transition(event, machine_id, machine_name)
        self.put(session)
        return session

    def sweep_stale(self, now: datetime, threshold: timedelta) -> list[str]:
        """
        Demote active sessions idle for longer than threshold.

        Returns:
            Ids of the sessions moved to idle.
        """
        cutoff = now - threshold
        demoted = []
        for session_id, session in list(self._sessions.items()):
            if session.status == SessionStatus.ACTIVE and session.last_activity_at < cutoff:
                self._sessions[session_id] = session.model_copy(
                    update={"status": SessionStatus.IDLE}
                )
                demoted.append(session_id)
        return demoted

    def export(self) -> dict[str, Session]:
        return dict(self._sessions)

    def restore(self, sessions: Iterable[Session]) -> None:
        self._sessions = {s.session_id: s for s in sessions}
