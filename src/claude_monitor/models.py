"""
Pydantic models for sessions, events and hook payloads.

Covers:
- Session records and their token usage
- Stored events and the ``evt_<n>`` id scheme
- Inbound hook payloads, with a typed view per event type
- The persisted snapshot layout
"""

import re
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from claude_monitor.exceptions import ValidationError

EVENT_ID_PREFIX = "evt_"
_EVENT_ID_RE = re.compile(r"^(?:evt_)?(\d+)$")


def format_event_id(sequence: int) -> str:
    return f"{EVENT_ID_PREFIX}{sequence}"


def parse_event_id(event_id: str) -> int:
    """
    Decode the integer sequence from an event id.

    Accepts both ``evt_12`` and a bare ``12`` so polling clients can pass
    either form as a cursor.

    Raises:
        ValidationError: If the id does not encode a non-negative integer.
    """
    match = _EVENT_ID_RE.match(str(event_id).strip())
    if not match:
        raise ValidationError(f"Invalid event id: {event_id!r}")
    return int(match.group(1))


def extract_project_name(cwd: str) -> str:
    """Last path segment of a working directory (``/home/x/proj`` -> ``proj``)."""
    trimmed = cwd.rstrip("/\\")
    if not trimmed:
        return cwd
    name = re.split(r"[/\\]", trimmed)[-1]
    return name or cwd


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Sessions ───────────────────────────────────────────────────────────


class SessionStatus(str, Enum):
    ACTIVE = "active"
    IDLE = "idle"
    ENDED = "ended"


class TokenUsage(_CamelModel):
    input: int = Field(default=0, ge=0)
    output: int = Field(default=0, ge=0)
    cache_read: int = Field(default=0, ge=0)


class Session(_CamelModel):
    """One monitored Claude Code session, keyed by session_id."""

    session_id: str
    machine_id: str = ""
    machine_name: str = ""
    project_path: str = ""
    project_name: str = ""
    status: SessionStatus = SessionStatus.ACTIVE
    model: Optional[str] = None
    started_at: datetime
    last_activity_at: datetime
    message_count: int = Field(default=0, ge=0)
    tool_call_count: int = Field(default=0, ge=0)
    token_usage: TokenUsage = Field(default_factory=TokenUsage)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ─── Hook payloads ──────────────────────────────────────────────────────


class HookData(BaseModel):
    """Catch-all hook data. Unknown keys are kept as pass-through payload."""

    model_config = ConfigDict(extra="allow")

    session_id: str
    cwd: Optional[str] = None
    model: Optional[str] = None
    transcript_path: Optional[str] = None
    permission_mode: Optional[str] = None
    hook_event_name: Optional[str] = None


class SessionStartData(HookData):
    source: Optional[str] = None


class SessionEndData(HookData):
    reason: Optional[str] = None


class PromptData(HookData):
    prompt: Optional[str] = None


class ToolData(HookData):
    tool_name: Optional[str] = None
    tool_input: Any = None
    tool_response: Any = None


class StopData(HookData):
    message: Optional[str] = None


EVENT_DATA_TYPES: dict[str, type[HookData]] = {
    "session_start": SessionStartData,
    "session_end": SessionEndData,
    "prompt": PromptData,
    "tool": ToolData,
    "stop": StopData,
}


def parse_hook_data(event_type: str, data: dict[str, Any]) -> HookData:
    """
    Best-effort typed view of hook data (``HookData`` for unknown types).

    Data is opaque: a known field whose value does not fit its declared type
    reads as None here and stays untouched in the stored event.
    """
    model = EVENT_DATA_TYPES.get(event_type, HookData)
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        bad = {err["loc"][0] for err in e.errors() if err.get("loc")}
        bad.discard("session_id")
        return model.model_validate({k: v for k, v in data.items() if k not in bad})


class HookPayload(BaseModel):
    """Body posted by a hook script to ``POST /api/events``."""

    model_config = ConfigDict(extra="ignore")

    event_type: str
    machine_id: Optional[str] = None
    machine_name: Optional[str] = None
    timestamp: Any = None
    data: dict[str, Any]

    @field_validator("machine_id", "machine_name", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


# ─── Events ─────────────────────────────────────────────────────────────


class SessionEvent(_CamelModel):
    """A single ingested hook event as stored in the event log."""

    event_id: str
    session_id: str
    event_type: str
    timestamp: datetime
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def sequence(self) -> int:
        return parse_event_id(self.event_id)

    @property
    def payload(self) -> HookData:
        return parse_hook_data(self.event_type, self.data)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# ─── Persistence ────────────────────────────────────────────────────────


class Snapshot(_CamelModel):
    """On-disk layout: sessions map, retained events (oldest first), counter."""

    sessions: dict[str, Session] = Field(default_factory=dict)
    events: list[SessionEvent] = Field(default_factory=list)
    last_event_id: int = Field(default=0, ge=0)
