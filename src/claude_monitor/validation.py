"""
Input validation for hook payloads and query parameters.

Everything here raises ValidationError and never touches monitor state.
"""

import re
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from claude_monitor.exceptions import ValidationError
from claude_monitor.logger import get_logger
from claude_monitor.models import HookPayload, parse_event_id

logger = get_logger(__name__)

MAX_ID_LENGTH = 200


def _first_error(exc: PydanticValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(part) for part in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))


def validate_session_id(session_id: Any) -> str:
    if not isinstance(session_id, str) or not session_id.strip():
        raise ValidationError("data.session_id is required")

    if len(session_id) > MAX_ID_LENGTH:
        raise ValidationError(f"Session ID too long (max {MAX_ID_LENGTH} characters)")

    if re.search(r"[\x00-\x1f\x7f]", session_id):
        raise ValidationError("Session ID contains control characters")

    return session_id


def ensure_utf8(value: Any, path: str = "payload") -> None:
    """
    Reject strings that cannot be encoded as UTF-8 (lone surrogates).

    Such strings would make every later snapshot and response fail.
    """
    if isinstance(value, str):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise ValidationError(f"{path} contains invalid unicode")
    elif isinstance(value, dict):
        for key, item in value.items():
            ensure_utf8(key, path)
            ensure_utf8(item, f"{path}.{key}")
    elif isinstance(value, list):
        for i, item in enumerate(value):
            ensure_utf8(item, f"{path}[{i}]")


def validate_hook_payload(payload: Any) -> HookPayload:
    """
    Validate a POST /api/events body.

    Requires a non-empty ``event_type`` and ``data.session_id``. Everything
    else in ``data`` is opaque and passes through untouched.
    """
    if not isinstance(payload, dict):
        raise ValidationError("Payload must be a JSON object")

    event_type = payload.get("event_type")
    if not isinstance(event_type, str) or not event_type.strip():
        raise ValidationError("event_type is required")

    data = payload.get("data")
    if not isinstance(data, dict):
        raise ValidationError("data must be an object")
    validate_session_id(data.get("session_id"))
    ensure_utf8(payload)

    try:
        return HookPayload.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid payload: {_first_error(e)}")


def parse_limit(raw: Optional[str], default: int) -> int:
    """Parse a ``limit`` query parameter."""
    if raw is None or raw == "":
        return default
    try:
        limit = int(raw)
    except ValueError:
        raise ValidationError(f"Invalid limit: {raw!r}")
    if limit < 1:
        raise ValidationError("Limit must be a positive integer")
    return limit


def parse_cursor(raw: Optional[str]) -> Optional[int]:
    """Parse a ``since`` query parameter into a sequence number."""
    if raw is None or raw == "":
        return None
    return parse_event_id(raw)
