"""
Event ingestion and polling routes.

- POST /api/events: receive a hook event
- GET  /api/events: recent events across all sessions
"""

import json

from starlette.requests import Request
from starlette.responses import JSONResponse

from claude_monitor.core.queries import RECENT_EVENTS_LIMIT
from claude_monitor.exceptions import ValidationError
from claude_monitor.logger import get_logger
from claude_monitor.routes._common import error_response, get_monitor
from claude_monitor.validation import parse_cursor, parse_limit

logger = get_logger(__name__)


async def post_event(request: Request) -> JSONResponse:
    """
    Receive a hook event from a developer machine.

    Body:
        - event_type: session_start | session_end | prompt | tool | stop | ...
        - machine_id, machine_name (optional), timestamp
        - data: {session_id, cwd?, prompt?, tool_name?, ...}

    Returns:
        JSONResponse {success, eventId}
    """
    try:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Body must be valid JSON")

        event = get_monitor(request).ingest(payload)
        return JSONResponse({"success": True, "eventId": event.event_id})

    except ValidationError as e:
        logger.warning(f"Rejected event: {e}")
        return error_response(e)
    except Exception as e:
        logger.error(f"Error processing event: {e}")
        return JSONResponse({"error": "Internal error"}, status_code=500)


async def get_events(request: Request) -> JSONResponse:
    """
    Recent events across all sessions, for polling.

    Query params:
        - since: Exclusive event id cursor (optional)
        - limit: Maximum events returned (default 100)

    Returns:
        JSONResponse {events, lastEventId}
    """
    try:
        since = parse_cursor(request.query_params.get("since"))
        limit = parse_limit(request.query_params.get("limit"), RECENT_EVENTS_LIMIT)

        events, last_event_id = get_monitor(request).queries.recent_events(since, limit)
        return JSONResponse(
            {
                "events": [e.to_dict() for e in events],
                "lastEventId": last_event_id,
            }
        )

    except ValidationError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error listing events: {e}")
        return JSONResponse({"error": "Internal error"}, status_code=500)
