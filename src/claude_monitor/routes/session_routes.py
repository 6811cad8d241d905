"""
Session query routes.

- GET /api/sessions: most recently active sessions
- GET /api/sessions/{session_id}: one session
- GET /api/sessions/{session_id}/events: a session's events, paginated
- GET /api/stats: today's and overall totals
"""

from starlette.requests import Request
from starlette.responses import JSONResponse

from claude_monitor.core.queries import SESSION_EVENTS_LIMIT
from claude_monitor.exceptions import NotFound, ValidationError
from claude_monitor.logger import get_logger
from claude_monitor.routes._common import error_response, get_monitor
from claude_monitor.validation import parse_cursor, parse_limit

logger = get_logger(__name__)


async def list_sessions(request: Request) -> JSONResponse:
    """
    List sessions by last activity, newest first (max 50).

    Returns:
        JSONResponse {sessions, activeSessions, totalSessions}
    """
    try:
        result = get_monitor(request).queries.list_sessions()
        result["sessions"] = [s.to_dict() for s in result["sessions"]]
        return JSONResponse(result)
    except Exception as e:
        logger.error(f"Error listing sessions: {e}")
        return JSONResponse({"error": "Internal error"}, status_code=500)


async def get_session(request: Request) -> JSONResponse:
    """
    Get a single session.

    Path params:
        - session_id: Session ID
    """
    try:
        session_id = request.path_params["session_id"]
        session = get_monitor(request).queries.get_session(session_id)
        return JSONResponse({"session": session.to_dict()})
    except NotFound as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error reading session: {e}")
        return JSONResponse({"error": "Internal error"}, status_code=500)


async def get_session_events(request: Request) -> JSONResponse:
    """
    Get events for a session.

    Path params:
        - session_id: Session ID

    Query params:
        - since: Exclusive event id cursor (optional)
        - limit: Maximum events returned (default 50)

    Returns:
        JSONResponse {events, hasMore}
    """
    try:
        session_id = request.path_params["session_id"]
        since = parse_cursor(request.query_params.get("since"))
        limit = parse_limit(request.query_params.get("limit"), SESSION_EVENTS_LIMIT)

        events, has_more = get_monitor(request).queries.session_events(
            session_id, since=since, limit=limit
        )
        return JSONResponse(
            {
                "events": [e.to_dict() for e in events],
                "hasMore": has_more,
            }
        )
    except ValidationError as e:
        return error_response(e)
    except Exception as e:
        logger.error(f"Error reading session events: {e}")
        return JSONResponse({"error": "Internal error"}, status_code=500)


async def get_stats(request: Request) -> JSONResponse:
    """
    Summary stats: today's sessions/messages/tool calls (UTC day) and totals.
    """
    try:
        return JSONResponse(get_monitor(request).queries.get_stats())
    except Exception as e:
        logger.error(f"Error computing stats: {e}")
        return JSONResponse({"error": "Internal error"}, status_code=500)
