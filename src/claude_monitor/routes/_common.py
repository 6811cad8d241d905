"""
Helpers shared by the route modules.
"""

from starlette.requests import Request
from starlette.responses import JSONResponse

from claude_monitor.core.monitor import Monitor
from claude_monitor.exceptions import MonitorError


def get_monitor(request: Request) -> Monitor:
    """Get the Monitor from app state."""
    return request.app.state.monitor


def error_response(error: MonitorError) -> JSONResponse:
    return JSONResponse({"error": str(error)}, status_code=error.status_code)
