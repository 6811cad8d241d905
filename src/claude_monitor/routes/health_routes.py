"""
Health check endpoints (no authentication).
"""

from starlette.requests import Request
from starlette.responses import JSONResponse

from claude_monitor.routes._common import get_monitor


async def health_check(request: Request) -> JSONResponse:
    """Returns 200 if the service is running."""
    return JSONResponse({"status": "ok"})


async def service_info(request: Request) -> JSONResponse:
    """Service name plus session and event counts."""
    return JSONResponse(get_monitor(request).queries.service_info())
