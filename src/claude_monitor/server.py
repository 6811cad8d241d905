"""
Starlette-based web server for Claude Monitor.

This server provides a REST API with the following endpoints:
- /: Service info (public)
- /health: Liveness check (public)
- /api/events: Receive hook events (POST) and poll recent events (GET)
- /api/sessions: List sessions, get one, page through its events
- /api/stats: Today's activity and totals

Every /api/* route requires the shared secret (X-API-Key or Bearer token).
"""

import os
import sys
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.routing import Route

from claude_monitor.config import MonitorConfig
from claude_monitor.core.monitor import Monitor
from claude_monitor.logger import get_logger, setup_logging
from claude_monitor.middleware import APIKeyAuthMiddleware, RequestLoggingMiddleware
from claude_monitor.routes.event_routes import get_events, post_event
from claude_monitor.routes.health_routes import health_check, service_info
from claude_monitor.routes.session_routes import (
    get_session,
    get_session_events,
    get_stats,
    list_sessions,
)

logger = get_logger(__name__)


def create_app(
    config: Optional[MonitorConfig] = None, monitor: Optional[Monitor] = None
) -> Starlette:
    """
    Build the ASGI app around a Monitor.

    The monitor is loaded and its background tasks started in the lifespan
    handler; on shutdown the sweeper is cancelled and pending state flushed.
    """
    config = config or (monitor.config if monitor else MonitorConfig.from_env())
    monitor = monitor or Monitor(config)

    if config.uses_default_key:
        logger.warning(
            "CLAUDE_MONITOR_API_KEY is not set; using the development key"
        )

    @asynccontextmanager
    async def lifespan(app: Starlette):
        logger.info("Application startup - initializing monitor")
        await monitor.start()
        try:
            yield
        finally:
            logger.info("Application shutdown - flushing state")
            await monitor.stop()

    app = Starlette(
        routes=[
            Route("/", service_info, methods=["GET"]),
            Route("/health", health_check, methods=["GET"]),
            Route("/api/events", post_event, methods=["POST"]),
            Route("/api/events", get_events, methods=["GET"]),
            Route("/api/sessions", list_sessions, methods=["GET"]),
            Route("/api/sessions/{session_id}", get_session, methods=["GET"]),
            Route(
                "/api/sessions/{session_id}/events",
                get_session_events,
                methods=["GET"],
            ),
            Route("/api/stats", get_stats, methods=["GET"]),
        ],
        middleware=[
            Middleware(
                CORSMiddleware,
                allow_origins=["*"],
                allow_methods=["GET", "POST", "OPTIONS"],
                allow_headers=["Content-Type", "Authorization", "X-API-Key"],
            ),
            Middleware(RequestLoggingMiddleware),
            Middleware(APIKeyAuthMiddleware, api_key=config.api_key),
        ],
        lifespan=lifespan,
    )
    app.state.monitor = monitor
    return app


def run(config: Optional[MonitorConfig] = None) -> None:
    """Run the API under uvicorn until interrupted."""
    import uvicorn

    config = config or MonitorConfig.from_env()
    app = create_app(config)

    logger.info(f"Claude Monitor API running on http://{config.host}:{config.port}")
    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())


if __name__ == "__main__":
    load_dotenv()

    if "--debug" in sys.argv:
        os.environ["LOG_LEVEL"] = "DEBUG"

    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), log_file=os.getenv("LOG_FILE"))
    run()
