"""
HTTP middleware for Claude Monitor.

Provides shared-secret authentication and request logging.
"""
import hashlib
import secrets
import time
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from claude_monitor.exceptions import Unauthorized
from claude_monitor.logger import get_logger

logger = get_logger(__name__)


class APIKeyAuthMiddleware(BaseHTTPMiddleware):
    """
    Shared-secret authentication for everything under ``protected_prefix``.

    Checks for the key in:
    1. X-API-Key header: "<key>"
    2. Authorization header: "Bearer <key>"

    A missing or wrong key is rejected with 401 before any handler runs.
    """

    def __init__(self, app, api_key: str, protected_prefix: str = "/api/"):
        super().__init__(app)
        if not api_key:
            raise ValueError("api_key must not be empty")
        self.protected_prefix = protected_prefix
        self._key_hash = hash_api_key(api_key)

    def _extract_api_key(self, request: Request) -> Optional[str]:
        """Extract API key from request."""
        api_key = request.headers.get("X-API-Key")
        if api_key:
            return api_key

        auth = request.headers.get("Authorization", "")
        if auth.startswith("Bearer "):
            return auth[7:]

        return None

    def is_authorized(self, api_key: Optional[str]) -> bool:
        """Constant-time comparison against the configured key."""
        if not api_key:
            return False
        return secrets.compare_digest(hash_api_key(api_key), self._key_hash)

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request with authentication."""
        if not request.url.path.startswith(self.protected_prefix):
            return await call_next(request)

        # Allow OPTIONS requests (CORS preflight)
        if request.method == "OPTIONS":
            return await call_next(request)

        if not self.is_authorized(self._extract_api_key(request)):
            error = Unauthorized()
            logger.warning(f"Rejected {request.method} {request.url.path}: {error}")
            return JSONResponse({"error": str(error)}, status_code=error.status_code)

        return await call_next(request)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log all requests with timing information.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Log request and response."""
        start_time = time.time()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(f"Request failed: {request.method} {request.url.path}: {e}")
            raise

        duration = time.time() - start_time
        logger.info(
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"in {duration*1000:.2f}ms"
        )

        response.headers["X-Response-Time"] = f"{duration*1000:.2f}ms"

        return response


def generate_api_key() -> str:
    """Generate a secure random API key."""
    return secrets.token_urlsafe(32)


def hash_api_key(api_key: str) -> str:
    """Hash an API key for comparison."""
    return hashlib.sha256(api_key.encode()).hexdigest()
