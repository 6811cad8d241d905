"""Exception types for the monitor core.

- MonitorError: Base exception for all monitor errors
- ValidationError: Malformed ingestion payload or query parameter (client error)
- Unauthorized: Bad or missing shared secret
- NotFound: Query for an unknown session id
- PersistenceError: Snapshot read/write failure (logged, non-fatal)
- InternalError: Unexpected failure while applying an event
"""

__all__ = [
    "MonitorError",
    "ValidationError",
    "Unauthorized",
    "NotFound",
    "PersistenceError",
    "InternalError",
]


class MonitorError(Exception):
    """Base exception for monitor errors."""

    status_code = 500


class ValidationError(MonitorError):
    """Raised when an inbound payload or query parameter is invalid."""

    status_code = 400


class Unauthorized(MonitorError):
    """Raised when a request carries no valid shared secret."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class NotFound(MonitorError):
    """Raised when a session id is not in the registry."""

    status_code = 404

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class PersistenceError(MonitorError):
    """Raised when a snapshot cannot be written or read.

    Never propagated out of ingestion: the in-memory state stays
    authoritative until the next successful snapshot.
    """


class InternalError(MonitorError):
    """Raised when applying an event fails unexpectedly.

    Nothing from the failed event is visible to readers; the sequence
    number it consumed is not reused.
    """
