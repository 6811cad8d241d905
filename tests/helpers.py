"""Test helpers shared across modules."""

from datetime import datetime, timedelta, timezone

API_KEY = "test-key-123"


class FakeClock:
    """Controllable UTC clock for event timestamps and sweeps."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeMonotonic:
    """Controllable monotonic clock (seconds) for debounce arithmetic."""

    def __init__(self):
        self.t = 0.0

    def __call__(self):
        return self.t


def hook(event_type, session_id="s1", machine_id="mac-1", machine_name=None, **data):
    """Build a hook payload the way the client scripts post it."""
    payload = {
        "event_type": event_type,
        "machine_id": machine_id,
        "timestamp": "2026-03-14T12:00:00Z",
        "data": {"session_id": session_id, **data},
    }
    if machine_name is not None:
        payload["machine_name"] = machine_name
    return payload
