"""
Unit tests for the session registry state machine.
"""

from datetime import datetime, timedelta, timezone

import pytest

from claude_monitor.core.registry import SessionRegistry
from claude_monitor.models import SessionEvent, SessionStatus, extract_project_name

T0 = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


class Events:
    """Builds events with increasing ids."""

    def __init__(self):
        self.seq = 0

    def __call__(self, event_type, session_id="s1", at=T0, **data):
        self.seq += 1
        return SessionEvent(
            event_id=f"evt_{self.seq}",
            session_id=session_id,
            event_type=event_type,
            timestamp=at,
            data={"session_id": session_id, **data},
        )


@pytest.fixture
def registry():
    return SessionRegistry()


@pytest.fixture
def events():
    return Events()


class TestProjectName:
    @pytest.mark.parametrize(
        "cwd,expected",
        [
            ("/home/x/proj", "proj"),
            ("/home/x/proj/", "proj"),
            ("C:\\work\\repo", "repo"),
            ("proj", "proj"),
            ("", ""),
            ("/", "/"),
        ],
    )
    def test_extract(self, cwd, expected):
        assert extract_project_name(cwd) == expected


class TestTransitions:
    def test_session_start_creates_active(self, registry, events):
        session = registry.apply(
            events("session_start", cwd="/home/x/proj"),
            machine_id="mac-1",
            machine_name="Laptop",
        )
        assert session.status == SessionStatus.ACTIVE
        assert session.project_path == "/home/x/proj"
        assert session.project_name == "proj"
        assert session.machine_name == "Laptop"
        assert session.started_at == T0
        assert session.message_count == 0
        assert registry.get("s1") is session

    def test_machine_name_defaults_to_id(self, registry, events):
        session = registry.apply(events("session_start"), machine_id="mac-1")
        assert session.machine_name == "mac-1"

    @pytest.mark.parametrize("event_type", ["prompt", "tool", "stop", "session_end", "custom"])
    def test_unknown_session_created_active_with_zero_counters(
        self, registry, events, event_type
    ):
        session = registry.transition(events(event_type, session_id="new"))
        assert session.session_id == "new"
        assert session.token_usage.input == 0
        # The triggering event still applies on top of the fresh record.
        if event_type == "prompt":
            assert session.message_count == 1
        elif event_type == "tool":
            assert session.tool_call_count == 1
        else:
            assert session.message_count == 0
            assert session.tool_call_count == 0

    def test_custom_event_on_new_session_is_active(self, registry, events):
        session = registry.apply(events("notification", session_id="new"))
        assert session.status == SessionStatus.ACTIVE

    def test_prompt_and_tool_counters(self, registry, events):
        registry.apply(events("session_start"))
        registry.apply(events("prompt", prompt="hi"))
        registry.apply(events("tool", tool_name="Read"))
        session = registry.apply(events("tool", tool_name="Edit"))
        assert session.message_count == 1
        assert session.tool_call_count == 2
        assert session.status == SessionStatus.ACTIVE

    def test_stop_goes_idle_and_prompt_reactivates(self, registry, events):
        registry.apply(events("session_start"))
        assert registry.apply(events("stop")).status == SessionStatus.IDLE
        assert registry.apply(events("prompt")).status == SessionStatus.ACTIVE

    def test_session_end(self, registry, events):
        registry.apply(events("session_start"))
        assert registry.apply(events("session_end", reason="exit")).status == SessionStatus.ENDED

    def test_unrecognized_keeps_status(self, registry, events):
        registry.apply(events("session_start"))
        registry.apply(events("stop"))
        session = registry.apply(events("notification", at=T0 + timedelta(minutes=1)))
        assert session.status == SessionStatus.IDLE
        assert session.last_activity_at == T0 + timedelta(minutes=1)

    def test_session_start_resets_existing(self, registry, events):
        registry.apply(events("session_start", cwd="/a/old"))
        registry.apply(events("prompt"))
        registry.apply(events("tool"))
        registry.apply(events("session_end"))

        later = T0 + timedelta(hours=1)
        session = registry.apply(events("session_start", at=later, cwd="/a/new"))
        assert session.status == SessionStatus.ACTIVE
        assert session.message_count == 0
        assert session.tool_call_count == 0
        assert session.started_at == later
        assert session.project_name == "new"

    def test_every_event_updates_last_activity(self, registry, events):
        registry.apply(events("session_start"))
        at = T0 + timedelta(seconds=30)
        assert registry.apply(events("tool", at=at)).last_activity_at == at

    def test_last_activity_never_before_start(self, registry, events):
        registry.apply(events("session_start"))
        session = registry.apply(events("tool", at=T0 - timedelta(seconds=5)))
        assert session.last_activity_at >= session.started_at

    def test_model_recorded_from_data(self, registry, events):
        registry.apply(events("session_start", model="claude-sonnet"))
        assert registry.get("s1").model == "claude-sonnet"
        registry.apply(events("tool"))
        assert registry.get("s1").model == "claude-sonnet"

    def test_transition_does_not_mutate(self, registry, events):
        registry.apply(events("session_start"))
        before = registry.get("s1")
        registry.transition(events("tool"))
        assert registry.get("s1") is before
        assert before.tool_call_count == 0

    def test_apply_replaces_record(self, registry, events):
        first = registry.apply(events("session_start"))
        second = registry.apply(events("tool"))
        assert first is not second
        assert first.tool_call_count == 0


class TestSweep:
    def test_demotes_only_stale_active(self, registry, events):
        now = T0 + timedelta(hours=1)
        registry.apply(events("session_start", session_id="old", at=now - timedelta(minutes=6)))
        registry.apply(events("session_start", session_id="fresh", at=now - timedelta(minutes=4)))
        registry.apply(events("session_start", session_id="ended", at=now - timedelta(hours=1)))
        registry.apply(events("session_end", session_id="ended", at=now - timedelta(hours=1)))

        demoted = registry.sweep_stale(now, timedelta(minutes=5))

        assert demoted == ["old"]
        assert registry.get("old").status == SessionStatus.IDLE
        assert registry.get("fresh").status == SessionStatus.ACTIVE
        assert registry.get("ended").status == SessionStatus.ENDED

    def test_idle_sessions_untouched(self, registry, events):
        registry.apply(events("stop", at=T0))
        idle = registry.get("s1")
        assert registry.sweep_stale(T0 + timedelta(days=1), timedelta(minutes=5)) == []
        assert registry.get("s1") is idle

    def test_active_count(self, registry, events):
        registry.apply(events("session_start", session_id="a"))
        registry.apply(events("session_start", session_id="b"))
        registry.apply(events("stop", session_id="b"))
        assert registry.active_count() == 1
