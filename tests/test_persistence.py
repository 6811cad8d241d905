"""
Tests for snapshot persistence: round-trip, atomic writes, debounce.
"""

import asyncio
import json

import pytest

from claude_monitor.core.monitor import Monitor
from claude_monitor.core.persistence import PersistenceManager, write_atomic
from claude_monitor.models import SessionEvent, Snapshot

from helpers import FakeMonotonic, hook


def populate(monitor):
    monitor.ingest(hook("session_start", session_id="a", cwd="/w/alpha", model="opus"))
    monitor.ingest(hook("prompt", session_id="a", prompt="fix it"))
    monitor.ingest(hook("tool", session_id="a", tool_name="Bash", tool_input={"command": "ls"}))
    monitor.ingest(hook("session_start", session_id="b", cwd="/w/beta"))
    monitor.ingest(hook("stop", session_id="b"))


class TestRoundTrip:
    def test_load_save_round_trip(self, config, clock):
        original = Monitor(config, clock=clock)
        populate(original)
        assert original.persistence.snapshot()

        restored = Monitor(config, clock=clock)
        assert restored.load()

        assert restored.registry.export() == original.registry.export()
        assert restored.event_log.events() == original.event_log.events()
        assert restored.event_log.last_sequence == original.event_log.last_sequence

    def test_non_ascii_and_unpaired_surrogate_survive(self, config, clock):
        original = Monitor(config, clock=clock)
        original.ingest(hook("prompt", session_id="a", prompt="café 🎉"))
        original.event_log.append(
            SessionEvent(
                event_id=original.event_log.next_event_id(),
                session_id="a",
                event_type="prompt",
                timestamp=clock(),
                data={"session_id": "a", "prompt": "\ud83d cut"},
            )
        )
        assert original.persistence.snapshot()
        assert original.persistence.snapshot()

        restored = Monitor(config, clock=clock)
        assert restored.load()
        prompts = [e.data["prompt"] for e in restored.event_log.events()]
        assert prompts == ["café 🎉", "\ud83d cut"]

    def test_restored_counter_never_reuses_ids(self, config, clock):
        original = Monitor(config, clock=clock)
        populate(original)
        original.persistence.snapshot()

        restored = Monitor(config, clock=clock)
        restored.load()
        assert restored.ingest(hook("tool", session_id="a")).event_id == "evt_6"

    def test_counter_kept_after_eviction(self, config, clock):
        config.event_capacity = 3
        original = Monitor(config, clock=clock)
        populate(original)
        original.persistence.snapshot()

        raw = json.loads(config.data_file.read_text(encoding="utf-8"))
        assert [e["eventId"] for e in raw["events"]] == ["evt_3", "evt_4", "evt_5"]
        assert raw["lastEventId"] == 5

    def test_file_layout(self, monitor, config):
        populate(monitor)
        monitor.persistence.snapshot()

        raw = json.loads(config.data_file.read_text(encoding="utf-8"))
        assert set(raw) == {"sessions", "events", "lastEventId"}
        session = raw["sessions"]["a"]
        assert session["projectName"] == "alpha"
        assert session["status"] == "active"
        assert session["tokenUsage"] == {"input": 0, "output": 0, "cacheRead": 0}
        assert raw["events"][0]["eventType"] == "session_start"

    def test_missing_file_is_empty_state(self, monitor):
        assert monitor.load() is False
        assert len(monitor.registry) == 0
        assert monitor.event_log.last_sequence == 0

    def test_corrupt_file_moved_aside(self, monitor, config):
        config.data_file.parent.mkdir(parents=True)
        config.data_file.write_text("{not json", encoding="utf-8")

        assert monitor.load() is False
        assert monitor.persistence.last_error
        assert not config.data_file.exists()
        assert config.data_file.with_name("sessions.json.corrupt").exists()

    def test_invalid_schema_moved_aside(self, monitor, config):
        config.data_file.parent.mkdir(parents=True)
        config.data_file.write_text(json.dumps({"lastEventId": -4}), encoding="utf-8")
        assert monitor.load() is False
        assert config.data_file.with_name("sessions.json.corrupt").exists()


class TestAtomicWrite:
    def test_replaces_content_and_leaves_no_temp(self, tmp_path):
        target = tmp_path / "out" / "state.json"
        write_atomic(target, "one")
        write_atomic(target, "two")
        assert target.read_text(encoding="utf-8") == "two"
        assert [p.name for p in target.parent.iterdir()] == ["state.json"]

    def test_failed_write_keeps_previous_file(self, monitor, config, monkeypatch):
        populate(monitor)
        assert monitor.persistence.snapshot()
        before = config.data_file.read_text(encoding="utf-8")

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("claude_monitor.core.persistence.os.replace", broken_replace)
        monitor.ingest(hook("tool", session_id="a"))

        assert monitor.persistence.snapshot() is False
        assert "disk full" in monitor.persistence.last_error
        assert config.data_file.read_text(encoding="utf-8") == before
        assert [p.name for p in config.data_file.parent.iterdir()] == ["sessions.json"]

    def test_failed_flush_stays_pending(self, monitor, monkeypatch):
        monkeypatch.setattr(
            monitor.persistence, "snapshot", lambda: False
        )
        monitor.ingest(hook("tool"))
        assert monitor.persistence.flush() is False
        assert monitor.persistence.pending


class TestDebounce:
    def make(self, tmp_path, clock):
        return PersistenceManager(
            tmp_path / "s.json", capture=Snapshot, debounce=1.0, max_delay=30.0, clock=clock
        )

    def test_nothing_pending_initially(self, tmp_path):
        manager = self.make(tmp_path, FakeMonotonic())
        assert manager.next_flush_at() is None
        assert manager.flush() is False

    def test_each_call_pushes_deadline(self, tmp_path):
        clock = FakeMonotonic()
        manager = self.make(tmp_path, clock)

        manager.schedule_snapshot()
        assert manager.next_flush_at() == 1.0
        clock.t = 0.6
        manager.schedule_snapshot()
        assert manager.next_flush_at() == pytest.approx(1.6)

    def test_max_delay_caps_continuous_load(self, tmp_path):
        clock = FakeMonotonic()
        manager = self.make(tmp_path, clock)

        for step in range(60):
            clock.t = step * 0.5
            manager.schedule_snapshot()
        assert manager.next_flush_at() == 30.0

    def test_flush_clears_pending(self, tmp_path):
        manager = self.make(tmp_path, FakeMonotonic())
        manager.schedule_snapshot()
        assert manager.flush() is True
        assert not manager.pending
        assert manager.writes == 1

    def test_max_delay_must_cover_debounce(self, tmp_path):
        with pytest.raises(ValueError):
            PersistenceManager(tmp_path / "s.json", capture=Snapshot, debounce=5, max_delay=1)


class TestFlushLoop:
    @pytest.mark.asyncio
    async def test_burst_collapses_to_one_write(self, tmp_path):
        manager = PersistenceManager(
            tmp_path / "s.json", capture=Snapshot, debounce=0.1, max_delay=2.0
        )
        await manager.start()
        try:
            for _ in range(10):
                manager.schedule_snapshot()
                await asyncio.sleep(0.01)
            assert manager.writes == 0
            await asyncio.sleep(0.4)
            assert manager.writes == 1
            assert (tmp_path / "s.json").exists()
        finally:
            await manager.stop()

    @pytest.mark.asyncio
    async def test_continuous_load_still_flushes(self, tmp_path):
        manager = PersistenceManager(
            tmp_path / "s.json", capture=Snapshot, debounce=0.2, max_delay=0.3
        )
        await manager.start()
        try:
            for _ in range(40):
                manager.schedule_snapshot()
                await asyncio.sleep(0.03)
            assert manager.writes >= 2
        finally:
            await manager.stop()

    @pytest.mark.asyncio
    async def test_stop_flushes_pending(self, tmp_path):
        manager = PersistenceManager(
            tmp_path / "s.json", capture=Snapshot, debounce=60, max_delay=120
        )
        await manager.start()
        manager.schedule_snapshot()
        await manager.stop()
        assert manager.writes == 1
        assert not manager.pending

    @pytest.mark.asyncio
    async def test_monitor_stop_persists_state(self, config, clock):
        config.save_debounce = 60
        config.save_max_delay = 120
        monitor = Monitor(config, clock=clock)
        await monitor.start()
        populate(monitor)
        await monitor.stop()

        restored = Monitor(config, clock=clock)
        assert restored.load()
        assert len(restored.registry) == 2
