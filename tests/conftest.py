"""Shared pytest fixtures and configuration."""

import pytest

from claude_monitor.config import MonitorConfig
from claude_monitor.core.monitor import Monitor

from helpers import API_KEY, FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config(tmp_path):
    return MonitorConfig(
        api_key=API_KEY,
        data_file=tmp_path / "data" / "sessions.json",
        save_debounce=0.05,
        save_max_delay=0.5,
        sweep_interval=3600,
    )


@pytest.fixture
def monitor(config, clock):
    return Monitor(config, clock=clock)


@pytest.fixture
def mock_env_vars(monkeypatch):
    """Clear monitor environment variables so defaults apply."""
    for name in (
        "CLAUDE_MONITOR_API_KEY",
        "CLAUDE_MONITOR_DATA_FILE",
        "CLAUDE_MONITOR_EVENT_CAPACITY",
        "CLAUDE_MONITOR_SAVE_DEBOUNCE",
        "CLAUDE_MONITOR_SAVE_MAX_DELAY",
        "CLAUDE_MONITOR_SWEEP_INTERVAL",
        "CLAUDE_MONITOR_STALE_AFTER",
        "HOST",
        "PORT",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
