# src/claude_monitor/config.py

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_API_KEY = "dev-key-change-me"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ValueError(f"{name} must be at least 1, got {raw!r}")
    return value


@dataclass
class MonitorConfig:
    # Auth
    api_key: str = DEFAULT_API_KEY

    # Storage
    data_file: Path = Path("./data/sessions.json")
    event_capacity: int = 1000

    # Snapshot debounce (seconds)
    save_debounce: float = 1.0
    save_max_delay: float = 30.0

    # Stale sweep (seconds)
    sweep_interval: float = 60.0
    stale_after: float = 300.0

    # Server
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    log_file: str | None = None

    @property
    def uses_default_key(self) -> bool:
        return self.api_key == DEFAULT_API_KEY

    @classmethod
    def from_env(cls) -> "MonitorConfig":
        """Build a config from environment variables (call load_dotenv first)."""
        return cls(
            api_key=os.getenv("CLAUDE_MONITOR_API_KEY") or DEFAULT_API_KEY,
            data_file=Path(
                os.getenv("CLAUDE_MONITOR_DATA_FILE", "./data/sessions.json")
            ),
            event_capacity=_env_int("CLAUDE_MONITOR_EVENT_CAPACITY", 1000),
            save_debounce=_env_float("CLAUDE_MONITOR_SAVE_DEBOUNCE", 1.0),
            save_max_delay=_env_float("CLAUDE_MONITOR_SAVE_MAX_DELAY", 30.0),
            sweep_interval=_env_float("CLAUDE_MONITOR_SWEEP_INTERVAL", 60.0),
            stale_after=_env_float("CLAUDE_MONITOR_STALE_AFTER", 300.0),
            host=os.getenv("HOST", "0.0.0.0"),
            port=_env_int("PORT", 3000),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE") or None,
        )
