"""
Monitor: one service instance owning the whole session/event state.

Holds the registry, event log, ingestor, query service, stale sweeper and
persistence manager, plus the single RLock every mutation goes through.
The server keeps one Monitor on ``app.state.monitor``.
"""

import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from claude_monitor.config import MonitorConfig
from claude_monitor.core.event_log import EventLog
from claude_monitor.core.ingestor import EventIngestor, utc_now
from claude_monitor.core.persistence import PersistenceManager
from claude_monitor.core.queries import QueryService
from claude_monitor.core.registry import SessionRegistry
from claude_monitor.core.sweeper import StaleSweeper
from claude_monitor.logger import get_logger
from claude_monitor.models import SessionEvent, Snapshot

logger = get_logger(__name__)


class Monitor:
    """Wires the state engine together and manages its background tasks."""

    def __init__(
        self,
        config: Optional[MonitorConfig] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config or MonitorConfig()
        self._clock = clock
        self._lock = threading.RLock()

        self.registry = SessionRegistry()
        self.event_log = EventLog(capacity=self.config.event_capacity)
        self.persistence = PersistenceManager(
            self.config.data_file,
            capture=self.export_state,
            debounce=self.config.save_debounce,
            max_delay=self.config.save_max_delay,
        )
        self.ingestor = EventIngestor(
            self.registry,
            self.event_log,
            self._lock,
            schedule_snapshot=self.persistence.schedule_snapshot,
            clock=clock,
        )
        self.queries = QueryService(
            self.registry, self.event_log, self._lock, sweep=self.sweep, clock=clock
        )
        self.sweeper = StaleSweeper(self.sweep, interval=self.config.sweep_interval)
        self._started = False

    @property
    def stale_after(self) -> timedelta:
        return timedelta(seconds=self.config.stale_after)

    # -- Write domain --------------------------------------------------------

    def ingest(self, payload) -> SessionEvent:
        return self.ingestor.ingest(payload)

    def sweep(self, now: Optional[datetime] = None) -> list[str]:
        """Demote stale active sessions to idle. Returns demoted ids."""
        with self._lock:
            demoted = self.registry.sweep_stale(now or self._clock(), self.stale_after)
        if demoted:
            logger.debug(f"Stale sweep demoted: {', '.join(demoted)}")
            self.persistence.schedule_snapshot()
        return demoted

    # -- Snapshots -----------------------------------------------------------

    def export_state(self) -> Snapshot:
        with self._lock:
            return Snapshot(
                sessions=self.registry.export(),
                events=self.event_log.events(),
                last_event_id=self.event_log.last_sequence,
            )

    def restore_state(self, snapshot: Snapshot) -> None:
        with self._lock:
            self.registry.restore(snapshot.sessions.values())
            self.event_log.restore(snapshot.events, snapshot.last_event_id)

    def load(self) -> bool:
        """Restore from the snapshot file. Returns False when starting empty."""
        snapshot = self.persistence.load()
        if snapshot is None:
            return False
        self.restore_state(snapshot)
        return True

    # -- Lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Load persisted state and start the sweeper and flush task."""
        if self._started:
            return
        self.load()
        await self.persistence.start()
        await self.sweeper.start()
        self._started = True
        logger.info(
            f"Monitor started: {len(self.registry)} sessions, "
            f"{len(self.event_log)} events, next id {self.event_log.last_sequence + 1}"
        )

    async def stop(self) -> None:
        """Stop background tasks and flush pending state to disk."""
        if not self._started:
            return
        await self.sweeper.stop()
        await self.persistence.stop()
        self._started = False
        logger.info("Monitor stopped.")
