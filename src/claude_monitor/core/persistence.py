"""
Snapshot persistence with debounced, atomic writes.

schedule_snapshot() only records that state changed; a background asyncio
task decides when to write:

    flush_at = min(last_request + debounce, first_pending_request + max_delay)

so a burst of ingests collapses into one write, while continuous traffic still
flushes at least every max_delay seconds. The JSON file is written to a temp
file in the same directory and moved into place with os.replace().
"""

import asyncio
import json
import os
import tempfile
import threading
import time
from pathlib import Path
from typing import Callable, Optional

from anyio import to_thread
from pydantic import ValidationError as PydanticValidationError

from claude_monitor.exceptions import PersistenceError
from claude_monitor.logger import get_logger
from claude_monitor.models import Snapshot

logger = get_logger(__name__)


def write_atomic(path: Path, content: str) -> None:
    """Write content to path via temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent)
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


class PersistenceManager:
    """
    Debounced snapshot writer and startup loader.

    Args:
        path: Snapshot file
        capture: Returns the Snapshot to write; called under the write lock
        debounce: Quiet period before a write (seconds)
        max_delay: Upper bound on how long a pending change may wait (seconds)
        clock: Monotonic clock, injectable for tests
    """

    def __init__(
        self,
        path: Path,
        capture: Callable[[], Snapshot],
        debounce: float = 1.0,
        max_delay: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_delay < debounce:
            raise ValueError("max_delay must be >= debounce")
        self.path = Path(path)
        self.debounce = debounce
        self.max_delay = max_delay
        self._capture = capture
        self._clock = clock

        self._lock = threading.Lock()
        self._write_lock = threading.Lock()
        self._pending_since: Optional[float] = None
        self._last_request_at: Optional[float] = None

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._wakeup: Optional[asyncio.Event] = None

        self.writes = 0
        self.last_error: Optional[str] = None

    # -- Scheduling ----------------------------------------------------------

    @property
    def pending(self) -> bool:
        with self._lock:
            return self._pending_since is not None

    def schedule_snapshot(self) -> None:
        """Mark state dirty and (re)arm the debounce timer. Safe from any thread."""
        now = self._clock()
        with self._lock:
            self._last_request_at = now
            if self._pending_since is None:
                self._pending_since = now
        self._notify()

    def next_flush_at(self) -> Optional[float]:
        """Clock time at which the pending snapshot is due, or None."""
        with self._lock:
            if self._pending_since is None:
                return None
            return min(
                self._last_request_at + self.debounce,
                self._pending_since + self.max_delay,
            )

    def _notify(self) -> None:
        if self._loop is None or self._wakeup is None or self._loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is self._loop:
            self._wakeup.set()
        else:
            self._loop.call_soon_threadsafe(self._wakeup.set)

    def _take_pending(self) -> bool:
        with self._lock:
            was_pending = self._pending_since is not None
            self._pending_since = None
            self._last_request_at = None
            return was_pending

    # -- Lifecycle -----------------------------------------------------------

    async def start(self) -> None:
        """Start the background flush task on the running loop."""
        self._loop = asyncio.get_running_loop()
        self._wakeup = asyncio.Event()
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        if self.pending:
            self._wakeup.set()
        logger.info(
            f"Persistence started ({self.path}, debounce {self.debounce}s, "
            f"max delay {self.max_delay}s)"
        )

    async def stop(self) -> None:
        """Cancel the flush task and write any pending snapshot synchronously."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._loop = None
        self._wakeup = None

        if self.pending:
            logger.info("Flushing pending snapshot on shutdown")
            self.flush()
        logger.info("Persistence stopped.")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self._wakeup.wait()
                self._wakeup.clear()
                await self._wait_until_due()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in snapshot loop: {e}")

    async def _wait_until_due(self) -> None:
        while (deadline := self.next_flush_at()) is not None:
            delay = deadline - self._clock()
            if delay > 0:
                # A new request wakes us early so the deadline is recomputed.
                try:
                    await asyncio.wait_for(self._wakeup.wait(), timeout=delay)
                except asyncio.TimeoutError:
                    pass
                self._wakeup.clear()
                continue
            if not await to_thread.run_sync(self.flush) and self.pending:
                # Failed write: wait for the next request instead of spinning.
                return

    # -- Snapshot I/O --------------------------------------------------------

    def flush(self) -> bool:
        """
        Write a snapshot now if one is pending.

        A failed write leaves the snapshot pending (without re-arming the
        timer), so the next schedule_snapshot() or stop() retries it.
        """
        if not self._take_pending():
            return False
        if self.snapshot():
            return True
        now = self._clock()
        with self._lock:
            if self._pending_since is None:
                self._pending_since = now
                self._last_request_at = now
        return False

    def snapshot(self) -> bool:
        """
        Capture current state and write it atomically.

        Returns:
            True on success. Failures are logged and swallowed; the next
            scheduled snapshot retries with fresh state.
        """
        try:
            with self._write_lock:
                state = self._capture()
                content = json.dumps(
                    state.model_dump(mode="json", by_alias=True),
                    indent=2,
                )
                write_atomic(self.path, content)
            self.writes += 1
            self.last_error = None
            logger.debug(
                f"Saved snapshot: {len(state.sessions)} sessions, "
                f"{len(state.events)} events, counter {state.last_event_id}"
            )
            return True
        except Exception as e:
            error = PersistenceError(f"Failed to save snapshot to {self.path}: {e}")
            self.last_error = str(error)
            logger.error(str(error))
            return False

    def load(self, quarantine: bool = True) -> Optional[Snapshot]:
        """
        Read the snapshot file.

        Returns:
            The Snapshot, or None when there is no usable file. A corrupt
            file is moved aside to ``<name>.corrupt`` so the next save does
            not overwrite the evidence.
        """
        if not self.path.exists():
            logger.info(f"No snapshot at {self.path}, starting fresh")
            return None

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            snapshot = Snapshot.model_validate(raw)
        except (OSError, json.JSONDecodeError, PydanticValidationError) as e:
            error = PersistenceError(f"Failed to load snapshot {self.path}: {e}")
            self.last_error = str(error)
            logger.error(str(error))
            if quarantine:
                self._quarantine()
            return None

        logger.info(
            f"Loaded {len(snapshot.sessions)} sessions and "
            f"{len(snapshot.events)} events from {self.path}"
        )
        return snapshot

    def _quarantine(self) -> None:
        target = self.path.with_name(self.path.name + ".corrupt")
        try:
            os.replace(self.path, target)
            logger.warning(f"Moved unreadable snapshot to {target}")
        except OSError as e:
            logger.error(f"Could not move unreadable snapshot aside: {e}")
