from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from sejarah.api.models import PersistedProgress
from sejarah.progress_store import ProgressStore, StorageError

logger = logging.getLogger(__name__)


class SaveLoopError(RuntimeError):
    """A save was requested with no running event loop to schedule it on."""


class DebouncedSaver:
    """Latest-value debounce in front of a ProgressStore.

    Contract:
      - `schedule(snapshot)` overwrites the single pending slot and arms one timer
        if none is armed. Bursts inside the window coalesce into one write.
      - when the timer fires, whatever is in the slot at that moment is written.
      - writes are serialised, so a write that is still retrying can never land
        after a newer one.

    Must be driven from a running event loop.
    """

    def __init__(
        self,
        *,
        store: ProgressStore,
        delay_s: float = 1.0,
        on_saved: Callable[[], None] | None = None,
        on_failed: Callable[[str], None] | None = None,
    ) -> None:
        self._store = store
        self._delay_s = delay_s
        self._on_saved = on_saved
        self._on_failed = on_failed

        self._pending: PersistedProgress | None = None
        self._handle: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._write_lock = asyncio.Lock()

    @property
    def is_armed(self) -> bool:
        return self._handle is not None

    def require_loop(self, *, action: str) -> asyncio.AbstractEventLoop:
        try:
            return asyncio.get_running_loop()
        except RuntimeError as e:
            raise SaveLoopError(f"'{action}' needs a running event loop to schedule the save") from e

    def schedule(self, snapshot: PersistedProgress) -> None:
        loop = self.require_loop(action="schedule")
        self._pending = snapshot
        if self._handle is None:
            self._handle = loop.call_later(self._delay_s, self._fire)

    def cancel(self) -> None:
        """Drop the pending snapshot and disarm. In-flight writes still finish."""

        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._pending = None

    async def flush(self) -> None:
        """Write the pending snapshot now (if any) and wait for every write."""

        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        snapshot, self._pending = self._pending, None
        if snapshot is not None:
            self._spawn(snapshot)
        await self.wait_idle()

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _fire(self) -> None:
        self._handle = None
        snapshot, self._pending = self._pending, None
        if snapshot is None:
            return
        self._spawn(snapshot)

    def _spawn(self, snapshot: PersistedProgress) -> None:
        task = asyncio.get_running_loop().create_task(self._write(snapshot))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _write(self, snapshot: PersistedProgress) -> None:
        async with self._write_lock:
            try:
                await self._store.save(snapshot)
            except StorageError as e:
                if self._on_failed is not None:
                    self._on_failed(str(e))
                return

        logger.debug("Progress saved (timestamp=%d)", snapshot.timestamp)
        if self._on_saved is not None:
            self._on_saved()
