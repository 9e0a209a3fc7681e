from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable

from watchfiles import awatch

logger = logging.getLogger(__name__)

Pump = Callable[[], Awaitable[Any]]

# watchfiles batches changes for this long before yielding (ms)
_NATIVE_DEBOUNCE_MS = 50


class WakeMultiplexer:
    """Wakes an agent's tailer from two independent sources.

    - Native change notifications via ``watchfiles`` for low latency. These
      are best effort and may miss events on some filesystems.
    - A fixed-interval poll as a backstop, so a lost notification delays
      an update by at most one poll period.

    Both sources may fire for the same change; the pump is idempotent.
    """

    def __init__(
        self,
        path: Path,
        pump: Pump,
        poll_interval: float = 2.0,
        native: bool = True,
    ):
        self.path = Path(path)
        self._pump = pump
        self._poll_interval = poll_interval
        self._native = native
        self._stop_event: asyncio.Event | None = None
        self._tasks: list[asyncio.Task[None]] = []
        self._stopped = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._tasks or self._stopped:
            return
        self._stop_event = asyncio.Event()
        self._tasks.append(asyncio.create_task(self._poll_loop()))
        if self._native:
            self._tasks.append(asyncio.create_task(self._watch_loop()))

    def cancel(self) -> None:
        """Cancel both wake sources without waiting for them to finish."""
        self._stopped = True
        if self._stop_event is not None:
            self._stop_event.set()
        for task in self._tasks:
            task.cancel()

    async def stop(self) -> None:
        self.cancel()
        current = asyncio.current_task()
        for task in self._tasks:
            if task is current:
                continue
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._tasks.clear()

    @property
    def is_running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    # ------------------------------------------------------------------
    # Wake sources
    # ------------------------------------------------------------------

    async def _wake(self) -> None:
        try:
            await self._pump()
        except asyncio.CancelledError:
            raise
        except Exception:
            # The next wake retries from the last committed offset
            logger.exception("Pump failed for %s", self.path.name)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            await self._wake()

    async def _watch_loop(self) -> None:
        try:
            async for _changes in awatch(
                self.path,
                watch_filter=None,
                debounce=_NATIVE_DEBOUNCE_MS,
                stop_event=self._stop_event,
            ):
                await self._wake()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(
                "Native watch failed for %s: %s; relying on polling", self.path.name, e
            )
