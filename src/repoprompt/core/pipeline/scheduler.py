from __future__ import annotations

"""
Coalescing Scheduler.

Owns the single timer handle of the assembly pass. Every trigger restarts
the timer, so a burst of events produces one trailing run. Runs never
overlap: a timer expiring while a run is in progress queues exactly one
follow-up run.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Trailing-edge debouncer for an async callback on the running event loop.
    """

    def __init__(self, callback: Callable[[], Awaitable[None]], delay_ms: int) -> None:
        self._callback = callback
        self._delay = max(0, delay_ms) / 1000.0
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._pending = False
        self._rerun = False
        self.runs = 0

    @property
    def pending(self) -> bool:
        """A trigger has not been served by a run yet."""
        return self._pending

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def trigger(self) -> None:
        """
        Request a run after the coalescing delay.

        Without a running event loop the request is only recorded; flush()
        serves it.
        """
        self._pending = True
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self._on_timer)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def flush(self) -> None:
        """Run any pending request now and wait until no run is in progress."""
        self.cancel()
        if self.running:
            if self._pending:
                self._rerun = True
            await self._task
        if self._pending:
            self._task = asyncio.ensure_future(self._run())
            await self._task

    # -------------------------------------------------------------------------
    # PRIVATE HELPERS
    # -------------------------------------------------------------------------

    def _on_timer(self) -> None:
        self._handle = None
        if self.running:
            self._rerun = True
            return
        self._task = asyncio.ensure_future(self._run())

    async def _run(self) -> None:
        while True:
            self._pending = False
            self._rerun = False
            self.runs += 1
            try:
                await self._callback()
            except Exception as e:
                logger.error(f"Scheduled pass failed: {e}", exc_info=True)
            if not self._rerun:
                break
