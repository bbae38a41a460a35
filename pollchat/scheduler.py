from __future__ import annotations

import asyncio
import logging
from typing import Optional

from .clock import Clock, now_ms
from .config import DEFAULT_REMOVE_INTERVAL_MS, INACTIVITY_TIMEOUT_MS
from .presence import PresenceManager

log = logging.getLogger("pollchat.scheduler")


class EvictionScheduler:
    """Runs the inactivity sweep on its own asyncio task every ``interval_ms``."""

    def __init__(
        self,
        presence: PresenceManager,
        interval_ms: int = DEFAULT_REMOVE_INTERVAL_MS,
        timeout_ms: int = INACTIVITY_TIMEOUT_MS,
        clock: Optional[Clock] = None,
    ) -> None:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.presence = presence
        self.interval_ms = interval_ms
        self.timeout_ms = timeout_ms
        self.clock = clock or now_ms
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="eviction-sweep")
        log.info("Eviction sweep every %d ms (timeout %d ms)", self.interval_ms, self.timeout_ms)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def run_once(self) -> list[str]:
        try:
            return await self.presence.evict_inactive(self.clock(), self.timeout_ms)
        except Exception:
            # keep ticking; the next sweep retries
            log.exception("Eviction sweep raised")
            return []

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_ms / 1000)
            await self.run_once()
