from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from board.core.clock import as_utc, epoch_ms, utcnow
from board.schemas import events
from board.schemas.events import VisibleState
from board.services.store import purge_expired, transaction
from board.services.visibility import load_visible

if TYPE_CHECKING:
    from board.core.context import AppContext

log = logging.getLogger(__name__)


class ExpiryScheduler:
    """
    Purges non-permanent approved listings every `expiry_interval_seconds`.

    The loop only polls every `expiry_poll_seconds` to see whether `next_reset`
    has passed. Ticks never overlap: a tick that finds another one running is
    skipped.
    """

    def __init__(self, ctx: AppContext, clock: Callable[[], datetime] = utcnow):
        self.ctx = ctx
        self.clock = clock
        self.interval = timedelta(seconds=ctx.settings.expiry_interval_seconds)
        self.next_reset: datetime = as_utc(clock()) + self.interval
        self._tick_lock = asyncio.Lock()
        self._task: asyncio.Task | None = None

    @property
    def next_reset_ms(self) -> int:
        return epoch_ms(self.next_reset)

    async def tick(self, now: datetime | None = None) -> bool:
        """Run one expiry cycle if it is due. Returns True when a cycle ran."""
        if self._tick_lock.locked():
            log.warning("expiry tick skipped: previous tick still running")
            return False

        async with self._tick_lock:
            now = as_utc(now or self.clock())
            if now < self.next_reset:
                return False

            async with self.ctx.write_lock:
                async with transaction(self.ctx.sessions) as db:
                    purged = await purge_expired(db)
                    survivors = await load_visible(db)

                while self.next_reset <= now:
                    self.next_reset += self.interval

                log.info("expiry cycle: purged %d listings, %d permanent remain", len(purged), len(survivors))
                self.ctx.broadcaster.publish(
                    events.RESET,
                    VisibleState(ads=survivors, next_reset=self.next_reset_ms),
                )
            return True

    async def run(self) -> None:
        log.info("expiry scheduler: started, next reset at %s", self.next_reset.isoformat())
        while True:
            try:
                await self.tick()
            except Exception:
                log.exception("expiry scheduler: tick crashed")
            await asyncio.sleep(self.ctx.settings.expiry_poll_seconds)

    def start(self) -> None:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run(), name="expiry-scheduler")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
