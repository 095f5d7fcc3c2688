"""Per-region debounced push scheduling."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from dinnerhelp_sync.domain.snapshots import SyncField

_logger = logging.getLogger(__name__)

PushCallback = Callable[[SyncField], Awaitable[None]]


@dataclass
class PushScheduler:
    """Coalesces bursts of push requests into one push per region.

    A request restarts the region's timer. When the timer fires the push reads
    the region's value at that moment. At most one push per region is in
    flight; requests that land during a push cause one more push afterwards.
    """

    push: PushCallback
    delay_seconds: float = 2.0
    _timers: dict[SyncField, asyncio.TimerHandle] = field(
        default_factory=dict, init=False
    )
    _in_flight: dict[SyncField, asyncio.Task[None]] = field(
        default_factory=dict, init=False
    )
    _dirty: set[SyncField] = field(default_factory=set, init=False)

    def request(self, sync_field: SyncField) -> None:
        """Schedule a push of a region after the debounce delay."""
        loop = asyncio.get_running_loop()
        timer = self._timers.pop(sync_field, None)
        if timer is not None:
            timer.cancel()
        self._timers[sync_field] = loop.call_later(
            self.delay_seconds, self._fire, sync_field
        )

    def has_pending(self, sync_field: SyncField) -> bool:
        """Return whether a region has a scheduled or running push."""
        return sync_field in self._timers or sync_field in self._in_flight

    def pending(self) -> frozenset[SyncField]:
        """Return every region with a scheduled or running push."""
        return frozenset(self._timers) | frozenset(self._in_flight)

    async def flush(self) -> None:
        """Push scheduled regions now and wait for every running push."""
        for sync_field in list(self._timers):
            self._timers.pop(sync_field).cancel()
            self._fire(sync_field)
        while self._in_flight:
            await asyncio.gather(*self._in_flight.values(), return_exceptions=True)

    def cancel(self) -> frozenset[SyncField]:
        """Drop scheduled and running pushes and return the regions affected."""
        dropped = self.pending()
        for timer in self._timers.values():
            timer.cancel()
        for task in self._in_flight.values():
            task.cancel()
        self._timers.clear()
        self._in_flight.clear()
        self._dirty.clear()
        return dropped

    def _fire(self, sync_field: SyncField) -> None:
        self._timers.pop(sync_field, None)
        if sync_field in self._in_flight:
            self._dirty.add(sync_field)
            return
        task = asyncio.get_running_loop().create_task(self._run(sync_field))
        self._in_flight[sync_field] = task

    async def _run(self, sync_field: SyncField) -> None:
        try:
            while True:
                self._dirty.discard(sync_field)
                try:
                    await self.push(sync_field)
                except Exception:
                    _logger.exception("Push of %s failed", sync_field)
                if sync_field not in self._dirty:
                    break
        finally:
            if self._in_flight.get(sync_field) is asyncio.current_task():
                self._in_flight.pop(sync_field, None)
