"""Tick sources that pace the emission loop."""

import asyncio
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tick:
    """One firing of a tick source."""
    sequence: int
    scheduled_at: float


class IntervalTicker:
    """
    Fires ticks on fixed boundaries of the event loop clock.

    The period is fixed at construction. The first tick fires one interval
    after iteration starts. When a consumer overruns one or more boundaries
    the missed ones are skipped and the next tick fires on the next future
    boundary, so ticks never pile up.
    """

    def __init__(self, interval_ms: int):
        if interval_ms <= 0:
            raise ValueError(f"Tick interval must be positive, got {interval_ms}ms")
        self.interval_ms = interval_ms
        self.interval = interval_ms / 1000.0
        self.skipped_ticks = 0

    def __aiter__(self) -> AsyncIterator[Tick]:
        return self._run()

    async def _run(self) -> AsyncIterator[Tick]:
        loop = asyncio.get_running_loop()
        next_at = loop.time() + self.interval
        sequence = 0

        while True:
            delay = next_at - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)

            sequence += 1
            yield Tick(sequence=sequence, scheduled_at=next_at)

            next_at += self.interval
            now = loop.time()
            if next_at <= now:
                missed = int((now - next_at) // self.interval) + 1
                next_at += missed * self.interval
                self.skipped_ticks += missed
                logger.debug(f"Emission overran the tick period, skipped {missed} tick(s)")


class ManualTicker:
    """Tick source driven explicitly by the caller, for tests and tooling."""

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._sequence = 0

    def fire(self, count: int = 1):
        """Queue ``count`` ticks."""
        for _ in range(count):
            self._sequence += 1
            self._queue.put_nowait(Tick(sequence=self._sequence, scheduled_at=0.0))

    def close(self):
        """End iteration once the already queued ticks are consumed."""
        self._queue.put_nowait(None)

    def __aiter__(self) -> AsyncIterator[Tick]:
        return self

    async def __anext__(self) -> Tick:
        tick: Optional[Tick] = await self._queue.get()
        if tick is None:
            raise StopAsyncIteration
        return tick
