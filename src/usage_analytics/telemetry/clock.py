"""Quantized clock - coarse time buckets for event aggregation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .events import Number


logger = logging.getLogger(__name__)


@dataclass
class QuantizedClock:
    """
    Counter advanced by `granularity_seconds` every `granularity_seconds`.

    All events recorded between two ticks share the same quantized time,
    so the ordering of events within one tick cannot be recovered. The
    tick period and the increment are always the same value.
    """
    granularity_seconds: Number = 3

    _value: Number = field(default=0, init=False)
    _task: asyncio.Task | None = field(default=None, init=False)

    def current(self) -> Number:
        """Current quantized time."""
        return self._value

    def tick(self) -> None:
        """Advance by one granularity step."""
        self._value = self._value + self.granularity_seconds

    def reset(self) -> None:
        """
        Zero the counter so a freshly detached record starts at 0.

        A running tick task is restarted, so the next tick is a full
        period away.
        """
        self._value = 0
        if self.running:
            self.start()

    def start(self) -> None:
        """Start the background tick task (requires a running loop)."""
        self.stop()
        self._task = asyncio.get_running_loop().create_task(self._tick_loop())

    def stop(self) -> None:
        """Cancel the tick task, keeping the counter value."""
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def reconfigure(self, granularity_seconds: Number) -> None:
        """Restart ticking with a new granularity without losing the counter."""
        was_running = self.running
        self.stop()
        self.granularity_seconds = granularity_seconds
        if was_running:
            self.start()
        logger.info(f"Quantized clock granularity set to {granularity_seconds}s")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.granularity_seconds)
            self.tick()
