"""Tests for the quantized clock."""

import asyncio

import pytest

from usage_analytics.telemetry.clock import QuantizedClock


class TestQuantizedClock:
    def test_tick_advances_by_granularity(self):
        clock = QuantizedClock(granularity_seconds=0.1)
        assert clock.current() == 0

        clock.tick()
        clock.tick()
        assert clock.current() == 0.2

    def test_reset(self):
        clock = QuantizedClock(granularity_seconds=3)
        clock.tick()
        clock.reset()
        assert clock.current() == 0

    @pytest.mark.asyncio
    async def test_background_ticks(self):
        clock = QuantizedClock(granularity_seconds=0.02)
        clock.start()
        try:
            await asyncio.sleep(0.09)
            assert clock.running
            assert clock.current() >= 0.04
        finally:
            clock.stop()
        assert not clock.running

    @pytest.mark.asyncio
    async def test_reconfigure_keeps_counter(self):
        clock = QuantizedClock(granularity_seconds=3)
        clock.start()
        clock.tick()

        clock.reconfigure(5)

        assert clock.current() == 3
        assert clock.granularity_seconds == 5
        assert clock.running
        clock.tick()
        assert clock.current() == 8
        clock.stop()

    def test_reconfigure_stopped_clock_stays_stopped(self):
        clock = QuantizedClock(granularity_seconds=3)
        clock.reconfigure(1)
        assert not clock.running
        assert clock.granularity_seconds == 1

    @pytest.mark.asyncio
    async def test_stop_freezes_counter(self):
        clock = QuantizedClock(granularity_seconds=0.01)
        clock.start()
        await asyncio.sleep(0.03)
        clock.stop()
        frozen = clock.current()
        await asyncio.sleep(0.03)
        assert clock.current() == frozen
