"""Tests for the PeriodicTask primitive."""

import asyncio

import pytest

from components.core.scheduling import PeriodicTask


class TestPeriodicTask:
    def test_rejects_non_positive_interval(self):
        async def tick():
            return None

        with pytest.raises(ValueError):
            PeriodicTask("bad", 0, tick)

    @pytest.mark.asyncio
    async def test_run_once_returns_callback_result(self):
        async def tick():
            return 3

        task = PeriodicTask("sweep", 10, tick)

        assert await task.run_once() == 3
        assert task.ticks == 1

    @pytest.mark.asyncio
    async def test_failed_tick_is_logged_and_absorbed(self, caplog):
        async def tick():
            raise RuntimeError("db gone")

        task = PeriodicTask("sweep", 10, tick)

        assert await task.run_once() is None
        assert task.failures == 1
        assert "Periodic task sweep failed" in caplog.text

    @pytest.mark.asyncio
    async def test_loop_keeps_running_after_failure(self):
        calls = 0

        async def tick():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise ValueError("first tick fails")

        task = PeriodicTask("sweep", 0.001, tick)
        task.start()
        await asyncio.sleep(0.05)
        await task.stop()

        assert calls >= 2
        assert task.failures == 1
        assert task.running is False

    @pytest.mark.asyncio
    async def test_stop_cancels_tick_in_progress(self):
        started = asyncio.Event()

        async def tick():
            started.set()
            await asyncio.sleep(60)

        task = PeriodicTask("slow", 1, tick)
        task.start()
        await asyncio.wait_for(started.wait(), timeout=1)
        await task.stop()

        assert task.running is False
        assert task.failures == 0

    @pytest.mark.asyncio
    async def test_start_twice_keeps_one_loop(self):
        async def tick():
            return None

        task = PeriodicTask("sweep", 10, tick, run_immediately=False)
        task.start()
        first = task._task
        task.start()

        assert task._task is first
        await task.stop()
