import asyncio

import pytest

from boxoffice.features.fulfillment.scheduler import BackgroundDispatcher


class TestBackgroundDispatcher:
    @pytest.mark.asyncio
    async def test_submit_returns_before_job_runs(self):
        dispatcher = BackgroundDispatcher()
        started = asyncio.Event()
        release = asyncio.Event()

        async def job():
            started.set()
            await release.wait()

        dispatcher.submit(job)
        assert dispatcher.in_flight == 1
        assert not started.is_set()

        await asyncio.sleep(0)
        assert started.is_set()
        release.set()
        await dispatcher.drain(timeout=1)
        assert dispatcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_concurrency_is_bounded(self):
        dispatcher = BackgroundDispatcher(max_concurrency=2)
        running = 0
        peak = 0

        async def job():
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1

        for _ in range(6):
            dispatcher.submit(job)
        await dispatcher.drain(timeout=1)

        assert peak == 2

    @pytest.mark.asyncio
    async def test_job_failure_does_not_affect_other_jobs(self):
        dispatcher = BackgroundDispatcher()
        done = []

        async def broken():
            raise RuntimeError("boom")

        async def fine():
            done.append(True)

        dispatcher.submit(broken, name="broken")
        dispatcher.submit(fine, name="fine")
        await dispatcher.drain(timeout=1)

        assert done == [True]
        assert dispatcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_drain_cancels_jobs_past_timeout(self):
        dispatcher = BackgroundDispatcher()

        async def stuck():
            await asyncio.sleep(10)

        task = dispatcher.submit(stuck)
        await dispatcher.drain(timeout=0.01)

        assert task.cancelled()
        assert dispatcher.in_flight == 0

    @pytest.mark.asyncio
    async def test_drain_with_nothing_in_flight(self):
        await BackgroundDispatcher().drain(timeout=0.01)
