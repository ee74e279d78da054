"""Tests for JobRunner retry and single-flight behaviour."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from settleboard.config.settlement_params import JobParams
from settleboard.jobs.runner import JobRunner, next_backoff_delay


def make_job(side_effect=None, return_value="report"):
    job = MagicMock()
    job.job_id = "test_job"
    job.run = AsyncMock(side_effect=side_effect, return_value=return_value)
    return job


class TestNextBackoffDelay:
    def test_grows_by_factor(self):
        assert next_backoff_delay(5.0, factor=2.0, max_delay=60.0) == 10.0

    def test_capped(self):
        assert next_backoff_delay(40.0, factor=2.0, max_delay=60.0) == 60.0

    def test_non_positive_jumps_to_cap(self):
        assert next_backoff_delay(0.0, factor=2.0, max_delay=60.0) == 60.0


class TestRunWithRetry:
    @pytest.mark.asyncio
    async def test_returns_result(self):
        runner = JobRunner(make_job(), params=JobParams(), sleep=AsyncMock())
        assert await runner.run_with_retry() == "report"

    @pytest.mark.asyncio
    async def test_retries_with_backoff(self):
        job = make_job(side_effect=[RuntimeError("a"), RuntimeError("b"), "ok"])
        sleep = AsyncMock()
        params = JobParams(max_attempts=3, initial_backoff_seconds=5.0, backoff_factor=2.0, max_backoff_seconds=60.0)

        result = await JobRunner(job, params=params, sleep=sleep).run_with_retry()

        assert result == "ok"
        assert [c.args[0] for c in sleep.await_args_list] == [5.0, 10.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self):
        job = make_job(side_effect=RuntimeError("down"))
        sleep = AsyncMock()

        with pytest.raises(RuntimeError, match="down"):
            await JobRunner(job, params=JobParams(max_attempts=2), sleep=sleep).run_with_retry()

        assert job.run.await_count == 2
        assert sleep.await_count == 1

    @pytest.mark.asyncio
    async def test_overlapping_run_is_skipped(self):
        release = asyncio.Event()
        started = asyncio.Event()

        async def slow_run():
            started.set()
            await release.wait()
            return "first"

        job = make_job(side_effect=slow_run)
        runner = JobRunner(job, params=JobParams(), sleep=AsyncMock())

        first = asyncio.create_task(runner.run_with_retry())
        await started.wait()
        assert runner.busy is True
        assert await runner.run_with_retry() is None

        release.set()
        assert await first == "first"
        assert job.run.await_count == 1
        assert runner.busy is False


class TestStop:
    @pytest.mark.asyncio
    async def test_stop_during_backoff_ends_retries(self):
        stop = asyncio.Event()
        job = make_job(side_effect=RuntimeError("down"))
        params = JobParams(max_attempts=5, initial_backoff_seconds=30.0)
        runner = JobRunner(job, params=params, sleep=AsyncMock())

        task = asyncio.create_task(runner.run_with_retry(stop))
        await asyncio.sleep(0)
        stop.set()

        with pytest.raises(RuntimeError, match="down"):
            await asyncio.wait_for(task, timeout=5)
        assert job.run.await_count == 1

    @pytest.mark.asyncio
    async def test_backoff_elapses_without_stop(self):
        stop = asyncio.Event()
        job = make_job(side_effect=[RuntimeError("blip"), "ok"])
        params = JobParams(max_attempts=2, initial_backoff_seconds=0.01)

        result = await JobRunner(job, params=params, sleep=AsyncMock()).run_with_retry(stop)

        assert result == "ok"

    def test_request_stop_cancels_job(self):
        stop = asyncio.Event()
        job = make_job()
        JobRunner(job, params=JobParams()).request_stop(stop)

        assert stop.is_set()
        job.cancel.assert_called_once_with()


class TestRunForever:
    @pytest.mark.asyncio
    async def test_stops_when_event_set(self):
        stop = asyncio.Event()

        async def run_once():
            stop.set()
            return "done"

        job = make_job(side_effect=run_once)
        await JobRunner(job, params=JobParams(interval_seconds=1), sleep=AsyncMock()).run_forever(stop)
        assert job.run.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_tick_does_not_stop_loop(self):
        stop = asyncio.Event()
        calls = []

        async def flaky():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            stop.set()

        job = make_job(side_effect=flaky)
        params = JobParams(max_attempts=1, interval_seconds=1)
        await asyncio.wait_for(JobRunner(job, params=params, sleep=AsyncMock()).run_forever(stop), timeout=5)
        assert len(calls) == 2
