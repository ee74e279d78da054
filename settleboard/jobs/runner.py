"""Single-flight scheduling with bounded retry for batch jobs."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from settleboard.config.settlement_params import JobParams, get_settlement_params

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


def next_backoff_delay(current: float, *, factor: float, max_delay: float) -> float:
    """Compute next backoff delay with a cap."""
    if current <= 0:
        return max_delay
    return min(max_delay, current * factor)


class JobRunner:
    """Runs one job at a time, retrying failed runs with capped backoff.

    A run requested while another is in flight is skipped rather than
    queued: overlapping runs would race on the same Pending positions.
    """

    def __init__(
        self,
        job: Any,
        *,
        params: Optional[JobParams] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self.job = job
        self.params = params or get_settlement_params().job
        self.sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def run_with_retry(self, stop: Optional[asyncio.Event] = None) -> Any:
        """Run the job; returns its result, or None when a run is already in flight.

        Raises the last error once ``max_attempts`` runs have failed, or as
        soon as ``stop`` is set during a backoff wait.
        """
        if self._lock.locked():
            logger.info(f"Job {self.job.job_id} already running; skipping this tick")
            return None

        async with self._lock:
            delay = self.params.initial_backoff_seconds
            attempt = 1
            while True:
                try:
                    return await self.job.run()
                except Exception as e:
                    if attempt >= self.params.max_attempts:
                        logger.error(f"Job {self.job.job_id} failed after {attempt} attempts: {e}")
                        raise
                    logger.warning(
                        f"Job {self.job.job_id} attempt {attempt}/{self.params.max_attempts} failed: {e}; "
                        f"retrying in {delay:.1f}s"
                    )
                    if await self._backoff(delay, stop):
                        logger.info(f"Job {self.job.job_id} stop requested; not retrying")
                        raise
                    delay = next_backoff_delay(
                        delay,
                        factor=self.params.backoff_factor,
                        max_delay=self.params.max_backoff_seconds,
                    )
                    attempt += 1

    async def _backoff(self, delay: float, stop: Optional[asyncio.Event]) -> bool:
        """Wait ``delay`` seconds; True when ``stop`` was set meanwhile."""
        if stop is None:
            await self.sleep(delay)
            return False
        try:
            await asyncio.wait_for(stop.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    def request_stop(self, stop: asyncio.Event) -> None:
        """Set ``stop`` and ask the job to stop between positions."""
        stop.set()
        cancel = getattr(self.job, "cancel", None)
        if cancel is not None:
            cancel()

    async def run_forever(self, stop: asyncio.Event) -> None:
        """Run every ``interval_seconds`` until ``stop`` is set."""
        while not stop.is_set():
            try:
                await self.run_with_retry(stop)
            except Exception as e:
                # The next tick starts a fresh run over whatever is still Pending.
                logger.error(f"Job {self.job.job_id} gave up this tick: {e}")
            try:
                await asyncio.wait_for(stop.wait(), timeout=self.params.interval_seconds)
            except asyncio.TimeoutError:
                pass


__all__ = ["JobRunner", "next_backoff_delay"]
