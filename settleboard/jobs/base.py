"""Base class for scheduled batch jobs.

Each run records its status, progress counters and last error in the
job_state table. Errors from ``execute()`` are re-raised so the runner can
retry.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import text

_MARK_RUNNING = text(
    """
    INSERT INTO job_state (
        job_id, status, started_at, items_processed, items_total, error_count
    ) VALUES (
        :job_id, :status, :started_at, :processed, :total, 0
    )
    ON CONFLICT (job_id) DO UPDATE SET
        status = :status,
        started_at = :started_at,
        completed_at = NULL,
        items_processed = :processed,
        items_total = :total
    """
)

_MARK_COMPLETED = text(
    """
    UPDATE job_state
    SET status = :status,
        completed_at = :completed_at,
        items_processed = :processed,
        items_total = :total,
        error_count = 0,
        last_error = NULL
    WHERE job_id = :job_id
    """
)

_MARK_FAILED = text(
    """
    UPDATE job_state
    SET status = :status,
        last_error = :error,
        error_count = error_count + 1,
        items_processed = :processed
    WHERE job_id = :job_id
    """
)


class BatchJob(ABC):
    """Base class for all batch jobs.

    Subclasses must:
    - Set JOB_ID class attribute
    - Implement execute() method

    A failing ``execute()`` marks the job failed and re-raises, so the
    caller's retry policy sees every infrastructure error.
    """

    # Must be overridden by subclasses
    JOB_ID: str = ""

    def __init__(
        self,
        db: Any,
        logger: logging.Logger,
        *,
        job_id_override: str | None = None,
    ):
        """Initialize the job.

        Args:
            db: Database manager used for job status rows
            logger: Logger instance
        """
        if not self.JOB_ID and not job_id_override:
            raise ValueError("JOB_ID must be set")

        self.db = db
        self.logger = logger
        self.job_id = job_id_override or self.JOB_ID
        self.items_processed = 0
        self.items_total = 0
        self._started_at: Optional[datetime] = None

    async def run(self) -> Any:
        """Main entry point; returns whatever ``execute()`` returns."""
        self.items_processed = 0
        self.items_total = 0
        try:
            self._started_at = datetime.now(timezone.utc)
            await self._update_status("running")

            self.logger.info(f"Starting job {self.job_id}")

            result = await self.execute()

            await self._update_status("completed")

            elapsed = (datetime.now(timezone.utc) - self._started_at).total_seconds()
            self.logger.info(
                f"Job {self.job_id} completed: "
                f"processed {self.items_processed}/{self.items_total} in {elapsed:.2f}s"
            )
            return result

        except Exception as e:
            self.logger.error(f"Job {self.job_id} failed: {e}", exc_info=True)
            await self._update_status("failed", error=str(e))
            raise

    @abstractmethod
    async def execute(self) -> Any:
        """Job-specific logic.

        Subclasses must implement this method.
        """
        pass

    async def _update_status(
        self,
        status: str,
        error: Optional[str] = None,
    ) -> None:
        """Update job status in the database.

        Status bookkeeping never masks the job's own outcome: failures here
        are logged and dropped.
        """
        try:
            now = datetime.now(timezone.utc)
            params: Dict[str, Any] = {
                "job_id": self.job_id,
                "status": status,
                "processed": self.items_processed,
                "total": self.items_total,
            }

            if status == "running":
                params["started_at"] = self._started_at or now
                await self.db.write(_MARK_RUNNING, params=params)
            elif status == "completed":
                params["completed_at"] = now
                await self.db.write(_MARK_COMPLETED, params=params)
            elif status == "failed":
                params["error"] = error[:1000] if error else None
                await self.db.write(_MARK_FAILED, params=params)

        except Exception as e:
            self.logger.warning(f"Failed to update job status: {e}")


__all__ = ["BatchJob"]
