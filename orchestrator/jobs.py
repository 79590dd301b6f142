"""In-memory job registry.

The registry is the only state shared between concurrently running jobs and
the callers polling them. Every read and write goes through one lock, so a job
task, an HTTP handler on another thread and the periodic sweeper can all use
the same instance.
"""
from __future__ import annotations

import asyncio
import copy
import logging
import os
import threading
import typing as t
import uuid
from datetime import datetime, timedelta, timezone

from orchestrator.models import Job, JobError, JobStatus, JobType

logger = logging.getLogger(__name__)

# Retention and sweep cadence - configurable via environment variables
JOB_RETENTION = timedelta(seconds=float(os.getenv("JOB_RETENTION_SECONDS", "3600")))
JOB_SWEEP_INTERVAL = float(os.getenv("JOB_SWEEP_INTERVAL_SECONDS", "3600"))


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class JobRegistry:
    """Tracks job lifecycle: pending -> processing -> completed | failed."""

    def __init__(self, clock: t.Callable[[], datetime] = utc_now) -> None:
        """Initialize an empty registry.

        Args:
            clock: Callable returning the current aware datetime. Tests inject
                a fixed clock to control sweeping.
        """
        self._clock = clock
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()
        self._sweeper: t.Optional[asyncio.Task] = None

    def create(self, job_type: JobType) -> str:
        """Allocate a new pending job and return its id."""
        job_id = f"{job_type.id_prefix}_{uuid.uuid4().hex}"
        job = Job(
            id=job_id,
            type=job_type,
            status=JobStatus.PENDING,
            progress=0,
            started_at=self._clock(),
        )
        with self._lock:
            self._jobs[job_id] = job
        logger.debug("Created job %s", job_id)
        return job_id

    def mark_processing(self, job_id: str) -> None:
        """Move a pending job into the processing state."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.status is not JobStatus.PENDING:
                return
            job.status = JobStatus.PROCESSING
        logger.info("Job %s is processing", job_id)

    def set_progress(self, job_id: str, percent: int) -> None:
        """Record job progress.

        Values are clamped to [0, 100] and never move backwards, so pollers
        always observe a non-decreasing sequence. Terminal and unknown jobs
        are left untouched.
        """
        percent = max(0, min(100, int(percent)))
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return
            if percent > job.progress:
                job.progress = percent

    def complete(self, job_id: str, result: t.Any) -> None:
        """Finish a job successfully. Calling it on a terminal job is a no-op."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return
            job.status = JobStatus.COMPLETED
            job.progress = 100
            job.completed_at = self._clock()
            job.result = result
        logger.info("Job %s completed", job_id)

    def fail(self, job_id: str, error_code: str, message: str) -> None:
        """Finish a job with an error. Calling it on a terminal job is a no-op."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job is None or job.is_terminal:
                return
            now = self._clock()
            job.status = JobStatus.FAILED
            job.completed_at = now
            job.error = JobError(code=error_code, message=message, timestamp=now)
        logger.warning("Job %s failed [%s]: %s", job_id, error_code, message)

    def status(self, job_id: str) -> t.Optional[Job]:
        """Return a deep copy of the job, or None if it is unknown."""
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job is not None else None

    def list_active(self) -> list[Job]:
        """Return snapshots of all pending or processing jobs."""
        with self._lock:
            return [copy.deepcopy(job) for job in self._jobs.values() if not job.is_terminal]

    def sweep(self, retention: timedelta = JOB_RETENTION) -> int:
        """Delete terminal jobs that finished more than `retention` ago.

        Args:
            retention: How long finished jobs stay visible to pollers.

        Returns:
            Number of jobs removed.
        """
        cutoff = self._clock() - retention
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if job.completed_at is not None and job.completed_at < cutoff
            ]
            for job_id in expired:
                del self._jobs[job_id]
        if expired:
            logger.info("Swept %d finished job(s)", len(expired))
        return len(expired)

    def clear(self) -> None:
        """Drop every job."""
        with self._lock:
            self._jobs.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    async def run_sweeper(
        self,
        interval: float = JOB_SWEEP_INTERVAL,
        retention: timedelta = JOB_RETENTION,
    ) -> None:
        """Sweep on a fixed interval until cancelled."""
        while True:
            await asyncio.sleep(interval)
            self.sweep(retention)

    def start_sweeper(
        self,
        interval: float = JOB_SWEEP_INTERVAL,
        retention: timedelta = JOB_RETENTION,
    ) -> asyncio.Task:
        """Start the periodic sweeper on the running event loop."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.create_task(self.run_sweeper(interval, retention))
        return self._sweeper

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweeper if it is running."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
