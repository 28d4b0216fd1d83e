"""
Single-flight job queue.

One attempt runs at a time per process. Each attempt is raced against the
global job timeout, classified as completed, re-queued or failed, and then
followed by another `process_next()` scheduled in the background.
A re-queued job carries an `available_at` so its retry backoff holds even
when other work wakes the queue earlier.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta

from ..config import QueueConfig
from ..errors import FixoError, JobTimeoutError, PersistenceError, is_retryable
from .store import JobStore
from .types import JobPayload, JobRecord, JobStatus, utcnow

logger = logging.getLogger(__name__)

JobWorker = Callable[[JobRecord], Awaitable[None]]

STALE_JOB_MESSAGE = "Worker stopped before recording an outcome"


class WorkerSlot:
    """The in-flight flag. `acquire` fails instead of waiting when busy."""

    def __init__(self) -> None:
        self._active = 0
        self.max_observed = 0

    @property
    def in_flight(self) -> bool:
        return self._active > 0

    def acquire(self) -> bool:
        if self._active:
            return False
        self._active += 1
        self.max_observed = max(self.max_observed, self._active)
        return True

    def release(self) -> None:
        if self._active:
            self._active -= 1


def _failure_message(error: BaseException) -> str:
    if isinstance(error, FixoError):
        return error.message
    return str(error) or type(error).__name__


class JobQueue:
    """
    Durable FIFO work queue with bounded retries.

    Example:
        ```python
        queue = JobQueue(InMemoryJobStore(), make_worker(services), QueueConfig(max_retries=3))
        await queue.start()
        job = await queue.enqueue(payload)
        await queue.wait_idle()
        ```
    """

    def __init__(
        self,
        store: JobStore,
        worker: JobWorker,
        config: QueueConfig | None = None,
    ) -> None:
        self.store = store
        self.worker = worker
        self.config = config or QueueConfig()
        self.slot = WorkerSlot()
        self._tasks: set[asyncio.Task] = set()
        self._stopped = False
        self._wake_pending = False

    # === Public API ===

    async def enqueue(self, payload: JobPayload, *, job_id: str | None = None) -> JobRecord:
        """Persist a pending job and schedule processing if the worker is idle."""
        job = await self.store.create(JobRecord.from_payload(payload, job_id=job_id))
        logger.info("Job enqueued: job_id=%s type=%s", job.id, job.type)

        if self.slot.in_flight:
            self._wake_pending = True
        else:
            self._schedule_next()
        return job

    async def start(self) -> None:
        """Recover stranded jobs, then begin draining jobs left pending by a previous process."""
        self._stopped = False
        await self.recover_stale_jobs()
        self._schedule_next()

    async def stop(self) -> None:
        """Cancel scheduled follow-up attempts. An attempt already running is cancelled too."""
        self._stopped = True
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()

    async def wait_idle(self, poll_interval: float = 0.01) -> None:
        """Wait until no attempt is in flight and nothing is scheduled."""
        while True:
            tasks = [t for t in self._tasks if not t.done()]
            if tasks:
                await asyncio.gather(*tasks, return_exceptions=True)
                continue
            if not self.slot.in_flight:
                return
            await asyncio.sleep(poll_interval)

    async def recover_stale_jobs(self) -> list[JobRecord]:
        """
        Settle processing rows whose worker never recorded an outcome.

        A row counts as stale once it has not been touched for `stale_after`
        seconds, which is longer than any attempt can run. The lost attempt is
        counted as a failure: the job is re-queued, or failed when it already
        used its last attempt.
        """
        cutoff = utcnow() - timedelta(seconds=self.config.stale_after)
        recovered: list[JobRecord] = []
        for job in await self.store.list(JobStatus.PROCESSING):
            if job.updated_at > cutoff:
                continue
            logger.warning("Recovering stale job: job_id=%s attempt=%d", job.id, job.attempts)
            job.logs.append(f"Attempt {job.attempts}: Job failed: {STALE_JOB_MESSAGE}")
            status = JobStatus.FAILED if job.attempts >= self.config.max_retries else JobStatus.PENDING
            if await self._persist(job, status):
                recovered.append(job)
        return recovered

    async def get_job(self, job_id: str) -> JobRecord | None:
        return await self.store.get(job_id)

    async def list_jobs(self, status: JobStatus | None = None) -> list[JobRecord]:
        return await self.store.list(status)

    # === Processing ===

    async def process_next(self) -> None:
        """Run at most one attempt; no-op while another attempt is in flight."""
        if not self.slot.acquire():
            return

        self._wake_pending = False
        follow_up: float | None = None
        try:
            try:
                job = await self.store.claim_next()
            except PersistenceError as e:
                logger.error("Failed to move next job to processing: %s", e)
                follow_up = self.config.persistence_retry_delay
                return

            if job is None:
                return

            follow_up = await self._run_attempt(job)
        finally:
            self.slot.release()
            if follow_up is None and self._wake_pending:
                follow_up = 0.0
            if follow_up is not None:
                self._schedule_next(follow_up)

    async def _run_attempt(self, job: JobRecord) -> float:
        """Run one attempt and persist its outcome. Returns the delay before the next cycle."""
        if job.job_type is None:
            logger.error("Unknown job type: job_id=%s type=%s", job.id, job.type)
            job.logs.append(f"Internal Error: Unknown job type {job.type}")
            await self._persist(job, JobStatus.FAILED)
            return 0.0

        logger.info("Processing job: job_id=%s type=%s attempt=%d", job.id, job.type, job.attempts)

        try:
            await asyncio.wait_for(self.worker(job), timeout=self.config.job_timeout)
        except asyncio.TimeoutError:
            error: BaseException = JobTimeoutError(timeout=self.config.job_timeout)
        except Exception as e:
            error = e
        else:
            logger.info("Job completed: job_id=%s type=%s", job.id, job.type)
            await self._persist(job, JobStatus.COMPLETED)
            return 0.0

        message = _failure_message(error)
        job.logs.append(f"Attempt {job.attempts}: Job failed: {message}")
        logger.error("Job processing failed: job_id=%s type=%s error=%s", job.id, job.type, message)

        if job.attempts >= self.config.max_retries:
            logger.warning("Job failed after max retries: job_id=%s", job.id)
            await self._persist(job, JobStatus.FAILED)
            return 0.0

        delay = self.config.backoff_for(job.attempts)
        logger.info("Job re-queued after failure: job_id=%s backoff=%.2fs", job.id, delay)
        available_at = utcnow() + timedelta(seconds=delay) if delay > 0 else None
        await self._persist(job, JobStatus.PENDING, available_at=available_at)
        return delay

    async def _persist(
        self,
        job: JobRecord,
        status: JobStatus,
        *,
        available_at: datetime | None = None,
    ) -> bool:
        """Write the attempt outcome, retrying store failures that `is_retryable` accepts.

        Returns False when every write failed; the row then stays processing
        until `recover_stale_jobs` picks it up.
        """
        updated = job.transition_to(status)
        updated.available_at = available_at
        for write in range(1, self.config.max_retries + 1):
            try:
                await self.store.update(updated)
                return True
            except Exception as e:
                if not is_retryable(e):
                    raise
                logger.error("Failed to persist job outcome: job_id=%s status=%s error=%s", job.id, status.value, e)
                if write < self.config.max_retries:
                    await asyncio.sleep(self.config.persistence_retry_delay)
        logger.error("Giving up on job outcome: job_id=%s status=%s", job.id, status.value)
        return False

    # === Scheduling ===

    def _schedule_next(self, delay: float = 0.0) -> None:
        if self._stopped:
            return
        task = asyncio.create_task(self._process_after(delay))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _process_after(self, delay: float) -> None:
        # Wall clock, matching the available_at the claim is filtered on
        wake_at = utcnow() + timedelta(seconds=delay)
        while (remaining := (wake_at - utcnow()).total_seconds()) > 0:
            await asyncio.sleep(remaining)
        try:
            await self.process_next()
        except Exception:
            logger.exception("Unhandled error in job processing cycle")


__all__ = ["JobQueue", "JobWorker", "WorkerSlot", "STALE_JOB_MESSAGE"]
