"""
Job store implementations.

This module provides the JobStore interface and the in-memory store used
in tests and single-process deployments.
"""

from __future__ import annotations

import asyncio
import dataclasses
from abc import ABC, abstractmethod

from .types import JobRecord, JobStatus, utcnow


class JobStore(ABC):
    """Abstract interface for job persistence.

    Implementations must make `claim_next` atomic: two concurrent callers
    never receive the same job.
    """

    @abstractmethod
    async def create(self, job: JobRecord) -> JobRecord:
        """Create a new job record.

        Raises:
            ValueError: If the id already exists
        """
        ...

    @abstractmethod
    async def get(self, job_id: str) -> JobRecord | None:
        """Get a job by ID."""
        ...

    @abstractmethod
    async def update(self, job: JobRecord) -> JobRecord:
        """Persist status, attempts and logs of an existing job.

        Raises:
            ValueError: If the job doesn't exist
        """
        ...

    @abstractmethod
    async def list(self, status: JobStatus | None = None) -> list[JobRecord]:
        """List jobs, oldest first, optionally filtered by status."""
        ...

    @abstractmethod
    async def claim_next(self) -> JobRecord | None:
        """Move the oldest available pending job to processing and increment its attempts.

        A pending job whose `available_at` lies in the future is skipped.
        Returns None when nothing is claimable.

        Raises:
            PersistenceError: If the store cannot be read or written
        """
        ...

    async def close(self) -> None:
        """Release store resources."""


def _copy(job: JobRecord) -> JobRecord:
    return dataclasses.replace(job, payload=dict(job.payload), logs=list(job.logs))


class InMemoryJobStore(JobStore):
    """In-memory implementation of JobStore.

    Records are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._jobs: dict[str, JobRecord] = {}
        self._lock = asyncio.Lock()

    async def create(self, job: JobRecord) -> JobRecord:
        async with self._lock:
            if job.id in self._jobs:
                raise ValueError(f"Job {job.id} already exists")
            self._jobs[job.id] = _copy(job)
            return _copy(job)

    async def get(self, job_id: str) -> JobRecord | None:
        job = self._jobs.get(job_id)
        return _copy(job) if job else None

    async def update(self, job: JobRecord) -> JobRecord:
        async with self._lock:
            if job.id not in self._jobs:
                raise ValueError(f"Job {job.id} not found")
            self._jobs[job.id] = _copy(job)
            return _copy(job)

    async def list(self, status: JobStatus | None = None) -> list[JobRecord]:
        jobs = [j for j in self._jobs.values() if status is None or j.status == status]
        # sorted() is stable, so equal timestamps keep insertion order
        return [_copy(j) for j in sorted(jobs, key=lambda j: j.created_at)]

    async def claim_next(self) -> JobRecord | None:
        async with self._lock:
            now = utcnow()
            pending = [
                j for j in self._jobs.values() if j.status == JobStatus.PENDING and j.is_available(now)
            ]
            if not pending:
                return None
            oldest = min(pending, key=lambda j: j.created_at)
            claimed = oldest.transition_to(JobStatus.PROCESSING)
            claimed.attempts += 1
            claimed.updated_at = utcnow()
            self._jobs[claimed.id] = claimed
            return _copy(claimed)

    async def clear(self) -> None:
        async with self._lock:
            self._jobs.clear()


__all__ = ["JobStore", "InMemoryJobStore"]
