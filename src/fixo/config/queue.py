"""
Job queue configuration.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class QueueConfig:
    """Configuration for the job queue and worker."""

    max_retries: int = 3
    job_timeout: float = 1800.0

    # Delay before retrying after a failed pending -> processing transition
    persistence_retry_delay: float = 1.0

    # Base for exponential backoff between attempts; 0 re-queues immediately
    retry_backoff: float = 0.0
    max_retry_backoff: float = 300.0

    # Processing rows untouched for job_timeout + this long are recovered by start()
    stale_job_grace: float = 60.0

    def __post_init__(self):
        if self.max_retries < 1:
            raise ValueError("max_retries must be at least 1")
        if self.job_timeout <= 0:
            raise ValueError("job_timeout must be positive")
        if self.persistence_retry_delay < 0:
            raise ValueError("persistence_retry_delay cannot be negative")
        if self.retry_backoff < 0:
            raise ValueError("retry_backoff cannot be negative")
        if self.max_retry_backoff < self.retry_backoff:
            raise ValueError("max_retry_backoff must be >= retry_backoff")
        if self.stale_job_grace < 0:
            raise ValueError("stale_job_grace cannot be negative")

    @property
    def stale_after(self) -> float:
        return self.job_timeout + self.stale_job_grace

    def backoff_for(self, attempts: int) -> float:
        """Delay before the attempt that follows `attempts` failed ones."""
        if self.retry_backoff <= 0 or attempts < 1:
            return 0.0
        return min(self.retry_backoff * (2 ** (attempts - 1)), self.max_retry_backoff)


__all__ = ["QueueConfig"]
