"""
Durable job queue: job types, stores, the single-flight queue and handlers.
"""

from .handlers import (
    CommentPublisher,
    CommentTarget,
    HandlerServices,
    PullRequestRequest,
    RepositoryCloner,
    default_agent_factory,
    dispatch_job,
    make_worker,
)
from .postgres import PostgresJobStore
from .queue import JobQueue, JobWorker, WorkerSlot
from .store import InMemoryJobStore, JobStore
from .types import (
    VALID_TRANSITIONS,
    AppMentionOnIssuePayload,
    AppMentionOnPullRequestPayload,
    JobPayload,
    JobRecord,
    JobStatus,
    JobType,
    parse_payload,
)

__all__ = [
    # Types
    "JobType",
    "JobStatus",
    "JobRecord",
    "JobPayload",
    "AppMentionOnIssuePayload",
    "AppMentionOnPullRequestPayload",
    "VALID_TRANSITIONS",
    "parse_payload",
    # Stores
    "JobStore",
    "InMemoryJobStore",
    "PostgresJobStore",
    # Queue
    "JobQueue",
    "JobWorker",
    "WorkerSlot",
    # Handlers
    "HandlerServices",
    "RepositoryCloner",
    "CommentPublisher",
    "CommentTarget",
    "PullRequestRequest",
    "default_agent_factory",
    "dispatch_job",
    "make_worker",
]
