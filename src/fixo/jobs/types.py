"""
Job types for the work queue.

This module defines the JobType/JobStatus enums, the typed payloads for each
job type and the JobRecord dataclass that is persisted by a JobStore.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar

from ..errors import InvalidJobTransitionError, UnknownJobTypeError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobType(str, Enum):
    """Closed set of job kinds the worker knows how to handle."""

    APP_MENTION = "app_mention"
    APP_MENTION_ON_PULL_REQUEST = "app_mention_on_pull_request"

    @classmethod
    def parse(cls, value: str | JobType) -> JobType | None:
        try:
            return cls(value)
        except ValueError:
            return None


class JobStatus(str, Enum):
    """Job lifecycle states.

    State transitions:
    - PENDING -> PROCESSING (claimed by the queue)
    - PROCESSING -> COMPLETED (handler succeeded)
    - PROCESSING -> PENDING (failed, retries left)
    - PROCESSING -> FAILED (failed, retries exhausted or unknown type)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


VALID_TRANSITIONS: dict[JobStatus, set[JobStatus]] = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.PENDING, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


# =============================================================================
# Payloads
# =============================================================================


@dataclass(frozen=True, kw_only=True)
class MentionPayload:
    """Fields shared by every mention job."""

    job_type: ClassVar[JobType]

    original_repo_owner: str
    original_repo_name: str
    installation_id: int
    triggered_by: str
    command_to_process: str
    repository_url: str
    test_job: bool = False

    @property
    def repo_full_name(self) -> str:
        return f"{self.original_repo_owner}/{self.original_repo_name}"

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]):
        names = {f.name for f in dataclasses.fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in names})


@dataclass(frozen=True, kw_only=True)
class AppMentionOnIssuePayload(MentionPayload):
    job_type: ClassVar[JobType] = JobType.APP_MENTION

    event_issue_number: int
    event_issue_title: str


@dataclass(frozen=True, kw_only=True)
class AppMentionOnPullRequestPayload(MentionPayload):
    job_type: ClassVar[JobType] = JobType.APP_MENTION_ON_PULL_REQUEST

    event_pull_request_number: int
    event_pull_request_title: str
    pull_request_url: str
    head_ref: str
    head_sha: str
    base_ref: str
    base_sha: str
    comment_id: int


JobPayload = AppMentionOnIssuePayload | AppMentionOnPullRequestPayload

PAYLOAD_TYPES: dict[JobType, type[MentionPayload]] = {
    JobType.APP_MENTION: AppMentionOnIssuePayload,
    JobType.APP_MENTION_ON_PULL_REQUEST: AppMentionOnPullRequestPayload,
}


def parse_payload(job_type: str | JobType, data: dict[str, Any]) -> JobPayload:
    """
    Build the typed payload for a stored job.

    Raises:
        UnknownJobTypeError: If `job_type` is not a JobType
        TypeError: If required payload fields are missing
    """
    parsed = JobType.parse(job_type)
    if parsed is None:
        raise UnknownJobTypeError(job_type=str(job_type))
    return PAYLOAD_TYPES[parsed].from_dict(data)  # type: ignore[return-value]


# =============================================================================
# Job record
# =============================================================================


@dataclass
class JobRecord:
    """Persistent record of a queued job.

    `type` is kept as the raw string so rows written by newer code with an
    unknown type can still be loaded and failed. `payload` holds the JSON
    form of the typed payload, without `id` and `type`.
    `available_at` holds back a re-queued job until its retry backoff has passed.
    """

    type: str
    payload: dict[str, Any]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    logs: list[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    available_at: datetime | None = None

    @classmethod
    def from_payload(cls, payload: JobPayload, *, job_id: str | None = None) -> JobRecord:
        record = cls(type=payload.job_type.value, payload=payload.to_dict())
        if job_id:
            record.id = job_id
        return record

    @property
    def job_type(self) -> JobType | None:
        return JobType.parse(self.type)

    def typed_payload(self) -> JobPayload:
        return parse_payload(self.type, self.payload)

    def is_available(self, now: datetime | None = None) -> bool:
        return self.available_at is None or self.available_at <= (now or utcnow())

    def can_transition_to(self, new_status: JobStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def transition_to(self, new_status: JobStatus) -> JobRecord:
        """Return a copy in `new_status`.

        Raises:
            InvalidJobTransitionError: If the move is not in VALID_TRANSITIONS
        """
        if not self.can_transition_to(new_status):
            raise InvalidJobTransitionError(
                f"Invalid transition from {self.status.value} to {new_status.value}",
            )
        return dataclasses.replace(self, status=new_status, logs=list(self.logs), updated_at=utcnow())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "payload": dict(self.payload),
            "status": self.status.value,
            "attempts": self.attempts,
            "logs": list(self.logs),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "available_at": self.available_at.isoformat() if self.available_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> JobRecord:
        created_at = data.get("created_at")
        updated_at = data.get("updated_at")
        available_at = data.get("available_at")
        return cls(
            id=data["id"],
            type=data["type"],
            payload=dict(data.get("payload") or {}),
            status=JobStatus(data.get("status", JobStatus.PENDING.value)),
            attempts=data.get("attempts", 0),
            logs=list(data.get("logs") or []),
            created_at=datetime.fromisoformat(created_at) if isinstance(created_at, str) else created_at or utcnow(),
            updated_at=datetime.fromisoformat(updated_at) if isinstance(updated_at, str) else updated_at or utcnow(),
            available_at=datetime.fromisoformat(available_at) if isinstance(available_at, str) else available_at,
        )


__all__ = [
    "JobType",
    "JobStatus",
    "VALID_TRANSITIONS",
    "MentionPayload",
    "AppMentionOnIssuePayload",
    "AppMentionOnPullRequestPayload",
    "JobPayload",
    "PAYLOAD_TYPES",
    "parse_payload",
    "JobRecord",
    "utcnow",
]
