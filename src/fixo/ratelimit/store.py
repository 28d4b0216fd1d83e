"""
Execution-log and user-plan stores backing the rate limiter.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Protocol, runtime_checkable

from ..config.base import PlanType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


SubjectKind = Literal["triggered_by", "repo_owner"]


@dataclass
class ExecutionRecord:
    """One counted job execution."""

    job_id: str
    triggered_by: str
    repo_owner: str
    repo_name: str
    job_type: str
    id: str | None = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class UserPlan:
    user_id: str
    plan_type: PlanType = "free"
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@runtime_checkable
class ExecutionLogStore(Protocol):
    async def add(self, record: ExecutionRecord) -> None: ...

    async def count_since(self, subject_id: str, kind: SubjectKind, since: datetime) -> int: ...


@runtime_checkable
class UserPlanStore(Protocol):
    async def get(self, user_id: str) -> UserPlan | None: ...

    async def upsert(self, plan: UserPlan) -> None: ...

    async def list_by_plan(self, plan_type: PlanType) -> list[UserPlan]: ...


class InMemoryExecutionLogStore:
    def __init__(self) -> None:
        self._records: list[ExecutionRecord] = []
        self._lock = asyncio.Lock()

    @property
    def records(self) -> list[ExecutionRecord]:
        return list(self._records)

    async def add(self, record: ExecutionRecord) -> None:
        async with self._lock:
            self._records.append(record)

    async def count_since(self, subject_id: str, kind: SubjectKind, since: datetime) -> int:
        attr = "triggered_by" if kind == "triggered_by" else "repo_owner"
        return sum(1 for r in self._records if getattr(r, attr) == subject_id and r.created_at >= since)


class InMemoryUserPlanStore:
    def __init__(self) -> None:
        self._plans: dict[str, UserPlan] = {}

    async def get(self, user_id: str) -> UserPlan | None:
        return self._plans.get(user_id)

    async def upsert(self, plan: UserPlan) -> None:
        existing = self._plans.get(plan.user_id)
        if existing is not None:
            plan.created_at = existing.created_at
        self._plans[plan.user_id] = plan

    async def list_by_plan(self, plan_type: PlanType) -> list[UserPlan]:
        return [p for p in self._plans.values() if p.plan_type == plan_type]


__all__ = [
    "SubjectKind",
    "ExecutionRecord",
    "UserPlan",
    "ExecutionLogStore",
    "UserPlanStore",
    "InMemoryExecutionLogStore",
    "InMemoryUserPlanStore",
]
