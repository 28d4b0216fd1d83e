"""
Per-user execution quotas.

Usage is counted from the execution log since the start of the current day
and month (UTC). Free users have a daily and a monthly cap; paid users only
a monthly one.
"""

from __future__ import annotations

import logging
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from ..config import RateLimitConfig
from ..config.base import PlanType
from .store import (
    ExecutionLogStore,
    ExecutionRecord,
    InMemoryExecutionLogStore,
    InMemoryUserPlanStore,
    SubjectKind,
    UserPlan,
    UserPlanStore,
    utcnow,
)

logger = logging.getLogger(__name__)

RateLimitReason = Literal["daily_limit_exceeded", "monthly_limit_exceeded"]

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class RateLimitUsage:
    daily: int = 0
    monthly: int = 0


@dataclass
class RateLimitLimits:
    monthly: int
    daily: int | None = None


@dataclass
class RateLimitCheck:
    allowed: bool
    plan_type: PlanType
    usage: RateLimitUsage = field(default_factory=RateLimitUsage)
    limits: RateLimitLimits = field(default_factory=lambda: RateLimitLimits(monthly=0))
    reason: RateLimitReason | None = None


def _period_starts(now: datetime) -> tuple[datetime, datetime]:
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return start_of_day, start_of_day.replace(day=1)


def _generate_execution_id() -> str:
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"exec_{int(time.time() * 1000)}_{suffix}"


class RateLimitManager:
    """
    Checks and records executions against plan quotas.

    Example:
        ```python
        limiter = RateLimitManager(executions, plans, settings.rate_limit)
        check = await limiter.check_rate_limit("octocat", "triggered_by")
        if not check.allowed:
            body = limiter.generate_rate_limit_message("octocat", check, "triggered_by")
        ```
    """

    def __init__(
        self,
        executions: ExecutionLogStore | None = None,
        plans: UserPlanStore | None = None,
        config: RateLimitConfig | None = None,
    ) -> None:
        self.executions = executions or InMemoryExecutionLogStore()
        self.plans = plans or InMemoryUserPlanStore()
        self.plan_manager = UserPlanManager(self.plans)
        self.config = config or RateLimitConfig()

    async def get_user_plan(self, user_id: str) -> PlanType:
        return await self.plan_manager.get_user_plan(user_id)

    async def check_rate_limit(
        self,
        subject_id: str,
        kind: SubjectKind = "triggered_by",
        *,
        now: datetime | None = None,
    ) -> RateLimitCheck:
        plan_type = await self.get_user_plan(subject_id)
        start_of_day, start_of_month = _period_starts(now or datetime.now(timezone.utc))

        usage = RateLimitUsage(
            daily=await self.executions.count_since(subject_id, kind, start_of_day),
            monthly=await self.executions.count_since(subject_id, kind, start_of_month),
        )

        if plan_type == "free":
            limits = RateLimitLimits(daily=self.config.free_daily, monthly=self.config.free_monthly)
        else:
            limits = RateLimitLimits(monthly=self.config.paid_monthly)

        reason: RateLimitReason | None = None
        if limits.daily is not None and usage.daily >= limits.daily:
            reason = "daily_limit_exceeded"
        elif usage.monthly >= limits.monthly:
            reason = "monthly_limit_exceeded"

        return RateLimitCheck(
            allowed=reason is None,
            plan_type=plan_type,
            usage=usage,
            limits=limits,
            reason=reason,
        )

    async def record_execution(self, record: ExecutionRecord) -> None:
        """Append to the execution log. Failures are logged, never raised."""
        record.id = record.id or _generate_execution_id()
        try:
            await self.executions.add(record)
        except Exception as e:
            logger.error("Failed to record job execution: job_id=%s error=%s", record.job_id, e)
            return
        logger.info(
            "Recorded job execution for rate limiting: job_id=%s triggered_by=%s repo_owner=%s",
            record.job_id,
            record.triggered_by,
            record.repo_owner,
        )

    def generate_rate_limit_message(self, username: str, check: RateLimitCheck, kind: SubjectKind) -> str:
        contact = self.config.contact_email
        who = "you have" if kind == "triggered_by" else "this repository owner has"
        greeting = f"🚧 Hi @{username}! I'd love to help, but {who} reached"
        closing = "Sorry for the inconvenience! 🙏"

        if check.plan_type == "free":
            if check.reason == "daily_limit_exceeded":
                return (
                    f"{greeting} the daily limit of {check.limits.daily} requests for free users. "
                    f"You can try again tomorrow, or contact us at {contact} to upgrade to a paid plan "
                    f"for more executions ({self.config.paid_monthly}/month). {closing}"
                )
            if check.reason == "monthly_limit_exceeded":
                return (
                    f"{greeting} the monthly limit of {check.limits.monthly} requests for free users. "
                    f"Please contact us at {contact} to upgrade to a paid plan for more executions "
                    f"({self.config.paid_monthly}/month). {closing}"
                )
        elif check.reason == "monthly_limit_exceeded":
            return (
                f"{greeting} the monthly limit of {check.limits.monthly} requests for paid users. "
                f"Please contact us at {contact} to discuss increasing your quota. {closing}"
            )

        return (
            f"🚧 Hi @{username}! I encountered an issue checking rate limits. "
            f"Please contact us at {contact} for assistance. {closing}"
        )


class UserPlanManager:
    """Administrative plan changes."""

    def __init__(self, plans: UserPlanStore) -> None:
        self.plans = plans

    async def get_user_plan(self, user_id: str) -> PlanType:
        try:
            plan = await self.plans.get(user_id)
        except Exception as e:
            logger.warning("Failed to get user plan, defaulting to free: user_id=%s error=%s", user_id, e)
            return "free"
        return plan.plan_type if plan else "free"

    async def upgrade_user_to_paid(self, user_id: str) -> None:
        await self.plans.upsert(UserPlan(user_id=user_id, plan_type="paid"))
        logger.info("Updated user plan to paid: user_id=%s", user_id)

    async def downgrade_user_to_free(self, user_id: str) -> None:
        existing = await self.plans.get(user_id)
        if existing is None:
            logger.info("User already has default free plan: user_id=%s", user_id)
            return
        existing.plan_type = "free"
        existing.updated_at = utcnow()
        await self.plans.upsert(existing)
        logger.info("Downgraded user plan to free: user_id=%s", user_id)

    async def set_user_plan(self, user_id: str, plan_type: PlanType) -> None:
        if plan_type == "paid":
            await self.upgrade_user_to_paid(user_id)
        else:
            await self.downgrade_user_to_free(user_id)

    async def get_all_paid_users(self) -> list[str]:
        try:
            plans = await self.plans.list_by_plan("paid")
        except Exception as e:
            logger.error("Failed to get paid users: %s", e)
            return []
        return [p.user_id for p in plans]


__all__ = [
    "RateLimitReason",
    "RateLimitUsage",
    "RateLimitLimits",
    "RateLimitCheck",
    "RateLimitManager",
    "UserPlanManager",
]
