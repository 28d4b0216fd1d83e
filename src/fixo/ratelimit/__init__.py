"""
Execution quotas per user and repository owner.
"""

from .manager import (
    RateLimitCheck,
    RateLimitLimits,
    RateLimitManager,
    RateLimitReason,
    RateLimitUsage,
    UserPlanManager,
)
from .postgres import PostgresExecutionLogStore, PostgresUserPlanStore
from .store import (
    ExecutionLogStore,
    ExecutionRecord,
    InMemoryExecutionLogStore,
    InMemoryUserPlanStore,
    SubjectKind,
    UserPlan,
    UserPlanStore,
)

__all__ = [
    "RateLimitManager",
    "RateLimitCheck",
    "RateLimitLimits",
    "RateLimitUsage",
    "RateLimitReason",
    "UserPlanManager",
    "ExecutionRecord",
    "UserPlan",
    "SubjectKind",
    "ExecutionLogStore",
    "UserPlanStore",
    "InMemoryExecutionLogStore",
    "InMemoryUserPlanStore",
    "PostgresExecutionLogStore",
    "PostgresUserPlanStore",
]
