"""
PostgreSQL execution-log and user-plan stores.
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import Any

from ..config.base import PlanType
from ..db import sanitize_table_name
from .store import ExecutionRecord, SubjectKind, UserPlan

_SUBJECT_COLUMNS = {"triggered_by": "triggered_by", "repo_owner": "repo_owner"}


class PostgresExecutionLogStore:
    """Execution log in a `job_executions` table."""

    TABLE_NAME = "job_executions"

    def __init__(self, pool: Any, table_name: str | None = None):
        self._pool = pool
        self._table = sanitize_table_name(table_name or self.TABLE_NAME)
        self._ensured = False
        self._lock = asyncio.Lock()

    async def _ensure_table(self) -> None:
        async with self._lock:
            if self._ensured:
                return

            ddl = f'''
            CREATE TABLE IF NOT EXISTS "{self._table}" (
                id TEXT PRIMARY KEY,
                job_id TEXT NOT NULL,
                triggered_by TEXT NOT NULL,
                repo_owner TEXT NOT NULL,
                repo_name TEXT NOT NULL,
                job_type TEXT NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            );
            CREATE INDEX IF NOT EXISTS "{self._table}_triggered_by_idx" ON "{self._table}" (triggered_by, created_at);
            CREATE INDEX IF NOT EXISTS "{self._table}_repo_owner_idx" ON "{self._table}" (repo_owner, created_at)
            '''

            async with self._pool.acquire() as conn:
                for stmt in [s.strip() for s in ddl.split(";") if s.strip()]:
                    await conn.execute(stmt)

            self._ensured = True

    async def add(self, record: ExecutionRecord) -> None:
        await self._ensure_table()

        q = f'''
        INSERT INTO "{self._table}" (id, job_id, triggered_by, repo_owner, repo_name, job_type, created_at)
        VALUES ($1, $2, $3, $4, $5, $6, $7)
        '''

        async with self._pool.acquire() as conn:
            await conn.execute(
                q,
                record.id,
                record.job_id,
                record.triggered_by,
                record.repo_owner,
                record.repo_name,
                record.job_type,
                record.created_at,
            )

    async def count_since(self, subject_id: str, kind: SubjectKind, since: datetime) -> int:
        await self._ensure_table()

        column = _SUBJECT_COLUMNS[kind]
        q = f'SELECT COUNT(*) FROM "{self._table}" WHERE {column} = $1 AND created_at >= $2'

        async with self._pool.acquire() as conn:
            return await conn.fetchval(q, subject_id, since) or 0


class PostgresUserPlanStore:
    """User plans in a `user_plans` table."""

    TABLE_NAME = "user_plans"

    def __init__(self, pool: Any, table_name: str | None = None):
        self._pool = pool
        self._table = sanitize_table_name(table_name or self.TABLE_NAME)
        self._ensured = False
        self._lock = asyncio.Lock()

    async def _ensure_table(self) -> None:
        async with self._lock:
            if self._ensured:
                return

            ddl = f'''
            CREATE TABLE IF NOT EXISTS "{self._table}" (
                user_id TEXT PRIMARY KEY,
                plan_type TEXT NOT NULL DEFAULT 'free',
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
            '''

            async with self._pool.acquire() as conn:
                await conn.execute(ddl)

            self._ensured = True

    def _row_to_plan(self, row: Any) -> UserPlan:
        return UserPlan(
            user_id=row["user_id"],
            plan_type=row["plan_type"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    async def get(self, user_id: str) -> UserPlan | None:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE user_id = $1'

        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, user_id)
            return self._row_to_plan(row) if row else None

    async def upsert(self, plan: UserPlan) -> None:
        await self._ensure_table()

        q = f'''
        INSERT INTO "{self._table}" (user_id, plan_type, created_at, updated_at)
        VALUES ($1, $2, $3, $4)
        ON CONFLICT (user_id) DO UPDATE SET plan_type = EXCLUDED.plan_type, updated_at = EXCLUDED.updated_at
        '''

        async with self._pool.acquire() as conn:
            await conn.execute(q, plan.user_id, plan.plan_type, plan.created_at, plan.updated_at)

    async def list_by_plan(self, plan_type: PlanType) -> list[UserPlan]:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE plan_type = $1 ORDER BY user_id'

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, plan_type)
            return [self._row_to_plan(row) for row in rows]


__all__ = ["PostgresExecutionLogStore", "PostgresUserPlanStore"]
