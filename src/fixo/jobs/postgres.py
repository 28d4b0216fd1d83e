"""
PostgreSQL job store.

Rows are claimed with `FOR UPDATE SKIP LOCKED`, so several worker processes
can share one table without double-processing a job.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

import asyncpg

from ..db import sanitize_table_name
from ..errors import PersistenceError
from .store import JobStore
from .types import JobRecord, JobStatus


def _json_value(value: Any) -> Any:
    if isinstance(value, str):
        return json.loads(value)
    return value


class PostgresJobStore(JobStore):
    """PostgreSQL implementation of JobStore.

    Table schema:
    - id (TEXT PRIMARY KEY)
    - type, status (TEXT)
    - payload, logs (JSONB)
    - attempts (INTEGER)
    - created_at, updated_at (TIMESTAMPTZ)
    - available_at (TIMESTAMPTZ, NULL when claimable right away)
    """

    TABLE_NAME = "jobs"

    def __init__(self, pool: Any, table_name: str | None = None):
        self._pool = pool
        self._table = sanitize_table_name(table_name or self.TABLE_NAME)
        self._ensured = False
        self._lock = asyncio.Lock()

    async def _ensure_table(self) -> None:
        """Create the jobs table if it doesn't exist."""
        async with self._lock:
            if self._ensured:
                return

            ddl = f'''
            CREATE TABLE IF NOT EXISTS "{self._table}" (
                id TEXT PRIMARY KEY,
                type TEXT NOT NULL,
                payload JSONB NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                attempts INTEGER NOT NULL DEFAULT 0,
                logs JSONB NOT NULL DEFAULT '[]'::jsonb,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                available_at TIMESTAMPTZ
            );
            ALTER TABLE "{self._table}" ADD COLUMN IF NOT EXISTS available_at TIMESTAMPTZ;
            CREATE INDEX IF NOT EXISTS "{self._table}_status_created_at_idx" ON "{self._table}" (status, created_at)
            '''

            async with self._pool.acquire() as conn:
                for stmt in [s.strip() for s in ddl.split(";") if s.strip()]:
                    await conn.execute(stmt)

            self._ensured = True

    def _job_to_row(self, job: JobRecord) -> dict[str, Any]:
        return {
            "id": job.id,
            "type": job.type,
            "payload": json.dumps(job.payload),
            "status": job.status.value,
            "attempts": job.attempts,
            "logs": json.dumps(job.logs),
            "created_at": job.created_at,
            "updated_at": job.updated_at,
            "available_at": job.available_at,
        }

    def _row_to_job(self, row: Any) -> JobRecord:
        return JobRecord(
            id=row["id"],
            type=row["type"],
            payload=_json_value(row["payload"]) or {},
            status=JobStatus(row["status"]),
            attempts=row["attempts"] or 0,
            logs=_json_value(row["logs"]) or [],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            available_at=row.get("available_at"),
        )

    async def create(self, job: JobRecord) -> JobRecord:
        await self._ensure_table()

        row = self._job_to_row(job)
        columns = list(row.keys())
        placeholders = [f"${i+1}" for i in range(len(columns))]

        q = f'''
        INSERT INTO "{self._table}" ({", ".join(columns)})
        VALUES ({", ".join(placeholders)})
        '''

        async with self._pool.acquire() as conn:
            try:
                await conn.execute(q, *row.values())
            except asyncpg.UniqueViolationError:
                raise ValueError(f"Job {job.id} already exists")

        return job

    async def get(self, job_id: str) -> JobRecord | None:
        await self._ensure_table()

        q = f'SELECT * FROM "{self._table}" WHERE id = $1'

        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(q, job_id)
            if row is None:
                return None
            return self._row_to_job(row)

    async def update(self, job: JobRecord) -> JobRecord:
        await self._ensure_table()

        q = f'''
        UPDATE "{self._table}"
        SET status = $2, attempts = $3, logs = $4, updated_at = $5, available_at = $6
        WHERE id = $1
        '''

        async with self._pool.acquire() as conn:
            try:
                result = await conn.execute(
                    q,
                    job.id,
                    job.status.value,
                    job.attempts,
                    json.dumps(job.logs),
                    job.updated_at,
                    job.available_at,
                )
            except (asyncpg.PostgresError, OSError) as e:
                raise PersistenceError(f"Failed to update job {job.id}: {e}", cause=e) from e
            if result == "UPDATE 0":
                raise ValueError(f"Job {job.id} not found")

        return job

    async def list(self, status: JobStatus | None = None) -> list[JobRecord]:
        await self._ensure_table()

        if status is None:
            q = f'SELECT * FROM "{self._table}" ORDER BY created_at ASC'
            params: list[Any] = []
        else:
            q = f'SELECT * FROM "{self._table}" WHERE status = $1 ORDER BY created_at ASC'
            params = [status.value]

        async with self._pool.acquire() as conn:
            rows = await conn.fetch(q, *params)
            return [self._row_to_job(row) for row in rows]

    async def claim_next(self) -> JobRecord | None:
        q = f'''
        UPDATE "{self._table}"
        SET status = 'processing', attempts = attempts + 1, updated_at = NOW()
        WHERE id = (
            SELECT id FROM "{self._table}"
            WHERE status = 'pending'
              AND (available_at IS NULL OR available_at <= NOW())
            ORDER BY created_at ASC
            LIMIT 1
            FOR UPDATE SKIP LOCKED
        )
        RETURNING *
        '''

        try:
            await self._ensure_table()
            async with self._pool.acquire() as conn:
                row = await conn.fetchrow(q)
        except (asyncpg.PostgresError, OSError) as e:
            raise PersistenceError(f"Failed to claim next job: {e}", cause=e) from e

        return self._row_to_job(row) if row else None


__all__ = ["PostgresJobStore"]
