"""
Shared asyncpg helpers for the PostgreSQL-backed stores.
"""

from __future__ import annotations

import re
from typing import Any

import asyncpg

from .config import DatabaseConfig
from .errors import ConfigError


def sanitize_table_name(name: str) -> str:
    """Ensure the table name is safe for SQL interpolation."""
    if not name:
        raise ValueError("table_name cannot be empty")
    if not re.fullmatch(r"[a-zA-Z0-9_]+", name):
        raise ValueError(f"Invalid table name: {name!r}")
    return name


async def create_pool(config: DatabaseConfig) -> Any:
    """Open an asyncpg pool for `config.dsn`.

    Raises:
        ConfigError: If no DSN is configured
    """
    if not config.dsn:
        raise ConfigError("DATABASE_URL is not configured")
    return await asyncpg.create_pool(
        config.dsn,
        min_size=config.min_pool_size,
        max_size=config.max_pool_size,
    )


__all__ = ["sanitize_table_name", "create_pool"]
