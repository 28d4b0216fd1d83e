"""
Tests for the asyncpg pool helper.
"""
from unittest.mock import AsyncMock, patch

import pytest

from fixo.config import DatabaseConfig
from fixo.db import create_pool, sanitize_table_name
from fixo.errors import ConfigError


class TestCreatePool:
    async def test_missing_dsn(self):
        with pytest.raises(ConfigError, match="DATABASE_URL is not configured"):
            await create_pool(DatabaseConfig(dsn=None))

    async def test_pool_options(self):
        config = DatabaseConfig(dsn="postgresql://localhost/fixo", min_pool_size=2, max_pool_size=8)

        with patch("fixo.db.asyncpg.create_pool", new=AsyncMock(return_value="pool")) as create:
            pool = await create_pool(config)

        assert pool == "pool"
        create.assert_awaited_once_with("postgresql://localhost/fixo", min_size=2, max_size=8)


class TestSanitizeTableName:
    def test_valid(self):
        assert sanitize_table_name("fixo_jobs2") == "fixo_jobs2"

    @pytest.mark.parametrize("name", ["", "jobs;", 'jobs"', "my-jobs"])
    def test_invalid(self, name):
        with pytest.raises(ValueError):
            sanitize_table_name(name)
