"""
Provider, database and bot configuration classes.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class OpenAIConfig:
    """Configuration for the OpenAI completion collaborator."""

    api_key: str | None = field(default_factory=lambda: os.getenv("OPENAI_API_KEY"))
    base_url: str | None = None
    organization: str | None = None
    default_model: str = "gpt-4.1"
    timeout: float = 120.0
    max_retries: int = 3

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.max_retries < 0:
            raise ValueError("max_retries cannot be negative")


@dataclass
class DatabaseConfig:
    """Configuration for the PostgreSQL-backed stores."""

    dsn: str | None = field(default_factory=lambda: os.getenv("DATABASE_URL"))
    jobs_table: str = "jobs"
    executions_table: str = "job_executions"
    plans_table: str = "user_plans"
    min_pool_size: int = 1
    max_pool_size: int = 5

    def __post_init__(self):
        if self.min_pool_size < 0:
            raise ValueError("min_pool_size cannot be negative")
        if self.max_pool_size < max(1, self.min_pool_size):
            raise ValueError("max_pool_size must be >= min_pool_size and >= 1")


def sanitize_bot_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9_.-]", "-", name)


@dataclass
class BotConfig:
    """Identity of the bot and the per-repository verification steps."""

    bot_name: str = "fixodev"
    repos_dir: Path = Path("./repos")
    cleanup_repositories: bool = True
    runtime: str = "node"
    lint_command: str | None = None
    test_command: str | None = None
    target_branch: str = "main"

    # Agent fix rounds for a failing lint/test command before its result is reported
    verification_fix_attempts: int = 1

    def __post_init__(self):
        self.bot_name = sanitize_bot_name(self.bot_name)
        if not self.bot_name:
            raise ValueError("bot_name cannot be empty")
        if isinstance(self.repos_dir, str):
            self.repos_dir = Path(self.repos_dir)
        if self.verification_fix_attempts < 0:
            raise ValueError("verification_fix_attempts cannot be negative")

    @property
    def verification_commands(self) -> list[str]:
        return [c for c in (self.lint_command, self.test_command) if c]


__all__ = ["OpenAIConfig", "DatabaseConfig", "BotConfig", "sanitize_bot_name"]
