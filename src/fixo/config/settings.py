"""
Settings master configuration and global helpers.
"""

from __future__ import annotations

import dataclasses
import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from dotenv import find_dotenv, load_dotenv

from ..config_schema import CONFIG_SCHEMA
from ..errors import InvalidConfigError
from .agent import AgentConfig
from .logging import LoggingConfig, RateLimitConfig
from .provider import BotConfig, DatabaseConfig, OpenAIConfig
from .queue import QueueConfig
from .sandbox import SandboxConfig

_TRUE_VALUES = ("1", "true", "yes", "on")


def _as_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


@dataclass
class Settings:
    """
    Master configuration for fixo.

    Aggregates all configuration sections into a single object that can be
    loaded from environment variables, files, or constructed programmatically.
    """

    openai: OpenAIConfig = field(default_factory=OpenAIConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    sandbox: SandboxConfig = field(default_factory=SandboxConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    bot: BotConfig = field(default_factory=BotConfig)

    @classmethod
    def from_env(cls, prefix: str = "FIXO_", *, dotenv: bool = True) -> Settings:
        """
        Load settings from environment variables.

        Example:
            FIXO_OPENAI_MODEL=gpt-4.1
            FIXO_QUEUE_MAX_RETRIES=5
            FIXO_DOCKER_RUNTIME_PREFIX=ghcr.io/fixo
        """
        if dotenv:
            load_env()

        try:
            return cls._from_env(prefix)
        except ValueError as e:
            raise InvalidConfigError(f"Environment validation failed: {e}", cause=e) from e

    @classmethod
    def _from_env(cls, prefix: str) -> Settings:
        settings = cls()

        # OpenAI
        if key := os.getenv(f"{prefix}OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY"):
            settings.openai.api_key = key
        if url := os.getenv(f"{prefix}OPENAI_BASE_URL"):
            settings.openai.base_url = url
        if model := os.getenv(f"{prefix}OPENAI_MODEL"):
            settings.openai.default_model = model

        # Agent
        if max_iterations := os.getenv(f"{prefix}AGENT_MAX_ITERATIONS"):
            settings.agent.max_iterations = int(max_iterations)
        if tool_timeout := os.getenv(f"{prefix}AGENT_TOOL_TIMEOUT"):
            settings.agent.tool_timeout = float(tool_timeout)

        # Queue
        if max_retries := os.getenv(f"{prefix}QUEUE_MAX_RETRIES"):
            settings.queue.max_retries = int(max_retries)
        if job_timeout := os.getenv(f"{prefix}QUEUE_JOB_TIMEOUT"):
            settings.queue.job_timeout = float(job_timeout)
        if backoff := os.getenv(f"{prefix}QUEUE_RETRY_BACKOFF"):
            settings.queue.retry_backoff = float(backoff)

        # Sandbox
        if runtime_prefix := os.getenv(f"{prefix}DOCKER_RUNTIME_PREFIX") or os.getenv("DOCKER_RUNTIME_PREFIX"):
            settings.sandbox.runtime_prefix = runtime_prefix.rstrip("/")
        if docker_url := os.getenv(f"{prefix}DOCKER_URL"):
            settings.sandbox.docker_url = docker_url
        if sandbox_timeout := os.getenv(f"{prefix}SANDBOX_TIMEOUT"):
            settings.sandbox.default_timeout = float(sandbox_timeout)

        # Logging
        if level := os.getenv(f"{prefix}LOG_LEVEL") or os.getenv("LOG_LEVEL"):
            settings.logging.level = level.upper()  # type: ignore
        if log_format := os.getenv(f"{prefix}LOG_FORMAT"):
            settings.logging.format = log_format.lower()  # type: ignore

        # Rate limits
        if enabled := os.getenv(f"{prefix}RATE_LIMIT_ENABLED"):
            settings.rate_limit.enabled = _as_bool(enabled)
        if contact := os.getenv(f"{prefix}CONTACT_EMAIL") or os.getenv("CONTACT_EMAIL"):
            settings.rate_limit.contact_email = contact

        # Database
        if dsn := os.getenv(f"{prefix}DATABASE_URL"):
            settings.database.dsn = dsn

        # Bot
        if bot_name := os.getenv(f"{prefix}BOT_NAME") or os.getenv("BOT_NAME"):
            settings.bot.bot_name = bot_name
        if repos_dir := os.getenv(f"{prefix}REPOS_DIR"):
            settings.bot.repos_dir = Path(repos_dir)
        if cleanup := os.getenv(f"{prefix}CLEANUP_REPOSITORIES") or os.getenv("CLEANUP_REPOSITORIES"):
            settings.bot.cleanup_repositories = _as_bool(cleanup)
        if lint := os.getenv(f"{prefix}LINT_COMMAND"):
            settings.bot.lint_command = lint
        if test := os.getenv(f"{prefix}TEST_COMMAND"):
            settings.bot.test_command = test
        if target := os.getenv(f"{prefix}TARGET_BRANCH"):
            settings.bot.target_branch = target

        settings.validate()
        return settings

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """
        Load settings from a YAML or TOML file.

        Args:
            path: Path to configuration file (.yaml, .yml, or .toml)
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        suffix = path.suffix.lower()

        if suffix in (".yaml", ".yml"):
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        elif suffix == ".toml":
            with open(path, "rb") as f:
                data = tomllib.load(f)
        else:
            raise InvalidConfigError(f"Unsupported config file format: {suffix}")

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> Settings:
        """
        Create Settings from a dictionary.

        The input is validated against CONFIG_SCHEMA first; each section is then
        rebuilt so that the dataclass validators run on the merged values.
        """
        try:
            jsonschema.validate(instance=data, schema=CONFIG_SCHEMA)
        except jsonschema.ValidationError as e:
            raise InvalidConfigError(f"Configuration validation failed: {e.message}", cause=e) from e

        settings = cls()
        try:
            for section in (f.name for f in dataclasses.fields(cls)):
                if section in data:
                    current = getattr(settings, section)
                    setattr(settings, section, dataclasses.replace(current, **data[section]))
        except ValueError as e:
            raise InvalidConfigError(f"Configuration validation failed: {e}", cause=e) from e

        return settings

    def validate(self) -> None:
        """Re-run every section's validation after in-place mutation."""
        for f in dataclasses.fields(self):
            section = getattr(self, f.name)
            post_init = getattr(section, "__post_init__", None)
            if post_init is not None:
                post_init()

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary."""

        def convert(obj):
            if dataclasses.is_dataclass(obj):
                return {k: convert(v) for k, v in dataclasses.asdict(obj).items()}
            elif isinstance(obj, Path):
                return str(obj)
            return obj

        return convert(self)


# =============================================================================
# Global Settings & Helpers
# =============================================================================

_global_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, creating from the environment if needed."""
    global _global_settings
    if _global_settings is None:
        _global_settings = Settings.from_env()
    return _global_settings


def configure(settings: Settings | None = None, **kwargs) -> Settings:
    """
    Configure global settings.

    Args:
        settings: Settings object to use globally
        **kwargs: Override specific sections
    """
    global _global_settings

    if settings is not None:
        _global_settings = settings
    elif _global_settings is None:
        _global_settings = Settings.from_env()

    for key, value in kwargs.items():
        if hasattr(_global_settings, key):
            setattr(_global_settings, key, value)

    return _global_settings


def load_env(path: str | None = None, *, override: bool = False) -> bool:
    """
    Load environment variables from a .env file.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    env_path = path or find_dotenv(usecwd=True)
    if not env_path:
        return False
    return load_dotenv(env_path, override=override)


__all__ = ["Settings", "get_settings", "configure", "load_env"]
