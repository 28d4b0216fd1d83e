"""
Tests for the configuration system.
"""
import os
from pathlib import Path

import pytest

from fixo.config import (
    AgentConfig,
    BotConfig,
    DatabaseConfig,
    LoggingConfig,
    QueueConfig,
    RateLimitConfig,
    SandboxConfig,
    Settings,
    configure,
    get_settings,
    load_env,
)
from fixo.errors import InvalidConfigError


class TestSectionDefaults:
    """Default values of each section."""

    def test_agent_defaults(self):
        config = AgentConfig()
        assert config.max_iterations == 5
        assert config.parallel_tool_execution is False
        assert config.tool_choice == "auto"
        assert config.preload_file_tree is True

    def test_queue_defaults(self):
        config = QueueConfig()
        assert config.max_retries == 3
        assert config.job_timeout == 1800.0
        assert config.persistence_retry_delay == 1.0
        assert config.retry_backoff == 0.0

    def test_sandbox_defaults(self):
        config = SandboxConfig()
        assert config.default_timeout == 600
        assert config.memory_limit == 1024 * 1024 * 1024
        assert config.runtime_prefix is None

    def test_rate_limit_defaults(self):
        config = RateLimitConfig()
        assert (config.free_daily, config.free_monthly, config.paid_monthly) == (5, 20, 200)


class TestSectionValidation:
    """__post_init__ validation."""

    def test_agent_validation(self):
        with pytest.raises(ValueError, match="max_iterations must be at least 1"):
            AgentConfig(max_iterations=0)
        with pytest.raises(ValueError, match="Invalid tool_choice"):
            AgentConfig(tool_choice="sometimes")

    def test_queue_validation(self):
        with pytest.raises(ValueError, match="max_retries"):
            QueueConfig(max_retries=0)
        with pytest.raises(ValueError, match="job_timeout"):
            QueueConfig(job_timeout=0)

    def test_logging_validation(self):
        with pytest.raises(ValueError, match="Invalid log level"):
            LoggingConfig(level="LOUD")

    def test_rate_limit_validation(self):
        with pytest.raises(ValueError, match="free_monthly"):
            RateLimitConfig(free_daily=10, free_monthly=5)

    def test_database_pool_sizes(self):
        with pytest.raises(ValueError, match="max_pool_size"):
            DatabaseConfig(min_pool_size=5, max_pool_size=2)

    def test_sandbox_prefix_trailing_slash(self):
        assert SandboxConfig(runtime_prefix="ghcr.io/fixo/").runtime_prefix == "ghcr.io/fixo"


class TestQueueBackoff:
    """Exponential retry backoff."""

    def test_zero_base_is_immediate(self):
        assert QueueConfig().backoff_for(3) == 0.0

    def test_exponential(self):
        config = QueueConfig(retry_backoff=2.0)
        assert [config.backoff_for(n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]

    def test_capped(self):
        config = QueueConfig(retry_backoff=10.0, max_retry_backoff=15.0)
        assert config.backoff_for(5) == 15.0


class TestBotConfig:
    """Bot identity and verification commands."""

    def test_bot_name_sanitized(self):
        assert BotConfig(bot_name="fixo dev!").bot_name == "fixo-dev-"

    def test_repos_dir_coerced(self):
        assert BotConfig(repos_dir="/tmp/repos").repos_dir == Path("/tmp/repos")

    def test_verification_commands(self):
        assert BotConfig().verification_commands == []
        config = BotConfig(lint_command="npm run lint", test_command="npm test")
        assert config.verification_commands == ["npm run lint", "npm test"]


class TestSettingsFromEnv:
    """Loading settings from the environment."""

    def test_reads_prefixed_variables(self, monkeypatch):
        monkeypatch.setenv("FIXO_QUEUE_MAX_RETRIES", "5")
        monkeypatch.setenv("FIXO_DOCKER_RUNTIME_PREFIX", "ghcr.io/fixo/")
        monkeypatch.setenv("FIXO_RATE_LIMIT_ENABLED", "false")
        monkeypatch.setenv("FIXO_TEST_COMMAND", "npm test")
        monkeypatch.setenv("FIXO_LOG_LEVEL", "debug")

        settings = Settings.from_env(dotenv=False)

        assert settings.queue.max_retries == 5
        assert settings.sandbox.runtime_prefix == "ghcr.io/fixo"
        assert settings.rate_limit.enabled is False
        assert settings.bot.test_command == "npm test"
        assert settings.logging.level == "DEBUG"

    def test_invalid_value_raises(self, monkeypatch):
        monkeypatch.setenv("FIXO_QUEUE_MAX_RETRIES", "0")

        with pytest.raises(InvalidConfigError, match="Environment validation failed"):
            Settings.from_env(dotenv=False)

    def test_non_numeric_value_raises(self, monkeypatch):
        monkeypatch.setenv("FIXO_AGENT_MAX_ITERATIONS", "many")

        with pytest.raises(InvalidConfigError):
            Settings.from_env(dotenv=False)


class TestSettingsFromFile:
    """Loading settings from YAML and TOML."""

    def test_yaml(self, tmp_path):
        path = tmp_path / "fixo.yaml"
        path.write_text("queue:\n  max_retries: 4\nagent:\n  max_iterations: 9\n")

        settings = Settings.from_file(path)

        assert settings.queue.max_retries == 4
        assert settings.agent.max_iterations == 9
        assert settings.sandbox.default_timeout == 600

    def test_toml(self, tmp_path):
        path = tmp_path / "fixo.toml"
        path.write_text('[sandbox]\nruntime_prefix = "registry.local"\n')

        settings = Settings.from_file(path)

        assert settings.sandbox.runtime_prefix == "registry.local"

    def test_schema_violation(self, tmp_path):
        path = tmp_path / "fixo.yaml"
        path.write_text("queue:\n  max_retries: 0\n")

        with pytest.raises(InvalidConfigError, match="Configuration validation failed"):
            Settings.from_file(path)

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "fixo.yaml"
        path.write_text("agent:\n  turbo: true\n")

        with pytest.raises(InvalidConfigError):
            Settings.from_file(path)

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "fixo.ini"
        path.write_text("[queue]")

        with pytest.raises(InvalidConfigError, match="Unsupported config file format"):
            Settings.from_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Settings.from_file(tmp_path / "nope.yaml")


class TestGlobalSettings:
    """configure/get_settings/load_env."""

    def test_configure_replaces_global(self):
        settings = Settings(queue=QueueConfig(max_retries=7))

        configure(settings)

        assert get_settings().queue.max_retries == 7

    def test_configure_section_override(self):
        configure(Settings())
        configure(agent=AgentConfig(max_iterations=11))

        assert get_settings().agent.max_iterations == 11

    def test_load_env_file(self, tmp_path, monkeypatch):
        env_file = tmp_path / ".env"
        env_file.write_text("FIXO_TEST_LOAD_ENV=yes\n")
        monkeypatch.delenv("FIXO_TEST_LOAD_ENV", raising=False)

        assert load_env(str(env_file)) is True

        assert os.environ["FIXO_TEST_LOAD_ENV"] == "yes"
        monkeypatch.delenv("FIXO_TEST_LOAD_ENV")

    def test_to_dict(self):
        d = Settings().to_dict()
        assert d["queue"]["max_retries"] == 3
        assert isinstance(d["bot"]["repos_dir"], str)
