"""
Configuration system for fixo.

This package provides typed configuration classes with:
- Dataclass-based settings with validation
- Environment variable and .env loading
- YAML/TOML file loading validated against a JSON schema
"""

from .agent import AgentConfig
from .base import LogFormat, LogLevel, PlanType, ToolChoice
from .logging import LoggingConfig, RateLimitConfig
from .provider import BotConfig, DatabaseConfig, OpenAIConfig
from .queue import QueueConfig
from .sandbox import SandboxConfig
from .settings import Settings, configure, get_settings, load_env

__all__ = [
    # Types
    "LogLevel",
    "LogFormat",
    "ToolChoice",
    "PlanType",
    # Sections
    "OpenAIConfig",
    "AgentConfig",
    "QueueConfig",
    "SandboxConfig",
    "LoggingConfig",
    "RateLimitConfig",
    "DatabaseConfig",
    "BotConfig",
    # Master config
    "Settings",
    "get_settings",
    "configure",
    "load_env",
]
