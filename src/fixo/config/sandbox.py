"""
Sandbox (container executor) configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_TIMEOUT_SECONDS = 10 * 60
DEFAULT_MEMORY_LIMIT = 1024 * 1024 * 1024


@dataclass
class SandboxConfig:
    """Configuration for sandboxed command execution."""

    runtime_prefix: str | None = None
    default_timeout: float = DEFAULT_TIMEOUT_SECONDS
    memory_limit: int = DEFAULT_MEMORY_LIMIT
    docker_url: str | None = None
    workspace_mount: str = "/workspace"

    def __post_init__(self):
        if self.default_timeout <= 0:
            raise ValueError("default_timeout must be positive")
        if self.memory_limit <= 0:
            raise ValueError("memory_limit must be positive")
        if not self.workspace_mount.startswith("/"):
            raise ValueError("workspace_mount must be an absolute container path")
        if self.runtime_prefix:
            self.runtime_prefix = self.runtime_prefix.rstrip("/")


__all__ = ["SandboxConfig", "DEFAULT_TIMEOUT_SECONDS", "DEFAULT_MEMORY_LIMIT"]
