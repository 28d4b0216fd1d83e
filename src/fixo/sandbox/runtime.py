"""
Runtime images for sandboxed execution.
"""

from __future__ import annotations

from enum import Enum


class Runtime(str, Enum):
    NODE = "node"
    PYTHON = "python"
    RUBY = "ruby"
    PHP = "php"
    GO = "go"
    RUST = "rust"
    JAVA = "java"
    DOTNET = "dotnet"


def get_runtime_image(runtime: Runtime | str, prefix: str | None = None) -> str:
    """`<prefix>/<runtime>` when a registry prefix is configured, else the bare runtime."""
    name = Runtime(runtime).value
    if prefix:
        return f"{prefix.rstrip('/')}/{name}"
    return name


__all__ = ["Runtime", "get_runtime_image"]
