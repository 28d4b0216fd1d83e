"""
Sandboxed command execution.
"""

from .executor import (
    TIMEOUT_OUTPUT,
    ExecutionRequest,
    ExecutionResult,
    SandboxExecutor,
    execute_command,
)
from .runtime import Runtime, get_runtime_image

__all__ = [
    "Runtime",
    "get_runtime_image",
    "ExecutionRequest",
    "ExecutionResult",
    "SandboxExecutor",
    "execute_command",
    "TIMEOUT_OUTPUT",
]
