"""
Error taxonomy for fixo.

This module provides a hierarchical exception system with:
- Error codes for programmatic handling
- Retryable vs non-retryable classification
- Structured context for debugging job and sandbox failures
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standardized error codes."""

    # Job errors (1xxx)
    JOB_ERROR = "ERR_1000"
    JOB_TIMEOUT = "ERR_1001"
    UNKNOWN_JOB_TYPE = "ERR_1002"
    INVALID_TRANSITION = "ERR_1003"

    # Tool errors (3xxx)
    TOOL_ERROR = "ERR_3000"
    TOOL_CONTEXT_MISSING = "ERR_3002"
    TOOL_VALIDATION_ERROR = "ERR_3003"

    # Agent errors (4xxx)
    AGENT_ERROR = "ERR_4000"

    # Sandbox errors (5xxx)
    SANDBOX_ERROR = "ERR_5000"
    SANDBOX_SETUP = "ERR_5001"

    # Configuration errors (6xxx)
    CONFIG_ERROR = "ERR_6000"
    MISSING_API_KEY = "ERR_6001"
    INVALID_CONFIG = "ERR_6002"

    # Persistence and collaborator errors (7xxx)
    PERSISTENCE_ERROR = "ERR_7000"
    REPOSITORY_ERROR = "ERR_7001"

    # Internal errors (9xxx)
    INTERNAL_ERROR = "ERR_9000"


@dataclass
class ErrorContext:
    """Structured context for error debugging."""

    job_id: str | None = None
    attempt: int | None = None
    operation: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": self.job_id,
            "attempt": self.attempt,
            "operation": self.operation,
            **self.extra,
        }


class FixoError(Exception):
    """
    Base exception for all fixo errors.

    Attributes:
        code: Standardized error code for programmatic handling
        message: Human-readable error message
        retryable: Whether the operation can be retried
        context: Structured debugging context
        cause: Original exception that caused this error
    """

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if retryable is not None:
            self.retryable = retryable
        self.context = context or ErrorContext()
        self.cause = cause

    def __str__(self) -> str:
        parts = [f"[{self.code.value}] {self.message}"]
        if self.context.job_id:
            parts.append(f"(job_id={self.context.job_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code.value,
            "message": self.message,
            "retryable": self.retryable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


# =============================================================================
# Job Errors
# =============================================================================


class JobError(FixoError):
    """A job attempt failed. The queue decides whether it is retried."""

    code = ErrorCode.JOB_ERROR
    retryable = True


class JobTimeoutError(JobError):
    """Job handler did not settle before the global job timeout."""

    code = ErrorCode.JOB_TIMEOUT

    def __init__(
        self,
        message: str = "Job processing timeout",
        *,
        timeout: float | None = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.timeout = timeout


class UnknownJobTypeError(JobError):
    """No handler is registered for the job type."""

    code = ErrorCode.UNKNOWN_JOB_TYPE
    retryable = False

    def __init__(
        self,
        message: str = "Unknown job type",
        *,
        job_type: str | None = None,
        **kwargs,
    ):
        if job_type:
            message = f"Unknown job type {job_type}"
        super().__init__(message, **kwargs)
        self.job_type = job_type


class InvalidJobTransitionError(JobError):
    """Requested status change is not allowed by the job lifecycle."""

    code = ErrorCode.INVALID_TRANSITION
    retryable = False


# =============================================================================
# Tool Errors
# =============================================================================


class ToolError(FixoError):
    """Base class for tool-related errors."""

    code = ErrorCode.TOOL_ERROR
    retryable = False


class ToolContextError(ToolError):
    """Tool was invoked without its execution context (programmer error)."""

    code = ErrorCode.TOOL_CONTEXT_MISSING

    def __init__(self, message: str = "Context is required", **kwargs):
        super().__init__(message, **kwargs)


class ToolValidationError(ToolError):
    """Tool arguments failed validation."""

    code = ErrorCode.TOOL_VALIDATION_ERROR


# =============================================================================
# Agent Errors
# =============================================================================


class AgentError(FixoError):
    """An agent run ended with status error."""

    code = ErrorCode.AGENT_ERROR
    retryable = False


# =============================================================================
# Sandbox Errors
# =============================================================================


class SandboxError(FixoError):
    """Container execution failed after setup."""

    code = ErrorCode.SANDBOX_ERROR
    retryable = True


class SandboxSetupError(SandboxError):
    """Image pull or container creation failed."""

    code = ErrorCode.SANDBOX_SETUP
    retryable = False


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigError(FixoError):
    """Base class for configuration errors."""

    code = ErrorCode.CONFIG_ERROR
    retryable = False


class MissingAPIKeyError(ConfigError):
    """Required API key is not set."""

    code = ErrorCode.MISSING_API_KEY

    def __init__(
        self,
        message: str = "API key not found",
        *,
        env_var: str | None = None,
        **kwargs,
    ):
        if env_var:
            message = f"API key not found. Set {env_var}."
        super().__init__(message, **kwargs)
        self.env_var = env_var


class InvalidConfigError(ConfigError):
    """Configuration is invalid."""

    code = ErrorCode.INVALID_CONFIG


# =============================================================================
# Persistence / Collaborator Errors
# =============================================================================


class PersistenceError(FixoError):
    """Durable store read or write failed. Treated as transient."""

    code = ErrorCode.PERSISTENCE_ERROR
    retryable = True


class RepositoryError(FixoError):
    """A git working-copy or source-control collaborator call failed."""

    code = ErrorCode.REPOSITORY_ERROR
    retryable = True


def is_retryable(error: Exception) -> bool:
    """
    Check if an error is retryable.

    Args:
        error: Exception to check

    Returns:
        True if the error is retryable
    """
    if isinstance(error, FixoError):
        return error.retryable

    retryable_types = (
        asyncio.TimeoutError,
        ConnectionError,
        TimeoutError,
    )
    return isinstance(error, retryable_types)


__all__ = [
    "ErrorCode",
    "ErrorContext",
    "FixoError",
    "JobError",
    "JobTimeoutError",
    "UnknownJobTypeError",
    "InvalidJobTransitionError",
    "ToolError",
    "ToolContextError",
    "ToolValidationError",
    "AgentError",
    "SandboxError",
    "SandboxSetupError",
    "ConfigError",
    "MissingAPIKeyError",
    "InvalidConfigError",
    "PersistenceError",
    "RepositoryError",
    "is_retryable",
]
