"""
Logging for fixo.

This module provides:
- Text and JSON formatters, installed on the `fixo` logger by configure_logging()
- OperationLogger for "log success or failure, then re-raise" call sites
- Log-safe formatting of tool arguments and results
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from .config import LoggingConfig

T = TypeVar("T")

ROOT_LOGGER = "fixo"


# =============================================================================
# Formatters
# =============================================================================


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Human-readable text formatter."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, color: bool = True):
        super().__init__()
        self.color = color

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S.%f")[:-3]
        color = self.LEVEL_COLORS.get(record.levelname, "") if self.color else ""
        reset = self.RESET if color else ""
        line = f"{timestamp} {color}{record.levelname:8}{reset} {record.name}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Operation Logger
# =============================================================================


@dataclass
class OperationResult(Generic[T]):
    """Outcome of OperationLogger.safe()."""

    ok: bool
    data: T | None = None
    error: Exception | None = None


class OperationLogger:
    """
    Logs the outcome of awaited operations with a shared context.

    `execute` re-raises failures; `safe` captures them in an OperationResult.

    Example:
        ```python
        job_logger = OperationLogger(job_id=job.id, repo="octo/hello")
        await job_logger.execute(lambda: cloner.clone(url, path), "clone repository")
        result = await job_logger.safe(lambda: comments.post(...), "post comment")
        ```
    """

    def __init__(self, logger: logging.Logger | None = None, **context: Any):
        self._logger = logger or logging.getLogger(ROOT_LOGGER)
        self.context: dict[str, Any] = dict(context)

    def child(self, **context: Any) -> OperationLogger:
        return OperationLogger(self._logger, **{**self.context, **context})

    def _format(self, mark: str, action: str, meta: dict[str, Any]) -> str:
        fields = {**self.context, **meta}
        if not fields:
            return f"{mark} {action}"
        return f"{mark} {action} " + " ".join(f"{k}={v}" for k, v in fields.items())

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        action: str,
        **meta: Any,
    ) -> T:
        try:
            result = await operation()
        except Exception as e:
            self._logger.error(self._format("❌", action, {**meta, "error": e}))
            raise
        self._logger.info(self._format("✅", action, meta))
        return result

    async def safe(
        self,
        operation: Callable[[], Awaitable[T]],
        action: str,
        **meta: Any,
    ) -> OperationResult[T]:
        try:
            data = await self.execute(operation, action, **meta)
        except Exception as e:
            return OperationResult(ok=False, error=e)
        return OperationResult(ok=True, data=data)


# =============================================================================
# Utilities
# =============================================================================


def truncate_for_log(text: str, max_length: int = 200) -> str:
    """Truncate text for logging."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... ({len(text)} chars total)"


def format_data_for_logging(data: Any, max_length: int = 200) -> str:
    """Render tool arguments/results compactly for a single log line."""
    if isinstance(data, str):
        return truncate_for_log(data, max_length)
    try:
        rendered = json.dumps(data, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        rendered = repr(data)
    return truncate_for_log(rendered, max_length)


# =============================================================================
# Configuration
# =============================================================================


def configure_logging(config: LoggingConfig | None = None, **kwargs: Any) -> logging.Logger:
    """
    Install handlers on the `fixo` logger from a LoggingConfig.

    Replaces any handlers a previous call installed. Without a config,
    `level` and `json_output` keyword arguments are honoured.
    """
    level = config.level if config else kwargs.pop("level", "INFO")
    json_output = (config.format == "json") if config else kwargs.pop("json_output", False)

    root = logging.getLogger(ROOT_LOGGER)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.setLevel(getattr(logging, level.upper()))

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(JSONFormatter() if json_output else TextFormatter())
    root.addHandler(stream_handler)

    if config and config.log_file:
        file_handler = logging.FileHandler(config.log_file)
        file_handler.setFormatter(JSONFormatter() if json_output else TextFormatter(color=False))
        root.addHandler(file_handler)
    return root


__all__ = [
    "JSONFormatter",
    "TextFormatter",
    "OperationLogger",
    "OperationResult",
    "truncate_for_log",
    "format_data_for_logging",
    "configure_logging",
]
