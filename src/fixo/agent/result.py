"""
Agent result types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from ..providers.types import ToolCall, Usage
    from ..tools.base import ToolResult

AgentStatus = Literal["completed", "max_iterations", "error"]


@dataclass
class ToolCallRecord:
    """One executed tool call and its outcome."""

    call: ToolCall
    result: ToolResult
    iteration: int = 0

    @property
    def name(self) -> str:
        return self.call.name


@dataclass
class AgentResult:
    """Final result of an agent run."""

    output: Any = None
    status: AgentStatus = "completed"
    iterations: int = 0
    total_usage: Usage | None = None
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    error: str | None = None

    @property
    def completed(self) -> bool:
        return self.status == "completed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "output": self.output,
            "status": self.status,
            "iterations": self.iterations,
            "error": self.error,
            "tool_calls": [r.name for r in self.tool_calls],
            "total_usage": self.total_usage.to_dict() if self.total_usage else None,
        }


__all__ = ["AgentStatus", "ToolCallRecord", "AgentResult"]
