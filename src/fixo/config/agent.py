"""
Agent configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from .base import ToolChoice


@dataclass
class AgentConfig:
    """Configuration for agent behavior."""

    # Iteration budget
    max_iterations: int = 5

    # Tool execution
    parallel_tool_execution: bool = False
    tool_timeout: float = 120.0
    tool_choice: ToolChoice = "auto"

    # Behavior
    preload_file_tree: bool = True
    single_shot: bool = False
    conversational: bool = False

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.tool_timeout <= 0:
            raise ValueError("tool_timeout must be positive")
        if self.tool_choice not in ("auto", "none", "required"):
            raise ValueError(f"Invalid tool_choice: {self.tool_choice}")


__all__ = ["AgentConfig"]
