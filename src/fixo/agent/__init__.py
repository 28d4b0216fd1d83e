"""
Agent package: the repository-editing loop and its supporting types.
"""

from .context import AgentContext, base_path_preamble
from .core import Agent
from .execution import execute_single_tool, execute_tools
from .factory import (
    CODE_MODIFICATION_MAX_ITERATIONS,
    DEFAULT_MAX_ITERATIONS,
    create_source_modifier_agent,
    generate_system_prompt,
)
from .memory import MemoryEntry, MemoryStore
from .result import AgentResult, AgentStatus, ToolCallRecord

__all__ = [
    "Agent",
    "AgentContext",
    "AgentResult",
    "AgentStatus",
    "ToolCallRecord",
    "MemoryEntry",
    "MemoryStore",
    "execute_tools",
    "execute_single_tool",
    "create_source_modifier_agent",
    "generate_system_prompt",
    "base_path_preamble",
    "DEFAULT_MAX_ITERATIONS",
    "CODE_MODIFICATION_MAX_ITERATIONS",
]
