"""
Agent tools and tool groups.

Groups:
- READONLY_TOOLS: repository inspection and search
- WRITABLE_TOOLS: repository mutation
- REASONING_TOOLS, TASK_TOOLS, INTERACTIVE_TOOLS
"""

from .base import (
    CompactionRule,
    Tool,
    ToolExecutionContext,
    ToolHandler,
    ToolRegistry,
    ToolResult,
    require_context,
)
from .fs import (
    OMITTED_RESULT,
    READ_FILE_HISTORY_LIMIT,
    compact_read_file,
    file_exists_tool,
    list_directory_tool,
    read_file_tool,
    show_file_tree_tool,
    write_file_tool,
)
from .interactive import ask_user_tool
from .reasoning import think_tool
from .search import find_files_tool, grep_code_tool
from .task import task_completion_tool

READONLY_TOOLS: list[Tool] = [
    read_file_tool,
    file_exists_tool,
    list_directory_tool,
    show_file_tree_tool,
    grep_code_tool,
    find_files_tool,
]
WRITABLE_TOOLS: list[Tool] = [write_file_tool]
REASONING_TOOLS: list[Tool] = [think_tool]
TASK_TOOLS: list[Tool] = [task_completion_tool]
INTERACTIVE_TOOLS: list[Tool] = [ask_user_tool]

ALL_TOOLS: list[Tool] = [
    *READONLY_TOOLS,
    *WRITABLE_TOOLS,
    *INTERACTIVE_TOOLS,
    *TASK_TOOLS,
    *REASONING_TOOLS,
]

__all__ = [
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "ToolExecutionContext",
    "ToolHandler",
    "CompactionRule",
    "require_context",
    "read_file_tool",
    "file_exists_tool",
    "list_directory_tool",
    "show_file_tree_tool",
    "write_file_tool",
    "grep_code_tool",
    "find_files_tool",
    "think_tool",
    "task_completion_tool",
    "ask_user_tool",
    "compact_read_file",
    "READ_FILE_HISTORY_LIMIT",
    "OMITTED_RESULT",
    "READONLY_TOOLS",
    "WRITABLE_TOOLS",
    "REASONING_TOOLS",
    "TASK_TOOLS",
    "INTERACTIVE_TOOLS",
    "ALL_TOOLS",
]
