"""
Agent factories.

`create_source_modifier_agent` wires the read, write and reasoning tools plus
an optional output tool into an Agent with the repository-editing prompt.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any

from ..config import AgentConfig
from ..providers.base import Provider
from ..providers.types import Message
from ..tools import READONLY_TOOLS, REASONING_TOOLS, WRITABLE_TOOLS, Tool
from ..tools.fs import READ_FILE_HISTORY_LIMIT, read_file_tool
from ..tools.reasoning import think_tool
from .core import Agent

DEFAULT_MAX_ITERATIONS = 25
CODE_MODIFICATION_MAX_ITERATIONS = 50
MAX_LINES_PER_READ = 200

SYSTEM_PROMPT_TEMPLATE = """\
You are an autonomous software engineer working inside a cloned repository.
Your job is to carry out the user's request by reading the relevant code and
making the smallest correct change.

Available tools:
{tools}

Guidelines:
- Explore before editing. Use search tools to find the code that matters, then
  read only what you need.
- Read files in ranges of at most {max_lines} lines with `{read_file}`. Only the
  latest {max_reads} `{read_file}` results stay visible, so note what you learn.
- Use `{think}` to plan multi-step changes before writing files.
- Write complete file contents; partial writes replace the whole file.
- Never touch files outside the repository.
{completion}"""

COMPLETION_INSTRUCTIONS = """\
- When you are done, or if you cannot proceed, call `{name}` exactly once.
  Report whether the objective was achieved and summarize what you changed.
"""


def generate_system_prompt(tools: list[Tool], completion_tool_name: str | None = None) -> str:
    tool_lines = "\n".join(f"- {t.name}: {t.description}" for t in tools)
    completion = COMPLETION_INSTRUCTIONS.format(name=completion_tool_name) if completion_tool_name else ""
    return SYSTEM_PROMPT_TEMPLATE.format(
        tools=tool_lines,
        max_lines=MAX_LINES_PER_READ,
        read_file=read_file_tool.name,
        max_reads=READ_FILE_HISTORY_LIMIT,
        think=think_tool.name,
        completion=completion,
    )


def create_source_modifier_agent(
    provider: Provider,
    repository_path: str | Path = ".",
    *,
    output_tool: Tool | None = None,
    config: AgentConfig | None = None,
    code_modification: bool = False,
    system_message: str | None = None,
    history: list[Message] | None = None,
    context_extra: dict[str, Any] | None = None,
) -> Agent:
    """
    Create an Agent that can read and modify the repository at `repository_path`.

    Without an explicit config the iteration budget is 25, or 50 when
    `code_modification` is set.
    """
    tools = [*READONLY_TOOLS, *WRITABLE_TOOLS, *REASONING_TOOLS]
    if output_tool is not None:
        tools.append(output_tool)

    if config is None:
        budget = CODE_MODIFICATION_MAX_ITERATIONS if code_modification else DEFAULT_MAX_ITERATIONS
        config = AgentConfig(max_iterations=budget)
    else:
        config = dataclasses.replace(config)

    return Agent(
        provider,
        tools=list(tools),
        output_tool=output_tool,
        system_message=system_message or generate_system_prompt(tools, output_tool.name if output_tool else None),
        base_path=repository_path,
        history=history,
        config=config,
        context_extra=context_extra,
    )


__all__ = [
    "DEFAULT_MAX_ITERATIONS",
    "CODE_MODIFICATION_MAX_ITERATIONS",
    "generate_system_prompt",
    "create_source_modifier_agent",
]
