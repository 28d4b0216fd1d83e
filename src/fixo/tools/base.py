"""
Tool system for agent function calling.

This module provides:
- ToolExecutionContext, the capability object handed to every tool call
- ToolResult for standardized tool responses
- Tool dataclass for defining tools
- ToolRegistry for managing and executing tools
"""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..errors import ToolContextError, ToolValidationError
from ..providers.types import Message
from ..validation import (
    parse_tool_arguments,
    validate_against_schema,
    validate_or_raise,
    validate_tool_definition,
)


@dataclass(frozen=True)
class ToolExecutionContext:
    """
    Scoped resources a tool may touch.

    Attributes:
        base_path: Repository root; file tools refuse paths outside it
        extra: Additional scoped collaborators (e.g. an input reader)
    """

    base_path: Path
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_path", Path(self.base_path).resolve())


def require_context(context: ToolExecutionContext | None) -> ToolExecutionContext:
    """Return the context or raise; a missing context is a programmer error."""
    if context is None:
        raise ToolContextError()
    return context


@dataclass
class ToolResult:
    """
    Standardized result from tool execution.

    Attributes:
        content: The tool's structured output
        success: Whether execution succeeded
        error: Error message if execution failed
    """

    content: str | dict[str, Any] | None = None
    success: bool = True
    error: str | None = None

    @property
    def payload(self) -> Any:
        """Plain data form, as seen by the model."""
        if not self.success:
            return {"error": self.error}
        return self.content

    def to_string(self) -> str:
        """Convert result to string for model consumption."""
        if isinstance(self.payload, str):
            return self.payload
        return json.dumps(self.payload, ensure_ascii=False, default=str)

    @classmethod
    def success_result(cls, content: str | dict[str, Any]) -> ToolResult:
        return cls(content=content, success=True)

    @classmethod
    def error_result(cls, error: str) -> ToolResult:
        return cls(success=False, error=error)


ToolHandler = Callable[[dict[str, Any], "ToolExecutionContext | None"], Awaitable[Any]]
CompactionRule = Callable[[Message, int], Message]


@dataclass
class Tool:
    """
    Definition of a callable tool for the agent.

    Attributes:
        name: Unique identifier for the tool
        description: Human-readable description (shown to the model)
        parameters: JSON Schema defining the tool's parameters
        handler: Async function receiving validated params and the execution context
        readable_params: Optional projection of params for log lines
        readable_result: Optional projection of the result payload for log lines
        compact: Optional rule rewriting a stored tool-result message for the
            outward transcript, given the number of newer calls to the same tool

    Example:
        ```python
        async def echo(params, context):
            return {"echo": params["text"]}

        echo_tool = Tool(
            name="echo",
            description="Echo the text back",
            parameters={
                "type": "object",
                "properties": {"text": {"type": "string"}},
                "required": ["text"],
            },
            handler=echo,
        )
        ```
    """

    name: str
    description: str
    parameters: dict[str, Any]
    handler: ToolHandler
    readable_params: Callable[[dict[str, Any]], str] | None = None
    readable_result: Callable[[Any], str] | None = None
    compact: CompactionRule | None = None

    def to_openai_format(self) -> dict[str, Any]:
        """Convert to OpenAI tools format."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    def to_json_schema(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters,
        }

    async def execute(
        self,
        params: dict[str, Any],
        context: ToolExecutionContext | None = None,
    ) -> ToolResult:
        """
        Validate params against the schema, then run the handler.

        Expected failures come back as error results. ToolContextError is the
        only exception that escapes.
        """
        validation = validate_against_schema(params, self.parameters)
        if not validation.valid:
            return ToolResult.error_result(f"Tool validation failed: {validation.message}")

        try:
            result = await self.handler(params, context)
        except ToolContextError:
            raise
        except Exception as e:
            return ToolResult.error_result(f"{type(e).__name__}: {e}")

        if isinstance(result, ToolResult):
            return result
        if isinstance(result, dict) and set(result) == {"error"}:
            return ToolResult.error_result(str(result["error"]))
        if isinstance(result, dict):
            return ToolResult.success_result(result)
        return ToolResult.success_result(str(result))


class ToolRegistry:
    """
    Registry holding the active tool set for one agent run.

    Example:
        ```python
        registry = ToolRegistry([read_file_tool, think_tool])
        result = await registry.execute("read_file", '{"path": "README.md"}', context)
        tools = registry.to_openai_format()
        ```
    """

    def __init__(self, tools: list[Tool] | None = None) -> None:
        self._tools: dict[str, Tool] = {}

        if tools:
            for tool in tools:
                self.register(tool)

    def register(self, tool: Tool) -> ToolRegistry:
        """
        Register a tool.

        Raises:
            ValueError: If a tool with the same name already exists
            ToolValidationError: If the tool definition is malformed
        """
        if tool.name in self._tools:
            raise ValueError(f'Tool with name "{tool.name}" is already registered')

        validate_or_raise(validate_tool_definition(tool))

        self._tools[tool.name] = tool
        return self

    def unregister(self, name: str) -> bool:
        """Remove a tool. Returns True if it was registered."""
        return self._tools.pop(name, None) is not None

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools.values())

    @property
    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    @property
    def names(self) -> list[str]:
        return list(self._tools.keys())

    def to_openai_format(self) -> list[dict[str, Any]]:
        return [tool.to_openai_format() for tool in self._tools.values()]

    def to_json_schema(self) -> list[dict[str, Any]]:
        return [tool.to_json_schema() for tool in self._tools.values()]

    async def execute(
        self,
        name: str,
        arguments: str | dict[str, Any] | None,
        context: ToolExecutionContext | None = None,
    ) -> ToolResult:
        """
        Execute a tool by name.

        Args:
            name: Name of the tool to execute
            arguments: JSON string or dict of arguments
            context: Capability object forwarded to the tool

        Returns:
            ToolResult with execution outcome
        """
        tool = self._tools.get(name)
        if not tool:
            return ToolResult.error_result(f"Unknown tool: {name}")

        try:
            params = parse_tool_arguments(name, arguments)
        except ToolValidationError as e:
            return ToolResult.error_result(e.message)

        return await tool.execute(params, context)


__all__ = [
    "ToolExecutionContext",
    "require_context",
    "ToolResult",
    "ToolHandler",
    "CompactionRule",
    "Tool",
    "ToolRegistry",
]
