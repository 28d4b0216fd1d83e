"""
Tool execution helpers for the agent.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from ..errors import ToolContextError
from ..tools.base import ToolResult

if TYPE_CHECKING:
    from ..config import AgentConfig
    from ..providers.types import ToolCall
    from ..tools.base import ToolExecutionContext, ToolRegistry

logger = logging.getLogger(__name__)


async def execute_tools(
    tool_calls: list[ToolCall],
    registry: ToolRegistry,
    config: AgentConfig,
    context: ToolExecutionContext | None = None,
) -> list[ToolResult]:
    """
    Execute tool calls, sequentially unless `config.parallel_tool_execution` is set.

    Results are returned in call order either way.
    """
    if not tool_calls:
        return []

    if config.parallel_tool_execution:
        return list(
            await asyncio.gather(
                *(execute_single_tool(tc, registry, config.tool_timeout, context) for tc in tool_calls)
            )
        )

    results = []
    for tc in tool_calls:
        results.append(await execute_single_tool(tc, registry, config.tool_timeout, context))
    return results


async def execute_single_tool(
    tool_call: ToolCall,
    registry: ToolRegistry,
    timeout: float,
    context: ToolExecutionContext | None = None,
) -> ToolResult:
    """
    Execute one tool call bounded by `timeout`.

    Timeouts and unexpected handler failures become error results;
    ToolContextError propagates.
    """
    try:
        return await asyncio.wait_for(
            registry.execute(tool_call.name, tool_call.arguments, context),
            timeout=timeout,
        )
    except ToolContextError:
        raise
    except asyncio.TimeoutError:
        logger.warning("Tool %s timed out after %ss", tool_call.name, timeout)
        return ToolResult.error_result(f"Tool '{tool_call.name}' timed out after {timeout}s")
    except Exception as e:
        logger.exception("Tool %s raised", tool_call.name)
        return ToolResult.error_result(f"Tool execution error: {e}")


__all__ = ["execute_tools", "execute_single_tool"]
