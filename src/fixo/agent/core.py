"""
Agent core implementation.

This module provides the Agent class that drives the repository-editing loop:
ask the model, run the tools it calls, and stop when the output tool reports
completion or the iteration budget runs out.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ..config import AgentConfig
from ..logging import format_data_for_logging
from ..providers.base import Provider
from ..providers.types import Message, ToolCall, Usage
from ..tools.base import Tool, ToolExecutionContext, ToolRegistry, ToolResult
from ..tools.interactive import ask_user_tool
from .context import AgentContext
from .execution import execute_tools
from .memory import MemoryStore
from .result import AgentResult, ToolCallRecord

logger = logging.getLogger(__name__)

FILE_TREE_TOOL = "show_file_tree"
PRELOAD_CALL_ID = "1"


class Agent:
    """
    Autonomous repository agent with tool calling.

    Example:
        ```python
        agent = Agent(
            provider=OpenAIProvider(model="gpt-4.1"),
            tools=[*READONLY_TOOLS, *WRITABLE_TOOLS],
            output_tool=task_completion_tool,
            base_path="./repos/octo-hello",
            system_message="You fix bugs.",
        )
        result = await agent.run("Fix the failing pager test", tool_choice="required")
        print(result.status, result.output)
        ```
    """

    def __init__(
        self,
        provider: Provider,
        *,
        tools: list[Tool] | ToolRegistry | None = None,
        output_tool: Tool | None = None,
        system_message: str | None = None,
        base_path: str | Path = ".",
        history: list[Message] | None = None,
        memory: MemoryStore | None = None,
        config: AgentConfig | None = None,
        context_extra: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the agent.

        Args:
            provider: LLM provider for completions
            tools: Tools available to the agent (list or registry)
            output_tool: Tool whose successful result ends the run and becomes its output
            system_message: Instructions appended after the working-directory preamble
            base_path: Repository root the file tools operate in
            history: Earlier messages to continue from (system messages are dropped)
            memory: Memory store shared with the caller
            config: Agent configuration
            context_extra: Additional collaborators exposed to tools
        """
        self.provider = provider
        self.config = config or AgentConfig()
        self.output_tool = output_tool

        if isinstance(tools, ToolRegistry):
            self.tools = tools
        else:
            self.tools = ToolRegistry(tools)

        if output_tool is not None and output_tool.name not in self.tools:
            self.tools.register(output_tool)
        if self.config.conversational and ask_user_tool.name not in self.tools:
            self.tools.register(ask_user_tool)

        self.tool_context = ToolExecutionContext(base_path=Path(base_path), extra=dict(context_extra or {}))
        self.context = AgentContext(
            self.tools,
            memory=memory,
            system_message=system_message,
            history=history,
            base_path=self.tool_context.base_path,
        )

    def register_tool(self, tool: Tool) -> None:
        self.tools.register(tool)

    # === Main API ===

    async def run(self, prompt: str, *, tool_choice: str | None = None, **kwargs: Any) -> AgentResult:
        """
        Run the agent until the output tool succeeds or the budget runs out.

        Model errors end the run with status "error". Anything else that goes
        wrong is logged and re-raised.
        """
        try:
            return await self._run(prompt, tool_choice=tool_choice or self.config.tool_choice, **kwargs)
        except Exception as e:
            logger.error("Agent execution error: %s", e, exc_info=True)
            raise

    async def _run(self, prompt: str, *, tool_choice: str, **kwargs: Any) -> AgentResult:
        self.context.add_user_message(prompt)
        if self.config.preload_file_tree:
            await self._preload_file_tree()

        total_usage = Usage()
        records: list[ToolCallRecord] = []
        output: Any = None

        for iteration in range(1, self.config.max_iterations + 1):
            completion = await self.provider.complete(
                self.context.get_prompt_messages(),
                tools=self.tools.tools,
                tool_choice=tool_choice,
                **kwargs,
            )

            if completion.usage:
                total_usage.add(completion.usage)
                logger.info(
                    "Agent cost: iteration=%d input_tokens=%d output_tokens=%d cost=%.6f total_cost=%.6f",
                    iteration,
                    completion.usage.input_tokens,
                    completion.usage.output_tokens,
                    completion.usage.total_cost,
                    total_usage.total_cost,
                )

            if not completion.ok:
                logger.error("Model request failed: status=%s error=%s", completion.status, completion.error)
                return AgentResult(
                    output=None,
                    status="error",
                    iterations=iteration,
                    total_usage=total_usage,
                    tool_calls=records,
                    error=completion.error,
                )

            if completion.has_tool_calls:
                calls = completion.tool_calls or []
                results = await execute_tools(calls, self.tools, self.config, self.tool_context)

                finished = False
                for tc, result in zip(calls, results, strict=True):
                    self.context.add_tool_exchange(tc, result)
                    records.append(ToolCallRecord(call=tc, result=result, iteration=iteration))
                    self._log_tool_call(tc, result)

                    if self.output_tool is not None and tc.name == self.output_tool.name and result.success:
                        output = result.content
                        finished = True

                if finished or self.config.single_shot:
                    return AgentResult(
                        output=output,
                        status="completed",
                        iterations=iteration,
                        total_usage=total_usage,
                        tool_calls=records,
                    )
                continue

            text = completion.content or ""
            self.context.add_assistant_message(text)

            if self.output_tool is None:
                return AgentResult(
                    output=text,
                    status="completed",
                    iterations=iteration,
                    total_usage=total_usage,
                    tool_calls=records,
                )
            if iteration == self.config.max_iterations:
                output = text

        logger.warning("Reached maximum iterations without explicit task completion")
        return AgentResult(
            output=output,
            status="max_iterations",
            iterations=self.config.max_iterations,
            total_usage=total_usage,
            tool_calls=records,
        )

    async def _preload_file_tree(self) -> None:
        """Answer a show_file_tree call on the model's behalf, after the user message."""
        if FILE_TREE_TOOL not in self.tools:
            return

        arguments = {"path": ".", "reason_for_call": "Inspect the repository layout before starting."}
        call = ToolCall(id=PRELOAD_CALL_ID, name=FILE_TREE_TOOL, arguments=json.dumps(arguments))
        result = await self.tools.execute(call.name, arguments, self.tool_context)
        self.context.add_tool_exchange(call, result)

    def _log_tool_call(self, tool_call: ToolCall, result: ToolResult) -> None:
        tool = self.tools.get(tool_call.name)
        try:
            params = tool_call.parse_arguments()
        except ValueError:
            params = {}

        if tool is not None and tool.readable_params is not None and params:
            readable_params = tool.readable_params(params)
        else:
            readable_params = format_data_for_logging(params)

        if tool is not None and tool.readable_result is not None and result.success:
            readable_result = tool.readable_result(result.payload)
        else:
            readable_result = format_data_for_logging(result.payload)

        logger.info("%s(%s) => %s", tool_call.name, readable_params, readable_result)


__all__ = ["Agent"]
