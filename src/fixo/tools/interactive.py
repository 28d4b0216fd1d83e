"""
Interactive tools for conversational (CLI) agent runs.

The answer source is taken from `context.extra["input_reader"]` when present,
an async callable receiving the prompt; otherwise stdin is read on a worker
thread.
"""

from __future__ import annotations

from typing import Any

from ..concurrency import run_sync
from .base import Tool, ToolExecutionContext

PROMPT_PREFIX = "🤔 Agent asks:"


async def ask_user(params: dict[str, Any], context: ToolExecutionContext | None) -> str:
    prompt = f"{PROMPT_PREFIX} {params['question']} "
    reader = context.extra.get("input_reader") if context else None
    if reader is not None:
        return await reader(prompt)
    return await run_sync(input, prompt)


ask_user_tool = Tool(
    name="ask_user",
    description=(
        "Asks the human user a clarifying question and returns their answer. Use this if you need "
        "more information or clarification from the user to proceed with the task, or to confirm an "
        "action before taking it. When a task is completed, you can use this tool to ask what else "
        "the user would like you to do."
    ),
    parameters={
        "type": "object",
        "properties": {
            "question": {"type": "string", "description": "The question to ask the human user."},
        },
        "required": ["question"],
    },
    handler=ask_user,
    readable_params=lambda params: "",
)

__all__ = ["ask_user_tool", "PROMPT_PREFIX"]
