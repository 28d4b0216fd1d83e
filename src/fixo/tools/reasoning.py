"""Reasoning tools."""

from __future__ import annotations

from typing import Any

from .base import Tool, ToolExecutionContext


async def think(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    # Nothing to do; the thought is recorded in the conversation.
    return {"thought": params["thought"]}


think_tool = Tool(
    name="think",
    description=(
        "Use the tool to think about something. It will not obtain new information or change "
        "the repository, but just append the thought to the log. Use it when complex reasoning "
        "or some cache memory is needed."
    ),
    parameters={
        "type": "object",
        "properties": {
            "thought": {"type": "string", "description": "A thought to think about."},
        },
        "required": ["thought"],
    },
    handler=think,
    readable_params=lambda params: params.get("thought", ""),
    readable_result=lambda result: "",
)

__all__ = ["think_tool"]
