"""Task signalling tools."""

from __future__ import annotations

from typing import Any

from .base import Tool, ToolExecutionContext


async def task_completion(params: dict[str, Any], context: ToolExecutionContext | None) -> dict[str, Any]:
    return {
        "objective_achieved": params["objective_achieved"],
        "reason_or_output": params["reason_or_output"],
    }


task_completion_tool = Tool(
    name="task_completion",
    description="Signal whether the objective has been achieved or not",
    parameters={
        "type": "object",
        "properties": {
            "objective_achieved": {
                "type": "boolean",
                "description": "Whether the objective has been successfully achieved",
            },
            "reason_or_output": {
                "type": "string",
                "description": (
                    "Explanation of why the objective was or was not achieved, "
                    "or the output of the task if it was successful"
                ),
            },
        },
        "required": ["objective_achieved", "reason_or_output"],
    },
    handler=task_completion,
    readable_result=lambda result: result.get("reason_or_output", "") if isinstance(result, dict) else str(result),
)

__all__ = ["task_completion_tool"]
