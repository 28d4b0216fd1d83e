"""
Agent conversation context.

Holds the stored transcript, the memory store and the tool registry, and
builds the compacted view that is sent to the model.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from ..logging import format_data_for_logging
from ..providers.types import Message, Role, ToolCall
from ..tools.base import ToolRegistry, ToolResult
from .memory import MemoryEntry, MemoryStore


def base_path_preamble(base_path: str | Path) -> str:
    return f"You are an AI assistant operating within the local directory: '{base_path}'."


class AgentContext:
    """
    Ordered transcript plus the collaborators an agent run needs.

    The transcript holds at most one system message, always first. Messages are
    only ever appended; `get_prompt_messages` returns a compacted copy.
    """

    def __init__(
        self,
        tool_registry: ToolRegistry,
        *,
        memory: MemoryStore | None = None,
        system_message: str | None = None,
        history: list[Message] | None = None,
        base_path: str | Path | None = None,
    ) -> None:
        self.tool_registry = tool_registry
        self.memory = memory or MemoryStore()
        self._messages: list[Message] = []

        if system_message or base_path is not None:
            parts = [base_path_preamble(base_path)] if base_path is not None else []
            if system_message:
                parts.append(system_message)
            self._messages.append(Message.system("\n\n".join(parts)))

        if history:
            self._messages.extend(m for m in history if m.role != Role.SYSTEM)

    # === Transcript ===

    def add_message(self, message: Message) -> Message:
        if message.role == Role.SYSTEM and any(m.role == Role.SYSTEM for m in self._messages):
            raise ValueError("Context already has a system message")
        self._messages.append(message)
        return message

    def add_user_message(self, content: str) -> Message:
        return self.add_message(Message.user(content))

    def add_assistant_message(self, content: str) -> Message:
        return self.add_message(Message.assistant(content))

    def add_tool_exchange(self, tool_call: ToolCall, result: ToolResult) -> None:
        """Append the assistant tool-call message and its matching tool-result message."""
        self.add_message(Message.assistant(None, tool_calls=[tool_call]))
        self.add_message(Message.tool_result(tool_call.id, result.to_string(), name=tool_call.name))

    def get_messages(self) -> list[Message]:
        return list(self._messages)

    def get_last_messages(self, count: int) -> list[Message]:
        return self._messages[-count:] if count > 0 else []

    @property
    def system_message(self) -> Message | None:
        if self._messages and self._messages[0].role == Role.SYSTEM:
            return self._messages[0]
        return None

    def get_prompt_messages(self) -> list[Message]:
        """
        Build the outward view, newest to oldest, applying each tool's compaction rule.

        Each rule receives the number of newer results from the same tool.
        Stored messages are left untouched.
        """
        seen: dict[str, int] = {}
        view: list[Message] = []
        for message in reversed(self._messages):
            if message.role == Role.TOOL and message.name:
                tool = self.tool_registry.get(message.name)
                if tool is not None and tool.compact is not None:
                    calls_after = seen.get(message.name, 0)
                    seen[message.name] = calls_after + 1
                    message = tool.compact(message, calls_after)
            view.append(message)
        view.reverse()
        return view

    # === Memory ===

    def add_code_insight(
        self,
        type: str,
        content: Any,
        *,
        metadata: dict[str, Any] | None = None,
        importance: float = 0.5,
    ) -> str:
        return self.memory.add(
            f"code_insight.{type}",
            content,
            metadata=metadata,
            importance=importance,
        )

    def get_memories_by_type(self, type: str) -> list[MemoryEntry]:
        return self.memory.find_by_type(type)

    # === Reporting ===

    def format_history_trace(self) -> list[str]:
        """Render the stored transcript as human-readable lines (system messages skipped)."""
        trace: list[str] = []
        for message in self._messages:
            if message.role == Role.USER:
                trace.append(f"User: {message.content}")
            elif message.role == Role.ASSISTANT:
                for tc in message.tool_calls or ():
                    args = format_data_for_logging(_decode(tc.arguments))
                    trace.append(f"Assistant: Calls tool `{tc.name}` with args: {args}")
                if message.content and message.content.strip():
                    trace.append(f"Assistant: {message.content.strip()}")
            elif message.role == Role.TOOL:
                result = format_data_for_logging(_decode(message.content))
                trace.append(f"Tool: `{message.name}` returned: {result}")
        return trace


def _decode(raw: str | None) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return raw


__all__ = ["AgentContext", "base_path_preamble"]
