"""
Tests for AgentContext: transcript rules, compaction view and trace.
"""
import json

import pytest

from fixo.agent import AgentContext
from fixo.providers.types import Message, Role, ToolCall
from fixo.tools import OMITTED_RESULT, ToolRegistry, ToolResult, read_file_tool, think_tool


def _read_call(i: int) -> ToolCall:
    return ToolCall(id=f"r{i}", name="read_file", arguments=json.dumps({"path": f"f{i}.ts"}))


@pytest.fixture
def context():
    return AgentContext(ToolRegistry([read_file_tool, think_tool]), system_message="Be careful.", base_path="/repo")


class TestTranscript:
    """Ordering and system message rules."""

    def test_system_message_first_with_preamble(self, context):
        system = context.system_message

        assert system.role == Role.SYSTEM
        assert system.content.startswith("You are an AI assistant operating within the local directory: '/repo'.")
        assert system.content.endswith("Be careful.")

    def test_second_system_message_rejected(self, context):
        with pytest.raises(ValueError, match="already has a system message"):
            context.add_message(Message.system("again"))

    def test_history_system_messages_dropped(self):
        history = [Message.system("old"), Message.user("hi"), Message.assistant("hello")]

        ctx = AgentContext(ToolRegistry(), system_message="new", history=history)

        messages = ctx.get_messages()
        assert [m.role for m in messages] == [Role.SYSTEM, Role.USER, Role.ASSISTANT]
        assert messages[0].content == "new"

    def test_no_system_message(self):
        ctx = AgentContext(ToolRegistry())
        assert ctx.system_message is None

    def test_tool_exchange_appends_pair(self, context):
        call = ToolCall(id="c1", name="think", arguments='{"thought": "x"}')

        context.add_tool_exchange(call, ToolResult.success_result({"thought": "x"}))

        assistant, tool = context.get_last_messages(2)
        assert assistant.tool_calls == (call,)
        assert tool.role == Role.TOOL
        assert tool.tool_call_id == "c1"
        assert tool.name == "think"
        assert json.loads(tool.content) == {"thought": "x"}

    def test_get_messages_is_a_copy(self, context):
        context.get_messages().append(Message.user("sneaky"))
        assert len(context.get_messages()) == 1


class TestPromptView:
    """Compaction applies to the outward view only."""

    def _fill(self, context, reads: int):
        context.add_user_message("go")
        for i in range(reads):
            context.add_tool_exchange(_read_call(i), ToolResult.success_result({"content": f"body {i}"}))

    def test_old_reads_omitted(self, context):
        self._fill(context, 13)

        view = context.get_prompt_messages()

        tool_messages = [m for m in view if m.role == Role.TOOL]
        omitted = [m for m in tool_messages if json.loads(m.content) == OMITTED_RESULT]
        # results 0 and 1 have 12 and 11 newer reads
        assert [m.tool_call_id for m in omitted] == ["r0", "r1"]
        assert json.loads(tool_messages[2].content) == {"content": "body 2"}

    def test_stored_messages_untouched(self, context):
        self._fill(context, 13)

        context.get_prompt_messages()

        stored = [m for m in context.get_messages() if m.role == Role.TOOL]
        assert json.loads(stored[0].content) == {"content": "body 0"}

    def test_view_is_idempotent(self, context):
        self._fill(context, 15)

        assert context.get_prompt_messages() == context.get_prompt_messages()

    def test_tools_without_rule_untouched(self, context):
        context.add_user_message("go")
        for i in range(12):
            call = ToolCall(id=f"t{i}", name="think", arguments='{"thought": "x"}')
            context.add_tool_exchange(call, ToolResult.success_result({"thought": str(i)}))

        assert context.get_prompt_messages() == context.get_messages()


class TestCodeInsights:
    """Memory helpers on the context."""

    def test_add_code_insight(self, context):
        mem_id = context.add_code_insight("bug", "Pager skips last page", metadata={"file": "pager.ts"})

        entries = context.get_memories_by_type("code_insight.bug")
        assert [e.id for e in entries] == [mem_id]
        assert context.memory.find_by_metadata("file", "pager.ts")[0].content == "Pager skips last page"


class TestHistoryTrace:
    """format_history_trace()."""

    def test_trace_lines(self, context):
        context.add_user_message("Fix it")
        call = ToolCall(id="c1", name="read_file", arguments='{"path": "a.ts"}')
        context.add_tool_exchange(call, ToolResult.success_result({"content": "x"}))
        context.add_assistant_message("All done")

        assert context.format_history_trace() == [
            "User: Fix it",
            'Assistant: Calls tool `read_file` with args: {"path": "a.ts"}',
            'Tool: `read_file` returned: {"content": "x"}',
            "Assistant: All done",
        ]
