"""
Tests for the Agent loop and the agent factory.
"""
import asyncio
import json

import pytest

from fixo.agent import (
    CODE_MODIFICATION_MAX_ITERATIONS,
    DEFAULT_MAX_ITERATIONS,
    Agent,
    create_source_modifier_agent,
)
from fixo.agent.core import PRELOAD_CALL_ID
from fixo.config import AgentConfig
from fixo.providers.types import Role
from fixo.tools import show_file_tree_tool, task_completion_tool
from tests.conftest import (
    MockProvider,
    completion_call,
    make_completion_result,
    make_test_tool,
    make_tool_call,
    make_usage,
)


def _config(**overrides) -> AgentConfig:
    overrides.setdefault("preload_file_tree", False)
    return AgentConfig(**overrides)


class TestAgentLoop:
    """Iteration, completion and stop conditions."""

    async def test_single_iteration_budget(self, tmp_path, test_tool):
        provider = MockProvider([make_completion_result(content=None, tool_calls=[make_tool_call()])])
        agent = Agent(provider, tools=[test_tool], base_path=tmp_path, config=_config(max_iterations=1))

        result = await agent.run("hello")

        assert result.status == "max_iterations"
        assert result.iterations == 1
        assert provider.call_count == 1
        roles = [m.role for m in agent.context.get_messages()]
        assert roles == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.TOOL]
        tool_message = agent.context.get_messages()[-1]
        assert tool_message.tool_call_id == "call_test123"
        assert json.loads(tool_message.content) == {"echo": "hi"}

    async def test_completes_on_output_tool(self, tmp_path, test_tool):
        provider = MockProvider(
            [
                make_completion_result(content=None, tool_calls=[make_tool_call()]),
                make_completion_result(content=None, tool_calls=[completion_call(True, "Fixed it")]),
            ]
        )
        agent = Agent(
            provider,
            tools=[test_tool],
            output_tool=task_completion_tool,
            base_path=tmp_path,
            config=_config(),
        )

        result = await agent.run("fix it", tool_choice="required")

        assert result.status == "completed"
        assert result.iterations == 2
        assert result.output == {"objective_achieved": True, "reason_or_output": "Fixed it"}
        assert [r.name for r in result.tool_calls] == ["echo", "task_completion"]
        assert provider.call_history[0]["tool_choice"] == "required"

    async def test_completion_on_only_iteration(self, tmp_path):
        provider = MockProvider([make_completion_result(content=None, tool_calls=[completion_call(True, "Done")])])
        agent = Agent(
            provider,
            output_tool=task_completion_tool,
            base_path=tmp_path,
            config=_config(max_iterations=1),
        )
        before = len(agent.context.get_messages())

        result = await agent.run("fix it", tool_choice="required")

        assert result.status == "completed"
        assert result.iterations == 1
        assert result.output == {"objective_achieved": True, "reason_or_output": "Done"}
        appended = agent.context.get_messages()[before:]
        assert [m.role for m in appended] == [Role.USER, Role.ASSISTANT, Role.TOOL]
        assert provider.call_count == 1

    async def test_invalid_output_call_does_not_finish(self, tmp_path):
        bad = make_tool_call(id="bad", name="task_completion", arguments='{"objective_achieved": true}')
        provider = MockProvider(
            [
                make_completion_result(content=None, tool_calls=[bad]),
                make_completion_result(content=None, tool_calls=[completion_call()]),
            ]
        )
        agent = Agent(provider, output_tool=task_completion_tool, base_path=tmp_path, config=_config())

        result = await agent.run("go")

        assert result.status == "completed"
        assert result.iterations == 2
        assert result.tool_calls[0].result.success is False

    async def test_model_error_ends_run(self, tmp_path):
        provider = MockProvider([make_completion_result(content=None, status=500, error="upstream down")])
        agent = Agent(provider, base_path=tmp_path, config=_config())

        result = await agent.run("hello")

        assert result.status == "error"
        assert result.error == "upstream down"
        assert result.output is None

    async def test_text_reply_without_output_tool(self, tmp_path):
        provider = MockProvider([make_completion_result(content="Just text")])
        agent = Agent(provider, base_path=tmp_path, config=_config())

        result = await agent.run("hello")

        assert result.status == "completed"
        assert result.output == "Just text"
        assert agent.context.get_messages()[-1].content == "Just text"

    async def test_text_replies_with_output_tool_exhaust_budget(self, tmp_path):
        provider = MockProvider([make_completion_result(content="thinking...")])
        agent = Agent(
            provider,
            output_tool=task_completion_tool,
            base_path=tmp_path,
            config=_config(max_iterations=3),
        )

        result = await agent.run("hello")

        assert result.status == "max_iterations"
        assert result.iterations == 3
        assert result.output == "thinking..."
        assert provider.call_count == 3

    async def test_unknown_tool_reported_to_model(self, tmp_path):
        provider = MockProvider(
            [
                make_completion_result(content=None, tool_calls=[make_tool_call(name="nope")]),
                make_completion_result(content="ok"),
            ]
        )
        agent = Agent(provider, base_path=tmp_path, config=_config())

        await agent.run("hello")

        tool_message = [m for m in agent.context.get_messages() if m.role == Role.TOOL][0]
        assert json.loads(tool_message.content) == {"error": "Unknown tool: nope"}

    async def test_single_shot(self, tmp_path, test_tool):
        provider = MockProvider([make_completion_result(content=None, tool_calls=[make_tool_call()])])
        agent = Agent(provider, tools=[test_tool], base_path=tmp_path, config=_config(single_shot=True))

        result = await agent.run("hello")

        assert result.status == "completed"
        assert result.iterations == 1
        assert result.output is None

    async def test_usage_accumulates(self, tmp_path, test_tool):
        usage = make_usage(input_tokens=10, output_tokens=5, total_cost=0.25)
        provider = MockProvider(
            [
                make_completion_result(content=None, tool_calls=[make_tool_call()], usage=usage),
                make_completion_result(content="done", usage=usage),
            ]
        )
        agent = Agent(provider, tools=[test_tool], base_path=tmp_path, config=_config())

        result = await agent.run("hello")

        assert result.total_usage.input_tokens == 20
        assert result.total_usage.output_tokens == 10
        assert result.total_usage.total_cost == pytest.approx(0.5)

    async def test_prompt_messages_sent_to_provider(self, tmp_path, test_tool):
        provider = MockProvider([make_completion_result(content="done")])
        agent = Agent(provider, tools=[test_tool], system_message="Be brief.", base_path=tmp_path, config=_config())

        await agent.run("hello")

        sent = provider.call_history[0]
        assert sent["messages"][0].role == Role.SYSTEM
        assert sent["messages"][0].content.endswith("Be brief.")
        assert sent["messages"][1].content == "hello"
        assert [t.name for t in sent["tools"]] == ["echo"]
        assert sent["tool_choice"] == "auto"

    async def test_unexpected_error_propagates(self, tmp_path):
        class Broken(MockProvider):
            async def complete(self, messages, **kwargs):
                raise RuntimeError("socket closed")

        agent = Agent(Broken(), base_path=tmp_path, config=_config())

        with pytest.raises(RuntimeError, match="socket closed"):
            await agent.run("hello")


class TestToolExecution:
    """Timeouts and ordering of tool results."""

    async def test_parallel_results_in_call_order(self, tmp_path):
        async def slow(params, context):
            await asyncio.sleep(0.05)
            return {"echo": "slow"}

        async def fast(params, context):
            return {"echo": "fast"}

        calls = [make_tool_call(id="a", name="slow"), make_tool_call(id="b", name="fast")]
        provider = MockProvider(
            [make_completion_result(content=None, tool_calls=calls), make_completion_result(content="done")]
        )
        agent = Agent(
            provider,
            tools=[make_test_tool("slow", slow), make_test_tool("fast", fast)],
            base_path=tmp_path,
            config=_config(parallel_tool_execution=True),
        )

        await agent.run("hello")

        tool_messages = [m for m in agent.context.get_messages() if m.role == Role.TOOL]
        assert [m.tool_call_id for m in tool_messages] == ["a", "b"]
        assert [json.loads(m.content)["echo"] for m in tool_messages] == ["slow", "fast"]

    async def test_tool_timeout_becomes_error(self, tmp_path):
        async def sleepy(params, context):
            await asyncio.sleep(1)
            return {"echo": "late"}

        provider = MockProvider(
            [
                make_completion_result(content=None, tool_calls=[make_tool_call(name="sleepy")]),
                make_completion_result(content="done"),
            ]
        )
        agent = Agent(
            provider,
            tools=[make_test_tool("sleepy", sleepy)],
            base_path=tmp_path,
            config=_config(tool_timeout=0.01),
        )

        result = await agent.run("hello")

        record = result.tool_calls[0]
        assert record.result.success is False
        assert record.result.error == "Tool 'sleepy' timed out after 0.01s"


class TestAgentSetup:
    """Preloading and tool registration."""

    async def test_preloads_file_tree(self, repo):
        provider = MockProvider([make_completion_result(content="done")])
        agent = Agent(provider, tools=[show_file_tree_tool], base_path=repo, config=AgentConfig())

        await agent.run("hello")

        messages = provider.call_history[0]["messages"]
        assert [m.role for m in messages] == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.TOOL]
        assert messages[1].content == "hello"
        assert messages[2].tool_calls[0].id == PRELOAD_CALL_ID
        assert messages[2].tool_calls[0].name == "show_file_tree"
        assert "app.ts" in messages[3].content

    async def test_file_tree_refreshed_every_run(self, repo):
        provider = MockProvider([make_completion_result(content="done"), make_completion_result(content="again")])
        agent = Agent(provider, tools=[show_file_tree_tool], base_path=repo, config=AgentConfig())

        await agent.run("hello")
        (repo / "src" / "pager.ts").write_text("export const page = 1;\n")
        await agent.run("and now?")

        messages = provider.call_history[1]["messages"]
        assert [m.role for m in messages[-3:]] == [Role.USER, Role.ASSISTANT, Role.TOOL]
        assert messages[-3].content == "and now?"
        assert "pager.ts" in messages[-1].content

    async def test_preload_skipped_without_tree_tool(self, tmp_path):
        provider = MockProvider([make_completion_result(content="done")])
        agent = Agent(provider, base_path=tmp_path, config=AgentConfig())

        await agent.run("hello")

        assert [m.role for m in provider.call_history[0]["messages"]] == [Role.SYSTEM, Role.USER]

    def test_output_tool_registered(self, tmp_path):
        agent = Agent(MockProvider(), output_tool=task_completion_tool, base_path=tmp_path)
        assert "task_completion" in agent.tools

    def test_conversational_registers_ask_user(self, tmp_path):
        agent = Agent(MockProvider(), base_path=tmp_path, config=_config(conversational=True))
        assert "ask_user" in agent.tools

    def test_duplicate_tool_rejected(self, tmp_path, test_tool):
        agent = Agent(MockProvider(), tools=[test_tool], base_path=tmp_path)
        with pytest.raises(ValueError, match="already registered"):
            agent.register_tool(make_test_tool())


class TestSourceModifierFactory:
    """create_source_modifier_agent()."""

    def test_default_budget(self, repo):
        agent = create_source_modifier_agent(MockProvider(), repo)
        assert agent.config.max_iterations == DEFAULT_MAX_ITERATIONS == 25

    def test_code_modification_budget(self, repo):
        agent = create_source_modifier_agent(MockProvider(), repo, code_modification=True)
        assert agent.config.max_iterations == CODE_MODIFICATION_MAX_ITERATIONS == 50

    def test_explicit_config_wins(self, repo):
        config = AgentConfig(max_iterations=7)

        agent = create_source_modifier_agent(MockProvider(), repo, config=config, code_modification=True)

        assert agent.config.max_iterations == 7
        assert agent.config is not config

    def test_tools_and_prompt(self, repo):
        agent = create_source_modifier_agent(MockProvider(), repo, output_tool=task_completion_tool)

        assert {"read_file", "write_file", "grep_code", "think", "task_completion"} <= set(agent.tools.names)
        system = agent.context.system_message.content
        assert str(repo.resolve()) in system
        assert "call `task_completion` exactly once" in system
