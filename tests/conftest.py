"""
Shared test fixtures and fakes for fixo tests.

This module provides:
- CompletionResult / ToolCall / Usage factories
- A scripted mock provider
- An aiodocker-shaped fake Docker client
- Job payload factories and small collaborator fakes
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from aiodocker.exceptions import DockerError

from fixo.jobs.types import AppMentionOnIssuePayload, AppMentionOnPullRequestPayload
from fixo.providers.types import CompletionResult, ToolCall, Usage
from fixo.tools.base import Tool


# =============================================================================
# Mock Response Factories
# =============================================================================


def make_usage(
    input_tokens: int = 10,
    output_tokens: int = 20,
    total_cost: float = 0.0,
) -> Usage:
    """Create a Usage."""
    return Usage(
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        total_tokens=input_tokens + output_tokens,
        total_cost=total_cost,
    )


def make_completion_result(
    content: str | None = "Test response",
    tool_calls: list[ToolCall] | None = None,
    usage: Usage | None = None,
    status: int = 200,
    error: str | None = None,
) -> CompletionResult:
    """Create a CompletionResult."""
    return CompletionResult(
        content=content,
        tool_calls=tool_calls,
        usage=usage or make_usage(),
        model="gpt-4.1",
        finish_reason="tool_calls" if tool_calls else "stop",
        status=status,
        error=error,
    )


def make_tool_call(
    id: str = "call_test123",
    name: str = "echo",
    arguments: str = '{"message": "hi"}',
) -> ToolCall:
    """Create a ToolCall."""
    return ToolCall(id=id, name=name, arguments=arguments)


def completion_call(
    objective_achieved: bool = True,
    reason_or_output: str = "Done",
    id: str = "call_done",
) -> ToolCall:
    """A task_completion tool call."""
    return ToolCall(
        id=id,
        name="task_completion",
        arguments=json.dumps({"objective_achieved": objective_achieved, "reason_or_output": reason_or_output}),
    )


# =============================================================================
# Mock Provider
# =============================================================================


class MockProvider:
    """Provider returning scripted responses; the last one repeats."""

    def __init__(self, responses: list[CompletionResult] | None = None, model: str = "gpt-4.1"):
        self._model_name = model
        self._responses = responses or [make_completion_result()]
        self.call_count = 0
        self.call_history: list[dict[str, Any]] = []

    @property
    def model_name(self) -> str:
        return self._model_name

    async def complete(self, messages, *, tools=None, tool_choice=None, **kwargs) -> CompletionResult:
        self.call_history.append(
            {
                "messages": list(messages),
                "tools": list(tools or []),
                "tool_choice": tool_choice,
                "kwargs": kwargs,
            }
        )
        result = self._responses[min(self.call_count, len(self._responses) - 1)]
        self.call_count += 1
        return result


# =============================================================================
# Fake Docker
# =============================================================================


def docker_error(message: str, status: int = 500) -> DockerError:
    return DockerError(status, {"message": message})


class FakeContainer:
    """Container double. `hang=True` blocks `wait()` until `kill()`."""

    def __init__(
        self,
        docker: FakeDocker,
        container_id: str,
        config: dict[str, Any],
        *,
        status_code: int = 0,
        logs: list[str] | None = None,
        hang: bool = False,
        wait_error: Exception | None = None,
        kill_error: Exception | None = None,
        start_error: Exception | None = None,
        delete_error: Exception | None = None,
    ):
        self.docker = docker
        self.id = container_id
        self.config = config
        self.status_code = status_code
        self.logs = logs if logs is not None else ["ok\n"]
        self.hang = hang
        self.wait_error = wait_error
        self.kill_error = kill_error
        self.start_error = start_error
        self.delete_error = delete_error
        self.started = False
        self.killed = False
        self._exited = asyncio.Event()

    async def start(self) -> None:
        if self.start_error:
            raise self.start_error
        self.started = True

    async def wait(self) -> dict[str, Any]:
        if self.wait_error:
            raise self.wait_error
        if self.hang:
            await self._exited.wait()
            return {"StatusCode": 137}
        return {"StatusCode": self.status_code}

    async def log(self, *, stdout: bool = False, stderr: bool = False) -> list[str]:
        return list(self.logs)

    async def kill(self) -> None:
        self.killed = True
        if self.kill_error:
            raise self.kill_error
        self._exited.set()

    async def delete(self, *, force: bool = False) -> None:
        self.docker.delete_calls.append((self.id, force))
        if self.delete_error:
            raise self.delete_error


class _FakeImages:
    def __init__(self, docker: FakeDocker):
        self.docker = docker

    async def pull(self, image: str) -> None:
        self.docker.pulled.append(image)
        if self.docker.pull_error:
            raise self.docker.pull_error

    async def list(self) -> list[dict[str, Any]]:
        return [{"RepoTags": [tag]} for tag in self.docker.images_available] + [{"RepoTags": None}]


class _FakeContainers:
    def __init__(self, docker: FakeDocker):
        self.docker = docker

    async def create(self, config: dict[str, Any]) -> FakeContainer:
        if self.docker.create_error:
            raise self.docker.create_error
        container = FakeContainer(
            self.docker,
            f"container-{len(self.docker.containers_created) + 1}",
            config,
            **self.docker.container_options,
        )
        self.docker.containers_created.append(container)
        return container


class _FakeSystem:
    def __init__(self, docker: FakeDocker):
        self.docker = docker

    async def info(self) -> dict[str, Any]:
        if self.docker.info_error:
            raise self.docker.info_error
        return {"ServerVersion": "test"}


class FakeDocker:
    """aiodocker.Docker double recording pulls, creations and removals."""

    def __init__(self, **container_options: Any):
        self.container_options = container_options
        self.pull_error: Exception | None = None
        self.create_error: Exception | None = None
        self.info_error: Exception | None = None
        self.images_available: list[str] = ["node:latest"]
        self.pulled: list[str] = []
        self.containers_created: list[FakeContainer] = []
        self.delete_calls: list[tuple[str, bool]] = []
        self.closed = False
        self.images = _FakeImages(self)
        self.containers = _FakeContainers(self)
        self.system = _FakeSystem(self)

    async def close(self) -> None:
        self.closed = True


# =============================================================================
# Payload Factories
# =============================================================================


def make_issue_payload(**overrides: Any) -> AppMentionOnIssuePayload:
    data: dict[str, Any] = {
        "original_repo_owner": "octo",
        "original_repo_name": "hello",
        "installation_id": 42,
        "triggered_by": "octocat",
        "command_to_process": "Fix the typo in README",
        "repository_url": "https://github.com/octo/hello.git",
        "event_issue_number": 7,
        "event_issue_title": "Typo in README",
    }
    data.update(overrides)
    return AppMentionOnIssuePayload(**data)


def make_pr_payload(**overrides: Any) -> AppMentionOnPullRequestPayload:
    data: dict[str, Any] = {
        "original_repo_owner": "octo",
        "original_repo_name": "hello",
        "installation_id": 42,
        "triggered_by": "octocat",
        "command_to_process": "Address the review comment",
        "repository_url": "https://github.com/octo/hello.git",
        "event_pull_request_number": 12,
        "event_pull_request_title": "Add pager",
        "pull_request_url": "https://github.com/octo/hello/pull/12",
        "head_ref": "feature/pager",
        "head_sha": "abc123",
        "base_ref": "main",
        "base_sha": "def456",
        "comment_id": 99,
    }
    data.update(overrides)
    return AppMentionOnPullRequestPayload(**data)


# =============================================================================
# Test Tools
# =============================================================================


async def echo_handler(params, context) -> dict[str, Any]:
    return {"echo": params["message"]}


def make_test_tool(name: str = "echo", handler=None, **kwargs: Any) -> Tool:
    return Tool(
        name=name,
        description="Echo the message back",
        parameters={
            "type": "object",
            "properties": {"message": {"type": "string"}},
            "required": ["message"],
        },
        handler=handler or echo_handler,
        **kwargs,
    )


class FakeCloner:
    """RepositoryCloner double that creates the destination directory."""

    def __init__(self, clone_error: Exception | None = None):
        self.clone_error = clone_error
        self.clone = AsyncMock(side_effect=self._clone)
        self.checkout = AsyncMock()
        self.create_branch = AsyncMock()
        self.has_changes = AsyncMock(return_value=True)
        self.commit_and_push = AsyncMock()
        self.cleanup = AsyncMock()

    async def _clone(self, repository_url: str, destination: Path) -> Path:
        if self.clone_error:
            raise self.clone_error
        destination.mkdir(parents=True, exist_ok=True)
        return destination


# =============================================================================
# Fake asyncpg pool
# =============================================================================


class _Acquire:
    def __init__(self, conn: Any):
        self.conn = conn

    async def __aenter__(self) -> Any:
        return self.conn

    async def __aexit__(self, *exc: Any) -> None:
        return None


def make_pool(conn: Any | None = None) -> MagicMock:
    """A pool whose `acquire()` yields `conn` (an AsyncMock connection by default)."""
    if conn is None:
        conn = AsyncMock()
        conn.execute.return_value = "OK"
        conn.fetchrow.return_value = None
        conn.fetch.return_value = []
        conn.fetchval.return_value = None
    pool = MagicMock()
    pool.acquire.side_effect = lambda: _Acquire(conn)
    pool.conn = conn
    return pool


# =============================================================================
# Pytest Fixtures
# =============================================================================


@pytest.fixture
def mock_completion_result():
    """Fixture providing a factory for CompletionResults."""
    return make_completion_result


@pytest.fixture
def mock_tool_call():
    """Fixture providing a factory for ToolCalls."""
    return make_tool_call


@pytest.fixture
def mock_usage():
    """Fixture providing a factory for Usage."""
    return make_usage


@pytest.fixture
def mock_provider():
    """Fixture providing a factory for scripted providers."""

    def _factory(responses=None, model="gpt-4.1"):
        return MockProvider(responses=responses, model=model)

    return _factory


@pytest.fixture
def fake_docker():
    """Fixture providing a factory for FakeDocker clients."""
    return FakeDocker


@pytest.fixture
def test_tool():
    return make_test_tool()


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    """A small repository on disk."""
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.ts").write_text("export const a = 1;\n// TODO fix\nexport const b = 2;")
    (tmp_path / "src" / "util.ts").write_text("export function helper() {\n  return 42;\n}")
    (tmp_path / "README.md").write_text("# Hello\nA tiny project")
    (tmp_path / "node_modules").mkdir()
    (tmp_path / "node_modules" / "dep.js").write_text("module.exports = 1;")
    (tmp_path / "package-lock.json").write_text("{}")
    (tmp_path / ".gitignore").write_text("secrets\n*.log\n# comment\n")
    (tmp_path / "secrets").mkdir()
    (tmp_path / "secrets" / "key.txt").write_text("hunter2")
    return tmp_path
