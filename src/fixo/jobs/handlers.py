"""
Job handlers and dispatch.

Each handler receives its typed payload plus a HandlerServices bundle. The
external collaborators (git working copies, source-control comments and pull
requests) are expressed as protocols so deployments plug in their own clients.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, TypeVar, assert_never, runtime_checkable

from ..agent import CODE_MODIFICATION_MAX_ITERATIONS, Agent, AgentResult, create_source_modifier_agent
from ..config import Settings
from ..errors import AgentError, ErrorContext, FixoError, JobError, RepositoryError
from ..logging import OperationLogger
from ..providers.base import Provider
from ..ratelimit import ExecutionRecord, RateLimitCheck, RateLimitManager
from ..sandbox import ExecutionRequest, ExecutionResult, SandboxExecutor
from ..tools import Tool, task_completion_tool
from .types import (
    AppMentionOnIssuePayload,
    AppMentionOnPullRequestPayload,
    JobPayload,
    JobRecord,
    parse_payload,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

SUCCESS_MESSAGE = "Successfully applied changes based on your comment!"
NO_CHANGES_MESSAGE = "I received your request, but no file changes were needed."
FAILURE_MESSAGE = "I was unable to complete the requested changes. Please check the logs for more details."
ERROR_MESSAGE_PREFIX = "An error occurred while processing your request:"
ISSUE_ACK_MESSAGE = "👋 Hi @{user}, I'm on it! I'll apply changes, and open a PR if needed. Stay tuned!"
PULL_REQUEST_ACK_MESSAGE = "👋 Hi @{user}, I'm on it! I'll apply changes to PR #{number}. Stay tuned!"
FIX_VERIFICATION_PROMPT = (
    "After your changes, the command `{command}` failed with exit code {exit_code}. "
    "Fix the code so that it passes, then call task_completion.\n\nOutput:\n```\n{output}\n```"
)
MAX_VERIFICATION_OUTPUT = 2000
PR_TITLE_LIMIT = 40


# =============================================================================
# Collaborators
# =============================================================================


@dataclass(frozen=True)
class CommentTarget:
    """Where a job reports back: an issue, or a pull request (optionally in reply to a comment)."""

    owner: str
    repo: str
    number: int
    installation_id: int
    comment_id: int | None = None


@dataclass(frozen=True)
class PullRequestRequest:
    owner: str
    repo: str
    installation_id: int
    title: str
    head: str
    base: str
    body: str
    labels: tuple[str, ...] = ()


@runtime_checkable
class RepositoryCloner(Protocol):
    async def clone(self, repository_url: str, destination: Path) -> Path: ...

    async def checkout(self, repo_path: Path, ref: str, sha: str | None = None) -> None: ...

    async def create_branch(self, repo_path: Path, branch: str) -> None: ...

    async def has_changes(self, repo_path: Path) -> bool: ...

    async def commit_and_push(self, repo_path: Path, branch: str, message: str) -> None: ...

    async def cleanup(self, repo_path: Path) -> None: ...


@runtime_checkable
class CommentPublisher(Protocol):
    async def post_comment(self, target: CommentTarget, body: str) -> int | None:
        """Post `body` and return the new comment id, when the platform reports one."""
        ...

    async def delete_comment(self, target: CommentTarget, comment_id: int) -> None: ...

    async def create_pull_request(self, request: PullRequestRequest) -> str:
        """Open a pull request and return its URL."""
        ...


AgentFactory = Callable[[Path, Tool], Agent]


def default_agent_factory(provider: Provider, settings: Settings) -> AgentFactory:
    """Source-modifier agents with the code-modification iteration budget."""

    def factory(repo_path: Path, output_tool: Tool) -> Agent:
        config = dataclasses.replace(settings.agent, max_iterations=CODE_MODIFICATION_MAX_ITERATIONS)
        return create_source_modifier_agent(
            provider, repo_path, output_tool=output_tool, config=config
        )

    return factory


@dataclass
class HandlerServices:
    """Everything a handler may touch."""

    cloner: RepositoryCloner
    comments: CommentPublisher
    agent_factory: AgentFactory
    settings: Settings
    sandbox: SandboxExecutor | None = None
    rate_limiter: RateLimitManager | None = None


# =============================================================================
# Dispatch
# =============================================================================


async def dispatch_job(job: JobRecord, services: HandlerServices) -> None:
    """
    Route a claimed job to its handler.

    Each payload class belongs to exactly one JobType, so matching on the
    payload is the exhaustive match over job types.

    Raises:
        UnknownJobTypeError: If the job type is not a JobType
        JobError: Wrapping any handler failure as "Job <id> failed: <message>"
    """
    payload = parse_payload(job.type, job.payload)

    logger.info(
        "Worker received job for processing: job_id=%s type=%s repo=%s", job.id, job.type, payload.repo_full_name
    )

    try:
        match payload:
            case AppMentionOnIssuePayload():
                await handle_mention_on_issue(job.id, payload, services)
            case AppMentionOnPullRequestPayload():
                await handle_mention_on_pull_request(job.id, payload, services)
            case _:
                assert_never(payload)
    except JobError:
        raise
    except Exception as e:
        message = getattr(e, "message", None) or str(e)
        raise JobError(f"Job {job.id} failed: {message}", cause=e) from e

    logger.info("Job processing completed by handler: job_id=%s type=%s", job.id, job.type)


def make_worker(services: HandlerServices) -> Callable[[JobRecord], Any]:
    """Bind `dispatch_job` to a services bundle, for JobQueue."""

    async def process_job(job: JobRecord) -> None:
        await dispatch_job(job, services)

    return process_job


# =============================================================================
# Mention handlers
# =============================================================================


async def handle_mention_on_issue(job_id: str, payload: AppMentionOnIssuePayload, services: HandlerServices) -> None:
    target = CommentTarget(
        owner=payload.original_repo_owner,
        repo=payload.original_repo_name,
        number=payload.event_issue_number,
        installation_id=payload.installation_id,
    )
    await _handle_mention(job_id, payload, target, services)


async def handle_mention_on_pull_request(
    job_id: str,
    payload: AppMentionOnPullRequestPayload,
    services: HandlerServices,
) -> None:
    target = CommentTarget(
        owner=payload.original_repo_owner,
        repo=payload.original_repo_name,
        number=payload.event_pull_request_number,
        installation_id=payload.installation_id,
        comment_id=payload.comment_id,
    )
    await _handle_mention(job_id, payload, target, services)


async def _handle_mention(
    job_id: str,
    payload: JobPayload,
    target: CommentTarget,
    services: HandlerServices,
) -> None:
    settings = services.settings
    job_logger = OperationLogger(job_id=job_id, repo=payload.repo_full_name)
    comments = services.comments

    if not await _check_rate_limits(payload, target, services, job_logger):
        return

    ack_id: int | None = None
    repo_path = settings.bot.repos_dir / payload.original_repo_owner / payload.original_repo_name
    try:
        if not payload.test_job:
            ack = await job_logger.safe(
                lambda: comments.post_comment(target, acknowledgment_message(payload)),
                "post acknowledgment comment",
            )
            ack_id = ack.data
            await _record_execution(job_id, payload, services)

        repo_path = await _repository_call(
            job_id,
            job_logger,
            "clone repository",
            lambda: services.cloner.clone(payload.repository_url, repo_path),
            repository_url=payload.repository_url,
        )
        branch = await _prepare_branch(job_id, payload, repo_path, services, job_logger)

        agent = services.agent_factory(repo_path, task_completion_tool)
        result: AgentResult = await job_logger.execute(
            lambda: agent.run(payload.command_to_process, tool_choice="required"),
            "run agent",
        )
        if result.status == "error":
            raise AgentError(
                f"Agent run failed: {result.error}",
                context=ErrorContext(job_id=job_id, operation="run agent"),
            )

        verification = await _run_verification(repo_path, services, job_logger)
        pr_url = await _deliver_changes(job_id, payload, target, result, repo_path, branch, services, job_logger)

        if ack_id is not None:
            comment_id, ack_id = ack_id, None
            await job_logger.safe(
                lambda: comments.delete_comment(target, comment_id), "delete acknowledgment comment"
            )

        if not payload.test_job:
            body = _result_comment(result, verification, pr_url)
            await job_logger.execute(lambda: comments.post_comment(target, body), "post result comment")
    except Exception as e:
        logger.error("Error handling mention job: job_id=%s error=%s", job_id, e)
        if ack_id is not None:
            stale_id = ack_id
            await job_logger.safe(
                lambda: comments.delete_comment(target, stale_id), "delete acknowledgment comment"
            )
        if not payload.test_job:
            message = getattr(e, "message", None) or str(e)
            await job_logger.safe(
                lambda: comments.post_comment(target, f"{ERROR_MESSAGE_PREFIX} {message}"),
                "post error comment",
            )
        raise
    finally:
        if settings.bot.cleanup_repositories:
            await job_logger.safe(lambda: services.cloner.cleanup(repo_path), "cleanup repository")


def acknowledgment_message(payload: JobPayload) -> str:
    match payload:
        case AppMentionOnPullRequestPayload():
            return PULL_REQUEST_ACK_MESSAGE.format(user=payload.triggered_by, number=payload.event_pull_request_number)
        case AppMentionOnIssuePayload():
            return ISSUE_ACK_MESSAGE.format(user=payload.triggered_by)
        case _:
            assert_never(payload)


def issue_branch_name(bot_name: str, issue_number: int) -> str:
    suffix = int(time.time() * 1000) % 1_000_000
    return f"{bot_name}/{issue_number}-{suffix:06d}"


async def _repository_call(
    job_id: str,
    job_logger: OperationLogger,
    action: str,
    operation: Callable[[], Awaitable[T]],
    **meta: Any,
) -> T:
    """Run a source-control collaborator call, wrapping its failures in RepositoryError."""
    try:
        return await job_logger.execute(operation, action, **meta)
    except FixoError:
        raise
    except Exception as e:
        raise RepositoryError(
            str(e) or type(e).__name__,
            context=ErrorContext(job_id=job_id, operation=action, extra=meta),
            cause=e,
        ) from e


async def _record_execution(job_id: str, payload: JobPayload, services: HandlerServices) -> None:
    if services.rate_limiter is None:
        return
    await services.rate_limiter.record_execution(
        ExecutionRecord(
            job_id=job_id,
            triggered_by=payload.triggered_by,
            repo_owner=payload.original_repo_owner,
            repo_name=payload.original_repo_name,
            job_type=payload.job_type.value,
        )
    )


async def _prepare_branch(
    job_id: str,
    payload: JobPayload,
    repo_path: Path,
    services: HandlerServices,
    job_logger: OperationLogger,
) -> str:
    """Check out the pull request head, or start a fresh branch for an issue. Returns the branch."""
    cloner = services.cloner
    match payload:
        case AppMentionOnPullRequestPayload():
            await _repository_call(
                job_id,
                job_logger,
                "checkout pull request head",
                lambda: cloner.checkout(repo_path, payload.head_ref, payload.head_sha),
                head_ref=payload.head_ref,
            )
            return payload.head_ref
        case AppMentionOnIssuePayload():
            branch = issue_branch_name(services.settings.bot.bot_name, payload.event_issue_number)
            await _repository_call(
                job_id,
                job_logger,
                "create branch",
                lambda: cloner.create_branch(repo_path, branch),
                branch=branch,
            )
            return branch
        case _:
            assert_never(payload)


async def _check_rate_limits(
    payload: JobPayload,
    target: CommentTarget,
    services: HandlerServices,
    job_logger: OperationLogger,
) -> bool:
    limiter = services.rate_limiter
    if limiter is None or not services.settings.rate_limit.enabled:
        return True

    triggered_by_check, repo_owner_check = await job_logger.execute(
        lambda: asyncio.gather(
            limiter.check_rate_limit(payload.triggered_by, "triggered_by"),
            limiter.check_rate_limit(payload.original_repo_owner, "repo_owner"),
        ),
        "check rate limits",
        triggered_by=payload.triggered_by,
        repo_owner=payload.original_repo_owner,
    )
    if triggered_by_check.allowed and repo_owner_check.allowed:
        return True

    exceeded: RateLimitCheck
    if not triggered_by_check.allowed:
        exceeded, kind = triggered_by_check, "triggered_by"
    else:
        exceeded, kind = repo_owner_check, "repo_owner"

    message = limiter.generate_rate_limit_message(payload.triggered_by, exceeded, kind)
    if not payload.test_job:
        await job_logger.safe(
            lambda: services.comments.post_comment(target, message),
            "post rate limit exceeded message",
            kind=kind,
            reason=exceeded.reason,
        )
    return False


# =============================================================================
# Verification and delivery
# =============================================================================


async def _run_verification(
    repo_path: Path,
    services: HandlerServices,
    job_logger: OperationLogger,
) -> list[tuple[str, ExecutionResult]]:
    """
    Run each lint/test command in the sandbox.

    A failing command gets up to `verification_fix_attempts` agent fix rounds,
    each followed by a re-run. The last run of every command is returned.
    """
    bot = services.settings.bot
    sandbox = services.sandbox
    if sandbox is None or not bot.verification_commands:
        return []

    results = []
    for command in bot.verification_commands:
        command_logger = job_logger.child(command=command)
        request = ExecutionRequest(runtime=bot.runtime, workspace_path=repo_path, command=command)
        result = await command_logger.execute(lambda: sandbox.execute_command(request), "run verification command")
        for attempt in range(1, bot.verification_fix_attempts + 1):
            if result.success:
                break
            fixer = services.agent_factory(repo_path, task_completion_tool)
            prompt = FIX_VERIFICATION_PROMPT.format(
                command=command,
                exit_code=result.exit_code,
                output=result.output[-MAX_VERIFICATION_OUTPUT:],
            )
            await command_logger.execute(
                lambda: fixer.run(prompt, tool_choice="required"), "fix verification failure", attempt=attempt
            )
            result = await command_logger.execute(
                lambda: sandbox.execute_command(request), "re-run verification command", attempt=attempt
            )
        if not result.success:
            logger.warning("Verification command failed: command=%r exit_code=%s", command, result.exit_code)
        results.append((command, result))
    return results


def _objective_achieved(result: AgentResult) -> bool:
    return isinstance(result.output, dict) and bool(result.output.get("objective_achieved"))


async def _deliver_changes(
    job_id: str,
    payload: JobPayload,
    target: CommentTarget,
    result: AgentResult,
    repo_path: Path,
    branch: str,
    services: HandlerServices,
    job_logger: OperationLogger,
) -> str | None:
    """Commit, push and open (or update) a pull request. Returns its URL, or None when nothing was delivered."""
    if payload.test_job or not _objective_achieved(result):
        return None

    cloner = services.cloner
    changed = await _repository_call(job_id, job_logger, "check for changes", lambda: cloner.has_changes(repo_path))
    if not changed:
        logger.info("No changes to commit: job_id=%s", job_id)
        return None

    bot_name = services.settings.bot.bot_name
    message = f"fix: Automated changes for {payload.repo_full_name}#{target.number} by @{bot_name}"
    await _repository_call(
        job_id,
        job_logger,
        "commit and push changes",
        lambda: cloner.commit_and_push(repo_path, branch, message),
        branch=branch,
    )

    match payload:
        case AppMentionOnPullRequestPayload():
            return payload.pull_request_url
        case AppMentionOnIssuePayload():
            request = _pull_request_for_issue(payload, branch, services.settings)
            return await _repository_call(
                job_id,
                job_logger,
                "create pull request",
                lambda: services.comments.create_pull_request(request),
                head=request.head,
            )
        case _:
            assert_never(payload)


def _pull_request_for_issue(payload: AppMentionOnIssuePayload, branch: str, settings: Settings) -> PullRequestRequest:
    bot_name = settings.bot.bot_name
    title = payload.event_issue_title
    if len(title) > PR_TITLE_LIMIT:
        title = title[:PR_TITLE_LIMIT] + "..."
    return PullRequestRequest(
        owner=payload.original_repo_owner,
        repo=payload.original_repo_name,
        installation_id=payload.installation_id,
        title=f'🤖 Fix for "{title}" by @{bot_name}',
        head=f"{payload.original_repo_owner}:{branch}",
        base=settings.bot.target_branch,
        body=(
            f"This PR addresses the mention of @{bot_name} in "
            f"{payload.repo_full_name}#{payload.event_issue_number}.\n\nTriggered by: @{payload.triggered_by}"
        ),
        labels=("bot", bot_name.lower()),
    )


def _result_comment(
    result: AgentResult,
    verification: list[tuple[str, ExecutionResult]],
    pr_url: str | None,
) -> str:
    if not _objective_achieved(result):
        logger.warning("Agent did not achieve the objective: status=%s", result.status)
        return FAILURE_MESSAGE

    lines = [SUCCESS_MESSAGE if pr_url else NO_CHANGES_MESSAGE]
    if summary := result.output.get("reason_or_output"):
        lines += ["", summary]

    failed = [(cmd, r) for cmd, r in verification if not r.success]
    for command, r in failed:
        lines += [
            "",
            f"⚠️ `{command}` failed (exit code {r.exit_code}):",
            "```",
            r.output[-MAX_VERIFICATION_OUTPUT:],
            "```",
        ]
    if pr_url:
        lines += ["", f"Pull request: {pr_url}"]
    return "\n".join(lines)


__all__ = [
    "CommentTarget",
    "PullRequestRequest",
    "RepositoryCloner",
    "CommentPublisher",
    "AgentFactory",
    "HandlerServices",
    "default_agent_factory",
    "dispatch_job",
    "make_worker",
    "handle_mention_on_issue",
    "handle_mention_on_pull_request",
    "acknowledgment_message",
    "issue_branch_name",
    "SUCCESS_MESSAGE",
    "NO_CHANGES_MESSAGE",
    "FAILURE_MESSAGE",
    "ERROR_MESSAGE_PREFIX",
]
