"""
fixo: a job-driven coding agent.

Mentions on issues and pull requests become durable jobs. A single-flight
worker claims each job, runs a tool-using agent against a clone of the
repository, verifies the result in a Docker sandbox and reports back.
"""

from .agent import Agent, AgentContext, AgentResult, MemoryStore, create_source_modifier_agent
from .config import Settings, configure, get_settings, load_env
from .errors import ErrorCode, FixoError, is_retryable
from .jobs import (
    AppMentionOnIssuePayload,
    AppMentionOnPullRequestPayload,
    HandlerServices,
    InMemoryJobStore,
    JobQueue,
    JobRecord,
    JobStatus,
    JobType,
    PostgresJobStore,
    make_worker,
)
from .logging import OperationLogger, configure_logging
from .providers import CompletionResult, Message, OpenAIProvider, Provider, ToolCall, Usage
from .ratelimit import RateLimitManager, UserPlanManager
from .sandbox import ExecutionRequest, ExecutionResult, SandboxExecutor
from .tools import Tool, ToolExecutionContext, ToolRegistry, ToolResult

__version__ = "0.1.0"

__all__ = [
    # Config
    "Settings",
    "configure",
    "get_settings",
    "load_env",
    # Errors
    "ErrorCode",
    "FixoError",
    "is_retryable",
    # Logging
    "configure_logging",
    "OperationLogger",
    # Providers
    "Provider",
    "OpenAIProvider",
    "Message",
    "ToolCall",
    "Usage",
    "CompletionResult",
    # Tools
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "ToolExecutionContext",
    # Agent
    "Agent",
    "AgentContext",
    "AgentResult",
    "MemoryStore",
    "create_source_modifier_agent",
    # Sandbox
    "SandboxExecutor",
    "ExecutionRequest",
    "ExecutionResult",
    # Jobs
    "JobQueue",
    "JobRecord",
    "JobStatus",
    "JobType",
    "AppMentionOnIssuePayload",
    "AppMentionOnPullRequestPayload",
    "InMemoryJobStore",
    "PostgresJobStore",
    "HandlerServices",
    "make_worker",
    # Rate limiting
    "RateLimitManager",
    "UserPlanManager",
]
