"""
Tests for the error taxonomy.
"""
import asyncio

import pytest

from fixo.errors import (
    ErrorCode,
    ErrorContext,
    FixoError,
    InvalidConfigError,
    InvalidJobTransitionError,
    JobError,
    JobTimeoutError,
    MissingAPIKeyError,
    PersistenceError,
    RepositoryError,
    SandboxSetupError,
    ToolContextError,
    UnknownJobTypeError,
    is_retryable,
)


class TestErrorCodes:
    """Test error code enumeration."""

    def test_error_codes_are_strings(self):
        assert ErrorCode.JOB_TIMEOUT.value.startswith("ERR_")
        assert ErrorCode.PERSISTENCE_ERROR.value.startswith("ERR_7")

    def test_error_codes_unique(self):
        values = [e.value for e in ErrorCode]
        assert len(values) == len(set(values))


class TestErrorContext:
    """Test error context."""

    def test_to_dict_merges_extra(self):
        ctx = ErrorContext(job_id="job-1", attempt=2, extra={"repo": "octo/hello"})

        d = ctx.to_dict()

        assert d["job_id"] == "job-1"
        assert d["attempt"] == 2
        assert d["repo"] == "octo/hello"


class TestFixoError:
    """Test the base error."""

    def test_str_includes_code(self):
        err = FixoError("boom", code=ErrorCode.AGENT_ERROR)
        assert str(err) == "[ERR_4000] boom"

    def test_str_includes_job_id(self):
        err = JobError("boom", context=ErrorContext(job_id="job-9"))
        assert "(job_id=job-9)" in str(err)

    def test_to_dict(self):
        cause = RuntimeError("root")
        err = PersistenceError("write failed", cause=cause)

        d = err.to_dict()

        assert d["error_type"] == "PersistenceError"
        assert d["code"] == ErrorCode.PERSISTENCE_ERROR.value
        assert d["retryable"] is True
        assert d["cause"] == "root"

    def test_overrides(self):
        err = JobError("x", retryable=False, code=ErrorCode.INTERNAL_ERROR)
        assert err.retryable is False
        assert err.code == ErrorCode.INTERNAL_ERROR


class TestJobErrors:
    """Test job error subclasses."""

    def test_timeout_default_message(self):
        err = JobTimeoutError(timeout=5)
        assert err.message == "Job processing timeout"
        assert err.timeout == 5
        assert isinstance(err, JobError)

    def test_unknown_job_type_message(self):
        err = UnknownJobTypeError(job_type="deploy")
        assert err.message == "Unknown job type deploy"
        assert err.retryable is False

    def test_invalid_transition_not_retryable(self):
        assert InvalidJobTransitionError("nope").retryable is False


class TestOtherErrors:
    """Tool, config and sandbox errors."""

    def test_tool_context_default(self):
        assert ToolContextError().message == "Context is required"

    def test_missing_api_key(self):
        assert "OPENAI_API_KEY" in MissingAPIKeyError(env_var="OPENAI_API_KEY").message

    def test_sandbox_setup_not_retryable(self):
        assert SandboxSetupError("pull failed").retryable is False


class TestIsRetryable:
    """Test the retryable classifier."""

    @pytest.mark.parametrize(
        "error,expected",
        [
            (PersistenceError("db down"), True),
            (RepositoryError("clone failed"), True),
            (InvalidConfigError("bad"), False),
            (asyncio.TimeoutError(), True),
            (ConnectionError(), True),
            (ValueError(), False),
        ],
    )
    def test_classification(self, error, expected):
        assert is_retryable(error) is expected
