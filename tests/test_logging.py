"""
Tests for the logging module.
"""

import json
import logging
import sys

import pytest

from fixo.config import LoggingConfig
from fixo.logging import (
    JSONFormatter,
    OperationLogger,
    TextFormatter,
    configure_logging,
    format_data_for_logging,
    truncate_for_log,
)


class TestFormatters:
    """Test the formatters."""

    def _record(self, msg: str) -> logging.LogRecord:
        return logging.LogRecord("fixo", logging.INFO, __file__, 1, msg, None, None)

    def test_json_formatter(self):
        out = json.loads(JSONFormatter().format(self._record("plain text")))

        assert out["message"] == "plain text"
        assert out["level"] == "INFO"
        assert out["logger"] == "fixo"

    def test_json_formatter_exception(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = logging.LogRecord("fixo", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        out = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad" in out["exception"]

    def test_text_formatter(self):
        line = TextFormatter().format(self._record("hello"))
        assert "INFO" in line
        assert line.endswith("fixo: hello")

    def test_text_formatter_without_color(self):
        line = TextFormatter(color=False).format(self._record("hello"))
        assert "\033[" not in line


class TestOperationLogger:
    """Test OperationLogger success/failure logging."""

    async def test_execute_success(self, caplog):
        caplog.set_level(logging.INFO, logger="fixo")
        op_logger = OperationLogger(job_id="job-1")

        async def operation():
            return 42

        assert await op_logger.execute(operation, "clone repository", repo="octo/hello") == 42
        assert "✅ clone repository job_id=job-1 repo=octo/hello" in caplog.text

    async def test_execute_failure_reraises(self, caplog):
        caplog.set_level(logging.INFO, logger="fixo")
        op_logger = OperationLogger(job_id="job-1")

        async def operation():
            raise RuntimeError("network down")

        with pytest.raises(RuntimeError):
            await op_logger.execute(operation, "post comment")
        assert "❌ post comment job_id=job-1 error=network down" in caplog.text

    async def test_safe_captures(self):
        op_logger = OperationLogger()

        async def operation():
            raise ValueError("nope")

        result = await op_logger.safe(operation, "cleanup")

        assert result.ok is False
        assert isinstance(result.error, ValueError)

    async def test_child_inherits_context(self, caplog):
        caplog.set_level(logging.INFO, logger="fixo")
        child = OperationLogger(job_id="job-1").child(command="npm test")

        async def operation():
            return None

        await child.execute(operation, "run")
        assert "✅ run job_id=job-1 command=npm test" in caplog.text


class TestUtilities:
    """Test utility helpers."""

    def test_truncate(self):
        assert truncate_for_log("short") == "short"
        long = "x" * 300
        assert truncate_for_log(long).endswith("(300 chars total)")

    def test_format_data(self):
        assert format_data_for_logging({"path": "a.ts"}) == '{"path": "a.ts"}'
        assert format_data_for_logging("text") == "text"

    def test_configure_logging(self, tmp_path):
        log_file = tmp_path / "fixo.log"
        logger = configure_logging(LoggingConfig(level="DEBUG", format="json", log_file=log_file))

        assert logger is logging.getLogger("fixo")
        assert logger.level == logging.DEBUG
        assert all(isinstance(h.formatter, JSONFormatter) for h in logger.handlers)
        assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)

        logging.getLogger("fixo.jobs").info("queued")
        for handler in logger.handlers:
            handler.flush()
        assert json.loads(log_file.read_text().splitlines()[-1])["message"] == "queued"

        for handler in list(logging.getLogger("fixo").handlers):
            logging.getLogger("fixo").removeHandler(handler)
            handler.close()
        logging.getLogger("fixo").setLevel(logging.NOTSET)
