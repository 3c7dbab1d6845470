"""Tests for the logging module.

TAG: [TEST] [LOGGING]

This module tests:
- Structured JSON logging
- LogContext scoped context
- setup_logging handler configuration
- Library debug records emitted while building dags
"""

import json
import logging
from pathlib import Path

import pytest

from flowdag.core.logging import (
    ColoredConsoleFormatter,
    JSONFormatter,
    LogContext,
    get_logger,
    setup_logging,
)
from flowdag.dag import Dag


@pytest.fixture
def restore_root_logger():
    """Restore root handlers and level after setup_logging tests."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg: str = "Test message", level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name="test.logger",
        level=level,
        pathname="test.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )


class TestJSONFormatter:
    """Test JSON log formatting."""

    def test_json_formatter_creates_valid_json(self) -> None:
        """Test that JSON formatter creates valid JSON output."""
        formatter = JSONFormatter(service_name="TestService")
        log_entry = json.loads(formatter.format(_record()))

        assert log_entry["level"] == "INFO"
        assert log_entry["logger"] == "test.logger"
        assert log_entry["message"] == "Test message"
        assert log_entry["service"] == "TestService"
        assert log_entry["timestamp"].endswith("Z")

    def test_json_formatter_includes_context(self) -> None:
        """Test that JSON formatter includes context."""
        record = _record()
        record.context = {"dag_id": "0", "vertex_id": "a"}

        log_entry = json.loads(JSONFormatter().format(record))

        assert log_entry["context"] == {"dag_id": "0", "vertex_id": "a"}

    def test_json_formatter_adds_source_for_errors(self) -> None:
        """Test that ERROR records carry source information."""
        log_entry = json.loads(JSONFormatter().format(_record(level=logging.ERROR)))
        assert log_entry["source"]["line"] == 42


class TestColoredConsoleFormatter:
    """Test console formatting."""

    def test_colored_formatter_appends_context(self) -> None:
        """Test that context is rendered inline."""
        record = _record()
        record.context = {"dag_id": "0"}
        output = ColoredConsoleFormatter().format(record)
        assert "Test message | Context:" in output
        assert '"dag_id": "0"' in output


class TestLogContext:
    """Test LogContext context manager."""

    def test_log_context_adds_context_to_records(self) -> None:
        """Test that LogContext adds context to log records."""
        logger = logging.getLogger("test_context")
        logger.handlers.clear()
        handler = logging.StreamHandler()
        records: list[logging.LogRecord] = []
        handler.emit = records.append  # type: ignore[method-assign]
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)

        with LogContext(logger, dag_id="0", phase="build"):
            logger.info("Test message")
        logger.info("Outside")

        assert records[0].log_context == {"dag_id": "0", "phase": "build"}
        assert not hasattr(records[1], "log_context")
        logger.removeHandler(handler)

    def test_log_context_merges_with_call_context(self) -> None:
        """Test that scoped fields and per-call extra fields are both formatted."""
        logger = logging.getLogger("test_context_merge")
        logger.handlers.clear()
        handler = logging.StreamHandler()
        records: list[logging.LogRecord] = []
        handler.emit = records.append  # type: ignore[method-assign]
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)

        with LogContext(logger, dag_id="0", phase="build"):
            logger.debug("Edge added", extra={"context": {"dag_id": "1", "from": "a"}})

        log_entry = json.loads(JSONFormatter().format(records[0]))
        assert log_entry["context"] == {"dag_id": "1", "phase": "build", "from": "a"}
        logger.removeHandler(handler)

    def test_dag_build_inside_log_context_at_debug(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test that library debug records coexist with a scoped context."""
        with caplog.at_level(logging.DEBUG, logger="flowdag"):
            with LogContext(get_logger("flowdag"), request_id="r-1"):
                dag = Dag()
                dag.add_edge("a", "b")
                dag.add_edge("a", "c")
                dag.validate()

        assert dag.end_vertex.id == "end-0"
        edge_records = [r for r in caplog.records if r.getMessage() == "Edge added"]
        assert edge_records
        assert edge_records[0].log_context == {"request_id": "r-1"}
        assert edge_records[0].context["from"] == "a"


class TestSetupLogging:
    """Test logging setup function."""

    def test_setup_logging_creates_log_directory(self, tmp_path: Path, restore_root_logger) -> None:
        """Test that setup_logging creates the log directory."""
        log_file = tmp_path / "logs" / "flowdag.log"
        setup_logging(log_file=str(log_file), enable_console=False)
        assert log_file.parent.exists()

    def test_setup_logging_configures_log_level(self, tmp_path: Path, restore_root_logger) -> None:
        """Test that setup_logging configures log level correctly."""
        logger = setup_logging(
            log_level="DEBUG", log_file=str(tmp_path / "flowdag.log"), enable_console=False
        )
        assert logger.level == logging.DEBUG

    def test_setup_logging_without_file(self, restore_root_logger) -> None:
        """Test that no file handler is installed when no file is configured."""
        logger = setup_logging(log_level="INFO")
        assert not any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        assert len(logger.handlers) == 1

    def test_file_handler_writes_json(self, tmp_path: Path, restore_root_logger) -> None:
        """Test that file records are JSON lines."""
        log_file = tmp_path / "flowdag.log"
        logger = setup_logging(log_level="DEBUG", log_file=str(log_file), enable_console=False)
        get_logger("flowdag.test").info("hello", extra={"context": {"k": "v"}})
        for handler in logger.handlers:
            handler.flush()

        lines = log_file.read_text(encoding="utf-8").splitlines()
        entry = json.loads(lines[-1])
        assert entry["message"] == "hello"
        assert entry["context"] == {"k": "v"}


class TestLibraryLogging:
    """Test records emitted by the dag package."""

    def test_edge_insertion_logs_debug(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that implicit vertex creation and edges are logged."""
        with caplog.at_level(logging.DEBUG, logger="flowdag"):
            Dag().add_edge("a", "b")

        messages = [record.getMessage() for record in caplog.records]
        assert "Implicit vertex created for edge source" in messages
        assert "Edge added" in messages

    def test_validation_report_logs_info(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test that validation reports log their outcome."""
        from flowdag.dag import DagValidator

        dag = Dag()
        dag.add_vertex("only")
        with caplog.at_level(logging.INFO, logger="flowdag"):
            DagValidator().check(dag)

        assert any("validation finished: valid=True" in r.getMessage() for r in caplog.records)
