"""Tests for logging setup and helpers."""

from __future__ import annotations

import pytest

from super_gsi import logging as logging_module


@pytest.fixture
def records():
    logging_module.logger.remove()
    captured: list[dict] = []

    def sink(message):
        captured.append(message.record)

    logging_module.logger.add(sink, level="TRACE")
    yield captured
    logging_module.logger.remove()


def _record(message, level, tags):
    return {
        "message": message,
        "extra": {"tags": tags},
        "level": logging_module.logger.level(level),
    }


def test_setup_logging_creates_log_files(tmp_path):
    log_dir = tmp_path / "logs"
    logging_module.setup_logging(debug=True, log_dir=log_dir)
    try:
        logging_module.get_logger(source="test").info("hello")
        assert (log_dir / "operations.log").exists()
        assert (log_dir / "debug.log").exists()
        assert (log_dir / "structured.jsonl").exists()
    finally:
        logging_module.logger.remove()


def test_setup_logging_without_debug_skips_debug_log(tmp_path):
    log_dir = tmp_path / "logs"
    logging_module.setup_logging(log_dir=log_dir)
    try:
        assert (log_dir / "operations.log").exists()
        assert not (log_dir / "debug.log").exists()
    finally:
        logging_module.logger.remove()


def test_get_logger_preserves_context_metadata(records):
    log = logging_module.get_logger(job_id="job-123", tags=["repack"], source="transform")
    log.info("Context test")

    record = records[0]
    assert record["extra"]["job_id"] == "job-123"
    assert record["extra"]["tags"] == ["repack"]
    assert record["extra"]["source"] == "transform"


def test_operation_context_logs_start_and_completion(records):
    with logging_module.operation_context("unpack", image="/tmp/super.img") as log:
        log.info("working")

    messages = [record["message"] for record in records]
    assert messages[0] == "Unpack started"
    assert messages[-1] == "Unpack completed"
    assert records[-1]["level"].name == "SUCCESS"
    assert records[0]["extra"]["job_id"].startswith("unpack-")


def test_operation_context_logs_failure_and_reraises(records):
    with pytest.raises(ValueError):
        with logging_module.operation_context("repack"):
            raise ValueError("boom")

    assert records[-1]["message"] == "Repack failed"
    assert records[-1]["level"].name == "ERROR"
    assert records[-1]["extra"]["error"] == "boom"
    assert records[-1]["extra"]["error_type"] == "ValueError"


def test_filter_limits_command_output_to_trace():
    record = _record("raw line", "DEBUG", ["tools", "output"])
    assert logging_module._should_log_command_output(record) is False

    record["level"] = logging_module.logger.level("TRACE")
    assert logging_module._should_log_command_output(record) is True


def test_logger_factory_binds_tool_tags(records):
    logging_module.LoggerFactory.for_tool("lpmake").info("x")
    assert records[0]["extra"]["tags"] == ["tools", "lpmake"]
    assert records[0]["extra"]["source"] == "tools"
