"""
envguard - unit tests for observability logging

File: tests/unit/observability/test_logging.py

Purpose
- Validate JSON-lines output, secret redaction, structlog routing, and queue shutdown.
"""

from __future__ import annotations

import io
import json
import logging
import threading
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
import structlog

from envguard.observability.logging import (
    LoggingConfig,
    get_active_logging_handle,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _cleanup_logging() -> Iterator[None]:
    yield
    shutdown_logging()


def _logger_name() -> str:
    return f"envguard.tests.logging.{uuid4().hex}"


def _parse(text: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in text.splitlines() if line.strip()]


@pytest.mark.unit
def test_json_lines_redact_sensitive_fields_and_assignments(tmp_path: Path) -> None:
    logger_name = _logger_name()
    stream = io.StringIO()
    handle = setup_structured_logging(
        LoggingConfig(
            level="INFO",
            logger_name=logger_name,
            stream=stream,
            log_file=tmp_path / "logs" / "envguard.jsonl",
        )
    )
    logger = logging.getLogger(logger_name)

    logger.info(
        "loaded DEMO_PASSWORD=hunter2 with Bearer abc123",
        extra={"api_token": "tok-1", "nested": {"client_secret": "s3cr3t", "safe": "ok"}},
    )
    shutdown_logging(handle)

    assert handle.log_path is not None
    file_text = handle.log_path.read_text(encoding="utf-8")
    for text in (stream.getvalue(), file_text):
        assert "hunter2" not in text
        assert "abc123" not in text
        assert "tok-1" not in text
        assert "s3cr3t" not in text
        assert "***REDACTED***" in text

    (event,) = _parse(file_text)
    assert event["level"] == "INFO"
    assert event["logger"] == logger_name
    assert event["fields"] == {
        "api_token": "***REDACTED***",
        "nested": {"client_secret": "***REDACTED***", "safe": "ok"},
    }
    assert str(event["timestamp"]).endswith("Z")


@pytest.mark.unit
def test_level_filtering(tmp_path: Path) -> None:
    logger_name = _logger_name()
    stream = io.StringIO()
    setup_logging("WARNING", stream=stream, logger_name=logger_name)
    logger = logging.getLogger(logger_name)

    logger.info("dropped")
    logger.warning("kept")
    shutdown_logging()

    messages = [event["message"] for event in _parse(stream.getvalue())]
    assert messages == ["kept"]


@pytest.mark.unit
def test_structlog_events_are_routed_through_stdlib() -> None:
    stream = io.StringIO()
    setup_logging("INFO", stream=stream)

    structlog.get_logger("envguard.config.loader").info(
        "config_sources_loaded", environment="staging", entry_count=3
    )
    shutdown_logging()

    (event,) = _parse(stream.getvalue())
    assert event["message"] == "config_sources_loaded"
    assert event["logger"] == "envguard.config.loader"
    assert event["fields"] == {"environment": "staging", "entry_count": 3}


@pytest.mark.unit
def test_exceptions_are_rendered_and_redacted() -> None:
    logger_name = _logger_name()
    stream = io.StringIO()
    setup_logging("ERROR", stream=stream, logger_name=logger_name)
    logger = logging.getLogger(logger_name)

    try:
        raise RuntimeError("bad DEMO_PASSWORD=hunter2")
    except RuntimeError:
        logger.exception("failed")
    shutdown_logging()

    (event,) = _parse(stream.getvalue())
    rendered = f"{event['message']} {event.get('exception', '')}"
    assert "RuntimeError" in rendered
    assert "hunter2" not in stream.getvalue()


@pytest.mark.unit
def test_multithreaded_logging_produces_valid_json_lines() -> None:
    logger_name = _logger_name()
    stream = io.StringIO()
    handle = setup_structured_logging(
        LoggingConfig(level="INFO", logger_name=logger_name, stream=stream, queue_size=4096)
    )
    logger = logging.getLogger(logger_name)

    def worker(thread_idx: int) -> None:
        for index in range(25):
            logger.info(f"thread={thread_idx} index={index} token=tok-{thread_idx}-{index}")

    threads = [threading.Thread(target=worker, args=(idx,)) for idx in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    shutdown_logging(handle)

    events = _parse(stream.getvalue())
    assert len(events) + handle.dropped_records == 100
    assert all("tok-" not in str(event["message"]) for event in events)


@pytest.mark.unit
def test_setup_replaces_previous_handle_and_shutdown_is_idempotent() -> None:
    first = setup_structured_logging(
        LoggingConfig(logger_name=_logger_name(), stream=io.StringIO())
    )
    second = setup_structured_logging(
        LoggingConfig(logger_name=_logger_name(), stream=io.StringIO())
    )

    assert first.is_shutdown is True
    assert get_active_logging_handle() is second

    shutdown_logging()
    shutdown_logging()
    assert second.is_shutdown is True
    assert get_active_logging_handle() is None


@pytest.mark.unit
def test_invalid_level_is_rejected() -> None:
    with pytest.raises(ValueError, match="unsupported logging level"):
        setup_logging("LOUD", stream=io.StringIO())
