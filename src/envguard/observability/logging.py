"""
envguard - JSON-lines logging with secret redaction

File: src/envguard/observability/logging.py

Purpose
- Route stdlib and ``structlog`` records for the ``envguard`` logger tree to
  stderr (and optionally a file) as one JSON object per line.

Functional requirements
- Messages, structured fields, and rendered exceptions pass through the
  ``SecretsManager`` before they reach any sink.
- Emitting a record never blocks the caller; records that do not fit in the
  bounded queue are counted and dropped.
- ``shutdown_logging`` drains the queue, detaches the handler, and closes file sinks.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import math
import queue
import sys
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Final, TextIO

import structlog

from envguard.security.redaction import DEFAULT_SECRETS_MANAGER, SecretsManager

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

_DEFAULT_LOGGER_NAME: Final[str] = "envguard"

# Attributes every LogRecord carries; anything else arrived through ``extra=``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(
    vars(logging.makeLogRecord({}))
) | {"message", "asctime", "taskName"}

_active_lock = threading.Lock()
_active: LoggingHandle | None = None


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: int | str = "WARNING"
    logger_name: str = _DEFAULT_LOGGER_NAME
    stream: TextIO | None = None
    log_file: Path | str | None = None
    queue_size: int = 4096
    secrets: SecretsManager | None = None


class _DroppingQueueHandler(logging.handlers.QueueHandler):
    """Enqueue without blocking; count what the full queue rejects."""

    def __init__(self, log_queue: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(log_queue)
        self._dropped = 0
        self._dropped_lock = threading.Lock()

    @property
    def dropped(self) -> int:
        with self._dropped_lock:
            return self._dropped

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            with self._dropped_lock:
                self._dropped += 1


class _JsonLineFormatter(logging.Formatter):
    def __init__(self, *, secrets: SecretsManager) -> None:
        super().__init__()
        self._secrets = secrets

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=UTC)
        event: dict[str, JSONValue] = {
            "timestamp": stamp.strftime("%Y-%m-%dT%H:%M:%S.") + f"{stamp.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "message": self._secrets.redact_text(record.getMessage()),
        }

        extras = {
            name: value
            for name, value in vars(record).items()
            if name not in _RECORD_ATTRIBUTES and not name.startswith("_")
        }
        if extras:
            event["fields"] = _scrub(extras, self._secrets)

        if record.exc_info:
            event["exception"] = self._secrets.redact_text(self.formatException(record.exc_info))

        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class LoggingHandle:
    """An installed logging pipeline; ``shutdown`` tears it down exactly once."""

    def __init__(
        self,
        logger: logging.Logger,
        handler: _DroppingQueueHandler,
        listener: logging.handlers.QueueListener,
        sinks: tuple[logging.Handler, ...],
        log_path: Path | None,
    ) -> None:
        self.logger = logger
        self.log_path = log_path
        self._handler = handler
        self._listener = listener
        self._sinks = sinks
        self._lock = threading.Lock()
        self._closed = False

    @property
    def dropped_records(self) -> int:
        return self._handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self, *, timeout_seconds: float = 2.0) -> None:
        pending: queue.Queue[logging.LogRecord] = self._handler.queue  # type: ignore[assignment]
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while pending.unfinished_tasks and time.monotonic() < deadline:
            time.sleep(0.01)
        for sink in self._sinks:
            sink.flush()

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._lock:
            if self._closed:
                return
            self.flush(timeout_seconds=timeout_seconds)
            self._listener.stop()
            self.logger.removeHandler(self._handler)
            self._handler.close()
            self.logger.propagate = True
            for sink in self._sinks:
                sink.flush()
                if isinstance(sink, logging.FileHandler):
                    sink.close()
            self._closed = True


def setup_logging(
    level: int | str = "WARNING",
    *,
    stream: TextIO | None = None,
    log_file: Path | str | None = None,
    logger_name: str = _DEFAULT_LOGGER_NAME,
) -> logging.Logger:
    """Install JSON-lines logging for ``logger_name`` and return that logger.

    Records go to ``stream`` (``sys.stderr`` when omitted) and, when given,
    are appended to ``log_file``.
    """

    config = LoggingConfig(level=level, logger_name=logger_name, stream=stream, log_file=log_file)
    return setup_structured_logging(config).logger


def setup_structured_logging(config: LoggingConfig) -> LoggingHandle:
    """Replace any active pipeline with one built from ``config``."""

    global _active
    level = _parse_log_level(config.level)
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")
    shutdown_logging()

    formatter = _JsonLineFormatter(secrets=config.secrets or DEFAULT_SECRETS_MANAGER)
    sinks: list[logging.Handler] = [logging.StreamHandler(config.stream or sys.stderr)]
    log_path = None
    if config.log_file is not None:
        log_path = Path(config.log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        sinks.append(logging.FileHandler(log_path, encoding="utf-8"))
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(config.logger_name)
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()
    logger.setLevel(level)
    logger.propagate = False

    handler = _DroppingQueueHandler(queue.Queue(maxsize=config.queue_size))
    handler.setLevel(level)
    listener = logging.handlers.QueueListener(handler.queue, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(handler)

    configure_structlog()

    handle = LoggingHandle(logger, handler, listener, tuple(sinks), log_path)
    with _active_lock:
        _active = handle
    return handle


def configure_structlog() -> None:
    """Send ``structlog`` events to stdlib loggers; key/value pairs become record extras."""

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


def flush_logging(handle: LoggingHandle | None = None, *, timeout_seconds: float = 2.0) -> None:
    target = handle or get_active_logging_handle()
    if target is not None:
        target.flush(timeout_seconds=timeout_seconds)


def shutdown_logging(handle: LoggingHandle | None = None, *, timeout_seconds: float = 2.0) -> None:
    """Shut down ``handle`` (default: the active pipeline); safe to call repeatedly."""

    global _active
    target = handle or get_active_logging_handle()
    if target is None:
        return
    target.shutdown(timeout_seconds=timeout_seconds)
    with _active_lock:
        if _active is target:
            _active = None


def get_active_logging_handle() -> LoggingHandle | None:
    with _active_lock:
        return _active


def _parse_log_level(value: int | str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")
    if isinstance(value, int):
        return value
    try:
        return logging.getLevelNamesMapping()[value.strip().upper()]
    except KeyError:
        raise ValueError(f"unsupported logging level {value!r}") from None


def _scrub(value: object, secrets: SecretsManager, field: str | None = None) -> JSONValue:
    """Convert ``value`` to JSON-safe data, masking sensitive fields and assignments."""

    if field is not None and secrets.is_sensitive(field):
        return secrets.replacement
    if value is None or isinstance(value, (bool, int)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else repr(value)
    if isinstance(value, str):
        return secrets.redact_text(value)
    if isinstance(value, Path):
        return secrets.redact_text(str(value))
    if isinstance(value, Mapping):
        return {str(key): _scrub(item, secrets, str(key)) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_scrub(item, secrets) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_scrub(item, secrets) for item in value), key=repr)
    return secrets.redact_text(repr(value))


__all__ = [
    "JSONScalar",
    "JSONValue",
    "LoggingConfig",
    "LoggingHandle",
    "configure_structlog",
    "flush_logging",
    "get_active_logging_handle",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
