"""Public observability primitives: structured JSON-lines logging."""

from envguard.observability.logging import (
    LoggingConfig,
    LoggingHandle,
    configure_structlog,
    flush_logging,
    get_active_logging_handle,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "LoggingConfig",
    "LoggingHandle",
    "configure_structlog",
    "flush_logging",
    "get_active_logging_handle",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
