"""Stable constants shared across envguard modules."""

from __future__ import annotations

from typing import Final

# Source file names, resolved relative to the configuration directory.
BASE_CONFIG_FILE: Final[str] = "config.default"
ENV_CONFIG_FILE_TEMPLATE: Final[str] = "config.{environment}"
CONFIG_DIR_ENV_VAR: Final[str] = "ENVGUARD_CONFIG_DIR"

# Well-known configuration keys.
KEY_ENVIRONMENT: Final[str] = "ENVIRONMENT"
KEY_APP_NAME: Final[str] = "APP_NAME"
KEY_API_BASE_URL: Final[str] = "API_BASE_URL"
KEY_REQUEST_TIMEOUT_SECONDS: Final[str] = "REQUEST_TIMEOUT_SECONDS"
KEY_SESSION_TIMEOUT_MINUTES: Final[str] = "SESSION_TIMEOUT_MINUTES"
KEY_MAX_LOGIN_ATTEMPTS: Final[str] = "MAX_LOGIN_ATTEMPTS"
KEY_IS_DEBUG: Final[str] = "IS_DEBUG"
KEY_ENABLE_LOGGING: Final[str] = "ENABLE_LOGGING"
KEY_ENABLE_CRASH_REPORTING: Final[str] = "ENABLE_CRASH_REPORTING"
KEY_LOG_LEVEL: Final[str] = "LOG_LEVEL"
KEY_DEMO_USERNAME: Final[str] = "DEMO_USERNAME"
KEY_DEMO_PASSWORD: Final[str] = "DEMO_PASSWORD"

# Keys that may be overridden from the process environment even when no file mentions them.
KNOWN_KEYS: Final[frozenset[str]] = frozenset(
    {
        KEY_ENVIRONMENT,
        KEY_APP_NAME,
        KEY_API_BASE_URL,
        KEY_REQUEST_TIMEOUT_SECONDS,
        KEY_SESSION_TIMEOUT_MINUTES,
        KEY_MAX_LOGIN_ATTEMPTS,
        KEY_IS_DEBUG,
        KEY_ENABLE_LOGGING,
        KEY_ENABLE_CRASH_REPORTING,
        KEY_LOG_LEVEL,
        KEY_DEMO_USERNAME,
        KEY_DEMO_PASSWORD,
    }
)

DEMO_CREDENTIAL_KEYS: Final[tuple[str, ...]] = (KEY_DEMO_USERNAME, KEY_DEMO_PASSWORD)
LOG_LEVELS: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

BOOLEAN_TRUE: Final[frozenset[str]] = frozenset({"true", "1", "yes", "on"})
BOOLEAN_FALSE: Final[frozenset[str]] = frozenset({"false", "0", "no", "off"})

REDACTED_VALUE: Final[str] = "***REDACTED***"
SENSITIVE_PATTERNS: Final[tuple[str, ...]] = ("password", "secret", "key", "token", "credential")

__all__ = [
    "BASE_CONFIG_FILE",
    "BOOLEAN_FALSE",
    "BOOLEAN_TRUE",
    "CONFIG_DIR_ENV_VAR",
    "DEMO_CREDENTIAL_KEYS",
    "ENV_CONFIG_FILE_TEMPLATE",
    "KEY_API_BASE_URL",
    "KEY_APP_NAME",
    "KEY_DEMO_PASSWORD",
    "KEY_DEMO_USERNAME",
    "KEY_ENABLE_CRASH_REPORTING",
    "KEY_ENABLE_LOGGING",
    "KEY_ENVIRONMENT",
    "KEY_IS_DEBUG",
    "KEY_LOG_LEVEL",
    "KEY_MAX_LOGIN_ATTEMPTS",
    "KEY_REQUEST_TIMEOUT_SECONDS",
    "KEY_SESSION_TIMEOUT_MINUTES",
    "KNOWN_KEYS",
    "LOG_LEVELS",
    "REDACTED_VALUE",
    "SENSITIVE_PATTERNS",
]
