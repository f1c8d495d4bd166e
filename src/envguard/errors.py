"""Exception types raised by envguard.

Validation problems are reported as data in ``ValidationResult``; the types
here cover the few conditions that must stop the caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from envguard.config.validation import ValidationResult


class EnvguardError(Exception):
    """Base class for all envguard failures."""


class SourceUnavailableError(EnvguardError, FileNotFoundError):
    """Raised when no usable base configuration exists at initialise time."""


class AccessBeforeInitError(EnvguardError, RuntimeError):
    """Raised when configuration is read before ``initialize``/``set_test_config``."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(
            f"{operation}() called before the configuration engine was initialised; "
            "call initialize() or set_test_config() first"
        )


class ConfigValidationError(EnvguardError, ValueError):
    """Raised by ``assert_valid`` when blocking validation errors exist."""

    def __init__(self, result: ValidationResult) -> None:
        self.result = result
        if not result.errors:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item}" for item in result.errors)
        super().__init__(f"invalid configuration:\n{rendered}")


__all__ = [
    "AccessBeforeInitError",
    "ConfigValidationError",
    "EnvguardError",
    "SourceUnavailableError",
]
