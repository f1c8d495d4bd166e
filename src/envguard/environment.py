"""Deployment environment enumeration."""

from __future__ import annotations

from enum import StrEnum


class Environment(StrEnum):
    """Closed set of environments; selects override files and security policy."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"


DEFAULT_ENVIRONMENT = Environment.DEVELOPMENT
ENVIRONMENT_NAMES: tuple[str, ...] = tuple(item.value for item in Environment)


def parse_environment(raw: str | None) -> Environment | None:
    """Return the matching environment (case-insensitive), or ``None`` when unrecognised."""

    if raw is None:
        return None
    normalized = raw.lower()
    for item in Environment:
        if item.value == normalized:
            return item
    return None


__all__ = ["DEFAULT_ENVIRONMENT", "ENVIRONMENT_NAMES", "Environment", "parse_environment"]
