"""
envguard - environment security policy table.

File: src/envguard/security/policy.py

Purpose
- Map each deployment environment to an immutable bundle of behavioural toggles.

Functional requirements
- Policy is a static function of ``Environment`` only; it never reads configuration
  values, so a malformed or hostile config cannot weaken it.
- Repeated lookups return the identical object.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from types import MappingProxyType
from typing import Final

from envguard.environment import Environment


@dataclass(frozen=True, slots=True)
class SecurityPolicy:
    """Environment-derived security toggles."""

    environment: Environment
    allow_debug_logging: bool
    allow_demo_credentials: bool
    require_https: bool
    session_timeout: timedelta
    max_login_attempts: int
    enable_strict_validation: bool

    def to_dict(self) -> dict[str, object]:
        return {
            "environment": self.environment.value,
            "allow_debug_logging": self.allow_debug_logging,
            "allow_demo_credentials": self.allow_demo_credentials,
            "require_https": self.require_https,
            "session_timeout_seconds": int(self.session_timeout.total_seconds()),
            "max_login_attempts": self.max_login_attempts,
            "enable_strict_validation": self.enable_strict_validation,
        }


_POLICIES: Final = MappingProxyType(
    {
        Environment.DEVELOPMENT: SecurityPolicy(
            environment=Environment.DEVELOPMENT,
            allow_debug_logging=True,
            allow_demo_credentials=True,
            require_https=False,
            session_timeout=timedelta(hours=24),
            max_login_attempts=10,
            enable_strict_validation=False,
        ),
        Environment.STAGING: SecurityPolicy(
            environment=Environment.STAGING,
            allow_debug_logging=False,
            allow_demo_credentials=True,
            require_https=True,
            session_timeout=timedelta(hours=8),
            max_login_attempts=5,
            enable_strict_validation=True,
        ),
        Environment.PRODUCTION: SecurityPolicy(
            environment=Environment.PRODUCTION,
            allow_debug_logging=False,
            allow_demo_credentials=False,
            require_https=True,
            session_timeout=timedelta(hours=1),
            max_login_attempts=3,
            enable_strict_validation=True,
        ),
        Environment.TEST: SecurityPolicy(
            environment=Environment.TEST,
            allow_debug_logging=True,
            allow_demo_credentials=True,
            require_https=False,
            session_timeout=timedelta(hours=24),
            max_login_attempts=10,
            enable_strict_validation=False,
        ),
    }
)


def resolve_policy(environment: Environment) -> SecurityPolicy:
    """Return the shared policy instance for ``environment``."""

    if not isinstance(environment, Environment):
        raise TypeError(f"environment must be an Environment, got {type(environment).__name__}")
    return _POLICIES[environment]


__all__ = ["SecurityPolicy", "resolve_policy"]
