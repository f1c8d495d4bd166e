"""
envguard - configuration validation rules and engine.

File: src/envguard/config/validation.py

Purpose
- Run an ordered, closed set of validation rules against a raw configuration
  snapshot and aggregate blocking errors and advisory warnings.

What should be included in this file
- Rule variants as frozen dataclasses joined in the ``ValidationRule`` union.
- The default rule registration order.
- An engine that evaluates every rule, never short-circuits, and never raises.

Functional requirements
- ``is_valid`` is true iff there are no errors; warnings never affect validity.
- Messages name keys but never echo configuration values.

Non-functional requirements
- Deterministic: the same snapshot and environment yield identical results.
"""

from __future__ import annotations

import ipaddress
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Final, TypeAlias, assert_never
from urllib.parse import urlsplit

import structlog

from envguard.config.accessor import TypedAccessor, parse_bool, parse_int
from envguard.constants import (
    BOOLEAN_FALSE,
    BOOLEAN_TRUE,
    DEMO_CREDENTIAL_KEYS,
    KEY_API_BASE_URL,
    KEY_ENABLE_CRASH_REPORTING,
    KEY_ENABLE_LOGGING,
    KEY_ENVIRONMENT,
    KEY_IS_DEBUG,
    KEY_LOG_LEVEL,
    KEY_MAX_LOGIN_ATTEMPTS,
    KEY_REQUEST_TIMEOUT_SECONDS,
    KEY_SESSION_TIMEOUT_MINUTES,
    LOG_LEVELS,
)
from envguard.environment import ENVIRONMENT_NAMES, Environment
from envguard.security.policy import resolve_policy

_URL_SCHEMES: Final[frozenset[str]] = frozenset({"http", "https"})
# One host label: letters or digits at both ends, hyphens and underscores inside.
_HOST_LABEL: Final[re.Pattern[str]] = re.compile(r"[^\W_](?:[\w-]*[^\W_])?")
_BOOLEAN_TOKENS_TEXT: Final[str] = ", ".join(sorted(BOOLEAN_FALSE) + sorted(BOOLEAN_TRUE))


@dataclass(frozen=True, slots=True)
class RequiredKey:
    """Error when ``key`` is missing or empty."""

    key: str


@dataclass(frozen=True, slots=True)
class UrlFormat:
    """Error when ``key`` is set but not an absolute http(s) URL with a host."""

    key: str


@dataclass(frozen=True, slots=True)
class PositiveInteger:
    """Error when ``key`` is set but not a decimal integer greater than zero."""

    key: str


@dataclass(frozen=True, slots=True)
class BooleanFormat:
    """Error when ``key`` is set but not one of the recognised boolean tokens."""

    key: str


@dataclass(frozen=True, slots=True)
class EnumMembership:
    """Error when ``key`` is set but not one of ``allowed``."""

    key: str
    allowed: tuple[str, ...]
    case_sensitive: bool = True


@dataclass(frozen=True, slots=True)
class ProductionPolicy:
    """Composite hardening checks evaluated only in production."""

    debug_key: str = KEY_IS_DEBUG
    demo_credential_keys: tuple[str, ...] = DEMO_CREDENTIAL_KEYS
    base_url_key: str = KEY_API_BASE_URL
    session_timeout_key: str = KEY_SESSION_TIMEOUT_MINUTES


ValidationRule: TypeAlias = (
    RequiredKey | UrlFormat | PositiveInteger | BooleanFormat | EnumMembership | ProductionPolicy
)

DEFAULT_RULES: Final[tuple[ValidationRule, ...]] = (
    RequiredKey(KEY_API_BASE_URL),
    EnumMembership(KEY_ENVIRONMENT, ENVIRONMENT_NAMES, case_sensitive=False),
    UrlFormat(KEY_API_BASE_URL),
    PositiveInteger(KEY_REQUEST_TIMEOUT_SECONDS),
    PositiveInteger(KEY_SESSION_TIMEOUT_MINUTES),
    PositiveInteger(KEY_MAX_LOGIN_ATTEMPTS),
    BooleanFormat(KEY_IS_DEBUG),
    BooleanFormat(KEY_ENABLE_LOGGING),
    BooleanFormat(KEY_ENABLE_CRASH_REPORTING),
    EnumMembership(KEY_LOG_LEVEL, LOG_LEVELS),
    ProductionPolicy(),
)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """Aggregated outcome of one validation pass."""

    errors: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, object]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
        }


class _IssueCollector:
    __slots__ = ("_errors", "_warnings")

    def __init__(self) -> None:
        self._errors: list[str] = []
        self._warnings: list[str] = []

    def error(self, message: str) -> None:
        self._errors.append(message)

    def warning(self, message: str) -> None:
        self._warnings.append(message)

    def result(self) -> ValidationResult:
        return ValidationResult(errors=tuple(self._errors), warnings=tuple(self._warnings))


class ValidationEngine:
    """Evaluates rules in registration order and collects every problem in one pass."""

    def __init__(
        self,
        rules: Sequence[ValidationRule] = DEFAULT_RULES,
        *,
        logger: Any | None = None,
    ) -> None:
        self._rules = tuple(rules)
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def rules(self) -> tuple[ValidationRule, ...]:
        return self._rules

    def validate(self, config: TypedAccessor, environment: Environment) -> ValidationResult:
        issues = _IssueCollector()
        for rule in self._rules:
            try:
                _evaluate(rule, config, environment, issues)
            except Exception as exc:  # noqa: BLE001 - a faulty rule must not abort the pass.
                issues.error(
                    f"{rule_name(rule)}: rule failed unexpectedly ({type(exc).__name__})"
                )

        result = issues.result()
        self._logger.info(
            "config_validation_completed",
            environment=environment.value,
            rule_count=len(self._rules),
            error_count=len(result.errors),
            warning_count=len(result.warnings),
        )
        return result


def validate_config(
    config: Mapping[str, str] | TypedAccessor,
    environment: Environment | None = None,
    *,
    rules: Sequence[ValidationRule] = DEFAULT_RULES,
    logger: Any | None = None,
) -> ValidationResult:
    """Validate a raw mapping (or accessor) without constructing an engine facade."""

    accessor = config if isinstance(config, TypedAccessor) else TypedAccessor(config)
    active = accessor.current_environment() if environment is None else environment
    return ValidationEngine(rules, logger=logger).validate(accessor, active)


def rule_name(rule: ValidationRule) -> str:
    if isinstance(rule, ProductionPolicy):
        return "ProductionPolicy"
    return f"{type(rule).__name__}({rule.key})"


def is_valid_url(value: str) -> bool:
    """Return whether ``value`` is an absolute http(s) URL with a well-formed host."""

    if any(char.isspace() for char in value):
        return False
    try:
        parts = urlsplit(value)
        _ = parts.port
    except ValueError:
        return False
    if parts.scheme.lower() not in _URL_SCHEMES:
        return False
    return _is_valid_host(parts.hostname)


def _is_valid_host(host: str | None) -> bool:
    if not host:
        return False
    try:
        ipaddress.ip_address(host)
    except ValueError:
        pass
    else:
        return True
    labels = host.removesuffix(".").split(".")
    return all(_HOST_LABEL.fullmatch(label) for label in labels)


def is_loopback_host(host: str) -> bool:
    lowered = host.lower().rstrip(".")
    if lowered == "localhost" or lowered.endswith(".localhost"):
        return True
    try:
        return ipaddress.ip_address(lowered).is_loopback
    except ValueError:
        return False


def _evaluate(
    rule: ValidationRule,
    config: TypedAccessor,
    environment: Environment,
    issues: _IssueCollector,
) -> None:
    if isinstance(rule, RequiredKey):
        if not config.get_string(rule.key, ""):
            issues.error(f"{rule.key} is required but missing or empty")
    elif isinstance(rule, UrlFormat):
        value = config.get_string(rule.key, "")
        if value and not is_valid_url(value):
            issues.error(
                f"{rule.key}: Invalid URL format "
                "(expected an absolute http or https URL with a host)"
            )
    elif isinstance(rule, PositiveInteger):
        value = config.get_string(rule.key, "")
        if value:
            parsed = parse_int(value)
            if parsed is None or parsed <= 0:
                issues.error(f"{rule.key}: must be a positive integer")
    elif isinstance(rule, BooleanFormat):
        value = config.get_string(rule.key, "")
        if value and parse_bool(value) is None:
            issues.error(f"{rule.key}: must be one of {_BOOLEAN_TOKENS_TEXT}")
    elif isinstance(rule, EnumMembership):
        _evaluate_enum(rule, config, issues)
    elif isinstance(rule, ProductionPolicy):
        if environment is Environment.PRODUCTION:
            _evaluate_production(rule, config, issues)
    else:
        assert_never(rule)


def _evaluate_enum(rule: EnumMembership, config: TypedAccessor, issues: _IssueCollector) -> None:
    value = config.get_string(rule.key, "")
    if not value:
        return
    if rule.case_sensitive:
        member = value in rule.allowed
    else:
        member = value.lower() in {item.lower() for item in rule.allowed}
    if not member:
        expected = ", ".join(sorted(rule.allowed))
        issues.error(f"{rule.key}: invalid value; expected one of: {expected}")


def _evaluate_production(
    rule: ProductionPolicy,
    config: TypedAccessor,
    issues: _IssueCollector,
) -> None:
    policy = resolve_policy(Environment.PRODUCTION)

    if config.get_bool(rule.debug_key, False):
        issues.error(f"Debug mode must be disabled in production ({rule.debug_key})")

    demo_keys = [key for key in rule.demo_credential_keys if config.get_string(key, "")]
    if demo_keys:
        issues.error(f"Demo credentials must not be set in production ({', '.join(demo_keys)})")

    base_url = config.get_string(rule.base_url_key, "")
    if base_url and is_valid_url(base_url):
        parts = urlsplit(base_url)
        if parts.scheme.lower() == "http" and not is_loopback_host(parts.hostname or ""):
            issues.warning(
                f"{rule.base_url_key} uses plain http for a non-loopback host; "
                "HTTPS is required in production"
            )

    minutes = parse_int(config.raw(rule.session_timeout_key))
    if minutes is not None and timedelta(minutes=minutes) > policy.session_timeout:
        ceiling = int(policy.session_timeout.total_seconds() // 60)
        issues.warning(
            f"{rule.session_timeout_key} exceeds the production ceiling of {ceiling} minutes"
        )


__all__ = [
    "BooleanFormat",
    "DEFAULT_RULES",
    "EnumMembership",
    "PositiveInteger",
    "ProductionPolicy",
    "RequiredKey",
    "UrlFormat",
    "ValidationEngine",
    "ValidationResult",
    "ValidationRule",
    "is_loopback_host",
    "is_valid_url",
    "rule_name",
    "validate_config",
]
