"""Layered configuration: source loading, typed access, validation, and the engine facade."""

from envguard.config.accessor import TypedAccessor, parse_bool, parse_float, parse_int
from envguard.config.engine import ConfigEngine, ConfigSnapshot, bootstrap
from envguard.config.loader import (
    SOURCE_PROCESS_ENV,
    SOURCE_TEST_OVERRIDE,
    ConfigSource,
    LoadedConfig,
    parse_source_text,
    resolve_environment,
)
from envguard.config.validation import (
    DEFAULT_RULES,
    BooleanFormat,
    EnumMembership,
    PositiveInteger,
    ProductionPolicy,
    RequiredKey,
    UrlFormat,
    ValidationEngine,
    ValidationResult,
    ValidationRule,
    validate_config,
)

__all__ = [
    "DEFAULT_RULES",
    "SOURCE_PROCESS_ENV",
    "SOURCE_TEST_OVERRIDE",
    "BooleanFormat",
    "ConfigEngine",
    "ConfigSnapshot",
    "ConfigSource",
    "EnumMembership",
    "LoadedConfig",
    "PositiveInteger",
    "ProductionPolicy",
    "RequiredKey",
    "TypedAccessor",
    "UrlFormat",
    "ValidationEngine",
    "ValidationResult",
    "ValidationRule",
    "bootstrap",
    "parse_bool",
    "parse_float",
    "parse_int",
    "parse_source_text",
    "resolve_environment",
    "validate_config",
]
