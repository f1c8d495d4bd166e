"""
envguard - configuration engine facade.

File: src/envguard/config/engine.py

Purpose
- Own the active configuration snapshot and expose the public API used by the
  host application: initialise, validate, typed reads, policy, and redaction.

What should be included in this file
- ``ConfigEngine``: an explicitly constructed object passed to collaborators
  (lifecycle: construct -> initialize -> validate -> use -> test-only replace).
- ``bootstrap``: the start-up routine (construct, initialise, enforce validation).

Functional requirements
- Reads before ``initialize``/``set_test_config`` raise ``AccessBeforeInitError``.
- Snapshot replacement is a single reference swap; readers see old or new, never a mix.

Non-functional requirements
- No I/O after initialisation; reads are safe from many threads.
"""

from __future__ import annotations

import threading
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, TypeVar

import structlog

from envguard.config.accessor import TypedAccessor
from envguard.config.loader import SOURCE_TEST_OVERRIDE, ConfigSource, materialize_override
from envguard.config.validation import ValidationEngine, ValidationResult
from envguard.constants import KEY_ENVIRONMENT
from envguard.environment import Environment, parse_environment
from envguard.errors import AccessBeforeInitError, ConfigValidationError
from envguard.security.policy import SecurityPolicy, resolve_policy
from envguard.security.redaction import SecretsManager

TEnum = TypeVar("TEnum", bound=Enum)


@dataclass(frozen=True, slots=True)
class ConfigSnapshot:
    """One immutable view of the merged configuration."""

    accessor: TypedAccessor
    sources: tuple[str, ...]
    is_test_config: bool

    @property
    def values(self) -> Mapping[str, str]:
        return MappingProxyType(self.accessor.as_dict())


class ConfigEngine:
    """Layered configuration with validation, policy lookup, and redaction."""

    def __init__(
        self,
        config_dir: str | Path = ".",
        *,
        source: ConfigSource | None = None,
        validator: ValidationEngine | None = None,
        secrets: SecretsManager | None = None,
        environ: Mapping[str, str] | None = None,
        logger: Any | None = None,
    ) -> None:
        self._logger = logger if logger is not None else structlog.get_logger(__name__)
        self._source = (
            source
            if source is not None
            else ConfigSource(config_dir, environ=environ, logger=self._logger)
        )
        self._validator = validator if validator is not None else ValidationEngine(
            logger=self._logger
        )
        self._secrets = secrets if secrets is not None else SecretsManager()
        self._write_lock = threading.Lock()
        self._snapshot: ConfigSnapshot | None = None
        self._loaded: ConfigSnapshot | None = None
        self._requested_environment: Environment | str | None = None
        self._layered_override: dict[str, str] | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_initialized(self) -> bool:
        return self._snapshot is not None

    @property
    def sources(self) -> tuple[str, ...]:
        return self._require("sources").sources

    def snapshot(self) -> ConfigSnapshot:
        return self._require("snapshot")

    def initialize(
        self,
        environment: Environment | str | None = None,
        test_override: Mapping[str, str] | None = None,
    ) -> None:
        """Load all sources and install the merged snapshot.

        Raises ``SourceUnavailableError`` when no base configuration exists and
        no ``test_override`` is supplied.
        """

        with self._write_lock:
            self._requested_environment = environment
            self._layered_override = None if test_override is None else dict(test_override)
            self._load_locked()

    def reload(self) -> None:
        """Re-read every source with the arguments of the last ``initialize``."""

        with self._write_lock:
            if self._loaded is None:
                raise AccessBeforeInitError("reload")
            self._load_locked()

    def set_test_config(self, values: Mapping[str, str]) -> None:
        """Atomically replace the active snapshot with ``values``, bypassing all sources."""

        materialized = materialize_override(values)
        snapshot = ConfigSnapshot(
            accessor=TypedAccessor(MappingProxyType(materialized)),
            sources=(SOURCE_TEST_OVERRIDE,),
            is_test_config=True,
        )
        with self._write_lock:
            self._snapshot = snapshot
        self._log_environment_fallback(snapshot)
        self._logger.info("config_test_override_applied", entry_count=len(materialized))

    def clear_test_config(self) -> None:
        """Drop a ``set_test_config`` snapshot, restoring the last loaded one (if any)."""

        with self._write_lock:
            self._snapshot = self._loaded
        self._logger.info("config_test_override_cleared", restored=self._loaded is not None)

    # ------------------------------------------------------------------
    # Validation and policy
    # ------------------------------------------------------------------

    def validate(self) -> ValidationResult:
        accessor = self._require("validate").accessor
        return self._validator.validate(accessor, accessor.current_environment())

    def assert_valid(self, *, strict: bool | None = None) -> ValidationResult:
        """Validate and enforce the result.

        Errors raise ``ConfigValidationError`` when ``strict`` is true, or when
        ``strict`` is ``None`` and the active policy enables strict validation.
        Otherwise errors are logged and the result is returned.
        """

        accessor = self._require("assert_valid").accessor
        environment = accessor.current_environment()
        result = self._validator.validate(accessor, environment)
        enforce = (
            resolve_policy(environment).enable_strict_validation if strict is None else strict
        )

        for message in result.warnings:
            self._logger.warning("config_validation_warning", detail=message)
        for message in result.errors:
            self._logger.error("config_validation_error", detail=message, enforced=enforce)

        if result.errors and enforce:
            raise ConfigValidationError(result)
        return result

    def current_environment(self) -> Environment:
        return self._require("current_environment").accessor.current_environment()

    def resolve_policy(self) -> SecurityPolicy:
        return resolve_policy(self.current_environment())

    # ------------------------------------------------------------------
    # Typed reads
    # ------------------------------------------------------------------

    def get_string(self, key: str, default: str = "") -> str:
        return self._require("get_string").accessor.get_string(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        return self._require("get_bool").accessor.get_bool(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        return self._require("get_int").accessor.get_int(key, default)

    def get_float(self, key: str, default: float = 0.0) -> float:
        return self._require("get_float").accessor.get_float(key, default)

    def get_enum(self, key: str, enum_type: type[TEnum], default: TEnum) -> TEnum:
        return self._require("get_enum").accessor.get_enum(key, enum_type, default)

    # ------------------------------------------------------------------
    # Secrets
    # ------------------------------------------------------------------

    def is_sensitive(self, key: str) -> bool:
        self._require("is_sensitive")
        return self._secrets.is_sensitive(key)

    def redacted_dump(self) -> dict[str, str]:
        return self._secrets.redacted_dump(self._require("redacted_dump").accessor.as_dict())

    def stable_hash(self) -> str:
        return self._secrets.stable_hash(self._require("stable_hash").accessor.as_dict())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, operation: str) -> ConfigSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise AccessBeforeInitError(operation)
        return snapshot

    def _load_locked(self) -> None:
        loaded = self._source.load(self._requested_environment, self._layered_override)
        snapshot = ConfigSnapshot(
            accessor=TypedAccessor(loaded.values),
            sources=loaded.sources,
            is_test_config=False,
        )
        self._loaded = snapshot
        self._snapshot = snapshot
        self._log_environment_fallback(snapshot)

    def _log_environment_fallback(self, snapshot: ConfigSnapshot) -> None:
        declared = snapshot.accessor.raw(KEY_ENVIRONMENT)
        if declared is not None and parse_environment(declared) is None:
            self._logger.warning(
                "config_environment_fallback",
                setting=KEY_ENVIRONMENT,
                fallback=snapshot.accessor.current_environment().value,
            )


def bootstrap(
    config_dir: str | Path = ".",
    environment: Environment | str | None = None,
    *,
    strict: bool | None = None,
    environ: Mapping[str, str] | None = None,
    logger: Any | None = None,
) -> ConfigEngine:
    """Start-up routine: construct, initialise, and enforce validation per policy."""

    engine = ConfigEngine(config_dir, environ=environ, logger=logger)
    engine.initialize(environment)
    engine.assert_valid(strict=strict)
    return engine


__all__ = ["ConfigEngine", "ConfigSnapshot", "bootstrap"]
