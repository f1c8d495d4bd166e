"""
envguard - layered configuration source loader.

File: src/envguard/config/loader.py

Purpose
- Load raw ``KEY=VALUE`` configuration from a base file, an environment file,
  process environment variables, and an optional in-memory test override.

What should be included in this file
- Precedence logic: test override > process env > ``config.<env>`` > ``config.default``.
- Line-oriented source parsing (comments, blank lines, first ``=`` split, last line wins).
- Environment selection: one environment picks both the override file and the
  merged ``ENVIRONMENT`` value, so file choice and security policy always agree.

Functional requirements
- A missing environment file is not an error.
- A missing base file without a test override raises ``SourceUnavailableError``.

Non-functional requirements
- Reading only; no network calls and no writes.
- Deterministic output for the same files and environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

import structlog

from envguard.constants import (
    BASE_CONFIG_FILE,
    ENV_CONFIG_FILE_TEMPLATE,
    KEY_ENVIRONMENT,
    KNOWN_KEYS,
)
from envguard.environment import DEFAULT_ENVIRONMENT, Environment, parse_environment
from envguard.errors import SourceUnavailableError

SOURCE_TEST_OVERRIDE = "<test override>"
SOURCE_PROCESS_ENV = "<process environment>"


@dataclass(frozen=True, slots=True)
class LoadedConfig:
    """Merged raw configuration plus the environment and sources that produced it."""

    environment: Environment
    values: Mapping[str, str]
    sources: tuple[str, ...]


def parse_source_text(
    text: str,
    *,
    source_name: str = "<text>",
    logger: Any | None = None,
) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines; later duplicates replace earlier ones."""

    log = logger if logger is not None else structlog.get_logger(__name__)
    values: dict[str, str] = {}
    for line_number, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, separator, value = stripped.partition("=")
        key = key.strip()
        if not separator or not key:
            log.debug("config_line_skipped", source=source_name, line=line_number)
            continue
        values.pop(key, None)
        values[key] = value.strip()
    return values


def resolve_environment(
    explicit: Environment | str | None,
    environ: Mapping[str, str],
    base_values: Mapping[str, str],
    *,
    override: Mapping[str, str] | None = None,
) -> Environment:
    """Choose the active environment.

    Order: explicit argument, test-override ``ENVIRONMENT``, process
    ``ENVIRONMENT``, base-file ``ENVIRONMENT``, then ``development``. The first
    of those values that is present decides; an unrecognised one selects
    ``development``.
    """

    if explicit is not None:
        if isinstance(explicit, Environment):
            return explicit
        parsed = parse_environment(explicit)
        if parsed is None:
            raise ValueError(f"unknown environment {explicit!r}")
        return parsed

    candidates = (
        None if override is None else override.get(KEY_ENVIRONMENT),
        environ.get(KEY_ENVIRONMENT),
        base_values.get(KEY_ENVIRONMENT),
    )
    for candidate in candidates:
        if candidate is None:
            continue
        parsed = parse_environment(candidate.strip())
        if parsed is not None:
            return parsed
        break
    return DEFAULT_ENVIRONMENT


class ConfigSource:
    """Reads and merges the layered configuration sources for one config directory."""

    def __init__(
        self,
        config_dir: str | Path = ".",
        *,
        environ: Mapping[str, str] | None = None,
        known_keys: frozenset[str] = KNOWN_KEYS,
        logger: Any | None = None,
    ) -> None:
        self.config_dir = Path(config_dir).expanduser()
        self._environ = environ
        self._known_keys = known_keys
        self._logger = logger if logger is not None else structlog.get_logger(__name__)

    @property
    def base_path(self) -> Path:
        return self.config_dir / BASE_CONFIG_FILE

    def environment_path(self, environment: Environment) -> Path:
        return self.config_dir / ENV_CONFIG_FILE_TEMPLATE.format(environment=environment.value)

    def load(
        self,
        environment: Environment | str | None = None,
        test_override: Mapping[str, str] | None = None,
    ) -> LoadedConfig:
        """Load and merge all sources by precedence.

        The merged ``ENVIRONMENT`` always names the selected environment when
        one was requested explicitly or any layer declares a recognised value.
        A layer that declares a different environment is overruled and logged.
        """

        env_map = dict(os.environ if self._environ is None else self._environ)
        override_values = None if test_override is None else materialize_override(test_override)
        sources: list[str] = []

        base_values = self._read_source(self.base_path, required=override_values is None)
        if base_values is not None:
            sources.append(str(self.base_path))
        else:
            base_values = {}

        selected = resolve_environment(
            environment, env_map, base_values, override=override_values
        )

        env_path = self.environment_path(selected)
        env_values = self._read_source(env_path, required=False)
        if env_values is not None:
            sources.append(str(env_path))
        else:
            env_values = {}

        process_values = self._collect_process_overrides(env_map, base_values, env_values)
        if process_values:
            sources.append(SOURCE_PROCESS_ENV)

        merged: dict[str, str] = {}
        for layer in (base_values, env_values, process_values):
            merged.update(layer)
        if override_values is not None:
            merged.update(override_values)
            sources.append(SOURCE_TEST_OVERRIDE)

        declared = merged.get(KEY_ENVIRONMENT)
        parsed = None if declared is None else parse_environment(declared.strip())
        if environment is not None or parsed is not None:
            if declared is not None and parsed is not selected:
                self._logger.warning(
                    "config_environment_mismatch",
                    requested=selected.value,
                    declared=declared,
                )
            merged[KEY_ENVIRONMENT] = selected.value

        self._logger.info(
            "config_sources_loaded",
            environment=selected.value,
            sources=list(sources),
            entry_count=len(merged),
        )
        return LoadedConfig(
            environment=selected,
            values=MappingProxyType(merged),
            sources=tuple(sources),
        )

    def _read_source(self, path: Path, *, required: bool) -> dict[str, str] | None:
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            if required:
                raise SourceUnavailableError(f"base configuration not found: {path}") from exc
            self._logger.debug("config_source_missing", source=str(path))
            return None
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceUnavailableError(
                f"unable to read configuration source {path}: {exc}"
            ) from exc
        return parse_source_text(text, source_name=str(path), logger=self._logger)

    def _collect_process_overrides(
        self,
        environ: Mapping[str, str],
        *file_layers: Mapping[str, str],
    ) -> dict[str, str]:
        recognised = set(self._known_keys)
        for layer in file_layers:
            recognised.update(layer)
        overrides: dict[str, str] = {}
        for name in sorted(recognised):
            raw = environ.get(name)
            if raw is None:
                continue
            overrides[name] = raw.strip()
        return overrides


def materialize_override(override: Mapping[str, str]) -> dict[str, str]:
    materialized: dict[str, str] = {}
    for key, value in override.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise TypeError("override keys and values must be strings")
        materialized[key] = value
    return materialized


__all__ = [
    "ConfigSource",
    "LoadedConfig",
    "SOURCE_PROCESS_ENV",
    "SOURCE_TEST_OVERRIDE",
    "materialize_override",
    "parse_source_text",
    "resolve_environment",
]
