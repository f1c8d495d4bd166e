"""
envguard - environment configuration and validation engine

File: src/envguard/__init__.py

Purpose
- Package root. Exposes the engine facade and the start-up helper.

What should be included in this file
- Version export and a small public API surface.

Functional requirements
- Must not have side effects at import time (no config loading, no logging init).
"""

from __future__ import annotations

from envguard.config.engine import ConfigEngine, bootstrap
from envguard.environment import Environment
from envguard.errors import (
    AccessBeforeInitError,
    ConfigValidationError,
    EnvguardError,
    SourceUnavailableError,
)

__version__ = "0.1.0"

__all__ = [
    "AccessBeforeInitError",
    "ConfigEngine",
    "ConfigValidationError",
    "Environment",
    "EnvguardError",
    "SourceUnavailableError",
    "__version__",
    "bootstrap",
]
