"""
envguard - process entrypoint and exit-code contract

File: src/envguard/main.py

Purpose
- Run the CLI and turn every outcome into one of a small set of exit codes so
  deployment gates can branch on the status alone.

Functional requirements
- 0: configuration accepted (or hash matched).
- 1: configuration rejected by validation, or hash drift detected.
- 2: configuration could not be read (missing base file, bad directory, bad arguments).
- 4: anything unexpected; a traceback is printed to stderr.
"""

from __future__ import annotations

import sys
import traceback
from enum import IntEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence


class ExitCode(IntEnum):
    """Process exit statuses reported by ``envguard``."""

    SUCCESS = 0
    VALIDATION_REJECTED = 1
    CONFIG_ERROR = 2
    INTERNAL_ERROR = 4


_CONFIG_IO_ERRORS: tuple[type[BaseException], ...] = (
    FileNotFoundError,
    NotADirectoryError,
    PermissionError,
)


def cli_entrypoint(argv: Sequence[str] | None = None) -> int:
    """Entrypoint used by ``python -m envguard`` and the console script."""

    try:
        from envguard.ui.cli import run_cli

        status: object = run_cli(argv)
    except SystemExit as exc:
        status = exc.code
    except BaseException as exc:  # noqa: BLE001 - last line before the interpreter.
        exit_code = classify_exception(exc)
        _report_failure(exc, exit_code)
        return int(exit_code)
    return _coerce_status(status)


def classify_exception(exc: BaseException) -> ExitCode:
    """Map ``exc`` (or anything in its cause chain) to an exit code."""

    from envguard.errors import ConfigValidationError, SourceUnavailableError

    for item in _causes(exc):
        if isinstance(item, ConfigValidationError):
            return ExitCode.VALIDATION_REJECTED
        if isinstance(item, (SourceUnavailableError, *_CONFIG_IO_ERRORS)):
            return ExitCode.CONFIG_ERROR
    return ExitCode.INTERNAL_ERROR


def _causes(exc: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        if current.__cause__ is not None:
            current = current.__cause__
        elif not current.__suppress_context__:
            current = current.__context__
        else:
            current = None


def _coerce_status(status: object) -> int:
    if status is None:
        return int(ExitCode.SUCCESS)
    if isinstance(status, int):
        try:
            return int(ExitCode(status))
        except ValueError:
            return int(ExitCode.INTERNAL_ERROR)
    text = str(status).strip()
    if text:
        print(text, file=sys.stderr)
    return int(ExitCode.INTERNAL_ERROR)


def _report_failure(exc: BaseException, exit_code: ExitCode) -> None:
    if exit_code is ExitCode.INTERNAL_ERROR:
        traceback.print_exception(exc, file=sys.stderr)
    else:
        print(f"error: {str(exc).strip() or type(exc).__name__}", file=sys.stderr)


__all__ = ["ExitCode", "classify_exception", "cli_entrypoint"]
