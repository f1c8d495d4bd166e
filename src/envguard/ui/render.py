"""Output rendering for the envguard CLI.

File: src/envguard/ui/render.py

Purpose
- Provide a thin plain-text rendering layer for CLI reports.
- Respect the NO_COLOR environment variable and the --no-color CLI flag.

Functional requirements
- Output is deterministic; colour only wraps status tags, never content.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING, Final, TextIO

if TYPE_CHECKING:
    from collections.abc import Sequence

_GREEN: Final[str] = "\033[32m"
_RED: Final[str] = "\033[31m"
_YELLOW: Final[str] = "\033[33m"
_RESET: Final[str] = "\033[0m"


def _color_allowed(no_color_flag: bool, stream: TextIO) -> bool:
    """Check whether color output should be attempted."""

    if no_color_flag:
        return False
    if os.environ.get("NO_COLOR", ""):
        return False
    return hasattr(stream, "isatty") and stream.isatty()


class CLIRenderer:
    """Thin CLI output renderer writing to ``stream`` (stdout by default)."""

    def __init__(self, *, no_color: bool = False, stream: TextIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self._color = _color_allowed(no_color, self._stream)

    @property
    def color(self) -> bool:
        return self._color

    def heading(self, text: str) -> None:
        self._write(text)

    def kv(self, key: str, value: object) -> None:
        """Print a key: value pair."""

        self._write(f"{key}: {value}")

    def text(self, line: str) -> None:
        self._write(line)

    def section(self, title: str) -> None:
        """Print a section header with a preceding blank line."""

        self._write(f"\n{title}")

    def warning(self, text: str) -> None:
        self._write(f"  {self._tag('WARN', _YELLOW)}  {text}")

    def items(self, entries: Sequence[str], *, prefix: str = "- ") -> None:
        for entry in entries:
            self._write(f"  {prefix}{entry}")

    def table(self, headers: Sequence[str], rows: Sequence[Sequence[object]]) -> None:
        """Print rows under ``headers``, columns padded to their widest cell."""

        if not rows:
            return

        grid = [[str(cell) for cell in headers]]
        grid.extend([str(cell) for cell in row][: len(headers)] for row in rows)
        widths = [
            max(len(line[col]) for line in grid if col < len(line)) for col in range(len(headers))
        ]
        grid.insert(1, ["-" * width for width in widths])
        for line in grid:
            padded = (cell.ljust(width) for cell, width in zip(line, widths, strict=False))
            self._write(f"  {'  '.join(padded).rstrip()}")

    def ok(self, label: str) -> None:
        self._write(f"  {self._tag('OK', _GREEN)}  {label}")

    def fail(self, label: str) -> None:
        self._write(f"  {self._tag('FAIL', _RED)}  {label}")

    def _tag(self, label: str, color: str) -> str:
        if not self._color:
            return label
        return f"{color}{label}{_RESET}"

    def _write(self, line: str) -> None:
        print(line, file=self._stream)


def create_renderer(*, no_color: bool = False, stream: TextIO | None = None) -> CLIRenderer:
    """Create a CLI renderer with the given settings."""

    return CLIRenderer(no_color=no_color, stream=stream)


__all__ = ["CLIRenderer", "create_renderer"]
