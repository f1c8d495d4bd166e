"""
envguard - hashing utilities

File: src/envguard/utils/hashing.py

Purpose
- Provide deterministic SHA-256 helpers for bytes and text.

Non-functional requirements
- Standard library only; behavior is cross-platform deterministic.
"""

from __future__ import annotations

import hashlib
import string

_SHA256_HEX_LENGTH = 64
_HEX_DIGITS = frozenset(string.hexdigits)

__all__ = [
    "is_sha256_hex",
    "sha256_bytes",
    "sha256_text",
]


def sha256_bytes(data: bytes) -> str:
    """Return SHA-256 hex digest for raw bytes."""

    return hashlib.sha256(data).hexdigest()


def sha256_text(text: str, *, encoding: str = "utf-8") -> str:
    """Return SHA-256 hex digest for text encoded with ``encoding``."""

    return sha256_bytes(text.encode(encoding))


def is_sha256_hex(value: str) -> bool:
    """Return whether ``value`` looks like a SHA-256 hex digest."""

    return len(value) == _SHA256_HEX_LENGTH and set(value).issubset(_HEX_DIGITS)
