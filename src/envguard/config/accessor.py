"""Typed, total getters over a raw configuration snapshot."""

from __future__ import annotations

import math
import re
from collections.abc import Iterator, Mapping
from enum import Enum
from typing import TypeVar

from envguard.constants import BOOLEAN_FALSE, BOOLEAN_TRUE, KEY_ENVIRONMENT
from envguard.environment import DEFAULT_ENVIRONMENT, Environment, parse_environment

TEnum = TypeVar("TEnum", bound=Enum)

_DECIMAL_INT = re.compile(r"[+-]?[0-9]+")
_DECIMAL_FLOAT = re.compile(r"[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def parse_bool(raw: str | None) -> bool | None:
    """Return the boolean for a recognised token (case-insensitive), else ``None``."""

    if raw is None:
        return None
    lowered = raw.strip().lower()
    if lowered in BOOLEAN_TRUE:
        return True
    if lowered in BOOLEAN_FALSE:
        return False
    return None


def parse_int(raw: str | None) -> int | None:
    """Return the decimal integer in ``raw``, else ``None``."""

    if raw is None:
        return None
    text = raw.strip()
    if not _DECIMAL_INT.fullmatch(text):
        return None
    return int(text)


def parse_float(raw: str | None) -> float | None:
    if raw is None:
        return None
    text = raw.strip()
    if not _DECIMAL_FLOAT.fullmatch(text):
        return None
    parsed = float(text)
    if not math.isfinite(parsed):
        return None
    return parsed


class TypedAccessor:
    """Read-only typed view of a raw configuration mapping.

    Every getter is total: a missing or malformed value yields the caller's
    default. Mandatory keys are enforced by validation rules, not by getters.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = values

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def has(self, key: str) -> bool:
        return key in self._values

    def raw(self, key: str) -> str | None:
        return self._values.get(key)

    def keys(self) -> tuple[str, ...]:
        return tuple(self._values)

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    def get_string(self, key: str, default: str = "") -> str:
        value = self._values.get(key)
        if not value:
            return default
        return value

    def get_bool(self, key: str, default: bool = False) -> bool:
        parsed = parse_bool(self._values.get(key))
        return default if parsed is None else parsed

    def get_int(self, key: str, default: int = 0) -> int:
        parsed = parse_int(self._values.get(key))
        return default if parsed is None else parsed

    def get_float(self, key: str, default: float = 0.0) -> float:
        parsed = parse_float(self._values.get(key))
        return default if parsed is None else parsed

    def get_enum(self, key: str, enum_type: type[TEnum], default: TEnum) -> TEnum:
        value = self._values.get(key)
        if not value:
            return default
        lowered = value.strip().lower()
        for member in enum_type:
            if str(member.value).lower() == lowered:
                return member
        return default

    def current_environment(self) -> Environment:
        parsed = parse_environment(self._values.get(KEY_ENVIRONMENT))
        return DEFAULT_ENVIRONMENT if parsed is None else parsed


__all__ = ["TypedAccessor", "parse_bool", "parse_float", "parse_int"]
