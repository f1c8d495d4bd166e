"""
envguard - sensitive configuration redaction

File: src/envguard/security/redaction.py

Purpose
- Classify configuration keys as sensitive and produce safe views of a snapshot.

What should be included in this file
- Key classification by case-insensitive substring patterns.
- Redacted dumps and a stable drift hash over non-sensitive entries only.
- Free-text masking used by the log formatter.

Functional requirements
- A sensitive value must never appear in a redacted dump or in hash input.

Non-functional requirements
- Deterministic and idempotent for stable inputs.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Final

from envguard.constants import REDACTED_VALUE, SENSITIVE_PATTERNS
from envguard.utils.hashing import sha256_text

_ASSIGNMENT: Final[re.Pattern[str]] = re.compile(
    r"\b([A-Za-z_][A-Za-z0-9_.-]*)(\s*[=:]\s*)([^\s,;]+)"
)
_BEARER_TOKEN: Final[re.Pattern[str]] = re.compile(r"(?i)\b(bearer\s+)[A-Za-z0-9._~+/-]+=*")

_VALUE_ESCAPES: Final[dict[int, str]] = str.maketrans({"\\": "\\\\", "\n": "\\n", "\r": "\\r"})
_KEY_ESCAPES: Final[dict[int, str]] = str.maketrans(
    {"\\": "\\\\", "\n": "\\n", "\r": "\\r", "=": "\\="}
)


class SecretsManager:
    """Key-pattern based redaction for configuration snapshots."""

    __slots__ = ("_patterns", "_replacement")

    def __init__(
        self,
        patterns: Iterable[str] = SENSITIVE_PATTERNS,
        *,
        replacement: str = REDACTED_VALUE,
    ) -> None:
        normalized = tuple(item.strip().lower() for item in patterns if item.strip())
        if not normalized:
            raise ValueError("at least one sensitive pattern is required")
        self._patterns = normalized
        self._replacement = replacement or REDACTED_VALUE

    @property
    def patterns(self) -> tuple[str, ...]:
        return self._patterns

    @property
    def replacement(self) -> str:
        return self._replacement

    def is_sensitive(self, key: str) -> bool:
        lowered = key.lower()
        return any(pattern in lowered for pattern in self._patterns)

    def redact(self, key: str, value: str) -> str:
        if self.is_sensitive(key):
            return self._replacement
        return value

    def redacted_dump(self, config: Mapping[str, str]) -> dict[str, str]:
        """Return a copy of ``config`` with sensitive values replaced, order preserved."""

        return {key: self.redact(key, value) for key, value in config.items()}

    def hash_payload(self, config: Mapping[str, str]) -> str:
        """Return the canonical ``key=value`` text that ``stable_hash`` digests.

        Sensitive entries are omitted entirely; rotating a secret leaves the
        digest unchanged. Backslashes and line breaks are escaped (and ``=``
        inside keys), so one entry can never render as two.
        """

        lines = [
            f"{key.translate(_KEY_ESCAPES)}={config[key].translate(_VALUE_ESCAPES)}"
            for key in sorted(config)
            if not self.is_sensitive(key)
        ]
        return "\n".join(lines)

    def stable_hash(self, config: Mapping[str, str]) -> str:
        return sha256_text(self.hash_payload(config))

    def redact_text(self, text: str) -> str:
        """Mask ``KEY=value`` assignments for sensitive keys and bearer tokens in free text."""

        def _assignment(match: re.Match[str]) -> str:
            if not self.is_sensitive(match.group(1)):
                return match.group(0)
            return f"{match.group(1)}{match.group(2)}{self._replacement}"

        redacted = _ASSIGNMENT.sub(_assignment, text)
        return _BEARER_TOKEN.sub(lambda match: f"{match.group(1)}{self._replacement}", redacted)


DEFAULT_SECRETS_MANAGER: Final[SecretsManager] = SecretsManager()


__all__ = ["DEFAULT_SECRETS_MANAGER", "REDACTED_VALUE", "SecretsManager"]
