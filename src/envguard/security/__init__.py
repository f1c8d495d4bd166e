"""Security policy lookup and secret redaction."""

from envguard.security.policy import SecurityPolicy, resolve_policy
from envguard.security.redaction import DEFAULT_SECRETS_MANAGER, REDACTED_VALUE, SecretsManager

__all__ = [
    "DEFAULT_SECRETS_MANAGER",
    "REDACTED_VALUE",
    "SecretsManager",
    "SecurityPolicy",
    "resolve_policy",
]
