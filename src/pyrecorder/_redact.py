"""Secret redaction for configuration dumps.

The config carries the API token and push/storage credentials; the
status server and debug logs only ever see a redacted copy.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

# Compared after lower-casing and dropping underscores/dashes.
_SENSITIVE_VALUE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "accesstoken",
        "token",
        "authorization",
        "user",
    }
)


def _normalize_key(key: str) -> str:
    return key.lower().replace("_", "").replace("-", "")


def redact_for_log(value: Any) -> Any:
    """Return a copy of *value* with secret values replaced by ``<redacted>``.

    Empty secrets are kept as-is so a missing credential stays visible.
    """
    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if _normalize_key(key) in _SENSITIVE_VALUE_KEYS:
                redacted[key] = "<redacted>" if v else v
            else:
                redacted[key] = redact_for_log(v)
        return redacted
    if isinstance(value, (list, tuple)):
        return [redact_for_log(v) for v in value]
    return value
