"""Helpers for safe debug logging.

Request bodies and headers carry passwords and bearer tokens. This module
redacts those fields before anything is emitted at DEBUG level.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset({"authorization", "cookie", "set-cookie"})
_SENSITIVE_FRAGMENTS: tuple[str, ...] = ("password", "token", "secret")

REDACTED = "<redacted>"


def is_sensitive_key(key: str) -> bool:
    """Return ``True`` for header or body keys whose values must never be logged."""
    lowered = key.lower()
    if lowered in _SENSITIVE_KEYS:
        return True
    return any(fragment in lowered for fragment in _SENSITIVE_FRAGMENTS)


def redact_for_log(value: Any, *, max_string: int = 512, _depth: int = 0) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Mappings have sensitive keys replaced by ``<redacted>``; long strings are
    truncated; sequences are redacted element-wise.
    """
    if _depth > 20:
        return "<max-depth>"

    if value is None or isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<truncated>"
        return value

    if isinstance(value, bytes):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        return {
            str(k): REDACTED if is_sensitive_key(str(k)) else redact_for_log(v, max_string=max_string, _depth=_depth + 1)
            for k, v in value.items()
        }

    if isinstance(value, Sequence):
        return [redact_for_log(v, max_string=max_string, _depth=_depth + 1) for v in value]

    return repr(value)
