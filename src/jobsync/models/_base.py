"""Base model and field resolution for canonical marketplace entities.

Server payloads are inconsistent about key casing: the same record may
arrive as ``{"name": ...}`` from one endpoint and ``{"Name": ...}`` from
another, and the client itself may hand in ``snake_case`` keys. Every
canonical model therefore declares a ``_FIELD_SOURCES`` table mapping each
canonical wire key to the ordered source keys it may be read from.
:func:`resolve_fields` consumes that table generically; it runs as a
``model_validator(mode="before")`` on :class:`CanonicalModel` so that any
``model_validate`` call produces the canonical shape.

Resolution is per field: each canonical key independently takes the first
source key whose value is meaningful (see :func:`is_meaningful`), falling
back to the field default. Keys that are not in the table pass through as
model extras.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

_MISSING: Any = object()
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def is_meaningful(value: Any) -> bool:
    """Return ``True`` if *value* should win field resolution.

    ``None`` and ``""`` fall through to the next source key. ``False``, ``0``
    and empty containers are real values.
    """
    return value is not None and value != ""


def source_keys(canonical: str) -> tuple[str, ...]:
    """Return the ordered source keys for a camelCase canonical key.

    ``"customerId"`` -> ``("customerId", "CustomerId", "customer_id")``.
    """
    capitalized = canonical[:1].upper() + canonical[1:]
    snake = _CAMEL_BOUNDARY.sub("_", canonical).lower()
    keys: list[str] = []
    for key in (canonical, capitalized, snake):
        if key not in keys:
            keys.append(key)
    return tuple(keys)


def field_sources(*canonical: str) -> dict[str, tuple[str, ...]]:
    """Build a ``_FIELD_SOURCES`` table for the given canonical keys."""
    return {name: source_keys(name) for name in canonical}


def resolve_fields(values: Mapping[str, Any], sources: Mapping[str, tuple[str, ...]]) -> dict[str, Any]:
    """Map a raw payload onto canonical keys using a field-source table.

    Every source key named in the table is consumed, so alternate casings
    never leak through as extras.
    """
    working = dict(values)
    resolved: dict[str, Any] = {}
    for canonical, candidates in sources.items():
        found = _MISSING
        for key in candidates:
            value = working.pop(key, _MISSING)
            if found is _MISSING and value is not _MISSING and is_meaningful(value):
                found = value
        if found is not _MISSING:
            resolved[canonical] = found
    for key, value in working.items():
        resolved.setdefault(key, value)
    return resolved


def utc_now_iso() -> str:
    """Current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class CanonicalModel(BaseModel):
    """Base for canonical entities produced by :mod:`jobsync.normalize`.

    Handles:
    * camelCase wire keys <-> snake_case attributes via ``alias_generator``
    * per-field dual-key resolution via ``_FIELD_SOURCES``
    * numeric identifiers coerced to strings
    * unknown payload keys preserved as extras
    """

    _FIELD_SOURCES: ClassVar[dict[str, tuple[str, ...]]] = {}

    model_config = ConfigDict(
        frozen=True,
        extra="allow",
        populate_by_name=True,
        alias_generator=to_camel,
        coerce_numbers_to_str=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _resolve_casing(cls, values: Any) -> Any:
        if isinstance(values, BaseModel):
            return values
        if not isinstance(values, Mapping):
            return values
        return resolve_fields(values, cls._FIELD_SOURCES)

    def to_wire(self) -> dict[str, Any]:
        """JSON-compatible camelCase dict, as the server and snapshots use it."""
        return self.model_dump(mode="json", by_alias=True)
