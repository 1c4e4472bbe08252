"""Normalization of raw server payloads into canonical entities.

All functions here are pure: they never touch the network or storage and
never raise for malformed input. The rest of the package works only with the
canonical :class:`~jobsync.models.Job` / :class:`~jobsync.models.User`
shapes they return.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import ValidationError

from jobsync.models._base import CanonicalModel, resolve_fields
from jobsync.models.job import Job, JobNote
from jobsync.models.user import User

_logger = logging.getLogger(__name__)

TModel = TypeVar("TModel", bound=CanonicalModel)


def _validate_lenient(model_cls: type[TModel], raw: Mapping[str, Any]) -> TModel:
    """Validate *raw*, dropping fields the model rejects instead of failing.

    A single unparseable field (say ``contractAmount: "n/a"``) must not make
    the whole record disappear; the offending keys fall back to defaults.
    """
    values = resolve_fields(raw, model_cls._FIELD_SOURCES)
    try:
        return model_cls.model_validate(values)
    except ValidationError as exc:
        bad_keys = {str(error["loc"][0]) for error in exc.errors() if error.get("loc")}
        _logger.debug("Dropping invalid %s fields: %s", model_cls.__name__, sorted(bad_keys))
        cleaned = {key: value for key, value in values.items() if key not in bad_keys}
        return model_cls.model_validate(cleaned)


def normalize_user(raw: Any) -> User | None:
    """Normalize a raw user payload.

    Returns ``None`` for ``None``, non-mapping values and empty mappings.
    Each field is read from its lower-case key, then its capitalized key,
    then defaults to ``""`` (or ``None`` for optional fields).
    """
    if isinstance(raw, User):
        raw = raw.to_wire()
    if not isinstance(raw, Mapping) or not raw:
        return None
    return _validate_lenient(User, raw)


def empty_job() -> Job:
    """The fully-defaulted job used when a payload is missing entirely."""
    return Job()


def normalize_job(raw: Any) -> Job:
    """Normalize a raw job payload.

    Never raises; ``None`` or a non-mapping yields :func:`empty_job`.
    ``normalize_job(normalize_job(x)) == normalize_job(x)``.
    """
    if isinstance(raw, Job):
        raw = raw.to_wire()
    if not isinstance(raw, Mapping):
        return empty_job()
    return _validate_lenient(Job, raw)


def normalize_jobs(raw: Any) -> list[Job]:
    """Normalize a list payload; anything that is not a list yields ``[]``."""
    if not isinstance(raw, list):
        return []
    return [normalize_job(item) for item in raw]


def normalize_users(raw: Any) -> list[User]:
    """Normalize a list of users, dropping entries that normalize to ``None``."""
    if not isinstance(raw, list):
        return []
    users = (normalize_user(item) for item in raw)
    return [user for user in users if user is not None]


def normalize_note(raw: Any) -> JobNote | None:
    if isinstance(raw, JobNote):
        return raw
    if not isinstance(raw, Mapping) or not raw:
        return None
    return _validate_lenient(JobNote, raw)


def normalize_notes(raw: Any) -> list[JobNote]:
    if not isinstance(raw, list):
        return []
    notes = (normalize_note(item) for item in raw)
    return [note for note in notes if note is not None]
