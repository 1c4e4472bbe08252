"""Client configuration for jobsync."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from jobsync._constants import (
    AUTH_TOKEN_KEY,
    BASE_URL,
    CACHE_TTL_SECONDS,
    CURRENT_USER_KEY,
    JOBS_CACHE_KEY,
    REQUEST_TIMEOUT_SECONDS,
    USER_AGENT,
)
from jobsync.exceptions import JobsyncConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class JobsyncConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        REST API base URL; endpoints are appended verbatim.
    cache_ttl : float
        Seconds a cached GET response is served without a network call.
        ``0`` disables cache hits (responses are still stored).
    request_timeout : float
        Seconds before a network call fails with
        :class:`~jobsync.exceptions.RequestTimeoutError`.
    user_agent : str
        ``User-Agent`` header sent with every request.
    auth_token_key : str
        Storage key holding the bearer token.
    current_user_key : str
        Storage key holding the signed-in user snapshot.
    jobs_cache_key : str
        Storage key holding the persisted job collection.
    api_trace_enabled : bool
        Log redacted request and response bodies at DEBUG level.
    """

    base_url: str = BASE_URL
    cache_ttl: float = CACHE_TTL_SECONDS
    request_timeout: float = REQUEST_TIMEOUT_SECONDS
    user_agent: str = USER_AGENT
    auth_token_key: str = AUTH_TOKEN_KEY
    current_user_key: str = CURRENT_USER_KEY
    jobs_cache_key: str = JOBS_CACHE_KEY
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if self.cache_ttl < 0:
            raise JobsyncConfigError(f"cache_ttl must be >= 0, got {self.cache_ttl}")
        if self.request_timeout <= 0:
            raise JobsyncConfigError(f"request_timeout must be > 0, got {self.request_timeout}")
        if not self.base_url:
            raise JobsyncConfigError("base_url must be non-empty")
        # Endpoints always start with "/", so a trailing slash would double up.
        object.__setattr__(self, "base_url", self.base_url.rstrip("/"))

    @classmethod
    def from_env(cls, **overrides: Any) -> JobsyncConfig:
        """Create configuration from ``JOBSYNC_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "JOBSYNC_BASE_URL": "base_url",
            "JOBSYNC_USER_AGENT": "user_agent",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        ttl_env = env.get("JOBSYNC_CACHE_TTL")
        if ttl_env is not None and "cache_ttl" not in overrides:
            try:
                config_kwargs["cache_ttl"] = float(ttl_env)
            except ValueError as exc:
                raise JobsyncConfigError(f"JOBSYNC_CACHE_TTL is not a number: {ttl_env!r}") from exc

        timeout_env = env.get("JOBSYNC_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise JobsyncConfigError(f"JOBSYNC_REQUEST_TIMEOUT is not a number: {timeout_env!r}") from exc

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(env.get("JOBSYNC_API_TRACE_ENABLED"), False)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
