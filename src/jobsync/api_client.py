"""Caching, de-duplicating HTTP client for the marketplace REST API.

Every network call in the package goes through :class:`ApiClient`, which
layers four behaviours over a :class:`~jobsync._transport.Transport`:

* GET responses are cached per endpoint for ``config.cache_ttl`` seconds;
* concurrent GETs for the same endpoint share one in-flight request;
* every call is abandoned after ``config.request_timeout`` seconds;
* a successful POST/PUT/DELETE evicts cached GETs under the same resource
  prefix (``/jobs/42/assign`` evicts everything under ``/jobs``).

The client never retries. Failures surface as
:class:`~jobsync.exceptions.TransportError`,
:class:`~jobsync.exceptions.RequestTimeoutError` or
:class:`~jobsync.exceptions.ApiError`.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

import aiohttp

from jobsync._cache import ResponseCache, invalidation_prefix
from jobsync._constants import AUTH_FAILURE_STATUSES, MUTATING_METHODS, PLAIN_TEXT_ERROR_MAX_LEN
from jobsync._redact import redact_for_log
from jobsync._transport import AiohttpTransport, Transport, TransportResponse
from jobsync.config import JobsyncConfig
from jobsync.exceptions import (
    ApiError,
    AuthenticationError,
    JobsyncError,
    RequestTimeoutError,
    StorageError,
    TransportError,
)
from jobsync.storage import KeyValueStorage

_logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out"


def extract_error_message(status: int, text: str | None) -> str:
    """Build a human-readable message from a non-2xx response body.

    Preference order: a ``message`` field; a ``{field: [errors]}`` map under
    ``errors`` rendered as ``"field: first error"`` joined with ``", "``; an
    ``error`` field; a short plain-text body; finally a generic status line.
    """
    fallback = f"HTTP error! status: {status}"
    if not text:
        return fallback
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        if len(text) < PLAIN_TEXT_ERROR_MAX_LEN:
            return text
        return fallback

    if not isinstance(body, Mapping):
        return fallback

    message = body.get("message")
    if message:
        return str(message)

    errors = body.get("errors")
    if isinstance(errors, Mapping):
        details: list[str] = []
        for field_name, messages in errors.items():
            if isinstance(messages, list):
                if not messages:
                    continue
                first = messages[0]
            else:
                first = messages
            details.append(f"{field_name}: {first}")
        if details:
            return ", ".join(details)

    error = body.get("error")
    if error:
        return str(error)

    return fallback


def _discard_result(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        _logger.debug("Abandoned request finished with %r", exc)


class ApiClient:
    """Async client for the marketplace REST API.

    Usage::

        async with ApiClient(config, storage) as client:
            jobs = await client.get("/jobs")

    Each instance owns its response cache and in-flight request map, so
    separate instances (one per test, one per signed-in account) never share
    state.
    """

    def __init__(
        self,
        config: JobsyncConfig,
        storage: KeyValueStorage,
        *,
        transport: Transport | None = None,
        session: aiohttp.ClientSession | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._config = config
        self._storage = storage
        self._external_session = session is not None
        self._http_session = session
        self._transport: Transport | None = transport
        if transport is None and session is not None:
            self._transport = AiohttpTransport(session)
        self._cache = ResponseCache(config.cache_ttl, clock=clock)
        self._pending: dict[str, asyncio.Task[Any]] = {}
        self._abandoned: set[asyncio.Future[Any]] = set()

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ApiClient:
        if self._transport is None:
            self._http_session = aiohttp.ClientSession()
            self._transport = AiohttpTransport(self._http_session)
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Cancel abandoned requests and close the owned HTTP session."""
        for task in list(self._abandoned):
            task.cancel()
        self._abandoned.clear()
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
            self._transport = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def config(self) -> JobsyncConfig:
        return self._config

    @property
    def in_flight(self) -> tuple[str, ...]:
        """Endpoints with a GET currently on the wire."""
        return tuple(self._pending)

    async def get(self, endpoint: str, bypass_cache: bool = False) -> Any:
        """GET *endpoint*, serving a fresh cached body when allowed."""
        if not bypass_cache:
            hit, data = self._cache.get_fresh(endpoint)
            if hit:
                _logger.debug("Cache hit for GET %s", endpoint)
                return data
            pending = self._pending.get(endpoint)
            if pending is not None:
                _logger.debug("Joining in-flight GET %s", endpoint)
                return await asyncio.shield(pending)

        task = asyncio.create_task(self._run_get(endpoint))
        self._pending[endpoint] = task
        return await asyncio.shield(task)

    async def post(self, endpoint: str, body: Any) -> Any:
        return await self._send("POST", endpoint, body)

    async def put(self, endpoint: str, body: Any) -> Any:
        return await self._send("PUT", endpoint, body)

    async def delete(self, endpoint: str) -> Any:
        return await self._send("DELETE", endpoint)

    def clear_cache(self) -> None:
        """Drop every cached response (in-flight requests are unaffected)."""
        self._cache.clear()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_transport(self) -> Transport:
        if self._transport is None:
            raise JobsyncError("Client not initialized. Use 'async with ApiClient(...) as client:'")
        return self._transport

    async def _run_get(self, endpoint: str) -> Any:
        try:
            data = await self._send("GET", endpoint)
            self._cache.store(endpoint, data)
            return data
        finally:
            # A bypass-cache GET may have replaced this task in the map.
            if self._pending.get(endpoint) is asyncio.current_task():
                del self._pending[endpoint]

    async def _build_headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self._config.user_agent,
        }
        try:
            token = await self._storage.get_item(self._config.auth_token_key)
        except StorageError:
            _logger.warning("Could not read auth token; sending request without it", exc_info=True)
            token = None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _send(self, method: str, endpoint: str, body: Any = None) -> Any:
        transport = self._require_transport()
        headers = await self._build_headers()
        url = f"{self._config.base_url}{endpoint}"
        payload = json.dumps(body) if body is not None else None

        if self._config.api_trace_enabled:
            _logger.debug(
                "API request %s %s headers=%s body=%s",
                method,
                endpoint,
                redact_for_log(headers),
                redact_for_log(body),
            )

        response = await self._with_timeout(
            transport.request(method, url, headers=headers, body=payload),
            endpoint=endpoint,
        )

        if not response.ok:
            message = extract_error_message(response.status, response.text)
            _logger.warning("API error [%s] %s %s: %s", response.status, method, endpoint, message)
            error_cls = AuthenticationError if response.status in AUTH_FAILURE_STATUSES else ApiError
            raise error_cls(message, status_code=response.status, endpoint=endpoint)

        data = self._decode_body(response, endpoint)

        if self._config.api_trace_enabled:
            _logger.debug("API response %s %s: %s", method, endpoint, redact_for_log(data))

        if method in MUTATING_METHODS:
            prefix = invalidation_prefix(endpoint)
            evicted = self._cache.invalidate_prefix(prefix)
            if evicted:
                _logger.debug("%s %s invalidated %d cached GETs under %s", method, endpoint, len(evicted), prefix)

        return data

    async def _with_timeout(self, request: Any, *, endpoint: str) -> TransportResponse:
        """Race *request* against the configured timeout.

        On expiry the request task is left running and its outcome is
        discarded; only cancellation of the caller cancels it.
        """
        task: asyncio.Future[TransportResponse] = asyncio.ensure_future(request)
        try:
            done, _ = await asyncio.wait({task}, timeout=self._config.request_timeout)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not done:
            self._abandoned.add(task)
            task.add_done_callback(self._abandoned.discard)
            task.add_done_callback(_discard_result)
            _logger.warning("Request to %s timed out after %.1fs", endpoint, self._config.request_timeout)
            raise RequestTimeoutError(TIMEOUT_MESSAGE, endpoint=endpoint)
        return task.result()

    @staticmethod
    def _decode_body(response: TransportResponse, endpoint: str) -> Any:
        if not response.text or not response.text.strip():
            return None
        try:
            return json.loads(response.text)
        except json.JSONDecodeError as exc:
            raise TransportError(
                f"Invalid JSON from {endpoint}: {response.text[:200]}",
                endpoint=endpoint,
            ) from exc
