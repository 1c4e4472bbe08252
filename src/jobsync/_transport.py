"""HTTP transport over aiohttp."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

import aiohttp

from jobsync.exceptions import TransportError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """Status and undecoded body of a completed HTTP exchange."""

    status: int
    text: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class Transport(Protocol):
    """Structural transport interface used by :class:`jobsync.api_client.ApiClient`.

    Having a protocol here makes it easy to pass test doubles while keeping
    the production implementation (:class:`AiohttpTransport`) concrete.
    Implementations raise :class:`~jobsync.exceptions.TransportError` for
    connection-level failures and return every HTTP status as a response.
    """

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: str | None = None,
    ) -> TransportResponse: ...


class AiohttpTransport:
    """Transport backed by a shared :class:`aiohttp.ClientSession`."""

    def __init__(self, http_session: aiohttp.ClientSession) -> None:
        self._http = http_session

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        body: str | None = None,
    ) -> TransportResponse:
        _logger.debug("%s %s", method, url)
        try:
            async with self._http.request(method, url, data=body, headers=dict(headers)) as resp:
                text = await resp.text()
                return TransportResponse(status=resp.status, text=text)
        except UnicodeDecodeError as exc:
            raise TransportError(f"{method} {url} returned an undecodable body: {exc}", endpoint=url) from exc
        except TimeoutError as exc:
            # aiohttp's own ClientTimeout surfaces as asyncio.TimeoutError.
            raise TransportError(f"{method} {url} timed out in the HTTP session", endpoint=url) from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"{method} {url} failed: {exc}", endpoint=url) from exc
