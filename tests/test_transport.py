from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from typing import Any

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from jobsync._transport import AiohttpTransport
from jobsync.api_client import ApiClient
from jobsync.config import JobsyncConfig
from jobsync.exceptions import ApiError, TransportError
from jobsync.services.auth import AuthService
from jobsync.services.jobs import JobService
from jobsync.state.auth_store import AuthStore
from jobsync.state.job_store import JobStore
from jobsync.state.scheduling import run_immediately
from jobsync.storage import MemoryStorage

SESSION = {
    "@auth_token": "tok-1",
    "@current_user": '{"id": "7", "name": "Cora"}',
}


def _make_app(seen: list[dict[str, Any]]) -> web.Application:
    async def jobs(request: web.Request) -> web.Response:
        seen.append({"method": request.method, "headers": dict(request.headers)})
        return web.json_response([{"Id": 1, "Description": "Leak"}])

    async def register(request: web.Request) -> web.Response:
        return web.json_response({"errors": {"email": ["is invalid"]}}, status=422)

    async def garbled(request: web.Request) -> web.Response:
        return web.Response(body=b'[{"id": "\xff"}]', content_type="application/json", charset="utf-8")

    async def slow(request: web.Request) -> web.Response:
        await asyncio.sleep(0.5)
        return web.json_response([])

    app = web.Application()
    app.router.add_get("/api/jobs", jobs)
    app.router.add_post("/api/auth/register", register)
    app.router.add_get("/api/garbled", garbled)
    app.router.add_get("/api/slow", slow)
    return app


@pytest.fixture
def seen() -> list[dict[str, Any]]:
    return []


@pytest_asyncio.fixture
async def server(seen: list[dict[str, Any]]) -> AsyncIterator[TestServer]:
    test_server = TestServer(_make_app(seen), host="127.0.0.1")
    await test_server.start_server()
    yield test_server
    await test_server.close()


def _config(test_server: TestServer) -> JobsyncConfig:
    return JobsyncConfig(base_url=str(test_server.make_url("/api")))


@pytest.mark.asyncio
async def test_transport_returns_status_and_text(server: TestServer) -> None:
    async with aiohttp.ClientSession() as session:
        transport = AiohttpTransport(session)

        ok = await transport.request("GET", str(server.make_url("/api/jobs")), headers={})
        missing = await transport.request("GET", str(server.make_url("/api/nope")), headers={})

    assert ok.status == 200
    assert ok.ok
    assert '"Description": "Leak"' in ok.text
    assert missing.status == 404
    assert not missing.ok


@pytest.mark.asyncio
async def test_client_owns_session_and_sends_bearer_token(server: TestServer, seen: list[dict[str, Any]]) -> None:
    storage = MemoryStorage({"@auth_token": "tok-1"})

    async with ApiClient(_config(server), storage) as client:
        session = client._http_session  # noqa: SLF001
        assert await client.get("/jobs") == [{"Id": 1, "Description": "Leak"}]

    assert session is not None
    assert session.closed
    assert seen[0]["headers"]["Authorization"] == "Bearer tok-1"
    assert seen[0]["headers"]["Accept"] == "application/json"


@pytest.mark.asyncio
async def test_client_leaves_external_session_open(server: TestServer) -> None:
    async with aiohttp.ClientSession() as session:
        client = ApiClient(_config(server), MemoryStorage(), session=session)
        await client.get("/jobs")
        await client.close()

        assert not session.closed


@pytest.mark.asyncio
async def test_error_body_from_server_becomes_api_error(server: TestServer) -> None:
    async with ApiClient(_config(server), MemoryStorage()) as client:
        with pytest.raises(ApiError) as exc_info:
            await client.post("/auth/register", {"email": "x"})

    assert str(exc_info.value) == "email: is invalid"
    assert exc_info.value.status_code == 422


@pytest.mark.asyncio
async def test_undecodable_body_is_a_transport_error(server: TestServer) -> None:
    async with ApiClient(_config(server), MemoryStorage()) as client:
        with pytest.raises(TransportError, match="undecodable"):
            await client.get("/garbled")


@pytest.mark.asyncio
async def test_refused_connection_is_a_transport_error() -> None:
    closed_server = TestServer(web.Application(), host="127.0.0.1")
    await closed_server.start_server()
    url = str(closed_server.make_url("/api"))
    await closed_server.close()

    async with ApiClient(JobsyncConfig(base_url=url), MemoryStorage()) as client:
        with pytest.raises(TransportError):
            await client.get("/jobs")
        assert client.in_flight == ()


@pytest.mark.asyncio
async def test_job_load_records_undecodable_body_instead_of_raising(server: TestServer) -> None:
    storage = MemoryStorage(SESSION)
    async with ApiClient(_config(server), storage) as client:
        auth = AuthStore(AuthService(client), storage)
        await auth.restore()
        jobs = _GarbledJobService(client)
        store = JobStore(jobs, storage, auth, defer=run_immediately)

        await store.load_jobs()

    assert store.is_loading is False
    assert store.error is not None
    assert "undecodable" in store.error
    assert store.jobs == []


class _GarbledJobService(JobService):
    """Reads the job collection from an endpoint serving invalid UTF-8."""

    async def get_jobs(self, bypass_cache: bool = False) -> Any:
        return await self.client.get("/garbled", bypass_cache)


@pytest.mark.asyncio
async def test_session_timeout_is_a_transport_error(server: TestServer) -> None:
    timeout = aiohttp.ClientTimeout(total=0.05)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        transport = AiohttpTransport(session)

        with pytest.raises(TransportError):
            await transport.request("GET", str(server.make_url("/api/slow")), headers={})
