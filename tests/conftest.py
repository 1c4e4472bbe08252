from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any

import pytest

from jobsync._transport import TransportResponse
from jobsync.api_client import ApiClient
from jobsync.config import JobsyncConfig
from jobsync.services.auth import AuthService
from jobsync.services.jobs import JobService
from jobsync.state.auth_store import AuthStore
from jobsync.state.job_store import JobStore
from jobsync.state.scheduling import run_immediately
from jobsync.storage import MemoryStorage

BASE_URL = "https://api.example.test/api"


@dataclass
class RecordedCall:
    method: str
    path: str
    headers: dict[str, str]
    body: Any


@dataclass
class FakeBackend:
    """Transport double routing ``(method, path)`` to canned responses.

    A route holds a queue; the last queued response is sticky. Unknown routes
    answer 404 with a plain-text body.
    """

    calls: list[RecordedCall] = field(default_factory=list)
    gate: asyncio.Event | None = None
    _routes: dict[tuple[str, str], list[TransportResponse | Exception]] = field(default_factory=dict)

    def respond(self, method: str, path: str, body: Any = None, *, status: int = 200, text: str | None = None) -> None:
        if text is None:
            text = "" if body is None else json.dumps(body)
        self._routes.setdefault((method, path), []).append(TransportResponse(status=status, text=text))

    def fail(self, method: str, path: str, exc: Exception) -> None:
        self._routes.setdefault((method, path), []).append(exc)

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call.method == method and call.path == path)

    async def wait_for(self, method: str, path: str, count: int = 1) -> None:
        """Yield to the loop until *count* matching requests have arrived."""
        for _ in range(100):
            if self.count(method, path) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"{method} {path} was not requested {count} time(s)")

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str],
        body: str | None = None,
    ) -> TransportResponse:
        path = url.removeprefix(BASE_URL)
        self.calls.append(
            RecordedCall(
                method=method,
                path=path,
                headers=dict(headers),
                body=json.loads(body) if body else None,
            )
        )
        if self.gate is not None:
            await self.gate.wait()
        queue = self._routes.get((method, path))
        if not queue:
            return TransportResponse(status=404, text="Not Found")
        response = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(response, Exception):
            raise response
        return response


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def config() -> JobsyncConfig:
    return JobsyncConfig(base_url=BASE_URL)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def client(config: JobsyncConfig, storage: MemoryStorage, backend: FakeBackend, clock: FakeClock) -> ApiClient:
    return ApiClient(config, storage, transport=backend, clock=clock)


@pytest.fixture
def auth_store(client: ApiClient, storage: MemoryStorage) -> AuthStore:
    return AuthStore(AuthService(client), storage)


@pytest.fixture
def job_store(client: ApiClient, storage: MemoryStorage, auth_store: AuthStore) -> JobStore:
    return JobStore(JobService(client), storage, auth_store, defer=run_immediately)


@pytest.fixture
def signed_in(storage: MemoryStorage) -> dict[str, Any]:
    """Seed storage with a persisted session; call ``auth_store.restore()`` to pick it up."""
    user = {"id": "7", "name": "Cora", "role": "Customer"}
    storage._items.update(  # noqa: SLF001
        {
            "@auth_token": "tok-1",
            "@current_user": json.dumps(user),
        }
    )
    return user
