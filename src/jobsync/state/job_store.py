"""Local-first job collection.

:class:`JobStore` is the only component allowed to change the client-side
job collection. It loads cache-then-network, applies ``update_job``
optimistically with an exact rollback, and mirrors every confirmed change to
a persisted snapshot so the next start can display something immediately.

The collection is an immutable tuple of frozen :class:`~jobsync.models.Job`
values. Replacing the tuple is the only way state changes, which makes
"capture the state before an optimistic write" a plain reference copy and
"has anything changed since" an identity check.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from jobsync.config import JobsyncConfig
from jobsync.exceptions import JobNotFoundError, JobsyncError, StorageError
from jobsync.models._base import resolve_fields
from jobsync.models.job import Job, JobNote
from jobsync.models.requests import SaleDetails
from jobsync.normalize import normalize_job, normalize_jobs, normalize_note, normalize_notes
from jobsync.services.jobs import JobService
from jobsync.state._observable import ObservableStore
from jobsync.state.auth_store import AuthStore
from jobsync.state.scheduling import Defer, run_after_interactions
from jobsync.storage import KeyValueStorage

_logger = logging.getLogger(__name__)


class LoadPhase(StrEnum):
    UNINITIALIZED = "uninitialized"
    HYDRATING = "hydrating"
    SNAPSHOT = "snapshot"
    REFRESHING = "refreshing"
    READY = "ready"


def _wire_value(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, list):
        return [_wire_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(k): _wire_value(v) for k, v in value.items()}
    return value


def job_payload(data: Job | Mapping[str, Any]) -> dict[str, Any]:
    """Canonical camelCase request body for a full or partial job."""
    if isinstance(data, Job):
        return data.to_wire()
    return _wire_value(resolve_fields(data, Job._FIELD_SOURCES))


class JobStore(ObservableStore):
    """Authoritative client-side view of the job collection.

    Parameters
    ----------
    service : JobService
        Endpoint wrapper used for every network call.
    storage : KeyValueStorage
        Where the collection snapshot is persisted.
    auth : AuthStore
        Session gate; nothing is loaded while signed out.
    defer : Defer
        Scheduling hint for the network phase of :meth:`load_jobs`.
    """

    def __init__(
        self,
        service: JobService,
        storage: KeyValueStorage,
        auth: AuthStore,
        *,
        config: JobsyncConfig | None = None,
        defer: Defer = run_after_interactions,
    ) -> None:
        super().__init__()
        self._service = service
        self._storage = storage
        self._auth = auth
        self._config = config or service.client.config
        self._defer = defer
        self._jobs: tuple[Job, ...] = ()
        self._index: dict[str, Job] = {}
        self._is_loading = True
        self._error: str | None = None
        self._phase = LoadPhase.UNINITIALIZED
        self._background: set[asyncio.Task[None]] = set()
        # Rejected optimistic values, keyed by identity, mapped to the value
        # they replaced. Kept until no update is in flight.
        self._reverts: dict[int, tuple[Job, Job]] = {}
        self._updates_in_flight = 0

    # ------------------------------------------------------------------
    # Consumer-facing state
    # ------------------------------------------------------------------

    @property
    def jobs(self) -> list[Job]:
        return list(self._jobs)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def phase(self) -> LoadPhase:
        return self._phase

    def get_job_by_id(self, job_id: str) -> Job | None:
        return self._index.get(str(job_id))

    # ------------------------------------------------------------------
    # State helpers
    # ------------------------------------------------------------------

    def _set_jobs(self, jobs: Iterable[Job]) -> None:
        self._jobs = jobs if isinstance(jobs, tuple) else tuple(jobs)
        # First occurrence wins for duplicate ids.
        self._index = {job.id: job for job in reversed(self._jobs)}

    def _splice(self, job: Job) -> None:
        """Replace the job with the same id, or prepend it if unknown."""
        if job.id in self._index:
            self._set_jobs(job if existing.id == job.id else existing for existing in self._jobs)
        else:
            self._set_jobs((job, *self._jobs))

    def _fail(self, exc: Exception) -> None:
        if not self._alive:
            return
        self._error = str(exc)
        self._notify()

    def _succeed(self) -> None:
        self._error = None
        self._notify()

    # ------------------------------------------------------------------
    # Snapshot persistence
    # ------------------------------------------------------------------

    async def _read_snapshot(self) -> list[Job] | None:
        """Read the persisted collection; any failure means "no snapshot"."""
        try:
            raw = await self._storage.get_item(self._config.jobs_cache_key)
        except StorageError:
            _logger.warning("Could not read job snapshot", exc_info=True)
            return None
        if not raw:
            return None
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            _logger.warning("Job snapshot is corrupted; falling through to network")
            return None
        if not isinstance(data, list):
            _logger.warning("Job snapshot is not a list; falling through to network")
            return None
        return normalize_jobs(data)

    async def _write_snapshot(self) -> None:
        payload = json.dumps([job.to_wire() for job in self._jobs], separators=(",", ":"))
        await self._storage.set_item(self._config.jobs_cache_key, payload)

    async def _persist_best_effort(self) -> None:
        try:
            await self._write_snapshot()
        except StorageError:
            _logger.warning("Could not persist job snapshot", exc_info=True)

    def _schedule_persist(self) -> None:
        task = asyncio.create_task(self._persist_best_effort())
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _persist_after_write(self) -> None:
        """Persist after a user-initiated change; failures are surfaced."""
        try:
            await self._write_snapshot()
        except StorageError as exc:
            self._fail(exc)
            raise

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load_jobs(self, refresh: bool = False) -> None:
        """Display the persisted snapshot, then replace it with the live collection.

        Network failures are recorded in :attr:`error` and not raised; the
        displayed collection is kept.
        """
        try:
            await self._load(refresh=refresh)
        except JobsyncError:
            _logger.debug("Job load failed; keeping displayed collection", exc_info=True)

    async def refresh_jobs(self) -> None:
        """Reload from the network, bypassing the snapshot and the HTTP cache.

        Unlike :meth:`load_jobs`, failures are re-raised after being recorded.
        """
        await self._load(refresh=True)

    async def _load(self, *, refresh: bool) -> None:
        if not self._auth.is_authenticated:
            self._is_loading = False
            self._notify()
            return

        if refresh:
            self._is_loading = True
            self._notify()
        else:
            self._phase = LoadPhase.HYDRATING
            snapshot = await self._read_snapshot()
            if not self._alive:
                return
            if snapshot is not None:
                self._set_jobs(snapshot)
                self._phase = LoadPhase.SNAPSHOT
                self._is_loading = False
                self._notify()

        await self._defer(lambda: self._fetch_remote(bypass_cache=refresh))

    async def _fetch_remote(self, *, bypass_cache: bool) -> None:
        if not self._alive:
            return
        self._phase = LoadPhase.REFRESHING
        try:
            raw = await self._service.get_jobs(bypass_cache=bypass_cache)
        except JobsyncError as exc:
            if self._alive:
                self._phase = LoadPhase.READY
                self._is_loading = False
                self._fail(exc)
            raise

        if not self._alive:
            return
        self._set_jobs(normalize_jobs(raw))
        self._phase = LoadPhase.READY
        self._is_loading = False
        self._succeed()
        self._schedule_persist()

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def add_job(self, data: Job | Mapping[str, Any]) -> Job:
        """Create a job on the server, then prepend the confirmed job.

        Nothing is inserted before the server answers: the id is assigned
        server-side.
        """
        try:
            raw = await self._service.create_job(job_payload(data))
        except JobsyncError as exc:
            self._fail(exc)
            raise

        job = normalize_job(raw)
        if not self._alive:
            return job
        self._set_jobs((job, *self._jobs))
        self._succeed()
        await self._persist_after_write()
        return job

    async def update_job(self, job_id: str, updates: Job | Mapping[str, Any]) -> Job:
        """Apply *updates* locally at once, then confirm with the server.

        On failure the collection is rolled back to exactly what it was when
        this call started.
        """
        job_id = str(job_id)
        # Captured before the first await: the rollback target is the state
        # at call time, never an older reference.
        before = self._jobs
        original = self._index.get(job_id)
        if original is None:
            raise JobNotFoundError(job_id)

        patch = job_payload(updates)
        optimistic = normalize_job({**original.to_wire(), **patch})
        pending = tuple(optimistic if job is original else job for job in before)
        self._set_jobs(pending)
        self._notify()

        self._updates_in_flight += 1
        try:
            raw = await self._service.update_job(job_id, patch)
        except JobsyncError as exc:
            if self._alive:
                self._rollback(before=before, pending=pending, original=original, optimistic=optimistic)
                self._fail(exc)
            raise
        finally:
            self._updates_in_flight -= 1
            if not self._updates_in_flight:
                self._reverts.clear()

        confirmed = normalize_job(raw)
        if not self._alive:
            return confirmed
        self._splice(confirmed)
        self._succeed()
        await self._persist_after_write()
        return confirmed

    def _rollback(
        self,
        *,
        before: tuple[Job, ...],
        pending: tuple[Job, ...],
        original: Job,
        optimistic: Job,
    ) -> None:
        self._reverts[id(optimistic)] = (optimistic, original)
        if self._jobs is pending:
            self._set_jobs(self._without_rejected(before))
            return
        # Another change landed during the round-trip. Restoring `before`
        # wholesale would undo it, so only rejected values are reverted.
        # If a newer update covers this one, the recorded revert is applied
        # when that update settles.
        _logger.warning(
            "Job collection changed while update of job %s was in flight; reverting rejected values only",
            original.id,
        )
        self._set_jobs(self._without_rejected(self._jobs))

    def _resolve_rejected(self, job: Job) -> Job:
        while id(job) in self._reverts:
            job = self._reverts[id(job)][1]
        return job

    def _without_rejected(self, jobs: tuple[Job, ...]) -> tuple[Job, ...]:
        """Replace every rejected optimistic value in *jobs* with what it replaced."""
        resolved = tuple(self._resolve_rejected(job) for job in jobs)
        if all(a is b for a, b in zip(resolved, jobs)):
            return jobs
        return resolved

    async def _transition(self, call: Callable[[], Awaitable[Any]]) -> Job:
        """Run a server-side state transition and splice in the result."""
        try:
            raw = await call()
        except JobsyncError as exc:
            self._fail(exc)
            raise

        job = normalize_job(raw)
        if not self._alive:
            return job
        self._splice(job)
        self._succeed()
        await self._persist_after_write()
        return job

    async def assign_vendor(self, job_id: str, vendor_id: str) -> Job:
        return await self._transition(lambda: self._service.assign_vendor(job_id, vendor_id))

    async def accept_job(self, job_id: str) -> Job:
        return await self._transition(lambda: self._service.accept_job(job_id))

    async def complete_sale(self, job_id: str, sale_data: SaleDetails | Mapping[str, Any]) -> Job:
        sale = sale_data if isinstance(sale_data, SaleDetails) else SaleDetails.model_validate(sale_data)
        return await self._transition(lambda: self._service.complete_sale(job_id, sale))

    async def fetch_job(self, job_id: str) -> Job:
        """Re-read one job from the server and splice it into the collection."""
        return await self._transition(lambda: self._service.get_job(job_id))

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    async def add_note(self, job_id: str, content: str) -> JobNote | None:
        """Post a note and append the server's copy to the job's notes."""
        job_id = str(job_id)
        try:
            raw = await self._service.add_note(job_id, content)
        except JobsyncError as exc:
            self._fail(exc)
            raise

        note = normalize_note(raw)
        if note is None or not self._alive:
            return note
        job = self._index.get(job_id)
        if job is not None:
            self._splice(job.model_copy(update={"notes": [*job.notes, note]}))
            self._succeed()
            await self._persist_after_write()
        return note

    async def get_notes(self, job_id: str) -> list[JobNote]:
        try:
            raw = await self._service.get_notes(str(job_id))
        except JobsyncError as exc:
            self._fail(exc)
            raise
        return normalize_notes(raw)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait for background snapshot writes to finish."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def close(self) -> None:
        """Stop applying asynchronous completions and cancel background writes."""
        self._mark_closed()
        for task in list(self._background):
            task.cancel()
