"""Job endpoints.

Each method maps onto exactly one REST call and returns the raw decoded
JSON; normalization and state reconciliation belong to
:class:`jobsync.state.job_store.JobStore`.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

from jobsync.api_client import ApiClient
from jobsync.models.requests import AddNoteRequest, AssignVendorRequest, JobIdRequest, SaleDetails

JOBS_ENDPOINT = "/jobs"


def _job_path(job_id: str, *suffix: str) -> str:
    request = JobIdRequest(job_id=job_id)
    parts = [JOBS_ENDPOINT, quote(request.job_id, safe=""), *suffix]
    return "/".join(parts)


class JobService:
    """Async wrappers for the ``/jobs`` resource."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    @property
    def client(self) -> ApiClient:
        return self._client

    async def get_jobs(self, bypass_cache: bool = False) -> Any:
        return await self._client.get(JOBS_ENDPOINT, bypass_cache)

    async def get_job(self, job_id: str) -> Any:
        return await self._client.get(_job_path(job_id))

    async def create_job(self, job_data: Mapping[str, Any]) -> Any:
        return await self._client.post(JOBS_ENDPOINT, dict(job_data))

    async def update_job(self, job_id: str, updates: Mapping[str, Any]) -> Any:
        return await self._client.put(_job_path(job_id), dict(updates))

    async def assign_vendor(self, job_id: str, vendor_id: str) -> Any:
        request = AssignVendorRequest(job_id=job_id, vendor_id=vendor_id)
        return await self._client.post(_job_path(request.job_id, "assign"), request.to_wire())

    async def accept_job(self, job_id: str) -> Any:
        return await self._client.post(_job_path(job_id, "accept"), {})

    async def add_note(self, job_id: str, content: str) -> Any:
        request = AddNoteRequest(job_id=job_id, content=content)
        return await self._client.post(_job_path(request.job_id, "notes"), request.to_wire())

    async def get_notes(self, job_id: str) -> Any:
        return await self._client.get(_job_path(job_id, "notes"))

    async def complete_sale(self, job_id: str, sale: SaleDetails) -> Any:
        return await self._client.post(_job_path(job_id, "complete-sale"), sale.to_wire())
