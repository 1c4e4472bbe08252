"""Job, contact and note models."""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from typing import Any, ClassVar

from pydantic import BaseModel, Field, field_validator

from jobsync.models._base import CanonicalModel, field_sources, utc_now_iso
from jobsync.models.user import User


class JobStatus(StrEnum):
    SUBMITTED = "Submitted"
    ASSIGNED = "Assigned"
    ACCEPTED = "Accepted"
    REACHED_OUT = "Reached Out"
    APPT_SET = "Appt Set"
    SALE = "Sale"
    FOLLOW_UP = "Follow Up"
    EXPIRED = "Expired"
    COMPLETED = "Completed"
    INVOICED = "Invoiced"


class Urgency(StrEnum):
    IMMEDIATE = "Immediate"
    THIS_WEEK = "This week"
    THIS_MONTH = "This month"
    NO_RUSH = "No rush"


def _keep_mappings(value: Any) -> list[Any]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, (Mapping, BaseModel))]


class Contact(CanonicalModel):
    """An additional on-site contact for a job."""

    _FIELD_SOURCES: ClassVar[dict[str, tuple[str, ...]]] = field_sources("name", "phone", "email")

    name: str = ""
    phone: str = ""
    email: str = ""


class JobNote(CanonicalModel):
    """A free-text note attached to a job by a customer, vendor or admin."""

    _FIELD_SOURCES: ClassVar[dict[str, tuple[str, ...]]] = field_sources(
        "id",
        "jobId",
        "authorId",
        "content",
        "createdAt",
    )

    id: str = ""
    job_id: str = ""
    author_id: str = ""
    content: str = ""
    created_at: str = ""


class Job(CanonicalModel):
    """A service request and its lifecycle fields.

    Shape guarantees: ``photos``, ``contacts`` and ``notes`` are always
    lists, ``completed_photos`` is always a comma-joined string, ``status``
    and ``urgency`` are never empty, and ``customer``/``vendor`` are either
    normalized users or ``None``.
    """

    _FIELD_SOURCES: ClassVar[dict[str, tuple[str, ...]]] = field_sources(
        "id",
        "customerId",
        "customer",
        "vendorId",
        "vendor",
        "address",
        "contactPhone",
        "contactEmail",
        "contacts",
        "description",
        "photos",
        "urgency",
        "otherDetails",
        "status",
        "assignedAt",
        "acceptedAt",
        "scopeOfWork",
        "contractAmount",
        "workStartDate",
        "completedPhotos",
        "isInvoiced",
        "scheduledDate",
        "createdAt",
        "notes",
    )

    id: str = ""
    customer_id: str = ""
    customer: User | None = None
    vendor_id: str | None = None
    vendor: User | None = None
    address: str = ""
    contact_phone: str | None = None
    contact_email: str | None = None
    contacts: list[Contact] = Field(default_factory=list)
    description: str = ""
    photos: list[Any] = Field(default_factory=list)
    urgency: str = Urgency.NO_RUSH.value
    other_details: str | None = None
    status: str = JobStatus.SUBMITTED.value
    assigned_at: str | None = None
    accepted_at: str | None = None
    scope_of_work: str | None = None
    contract_amount: float | None = None
    work_start_date: str | None = None
    completed_photos: str = ""
    is_invoiced: bool | None = None
    scheduled_date: str | None = None
    created_at: str = Field(default_factory=utc_now_iso)
    notes: list[JobNote] = Field(default_factory=list)

    @field_validator("photos", mode="before")
    @classmethod
    def _split_photos(cls, value: Any) -> list[Any]:
        if isinstance(value, str):
            return [segment for segment in value.split(",") if segment]
        if isinstance(value, list):
            return list(value)
        return []

    @field_validator("completed_photos", mode="before")
    @classmethod
    def _join_completed_photos(cls, value: Any) -> str:
        if isinstance(value, str):
            return value
        if isinstance(value, list):
            return ",".join(str(item) for item in value)
        return ""

    @field_validator("contacts", "notes", mode="before")
    @classmethod
    def _lists_only(cls, value: Any) -> list[Any]:
        return _keep_mappings(value)

    @field_validator("customer", "vendor", mode="before")
    @classmethod
    def _normalize_party(cls, value: Any) -> Any:
        if isinstance(value, User):
            return value
        if not isinstance(value, Mapping) or not value:
            return None
        return value

    @property
    def completed_photo_urls(self) -> list[str]:
        return [segment for segment in self.completed_photos.split(",") if segment]

