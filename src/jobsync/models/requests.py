"""Pydantic request models for store and service entrypoints.

These models provide a consistent "validate -> serialize -> send" flow:
callers may pass snake_case or camelCase keys, and the wire body is always
the camelCase form the server expects.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _RequestModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        str_strip_whitespace=True,
    )

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class JobIdRequest(_RequestModel):
    """Request addressing a single job."""

    job_id: str

    @field_validator("job_id", mode="before")
    @classmethod
    def _job_id_non_empty(cls, value: Any) -> str:
        job_id = str(value).strip() if value is not None else ""
        if not job_id:
            raise ValueError("job_id must be non-empty")
        return job_id


class AssignVendorRequest(JobIdRequest):
    vendor_id: str = Field(min_length=1)

    def to_wire(self) -> dict[str, Any]:
        return {"vendorId": self.vendor_id}


class AddNoteRequest(JobIdRequest):
    content: str = Field(min_length=1)

    def to_wire(self) -> dict[str, Any]:
        return {"content": self.content}


class SaleDetails(_RequestModel):
    """Details a vendor records when a job converts into a sale."""

    scope_of_work: str = Field(min_length=1)
    contract_amount: float = Field(ge=0)
    work_start_date: str = Field(min_length=1)


class LoginRequest(_RequestModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: str | None = None


class SignupRequest(_RequestModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
    role: str
    address: str = ""
    phone: str = ""
    referral_source: str = ""
    role_other: str | None = None


class ApprovalRequest(_RequestModel):
    is_approved: bool
