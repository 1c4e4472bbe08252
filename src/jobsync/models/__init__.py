"""Canonical data models for marketplace entities."""

from jobsync.models._base import CanonicalModel, field_sources, is_meaningful, resolve_fields, source_keys
from jobsync.models.job import Contact, Job, JobNote, JobStatus, Urgency
from jobsync.models.requests import (
    AddNoteRequest,
    ApprovalRequest,
    AssignVendorRequest,
    JobIdRequest,
    LoginRequest,
    SaleDetails,
    SignupRequest,
)
from jobsync.models.user import User, UserRole

__all__ = [
    "AddNoteRequest",
    "ApprovalRequest",
    "AssignVendorRequest",
    "CanonicalModel",
    "Contact",
    "Job",
    "JobIdRequest",
    "JobNote",
    "JobStatus",
    "LoginRequest",
    "SaleDetails",
    "SignupRequest",
    "Urgency",
    "User",
    "UserRole",
    "field_sources",
    "is_meaningful",
    "resolve_fields",
    "source_keys",
]
