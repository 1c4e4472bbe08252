"""User model."""

from __future__ import annotations

from enum import StrEnum
from typing import ClassVar

from jobsync.models._base import CanonicalModel, field_sources


class UserRole(StrEnum):
    ADMIN = "Admin"
    VENDOR = "Vendor"
    CUSTOMER = "Customer"
    REALTOR = "Realtor"
    PROPERTY_MANAGER = "Property manager"
    BUSINESS = "Business"
    HOME_OWNER = "Home Owner"
    LANDLORD = "Landlord"
    OTHER = "Other"


class User(CanonicalModel):
    """A marketplace account (customer, vendor or admin)."""

    _FIELD_SOURCES: ClassVar[dict[str, tuple[str, ...]]] = field_sources(
        "id",
        "name",
        "email",
        "phone",
        "address",
        "role",
        "isApproved",
    )

    id: str = ""
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""
    role: str | None = None
    """One of :class:`UserRole` for known roles; unknown roles are kept verbatim."""
    is_approved: bool | None = None
    """Vendor approval flag; ``None`` for roles that are never approved."""

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_vendor(self) -> bool:
        return self.role == UserRole.VENDOR
