"""jobsync - Async client-side data layer for a services marketplace API."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("jobsync")
except PackageNotFoundError:
    __version__ = "0+local"
from jobsync.api_client import ApiClient, extract_error_message
from jobsync.config import JobsyncConfig
from jobsync.exceptions import (
    ApiError,
    AuthenticationError,
    JobNotFoundError,
    JobsyncConfigError,
    JobsyncError,
    RequestTimeoutError,
    StorageError,
    TransportError,
)
from jobsync.models import (
    Contact,
    Job,
    JobNote,
    JobStatus,
    SaleDetails,
    Urgency,
    User,
    UserRole,
)
from jobsync.normalize import normalize_job, normalize_jobs, normalize_user
from jobsync.services import AuthService, JobService
from jobsync.state import AuthStore, JobStore, LoadPhase
from jobsync.storage import JsonFileStorage, KeyValueStorage, MemoryStorage

__all__ = [
    "__version__",
    "ApiClient",
    "ApiError",
    "AuthService",
    "AuthStore",
    "AuthenticationError",
    "Contact",
    "Job",
    "JobNote",
    "JobNotFoundError",
    "JobService",
    "JobStatus",
    "JobStore",
    "JobsyncConfig",
    "JobsyncConfigError",
    "JobsyncError",
    "JsonFileStorage",
    "KeyValueStorage",
    "LoadPhase",
    "MemoryStorage",
    "RequestTimeoutError",
    "SaleDetails",
    "StorageError",
    "TransportError",
    "Urgency",
    "User",
    "UserRole",
    "extract_error_message",
    "normalize_job",
    "normalize_jobs",
    "normalize_user",
]
