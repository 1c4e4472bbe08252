"""Custom exception hierarchy for jobsync."""

from __future__ import annotations


class JobsyncError(Exception):
    """Base exception for all jobsync errors."""


class JobsyncConfigError(JobsyncError):
    """Invalid or missing configuration."""


class TransportError(JobsyncError):
    """Network-level failure (connection refused, DNS, invalid JSON body)."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class RequestTimeoutError(TransportError):
    """The request did not settle within the configured timeout.

    The underlying request is not cancelled at the transport level; its
    eventual result is discarded.
    """


class ApiError(JobsyncError):
    """Server answered with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class AuthenticationError(ApiError):
    """Credentials rejected or bearer token no longer accepted (401/403)."""


class StorageError(JobsyncError):
    """Local key-value storage could not be read, parsed or written."""


class JobNotFoundError(JobsyncError):
    """A local mutation referenced a job id that is not in the collection."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")
