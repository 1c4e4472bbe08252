"""Endpoint wrappers, one per REST resource."""

from jobsync.services.auth import AuthService, LoginResult
from jobsync.services.jobs import JobService

__all__ = ["AuthService", "JobService", "LoginResult"]
