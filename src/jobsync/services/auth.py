"""Account and vendor-administration endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from jobsync.api_client import ApiClient
from jobsync.exceptions import ApiError
from jobsync.models.requests import ApprovalRequest, LoginRequest, SignupRequest

LOGIN_ENDPOINT = "/auth/login"
REGISTER_ENDPOINT = "/auth/register"
USERS_ENDPOINT = "/users"


@dataclass(frozen=True, slots=True)
class LoginResult:
    """Bearer token and raw user payload returned by a successful login."""

    token: str
    user: Any


def _user_path(user_id: str, *suffix: str) -> str:
    return "/".join([USERS_ENDPOINT, quote(str(user_id), safe=""), *suffix])


class AuthService:
    """Async wrappers for ``/auth`` and ``/users``."""

    def __init__(self, client: ApiClient) -> None:
        self._client = client

    @property
    def client(self) -> ApiClient:
        return self._client

    async def login(self, request: LoginRequest) -> LoginResult:
        body = await self._client.post(LOGIN_ENDPOINT, request.to_wire())
        if not isinstance(body, dict):
            raise ApiError("Login response was empty", endpoint=LOGIN_ENDPOINT)
        token = body.get("token") or body.get("Token")
        if not token:
            raise ApiError("Login response did not include a token", endpoint=LOGIN_ENDPOINT)
        user = body.get("user") or body.get("User") or {}
        return LoginResult(token=str(token), user=user)

    async def signup(self, request: SignupRequest) -> Any:
        return await self._client.post(REGISTER_ENDPOINT, request.to_wire())

    async def get_vendors(self, *, approved: bool, bypass_cache: bool = False) -> Any:
        flag = "true" if approved else "false"
        return await self._client.get(f"{USERS_ENDPOINT}/vendors?approved={flag}", bypass_cache)

    async def set_approval(self, user_id: str, approved: bool) -> Any:
        request = ApprovalRequest(is_approved=approved)
        return await self._client.put(_user_path(user_id, "approval"), request.to_wire())

    async def remove_user(self, user_id: str) -> Any:
        return await self._client.delete(_user_path(user_id))
