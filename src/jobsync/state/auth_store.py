"""Signed-in session state.

:class:`AuthStore` owns the current user and the persisted bearer token. The
job store consults it to decide whether there is a session to load for.
"""

from __future__ import annotations

import json
import logging

from jobsync.config import JobsyncConfig
from jobsync.exceptions import JobsyncError, StorageError
from jobsync.models.requests import LoginRequest, SignupRequest
from jobsync.models.user import User, UserRole
from jobsync.normalize import normalize_user, normalize_users
from jobsync.services.auth import AuthService
from jobsync.state._observable import ObservableStore
from jobsync.storage import KeyValueStorage

_logger = logging.getLogger(__name__)


class AuthStore(ObservableStore):
    """Current user, token persistence and vendor administration."""

    def __init__(
        self,
        service: AuthService,
        storage: KeyValueStorage,
        *,
        config: JobsyncConfig | None = None,
    ) -> None:
        super().__init__()
        self._service = service
        self._storage = storage
        self._config = config or service.client.config
        self._user: User | None = None
        self._is_loading = True
        self._error: str | None = None

    # ------------------------------------------------------------------
    # Consumer-facing state
    # ------------------------------------------------------------------

    @property
    def user(self) -> User | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> str | None:
        return self._error

    def _fail(self, exc: Exception) -> None:
        if not self._alive:
            return
        self._error = str(exc)
        self._notify()

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    async def restore(self) -> User | None:
        """Load the persisted user snapshot, if any.

        A missing or corrupted snapshot means "signed out"; it never raises.
        """
        user: User | None = None
        try:
            raw = await self._storage.get_item(self._config.current_user_key)
        except StorageError:
            _logger.warning("Could not read stored user session", exc_info=True)
            raw = None
        if raw:
            try:
                user = normalize_user(json.loads(raw))
            except json.JSONDecodeError:
                _logger.warning("Stored user session is corrupted; ignoring it")

        if not self._alive:
            return user
        self._user = user
        self._is_loading = False
        self._notify()
        return user

    async def login(self, email: str, password: str, role: UserRole | str | None = None) -> User:
        """Authenticate, persist token and user, and make the user current."""
        request = LoginRequest(email=email, password=password, role=role)
        try:
            result = await self._service.login(request)
        except JobsyncError as exc:
            self._fail(exc)
            raise

        user = normalize_user(result.user) or User(email=request.email, role=request.role)
        try:
            await self._storage.set_item(self._config.auth_token_key, result.token)
            await self._storage.set_item(self._config.current_user_key, json.dumps(user.to_wire()))
        except StorageError as exc:
            self._fail(exc)
            raise

        # Responses cached for a previous account must not leak into this one.
        self._service.client.clear_cache()
        if self._alive:
            self._user = user
            self._error = None
            self._notify()
        return user

    async def signup(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole | str,
        address: str = "",
        phone: str = "",
        referral_source: str = "",
        role_other: str | None = None,
    ) -> User | None:
        """Register a new account. Does not sign it in."""
        request = SignupRequest(
            name=name,
            email=email,
            password=password,
            role=role,
            address=address,
            phone=phone,
            referral_source=referral_source,
            role_other=role_other,
        )
        try:
            created = await self._service.signup(request)
        except JobsyncError as exc:
            self._fail(exc)
            raise
        if self._alive:
            self._error = None
            self._notify()
        return normalize_user(created)

    async def logout(self) -> None:
        """Forget the session locally. Storage failures are logged, not raised."""
        for key in (self._config.auth_token_key, self._config.current_user_key):
            try:
                await self._storage.remove_item(key)
            except StorageError:
                _logger.warning("Could not remove %s during logout", key, exc_info=True)
        self._service.client.clear_cache()
        if self._alive:
            self._user = None
            self._error = None
            self._notify()

    # ------------------------------------------------------------------
    # Vendor administration
    # ------------------------------------------------------------------

    async def get_pending_vendors(self) -> list[User]:
        try:
            raw = await self._service.get_vendors(approved=False)
        except JobsyncError as exc:
            self._fail(exc)
            raise
        return normalize_users(raw)

    async def get_approved_vendors(self) -> list[User]:
        try:
            raw = await self._service.get_vendors(approved=True)
        except JobsyncError as exc:
            self._fail(exc)
            raise
        return normalize_users(raw)

    async def update_user_status(self, user_id: str, approved: bool) -> bool:
        try:
            await self._service.set_approval(user_id, approved)
        except JobsyncError as exc:
            self._fail(exc)
            raise
        return True

    async def remove_vendor(self, user_id: str) -> bool:
        try:
            await self._service.remove_user(user_id)
        except JobsyncError as exc:
            self._fail(exc)
            raise
        return True

    def close(self) -> None:
        self._mark_closed()
