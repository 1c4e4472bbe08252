from __future__ import annotations

import json

import pytest

from jobsync.exceptions import ApiError, AuthenticationError
from jobsync.models import UserRole


@pytest.mark.asyncio
async def test_restore_without_session_is_signed_out(auth_store) -> None:
    assert auth_store.is_loading is True

    assert await auth_store.restore() is None

    assert auth_store.is_authenticated is False
    assert auth_store.is_loading is False


@pytest.mark.asyncio
async def test_restore_picks_up_persisted_user(auth_store, signed_in) -> None:
    user = await auth_store.restore()

    assert user is not None
    assert user.id == "7"
    assert user.name == "Cora"
    assert auth_store.is_authenticated


@pytest.mark.asyncio
async def test_restore_ignores_corrupted_user_snapshot(auth_store, storage) -> None:
    await storage.set_item("@current_user", "{broken")

    assert await auth_store.restore() is None
    assert auth_store.is_loading is False


@pytest.mark.asyncio
async def test_login_persists_session_and_authorizes_next_request(auth_store, backend, storage) -> None:
    backend.respond(
        "POST",
        "/auth/login",
        {"token": "abc", "User": {"Id": 1, "Name": "Ann", "Role": "Admin"}},
    )
    backend.respond("GET", "/jobs", [])

    user = await auth_store.login("ann@example.com", "s3cret")

    assert user.name == "Ann"
    assert user.is_admin
    assert auth_store.user == user
    assert backend.calls[0].body == {"email": "ann@example.com", "password": "s3cret"}
    stored = storage.snapshot()
    assert stored["@auth_token"] == "abc"
    assert json.loads(stored["@current_user"])["id"] == "1"

    await auth_store._service.client.get("/jobs")  # noqa: SLF001
    assert backend.calls[-1].headers["Authorization"] == "Bearer abc"


@pytest.mark.asyncio
async def test_login_clears_responses_cached_for_previous_account(auth_store, client, backend) -> None:
    backend.respond("GET", "/jobs", [{"id": "old"}])
    backend.respond("GET", "/jobs", [{"id": "new"}])
    backend.respond("POST", "/auth/login", {"token": "abc", "user": {"id": "2"}})

    await client.get("/jobs")
    await auth_store.login("b@example.com", "pw", role=UserRole.VENDOR)

    assert await client.get("/jobs") == [{"id": "new"}]
    assert backend.calls[1].body["role"] == "Vendor"


@pytest.mark.asyncio
async def test_login_rejected_records_error(auth_store, backend, storage) -> None:
    backend.respond("POST", "/auth/login", {"message": "Invalid credentials"}, status=401)

    with pytest.raises(AuthenticationError):
        await auth_store.login("ann@example.com", "wrong")

    assert auth_store.error == "Invalid credentials"
    assert auth_store.is_authenticated is False
    assert "@auth_token" not in storage.snapshot()


@pytest.mark.asyncio
async def test_login_without_token_is_an_error(auth_store, backend) -> None:
    backend.respond("POST", "/auth/login", {"user": {"id": "1"}})

    with pytest.raises(ApiError, match="token"):
        await auth_store.login("ann@example.com", "pw")


@pytest.mark.asyncio
async def test_signup_does_not_sign_in(auth_store, backend) -> None:
    backend.respond("POST", "/auth/register", {"Id": 11, "Name": "Val", "Role": "Vendor", "IsApproved": False})

    user = await auth_store.signup("Val", "val@example.com", "pw", UserRole.VENDOR, phone="555")

    assert user is not None
    assert user.is_approved is False
    assert auth_store.is_authenticated is False
    assert backend.calls[0].body == {
        "name": "Val",
        "email": "val@example.com",
        "password": "pw",
        "role": "Vendor",
        "address": "",
        "phone": "555",
        "referralSource": "",
    }


@pytest.mark.asyncio
async def test_logout_removes_session(auth_store, storage, signed_in) -> None:
    await auth_store.restore()
    notified: list[bool] = []
    auth_store.subscribe(lambda: notified.append(auth_store.is_authenticated))

    await auth_store.logout()

    assert auth_store.user is None
    assert notified == [False]
    assert "@auth_token" not in storage.snapshot()
    assert "@current_user" not in storage.snapshot()


@pytest.mark.asyncio
async def test_vendor_lists_use_approval_filter(auth_store, backend) -> None:
    backend.respond("GET", "/users/vendors?approved=false", [{"Id": 1, "Name": "Pending"}, {}])
    backend.respond("GET", "/users/vendors?approved=true", [{"id": 2, "name": "Approved"}])

    pending = await auth_store.get_pending_vendors()
    approved = await auth_store.get_approved_vendors()

    assert [user.name for user in pending] == ["Pending"]
    assert [user.id for user in approved] == ["2"]


@pytest.mark.asyncio
async def test_approval_and_removal_invalidate_vendor_lists(auth_store, backend) -> None:
    backend.respond("GET", "/users/vendors?approved=false", [{"id": "5"}])
    backend.respond("PUT", "/users/5/approval", {"id": "5", "isApproved": True})
    backend.respond("DELETE", "/users/6", status=204)

    await auth_store.get_pending_vendors()
    assert await auth_store.update_user_status("5", True) is True
    assert await auth_store.remove_vendor("6") is True
    await auth_store.get_pending_vendors()

    assert backend.calls[1].body == {"isApproved": True}
    assert backend.count("GET", "/users/vendors?approved=false") == 2


@pytest.mark.asyncio
async def test_vendor_admin_failure_is_recorded_and_raised(auth_store, backend) -> None:
    backend.respond("DELETE", "/users/6", {"message": "Forbidden"}, status=403)

    with pytest.raises(AuthenticationError):
        await auth_store.remove_vendor("6")

    assert auth_store.error == "Forbidden"
