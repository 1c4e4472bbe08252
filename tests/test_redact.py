from __future__ import annotations

from jobsync._redact import REDACTED, is_sensitive_key, redact_for_log


def test_sensitive_keys_match_headers_and_credential_fragments() -> None:
    assert is_sensitive_key("Authorization")
    assert is_sensitive_key("newPassword")
    assert is_sensitive_key("refresh_token")
    assert not is_sensitive_key("email")


def test_redact_for_log_hides_credentials_in_bodies_and_headers() -> None:
    payload = {
        "email": "ann@example.com",
        "password": "pw",
        "user": {"id": "1", "authToken": "abc"},
        "items": [{"clientSecret": "s"}],
    }

    redacted = redact_for_log(payload)

    assert redacted["email"] == "ann@example.com"
    assert redacted["password"] == REDACTED
    assert redacted["user"] == {"id": "1", "authToken": REDACTED}
    assert redacted["items"] == [{"clientSecret": REDACTED}]
    assert redact_for_log({"Authorization": "Bearer abc"}) == {"Authorization": REDACTED}


def test_redact_for_log_truncates_long_strings() -> None:
    redacted = redact_for_log({"description": "x" * 600}, max_string=10)

    assert redacted["description"].startswith("x" * 10)
    assert "<truncated>" in redacted["description"]
