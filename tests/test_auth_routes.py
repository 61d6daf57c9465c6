"""API tests for the passwordless login flow"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

from itsdangerous import URLSafeTimedSerializer

from .conftest import login


def test_send_otp_then_verify(client, notifier):
    res = client.post("/api/auth/send-otp", json={"email": "new@example.com"})
    assert res.status_code == 200, res.text
    assert res.json() == {"message": "OTP sent successfully"}
    assert len(notifier.sent) == 1
    assert notifier.sent[0][0] == "new@example.com"

    res = client.post(
        "/api/auth/verify-otp",
        json={"email": "new@example.com", "otp": notifier.last_code},
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["user"]["email"] == "new@example.com"
    assert body["user"]["role"] == "user"
    assert "id" in body["user"]

    cookie = res.headers["set-cookie"]
    assert cookie.startswith("session=")
    assert "HttpOnly" in cookie
    assert "Max-Age=604800" in cookie
    assert "samesite=lax" in cookie.lower()
    assert "Path=/" in cookie

    # Session cookie should be set and used for /me
    res_me = client.get("/api/auth/me")
    assert res_me.status_code == 200, res_me.text
    assert res_me.json()["user"]["email"] == "new@example.com"


def test_code_never_returned_to_client(client, notifier):
    res = client.post("/api/auth/send-otp", json={"email": "new@example.com"})
    assert notifier.last_code not in res.text


def test_invalid_email(client, notifier):
    res = client.post("/api/auth/send-otp", json={"email": "not-an-email"})
    assert res.status_code == 400
    assert res.json()["error"] == "Invalid email address"
    assert res.json()["field"] == "email"
    assert notifier.sent == []


def test_missing_field_reports_field(client):
    res = client.post("/api/auth/verify-otp", json={"email": "a@example.com"})
    assert res.status_code == 400
    assert res.json()["field"] == "otp"


def test_malformed_otp(client):
    res = client.post("/api/auth/verify-otp", json={"email": "a@example.com", "otp": "12ab"})
    assert res.status_code == 400
    assert res.json()["field"] == "otp"


def test_wrong_code_generic_error(client, notifier):
    with patch("prompt_enhancer.auth.service.generate_code", return_value="123456"):
        client.post("/api/auth/send-otp", json={"email": "a@example.com"})
    res = client.post("/api/auth/verify-otp", json={"email": "a@example.com", "otp": "654321"})
    assert res.status_code == 400
    assert res.json() == {"error": "Invalid or expired OTP"}
    assert "set-cookie" not in res.headers

    res = client.post("/api/auth/verify-otp", json={"email": "never@example.com", "otp": "123456"})
    assert res.json() == {"error": "Invalid or expired OTP"}


def test_replay_rejected(client, notifier):
    client.post("/api/auth/send-otp", json={"email": "a@example.com"})
    payload = {"email": "a@example.com", "otp": notifier.last_code}
    assert client.post("/api/auth/verify-otp", json=payload).status_code == 200
    assert client.post("/api/auth/verify-otp", json=payload).status_code == 400


def test_delivery_failure(client, notifier):
    notifier.fail = True
    res = client.post("/api/auth/send-otp", json={"email": "a@example.com"})
    assert res.status_code == 500
    assert res.json() == {"error": "Failed to send OTP. Please try again."}


def test_me_requires_session(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 401
    assert res.json() == {"error": "Not authenticated"}


def test_me_with_bearer_header(client, notifier):
    login(client, notifier)
    token = client.cookies.get("session")
    client.cookies.clear()
    res = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 200
    assert res.json()["user"]["email"] == "user1@example.com"


def test_me_rejects_foreign_token(client):
    forged = URLSafeTimedSerializer("attacker-secret", salt="prompt-enhancer-session").dumps(
        {"user_id": "x", "email": "x@example.com", "role": "admin",
         "issued_at": datetime.now(timezone.utc).isoformat(),
         "expires_at": (datetime.now(timezone.utc) + timedelta(days=7)).isoformat(),
         "exp": 4070908800}
    )
    client.cookies.set("session", forged)
    assert client.get("/api/auth/me").status_code == 401


def test_logout_clears_cookie(client, notifier):
    login(client, notifier)
    assert client.get("/api/auth/me").status_code == 200

    res = client.post("/api/auth/logout")
    assert res.status_code == 200
    assert res.json() == {"message": "Logged out successfully"}
    assert 'session=""' in res.headers["set-cookie"] or "Max-Age=0" in res.headers["set-cookie"]
    assert client.get("/api/auth/me").status_code == 401


def test_logout_without_session(client):
    res = client.post("/api/auth/logout")
    assert res.status_code == 200
