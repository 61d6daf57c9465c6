"""Tests for signed session tokens"""

import hashlib
from datetime import datetime, timedelta, timezone

import pytest
from itsdangerous import URLSafeTimedSerializer

from prompt_enhancer.auth.models import Identity
from prompt_enhancer.auth.session import SESSION_SALT, SessionSigner
from prompt_enhancer.utils.exceptions import ConfigError

from .conftest import TEST_SECRET, FakeClock


@pytest.fixture
def identity():
    return Identity(email="user@example.com")


def test_missing_secret_is_fatal():
    with pytest.raises(ConfigError):
        SessionSigner("")


def test_mint_then_verify(signer, identity, clock):
    token = signer.mint(identity)
    claims = signer.verify(token)
    assert claims is not None
    assert claims.user_id == identity.id
    assert claims.email == "user@example.com"
    assert claims.role == "user"
    assert claims.issued_at == clock.now
    assert claims.expires_at == clock.now + timedelta(days=7)


def test_expired_token_rejected(signer, identity, clock):
    token = signer.mint(identity)
    clock.advance(days=6, hours=23)
    assert signer.verify(token) is not None
    clock.advance(hours=1)
    assert signer.verify(token) is None


def test_token_from_other_key_rejected(identity, clock):
    other = SessionSigner("another-secret", clock=clock)
    token = other.mint(identity)
    assert SessionSigner(TEST_SECRET, clock=clock).verify(token) is None


def test_token_with_other_digest_rejected(signer, identity):
    # Same secret and salt, default SHA-1 digest
    forged = URLSafeTimedSerializer(TEST_SECRET, salt=SESSION_SALT).dumps(
        {"user_id": identity.id, "email": identity.email, "role": "admin",
         "issued_at": "2026-01-01T12:00:00Z", "expires_at": "2099-01-01T00:00:00Z",
         "exp": 4070908800}
    )
    assert signer.verify(forged) is None


def test_tampered_payload_rejected(signer, identity):
    token = signer.mint(identity)
    payload, rest = token.split(".", 1)
    tampered = payload[:-2] + ("AA" if payload[-2:] != "AA" else "BB") + "." + rest
    assert signer.verify(tampered) is None


@pytest.mark.parametrize("token", [None, "", "garbage", "a.b.c"])
def test_malformed_rejected(signer, token):
    assert signer.verify(token) is None


def test_payload_without_expiry_rejected(signer):
    serializer = URLSafeTimedSerializer(
        TEST_SECRET,
        salt=SESSION_SALT,
        signer_kwargs={"key_derivation": "hmac", "digest_method": hashlib.sha256},
    )
    token = serializer.dumps({"user_id": "x", "email": "x@example.com", "role": "admin"})
    assert signer.verify(token) is None


def test_max_age_matches_ttl(signer):
    assert signer.max_age_seconds == 7 * 24 * 60 * 60


def test_token_lives_exactly_until_claimed_expiry(identity):
    clock = FakeClock(datetime(2026, 1, 1, 12, 0, 0, 700000, tzinfo=timezone.utc))
    signer = SessionSigner(TEST_SECRET, clock=clock)
    token = signer.mint(identity)
    expires_at = clock.now + timedelta(days=7)

    clock.now = expires_at - timedelta(milliseconds=500)
    claims = signer.verify(token)
    assert claims is not None
    assert claims.expires_at == expires_at

    clock.now = expires_at
    assert signer.verify(token) is None
