from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Tuple

import pytest
from fastapi.testclient import TestClient

from prompt_enhancer.auth.identities import IdentityStore
from prompt_enhancer.auth.service import AuthService
from prompt_enhancer.auth.session import SessionSigner
from prompt_enhancer.auth.store import PendingCodeStore
from prompt_enhancer.core.config import AuthSettings, LoggingSettings, Settings, StorageSettings
from prompt_enhancer.enhance.client import EnhanceResult
from prompt_enhancer.utils.exceptions import DeliveryError, EnhancementError

TEST_SECRET = "test-secret-key-for-sessions"


class FakeClock:
    """Controllable UTC clock."""

    def __init__(self, start: datetime = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeNotifier:
    """Captures deliveries instead of sending email."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []
        self.fail = False

    def deliver(self, email: str, code: str) -> None:
        if self.fail:
            raise DeliveryError("SMTP down")
        self.sent.append((email, code))

    @property
    def last_code(self) -> str:
        return self.sent[-1][1]


class FakeEnhancer:
    def __init__(self):
        self.calls = []
        self.fail = False

    def enhance(self, prompt, category):
        self.calls.append((prompt, category))
        if self.fail:
            raise EnhancementError("upstream 500", status_code=500)
        return EnhanceResult(
            enhanced_prompt=f"## Task\n{prompt}",
            model_used="openai/gpt-4o-mini",
            latency_ms=42,
        )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def enhancer() -> FakeEnhancer:
    return FakeEnhancer()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        auth=AuthSettings(session_secret=TEST_SECRET),
        storage=StorageSettings(data_dir=str(tmp_path), lock_timeout_seconds=2),
        logging=LoggingSettings(level="WARNING", format="console"),
    )


@pytest.fixture
def code_store(tmp_path: Path, clock: FakeClock) -> PendingCodeStore:
    return PendingCodeStore(tmp_path, clock=clock)


@pytest.fixture
def identity_store(tmp_path: Path, clock: FakeClock) -> IdentityStore:
    return IdentityStore(tmp_path, clock=clock)


@pytest.fixture
def signer(clock: FakeClock) -> SessionSigner:
    return SessionSigner(TEST_SECRET, clock=clock)


@pytest.fixture
def auth_service(identity_store, code_store, notifier, signer) -> AuthService:
    return AuthService(
        identities=identity_store,
        codes=code_store,
        notifier=notifier,
        signer=signer,
    )


@pytest.fixture
def client(settings, notifier, enhancer) -> TestClient:
    from web_app.main import create_app

    app = create_app(settings, notifier=notifier, enhancer=enhancer)
    return TestClient(app)


def login(client: TestClient, notifier: FakeNotifier, email: str = "user1@example.com"):
    """Run the two-step login through the API; returns the verify response."""
    res = client.post("/api/auth/send-otp", json={"email": email})
    assert res.status_code == 200, res.text
    res = client.post("/api/auth/verify-otp", json={"email": email, "otp": notifier.last_code})
    assert res.status_code == 200, res.text
    return res
