"""Credential lifecycle fixtures: scripted refresher, recorded sleep, manager."""

from datetime import UTC, datetime, timedelta
from typing import Any

import httpx
import pytest

from claude_provider.auth.models import OAuthTokens
from claude_provider.config.settings import Settings
from claude_provider.services.credentials import CredentialManager, CredentialStore


# Long enough to pass the truncation check.
REFRESH_TOKEN = "rt-" + "r" * 60
ACCESS_TOKEN = "sk-ant-REDACTED"


def make_tokens(**overrides: Any) -> OAuthTokens:
    values: dict[str, Any] = {
        "access_token": "new-access-token",
        "refresh_token": "rt-rotated-" + "n" * 60,
        "expires_at": datetime.now(UTC) + timedelta(hours=8),
        "email": "user@example.com",
    }
    values.update(overrides)
    return OAuthTokens(**values)


class FakeRefresher:
    """Token refresher that replays scripted outcomes."""

    def __init__(self, outcomes: list[OAuthTokens | Exception] | None = None):
        self.outcomes = list(outcomes or [])
        self.calls: list[str] = []

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        self.calls.append(refresh_token)
        outcome = self.outcomes.pop(0) if self.outcomes else make_tokens()
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_refresher() -> FakeRefresher:
    return FakeRefresher()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def store() -> CredentialStore:
    return CredentialStore()


@pytest.fixture
def manager(
    store: CredentialStore,
    fake_refresher: FakeRefresher,
    settings: Settings,
    http_client: httpx.AsyncClient,
    recording_sleep: RecordingSleep,
) -> CredentialManager:
    return CredentialManager(
        store,
        fake_refresher,
        settings=settings,
        http_client=http_client,
        sleep=recording_sleep,
    )
