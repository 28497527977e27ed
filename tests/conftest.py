"""Shared test fixtures and configuration for claude_provider tests.

Fixtures build real components and mock only the upstream HTTP endpoints
(via pytest-httpx).
"""

from collections.abc import AsyncGenerator

import httpx
import pytest

from claude_provider.auth.oauth import ClaudeOAuthClient
from claude_provider.config.settings import Settings, get_settings
from claude_provider.core.logging import setup_logging


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest with custom settings."""
    config.option.asyncio_mode = "auto"
    setup_logging(json_logs=False, log_level_name="DEBUG")


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests from a developer's CONFIG_FILE and cached settings."""
    monkeypatch.delenv("CONFIG_FILE", raising=False)
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    async with httpx.AsyncClient(follow_redirects=False) as client:
        yield client


@pytest.fixture
async def oauth_client(
    http_client: httpx.AsyncClient, settings: Settings
) -> ClaudeOAuthClient:
    return ClaudeOAuthClient(
        settings=settings.oauth, http_client=http_client, http_settings=settings.http
    )
