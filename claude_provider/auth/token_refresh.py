"""Token expiry policy and refresh.

An unknown expiry counts as expired but never as expiring soon.
"""

import asyncio
import re
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from typing import TypeVar, assert_never

from pydantic import SecretStr

from claude_provider.auth.exceptions import (
    IncompleteCredentialError,
    TruncatedSecretError,
    UnsupportedSchemeError,
)
from claude_provider.auth.models import (
    BedrockCredential,
    CcrCredential,
    ClaudeCodeCredential,
    ConsoleCredential,
    Credential,
    OAuthCredential,
    OAuthTokens,
    RefreshableCredential,
    SetupTokenCredential,
    TokenRefreshResult,
)
from claude_provider.auth.oauth.protocol import TokenRefresher
from claude_provider.config.constants import (
    EXPIRED_MARGIN_MINUTES,
    EXPIRING_SOON_MARGIN_MINUTES,
    MIN_REFRESH_TOKEN_LENGTH,
    REFRESH_BASE_DELAY_MS,
)
from claude_provider.core.logging import get_logger


logger = get_logger(__name__)

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[object]]

_RFC3339_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}[Tt ]\d{2}:\d{2}:\d{2}")


def parse_expire(expire: str | datetime | None) -> datetime | None:
    """Parse an RFC 3339 expiry.

    Strings need a full date, a time and a UTC offset; date-only or
    offset-less strings are rejected. Naive datetime objects are taken as UTC.

    Returns:
        Aware datetime, or None when absent or unparseable
    """
    if expire is None:
        return None
    if isinstance(expire, str):
        if not _RFC3339_PREFIX.match(expire):
            return None
        try:
            parsed = datetime.fromisoformat(expire)
        except ValueError:
            return None
        if parsed.tzinfo is None:
            return None
        return parsed
    if expire.tzinfo is None:
        expire = expire.replace(tzinfo=UTC)
    return expire


def is_token_expired(
    expire: str | datetime | None,
    *,
    now: datetime | None = None,
    margin: timedelta = timedelta(minutes=EXPIRED_MARGIN_MINUTES),
) -> bool:
    """True if the token is expired or expires within ``margin``.

    Absent or unparseable expiries count as expired.
    """
    expires = parse_expire(expire)
    if expires is None:
        return True
    now = now or datetime.now(UTC)
    return expires <= now + margin


def is_token_expiring_soon(
    expire: str | datetime | None,
    *,
    now: datetime | None = None,
    margin: timedelta = timedelta(minutes=EXPIRING_SOON_MARGIN_MINUTES),
) -> bool:
    """True only for a known expiry strictly earlier than now + ``margin``."""
    expires = parse_expire(expire)
    if expires is None:
        return False
    now = now or datetime.now(UTC)
    return expires < now + margin


def get_refresh_token(
    credential: Credential, min_length: int = MIN_REFRESH_TOKEN_LENGTH
) -> str:
    """Return the refresh token of a refreshable credential.

    Raises:
        UnsupportedSchemeError: For setup tokens, Bedrock and relay credentials
        IncompleteCredentialError: If no refresh token is stored
        TruncatedSecretError: If the stored token is implausibly short
    """
    match credential:
        case OAuthCredential() | ClaudeCodeCredential() | ConsoleCredential():
            if credential.refresh_token is None:
                raise IncompleteCredentialError(
                    str(credential.auth_type), ["refresh_token"]
                )
            token = credential.refresh_token.get_secret_value()
            if len(token) < min_length:
                raise TruncatedSecretError(len(token), min_length)
            return token
        case SetupTokenCredential() | BedrockCredential() | CcrCredential():
            raise UnsupportedSchemeError(str(credential.auth_type), "token refresh")
        case _:
            assert_never(credential)


def apply_refresh(
    credential: RefreshableCredential,
    tokens: OAuthTokens,
    *,
    now: datetime | None = None,
) -> TokenRefreshResult:
    """Write refreshed tokens into a credential and mark it healthy."""
    credential.access_token = SecretStr(tokens.access_token)
    if tokens.refresh_token is not None:
        credential.refresh_token = SecretStr(tokens.refresh_token)
    credential.expire = tokens.expires_at.isoformat() if tokens.expires_at else None
    credential.last_refresh = (now or datetime.now(UTC)).isoformat()
    credential.is_healthy = True
    credential.last_error = None
    if tokens.email is not None:
        credential.email = tokens.email

    return TokenRefreshResult(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_at=tokens.expires_at,
        email=tokens.email,
    )


async def refresh_token(
    credential: Credential,
    oauth_client: TokenRefresher,
    *,
    min_refresh_token_length: int = MIN_REFRESH_TOKEN_LENGTH,
) -> TokenRefreshResult:
    """Refresh a credential in place.

    Args:
        credential: Credential to refresh; updated on success
        oauth_client: Client performing the token request

    Returns:
        The refreshed token values
    """
    token = get_refresh_token(credential, min_refresh_token_length)
    logger.info("token_refresh_started", auth_type=str(credential.auth_type))

    tokens = await oauth_client.refresh(token)
    assert isinstance(credential, RefreshableCredential)
    return apply_refresh(credential, tokens)


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int,
    *,
    base_delay_ms: int = REFRESH_BASE_DELAY_MS,
    sleep: Sleep | None = None,
) -> T:
    """Run ``operation`` until it succeeds or ``max_attempts`` is reached.

    After failed attempt ``n`` (0-indexed) the task sleeps
    ``base_delay_ms * 2**n`` milliseconds; there is no sleep after the last
    attempt. Every failure counts as an attempt.

    Raises:
        The error of the last attempt when every attempt fails
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    sleep = sleep or asyncio.sleep
    last_error: Exception | None = None

    for attempt in range(max_attempts):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(
                "token_refresh_attempt_failed",
                attempt=attempt + 1,
                max_attempts=max_attempts,
                error=str(e),
                error_type=type(e).__name__,
            )
            if attempt + 1 < max_attempts:
                await sleep(base_delay_ms * 2**attempt / 1000)

    assert last_error is not None
    logger.error("token_refresh_exhausted", max_attempts=max_attempts)
    raise last_error


async def refresh_with_retry(
    credential: Credential,
    max_attempts: int,
    *,
    oauth_client: TokenRefresher,
    base_delay_ms: int = REFRESH_BASE_DELAY_MS,
    min_refresh_token_length: int = MIN_REFRESH_TOKEN_LENGTH,
    sleep: Sleep | None = None,
) -> TokenRefreshResult:
    """Refresh a credential in place, retrying failures with backoff."""
    return await retry_with_backoff(
        lambda: refresh_token(
            credential,
            oauth_client,
            min_refresh_token_length=min_refresh_token_length,
        ),
        max_attempts,
        base_delay_ms=base_delay_ms,
        sleep=sleep,
    )
