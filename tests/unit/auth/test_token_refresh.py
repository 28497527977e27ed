"""Tests for token expiry policy, single refresh and retry with backoff."""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import SecretStr

from claude_provider.auth.exceptions import (
    IncompleteCredentialError,
    NetworkError,
    TokenExchangeFailedError,
    TruncatedSecretError,
    UnsupportedSchemeError,
)
from claude_provider.auth.models import (
    BedrockCredential,
    CcrCredential,
    ClaudeCodeCredential,
    ConsoleCredential,
    OAuthCredential,
    SetupTokenCredential,
)
from claude_provider.auth.token_refresh import (
    is_token_expired,
    is_token_expiring_soon,
    parse_expire,
    refresh_token,
    refresh_with_retry,
    retry_with_backoff,
)
from tests.fixtures.credentials import (
    REFRESH_TOKEN,
    FakeRefresher,
    RecordingSleep,
    make_tokens,
)


NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=UTC)


def _at(minutes: float) -> str:
    return (NOW + timedelta(minutes=minutes)).isoformat()


@pytest.mark.unit
class TestExpiryPolicy:
    """Expired uses a 5 minute margin, expiring-soon a 10 minute one."""

    @pytest.mark.parametrize(
        ("minutes", "expired", "expiring_soon"),
        [
            (-60, True, True),
            (0, True, True),
            (4, True, True),
            (5, True, True),
            (6, False, True),
            (9, False, True),
            (10, False, False),
            (60, False, False),
        ],
    )
    def test_margins(self, minutes: float, expired: bool, expiring_soon: bool) -> None:
        assert is_token_expired(_at(minutes), now=NOW) is expired
        assert is_token_expiring_soon(_at(minutes), now=NOW) is expiring_soon

    @pytest.mark.parametrize("expire", [None, "", "tomorrow", "2025-13-45T99:00:00Z"])
    def test_unknown_expiry(self, expire: str | None) -> None:
        assert is_token_expired(expire, now=NOW) is True
        assert is_token_expiring_soon(expire, now=NOW) is False

    def test_zulu_and_offset_forms(self) -> None:
        assert parse_expire("2025-06-01T12:00:00Z") == NOW
        assert parse_expire("2025-06-01T14:00:00+02:00") == NOW

    @pytest.mark.parametrize(
        "expire",
        ["2099-01-01", "2099-01-01T12:00:00", "20990101T120000Z"],
        ids=["date_only", "no_offset", "basic_format"],
    )
    def test_non_rfc3339_counts_as_expired(self, expire: str) -> None:
        assert parse_expire(expire) is None
        assert is_token_expired(expire, now=NOW) is True
        assert is_token_expiring_soon(expire, now=NOW) is False

    def test_naive_datetime_taken_as_utc(self) -> None:
        assert parse_expire(datetime(2025, 6, 1, 12, 0, 0)) == NOW


@pytest.mark.auth
class TestRefreshToken:
    """Refresh of a single credential object."""

    async def test_refresh_writes_back(self) -> None:
        credential = OAuthCredential(
            access_token=SecretStr("old"),
            refresh_token=SecretStr(REFRESH_TOKEN),
            is_healthy=False,
            last_error="401",
        )
        tokens = make_tokens()
        refresher = FakeRefresher([tokens])

        result = await refresh_token(credential, refresher)

        assert refresher.calls == [REFRESH_TOKEN]
        assert result.access_token == tokens.access_token
        assert credential.access_token is not None
        assert credential.access_token.get_secret_value() == tokens.access_token
        assert credential.refresh_token is not None
        assert credential.refresh_token.get_secret_value() == tokens.refresh_token
        assert tokens.expires_at is not None
        assert credential.expire == tokens.expires_at.isoformat()
        assert credential.last_refresh is not None
        assert credential.email == "user@example.com"
        assert credential.is_healthy is True
        assert credential.last_error is None

    async def test_refresh_keeps_refresh_token_when_not_rotated(self) -> None:
        credential = ClaudeCodeCredential(refresh_token=SecretStr(REFRESH_TOKEN))
        refresher = FakeRefresher([make_tokens(refresh_token=None)])
        await refresh_token(credential, refresher)

        assert credential.refresh_token is not None
        assert credential.refresh_token.get_secret_value() == REFRESH_TOKEN

    @pytest.mark.parametrize(
        "credential",
        [
            SetupTokenCredential(access_token=SecretStr("setup")),
            BedrockCredential(
                access_key_id="AKID", secret_access_key=SecretStr("secret")
            ),
            CcrCredential(api_key=SecretStr("k"), base_url="https://relay"),
        ],
        ids=["setup_token", "bedrock", "ccr"],
    )
    async def test_unsupported_schemes(self, credential) -> None:
        refresher = FakeRefresher()
        with pytest.raises(UnsupportedSchemeError):
            await refresh_token(credential, refresher)
        assert refresher.calls == []

    async def test_missing_refresh_token(self) -> None:
        credential = ConsoleCredential(access_token=SecretStr("access"))
        with pytest.raises(IncompleteCredentialError) as exc_info:
            await refresh_token(credential, FakeRefresher())
        assert exc_info.value.missing_fields == ["refresh_token"]

    async def test_truncated_refresh_token(self) -> None:
        credential = OAuthCredential(refresh_token=SecretStr("x" * 49))
        refresher = FakeRefresher()

        with pytest.raises(TruncatedSecretError) as exc_info:
            await refresh_token(credential, refresher)

        assert exc_info.value.length == 49
        assert refresher.calls == []

    async def test_fifty_characters_is_enough(self) -> None:
        credential = OAuthCredential(refresh_token=SecretStr("x" * 50))
        await refresh_token(credential, FakeRefresher())
        assert credential.access_token is not None


@pytest.mark.unit
class TestRetryWithBackoff:
    """Exponential backoff: 1s, 2s, 4s... with no sleep after the last attempt."""

    async def test_all_attempts_fail(self, recording_sleep: RecordingSleep) -> None:
        errors = [NetworkError(f"fail {i}") for i in range(3)]
        calls = 0

        async def operation() -> str:
            nonlocal calls
            calls += 1
            raise errors[calls - 1]

        with pytest.raises(NetworkError) as exc_info:
            await retry_with_backoff(operation, 3, sleep=recording_sleep)

        assert calls == 3
        assert recording_sleep.delays == [1.0, 2.0]
        assert exc_info.value is errors[-1]

    async def test_success_after_failure(self, recording_sleep: RecordingSleep) -> None:
        outcomes: list[Exception | str] = [NetworkError("flaky"), "ok"]

        async def operation() -> str:
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert await retry_with_backoff(operation, 5, sleep=recording_sleep) == "ok"
        assert recording_sleep.delays == [1.0]

    async def test_immediate_success_never_sleeps(
        self, recording_sleep: RecordingSleep
    ) -> None:
        async def operation() -> int:
            return 42

        assert await retry_with_backoff(operation, 3, sleep=recording_sleep) == 42
        assert recording_sleep.delays == []

    async def test_every_failure_is_retried(
        self, recording_sleep: RecordingSleep
    ) -> None:
        calls = 0

        async def operation() -> None:
            nonlocal calls
            calls += 1
            raise RuntimeError("unexpected")

        with pytest.raises(RuntimeError):
            await retry_with_backoff(operation, 3, sleep=recording_sleep)

        assert calls == 3
        assert recording_sleep.delays == [1.0, 2.0]

    async def test_base_delay_configurable(
        self, recording_sleep: RecordingSleep
    ) -> None:
        async def operation() -> None:
            raise NetworkError("down")

        with pytest.raises(NetworkError):
            await retry_with_backoff(
                operation, 4, base_delay_ms=250, sleep=recording_sleep
            )

        assert recording_sleep.delays == [0.25, 0.5, 1.0]

    async def test_zero_attempts_rejected(self) -> None:
        async def operation() -> None:
            return None

        with pytest.raises(ValueError):
            await retry_with_backoff(operation, 0)

    async def test_refresh_with_retry_truncated_secret(
        self, recording_sleep: RecordingSleep
    ) -> None:
        credential = OAuthCredential(refresh_token=SecretStr("short"))
        refresher = FakeRefresher([])

        with pytest.raises(TruncatedSecretError):
            await refresh_with_retry(
                credential, 3, oauth_client=refresher, sleep=recording_sleep
            )

        assert refresher.calls == []
        assert recording_sleep.delays == [1.0, 2.0]

    async def test_refresh_with_retry(self, recording_sleep: RecordingSleep) -> None:
        credential = OAuthCredential(refresh_token=SecretStr(REFRESH_TOKEN))
        refresher = FakeRefresher(
            [
                TokenExchangeFailedError(500, "upstream"),
                TokenExchangeFailedError(502, "upstream"),
                make_tokens(access_token="third-time"),
            ]
        )

        result = await refresh_with_retry(
            credential, 3, oauth_client=refresher, sleep=recording_sleep
        )

        assert result.access_token == "third-time"
        assert len(refresher.calls) == 3
        assert recording_sleep.delays == [1.0, 2.0]
