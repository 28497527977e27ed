"""Credential lifecycle management.

The manager owns no state besides its injected store. Scheme-specific
behavior is dispatched with ``match`` over the credential classes.
"""

from typing import Any, assert_never

import httpx
from pydantic import SecretStr, ValidationError

from claude_provider.auth.bedrock import (
    bedrock_runtime_base_url,
    map_to_bedrock_model,
    validate_bedrock_credentials,
)
from claude_provider.auth.ccr import (
    build_ccr_headers,
    normalize_base_url,
    validate_ccr_credentials,
)
from claude_provider.auth.exceptions import (
    CredentialsInvalidError,
    IncompleteCredentialError,
    NoHealthyCredentialError,
    UnknownAuthTypeError,
    UnsupportedModelError,
)
from claude_provider.auth.models import (
    AcquiredCredential,
    AuthType,
    BedrockCredential,
    CcrCredential,
    ClaudeCodeCredential,
    ConsoleCredential,
    Credential,
    CredentialAdapter,
    OAuthCredential,
    RefreshableCredential,
    ReleaseResult,
    SetupTokenCredential,
    TokenRefreshResult,
    ValidationResult,
)
from claude_provider.auth.oauth.protocol import TokenRefresher
from claude_provider.auth.token_refresh import (
    Sleep,
    apply_refresh,
    get_refresh_token,
    is_token_expired,
    is_token_expiring_soon,
    retry_with_backoff,
)
from claude_provider.config.constants import ANTHROPIC_VERSION, CLAUDE_API_BASE_URL
from claude_provider.config.settings import Settings
from claude_provider.core.http_client import HTTPClientFactory
from claude_provider.core.logging import get_logger
from claude_provider.models.catalog import supports_model
from claude_provider.services.credentials.store import CredentialStore


logger = get_logger(__name__)


def _is_blank(value: str | SecretStr | None) -> bool:
    if isinstance(value, SecretStr):
        value = value.get_secret_value()
    return value is None or not value.strip()


def _blank_fields(fields: dict[str, str | SecretStr | None]) -> list[str]:
    return [name for name, value in fields.items() if _is_blank(value)]


def missing_fields(credential: Credential) -> list[str]:
    """Fields the credential's scheme requires at creation but lacks.

    OAuth, Claude Code and Console credentials need either an access token
    or a refresh token; both are reported when neither is set.
    """
    match credential:
        case OAuthCredential() | ClaudeCodeCredential() | ConsoleCredential():
            tokens = _blank_fields(
                {
                    "access_token": credential.access_token,
                    "refresh_token": credential.refresh_token,
                }
            )
            return tokens if len(tokens) == 2 else []
        case SetupTokenCredential():
            return _blank_fields({"access_token": credential.access_token})
        case BedrockCredential():
            return _blank_fields(
                {
                    "access_key_id": credential.access_key_id,
                    "secret_access_key": credential.secret_access_key,
                }
            )
        case CcrCredential():
            return _blank_fields(
                {"api_key": credential.api_key, "base_url": credential.base_url}
            )
        case _:
            assert_never(credential)


def is_usable(credential: Credential) -> bool:
    """Whether the credential holds what a request needs right now.

    Unlike :func:`missing_fields`, an OAuth-family credential only counts
    once it has an access token.
    """
    match credential:
        case (
            OAuthCredential()
            | ClaudeCodeCredential()
            | ConsoleCredential()
            | SetupTokenCredential()
        ):
            return not _is_blank(credential.access_token)
        case BedrockCredential() | CcrCredential():
            return not missing_fields(credential)
        case _:
            assert_never(credential)


def materialize(
    credential_id: str, credential: Credential, model: str
) -> AcquiredCredential:
    """Build the request headers and base URL for one credential."""
    headers: dict[str, str]
    metadata: dict[str, Any] = {}

    match credential:
        case (
            OAuthCredential()
            | ClaudeCodeCredential()
            | ConsoleCredential()
            | SetupTokenCredential()
        ):
            if _is_blank(credential.access_token):
                raise IncompleteCredentialError(
                    str(credential.auth_type), ["access_token"]
                )
            assert credential.access_token is not None
            headers = {
                "Authorization": f"Bearer {credential.access_token.get_secret_value()}",
                "Content-Type": "application/json",
                "anthropic-version": ANTHROPIC_VERSION,
            }
            base_url = CLAUDE_API_BASE_URL
        case BedrockCredential():
            # Requests are signed per call with sign_aws_request.
            headers = {"Content-Type": "application/json"}
            base_url = bedrock_runtime_base_url(credential.region)
            metadata = {
                "region": credential.region,
                "model_id": map_to_bedrock_model(model),
            }
        case CcrCredential():
            missing = missing_fields(credential)
            if missing:
                raise IncompleteCredentialError(str(credential.auth_type), missing)
            assert credential.api_key is not None and credential.base_url is not None
            headers = build_ccr_headers(credential.api_key.get_secret_value())
            base_url = normalize_base_url(credential.base_url)
        case _:
            assert_never(credential)

    return AcquiredCredential(
        id=credential_id,
        name=credential.name,
        auth_type=credential.auth_type,
        base_url=base_url,
        headers=headers,
        metadata=metadata,
    )


class CredentialManager:
    """Create, hand out, and maintain credentials held in a store."""

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: TokenRefresher,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep | None = None,
    ):
        """Initialize the manager.

        Args:
            store: Credential store shared with other managers, if any
            oauth_client: Client used for token refresh
            settings: Application settings (defaults when omitted)
            http_client: Client for remote validation checks
            sleep: Backoff sleep; ``asyncio.sleep`` when omitted
        """
        self.store = store
        self.oauth_client = oauth_client
        self.settings = settings or Settings()
        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._sleep = sleep

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = HTTPClientFactory.create_client(
                settings=self.settings.http
            )
        return self._http_client

    async def create(self, auth_type: str, config: dict[str, Any]) -> str:
        """Validate a configuration and store it as a new credential.

        Args:
            auth_type: Scheme id
            config: Scheme fields; any ``auth_type`` key is overridden

        Returns:
            Identifier of the new credential

        Raises:
            UnknownAuthTypeError: If ``auth_type`` is not a known scheme
            IncompleteCredentialError: If required fields are missing
            CredentialsInvalidError: If the configuration is otherwise malformed
        """
        try:
            scheme = AuthType(auth_type)
        except ValueError:
            raise UnknownAuthTypeError(auth_type) from None

        data = {**config, "auth_type": scheme.value}
        if scheme is AuthType.BEDROCK and not data.get("region"):
            data["region"] = self.settings.bedrock.default_region

        try:
            credential = CredentialAdapter.validate_python(data)
        except ValidationError as e:
            raise CredentialsInvalidError(
                f"Invalid {scheme} credential configuration: {e}"
            ) from e

        missing = missing_fields(credential)
        if missing:
            raise IncompleteCredentialError(str(scheme), missing)

        credential.is_healthy = True
        credential_id = await self.store.add(credential)
        logger.info(
            "credential_created", credential_id=credential_id, auth_type=str(scheme)
        )
        return credential_id

    async def get(self, credential_id: str) -> Credential:
        return await self.store.get(credential_id)

    async def acquire(self, model: str) -> AcquiredCredential:
        """Hand out the first healthy credential for a model.

        Raises:
            UnsupportedModelError: If the model is not a Claude model
            NoHealthyCredentialError: If every credential is unhealthy
            IncompleteCredentialError: If the chosen credential lacks its token
        """
        if not supports_model(model):
            raise UnsupportedModelError(model)

        async with self.store.reading() as credentials:
            selected = next(
                (
                    (credential_id, credential)
                    for credential_id, credential in credentials.items()
                    if credential.is_healthy
                ),
                None,
            )
            if selected is None:
                logger.warning("no_healthy_credential", model=model)
                raise NoHealthyCredentialError()
            acquired = materialize(*selected, model)

        logger.debug(
            "credential_acquired",
            credential_id=acquired.id,
            auth_type=str(acquired.auth_type),
            model=model,
        )
        return acquired

    async def release(self, credential_id: str, result: ReleaseResult) -> None:
        """Record the outcome of using an acquired credential.

        Raises:
            CredentialsNotFoundError: If the identifier is unknown
        """

        def record(credential: Credential) -> None:
            credential.usage_count += 1
            if result.error is None:
                credential.is_healthy = True
                credential.last_error = None
                return
            credential.error_count += 1
            credential.last_error = result.error.message
            if result.error.mark_unhealthy:
                credential.is_healthy = False

        await self.store.update(credential_id, record)

        if result.error is None:
            logger.debug("credential_released", credential_id=credential_id)
        else:
            logger.warning(
                "credential_released_with_error",
                credential_id=credential_id,
                error=result.error.message,
                mark_unhealthy=result.error.mark_unhealthy,
            )

    async def validate(
        self, credential_id: str, remote: bool = False
    ) -> ValidationResult:
        """Check a credential without modifying it.

        Args:
            credential_id: Credential to check
            remote: Also verify Bedrock and relay credentials upstream

        Returns:
            ValidationResult; an unknown identifier yields ``valid=False``
        """
        async with self.store.reading() as credentials:
            stored = credentials.get(credential_id)
            credential = stored.model_copy(deep=True) if stored else None

        if credential is None:
            return ValidationResult(valid=False, message="Credential not found")

        complete = is_usable(credential)
        details: dict[str, Any] = {
            "auth_type": str(credential.auth_type),
            "is_healthy": credential.is_healthy,
        }
        if not isinstance(credential, (BedrockCredential, CcrCredential)):
            refresh_margins = self.settings.refresh
            details["expired"] = is_token_expired(
                credential.expire, margin=refresh_margins.expired_margin
            )
            details["expiring_soon"] = is_token_expiring_soon(
                credential.expire, margin=refresh_margins.expiring_soon_margin
            )

        if complete and remote:
            match credential:
                case BedrockCredential():
                    details["remote_valid"] = await validate_bedrock_credentials(
                        credential, self.http_client, self.settings.http
                    )
                case CcrCredential():
                    details["remote_valid"] = await validate_ccr_credentials(
                        credential, self.http_client, self.settings.http
                    )
                case _:
                    pass

        valid = complete and credential.is_healthy and details.get("remote_valid", True)
        if not complete:
            message = "Credential configuration is incomplete"
        elif not credential.is_healthy:
            message = "Credential is marked unhealthy"
        elif not valid:
            message = "Credential was rejected upstream"
        else:
            message = "Credential is valid"

        return ValidationResult(valid=valid, message=message, details=details)

    async def refresh(self, credential_id: str) -> TokenRefreshResult:
        """Refresh an OAuth-family credential and write the tokens back.

        The refresh token is read under the read lock, the network call runs
        without any lock, and the write-back takes the write lock. Two
        concurrent refreshes of one credential both reach the token endpoint;
        the later write-back wins.

        Raises:
            CredentialsNotFoundError: If the identifier is unknown
            UnsupportedSchemeError: For setup-token, Bedrock and relay credentials
            IncompleteCredentialError: If no refresh token is stored
            TruncatedSecretError: If the refresh token is too short
            OAuthError: If the token endpoint call fails
        """
        credential = await self.store.get(credential_id)
        token = get_refresh_token(
            credential, self.settings.refresh.min_refresh_token_length
        )

        logger.info(
            "token_refresh_started",
            credential_id=credential_id,
            auth_type=str(credential.auth_type),
        )
        tokens = await self.oauth_client.refresh(token)

        def write_back(stored: Credential) -> TokenRefreshResult:
            assert isinstance(stored, RefreshableCredential)
            return apply_refresh(stored, tokens)

        result = await self.store.update(credential_id, write_back)
        logger.info(
            "token_refresh_completed",
            credential_id=credential_id,
            expires_at=result.expires_at.isoformat() if result.expires_at else None,
        )
        return result

    async def refresh_with_retry(
        self, credential_id: str, max_attempts: int | None = None
    ) -> TokenRefreshResult:
        """Refresh with exponential backoff between failed attempts.

        Every failure is retried, unknown identifiers and structural errors
        included, until ``max_attempts`` is used up.
        """
        refresh_settings = self.settings.refresh
        return await retry_with_backoff(
            lambda: self.refresh(credential_id),
            max_attempts or refresh_settings.max_attempts,
            base_delay_ms=refresh_settings.base_delay_ms,
            sleep=self._sleep,
        )

    async def aclose(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
