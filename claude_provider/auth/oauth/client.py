"""OAuth client for Claude authentication.

Implements the authorization-code + PKCE flow against claude.ai, token
refresh, and a browser-less variant that drives the authorization with a
claude.ai ``sessionKey`` cookie.
"""

import base64
import hashlib
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import parse_qs, quote, urlencode, urlsplit

import httpx
from pydantic import TypeAdapter, ValidationError

from claude_provider.auth.exceptions import (
    InvalidTokenResponseError,
    MissingAuthorizationCodeError,
    NetworkError,
    NoEligibleOrganizationError,
    NoRedirectReceivedError,
    OAuthError,
    OrganizationsFetchError,
    TokenExchangeFailedError,
)
from claude_provider.auth.models import (
    OAuthParams,
    OAuthTokens,
    Organization,
    TokenResponse,
)
from claude_provider.config.constants import CLAUDE_WEB_ORIGIN, CLAUDE_WEB_REFERER
from claude_provider.config.core import HTTPSettings, OAuthSettings
from claude_provider.core.http_client import HTTPClientFactory, flow_timeout
from claude_provider.core.logging import get_logger


logger = get_logger(__name__)

_organizations_adapter = TypeAdapter(list[Organization])


def _urlsafe_b64(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def compute_code_challenge(code_verifier: str) -> str:
    """S256 code challenge: unpadded URL-safe base64 of SHA-256(verifier)."""
    return _urlsafe_b64(hashlib.sha256(code_verifier.encode()).digest())


def generate_pkce_params(
    minimal_scope: bool = False, settings: OAuthSettings | None = None
) -> OAuthParams:
    """Generate state, PKCE pair and the authorization URL.

    Args:
        minimal_scope: Request only the inference scope (setup tokens)
        settings: OAuth settings; defaults are the Claude endpoints

    Returns:
        OAuthParams for a single authorization round-trip
    """
    settings = settings or OAuthSettings()

    state = _urlsafe_b64(secrets.token_bytes(32))
    code_verifier = _urlsafe_b64(secrets.token_bytes(32))
    code_challenge = compute_code_challenge(code_verifier)

    params = {
        "response_type": "code",
        "client_id": settings.client_id,
        "redirect_uri": settings.redirect_uri,
        "scope": settings.setup_scopes if minimal_scope else settings.scopes,
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
    }
    auth_url = f"{settings.authorize_url}?{urlencode(params, quote_via=quote)}"

    logger.debug(
        "pkce_params_generated",
        minimal_scope=minimal_scope,
        verifier_length=len(code_verifier),
    )
    return OAuthParams(
        auth_url=auth_url,
        code_verifier=code_verifier,
        state=state,
        code_challenge=code_challenge,
    )


def extract_code_from_url(url: str) -> str:
    """Extract the ``code`` query parameter from an authorization redirect.

    Raises:
        MissingAuthorizationCodeError: If the URL carries no code
    """
    codes = parse_qs(urlsplit(url).query).get("code")
    if not codes or not codes[0]:
        raise MissingAuthorizationCodeError(url)
    return codes[0]


class ClaudeOAuthClient:
    """Client for the Claude OAuth endpoints."""

    def __init__(
        self,
        settings: OAuthSettings | None = None,
        http_client: httpx.AsyncClient | None = None,
        http_settings: HTTPSettings | None = None,
    ):
        """Initialize OAuth client.

        Args:
            settings: OAuth configuration (uses defaults if not provided)
            http_client: HTTP client for making requests (creates one if not provided)
            http_settings: Timeouts for the flows
        """
        self.settings = settings or OAuthSettings()
        self.http_settings = http_settings or HTTPSettings()
        self._http_client = http_client
        self._owns_http_client = http_client is None

    async def __aenter__(self) -> "ClaudeOAuthClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Get the HTTP client, creating one if needed."""
        if self._http_client is None:
            self._http_client = HTTPClientFactory.create_client(
                settings=self.http_settings
            )
        return self._http_client

    def generate_pkce_params(self, minimal_scope: bool = False) -> OAuthParams:
        return generate_pkce_params(minimal_scope, self.settings)

    async def exchange_code(
        self, code: str, code_verifier: str, state: str
    ) -> OAuthTokens:
        """Exchange an authorization code for tokens.

        Raises:
            TokenExchangeFailedError: If the token endpoint rejects the code
            InvalidTokenResponseError: If the response cannot be decoded
            NetworkError: On transport failures
        """
        logger.debug("token_exchange_started", code_length=len(code))
        tokens = await self._request_tokens(
            {
                "client_id": self.settings.client_id,
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.redirect_uri,
                "code_verifier": code_verifier,
                "state": state,
            }
        )
        logger.info(
            "token_exchange_succeeded",
            has_refresh_token=tokens.refresh_token is not None,
            expires_at=tokens.expires_at.isoformat() if tokens.expires_at else None,
        )
        return tokens

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        """Refresh an OAuth access token.

        Raises:
            TokenExchangeFailedError: If the token endpoint rejects the refresh
            InvalidTokenResponseError: If the response cannot be decoded
            NetworkError: On transport failures
        """
        logger.debug("token_refresh_requested")
        tokens = await self._request_tokens(
            {
                "client_id": self.settings.client_id,
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )
        logger.info(
            "token_refresh_succeeded",
            rotated_refresh_token=tokens.refresh_token is not None,
        )
        return tokens

    async def cookie_derived_flow(
        self, session_cookie: str, minimal_scope: bool = False
    ) -> OAuthTokens:
        """Authorize with a claude.ai session cookie instead of a browser.

        Args:
            session_cookie: Value of the claude.ai ``sessionKey`` cookie
            minimal_scope: Request only the inference scope

        Returns:
            Tokens from exchanging the harvested authorization code
        """
        logger.info("cookie_oauth_started", minimal_scope=minimal_scope)

        organizations = await self.fetch_organizations(session_cookie)
        organization = next(
            (org for org in organizations if "chat" in org.capabilities), None
        )
        if organization is None:
            raise NoEligibleOrganizationError()
        logger.debug(
            "cookie_oauth_organization_selected", organization=organization.name
        )

        params = self.generate_pkce_params(minimal_scope)

        # Redirects stay disabled: the code only exists in the Location header.
        try:
            response = await self.http_client.get(
                params.auth_url,
                headers={
                    "Cookie": f"sessionKey={session_cookie}",
                    "User-Agent": self.settings.browser_user_agent,
                },
                follow_redirects=False,
                timeout=flow_timeout(self.http_settings),
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Authorization request failed: {e}") from e

        location = response.headers.get("location")
        if not location:
            logger.warning(
                "cookie_oauth_no_redirect", status_code=response.status_code
            )
            raise NoRedirectReceivedError(response.status_code)

        code = extract_code_from_url(location)
        logger.debug("cookie_oauth_code_received")

        return await self.exchange_code(code, params.code_verifier, params.state)

    async def fetch_organizations(self, session_cookie: str) -> list[Organization]:
        """List the organizations visible to a claude.ai session."""
        try:
            response = await self.http_client.get(
                self.settings.organizations_url,
                headers={
                    "Cookie": f"sessionKey={session_cookie}",
                    "User-Agent": self.settings.browser_user_agent,
                    "Origin": CLAUDE_WEB_ORIGIN,
                    "Referer": CLAUDE_WEB_REFERER,
                },
                timeout=flow_timeout(self.http_settings),
            )
        except httpx.HTTPError as e:
            raise NetworkError(f"Fetching organizations failed: {e}") from e

        if not response.is_success:
            logger.error(
                "organizations_fetch_failed", status_code=response.status_code
            )
            raise OrganizationsFetchError(response.status_code, response.text)

        try:
            return _organizations_adapter.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            raise OAuthError(f"Invalid organizations response: {e}") from e

    async def _request_tokens(self, payload: dict[str, str]) -> OAuthTokens:
        try:
            response = await self.http_client.post(
                self.settings.token_url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=flow_timeout(self.http_settings),
            )
        except httpx.HTTPError as e:
            logger.error(
                "token_request_network_error",
                grant_type=payload["grant_type"],
                error=str(e),
            )
            raise NetworkError(f"Token request failed: {e}") from e

        received_at = datetime.now(UTC)

        if not response.is_success:
            logger.error(
                "token_request_rejected",
                grant_type=payload["grant_type"],
                status_code=response.status_code,
            )
            raise TokenExchangeFailedError(response.status_code, response.text)

        return parse_token_response(response, received_at)


def parse_token_response(
    response: httpx.Response, received_at: datetime
) -> OAuthTokens:
    """Decode a token endpoint response into OAuthTokens.

    ``expires_in`` is converted to an absolute instant relative to when the
    response was received.
    """
    try:
        data = TokenResponse.model_validate(response.json())
    except (ValueError, ValidationError) as e:
        logger.error("token_response_invalid", error=str(e))
        raise InvalidTokenResponseError(f"Invalid token response: {e}") from e

    expires_at = (
        received_at + timedelta(seconds=data.expires_in)
        if data.expires_in is not None
        else None
    )
    return OAuthTokens(
        access_token=data.access_token,
        refresh_token=data.refresh_token,
        expires_at=expires_at,
        email=data.account.email_address if data.account else None,
    )
