"""Claude relay (CCR) authentication via API key."""

import httpx

from claude_provider.auth.exceptions import IncompleteCredentialError, NetworkError
from claude_provider.auth.models import CcrCredential
from claude_provider.config.constants import ANTHROPIC_VERSION
from claude_provider.config.core import HTTPSettings
from claude_provider.core.http_client import check_timeout
from claude_provider.core.logging import get_logger


logger = get_logger(__name__)


def normalize_base_url(base_url: str) -> str:
    return base_url.rstrip("/")


def build_ccr_url(base_url: str, endpoint: str) -> str:
    """Join a relay base URL and an API path with exactly one slash."""
    return f"{normalize_base_url(base_url)}/{endpoint.lstrip('/')}"


def build_ccr_headers(api_key: str) -> dict[str, str]:
    return {
        "x-api-key": api_key,
        "anthropic-version": ANTHROPIC_VERSION,
        "Content-Type": "application/json",
    }


async def validate_ccr_credentials(
    credentials: CcrCredential,
    http_client: httpx.AsyncClient,
    http_settings: HTTPSettings | None = None,
) -> bool:
    """Check a relay API key by listing models.

    Only 401 and 403 count as invalid; other statuses may just mean the
    relay does not expose the models endpoint.
    """
    if credentials.api_key is None or not credentials.base_url:
        missing = [
            field
            for field, value in (
                ("api_key", credentials.api_key),
                ("base_url", credentials.base_url),
            )
            if not value
        ]
        raise IncompleteCredentialError(str(credentials.auth_type), missing)

    url = build_ccr_url(credentials.base_url, "v1/models")
    headers = build_ccr_headers(credentials.api_key.get_secret_value())
    headers.pop("Content-Type")

    try:
        response = await http_client.get(
            url, headers=headers, timeout=check_timeout(http_settings)
        )
    except httpx.TransportError as e:
        raise NetworkError(f"Relay credential check failed: {e}") from e

    logger.debug("ccr_credentials_checked", url=url, status_code=response.status_code)
    return response.status_code not in (401, 403)
