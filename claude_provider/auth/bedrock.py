"""AWS Bedrock authentication.

Requests to Bedrock are signed with a minimal variant of AWS Signature
Version 4: only ``host`` and ``x-amz-date`` are signed, and a session token,
when present, travels as an unsigned ``x-amz-security-token`` header.
"""

import hashlib
import hmac
from datetime import UTC, datetime
from urllib.parse import urlsplit

import httpx

from claude_provider.auth.exceptions import (
    IncompleteCredentialError,
    InvalidUrlError,
    NetworkError,
)
from claude_provider.auth.models import AwsSignature, BedrockCredential
from claude_provider.config.constants import BEDROCK_SERVICE
from claude_provider.config.core import HTTPSettings
from claude_provider.core.http_client import check_timeout
from claude_provider.core.logging import get_logger


logger = get_logger(__name__)

ALGORITHM = "AWS4-HMAC-SHA256"
SIGNED_HEADERS = "host;x-amz-date"

BEDROCK_MODEL_MAP: dict[str, str] = {
    "claude-opus-4-20250514": "us.anthropic.claude-opus-4-20250514-v1:0",
    "claude-opus-4-5-20251101": "us.anthropic.claude-opus-4-5-20251101-v1:0",
    "claude-sonnet-4-20250514": "us.anthropic.claude-sonnet-4-20250514-v1:0",
    "claude-sonnet-4-5-20250929": "us.anthropic.claude-sonnet-4-5-20250929-v1:0",
    "claude-haiku-3-5-20241022": "us.anthropic.claude-haiku-3-5-20241022-v1:0",
    "claude-3-5-sonnet-20241022": "us.anthropic.claude-3-5-sonnet-20241022-v2:0",
}


def map_to_bedrock_model(model: str) -> str:
    """Map an Anthropic model name to its Bedrock inference profile id."""
    return BEDROCK_MODEL_MAP.get(model, f"us.anthropic.{model}-v1:0")


def bedrock_runtime_base_url(region: str) -> str:
    return f"https://bedrock-runtime.{region}.amazonaws.com"


def build_bedrock_url(region: str, model_id: str, stream: bool = True) -> str:
    """Build the Bedrock runtime invocation URL for a model."""
    action = "invoke-with-response-stream" if stream else "invoke"
    return f"{bedrock_runtime_base_url(region)}/model/{model_id}/{action}"


def hmac_sha256(key: bytes, data: bytes) -> bytes:
    return hmac.new(key, data, hashlib.sha256).digest()


def get_signature_key(
    secret_access_key: str, date_stamp: str, region: str, service: str
) -> bytes:
    """Derive the SigV4 signing key for a date, region and service."""
    k_date = hmac_sha256(f"AWS4{secret_access_key}".encode(), date_stamp.encode())
    k_region = hmac_sha256(k_date, region.encode())
    k_service = hmac_sha256(k_region, service.encode())
    return hmac_sha256(k_service, b"aws4_request")


def build_canonical_request(
    method: str,
    canonical_uri: str,
    canonical_querystring: str,
    host: str,
    amz_date: str,
    payload_hash: str,
) -> str:
    canonical_headers = f"host:{host}\nx-amz-date:{amz_date}\n"
    return "\n".join(
        [
            method,
            canonical_uri,
            canonical_querystring,
            canonical_headers,
            SIGNED_HEADERS,
            payload_hash,
        ]
    )


def sign_aws_request(
    method: str,
    url: str,
    credentials: BedrockCredential,
    body: bytes = b"",
    *,
    now: datetime | None = None,
) -> AwsSignature:
    """Compute SigV4 headers for one Bedrock request.

    Args:
        method: HTTP method, used verbatim in the canonical request
        url: Absolute request URL
        credentials: Bedrock credential holding the AWS keys and region
        body: Exact request body bytes
        now: Signing instant; defaults to the current UTC time

    Returns:
        AwsSignature with the authorization, date and optional session token

    Raises:
        InvalidUrlError: If the URL has no scheme or host
        IncompleteCredentialError: If the AWS keys are missing
    """
    if not credentials.access_key_id or credentials.secret_access_key is None:
        missing = [
            field
            for field, value in (
                ("access_key_id", credentials.access_key_id),
                ("secret_access_key", credentials.secret_access_key),
            )
            if not value
        ]
        raise IncompleteCredentialError(str(credentials.auth_type), missing)

    try:
        parsed = urlsplit(url)
        host = parsed.hostname
    except ValueError as e:
        raise InvalidUrlError(url, str(e)) from e
    if not parsed.scheme or not host:
        raise InvalidUrlError(url, "missing scheme or host")

    now = (now or datetime.now(UTC)).astimezone(UTC)
    amz_date = now.strftime("%Y%m%dT%H%M%SZ")
    date_stamp = now.strftime("%Y%m%d")

    payload_hash = hashlib.sha256(body).hexdigest()
    canonical_request = build_canonical_request(
        method,
        parsed.path or "/",
        parsed.query,
        host,
        amz_date,
        payload_hash,
    )
    canonical_request_hash = hashlib.sha256(canonical_request.encode()).hexdigest()

    credential_scope = (
        f"{date_stamp}/{credentials.region}/{BEDROCK_SERVICE}/aws4_request"
    )
    string_to_sign = (
        f"{ALGORITHM}\n{amz_date}\n{credential_scope}\n{canonical_request_hash}"
    )

    signing_key = get_signature_key(
        credentials.secret_access_key.get_secret_value(),
        date_stamp,
        credentials.region,
        BEDROCK_SERVICE,
    )
    signature = hmac.new(
        signing_key, string_to_sign.encode(), hashlib.sha256
    ).hexdigest()

    authorization = (
        f"{ALGORITHM} Credential={credentials.access_key_id}/{credential_scope}, "
        f"SignedHeaders={SIGNED_HEADERS}, Signature={signature}"
    )

    return AwsSignature(
        authorization=authorization,
        x_amz_date=amz_date,
        x_amz_security_token=(
            credentials.session_token.get_secret_value()
            if credentials.session_token
            else None
        ),
    )


async def validate_bedrock_credentials(
    credentials: BedrockCredential,
    http_client: httpx.AsyncClient,
    http_settings: HTTPSettings | None = None,
) -> bool:
    """Check AWS keys against the Bedrock control plane.

    Returns:
        True if a signed ListFoundationModels call succeeds
    """
    host = f"bedrock.{credentials.region}.amazonaws.com"
    url = f"https://{host}/foundation-models"
    signature = sign_aws_request("GET", url, credentials, b"")

    try:
        response = await http_client.get(
            url,
            headers={**signature.as_headers(), "Host": host},
            timeout=check_timeout(http_settings),
        )
    except httpx.TransportError as e:
        raise NetworkError(f"Bedrock credential check failed: {e}") from e

    logger.debug(
        "bedrock_credentials_checked",
        region=credentials.region,
        status_code=response.status_code,
    )
    return response.is_success
