"""Classification of upstream Anthropic API error responses."""

from pydantic import BaseModel, Field


class ProviderError(BaseModel):
    """How a caller should react to an upstream error status."""

    error_type: str = Field(..., description="Error category identifier")
    message: str
    status_code: int | None = None
    retryable: bool = False
    cooldown_seconds: int | None = Field(
        default=None, description="Seconds to wait before reusing the credential"
    )


def parse_error(status: int, body: str = "") -> ProviderError | None:
    """Classify an upstream error response.

    Args:
        status: HTTP status code of the upstream response
        body: Response body, echoed into server error messages

    Returns:
        ProviderError, or None for statuses that need no special handling
    """
    if status == 401:
        return ProviderError(
            error_type="authentication",
            message="Token expired or invalid",
            status_code=status,
            retryable=True,
            cooldown_seconds=0,
        )
    if status == 403:
        return ProviderError(
            error_type="authorization",
            message="Insufficient permissions",
            status_code=status,
            retryable=False,
        )
    if status == 429:
        return ProviderError(
            error_type="rate_limit",
            message="Too many requests",
            status_code=status,
            retryable=True,
            cooldown_seconds=60,
        )
    if 500 <= status <= 599:
        return ProviderError(
            error_type="server_error",
            message=f"Server error: {body}",
            status_code=status,
            retryable=True,
            cooldown_seconds=10,
        )
    return None
