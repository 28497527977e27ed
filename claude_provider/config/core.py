"""Settings sections for the Claude provider."""

from datetime import timedelta

from pydantic import BaseModel, Field, field_validator

from . import constants


class OAuthSettings(BaseModel):
    """OAuth endpoints and client identity for Claude authorization."""

    client_id: str = Field(
        default=constants.CLAUDE_CLIENT_ID,
        description="OAuth client identifier",
    )
    authorize_url: str = Field(
        default=constants.CLAUDE_AUTH_URL,
        description="OAuth authorization endpoint",
    )
    token_url: str = Field(
        default=constants.CLAUDE_TOKEN_URL,
        description="OAuth token endpoint shared by code exchange and refresh",
    )
    organizations_url: str = Field(
        default=constants.CLAUDE_ORGANIZATIONS_URL,
        description="Organizations list endpoint used by the session-cookie flow",
    )
    redirect_uri: str = Field(
        default=constants.CLAUDE_REDIRECT_URI,
        description="OAuth redirect URI registered for the client",
    )
    scopes: str = Field(
        default=constants.CLAUDE_SCOPES,
        description="Space separated scopes for a full authorization",
    )
    setup_scopes: str = Field(
        default=constants.CLAUDE_SCOPES_SETUP,
        description="Space separated scopes for an inference-only setup token",
    )
    browser_user_agent: str = Field(
        default=constants.BROWSER_USER_AGENT,
        description="User-Agent sent with session-cookie requests",
    )


class HTTPSettings(BaseModel):
    """HTTP client timeouts.

    Flow timeouts apply to token exchange, refresh and the cookie flow.
    Check timeouts apply to remote credential validation.
    """

    flow_connect_timeout: float = Field(
        default=constants.FLOW_CONNECT_TIMEOUT, gt=0
    )
    flow_total_timeout: float = Field(default=constants.FLOW_TOTAL_TIMEOUT, gt=0)
    check_connect_timeout: float = Field(
        default=constants.CHECK_CONNECT_TIMEOUT, gt=0
    )
    check_total_timeout: float = Field(default=constants.CHECK_TOTAL_TIMEOUT, gt=0)


class RefreshSettings(BaseModel):
    """Token expiry and refresh retry policy."""

    max_attempts: int = Field(default=constants.DEFAULT_REFRESH_ATTEMPTS, ge=1)
    base_delay_ms: int = Field(default=constants.REFRESH_BASE_DELAY_MS, ge=0)
    min_refresh_token_length: int = Field(
        default=constants.MIN_REFRESH_TOKEN_LENGTH, ge=0
    )
    expired_margin_minutes: int = Field(
        default=constants.EXPIRED_MARGIN_MINUTES, ge=0
    )
    expiring_soon_margin_minutes: int = Field(
        default=constants.EXPIRING_SOON_MARGIN_MINUTES, ge=0
    )

    @property
    def expired_margin(self) -> timedelta:
        return timedelta(minutes=self.expired_margin_minutes)

    @property
    def expiring_soon_margin(self) -> timedelta:
        return timedelta(minutes=self.expiring_soon_margin_minutes)


class BedrockSettings(BaseModel):
    """AWS Bedrock defaults."""

    default_region: str = Field(default=constants.BEDROCK_DEFAULT_REGION)


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    )
    format: str = Field(
        default="console",
        description="Log output format: 'console' or 'json'",
    )
    file: str | None = Field(
        default=None,
        description="Optional path that additionally receives JSON log lines",
    )

    @field_validator("level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        upper_v = v.upper()
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if upper_v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper_v

    @field_validator("format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate and normalize log format."""
        lower_v = v.lower()
        valid_formats = ["console", "json"]
        if lower_v not in valid_formats:
            raise ValueError(f"Invalid log format: {v}. Must be one of {valid_formats}")
        return lower_v
