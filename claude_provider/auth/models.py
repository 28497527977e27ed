"""Data models for authentication."""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, TypeAdapter

from claude_provider.config.constants import BEDROCK_DEFAULT_REGION


class AuthType(str, Enum):
    """Authentication schemes supported by the provider."""

    OAUTH = "oauth"
    CLAUDE_CODE = "claude_code"
    CONSOLE = "console"
    SETUP_TOKEN = "setup_token"
    BEDROCK = "bedrock"
    CCR = "ccr"

    def __str__(self) -> str:
        return self.value


class BaseCredential(BaseModel):
    """Fields shared by every credential scheme."""

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    is_healthy: bool = True
    usage_count: int = 0
    error_count: int = 0
    last_error: str | None = None


class OAuthFamilyCredential(BaseCredential):
    """Bearer-token credentials issued by Claude OAuth."""

    access_token: SecretStr | None = None
    email: str | None = None
    expire: str | None = Field(
        default=None, description="Access token expiry as an RFC 3339 timestamp"
    )
    last_refresh: str | None = None

    def __repr__(self) -> str:
        token = self.access_token.get_secret_value() if self.access_token else ""
        preview = f"{token[:8]}...{token[-8:]}" if len(token) > 16 else "***"
        return (
            f"{type(self).__name__}(name={self.name!r}, access_token='{preview}', "
            f"expire={self.expire!r}, is_healthy={self.is_healthy})"
        )


class RefreshableCredential(OAuthFamilyCredential):
    """OAuth credentials that carry a refresh token."""

    refresh_token: SecretStr | None = None


class OAuthCredential(RefreshableCredential):
    auth_type: Literal[AuthType.OAUTH] = AuthType.OAUTH


class ClaudeCodeCredential(RefreshableCredential):
    auth_type: Literal[AuthType.CLAUDE_CODE] = AuthType.CLAUDE_CODE


class ConsoleCredential(RefreshableCredential):
    auth_type: Literal[AuthType.CONSOLE] = AuthType.CONSOLE
    organization_id: str | None = None
    organization_name: str | None = None


class SetupTokenCredential(OAuthFamilyCredential):
    """Inference-only token; cannot be refreshed."""

    auth_type: Literal[AuthType.SETUP_TOKEN] = AuthType.SETUP_TOKEN


class BedrockCredential(BaseCredential):
    """AWS credentials used to sign Bedrock requests."""

    auth_type: Literal[AuthType.BEDROCK] = AuthType.BEDROCK
    access_key_id: str | None = None
    secret_access_key: SecretStr | None = None
    session_token: SecretStr | None = None
    region: str = BEDROCK_DEFAULT_REGION

    def __repr__(self) -> str:
        return (
            f"BedrockCredential(name={self.name!r}, "
            f"access_key_id={self.access_key_id!r}, region={self.region!r}, "
            f"is_healthy={self.is_healthy})"
        )


class CcrCredential(BaseCredential):
    """API key for a third-party Claude relay."""

    auth_type: Literal[AuthType.CCR] = AuthType.CCR
    api_key: SecretStr | None = None
    base_url: str | None = None

    def __repr__(self) -> str:
        return (
            f"CcrCredential(name={self.name!r}, base_url={self.base_url!r}, "
            f"is_healthy={self.is_healthy})"
        )


Credential = Annotated[
    OAuthCredential
    | ClaudeCodeCredential
    | ConsoleCredential
    | SetupTokenCredential
    | BedrockCredential
    | CcrCredential,
    Field(discriminator="auth_type"),
]

CredentialAdapter: TypeAdapter[Credential] = TypeAdapter(Credential)


class OAuthParams(BaseModel):
    """PKCE material for one authorization round-trip."""

    auth_url: str
    code_verifier: str
    state: str
    code_challenge: str


class OAuthTokens(BaseModel):
    """Tokens returned by a code exchange or refresh."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    email: str | None = None

    def __repr__(self) -> str:
        return (
            f"OAuthTokens(access_token='***', "
            f"has_refresh_token={self.refresh_token is not None}, "
            f"expires_at={self.expires_at!r}, email={self.email!r})"
        )


class TokenRefreshResult(BaseModel):
    """Outcome of a successful refresh, already written back to the credential."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    email: str | None = None


class AwsSignature(BaseModel):
    """SigV4 headers for a single request."""

    authorization: str
    x_amz_date: str
    x_amz_security_token: str | None = None

    def as_headers(self) -> dict[str, str]:
        headers = {
            "Authorization": self.authorization,
            "x-amz-date": self.x_amz_date,
        }
        if self.x_amz_security_token:
            headers["x-amz-security-token"] = self.x_amz_security_token
        return headers


class AcquiredCredential(BaseModel):
    """Credential snapshot with request headers materialized for its scheme."""

    id: str
    name: str | None = None
    auth_type: AuthType
    base_url: str | None = None
    headers: dict[str, str] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)


class ReleaseError(BaseModel):
    """Failure reported by a caller when releasing a credential."""

    message: str | None = None
    mark_unhealthy: bool = False


class ReleaseResult(BaseModel):
    """Outcome of using an acquired credential; no error means success."""

    error: ReleaseError | None = None

    @property
    def success(self) -> bool:
        return self.error is None


class ValidationResult(BaseModel):
    """Result of credential validation."""

    valid: bool
    message: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)


class Organization(BaseModel):
    """Organization entry from the claude.ai organizations list."""

    model_config = ConfigDict(extra="ignore")

    uuid: str
    name: str
    capabilities: list[str] = Field(default_factory=list)


class TokenAccount(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email_address: str | None = None
    uuid: str | None = None


class TokenResponse(BaseModel):
    """Raw token endpoint response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    token_type: str | None = None
    account: TokenAccount | None = None
