"""Authentication schemes, credential models and token lifecycle."""

from claude_provider.auth.exceptions import (
    CredentialsError,
    CredentialsInvalidError,
    CredentialsNotFoundError,
    IncompleteCredentialError,
    InvalidTokenResponseError,
    InvalidUrlError,
    MissingAuthorizationCodeError,
    NetworkError,
    NoEligibleOrganizationError,
    NoHealthyCredentialError,
    NoRedirectReceivedError,
    OAuthError,
    OAuthHTTPError,
    OrganizationsFetchError,
    TokenExchangeFailedError,
    TruncatedSecretError,
    UnknownAuthTypeError,
    UnsupportedModelError,
    UnsupportedSchemeError,
)
from claude_provider.auth.models import (
    AcquiredCredential,
    AuthType,
    AwsSignature,
    BedrockCredential,
    CcrCredential,
    ClaudeCodeCredential,
    ConsoleCredential,
    Credential,
    OAuthCredential,
    OAuthParams,
    OAuthTokens,
    ReleaseError,
    ReleaseResult,
    SetupTokenCredential,
    TokenRefreshResult,
    ValidationResult,
)


__all__ = [
    # Models
    "AcquiredCredential",
    "AuthType",
    "AwsSignature",
    "BedrockCredential",
    "CcrCredential",
    "ClaudeCodeCredential",
    "ConsoleCredential",
    "Credential",
    "OAuthCredential",
    "OAuthParams",
    "OAuthTokens",
    "ReleaseError",
    "ReleaseResult",
    "SetupTokenCredential",
    "TokenRefreshResult",
    "ValidationResult",
    # Exceptions
    "CredentialsError",
    "CredentialsInvalidError",
    "CredentialsNotFoundError",
    "IncompleteCredentialError",
    "InvalidTokenResponseError",
    "InvalidUrlError",
    "MissingAuthorizationCodeError",
    "NetworkError",
    "NoEligibleOrganizationError",
    "NoHealthyCredentialError",
    "NoRedirectReceivedError",
    "OAuthError",
    "OAuthHTTPError",
    "OrganizationsFetchError",
    "TokenExchangeFailedError",
    "TruncatedSecretError",
    "UnknownAuthTypeError",
    "UnsupportedModelError",
    "UnsupportedSchemeError",
]
