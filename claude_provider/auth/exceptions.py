"""Custom exceptions for credential handling."""

from collections.abc import Sequence


class CredentialsError(Exception):
    """Base exception for all credential-related errors."""

    pass


class CredentialsNotFoundError(CredentialsError):
    """Raised when no credential is stored under the requested identifier."""

    def __init__(self, credential_id: str):
        self.credential_id = credential_id
        super().__init__(f"Credential not found: {credential_id}")


class CredentialsInvalidError(CredentialsError):
    """Raised when a credential configuration is malformed."""

    pass


class IncompleteCredentialError(CredentialsInvalidError):
    """Raised when fields required by the credential's scheme are missing."""

    def __init__(self, auth_type: str, missing_fields: Sequence[str]):
        self.auth_type = auth_type
        self.missing_fields = list(missing_fields)
        super().__init__(
            f"{auth_type} credential is missing required fields: "
            f"{', '.join(self.missing_fields)}"
        )


class UnknownAuthTypeError(CredentialsError):
    """Raised when a credential is created with an unknown scheme id."""

    def __init__(self, auth_type: str):
        self.auth_type = auth_type
        super().__init__(f"Unsupported auth type: {auth_type}")


class UnsupportedSchemeError(CredentialsError):
    """Raised when an operation is attempted on a scheme that cannot support it."""

    def __init__(self, auth_type: str, operation: str):
        self.auth_type = auth_type
        self.operation = operation
        super().__init__(f"{auth_type} credentials do not support {operation}")


class UnsupportedModelError(CredentialsError):
    """Raised when a credential is requested for a model that is not served."""

    def __init__(self, model: str):
        self.model = model
        super().__init__(f"Unsupported model: {model}")


class NoHealthyCredentialError(CredentialsError):
    """Raised when no healthy credential is available for acquisition."""

    def __init__(self) -> None:
        super().__init__("No healthy credential available")


class TruncatedSecretError(CredentialsError):
    """Raised when a stored refresh token is too short to be genuine."""

    def __init__(self, length: int, minimum: int):
        self.length = length
        self.minimum = minimum
        super().__init__(
            f"refresh_token appears truncated (length: {length} characters, "
            f"expected at least {minimum})"
        )


class InvalidUrlError(CredentialsError):
    """Raised when a request URL cannot be parsed for signing."""

    def __init__(self, url: str, reason: str = "malformed URL"):
        self.url = url
        super().__init__(f"Invalid URL {url!r}: {reason}")


class OAuthError(CredentialsError):
    """Base exception for OAuth-related errors."""

    pass


class NetworkError(OAuthError):
    """Raised on transport-level failures talking to an upstream endpoint."""

    pass


class OAuthHTTPError(OAuthError):
    """Raised when an upstream endpoint answers with a non-success status."""

    def __init__(self, action: str, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"{action} failed: {status} - {body}")


class TokenExchangeFailedError(OAuthHTTPError):
    """Raised when the token endpoint rejects a code exchange or refresh."""

    def __init__(self, status: int, body: str):
        super().__init__("Token exchange", status, body)


class OrganizationsFetchError(OAuthHTTPError):
    """Raised when the organizations list cannot be fetched with a session cookie."""

    def __init__(self, status: int, body: str):
        super().__init__("Fetching organizations", status, body)


class InvalidTokenResponseError(OAuthError):
    """Raised when a token endpoint response cannot be decoded."""

    pass


class NoEligibleOrganizationError(OAuthError):
    """Raised when no organization with chat capability is available."""

    def __init__(self) -> None:
        super().__init__("No organization with chat capability found")


class NoRedirectReceivedError(OAuthError):
    """Raised when the authorization request does not answer with a redirect."""

    def __init__(self, status: int | None = None):
        self.status = status
        super().__init__(
            "Authorization request did not return a redirect"
            + (f" (status {status})" if status is not None else "")
        )


class MissingAuthorizationCodeError(OAuthError):
    """Raised when the authorization redirect carries no code."""

    def __init__(self, url: str):
        self.url = url
        super().__init__("No authorization code found in redirect URL")
