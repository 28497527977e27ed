"""Claude OAuth flows."""

from claude_provider.auth.oauth.client import (
    ClaudeOAuthClient,
    compute_code_challenge,
    extract_code_from_url,
    generate_pkce_params,
)
from claude_provider.auth.oauth.protocol import TokenRefresher


__all__ = [
    "ClaudeOAuthClient",
    "TokenRefresher",
    "compute_code_challenge",
    "extract_code_from_url",
    "generate_pkce_params",
]
