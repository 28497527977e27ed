"""OAuth protocol definitions used by the credential lifecycle."""

from typing import Protocol

from claude_provider.auth.models import OAuthTokens


class TokenRefresher(Protocol):
    """Anything that can trade a refresh token for new tokens."""

    async def refresh(self, refresh_token: str) -> OAuthTokens:
        """Refresh an access token.

        Args:
            refresh_token: Current refresh token

        Returns:
            New tokens; ``refresh_token`` is None when it was not rotated
        """
        ...
