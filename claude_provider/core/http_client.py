"""HTTP client construction for upstream OAuth, Bedrock and relay calls."""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx

from claude_provider.config.core import HTTPSettings
from claude_provider.core.logging import get_logger


logger = get_logger(__name__)


def flow_timeout(settings: HTTPSettings | None = None) -> httpx.Timeout:
    """Timeout for token exchange, refresh and the session-cookie flow."""
    settings = settings or HTTPSettings()
    return httpx.Timeout(
        settings.flow_total_timeout, connect=settings.flow_connect_timeout
    )


def check_timeout(settings: HTTPSettings | None = None) -> httpx.Timeout:
    """Timeout for remote credential checks."""
    settings = settings or HTTPSettings()
    return httpx.Timeout(
        settings.check_total_timeout, connect=settings.check_connect_timeout
    )


class HTTPClientFactory:
    """Factory for creating configured HTTP clients.

    Clients never follow redirects on their own: the session-cookie flow
    reads the authorization code from the redirect's Location header.
    """

    @staticmethod
    def create_client(
        *,
        settings: HTTPSettings | None = None,
        verify: bool | str = True,
        **kwargs: Any,
    ) -> httpx.AsyncClient:
        """Create an HTTP client with proxy/SSL taken from the environment.

        Args:
            settings: HTTP settings supplying the default (flow) timeout
            verify: SSL verification (True/False or path to CA bundle)
            **kwargs: Additional httpx.AsyncClient arguments

        Returns:
            Configured httpx.AsyncClient instance
        """
        proxy = _get_proxy_url()

        if isinstance(verify, bool) and verify:
            verify = _get_ssl_context()

        transport = httpx.AsyncHTTPTransport(verify=verify, proxy=proxy)

        client_config: dict[str, Any] = {
            "timeout": flow_timeout(settings),
            "transport": transport,
            "follow_redirects": False,
            **kwargs,
        }

        logger.debug(
            "http_client_created",
            has_proxy=proxy is not None,
            verify=verify if isinstance(verify, bool) else "ca_bundle",
        )

        return httpx.AsyncClient(**client_config)

    @staticmethod
    @asynccontextmanager
    async def managed_client(
        settings: HTTPSettings | None = None, **kwargs: Any
    ) -> AsyncGenerator[httpx.AsyncClient, None]:
        """Create an HTTP client that is closed when the block exits.

        Example:
            async with HTTPClientFactory.managed_client() as client:
                response = await client.get("https://api.example.com")
        """
        client = HTTPClientFactory.create_client(settings=settings, **kwargs)
        try:
            yield client
        finally:
            await client.aclose()


def _get_proxy_url() -> str | None:
    """Get proxy URL from environment variables.

    Returns:
        str or None: Proxy URL if any proxy is set
    """
    # For HTTPS requests, prioritize HTTPS_PROXY
    https_proxy = os.environ.get("HTTPS_PROXY") or os.environ.get("https_proxy")
    all_proxy = os.environ.get("ALL_PROXY")
    http_proxy = os.environ.get("HTTP_PROXY") or os.environ.get("http_proxy")

    proxy_url = https_proxy or all_proxy or http_proxy

    if proxy_url:
        logger.debug("proxy_configured", proxy_url=proxy_url)

    return proxy_url


def _get_ssl_context() -> str | bool:
    """Get SSL context configuration from environment variables.

    Returns:
        SSL verification configuration:
        - Path to CA bundle file
        - True for default verification
        - False to disable verification (insecure)
    """
    ca_bundle = os.environ.get("REQUESTS_CA_BUNDLE") or os.environ.get("SSL_CERT_FILE")
    ssl_verify = os.environ.get("SSL_VERIFY", "true").lower()

    if ca_bundle and Path(ca_bundle).exists():
        logger.info("ssl_ca_bundle_configured", ca_bundle_path=ca_bundle)
        return ca_bundle
    elif ssl_verify in ("false", "0", "no"):
        logger.warning("ssl_verification_disabled", ssl_verify_value=ssl_verify)
        return False
    else:
        return True
