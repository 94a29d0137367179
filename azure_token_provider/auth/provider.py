"""Access token provider binding a resolved retriever to the shared cache."""

import logging
from typing import Protocol

from azure_token_provider.config import AzureSettings
from azure_token_provider.credentials import AzureCredentials
from azure_token_provider.auth.cache import get_default_token_cache
from azure_token_provider.auth.resolver import resolve_token_retriever
from azure_token_provider.auth.retrievers import TokenRetriever


logger = logging.getLogger(__name__)


class AccessTokenCache(Protocol):
    """Capability the provider needs from a token cache."""

    async def get_access_token(
        self,
        retriever: TokenRetriever,
        scopes: list[str],
        timeout: float | None = None,
    ) -> str:
        ...


class AzureAccessTokenProvider:
    """Azure AD access token provider for one credential configuration.

    The retriever is resolved once, here, so a misconfigured credential fails
    at construction rather than on the first token request. Token caching is
    left entirely to the cache.
    """

    def __init__(
        self,
        settings: AzureSettings,
        credentials: AzureCredentials,
        token_cache: AccessTokenCache | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            settings: Azure settings
            credentials: Credential descriptor
            token_cache: Cache to use; defaults to the process-wide cache

        Raises:
            ConfigurationError: If the credential cannot be resolved
        """
        self._retriever = resolve_token_retriever(settings, credentials)
        if token_cache is None:
            token_cache = get_default_token_cache()
        self._token_cache = token_cache

    @property
    def retriever(self) -> TokenRetriever:
        """The retriever this provider is bound to."""
        return self._retriever

    async def get_access_token(
        self, scopes: list[str], timeout: float | None = None
    ) -> str:
        """Get an access token for the scopes.

        Args:
            scopes: Requested scopes, e.g. ["https://management.azure.com/.default"]
            timeout: Seconds to wait for an acquisition, or None

        Returns:
            Access token string

        Raises:
            AcquisitionError: If the token cannot be acquired
            CancellationError: If the timeout expires first
        """
        return await self._token_cache.get_access_token(
            self._retriever, scopes, timeout=timeout
        )

    async def get_auth_header(self, scopes: list[str]) -> dict[str, str]:
        """Get authorization header for a request.

        Returns:
            Dict with Authorization header
        """
        token = await self.get_access_token(scopes)
        return {"Authorization": f"Bearer {token}"}

    async def close(self) -> None:
        """Release the retriever's credential."""
        await self._retriever.close()


def new_azure_access_token_provider(
    settings: AzureSettings,
    credentials: AzureCredentials,
    token_cache: AccessTokenCache | None = None,
) -> AzureAccessTokenProvider:
    """Create an access token provider.

    Raises:
        ConfigurationError: If the credential cannot be resolved
    """
    return AzureAccessTokenProvider(settings, credentials, token_cache=token_cache)
