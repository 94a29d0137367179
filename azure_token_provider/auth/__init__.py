"""Token retrieval, resolution and caching."""

from azure_token_provider.auth.cache import (
    CachedToken,
    TokenCache,
    TOKEN_EXPIRY_MARGIN_SECONDS,
    get_default_token_cache,
)
from azure_token_provider.auth.provider import (
    AzureAccessTokenProvider,
    new_azure_access_token_provider,
)
from azure_token_provider.auth.resolver import (
    get_client_secret_token_retriever,
    resolve_token_retriever,
)
from azure_token_provider.auth.retrievers import (
    ClientSecretTokenRetriever,
    ManagedIdentityTokenRetriever,
    RetrieverKind,
    TokenRetriever,
    WorkloadIdentityTokenRetriever,
)

__all__ = [
    "AzureAccessTokenProvider",
    "CachedToken",
    "ClientSecretTokenRetriever",
    "ManagedIdentityTokenRetriever",
    "RetrieverKind",
    "TOKEN_EXPIRY_MARGIN_SECONDS",
    "TokenCache",
    "TokenRetriever",
    "WorkloadIdentityTokenRetriever",
    "get_client_secret_token_retriever",
    "get_default_token_cache",
    "new_azure_access_token_provider",
    "resolve_token_retriever",
]
