"""Azure Token Provider.

Resolves Azure credentials to token retrievers and serves cached bearer tokens.
"""

from azure_token_provider.auth import AzureAccessTokenProvider, TokenCache
from azure_token_provider.config import AzureCloud, AzureSettings
from azure_token_provider.exceptions import (
    AcquisitionError,
    CancellationError,
    ConfigurationError,
    TokenProviderError,
)

__version__ = "0.1.0"
__all__ = [
    "__version__",
    "AcquisitionError",
    "AzureAccessTokenProvider",
    "AzureCloud",
    "AzureSettings",
    "CancellationError",
    "ConfigurationError",
    "TokenCache",
    "TokenProviderError",
]
