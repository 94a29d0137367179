"""Exceptions raised by the Azure token provider."""


class TokenProviderError(Exception):
    """Base error for the Azure token provider."""

    pass


class ConfigurationError(TokenProviderError):
    """Unsupported or disabled credential configuration, or an invalid config file.

    Raised when settings are loaded or a provider is constructed, never at
    token request time.
    """

    pass


class AcquisitionError(TokenProviderError):
    """Failure obtaining a token from the identity provider.

    Never cached. Every caller waiting on the failed acquisition receives the
    same instance.
    """

    pass


class CancellationError(TokenProviderError):
    """A caller stopped waiting for a token before it was available."""

    pass
