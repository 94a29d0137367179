"""Token retrievers backed by azure-identity async credentials."""

import asyncio
import logging
import threading
import weakref
from enum import Enum
from typing import Protocol

from azure.core.credentials import AccessToken
from azure.core.credentials_async import AsyncTokenCredential
from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.identity.aio import (
    ClientSecretCredential,
    ManagedIdentityCredential,
    WorkloadIdentityCredential,
)

from azure_token_provider.exceptions import AcquisitionError, ConfigurationError


logger = logging.getLogger(__name__)


class RetrieverKind(str, Enum):
    """Closed set of retriever variants."""

    MANAGED_IDENTITY = "managed_identity"
    CLIENT_SECRET = "client_secret"
    WORKLOAD_IDENTITY = "workload_identity"


class TokenRetriever(Protocol):
    """Protocol for retrievers bound to one resolved credential."""

    kind: RetrieverKind

    async def get_access_token(self, scopes: list[str]) -> AccessToken:
        """Fetch a fresh token for the scopes.

        Returns:
            AccessToken with the token string and its expiry (epoch seconds)

        Raises:
            AcquisitionError: If the identity provider call fails
        """
        ...

    async def close(self) -> None:
        ...


class CredentialTokenRetriever:
    """Base for retrievers that delegate to an azure-identity credential.

    Async credentials hold an HTTP session tied to the event loop that first
    used them, so one credential is kept per loop. A credential built by
    `prepare()` before any loop runs is adopted by the first loop that asks.
    Failures are raised as AcquisitionError without retry.
    """

    kind: RetrieverKind

    def __init__(self) -> None:
        self._unbound_credential: AsyncTokenCredential | None = None
        self._credentials: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop, AsyncTokenCredential
        ] = weakref.WeakKeyDictionary()
        self._lock = threading.Lock()

    def _create_credential(self) -> AsyncTokenCredential:
        raise NotImplementedError

    def prepare(self) -> None:
        """Build the credential now so invalid arguments surface immediately.

        No network call is made.

        Raises:
            ConfigurationError: If azure-identity rejects the arguments
        """
        try:
            credential = self._create_credential()
        except ValueError as e:
            raise ConfigurationError(f"invalid {self.kind.value} credential: {e}") from e
        with self._lock:
            self._unbound_credential = credential

    def _get_credential(self) -> AsyncTokenCredential:
        loop = asyncio.get_running_loop()
        with self._lock:
            credential = self._credentials.get(loop)
            if credential is None and self._unbound_credential is not None:
                credential, self._unbound_credential = self._unbound_credential, None
                self._credentials[loop] = credential
        if credential is not None:
            return credential

        try:
            credential = self._create_credential()
        except ValueError as e:
            raise AcquisitionError(f"invalid {self.kind.value} credential: {e}") from e
        with self._lock:
            return self._credentials.setdefault(loop, credential)

    async def get_access_token(self, scopes: list[str]) -> AccessToken:
        if not scopes:
            raise AcquisitionError("at least one scope is required")

        credential = self._get_credential()
        try:
            access_token = await credential.get_token(*scopes)
        except ClientAuthenticationError as e:
            logger.warning(f"{self.kind.value} authentication failed: {e.message}")
            raise AcquisitionError(
                f"{self.kind.value} authentication failed: {e.message}"
            ) from e
        except AzureError as e:
            logger.warning(f"{self.kind.value} token request failed: {e.message}")
            raise AcquisitionError(
                f"{self.kind.value} token request failed: {e.message}"
            ) from e

        logger.debug(
            f"Acquired {self.kind.value} token, expires at {access_token.expires_on}"
        )
        return access_token

    async def close(self) -> None:
        """Close the credential of the running loop and any unused one."""
        loop = asyncio.get_running_loop()
        with self._lock:
            credentials = [self._credentials.pop(loop, None), self._unbound_credential]
            self._unbound_credential = None
        for credential in credentials:
            if credential is not None:
                await credential.close()


class ManagedIdentityTokenRetriever(CredentialTokenRetriever):
    """Managed identity of the hosting Azure resource. Holds no secrets."""

    kind = RetrieverKind.MANAGED_IDENTITY

    def __init__(self, client_id: str | None = None) -> None:
        """Initialize the managed identity retriever.

        Args:
            client_id: Client ID of a user-assigned identity, or None for
                the system-assigned identity
        """
        super().__init__()
        self.client_id = client_id

    def _create_credential(self) -> AsyncTokenCredential:
        if self.client_id:
            return ManagedIdentityCredential(client_id=self.client_id)
        return ManagedIdentityCredential()

    def __repr__(self) -> str:
        return f"ManagedIdentityTokenRetriever(client_id={self.client_id!r})"


class ClientSecretTokenRetriever(CredentialTokenRetriever):
    """Service principal using the client credentials grant."""

    kind = RetrieverKind.CLIENT_SECRET

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority_host: str,
    ) -> None:
        """Initialize the client secret retriever.

        Args:
            tenant_id: Azure AD tenant ID
            client_id: Azure AD client (application) ID
            client_secret: Azure AD client secret
            authority_host: Authority host URL, e.g. https://login.microsoftonline.com/
        """
        super().__init__()
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.authority_host = authority_host

    def _create_credential(self) -> AsyncTokenCredential:
        return ClientSecretCredential(
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            client_secret=self.client_secret,
            authority=self.authority_host,
        )

    def __repr__(self) -> str:
        return (
            f"ClientSecretTokenRetriever(tenant_id={self.tenant_id!r}, "
            f"client_id={self.client_id!r}, authority_host={self.authority_host!r})"
        )


class WorkloadIdentityTokenRetriever(CredentialTokenRetriever):
    """Kubernetes workload identity via a federated service account token."""

    kind = RetrieverKind.WORKLOAD_IDENTITY

    def __init__(
        self,
        tenant_id: str | None,
        client_id: str | None,
        token_file: str | None,
        authority_host: str,
    ) -> None:
        super().__init__()
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.token_file = token_file
        self.authority_host = authority_host

    def _create_credential(self) -> AsyncTokenCredential:
        # Unset values are read by azure-identity from AZURE_* variables
        return WorkloadIdentityCredential(
            tenant_id=self.tenant_id,
            client_id=self.client_id,
            token_file_path=self.token_file,
            authority=self.authority_host,
        )

    def __repr__(self) -> str:
        return (
            f"WorkloadIdentityTokenRetriever(tenant_id={self.tenant_id!r}, "
            f"client_id={self.client_id!r}, token_file={self.token_file!r})"
        )
