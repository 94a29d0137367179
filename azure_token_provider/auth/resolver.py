"""Resolve a credential descriptor into the matching token retriever."""

import logging

from azure_token_provider.config import AzureSettings, get_authority_host
from azure_token_provider.credentials import (
    AzureClientSecretCredentials,
    AzureCredentials,
    AzureManagedIdentityCredentials,
    AzureWorkloadIdentityCredentials,
)
from azure_token_provider.exceptions import ConfigurationError
from azure_token_provider.auth.retrievers import (
    ClientSecretTokenRetriever,
    ManagedIdentityTokenRetriever,
    TokenRetriever,
    WorkloadIdentityTokenRetriever,
)


logger = logging.getLogger(__name__)


def resolve_token_retriever(
    settings: AzureSettings, credentials: AzureCredentials
) -> TokenRetriever:
    """Build the retriever for a credential.

    Only constructs objects, including the azure-identity credential; no
    network calls are made here, so a misconfiguration surfaces when the
    provider is created.

    Args:
        settings: Azure settings
        credentials: Credential descriptor

    Returns:
        TokenRetriever bound to the credential

    Raises:
        ConfigurationError: If the credential kind is unsupported or disabled,
            its cloud is unknown, or azure-identity rejects its values
    """
    if isinstance(credentials, AzureManagedIdentityCredentials):
        if not settings.managed_identity_enabled:
            raise ConfigurationError("managed identity authentication is not enabled")
        retriever = ManagedIdentityTokenRetriever(
            client_id=credentials.client_id or settings.managed_identity_client_id
        )
    elif isinstance(credentials, AzureClientSecretCredentials):
        retriever = get_client_secret_token_retriever(credentials, settings)
    elif isinstance(credentials, AzureWorkloadIdentityCredentials):
        retriever = get_workload_identity_token_retriever(credentials, settings)
    else:
        raise ConfigurationError(
            f"unsupported credential type: {type(credentials).__name__}"
        )

    retriever.prepare()
    logger.info(f"Resolved {retriever.kind.value} token retriever")
    return retriever


def resolve_authority_host(
    credentials: AzureClientSecretCredentials, settings: AzureSettings | None = None
) -> str:
    """Pick the authority host for client secret credentials.

    An explicit authority is used verbatim. Otherwise the credential's cloud,
    or the settings' default cloud, is looked up in the authority table.

    Raises:
        ConfigurationError: If the cloud is not supported
    """
    if credentials.authority:
        return credentials.authority

    cloud = credentials.azure_cloud or (settings.cloud if settings else None)
    if not cloud:
        raise ConfigurationError("unsupported cloud: no cloud configured")
    return get_authority_host(cloud)


def get_client_secret_token_retriever(
    credentials: AzureClientSecretCredentials, settings: AzureSettings | None = None
) -> ClientSecretTokenRetriever:
    """Build a client secret retriever.

    Args:
        credentials: Client secret credentials
        settings: Settings supplying the default cloud

    Returns:
        ClientSecretTokenRetriever with the resolved authority host

    Raises:
        ConfigurationError: If the cloud is not supported
    """
    return ClientSecretTokenRetriever(
        tenant_id=credentials.tenant_id,
        client_id=credentials.client_id,
        client_secret=credentials.client_secret.get_secret_value(),
        authority_host=resolve_authority_host(credentials, settings),
    )


def get_workload_identity_token_retriever(
    credentials: AzureWorkloadIdentityCredentials, settings: AzureSettings
) -> WorkloadIdentityTokenRetriever:
    """Build a workload identity retriever, filling gaps from the settings.

    Raises:
        ConfigurationError: If workload identity is disabled or the cloud is
            not supported
    """
    if not settings.workload_identity_enabled:
        raise ConfigurationError("workload identity authentication is not enabled")

    return WorkloadIdentityTokenRetriever(
        tenant_id=credentials.tenant_id or settings.workload_identity_tenant_id,
        client_id=credentials.client_id or settings.workload_identity_client_id,
        token_file=credentials.token_file or settings.workload_identity_token_file,
        authority_host=get_authority_host(settings.cloud),
    )
