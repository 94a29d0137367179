"""Azure credential descriptors.

A credential describes how to authenticate, without authenticating. The
`auth_type` field tags each variant so descriptors can be parsed from plain
mappings (YAML, JSON) into the right model.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, TypeAdapter, ValidationError

from azure_token_provider.exceptions import ConfigurationError


class AzureAuthType(str, Enum):
    """Supported credential kinds."""

    MANAGED_IDENTITY = "msi"
    CLIENT_SECRET = "clientsecret"
    WORKLOAD_IDENTITY = "workloadidentity"


class AzureManagedIdentityCredentials(BaseModel):
    """System- or user-assigned managed identity."""

    model_config = ConfigDict(frozen=True)

    auth_type: Literal["msi"] = "msi"
    client_id: str | None = Field(
        default=None, description="Client ID of a user-assigned identity"
    )


class AzureClientSecretCredentials(BaseModel):
    """Service principal authenticating with a client secret."""

    model_config = ConfigDict(frozen=True)

    auth_type: Literal["clientsecret"] = "clientsecret"
    azure_cloud: str | None = Field(
        default=None, description="Cloud name; falls back to the settings' cloud"
    )
    authority: str | None = Field(
        default=None, description="Explicit authority host, overrides the cloud"
    )
    tenant_id: str = Field(..., description="Azure AD tenant ID")
    client_id: str = Field(..., description="Azure AD client (application) ID")
    client_secret: SecretStr = Field(..., description="Azure AD client secret")


class AzureWorkloadIdentityCredentials(BaseModel):
    """Kubernetes workload identity (federated service account token).

    Unset fields fall back to the workload identity settings.
    """

    model_config = ConfigDict(frozen=True)

    auth_type: Literal["workloadidentity"] = "workloadidentity"
    tenant_id: str | None = None
    client_id: str | None = None
    token_file: str | None = None


AzureCredentials = Annotated[
    Union[
        AzureManagedIdentityCredentials,
        AzureClientSecretCredentials,
        AzureWorkloadIdentityCredentials,
    ],
    Field(discriminator="auth_type"),
]

_credentials_adapter: TypeAdapter[AzureCredentials] = TypeAdapter(AzureCredentials)


def parse_credentials(raw: dict | None) -> AzureCredentials:
    """Validate a mapping into a credential descriptor.

    Args:
        raw: Mapping with an `auth_type` key and the variant's fields

    Returns:
        The matching credential model

    Raises:
        ConfigurationError: If the mapping is missing, untagged or invalid
    """
    if not raw:
        raise ConfigurationError("credentials are not configured")
    try:
        return _credentials_adapter.validate_python(raw)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid credentials: {e}") from e
