"""Configuration loading and validation for the Azure token provider."""

import logging
import os
from enum import Enum
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from azure_token_provider.credentials import AzureCredentials, parse_credentials
from azure_token_provider.exceptions import ConfigurationError


logger = logging.getLogger(__name__)


class AzureCloud(str, Enum):
    """Known Azure clouds."""

    PUBLIC = "AzureCloud"
    CHINA = "AzureChinaCloud"
    US_GOVERNMENT = "AzureUSGovernment"


# Authority hosts of the Azure AD endpoints per cloud
AUTHORITY_HOSTS: dict[str, str] = {
    AzureCloud.PUBLIC.value: "https://login.microsoftonline.com/",
    AzureCloud.CHINA.value: "https://login.chinacloudapi.cn/",
    AzureCloud.US_GOVERNMENT.value: "https://login.microsoftonline.us/",
}


def get_authority_host(cloud: str) -> str:
    """Look up the authority host for a cloud.

    Args:
        cloud: Cloud name, e.g. "AzureCloud"

    Returns:
        Authority host URL

    Raises:
        ConfigurationError: If the cloud is not supported
    """
    cloud_name = cloud.value if isinstance(cloud, AzureCloud) else cloud
    host = AUTHORITY_HOSTS.get(cloud_name)
    if host is None:
        raise ConfigurationError(f"unsupported cloud: {cloud_name!r}")
    return host


class AzureSettings(BaseModel):
    """Process-wide Azure authentication settings."""

    model_config = ConfigDict(frozen=True)

    cloud: str = Field(
        default=AzureCloud.PUBLIC.value,
        description="Default cloud for credentials that don't name one",
    )
    managed_identity_enabled: bool = Field(
        default=False, description="Allow managed identity authentication"
    )
    managed_identity_client_id: str | None = Field(
        default=None, description="Client ID of a user-assigned managed identity"
    )
    workload_identity_enabled: bool = Field(
        default=False, description="Allow workload identity authentication"
    )
    workload_identity_tenant_id: str | None = Field(default=None)
    workload_identity_client_id: str | None = Field(default=None)
    workload_identity_token_file: str | None = Field(
        default=None, description="Path to the federated service account token"
    )

    @model_validator(mode="after")
    def validate_managed_identity_client_id(self) -> "AzureSettings":
        """Validate that a managed identity client ID is only set when enabled."""
        if self.managed_identity_client_id and not self.managed_identity_enabled:
            raise ValueError(
                "managed_identity_client_id requires managed_identity_enabled"
            )
        return self


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes")


def read_settings_from_env() -> AzureSettings:
    """Build settings from AZURE_* environment variables.

    Returns:
        AzureSettings populated from the environment

    Raises:
        ConfigurationError: If the environment holds invalid values
    """
    try:
        return AzureSettings(
            cloud=os.getenv("AZURE_CLOUD") or AzureCloud.PUBLIC.value,
            managed_identity_enabled=_env_flag("AZURE_MANAGED_IDENTITY_ENABLED"),
            managed_identity_client_id=os.getenv("AZURE_MANAGED_IDENTITY_CLIENT_ID") or None,
            workload_identity_enabled=_env_flag("AZURE_WORKLOAD_IDENTITY_ENABLED"),
            workload_identity_tenant_id=os.getenv("AZURE_TENANT_ID") or None,
            workload_identity_client_id=os.getenv("AZURE_CLIENT_ID") or None,
            workload_identity_token_file=os.getenv("AZURE_FEDERATED_TOKEN_FILE") or None,
        )
    except ValidationError as e:
        raise ConfigurationError(f"Invalid Azure environment settings: {e}") from e


CONFIG_FILENAME = "config.yaml"


def locate_config_file(config_path: Path | None = None) -> Path:
    """Return the config file to load.

    An explicit path must exist. Without one, config.yaml is looked up in the
    working directory and then in the home directory.

    Raises:
        ConfigurationError: If no config file exists
    """
    if config_path is not None:
        if not config_path.is_file():
            raise ConfigurationError(f"no config file at {config_path}")
        return config_path

    candidates = [Path.cwd() / CONFIG_FILENAME, Path.home() / CONFIG_FILENAME]
    for candidate in candidates:
        if candidate.is_file():
            return candidate

    searched = ", ".join(str(candidate) for candidate in candidates)
    raise ConfigurationError(f"no {CONFIG_FILENAME} in {searched}; pass --config")


def read_config_mapping(path: Path) -> dict:
    """Parse a config file whose top level must be a mapping.

    Raises:
        ConfigurationError: If the file is unreadable, not YAML, or not a mapping
    """
    try:
        content = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigurationError(f"cannot read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"{path} is not valid YAML: {e}") from e

    if not isinstance(content, dict):
        raise ConfigurationError(
            f"{path} must hold a mapping at the top level, got {type(content).__name__}"
        )
    return content


def settings_from_mapping(raw: dict | None) -> AzureSettings:
    """Validate the `azure:` section of a config file.

    Raises:
        ConfigurationError: If the section is invalid
    """
    try:
        return AzureSettings.model_validate(raw or {})
    except ValidationError as e:
        raise ConfigurationError(f"Invalid azure settings: {e}") from e


def load_settings(config_path: Path | None = None) -> AzureSettings:
    """Load settings from the `azure:` section of config.yaml.

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Validated AzureSettings

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    path = locate_config_file(config_path)
    raw_config = read_config_mapping(path)
    settings = settings_from_mapping(raw_config.get("azure"))
    logger.debug(f"Loaded Azure settings from {path} (cloud={settings.cloud})")
    return settings


def load_credentials(config_path: Path | None = None) -> AzureCredentials:
    """Load the credential descriptor from the `credentials:` section of config.yaml.

    Raises:
        ConfigurationError: If the file is missing or the section is invalid
    """
    path = locate_config_file(config_path)
    raw_config = read_config_mapping(path)
    return parse_credentials(raw_config.get("credentials"))


def load_config(config_path: Path | None = None) -> tuple[AzureSettings, AzureCredentials]:
    """Load settings and credentials from a single config.yaml.

    Example file:

        azure:
          cloud: AzureCloud
          managed_identity_enabled: true
        credentials:
          auth_type: msi

    Args:
        config_path: Optional explicit path to config file

    Returns:
        Tuple of (settings, credentials)

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    path = locate_config_file(config_path)
    raw_config = read_config_mapping(path)
    settings = settings_from_mapping(raw_config.get("azure"))
    credentials = parse_credentials(raw_config.get("credentials"))
    logger.debug(
        f"Loaded config from {path} (cloud={settings.cloud}, auth_type={credentials.auth_type})"
    )
    return settings, credentials
