"""Tests for the command-line entry point."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError

from azure_token_provider.__main__ import main, parse_args, DEFAULT_SCOPE


@pytest.fixture
def msi_config(tmp_path: Path) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(
        "azure:\n  managed_identity_enabled: true\ncredentials:\n  auth_type: msi\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def mock_credential() -> MagicMock:
    credential = MagicMock()
    credential.get_token = AsyncMock(
        return_value=AccessToken("0123456789abcdef0123456789", 4102444800)
    )
    credential.close = AsyncMock()
    return credential


def test_parse_args_defaults():
    args = parse_args([])

    assert args.config is None
    assert args.scopes is None
    assert args.env is False


def test_prints_token_summary(msi_config, mock_credential, capsys):
    with patch(
        "azure_token_provider.auth.retrievers.ManagedIdentityCredential",
        return_value=mock_credential,
    ):
        exit_code = main(["--config", str(msi_config)])

    out = capsys.readouterr().out
    assert exit_code == 0
    assert "Retriever: managed_identity" in out
    assert f"Scopes: {DEFAULT_SCOPE}" in out
    assert "Expires: 2100-01-01T00:00:00+00:00" in out
    assert "Token: 0123456789abcdef..." in out
    assert "0123456789abcdef0123456789" not in out


def test_custom_scopes(msi_config, mock_credential, capsys):
    with patch(
        "azure_token_provider.auth.retrievers.ManagedIdentityCredential",
        return_value=mock_credential,
    ):
        main(["--config", str(msi_config), "--scope", "a", "--scope", "b"])

    mock_credential.get_token.assert_awaited_once_with("a", "b")


def test_configuration_error(tmp_path, capsys):
    path = tmp_path / "config.yaml"
    path.write_text("credentials:\n  auth_type: msi\n", encoding="utf-8")

    exit_code = main(["--config", str(path)])

    assert exit_code == 1
    assert "managed identity authentication is not enabled" in capsys.readouterr().err


def test_acquisition_error(msi_config, mock_credential, capsys):
    mock_credential.get_token.side_effect = ClientAuthenticationError(
        message="ManagedIdentityCredential authentication unavailable"
    )

    with patch(
        "azure_token_provider.auth.retrievers.ManagedIdentityCredential",
        return_value=mock_credential,
    ):
        exit_code = main(["--config", str(msi_config)])

    assert exit_code == 1
    assert "Token acquisition failed" in capsys.readouterr().err


def test_settings_from_environment(tmp_path, mock_credential, monkeypatch, capsys):
    path = tmp_path / "config.yaml"
    path.write_text("credentials:\n  auth_type: msi\n", encoding="utf-8")
    monkeypatch.setenv("AZURE_MANAGED_IDENTITY_ENABLED", "true")
    monkeypatch.delenv("AZURE_MANAGED_IDENTITY_CLIENT_ID", raising=False)
    monkeypatch.delenv("AZURE_CLOUD", raising=False)

    with patch(
        "azure_token_provider.auth.retrievers.ManagedIdentityCredential",
        return_value=mock_credential,
    ):
        exit_code = main(["--config", str(path), "--env"])

    assert exit_code == 0
    assert "Retriever: managed_identity" in capsys.readouterr().out


def test_environment_ignores_invalid_file_settings(tmp_path, mock_credential, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(
        "azure:\n  cloud: 42\n  managed_identity_enabled: maybe\ncredentials:\n  auth_type: msi\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("AZURE_MANAGED_IDENTITY_ENABLED", "true")
    monkeypatch.delenv("AZURE_MANAGED_IDENTITY_CLIENT_ID", raising=False)
    monkeypatch.delenv("AZURE_CLOUD", raising=False)

    with patch(
        "azure_token_provider.auth.retrievers.ManagedIdentityCredential",
        return_value=mock_credential,
    ):
        exit_code = main(["--config", str(path), "--env"])

    assert exit_code == 0
