"""CLI entry point for the Azure token provider.

Usage:
    python -m azure_token_provider [--config CONFIG_PATH] [--env] --scope SCOPE [--scope SCOPE ...]

Config file:
    - config.yaml: `azure:` settings and `credentials:` descriptor
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path


DEFAULT_SCOPE = "https://management.azure.com/.default"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="azure-token-provider",
        description="Acquire an Azure AD access token using the configured credential.\n\n"
                    "USAGE EXAMPLES:\n"
                    "  python -m azure_token_provider --config config.yaml\n"
                    "  python -m azure_token_provider --scope https://storage.azure.com/.default\n\n"
                    "Config file:\n"
                    "  config.yaml: `azure:` settings and `credentials:` descriptor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.yaml file (default: ./config.yaml or ~/config.yaml)",
    )
    parser.add_argument(
        "--env",
        action="store_true",
        help="Read `azure:` settings from AZURE_* environment variables; only `credentials:` is read from the file",
    )
    parser.add_argument(
        "--scope",
        action="append",
        dest="scopes",
        default=None,
        help=f"Scope to request, repeatable (default: {DEFAULT_SCOPE})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


async def acquire_token(args: argparse.Namespace) -> int:
    """Resolve a provider from config and acquire one token."""
    from azure_token_provider.auth.provider import AzureAccessTokenProvider
    from azure_token_provider.auth.cache import get_default_token_cache
    from azure_token_provider.config import (
        load_config,
        load_credentials,
        read_settings_from_env,
    )

    if args.env:
        settings = read_settings_from_env()
        credentials = load_credentials(args.config)
    else:
        settings, credentials = load_config(args.config)

    provider = AzureAccessTokenProvider(settings, credentials)
    scopes = args.scopes or [DEFAULT_SCOPE]
    try:
        token = await provider.get_access_token(scopes)
    finally:
        await provider.close()

    entry = get_default_token_cache().peek(provider.retriever, scopes)
    print(f"Retriever: {provider.retriever.kind.value}")
    print(f"Scopes: {' '.join(scopes)}")
    if entry is not None:
        expires = datetime.fromtimestamp(entry.expires_on, tz=timezone.utc)
        print(f"Expires: {expires.isoformat()}")
    print(f"Token: {token[:16]}...")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    from azure_token_provider.exceptions import (
        AcquisitionError,
        CancellationError,
        ConfigurationError,
    )

    try:
        return asyncio.run(acquire_token(args))
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1
    except (AcquisitionError, CancellationError) as e:
        print(f"Token acquisition failed: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
