"""Shared pytest fixtures for Azure token provider tests."""

import asyncio

import pytest
from azure.core.credentials import AccessToken

from azure_token_provider.auth.cache import TokenCache
from azure_token_provider.auth.retrievers import RetrieverKind
from azure_token_provider.config import AzureCloud, AzureSettings
from azure_token_provider.credentials import (
    AzureClientSecretCredentials,
    AzureManagedIdentityCredentials,
)


MANAGEMENT_SCOPE = "https://management.azure.com/.default"
STORAGE_SCOPE = "https://storage.azure.com/.default"

# Arbitrary fixed start time for the fake clock
START_TIME = 1_765_708_200.0


class FakeClock:
    """Manually advanced clock returning epoch seconds."""

    def __init__(self, now: float = START_TIME) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeTokenRetriever:
    """Retriever issuing numbered tokens ("token-1", "token-2", ...).

    Set `gate` to an asyncio.Event to hold acquisitions until it is set, and
    `error` to make acquisitions fail.
    """

    kind = RetrieverKind.CLIENT_SECRET

    def __init__(self, clock: FakeClock, lifetime: float = 3600) -> None:
        self.clock = clock
        self.lifetime = lifetime
        self.calls: list[list[str]] = []
        self.gate: asyncio.Event | None = None
        self.error: Exception | None = None
        self.closed = False

    async def get_access_token(self, scopes: list[str]) -> AccessToken:
        self.calls.append(list(scopes))
        number = len(self.calls)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return AccessToken(
            f"token-{number}", int(self.clock() + self.lifetime)
        )

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at a fixed time."""
    return FakeClock()


@pytest.fixture
def token_cache(clock: FakeClock) -> TokenCache:
    """Token cache driven by the fake clock."""
    return TokenCache(clock=clock)


@pytest.fixture
def retriever(clock: FakeClock) -> FakeTokenRetriever:
    """Fake retriever issuing one-hour tokens."""
    return FakeTokenRetriever(clock)


@pytest.fixture
def scopes() -> list[str]:
    """Default scopes for token requests."""
    return [MANAGEMENT_SCOPE]


@pytest.fixture
def settings() -> AzureSettings:
    """Settings with managed identity enabled."""
    return AzureSettings(cloud=AzureCloud.PUBLIC.value, managed_identity_enabled=True)


@pytest.fixture
def managed_identity_credentials() -> AzureManagedIdentityCredentials:
    """System-assigned managed identity credentials."""
    return AzureManagedIdentityCredentials()


@pytest.fixture
def client_secret_credentials() -> AzureClientSecretCredentials:
    """Client secret credentials in the public cloud."""
    return AzureClientSecretCredentials(
        azure_cloud=AzureCloud.PUBLIC.value,
        tenant_id="7dcf1d1a-4ec0-41f2-ac29-c1538a698bc4",
        client_id="1af7c188-e5b6-4f96-81b8-911761bdd459",
        client_secret="0416d95e-8af8-472c-aaa3-15c93c46080a",
    )


@pytest.fixture
def make_retriever(clock: FakeClock):
    """Factory for additional fake retrievers sharing the fake clock."""

    def _make(lifetime: float = 3600) -> FakeTokenRetriever:
        return FakeTokenRetriever(clock, lifetime=lifetime)

    return _make
