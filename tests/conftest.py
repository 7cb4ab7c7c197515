from __future__ import annotations

import pytest
from fakes import REGISTRY, FakeChain, FakeHandle, FakeProvider

from crowdfund_client.evm.config import ChainConfig
from crowdfund_client.evm.wallet import WalletSession


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def config() -> ChainConfig:
    return ChainConfig(registry_address=REGISTRY, receipt_poll_latency=0.01)


@pytest.fixture
def session(provider: FakeProvider, config: ChainConfig, chain: FakeChain) -> WalletSession:
    return WalletSession(
        provider,
        config,
        handle_factory=lambda _provider, address: FakeHandle(address, chain),  # type: ignore[arg-type, return-value]
    )
