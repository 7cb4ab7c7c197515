"""Configuration containers for the crowdfunding EVM client."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from eth_typing import ChecksumAddress
from web3 import Web3

from ..constants import DEFAULT_REGISTRY_ADDRESS, SEPOLIA_CHAIN_ID, chain_id_to_hex
from ..exceptions import ValidationError

DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_RECEIPT_POLL_LATENCY = 1.0
DEFAULT_REQUEST_TIMEOUT = 10.0
ENV_PREFIX = "CROWDFUND_"


@dataclass(frozen=True)
class NativeCurrency:
    name: str = "ETH"
    symbol: str = "ETH"
    decimals: int = 18


@dataclass(frozen=True)
class ChainConfig:
    """Static description of the target network and registry contract."""

    chain_id: int = SEPOLIA_CHAIN_ID
    chain_name: str = "Sepolia Testnet"
    registry_address: ChecksumAddress = field(
        default_factory=lambda: Web3.to_checksum_address(DEFAULT_REGISTRY_ADDRESS)
    )
    native_currency: NativeCurrency = NativeCurrency()
    rpc_urls: tuple[str, ...] = ("https://sepolia.infura.io/v3/",)
    block_explorer_urls: tuple[str, ...] = ("https://sepolia.etherscan.io",)
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    receipt_poll_latency: float = DEFAULT_RECEIPT_POLL_LATENCY

    def __post_init__(self) -> None:
        if self.chain_id <= 0:
            raise ValidationError(
                "Chain id must be positive", field="chain_id", value=self.chain_id
            )
        if not Web3.is_address(self.registry_address):
            raise ValidationError(
                "Registry address is not a valid address",
                field="registry_address",
                value=self.registry_address,
            )
        object.__setattr__(
            self, "registry_address", Web3.to_checksum_address(self.registry_address)
        )

    @property
    def chain_id_hex(self) -> str:
        return chain_id_to_hex(self.chain_id)

    def add_chain_params(self) -> dict[str, Any]:
        """Return the ``wallet_addEthereumChain`` parameter object."""

        return {
            "chainId": self.chain_id_hex,
            "chainName": self.chain_name,
            "nativeCurrency": {
                "name": self.native_currency.name,
                "symbol": self.native_currency.symbol,
                "decimals": self.native_currency.decimals,
            },
            "rpcUrls": list(self.rpc_urls),
            "blockExplorerUrls": list(self.block_explorer_urls),
        }

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ChainConfig:
        """Build a config from ``CROWDFUND_*`` environment variables."""

        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}

        chain_id = env.get(f"{ENV_PREFIX}CHAIN_ID")
        if chain_id:
            try:
                kwargs["chain_id"] = int(chain_id, 0)
            except ValueError as exc:
                raise ValidationError(
                    "CHAIN_ID must be an integer", field="chain_id", value=chain_id
                ) from exc

        if env.get(f"{ENV_PREFIX}CHAIN_NAME"):
            kwargs["chain_name"] = env[f"{ENV_PREFIX}CHAIN_NAME"]
        if env.get(f"{ENV_PREFIX}REGISTRY_ADDRESS"):
            kwargs["registry_address"] = env[f"{ENV_PREFIX}REGISTRY_ADDRESS"]
        if env.get(f"{ENV_PREFIX}RPC_URLS"):
            kwargs["rpc_urls"] = _split_urls(env[f"{ENV_PREFIX}RPC_URLS"])
        if env.get(f"{ENV_PREFIX}EXPLORER_URLS"):
            kwargs["block_explorer_urls"] = _split_urls(env[f"{ENV_PREFIX}EXPLORER_URLS"])
        if env.get(f"{ENV_PREFIX}RECEIPT_TIMEOUT"):
            kwargs["receipt_timeout"] = float(env[f"{ENV_PREFIX}RECEIPT_TIMEOUT"])

        return cls(**kwargs)


def _split_urls(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())
