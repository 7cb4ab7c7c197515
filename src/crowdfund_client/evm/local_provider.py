"""A wallet provider backed by a local eth-account signer and JSON-RPC nodes."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any, cast

from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.middleware import SignAndSendRawMiddlewareBuilder

from ..constants import (
    RPC_UNAUTHORIZED,
    RPC_UNRECOGNIZED_CHAIN,
    RPC_USER_REJECTED,
    ProviderEvent,
    WalletMethod,
    chain_id_to_hex,
    parse_chain_id,
)
from ..exceptions import ProviderRpcError, ValidationError
from ..utils import to_hex_hash
from .config import DEFAULT_REQUEST_TIMEOUT
from .provider import EventEmitter

logger = logging.getLogger(__name__)

_INT_TX_FIELDS = (
    "value",
    "gas",
    "gasPrice",
    "maxFeePerGas",
    "maxPriorityFeePerGas",
    "nonce",
    "chainId",
)
_ADD_CHAIN_FIELDS = ("chainId", "chainName", "nativeCurrency", "rpcUrls")


class LocalWalletProvider(EventEmitter):
    """Behave like a browser-injected wallet for scripts and services.

    Accounts come from a private key, transactions are signed locally and
    broadcast through the node of the currently selected network.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        *,
        networks: Mapping[int, str] | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        auto_approve: bool = True,
    ) -> None:
        super().__init__()
        try:
            self._account = cast(LocalAccount, Account.from_key(private_key))
        except Exception as exc:
            raise ValidationError(
                "Failed to derive signer account from provided private key",
                field="private_key",
                details={"error": str(exc)},
            ) from exc

        self._rpc_url = rpc_url
        self._networks: dict[int, str] = dict(networks or {})
        self._request_timeout = request_timeout
        self._auto_approve = auto_approve
        self._authorized = False
        self._web3: AsyncWeb3 | None = None
        self._chain_id: int | None = None

    @property
    def address(self) -> str:
        return self._account.address

    @property
    def chain_id(self) -> int | None:
        return self._chain_id

    # ------------------------------------------------------------------
    # Wallet-side controls
    # ------------------------------------------------------------------
    def authorize(self) -> None:
        """Grant account access as if approved in the wallet UI."""

        if not self._authorized:
            self._authorized = True
            self.emit(ProviderEvent.ACCOUNTS_CHANGED.value, [self.address])

    def lock(self) -> None:
        """Revoke account access as if the wallet was locked."""

        if self._authorized:
            self._authorized = False
            self.emit(ProviderEvent.ACCOUNTS_CHANGED.value, [])

    async def close(self) -> None:
        if self._web3 is not None:
            await self._web3.provider.disconnect()
            self._web3 = None

    # ------------------------------------------------------------------
    # EIP-1193 surface
    # ------------------------------------------------------------------
    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any:
        params = list(params or [])

        if method == WalletMethod.REQUEST_ACCOUNTS.value:
            if not self._authorized and not self._auto_approve:
                raise ProviderRpcError(RPC_USER_REJECTED, "User rejected the request.")
            self._authorized = True
            return [self.address]

        if method == WalletMethod.ACCOUNTS.value:
            return [self.address] if self._authorized else []

        if method == WalletMethod.CHAIN_ID.value:
            await self._node()
            return chain_id_to_hex(cast(int, self._chain_id))

        if method == WalletMethod.SWITCH_CHAIN.value:
            await self._switch_chain(params)
            return None

        if method == WalletMethod.ADD_CHAIN.value:
            self._add_chain(params)
            return None

        if method == WalletMethod.SEND_TRANSACTION.value:
            return await self._send_transaction(params)

        return await self._forward(method, params)

    # ------------------------------------------------------------------
    # Internal wiring
    # ------------------------------------------------------------------
    async def _node(self) -> AsyncWeb3:
        if self._web3 is None:
            web3 = self._build_web3(self._rpc_url)
            chain_id = await web3.eth.chain_id
            self._web3 = web3
            self._chain_id = chain_id
            self._networks.setdefault(chain_id, self._rpc_url)
            logger.info("Wallet provider connected to chain %s at %s", chain_id, self._rpc_url)
        return self._web3

    def _build_web3(self, rpc_url: str) -> AsyncWeb3:
        provider = AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": self._request_timeout})
        web3 = AsyncWeb3(provider)
        web3.middleware_onion.add(SignAndSendRawMiddlewareBuilder.build(self._account))  # type: ignore[arg-type]
        web3.eth.default_account = self._account.address
        return web3

    async def _switch_chain(self, params: list[Any]) -> None:
        if not params or not isinstance(params[0], Mapping) or "chainId" not in params[0]:
            raise ProviderRpcError(-32602, "wallet_switchEthereumChain expects {chainId}")
        target = parse_chain_id(params[0]["chainId"])

        await self._node()
        if target == self._chain_id:
            return

        rpc_url = self._networks.get(target)
        if rpc_url is None:
            raise ProviderRpcError(
                RPC_UNRECOGNIZED_CHAIN, f"Unrecognized chain ID {chain_id_to_hex(target)}"
            )

        await self.close()
        web3 = self._build_web3(rpc_url)
        reported = await web3.eth.chain_id
        if reported != target:
            raise ProviderRpcError(
                -32603, f"RPC at {rpc_url} reports chain {reported}, expected {target}"
            )
        self._web3 = web3
        self._rpc_url = rpc_url
        self._chain_id = target
        logger.info("Wallet provider switched to chain %s", target)
        self.emit(ProviderEvent.CHAIN_CHANGED.value, chain_id_to_hex(target))

    def _add_chain(self, params: list[Any]) -> None:
        spec = params[0] if params else None
        if not isinstance(spec, Mapping) or any(key not in spec for key in _ADD_CHAIN_FIELDS):
            raise ProviderRpcError(-32602, "wallet_addEthereumChain parameters are incomplete")
        rpc_urls = spec["rpcUrls"]
        if not rpc_urls:
            raise ProviderRpcError(-32602, "wallet_addEthereumChain requires an rpcUrl")
        chain_id = parse_chain_id(spec["chainId"])
        self._networks.setdefault(chain_id, str(rpc_urls[0]))
        logger.info("Wallet provider registered chain %s (%s)", chain_id, spec["chainName"])

    async def _send_transaction(self, params: list[Any]) -> str:
        if not self._authorized:
            raise ProviderRpcError(RPC_UNAUTHORIZED, "Account access has not been granted")
        if not params or not isinstance(params[0], Mapping):
            raise ProviderRpcError(-32602, "eth_sendTransaction expects a transaction object")

        tx = dict(params[0])
        sender = tx.get("from")
        if sender is not None and str(sender).lower() != self.address.lower():
            raise ProviderRpcError(
                RPC_UNAUTHORIZED, f"Account {sender} is not managed by this wallet"
            )
        tx["from"] = self.address
        for key in _INT_TX_FIELDS:
            if isinstance(tx.get(key), str):
                tx[key] = int(tx[key], 16)

        web3 = await self._node()
        tx_hash = await web3.eth.send_transaction(tx)  # type: ignore[arg-type]
        return to_hex_hash(tx_hash)

    async def _forward(self, method: str, params: list[Any]) -> Any:
        web3 = await self._node()
        response = await web3.provider.make_request(method, params)  # type: ignore[arg-type]
        error = response.get("error")
        if error:
            if isinstance(error, Mapping):
                raise ProviderRpcError(
                    int(error.get("code", -32603)), str(error.get("message", "")), error.get("data")
                )
            raise ProviderRpcError(-32603, str(error))
        return response.get("result")
