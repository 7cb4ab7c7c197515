"""Wallet session state machine for an injected signing provider."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, replace
from typing import Any

from eth_typing import ChecksumAddress
from web3 import AsyncWeb3, Web3
from web3.contract import AsyncContract
from web3.contract.async_contract import AsyncContractFunction
from web3.types import TxReceipt

from ..constants import (
    RPC_UNRECOGNIZED_CHAIN,
    RPC_USER_REJECTED,
    ProviderEvent,
    WalletMethod,
    parse_chain_id,
)
from ..exceptions import (
    ChainMismatchError,
    ChainSwitchFailedError,
    CrowdfundError,
    NotConnectedError,
    ProviderNotFoundError,
    UserRejectedError,
    ValidationError,
    classify_error,
    rpc_error_code,
)
from ..types import SessionStatus, WalletSessionState
from ..utils import to_hex_hash
from .config import ChainConfig
from .provider import InjectedProvider, InjectedWeb3Provider

logger = logging.getLogger(__name__)

StateListener = Callable[[WalletSessionState], Any]
InvalidationListener = Callable[[str], Any]


@dataclass(frozen=True)
class SigningHandle:
    """Capability to read and transact on behalf of the connected account."""

    address: ChecksumAddress
    web3: AsyncWeb3

    @classmethod
    def for_provider(cls, provider: InjectedProvider, address: ChecksumAddress) -> SigningHandle:
        web3 = AsyncWeb3(InjectedWeb3Provider(provider))
        web3.eth.default_account = address
        return cls(address=address, web3=web3)

    def contract(self, address: str, abi: Sequence[dict[str, Any]]) -> AsyncContract:
        return self.web3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def transact(self, function: AsyncContractFunction, value: int = 0) -> str:
        """Ask the wallet to sign and broadcast ``function``; returns the tx hash."""

        tx: dict[str, Any] = {"from": self.address}
        if value:
            tx["value"] = value
        tx_hash = await function.transact(tx)  # type: ignore[arg-type]
        return to_hex_hash(tx_hash)

    async def wait_for_receipt(
        self, tx_hash: str, *, timeout: float, poll_latency: float
    ) -> TxReceipt:
        return await self.web3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=timeout, poll_latency=poll_latency  # type: ignore[arg-type]
        )


HandleFactory = Callable[[InjectedProvider, ChecksumAddress], SigningHandle]


class WalletSession:
    """Own the connect/disconnect lifecycle and the signing handle."""

    def __init__(
        self,
        provider: InjectedProvider | None,
        config: ChainConfig | None = None,
        *,
        handle_factory: HandleFactory = SigningHandle.for_provider,
    ) -> None:
        self._provider = provider
        self._config = config or ChainConfig()
        self._handle_factory = handle_factory
        self._state = WalletSessionState()
        self._attempt = 0
        self._listeners: list[StateListener] = []
        self._invalidation_listeners: list[InvalidationListener] = []
        self._event_tasks: set[asyncio.Task[Any]] = set()
        self._attached = False
        self._connecting: asyncio.Task[WalletSessionState] | None = None

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> WalletSessionState:
        return self._state

    @property
    def status(self) -> SessionStatus:
        return self._state.status

    @property
    def address(self) -> ChecksumAddress | None:
        return self._state.address

    @property
    def chain_id(self) -> int | None:
        return self._state.chain_id

    @property
    def epoch(self) -> int:
        return self._state.epoch

    @property
    def config(self) -> ChainConfig:
        return self._config

    @property
    def provider(self) -> InjectedProvider | None:
        return self._provider

    def is_connected(self) -> bool:
        return self._state.is_connected

    def get_signing_handle(self) -> SigningHandle:
        state = self._state
        if state.status is not SessionStatus.CONNECTED or state.signing_handle is None:
            raise NotConnectedError(
                "Wallet is not connected", details={"status": state.status.value}
            )
        return state.signing_handle

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def connect(self) -> WalletSessionState:
        """Request account access and bring the session onto the target chain."""

        if self._provider is None:
            raise ProviderNotFoundError("No injected wallet provider found")

        in_flight = self._connecting
        if in_flight is not None and not in_flight.done():
            return await asyncio.shield(in_flight)

        if self._state.status in (SessionStatus.CONNECTING, SessionStatus.CONNECTED):
            return self._state

        task = asyncio.get_running_loop().create_task(
            self._acquire(prompt=True, attempt=self._begin_attempt())
        )
        self._connecting = task
        try:
            return await asyncio.shield(task)
        finally:
            if self._connecting is task and task.done():
                self._connecting = None

    async def restore(self) -> WalletSessionState:
        """Silently reconnect when the wallet already authorised an account."""

        if self._provider is None:
            logger.debug("No injected provider present; skipping session restore")
            return self._state
        if self._state.status is not SessionStatus.DISCONNECTED:
            return self._state

        try:
            return await self._acquire(prompt=False)
        except CrowdfundError as exc:
            logger.warning("Could not restore wallet session: %s", exc.message)
            return self._state

    def disconnect(self) -> WalletSessionState:
        self._attempt += 1
        self._connecting = None
        self._set_state(WalletSessionState(epoch=self._state.epoch + 1))
        self._notify_invalidated("disconnect")
        logger.info("Wallet session disconnected")
        return self._state

    # ------------------------------------------------------------------
    # Provider events
    # ------------------------------------------------------------------
    def attach(self) -> None:
        """Subscribe to account and chain notifications from the provider."""

        if self._provider is None or self._attached:
            return
        self._provider.on(ProviderEvent.ACCOUNTS_CHANGED.value, self._on_accounts_changed)
        self._provider.on(ProviderEvent.CHAIN_CHANGED.value, self._on_chain_changed)
        self._attached = True

    def detach(self) -> None:
        if self._provider is None or not self._attached:
            return
        self._provider.remove_listener(
            ProviderEvent.ACCOUNTS_CHANGED.value, self._on_accounts_changed
        )
        self._provider.remove_listener(ProviderEvent.CHAIN_CHANGED.value, self._on_chain_changed)
        self._attached = False

    async def wait_idle(self) -> None:
        """Wait until event-triggered reconnects have settled."""

        while self._event_tasks:
            await asyncio.gather(*list(self._event_tasks), return_exceptions=True)

    def add_listener(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: StateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_invalidation_listener(self, listener: InvalidationListener) -> None:
        self._invalidation_listeners.append(listener)

    def remove_invalidation_listener(self, listener: InvalidationListener) -> None:
        if listener in self._invalidation_listeners:
            self._invalidation_listeners.remove(listener)

    def _on_accounts_changed(self, accounts: Sequence[str] | None) -> None:
        if not accounts:
            logger.info("Wallet reported no authorised accounts")
            self.disconnect()
            return

        if self._state.status is SessionStatus.DISCONNECTED:
            return

        logger.info("Wallet account changed to %s", accounts[0])
        self._set_state(replace(self._state, epoch=self._state.epoch + 1))
        self._notify_invalidated("accounts_changed")
        self._spawn(self._refresh_account())

    def _on_chain_changed(self, chain_id: str | int) -> None:
        try:
            new_chain_id = parse_chain_id(chain_id)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed chainChanged payload %r", chain_id)
            return

        logger.info("Wallet switched to chain %s", new_chain_id)
        state = self._state
        if state.status is SessionStatus.DISCONNECTED:
            self._set_state(replace(state, epoch=state.epoch + 1))
        else:
            status = state.status
            if status is not SessionStatus.CONNECTING:
                status = (
                    SessionStatus.CONNECTED
                    if new_chain_id == self._config.chain_id
                    else SessionStatus.WRONG_CHAIN
                )
            self._set_state(
                replace(state, status=status, chain_id=new_chain_id, epoch=state.epoch + 1)
            )
        self._notify_invalidated("chain_changed")

    async def _refresh_account(self) -> None:
        try:
            await self._acquire(prompt=False)
        except CrowdfundError as exc:
            logger.warning("Failed to refresh wallet account: %s", exc.message)

    def _spawn(self, coro: Any) -> None:
        try:
            task = asyncio.get_running_loop().create_task(coro)
        except RuntimeError:
            coro.close()
            logger.warning("No running event loop; dropping wallet session")
            self.disconnect()
            return
        self._event_tasks.add(task)
        task.add_done_callback(self._event_tasks.discard)

    # ------------------------------------------------------------------
    # Connection sequence
    # ------------------------------------------------------------------
    def _begin_attempt(self) -> int:
        self._attempt += 1
        self._set_state(
            WalletSessionState(status=SessionStatus.CONNECTING, epoch=self._state.epoch)
        )
        return self._attempt

    async def _acquire(self, *, prompt: bool, attempt: int | None = None) -> WalletSessionState:
        assert self._provider is not None
        if attempt is None:
            attempt = self._begin_attempt()
        elif attempt != self._attempt:
            return self._state

        method = WalletMethod.REQUEST_ACCOUNTS if prompt else WalletMethod.ACCOUNTS
        try:
            accounts = await self._request(method)
        except Exception as exc:
            self._abort(attempt)
            raise classify_error(exc) from exc
        if attempt != self._attempt:
            return self._state

        if not accounts:
            self._abort(attempt)
            if prompt:
                raise UserRejectedError("Wallet did not authorise any account")
            return self._state

        try:
            address = Web3.to_checksum_address(accounts[0])
        except (TypeError, ValueError) as exc:
            self._abort(attempt)
            raise ValidationError(
                "Wallet returned an invalid account", field="accounts", value=accounts
            ) from exc

        handle = self._handle_factory(self._provider, address)
        try:
            chain_id = await self._read_chain_id()
        except Exception as exc:
            self._abort(attempt)
            raise classify_error(exc) from exc
        if attempt != self._attempt:
            return self._state

        target = self._config.chain_id
        if chain_id != target:
            self._set_state(
                WalletSessionState(
                    status=SessionStatus.WRONG_CHAIN,
                    address=address,
                    chain_id=chain_id,
                    signing_handle=handle,
                    epoch=self._state.epoch,
                )
            )
            if not prompt:
                logger.info("Restored session is on chain %s, expected %s", chain_id, target)
                return self._state

            await self._switch_chain(chain_id)
            if attempt != self._attempt:
                return self._state
            try:
                chain_id = await self._read_chain_id()
            except Exception as exc:
                raise classify_error(exc) from exc
            if attempt != self._attempt:
                return self._state
            if chain_id != target:
                self._set_state(replace(self._state, chain_id=chain_id))
                raise ChainMismatchError(
                    f"Wallet is on chain {chain_id}; expected {target}",
                    expected_chain_id=target,
                    actual_chain_id=chain_id,
                )

        self._set_state(
            WalletSessionState(
                status=SessionStatus.CONNECTED,
                address=address,
                chain_id=chain_id,
                signing_handle=handle,
                epoch=self._state.epoch,
            )
        )
        logger.info("Connected wallet %s on chain %s", address, chain_id)
        return self._state

    async def _switch_chain(self, current_chain_id: int) -> None:
        target = self._config.chain_id
        params = [{"chainId": self._config.chain_id_hex}]
        logger.info("Requesting wallet switch from chain %s to %s", current_chain_id, target)

        try:
            await self._request(WalletMethod.SWITCH_CHAIN, params)
            return
        except Exception as exc:
            if rpc_error_code(exc) != RPC_UNRECOGNIZED_CHAIN:
                raise self._switch_error(exc, current_chain_id) from exc
            logger.info("Chain %s unknown to wallet; requesting it be added", target)

        try:
            await self._request(WalletMethod.ADD_CHAIN, [self._config.add_chain_params()])
            await self._request(WalletMethod.SWITCH_CHAIN, params)
        except Exception as exc:
            raise self._switch_error(exc, current_chain_id) from exc

    def _switch_error(self, exc: BaseException, current_chain_id: int) -> ChainMismatchError:
        target = self._config.chain_id
        code = rpc_error_code(exc)
        details = {"error": str(exc), "code": code}
        if code in (RPC_USER_REJECTED, RPC_UNRECOGNIZED_CHAIN):
            return ChainMismatchError(
                f"Wallet is on chain {current_chain_id}; switch to chain {target} to continue",
                expected_chain_id=target,
                actual_chain_id=current_chain_id,
                details=details,
            )
        logger.error("Network switch to chain %s failed: %s", target, exc)
        return ChainSwitchFailedError(
            f"Could not switch the wallet to chain {target}",
            expected_chain_id=target,
            actual_chain_id=current_chain_id,
            details=details,
        )

    async def _read_chain_id(self) -> int:
        return parse_chain_id(await self._request(WalletMethod.CHAIN_ID))

    async def _request(self, method: WalletMethod, params: Sequence[Any] | None = None) -> Any:
        assert self._provider is not None
        return await self._provider.request(method.value, list(params or []))

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------
    def _abort(self, attempt: int) -> None:
        if attempt == self._attempt:
            self._set_state(WalletSessionState(epoch=self._state.epoch))

    def _set_state(self, state: WalletSessionState) -> None:
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Wallet state listener raised")

    def _notify_invalidated(self, reason: str) -> None:
        for listener in list(self._invalidation_listeners):
            try:
                listener(reason)
            except Exception:
                logger.exception("Invalidation listener raised")
