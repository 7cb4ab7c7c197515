"""Injected wallet provider protocol and its bridge into web3.py."""

from __future__ import annotations

import itertools
import logging
from collections import defaultdict
from collections.abc import Callable, Sequence
from typing import Any, Protocol, runtime_checkable

from web3.providers.async_base import AsyncBaseProvider
from web3.types import RPCEndpoint, RPCResponse

from ..constants import WalletMethod
from ..exceptions import ProviderRpcError

logger = logging.getLogger(__name__)

Listener = Callable[..., Any]


@runtime_checkable
class InjectedProvider(Protocol):
    """EIP-1193 request/response surface exposed by a wallet."""

    async def request(self, method: str, params: Sequence[Any] | None = None) -> Any: ...

    def on(self, event: str, listener: Listener) -> None: ...

    def remove_listener(self, event: str, listener: Listener) -> None: ...


class EventEmitter:
    """Minimal event registry used by providers to publish wallet events."""

    def __init__(self) -> None:
        self._listeners: defaultdict[str, list[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[str(event)].append(listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        listeners = self._listeners.get(str(event))
        if listeners and listener in listeners:
            listeners.remove(listener)

    def remove_all_listeners(self, event: str | None = None) -> None:
        if event is None:
            self._listeners.clear()
        else:
            self._listeners.pop(str(event), None)

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(str(event), ()))

    def emit(self, event: str, *args: Any) -> None:
        for listener in list(self._listeners.get(str(event), ())):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener for %s raised", event)


class InjectedWeb3Provider(AsyncBaseProvider):
    """Route web3.py requests through an injected wallet provider.

    Wallet errors are returned as JSON-RPC error payloads so web3 applies its
    usual revert handling (``ContractLogicError``) and error wrapping.
    """

    def __init__(self, injected: InjectedProvider) -> None:
        super().__init__()
        self._injected = injected
        self._ids = itertools.count(1)

    @property
    def injected(self) -> InjectedProvider:
        return self._injected

    async def make_request(self, method: RPCEndpoint, params: Any) -> RPCResponse:
        request_id = next(self._ids)
        try:
            result = await self._injected.request(str(method), list(params or []))
        except ProviderRpcError as exc:
            logger.debug("Wallet rejected %s with code %s: %s", method, exc.code, exc.message)
            return {"jsonrpc": "2.0", "id": request_id, "error": exc.as_rpc_error()}  # type: ignore[typeddict-item]
        return {"jsonrpc": "2.0", "id": request_id, "result": result}

    async def is_connected(self, show_traceback: bool = False) -> bool:
        try:
            await self._injected.request(WalletMethod.CHAIN_ID.value, [])
        except Exception:
            if show_traceback:
                raise
            return False
        return True
