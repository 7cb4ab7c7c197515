"""Transaction orchestration: submit one mutating call and track it to completion."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..exceptions import (
    AlreadyInFlightError,
    ContractRevertedError,
    CrowdfundError,
    ErrorKind,
    NotConnectedError,
    RpcError,
    UserRejectedError,
    classify_error,
)
from ..types import (
    PendingTransaction,
    TransactionKind,
    TransactionOutcome,
    TransactionStatus,
)
from ..utils import serialise_receipt, to_hex_hash
from .wallet import SigningHandle, WalletSession

logger = logging.getLogger(__name__)

TransactionCall = Callable[[SigningHandle], Awaitable[Any]]
RefreshHook = Callable[[], Any]
PendingListener = Callable[[PendingTransaction], Any]


class TransactionOrchestrator:
    """Submit a single mutating call at a time and classify its outcome."""

    def __init__(
        self,
        session: WalletSession,
        *,
        receipt_timeout: float | None = None,
        poll_latency: float | None = None,
    ) -> None:
        self._session = session
        self._receipt_timeout = (
            receipt_timeout if receipt_timeout is not None else session.config.receipt_timeout
        )
        self._poll_latency = (
            poll_latency if poll_latency is not None else session.config.receipt_poll_latency
        )
        self._busy = False
        self._pending: PendingTransaction | None = None
        self._listeners: list[PendingListener] = []

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def pending(self) -> PendingTransaction | None:
        return self._pending

    def acknowledge(self) -> PendingTransaction | None:
        """Drop the pending record once its terminal status has been observed."""

        pending = self._pending
        if pending is not None and pending.is_terminal:
            self._pending = None
            return pending
        return None

    def add_listener(self, listener: PendingListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: PendingListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    async def submit(
        self,
        kind: TransactionKind,
        target_address: str,
        call: TransactionCall,
        *,
        on_success: RefreshHook | None = None,
    ) -> TransactionOutcome:
        try:
            handle = self._session.get_signing_handle()
        except NotConnectedError as exc:
            return self._rejected(kind, target_address, exc)

        if self._busy:
            return self._rejected(
                kind,
                target_address,
                AlreadyInFlightError("Another transaction is still pending"),
            )

        self._busy = True
        pending = PendingTransaction(kind=kind, target_address=target_address)
        self._pending = pending
        self._notify(pending)
        try:
            return await self._execute(handle, pending, call, on_success)
        finally:
            if not pending.is_terminal:
                pending.status = TransactionStatus.FAILED
                pending.error_kind = ErrorKind.RPC_ERROR
                self._notify(pending)
            self._busy = False

    async def _execute(
        self,
        handle: SigningHandle,
        pending: PendingTransaction,
        call: TransactionCall,
        on_success: RefreshHook | None,
    ) -> TransactionOutcome:
        kind = pending.kind
        logger.info("Dispatching %s to %s", kind.value, pending.target_address)

        try:
            tx_hash = to_hex_hash(await call(handle))
        except Exception as exc:
            return self._failed(pending, classify_error(exc), exc)

        pending.transaction_hash = tx_hash
        self._notify(pending)
        logger.info("Transaction sent for %s hash=%s", kind.value, tx_hash)

        try:
            receipt = await handle.wait_for_receipt(
                tx_hash, timeout=self._receipt_timeout, poll_latency=self._poll_latency
            )
        except Exception as exc:
            return self._failed(pending, classify_error(exc), exc)

        serialised = serialise_receipt(receipt)
        block_number = receipt.get("blockNumber") if receipt is not None else None
        if receipt is None or receipt.get("status", 0) != 1:
            return self._failed(
                pending,
                ContractRevertedError(None, details={"transaction_hash": tx_hash}),
                None,
                receipt=serialised,
                block_number=block_number,
            )

        pending.status = TransactionStatus.CONFIRMED
        self._notify(pending)
        logger.info(
            "Transaction confirmed for %s hash=%s block=%s", kind.value, tx_hash, block_number
        )

        if on_success is not None:
            await self._run_refresh(on_success, kind)

        return TransactionOutcome(
            success=True,
            kind=kind,
            target_address=pending.target_address,
            transaction_hash=tx_hash,
            receipt=serialised,
            block_number=block_number,
        )

    async def _run_refresh(self, on_success: RefreshHook, kind: TransactionKind) -> None:
        try:
            result = on_success()
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception("Refresh after %s failed", kind.value)

    # ------------------------------------------------------------------
    # Outcome helpers
    # ------------------------------------------------------------------
    def _failed(
        self,
        pending: PendingTransaction,
        error: CrowdfundError,
        exc: BaseException | None,
        *,
        receipt: dict[str, Any] | None = None,
        block_number: int | None = None,
    ) -> TransactionOutcome:
        if isinstance(error, UserRejectedError):
            logger.info("%s rejected in wallet", pending.kind.value)
        elif isinstance(error, ContractRevertedError):
            logger.warning("%s reverted: %s", pending.kind.value, error.message)
        elif isinstance(error, RpcError):
            logger.error("%s failed with RPC error: %s", pending.kind.value, exc)
        else:
            logger.error("%s failed: %s", pending.kind.value, error.message)

        pending.status = TransactionStatus.FAILED
        pending.error_kind = error.kind
        self._notify(pending)

        return TransactionOutcome(
            success=False,
            kind=pending.kind,
            target_address=pending.target_address,
            transaction_hash=pending.transaction_hash,
            error_kind=error.kind,
            error=error.message,
            receipt=receipt,
            block_number=block_number,
        )

    def _rejected(
        self, kind: TransactionKind, target_address: str, error: CrowdfundError
    ) -> TransactionOutcome:
        logger.warning("Refusing %s: %s", kind.value, error.message)
        return TransactionOutcome(
            success=False,
            kind=kind,
            target_address=target_address,
            error_kind=error.kind,
            error=error.message,
        )

    def _notify(self, pending: PendingTransaction) -> None:
        for listener in list(self._listeners):
            try:
                listener(pending)
            except Exception:
                logger.exception("Pending transaction listener raised")
