"""Exception hierarchy and error classification for the crowdfunding client."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from eth_abi import decode as abi_decode
from hexbytes import HexBytes
from web3.exceptions import (
    ContractCustomError,
    ContractLogicError,
    ContractPanicError,
    ProviderConnectionError,
    TimeExhausted,
    Web3RPCError,
)

from .constants import (
    ERROR_STRING_SELECTOR,
    RPC_EXECUTION_REVERTED,
    RPC_UNRECOGNIZED_CHAIN,
    RPC_USER_REJECTED,
)

logger = logging.getLogger(__name__)

GENERIC_REVERT_MESSAGE = "Transaction reverted by the contract"
GENERIC_RPC_MESSAGE = "The network request failed; please try again"
_REVERT_PREFIXES = (
    "execution reverted:",
    "execution reverted",
    "VM Exception while processing transaction: revert",
)


class ErrorKind(str, Enum):
    """Stable identifiers for every failure the client reports."""

    PROVIDER_NOT_FOUND = "provider_not_found"
    NOT_CONNECTED = "not_connected"
    CHAIN_MISMATCH = "chain_mismatch"
    CHAIN_SWITCH_FAILED = "chain_switch_failed"
    USER_REJECTED = "user_rejected"
    CONTRACT_REVERTED = "contract_reverted"
    RPC_ERROR = "rpc_error"
    QUERY_FAILED = "query_failed"
    DETAILS_UNAVAILABLE = "details_unavailable"
    ALREADY_IN_FLIGHT = "already_in_flight"
    VALIDATION = "validation"


class CrowdfundError(Exception):
    """Base exception for all crowdfunding client errors."""

    kind: ErrorKind = ErrorKind.RPC_ERROR

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ProviderNotFoundError(CrowdfundError):
    """Raised when no injected wallet provider is available."""

    kind = ErrorKind.PROVIDER_NOT_FOUND


class NotConnectedError(CrowdfundError):
    """Raised when an operation needs a connected wallet session."""

    kind = ErrorKind.NOT_CONNECTED


class ChainMismatchError(CrowdfundError):
    """Raised when the wallet stays on a chain other than the target."""

    kind = ErrorKind.CHAIN_MISMATCH

    def __init__(
        self,
        message: str,
        expected_chain_id: int | None = None,
        actual_chain_id: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.expected_chain_id = expected_chain_id
        self.actual_chain_id = actual_chain_id


class ChainSwitchFailedError(ChainMismatchError):
    """Raised when the switch/add network request failed for another reason."""

    kind = ErrorKind.CHAIN_SWITCH_FAILED


class UserRejectedError(CrowdfundError):
    """Raised when the user declines a wallet prompt."""

    kind = ErrorKind.USER_REJECTED


class ContractRevertedError(CrowdfundError):
    """Raised when the network reports a contract revert."""

    kind = ErrorKind.CONTRACT_REVERTED

    def __init__(self, reason: str | None = None, details: dict | None = None):
        super().__init__(reason or GENERIC_REVERT_MESSAGE, details)
        self.reason = reason


class RpcError(CrowdfundError):
    """Raised when transport, timeout or provider errors occur."""

    kind = ErrorKind.RPC_ERROR

    def __init__(
        self,
        message: str = GENERIC_RPC_MESSAGE,
        code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.code = code


class QueryFailedError(CrowdfundError):
    """Raised when a read-only aggregate query fails."""

    kind = ErrorKind.QUERY_FAILED

    def __init__(self, reason: str, details: dict | None = None):
        super().__init__(f"Query failed: {reason}", details)
        self.reason = reason


class DetailsUnavailableError(CrowdfundError):
    """Raised when campaign details cannot be assembled."""

    kind = ErrorKind.DETAILS_UNAVAILABLE


class AlreadyInFlightError(CrowdfundError):
    """Raised when a transaction is submitted while another is pending."""

    kind = ErrorKind.ALREADY_IN_FLIGHT


class ValidationError(CrowdfundError):
    """Raised when input or decoded contract data fails validation."""

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class ProviderRpcError(Exception):
    """EIP-1193 style error raised by injected providers."""

    def __init__(self, code: int, message: str, data: Any | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def as_rpc_error(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


# ----------------------------------------------------------------------
# Classification
# ----------------------------------------------------------------------
def rpc_error_code(exc: BaseException) -> int | None:
    """Return the EIP-1193/JSON-RPC error code carried by ``exc`` if any."""

    code = getattr(exc, "code", None)
    if isinstance(code, int):
        return code

    error = _rpc_error_payload(exc)
    if isinstance(error.get("code"), int):
        return error["code"]

    for arg in getattr(exc, "args", ()):
        if isinstance(arg, Mapping) and isinstance(arg.get("code"), int):
            return arg["code"]
    return None


def decode_revert_reason(data: Any) -> str | None:
    """Decode an ``Error(string)`` revert payload into its message."""

    if data is None:
        return None
    if isinstance(data, Mapping):
        data = data.get("data")
        if data is None:
            return None

    try:
        raw = HexBytes(data)
    except (TypeError, ValueError):
        return None

    if raw[:4] != ERROR_STRING_SELECTOR:
        return None

    try:
        (reason,) = abi_decode(["string"], bytes(raw[4:]))
    except Exception:  # malformed payloads fall back to the generic message
        return None
    return reason or None


def _rpc_error_payload(exc: BaseException) -> Mapping[str, Any]:
    rpc_response = getattr(exc, "rpc_response", None)
    if isinstance(rpc_response, Mapping):
        error = rpc_response.get("error")
        if isinstance(error, Mapping):
            return error
    return {}


def _strip_revert_prefix(message: str) -> str | None:
    text = message.strip()
    for prefix in _REVERT_PREFIXES:
        if text.startswith(prefix):
            text = text[len(prefix):].strip()
            break
    return text or None


def classify_error(exc: BaseException) -> CrowdfundError:
    """Map provider, web3 and transport exceptions onto the client taxonomy."""

    if isinstance(exc, CrowdfundError):
        return exc

    code = rpc_error_code(exc)
    details = {"error": str(exc), "type": type(exc).__name__}
    if code is not None:
        details["code"] = code

    if code == RPC_USER_REJECTED:
        return UserRejectedError("Request rejected in the wallet", details=details)

    if isinstance(exc, (ContractCustomError, ContractPanicError)):
        return ContractRevertedError(None, details=details)

    if isinstance(exc, ContractLogicError):
        reason = decode_revert_reason(exc.data) or _strip_revert_prefix(exc.message or "")
        return ContractRevertedError(reason, details=details)

    if code == RPC_EXECUTION_REVERTED:
        error = _rpc_error_payload(exc)
        reason = decode_revert_reason(getattr(exc, "data", None) or error.get("data"))
        if reason is None:
            message = error.get("message") or getattr(exc, "message", "") or str(exc)
            reason = _strip_revert_prefix(str(message))
        return ContractRevertedError(reason, details=details)

    if code == RPC_UNRECOGNIZED_CHAIN:
        return ChainMismatchError("Target network is not known to the wallet", details=details)

    if isinstance(exc, (TimeExhausted, ProviderConnectionError, asyncio.TimeoutError, OSError)):
        return RpcError(code=code, details=details)

    if isinstance(exc, (Web3RPCError, ProviderRpcError)):
        return RpcError(code=code, details=details)

    logger.debug("Unclassified error %s treated as RPC failure", type(exc).__name__)
    return RpcError(code=code, details=details)
