"""Crowdfunding client - wallet session and contract orchestration.

This library manages a wallet session against an injected EIP-1193 provider
and drives the crowdfunding registry and campaign contracts: concurrent
read-only queries plus tracked, classified transaction submission.
"""

from .evm import (
    CampaignActions,
    ChainConfig,
    ContractClient,
    EventEmitter,
    InjectedProvider,
    LocalWalletProvider,
    NativeCurrency,
    SigningHandle,
    StalenessGuard,
    TransactionOrchestrator,
    WalletSession,
)
from .exceptions import (
    AlreadyInFlightError,
    ChainMismatchError,
    ChainSwitchFailedError,
    ContractRevertedError,
    CrowdfundError,
    DetailsUnavailableError,
    ErrorKind,
    NotConnectedError,
    ProviderNotFoundError,
    ProviderRpcError,
    QueryFailedError,
    RpcError,
    UserRejectedError,
    ValidationError,
    classify_error,
)
from .types import (
    Address,
    Campaign,
    CampaignDetails,
    CampaignState,
    DetailsUnavailable,
    PendingTransaction,
    SessionStatus,
    Tier,
    TransactionKind,
    TransactionOutcome,
    TransactionStatus,
    WalletSessionState,
    Wei,
)
from .utils import format_ether, from_wei, to_wei

__version__ = "0.1.0"

__all__ = [
    # Session and clients
    "WalletSession",
    "SigningHandle",
    "ContractClient",
    "TransactionOrchestrator",
    "CampaignActions",
    "StalenessGuard",
    "ChainConfig",
    "NativeCurrency",
    # Providers
    "InjectedProvider",
    "EventEmitter",
    "LocalWalletProvider",
    # Types and enums
    "SessionStatus",
    "WalletSessionState",
    "Campaign",
    "CampaignDetails",
    "CampaignState",
    "DetailsUnavailable",
    "Tier",
    "PendingTransaction",
    "TransactionKind",
    "TransactionOutcome",
    "TransactionStatus",
    "Address",
    "Wei",
    # Exceptions
    "ErrorKind",
    "CrowdfundError",
    "ProviderNotFoundError",
    "NotConnectedError",
    "ChainMismatchError",
    "ChainSwitchFailedError",
    "UserRejectedError",
    "ContractRevertedError",
    "RpcError",
    "QueryFailedError",
    "DetailsUnavailableError",
    "AlreadyInFlightError",
    "ValidationError",
    "ProviderRpcError",
    "classify_error",
    # Utility functions
    "to_wei",
    "from_wei",
    "format_ether",
]
