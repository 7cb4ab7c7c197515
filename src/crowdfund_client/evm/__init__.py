"""EVM wallet session, contract queries and transaction orchestration."""

from .actions import CampaignActions, TxRequest
from .config import ChainConfig, NativeCurrency
from .contracts import ContractClient
from .local_provider import LocalWalletProvider
from .provider import EventEmitter, InjectedProvider, InjectedWeb3Provider
from .staleness import ReadToken, StalenessGuard
from .transactions import TransactionOrchestrator
from .wallet import SigningHandle, WalletSession

__all__ = [
    "CampaignActions",
    "ChainConfig",
    "ContractClient",
    "EventEmitter",
    "InjectedProvider",
    "InjectedWeb3Provider",
    "LocalWalletProvider",
    "NativeCurrency",
    "ReadToken",
    "SigningHandle",
    "StalenessGuard",
    "TransactionOrchestrator",
    "TxRequest",
    "WalletSession",
]
