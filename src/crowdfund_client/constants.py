"""Constants shared across the crowdfunding client."""

from enum import Enum

SEPOLIA_CHAIN_ID = 11155111

# Deployed CrowdfundingManager registry on Sepolia
DEFAULT_REGISTRY_ADDRESS = "0x5Ff84Bf37f2057280C233F77b8b0aCe29D2dA876"

# EIP-1193 / JSON-RPC error codes
# https://eips.ethereum.org/EIPS/eip-1193#provider-errors
RPC_USER_REJECTED = 4001
RPC_UNAUTHORIZED = 4100
RPC_UNSUPPORTED_METHOD = 4200
RPC_DISCONNECTED = 4900
RPC_UNRECOGNIZED_CHAIN = 4902
RPC_EXECUTION_REVERTED = 3
RPC_INTERNAL_ERROR = -32603

# keccak256("Error(string)")[:4]
ERROR_STRING_SELECTOR = bytes.fromhex("08c379a0")

UINT256_MAX = 2**256 - 1


class ProviderEvent(str, Enum):
    """Events emitted by injected wallet providers."""

    ACCOUNTS_CHANGED = "accountsChanged"
    CHAIN_CHANGED = "chainChanged"
    CONNECT = "connect"
    DISCONNECT = "disconnect"


class WalletMethod(str, Enum):
    """RPC methods the wallet session issues against the provider."""

    REQUEST_ACCOUNTS = "eth_requestAccounts"
    ACCOUNTS = "eth_accounts"
    CHAIN_ID = "eth_chainId"
    SWITCH_CHAIN = "wallet_switchEthereumChain"
    ADD_CHAIN = "wallet_addEthereumChain"
    SEND_TRANSACTION = "eth_sendTransaction"


def chain_id_to_hex(chain_id: int) -> str:
    """Encode a chain id the way wallet RPC methods expect it."""
    return hex(int(chain_id))


def parse_chain_id(value: str | int) -> int:
    """Decode a chain id returned as hex string, decimal string or int."""
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)
