"""Type definitions and boundary decoders for the crowdfunding client."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any

from eth_typing import ChecksumAddress
from web3 import Web3

from .constants import UINT256_MAX
from .exceptions import ErrorKind, ValidationError

Address = str  # Ethereum address
Wei = int  # Smallest monetary unit
UnixTimestamp = int


class SessionStatus(str, Enum):
    """States of the wallet session state machine."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    WRONG_CHAIN = "wrong_chain"


class CampaignState(IntEnum):
    """On-chain campaign status as returned by ``getCampaignStatus``."""

    ACTIVE = 0
    SUCCESSFUL = 1
    FAILED = 2


class TransactionKind(str, Enum):
    """Mutating contract calls the client can submit."""

    CREATE_CAMPAIGN = "create_campaign"
    ADD_TIER = "add_tier"
    REMOVE_TIER = "remove_tier"
    FUND = "fund"
    WITHDRAW = "withdraw"
    TOGGLE_PAUSE = "toggle_pause"


class TransactionStatus(str, Enum):
    SUBMITTED = "submitted"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class WalletSessionState:
    """Snapshot of the wallet session; replaced wholesale on every transition."""

    status: SessionStatus = SessionStatus.DISCONNECTED
    address: ChecksumAddress | None = None
    chain_id: int | None = None
    signing_handle: Any | None = None
    epoch: int = 0

    def __post_init__(self) -> None:
        if (self.address is None) != (self.signing_handle is None):
            raise ValueError("address and signing_handle must be set together")

    @property
    def is_connected(self) -> bool:
        return self.status is SessionStatus.CONNECTED


@dataclass(frozen=True)
class Tier:
    name: str
    amount: Wei
    backers: int


@dataclass(frozen=True)
class Campaign:
    """Registry entry for a deployed campaign contract."""

    address: ChecksumAddress
    owner: ChecksumAddress
    name: str
    creation_time: UnixTimestamp

    @property
    def created_at(self) -> datetime:
        return datetime.fromtimestamp(self.creation_time, tz=timezone.utc)


@dataclass(frozen=True)
class CampaignDetails:
    """Full field bundle read from a single campaign contract."""

    address: ChecksumAddress
    name: str
    description: str
    goal: Wei
    deadline: UnixTimestamp
    owner: ChecksumAddress
    balance: Wei
    state: CampaignState
    tiers: tuple[Tier, ...] = ()

    @property
    def progress(self) -> Decimal:
        """Return ``balance / goal``; may exceed one once overfunded."""

        if self.goal == 0:
            return Decimal(0)
        return Decimal(self.balance) / Decimal(self.goal)

    def is_owner(self, address: str | None) -> bool:
        if not address:
            return False
        return address.lower() == self.owner.lower()


@dataclass(frozen=True)
class DetailsUnavailable:
    """Explicit marker for a campaign whose details could not be read."""

    address: Address
    reason: str


@dataclass
class PendingTransaction:
    """Lifecycle record for one submitted mutating call."""

    kind: TransactionKind
    target_address: Address
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: TransactionStatus = TransactionStatus.SUBMITTED
    error_kind: ErrorKind | None = None
    transaction_hash: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not TransactionStatus.SUBMITTED


@dataclass
class TransactionOutcome:
    """Result of a mutating call submitted through the orchestrator."""

    success: bool
    kind: TransactionKind
    target_address: Address
    transaction_hash: str | None = None
    error_kind: ErrorKind | None = None
    error: str | None = None
    receipt: dict[str, Any] | None = None
    block_number: int | None = None


# ----------------------------------------------------------------------
# Boundary decoders
# ----------------------------------------------------------------------
def decode_address(value: Any, field_name: str) -> ChecksumAddress:
    if isinstance(value, bytes) and len(value) == 20:
        value = "0x" + value.hex()
    if not isinstance(value, str) or not Web3.is_address(value):
        raise ValidationError("Invalid address in contract response", field=field_name, value=value)
    return Web3.to_checksum_address(value)


def decode_uint(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("Expected an unsigned integer", field=field_name, value=value)
    if value < 0 or value > UINT256_MAX:
        raise ValidationError("Integer outside uint256 range", field=field_name, value=value)
    return value


def decode_string(value: Any, field_name: str) -> str:
    if not isinstance(value, str):
        raise ValidationError("Expected a string", field=field_name, value=value)
    return value


def _fields(raw: Any, names: Sequence[str], struct: str) -> list[Any]:
    """Return struct members from a named mapping or positional tuple."""

    if isinstance(raw, Mapping):
        missing = [name for name in names if name not in raw]
        if missing:
            raise ValidationError(
                f"{struct} is missing fields", field=struct, value=raw, details={"missing": missing}
            )
        return [raw[name] for name in names]

    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) != len(names):
            raise ValidationError(
                f"{struct} has {len(raw)} fields, expected {len(names)}", field=struct, value=raw
            )
        return list(raw)

    raise ValidationError(f"Unexpected {struct} shape", field=struct, value=raw)


def decode_campaign(raw: Any) -> Campaign:
    address, owner, name, creation_time = _fields(
        raw, ("campaignAddress", "owner", "name", "creationTime"), "Campaign"
    )
    return Campaign(
        address=decode_address(address, "campaignAddress"),
        owner=decode_address(owner, "owner"),
        name=decode_string(name, "name"),
        creation_time=decode_uint(creation_time, "creationTime"),
    )


def decode_campaigns(raw: Any) -> list[Campaign]:
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        raise ValidationError("Expected a list of campaigns", field="campaigns", value=raw)
    return [decode_campaign(item) for item in raw]


def decode_tier(raw: Any) -> Tier:
    name, amount, backers = _fields(raw, ("name", "amount", "backers"), "Tier")
    return Tier(
        name=decode_string(name, "tier.name"),
        amount=decode_uint(amount, "tier.amount"),
        backers=decode_uint(backers, "tier.backers"),
    )


def decode_campaign_state(value: Any) -> CampaignState:
    raw = decode_uint(value, "state")
    try:
        return CampaignState(raw)
    except ValueError as exc:
        raise ValidationError("Unknown campaign state", field="state", value=raw) from exc


def decode_campaign_details(address: str, values: Mapping[str, Any]) -> CampaignDetails:
    """Build :class:`CampaignDetails` from the raw per-field read results."""

    tiers_raw = values.get("tiers")
    if isinstance(tiers_raw, (str, bytes)) or not isinstance(tiers_raw, Sequence):
        raise ValidationError("Expected a list of tiers", field="tiers", value=tiers_raw)

    return CampaignDetails(
        address=decode_address(address, "address"),
        name=decode_string(values.get("name"), "name"),
        description=decode_string(values.get("description"), "description"),
        goal=decode_uint(values.get("goal"), "goal"),
        deadline=decode_uint(values.get("deadline"), "deadline"),
        owner=decode_address(values.get("owner"), "owner"),
        balance=decode_uint(values.get("balance"), "balance"),
        state=decode_campaign_state(values.get("state")),
        tiers=tuple(decode_tier(item) for item in tiers_raw),
    )
