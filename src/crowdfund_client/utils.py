"""Utility functions for the crowdfunding client."""

from collections.abc import Mapping, Sequence
from decimal import Decimal, InvalidOperation, localcontext
from typing import Any

from hexbytes import HexBytes

from .constants import UINT256_MAX
from .exceptions import ValidationError

ETHER_DECIMALS = 18
_PRECISION = 100


def to_wei(amount: str | Decimal | int, decimals: int = ETHER_DECIMALS) -> int:
    """Convert a human decimal amount (e.g. ``"0.05"``) to integer wei."""
    if isinstance(amount, float):
        raise ValidationError(
            "Floats are not accepted; pass a decimal string", field="amount", value=amount
        )

    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except InvalidOperation:
        raise ValidationError("Amount must be a decimal number", field="amount", value=amount)

    if not value.is_finite():
        raise ValidationError("Amount must be finite", field="amount", value=amount)
    if value < 0:
        raise ValidationError("Amount cannot be negative", field="amount", value=amount)

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = value.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValidationError(
            f"Amount has more than {decimals} decimal places", field="amount", value=amount
        )

    wei = int(scaled)
    if wei > UINT256_MAX:
        raise ValidationError("Amount exceeds uint256 maximum", field="amount", value=amount)
    return wei


def from_wei(wei: int, decimals: int = ETHER_DECIMALS) -> Decimal:
    """Convert integer wei to a Decimal amount."""
    if wei < 0:
        raise ValidationError("Wei amount cannot be negative", field="wei", value=wei)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(wei).scaleb(-decimals)


def format_ether(wei: int, decimals: int = ETHER_DECIMALS) -> str:
    """Render wei as a plain decimal string without trailing zeros."""
    value = from_wei(wei, decimals)
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def serialise_receipt(receipt: Any) -> Any:
    """Serialise web3 receipt objects into JSON-friendly structures."""
    if receipt is None:
        return None
    if isinstance(receipt, Mapping):
        return {key: serialise_receipt(value) for key, value in receipt.items()}
    if isinstance(receipt, Sequence) and not isinstance(
        receipt, str | bytes | bytearray | HexBytes
    ):
        return [serialise_receipt(item) for item in receipt]
    if isinstance(receipt, bytes | bytearray | HexBytes):
        return HexBytes(receipt).to_0x_hex()
    return receipt


def to_hex_hash(value: Any) -> str:
    """Normalise a transaction hash to a 0x-prefixed hex string."""
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return HexBytes(value).to_0x_hex()
