"""Read-only query façade over the crowdfunding registry and campaign contracts."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from web3 import Web3
from web3.contract import AsyncContract

from ..abi import Crowdfunding_abi, CrowdfundingManager_abi
from ..exceptions import (
    DetailsUnavailableError,
    QueryFailedError,
    ValidationError,
    classify_error,
)
from ..types import (
    Campaign,
    CampaignDetails,
    DetailsUnavailable,
    decode_campaign_details,
    decode_campaigns,
)
from .wallet import SigningHandle, WalletSession

logger = logging.getLogger(__name__)

# Field name -> campaign contract getter, read concurrently per campaign
DETAIL_READS: tuple[tuple[str, str], ...] = (
    ("name", "name"),
    ("description", "description"),
    ("goal", "goal"),
    ("deadline", "deadline"),
    ("owner", "owner"),
    ("balance", "getContractBalance"),
    ("tiers", "getTiers"),
    ("state", "getCampaignStatus"),
)


class ContractClient:
    """Issue read-only queries using the session's current signing handle."""

    def __init__(self, session: WalletSession) -> None:
        self._session = session

    @property
    def session(self) -> WalletSession:
        return self._session

    # ------------------------------------------------------------------
    # Registry queries
    # ------------------------------------------------------------------
    async def list_all_campaigns(self) -> list[Campaign]:
        registry = self._registry(self._session.get_signing_handle())
        raw = await self._call(registry.functions.getAllCampaigns(), "getAllCampaigns")
        return self._decode_campaigns(raw, "getAllCampaigns")

    async def list_user_campaigns(self, owner: str) -> list[Campaign]:
        handle = self._session.get_signing_handle()
        try:
            owner_address = Web3.to_checksum_address(owner)
        except (TypeError, ValueError) as exc:
            raise QueryFailedError("invalid owner address", details={"owner": owner}) from exc

        registry = self._registry(handle)
        raw = await self._call(
            registry.functions.getUserCampaigns(owner_address), "getUserCampaigns"
        )
        return self._decode_campaigns(raw, "getUserCampaigns")

    async def is_paused(self) -> bool:
        registry = self._registry(self._session.get_signing_handle())
        raw = await self._call(registry.functions.paused(), "paused")
        if not isinstance(raw, bool):
            raise QueryFailedError("registry returned a non-boolean paused flag")
        return raw

    # ------------------------------------------------------------------
    # Campaign details
    # ------------------------------------------------------------------
    async def fetch_details(self, address: str) -> CampaignDetails | DetailsUnavailable:
        """Read every campaign field concurrently; all succeed or none are returned."""

        handle = self._session.get_signing_handle()
        try:
            address = Web3.to_checksum_address(address)
            contract = handle.contract(address, Crowdfunding_abi)
        except (TypeError, ValueError):
            return DetailsUnavailable(address=address, reason="Invalid campaign address")

        results = await asyncio.gather(
            *(getattr(contract.functions, getter)().call() for _, getter in DETAIL_READS),
            return_exceptions=True,
        )

        values: dict[str, Any] = {}
        for (field_name, getter), result in zip(DETAIL_READS, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                error = classify_error(result)
                logger.warning(
                    "Failed to read %s for campaign %s: %s", getter, address, result
                )
                return DetailsUnavailable(address=address, reason=error.message)
            values[field_name] = result

        try:
            return decode_campaign_details(address, values)
        except ValidationError as exc:
            logger.warning(
                "Malformed %s for campaign %s: %r", exc.field, address, exc.value
            )
            return DetailsUnavailable(address=address, reason=exc.message)

    async def require_details(self, address: str) -> CampaignDetails:
        result = await self.fetch_details(address)
        if isinstance(result, DetailsUnavailable):
            raise DetailsUnavailableError(result.reason, details={"address": address})
        return result

    async def fetch_details_batch(self, addresses: Iterable[str]) -> dict[str, CampaignDetails]:
        """Fetch details for many campaigns, omitting the ones that fail.

        Results are keyed by checksum address, so differently cased duplicates
        are read once.
        """

        self._session.get_signing_handle()
        checksummed: list[str] = []
        for address in addresses:
            try:
                checksummed.append(Web3.to_checksum_address(address))
            except (TypeError, ValueError):
                logger.info("Omitting invalid campaign address %r", address)
        unique = list(dict.fromkeys(checksummed))
        results = await asyncio.gather(
            *(self.fetch_details(address) for address in unique),
            return_exceptions=True,
        )

        details: dict[str, CampaignDetails] = {}
        for address, result in zip(unique, results):
            if isinstance(result, CampaignDetails):
                details[address] = result
            elif isinstance(result, DetailsUnavailable):
                logger.info("Omitting campaign %s: %s", address, result.reason)
            elif isinstance(result, Exception):
                logger.warning("Omitting campaign %s after error: %s", address, result)
            elif isinstance(result, BaseException):
                raise result

        return details

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _registry(self, handle: SigningHandle) -> AsyncContract:
        return handle.contract(self._session.config.registry_address, CrowdfundingManager_abi)

    async def _call(self, function: Any, label: str) -> Any:
        try:
            return await function.call()
        except Exception as exc:
            error = classify_error(exc)
            logger.error("Registry read %s failed: %s", label, exc)
            raise QueryFailedError(error.message, details={"call": label, **error.details}) from exc

    def _decode_campaigns(self, raw: Any, label: str) -> list[Campaign]:
        try:
            return decode_campaigns(raw)
        except ValidationError as exc:
            logger.error("Malformed %s response: %s", label, exc.message)
            raise QueryFailedError(
                exc.message, details={"call": label, "field": exc.field}
            ) from exc
