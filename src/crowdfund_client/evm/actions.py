"""Typed mutating calls against the crowdfunding contracts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from web3 import Web3

from ..abi import Crowdfunding_abi, CrowdfundingManager_abi
from ..constants import UINT256_MAX
from ..exceptions import ValidationError
from ..types import TransactionKind, TransactionOutcome
from .transactions import RefreshHook, TransactionOrchestrator
from .wallet import SigningHandle, WalletSession

logger = logging.getLogger(__name__)


@dataclass
class TxRequest:
    """Transaction request details for clean separation of concerns."""

    kind: TransactionKind
    target: str
    abi: Sequence[dict[str, Any]]
    function: str
    args: list[Any] = field(default_factory=list)
    value: int = 0


class CampaignActions:
    """Build contract calls and hand them to the transaction orchestrator."""

    def __init__(
        self,
        session: WalletSession,
        orchestrator: TransactionOrchestrator | None = None,
    ) -> None:
        self._session = session
        self._orchestrator = orchestrator or TransactionOrchestrator(session)

    @property
    def orchestrator(self) -> TransactionOrchestrator:
        return self._orchestrator

    @property
    def busy(self) -> bool:
        return self._orchestrator.busy

    # ------------------------------------------------------------------
    # Registry actions
    # ------------------------------------------------------------------
    async def create_campaign(
        self,
        name: str,
        description: str,
        goal: int,
        duration_days: int,
        *,
        on_success: RefreshHook | None = None,
    ) -> TransactionOutcome:
        _require_uint(goal, "goal")
        _require_uint(duration_days, "duration_days")
        tx_request = TxRequest(
            kind=TransactionKind.CREATE_CAMPAIGN,
            target=self._session.config.registry_address,
            abi=CrowdfundingManager_abi,
            function="createCampaign",
            args=[name, description, goal, duration_days],
        )
        return await self._execute(tx_request, on_success)

    async def toggle_pause(self, *, on_success: RefreshHook | None = None) -> TransactionOutcome:
        tx_request = TxRequest(
            kind=TransactionKind.TOGGLE_PAUSE,
            target=self._session.config.registry_address,
            abi=CrowdfundingManager_abi,
            function="togglePause",
        )
        return await self._execute(tx_request, on_success)

    # ------------------------------------------------------------------
    # Campaign actions
    # ------------------------------------------------------------------
    async def add_tier(
        self,
        campaign: str,
        name: str,
        amount: int,
        *,
        on_success: RefreshHook | None = None,
    ) -> TransactionOutcome:
        _require_uint(amount, "amount")
        tx_request = TxRequest(
            kind=TransactionKind.ADD_TIER,
            target=_campaign_address(campaign),
            abi=Crowdfunding_abi,
            function="addTier",
            args=[name, amount],
        )
        return await self._execute(tx_request, on_success)

    async def remove_tier(
        self, campaign: str, index: int, *, on_success: RefreshHook | None = None
    ) -> TransactionOutcome:
        _require_uint(index, "index")
        tx_request = TxRequest(
            kind=TransactionKind.REMOVE_TIER,
            target=_campaign_address(campaign),
            abi=Crowdfunding_abi,
            function="removeTier",
            args=[index],
        )
        return await self._execute(tx_request, on_success)

    async def fund(
        self,
        campaign: str,
        tier_index: int,
        amount: int,
        *,
        on_success: RefreshHook | None = None,
    ) -> TransactionOutcome:
        _require_uint(tier_index, "tier_index")
        _require_uint(amount, "amount")
        tx_request = TxRequest(
            kind=TransactionKind.FUND,
            target=_campaign_address(campaign),
            abi=Crowdfunding_abi,
            function="fund",
            args=[tier_index],
            value=amount,
        )
        return await self._execute(tx_request, on_success)

    async def withdraw(
        self, campaign: str, *, on_success: RefreshHook | None = None
    ) -> TransactionOutcome:
        tx_request = TxRequest(
            kind=TransactionKind.WITHDRAW,
            target=_campaign_address(campaign),
            abi=Crowdfunding_abi,
            function="withdraw",
        )
        return await self._execute(tx_request, on_success)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    async def _execute(
        self, tx_request: TxRequest, on_success: RefreshHook | None
    ) -> TransactionOutcome:
        async def call(handle: SigningHandle) -> str:
            contract = handle.contract(tx_request.target, tx_request.abi)
            function = getattr(contract.functions, tx_request.function)(*tx_request.args)
            return await handle.transact(function, value=tx_request.value)

        logger.debug(
            "Prepared %s(%s) value=%s on %s",
            tx_request.function,
            tx_request.args,
            tx_request.value,
            tx_request.target,
        )
        return await self._orchestrator.submit(
            tx_request.kind, tx_request.target, call, on_success=on_success
        )


def _require_uint(value: Any, field_name: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer", field=field_name, value=value)
    if value < 0:
        raise ValidationError(f"{field_name} cannot be negative", field=field_name, value=value)
    if value > UINT256_MAX:
        raise ValidationError(
            f"{field_name} exceeds uint256 maximum", field=field_name, value=value
        )


def _campaign_address(campaign: str) -> str:
    try:
        return Web3.to_checksum_address(campaign)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            "Invalid campaign address", field="campaign", value=campaign
        ) from exc
