"""End-to-end tests through the default web3-backed signing handle."""

from __future__ import annotations

import pytest
from fakes import (
    ALICE,
    BOB,
    CAMPAIGN_A,
    CAMPAIGN_B,
    REGISTRY,
    NodeProvider,
    campaign_values,
    revert_data,
)

from crowdfund_client.abi import Crowdfunding_abi, CrowdfundingManager_abi
from crowdfund_client.evm.actions import CampaignActions
from crowdfund_client.evm.config import ChainConfig
from crowdfund_client.evm.contracts import ContractClient
from crowdfund_client.evm.wallet import SigningHandle, WalletSession
from crowdfund_client.exceptions import GENERIC_REVERT_MESSAGE, ErrorKind, ProviderRpcError
from crowdfund_client.types import CampaignDetails, DetailsUnavailable


def _revert(reason: str) -> ProviderRpcError:
    return ProviderRpcError(3, f"execution reverted: {reason}", revert_data(reason))


@pytest.fixture
def node() -> NodeProvider:
    node = NodeProvider()
    node.deploy(
        REGISTRY,
        CrowdfundingManager_abi,
        {
            "getAllCampaigns": [
                (CAMPAIGN_A, ALICE, "Solar Farm", 1_700_000_000),
                (CAMPAIGN_B, BOB, "Community Garden", 1_700_000_100),
            ],
            "paused": False,
        },
    )
    node.deploy(CAMPAIGN_A, Crowdfunding_abi, campaign_values("Solar Farm"))
    node.deploy(CAMPAIGN_B, Crowdfunding_abi, campaign_values("Community Garden", owner=BOB))
    return node


@pytest.fixture
def web3_session(node: NodeProvider, config: ChainConfig) -> WalletSession:
    return WalletSession(node, config)


@pytest.mark.asyncio
async def test_connect_builds_web3_handle(web3_session: WalletSession) -> None:
    await web3_session.connect()

    handle = web3_session.get_signing_handle()
    assert isinstance(handle, SigningHandle)
    assert handle.address == ALICE
    assert handle.web3.eth.default_account == ALICE


@pytest.mark.asyncio
async def test_registry_reads_decode_through_web3(web3_session: WalletSession) -> None:
    await web3_session.connect()
    client = ContractClient(web3_session)

    campaigns = await client.list_all_campaigns()

    assert [c.address for c in campaigns] == [CAMPAIGN_A, CAMPAIGN_B]
    assert campaigns[1].owner == BOB
    assert await client.is_paused() is False


@pytest.mark.asyncio
async def test_reverted_read_reports_decoded_reason(
    web3_session: WalletSession, node: NodeProvider
) -> None:
    node.contracts[CAMPAIGN_B.lower()].values["goal"] = _revert("boom goal")
    await web3_session.connect()
    client = ContractClient(web3_session)

    unavailable = await client.fetch_details(CAMPAIGN_B)
    batch = await client.fetch_details_batch([CAMPAIGN_A, CAMPAIGN_B])

    assert unavailable == DetailsUnavailable(address=CAMPAIGN_B, reason="boom goal")
    assert list(batch) == [CAMPAIGN_A]
    details = batch[CAMPAIGN_A]
    assert isinstance(details, CampaignDetails)
    assert details.name == "Solar Farm"
    assert [tier.name for tier in details.tiers] == ["Bronze", "Gold"]


@pytest.mark.asyncio
async def test_fund_confirms_with_receipt(web3_session: WalletSession, node: NodeProvider) -> None:
    await web3_session.connect()
    actions = CampaignActions(web3_session)

    outcome = await actions.fund(CAMPAIGN_A, 0, 10**16)

    assert outcome.success is True
    assert outcome.transaction_hash == "0x" + "0" * 63 + "1"
    assert outcome.block_number == NodeProvider.BLOCK_NUMBER
    assert node.sent == [(CAMPAIGN_A, "fund", (0,), 10**16)]
    assert "eth_getTransactionReceipt" in node.methods


@pytest.mark.asyncio
async def test_fund_gas_estimation_revert(web3_session: WalletSession, node: NodeProvider) -> None:
    node.estimate_errors["fund"] = _revert("Tier does not exist")
    await web3_session.connect()
    actions = CampaignActions(web3_session)

    outcome = await actions.fund(CAMPAIGN_A, 5, 10**16)

    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.CONTRACT_REVERTED
    assert outcome.error == "Tier does not exist"
    assert outcome.transaction_hash is None
    assert node.sent == []


@pytest.mark.asyncio
async def test_fund_rejected_in_wallet(web3_session: WalletSession, node: NodeProvider) -> None:
    node.send_errors.append(ProviderRpcError(4001, "User denied transaction signature"))
    await web3_session.connect()
    actions = CampaignActions(web3_session)

    outcome = await actions.fund(CAMPAIGN_A, 0, 10**16)

    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.USER_REJECTED
    assert node.sent == []
    assert actions.busy is False


@pytest.mark.asyncio
async def test_withdraw_with_failed_receipt(
    web3_session: WalletSession, node: NodeProvider
) -> None:
    node.receipt_status = 0
    await web3_session.connect()
    actions = CampaignActions(web3_session)

    outcome = await actions.withdraw(CAMPAIGN_A)

    assert outcome.success is False
    assert outcome.error_kind is ErrorKind.CONTRACT_REVERTED
    assert outcome.error == GENERIC_REVERT_MESSAGE
    assert outcome.block_number == NodeProvider.BLOCK_NUMBER
