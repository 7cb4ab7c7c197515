"""Tests for the read-only contract query façade."""

from __future__ import annotations

import pytest
import pytest_asyncio
from fakes import (
    ALICE,
    BOB,
    CAMPAIGN_A,
    CAMPAIGN_B,
    CAMPAIGN_C,
    REGISTRY,
    FakeChain,
    campaign_values,
)
from web3.exceptions import ContractLogicError

from crowdfund_client.evm.contracts import ContractClient
from crowdfund_client.evm.wallet import WalletSession
from crowdfund_client.exceptions import DetailsUnavailableError, NotConnectedError, QueryFailedError
from crowdfund_client.types import (
    Campaign,
    CampaignDetails,
    CampaignState,
    DetailsUnavailable,
    Tier,
)


def _summaries() -> list[tuple[str, str, str, int]]:
    return [
        (CAMPAIGN_A, ALICE, "Solar Farm", 1_700_000_000),
        (CAMPAIGN_B, BOB, "Community Garden", 1_700_000_100),
    ]


@pytest_asyncio.fixture
async def client(session: WalletSession, chain: FakeChain) -> ContractClient:
    chain.deploy(
        REGISTRY,
        {
            "getAllCampaigns": _summaries(),
            "getUserCampaigns": lambda owner: [row for row in _summaries() if row[1] == owner],
            "paused": False,
        },
    )
    chain.deploy(CAMPAIGN_A, campaign_values("Solar Farm"))
    chain.deploy(CAMPAIGN_B, campaign_values("Community Garden", owner=BOB, state=1))
    chain.deploy(CAMPAIGN_C, campaign_values("Library", goal=0, balance=0))
    await session.connect()
    return ContractClient(session)


@pytest.mark.asyncio
async def test_list_all_campaigns_preserves_registry_order(client: ContractClient) -> None:
    campaigns = await client.list_all_campaigns()

    assert [c.address for c in campaigns] == [CAMPAIGN_A, CAMPAIGN_B]
    assert campaigns[0] == Campaign(
        address=CAMPAIGN_A, owner=ALICE, name="Solar Farm", creation_time=1_700_000_000
    )


@pytest.mark.asyncio
async def test_list_user_campaigns_filters_by_owner(client: ContractClient) -> None:
    campaigns = await client.list_user_campaigns(BOB.lower())

    assert [c.name for c in campaigns] == ["Community Garden"]


@pytest.mark.asyncio
async def test_list_all_campaigns_read_failure(client: ContractClient, chain: FakeChain) -> None:
    chain.contracts[REGISTRY]["getAllCampaigns"] = ContractLogicError("execution reverted: paused")

    with pytest.raises(QueryFailedError) as excinfo:
        await client.list_all_campaigns()

    assert excinfo.value.reason == "paused"


@pytest.mark.asyncio
async def test_list_all_campaigns_malformed_response(
    client: ContractClient, chain: FakeChain
) -> None:
    chain.contracts[REGISTRY]["getAllCampaigns"] = [("not-an-address", ALICE, "x", 1)]

    with pytest.raises(QueryFailedError):
        await client.list_all_campaigns()


@pytest.mark.asyncio
async def test_queries_require_connection(client: ContractClient, session: WalletSession) -> None:
    session.disconnect()

    with pytest.raises(NotConnectedError):
        await client.list_all_campaigns()
    with pytest.raises(NotConnectedError):
        await client.fetch_details(CAMPAIGN_A)
    with pytest.raises(NotConnectedError):
        await client.fetch_details_batch([CAMPAIGN_A])


@pytest.mark.asyncio
async def test_is_paused(client: ContractClient) -> None:
    assert await client.is_paused() is False


@pytest.mark.asyncio
async def test_fetch_details_decodes_all_fields(client: ContractClient, chain: FakeChain) -> None:
    details = await client.fetch_details(CAMPAIGN_A)

    assert isinstance(details, CampaignDetails)
    assert details.name == "Solar Farm"
    assert details.goal == 10**18
    assert details.balance == 25 * 10**16
    assert details.owner == ALICE
    assert details.state is CampaignState.ACTIVE
    assert details.tiers == (Tier("Bronze", 10**16, 3), Tier("Gold", 10**17, 1))
    assert str(details.progress) == "0.25"
    reads = {name for address, name in chain.reads if address == CAMPAIGN_A}
    assert reads == {
        "name",
        "description",
        "goal",
        "deadline",
        "owner",
        "getContractBalance",
        "getTiers",
        "getCampaignStatus",
    }


@pytest.mark.asyncio
async def test_fetch_details_is_all_or_nothing(client: ContractClient, chain: FakeChain) -> None:
    chain.contracts[CAMPAIGN_A]["getTiers"] = ContractLogicError("execution reverted")

    details = await client.fetch_details(CAMPAIGN_A)

    assert isinstance(details, DetailsUnavailable)
    assert details.address == CAMPAIGN_A


@pytest.mark.asyncio
async def test_fetch_details_rejects_out_of_range_values(
    client: ContractClient, chain: FakeChain
) -> None:
    chain.contracts[CAMPAIGN_A]["getContractBalance"] = -1

    details = await client.fetch_details(CAMPAIGN_A)

    assert isinstance(details, DetailsUnavailable)


@pytest.mark.asyncio
async def test_fetch_details_rejects_unknown_state(client: ContractClient, chain: FakeChain) -> None:
    chain.contracts[CAMPAIGN_A]["getCampaignStatus"] = 7

    assert isinstance(await client.fetch_details(CAMPAIGN_A), DetailsUnavailable)


@pytest.mark.asyncio
async def test_fetch_details_is_idempotent(client: ContractClient) -> None:
    first = await client.fetch_details(CAMPAIGN_A)
    second = await client.fetch_details(CAMPAIGN_A)

    assert first == second
    assert repr(first) == repr(second)


@pytest.mark.asyncio
async def test_require_details_raises_when_unavailable(
    client: ContractClient, chain: FakeChain
) -> None:
    chain.contracts[CAMPAIGN_A]["owner"] = ContractLogicError("execution reverted")

    with pytest.raises(DetailsUnavailableError):
        await client.require_details(CAMPAIGN_A)


@pytest.mark.asyncio
async def test_batch_isolates_failing_campaign(client: ContractClient, chain: FakeChain) -> None:
    chain.contracts[CAMPAIGN_B]["goal"] = ContractLogicError("execution reverted: boom")

    details = await client.fetch_details_batch([CAMPAIGN_A, CAMPAIGN_B, CAMPAIGN_C])

    assert set(details) == {CAMPAIGN_A, CAMPAIGN_C}
    assert details[CAMPAIGN_A].name == "Solar Farm"
    assert details[CAMPAIGN_C].progress == 0


@pytest.mark.asyncio
async def test_batch_collapses_duplicates_and_skips_invalid(client: ContractClient) -> None:
    details = await client.fetch_details_batch([CAMPAIGN_A, CAMPAIGN_A, "0x1234"])

    assert list(details) == [CAMPAIGN_A]


@pytest.mark.asyncio
async def test_batch_keys_by_checksum_address(client: ContractClient, chain: FakeChain) -> None:
    details = await client.fetch_details_batch([CAMPAIGN_A.lower(), CAMPAIGN_A, "not-an-address"])

    assert list(details) == [CAMPAIGN_A]
    assert details[CAMPAIGN_A].address == CAMPAIGN_A
    assert chain.reads.count((CAMPAIGN_A, "name")) == 1


@pytest.mark.asyncio
async def test_fetch_details_reports_checksum_address(
    client: ContractClient, chain: FakeChain
) -> None:
    chain.contracts[CAMPAIGN_B]["goal"] = ContractLogicError("execution reverted: boom goal")

    result = await client.fetch_details(CAMPAIGN_B.lower())

    assert result == DetailsUnavailable(address=CAMPAIGN_B, reason="boom goal")


@pytest.mark.asyncio
async def test_fetch_details_invalid_address(client: ContractClient) -> None:
    result = await client.fetch_details("0x1234")

    assert result == DetailsUnavailable(address="0x1234", reason="Invalid campaign address")


@pytest.mark.asyncio
async def test_batch_with_no_addresses(client: ContractClient) -> None:
    assert await client.fetch_details_batch([]) == {}
