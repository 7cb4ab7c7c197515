"""Example: Create a campaign, add a tier and back it."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from crowdfund_client import (
    CampaignActions,
    ChainConfig,
    ContractClient,
    LocalWalletProvider,
    WalletSession,
    to_wei,
)

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

CAMPAIGN_NAME = "Community Solar"
GOAL = "0.5"
TIER_AMOUNT = "0.01"
DURATION_DAYS = 30


async def main() -> None:
    """Run a full owner/backer flow against the configured registry."""

    private_key = os.getenv("PRIVATE_KEY")
    if not private_key:
        raise ValueError("PRIVATE_KEY not found in environment variables")

    config = ChainConfig.from_env()
    rpc_url = os.getenv("RPC_URL", config.rpc_urls[0])

    provider = LocalWalletProvider(rpc_url, private_key, networks={config.chain_id: rpc_url})
    session = WalletSession(provider, config)
    client = ContractClient(session)
    actions = CampaignActions(session)

    await session.connect()
    try:
        created = await actions.create_campaign(
            CAMPAIGN_NAME, "Panels for the library roof", to_wei(GOAL), DURATION_DAYS
        )
        if not created.success:
            print(f"Campaign creation failed [{created.error_kind}]: {created.error}")
            return
        print(f"Campaign created in tx {created.transaction_hash}")

        mine = await client.list_user_campaigns(session.address)
        campaign = mine[-1]
        print(f"New campaign address: {campaign.address}")

        tier = await actions.add_tier(campaign.address, "Supporter", to_wei(TIER_AMOUNT))
        if not tier.success:
            print(f"Adding tier failed [{tier.error_kind}]: {tier.error}")
            return

        funded = await actions.fund(
            campaign.address,
            0,
            to_wei(TIER_AMOUNT),
            on_success=lambda: client.fetch_details(campaign.address),
        )
        if funded.success:
            print(f"Funded in block {funded.block_number}")
        else:
            print(f"Funding failed [{funded.error_kind}]: {funded.error}")

        details = await client.require_details(campaign.address)
        print(f"Progress: {details.progress:.2%} with {details.tiers[0].backers} backer(s)")
    finally:
        session.disconnect()
        await provider.close()


if __name__ == "__main__":
    asyncio.run(main())
