"""Example: Connect a wallet and list every campaign with its details."""

from __future__ import annotations

import asyncio
import logging
import os

from dotenv import load_dotenv

from crowdfund_client import (
    ChainConfig,
    ContractClient,
    CrowdfundError,
    LocalWalletProvider,
    WalletSession,
    format_ether,
)

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOGLEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


async def main() -> None:
    """List registry campaigns and print their funding progress."""

    private_key = os.getenv("PRIVATE_KEY")
    if not private_key:
        raise ValueError("PRIVATE_KEY not found in environment variables")

    config = ChainConfig.from_env()
    rpc_url = os.getenv("RPC_URL", config.rpc_urls[0])

    provider = LocalWalletProvider(rpc_url, private_key, networks={config.chain_id: rpc_url})
    session = WalletSession(provider, config)
    session.attach()
    try:
        state = await session.connect()
        print(f"Connected {state.address} on chain {state.chain_id}")

        client = ContractClient(session)
        campaigns = await client.list_all_campaigns()
        print(f"Registry {config.registry_address} holds {len(campaigns)} campaign(s)")

        details = await client.fetch_details_batch(c.address for c in campaigns)
        for campaign in campaigns:
            info = details.get(campaign.address)
            if info is None:
                print(f"- {campaign.name} ({campaign.address}): details unavailable")
                continue
            print(
                f"- {info.name}: {format_ether(info.balance)} / {format_ether(info.goal)} ETH "
                f"({info.progress:.0%}) state={info.state.name} tiers={len(info.tiers)}"
            )
    except CrowdfundError as exc:
        print(f"Failed [{exc.kind.value}]: {exc.message}")
    finally:
        session.detach()
        await provider.close()


if __name__ == "__main__":
    asyncio.run(main())
