"""Tests for discarding out-of-date query results."""

from __future__ import annotations

import asyncio

import pytest
from fakes import CAMPAIGN_A, CAMPAIGN_B, FakeProvider

from crowdfund_client.evm.staleness import StalenessGuard
from crowdfund_client.evm.wallet import WalletSession


@pytest.fixture
def guard(session: WalletSession) -> StalenessGuard:
    return StalenessGuard(session)


def test_latest_read_is_current(guard: StalenessGuard) -> None:
    first = guard.begin(CAMPAIGN_A)
    second = guard.begin(CAMPAIGN_A)
    other = guard.begin(CAMPAIGN_B)

    assert guard.is_current(first) is False
    assert guard.is_current(second) is True
    assert guard.is_current(other) is True


def test_cancel_marks_read_stale(guard: StalenessGuard) -> None:
    token = guard.begin(CAMPAIGN_A)
    guard.cancel(CAMPAIGN_A)
    guard.cancel(CAMPAIGN_B)

    assert guard.is_current(token) is False


@pytest.mark.asyncio
async def test_result_discarded_after_account_change(
    guard: StalenessGuard, session: WalletSession, provider: FakeProvider
) -> None:
    await session.connect()
    session.attach()
    gate = asyncio.Event()
    applied: list[str] = []

    async def slow_read() -> str:
        await gate.wait()
        return "details for previous account"

    task = asyncio.create_task(guard.run(CAMPAIGN_A, slow_read(), applied.append))
    await asyncio.sleep(0)
    provider.emit("accountsChanged", [provider.accounts[0]])
    gate.set()

    assert await task is False
    assert applied == []
    await session.wait_idle()


@pytest.mark.asyncio
async def test_result_discarded_when_superseded(guard: StalenessGuard) -> None:
    gate = asyncio.Event()
    applied: list[str] = []

    async def read(value: str, wait: bool) -> str:
        if wait:
            await gate.wait()
        return value

    slow = asyncio.create_task(guard.run(CAMPAIGN_A, read("old", True), applied.append))
    await asyncio.sleep(0)
    fresh = await guard.run(CAMPAIGN_A, read("new", False), applied.append)
    gate.set()

    assert fresh is True
    assert await slow is False
    assert applied == ["new"]


@pytest.mark.asyncio
async def test_result_applied_when_nothing_changed(guard: StalenessGuard) -> None:
    applied: list[int] = []

    async def read() -> int:
        return 7

    assert await guard.run("listing", read(), applied.append) is True
    assert applied == [7]
