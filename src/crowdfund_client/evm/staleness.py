"""Discard query results whose consuming context has moved on."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, TypeVar

from .wallet import WalletSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class ReadToken:
    key: Hashable
    sequence: int
    epoch: int


class StalenessGuard:
    """Track the latest read per key and the session epoch it was issued in.

    A result is current only if no newer read was started for the same key and
    the wallet session has not been invalidated (disconnect, account or chain
    change) since the read began.
    """

    def __init__(self, session: WalletSession) -> None:
        self._session = session
        self._sequence: dict[Hashable, int] = {}

    def begin(self, key: Hashable) -> ReadToken:
        sequence = self._sequence.get(key, 0) + 1
        self._sequence[key] = sequence
        return ReadToken(key=key, sequence=sequence, epoch=self._session.epoch)

    def is_current(self, token: ReadToken) -> bool:
        return (
            self._sequence.get(token.key) == token.sequence
            and self._session.epoch == token.epoch
        )

    def cancel(self, key: Hashable) -> None:
        """Mark any outstanding read for ``key`` as stale."""

        if key in self._sequence:
            self._sequence[key] += 1

    async def run(
        self,
        key: Hashable,
        awaitable: Awaitable[T],
        apply: Callable[[T], Any],
    ) -> bool:
        """Await ``awaitable`` and pass its result to ``apply`` if still current."""

        token = self.begin(key)
        result = await awaitable
        if not self.is_current(token):
            logger.debug("Discarding stale result for %r", key)
            return False
        apply(result)
        return True
