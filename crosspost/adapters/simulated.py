from __future__ import annotations

import asyncio
import logging
import secrets
import time
from collections import OrderedDict
from decimal import Decimal
from typing import Any

from crosspost.adapters.base import AdapterResult, ChannelRef, ListingSnapshot


log = logging.getLogger(__name__)

# external ids remembered per adapter; oldest are forgotten first
MAX_TRACKED_IDS = 10_000


def _remember(seen: OrderedDict, key: str, value: Any, *, limit: int) -> None:
    seen[key] = value
    seen.move_to_end(key)
    while len(seen) > limit:
        seen.popitem(last=False)


class SimulatedAdapter:
    """
    Stand-in for a marketplace API: sleeps to mimic network latency and hands out
    fabricated ids. Keeps just enough state (bounded) to behave idempotently.
    """

    def __init__(self, platform: str, *, id_prefix: str, latency_ms: int = 500, max_tracked: int = MAX_TRACKED_IDS):
        self.platform = platform
        self._id_prefix = id_prefix
        self._latency = max(0, latency_ms) / 1000.0
        self._max_tracked = max(1, max_tracked)
        self._ended: OrderedDict[str, bool] = OrderedDict()
        self._prices: OrderedDict[str, Decimal] = OrderedDict()

    async def _simulate(self, factor: float = 1.0) -> None:
        if self._latency:
            await asyncio.sleep(self._latency * factor)

    async def publish(self, listing: ListingSnapshot, *, credentials: dict[str, Any]) -> AdapterResult:
        await self._simulate()
        external_id = f"{self._id_prefix}_{int(time.time() * 1000)}{secrets.token_hex(3)}"
        _remember(self._prices, external_id, listing.price, limit=self._max_tracked)
        log.info("simulated %s publish listing=%s external_id=%s", self.platform, listing.id, external_id)
        return AdapterResult(ok=True, platform=self.platform, external_id=external_id, detail={"simulated": True})

    async def unpublish(self, ref: ChannelRef, *, credentials: dict[str, Any]) -> AdapterResult:
        await self._simulate(0.6)
        if ref.external_id in self._ended:
            log.info("simulated %s unpublish no-op (already ended) external_id=%s", self.platform, ref.external_id)
            return AdapterResult(ok=True, platform=self.platform, detail={"simulated": True, "noop": True})

        _remember(self._ended, ref.external_id, True, limit=self._max_tracked)
        self._prices.pop(ref.external_id, None)
        log.info("simulated %s unpublish external_id=%s", self.platform, ref.external_id)
        return AdapterResult(ok=True, platform=self.platform, detail={"simulated": True})

    async def update_price(
        self,
        ref: ChannelRef,
        new_price: Decimal,
        *,
        credentials: dict[str, Any],
    ) -> AdapterResult:
        await self._simulate(0.6)
        noop = self._prices.get(ref.external_id) == new_price
        _remember(self._prices, ref.external_id, new_price, limit=self._max_tracked)
        log.info("simulated %s price update external_id=%s price=%s", self.platform, ref.external_id, new_price)
        return AdapterResult(ok=True, platform=self.platform, detail={"simulated": True, "noop": noop})


def simulated_adapters(*, latency_ms: int = 500) -> list[SimulatedAdapter]:
    return [
        SimulatedAdapter("facebook", id_prefix="fb", latency_ms=latency_ms),
        SimulatedAdapter("ebay", id_prefix="ebay", latency_ms=int(latency_ms * 1.2)),
        SimulatedAdapter("poshmark", id_prefix="posh", latency_ms=latency_ms),
    ]
