import asyncio
from decimal import Decimal

from crosspost.adapters.base import ADAPTER_FAILURE, AdapterResult, ChannelRef, ListingSnapshot


class RecordingAdapter:
    """Records every call; fails, raises or stalls on the operations it is told to."""

    def __init__(self, platform, *, fail_on=(), raise_on=(), delay_on=(), delay=0.0):
        self.platform = platform
        self.calls = []
        self.fail_on = set(fail_on)
        self.raise_on = set(raise_on)
        self.delay_on = set(delay_on)
        self.delay = delay

    async def _outcome(self, op, **kwargs):
        if op in self.delay_on:
            await asyncio.sleep(self.delay)
        if op in self.raise_on:
            raise RuntimeError(f"{self.platform} {op} exploded")
        if op in self.fail_on:
            return AdapterResult.failure(self.platform, ADAPTER_FAILURE, f"{self.platform} {op} rejected")
        return AdapterResult(ok=True, platform=self.platform, **kwargs)

    async def publish(self, listing: ListingSnapshot, *, credentials):
        self.calls.append(("publish", listing.id, listing.price))
        return await self._outcome("publish", external_id=f"{self.platform}_{listing.id}")

    async def unpublish(self, ref: ChannelRef, *, credentials):
        self.calls.append(("unpublish", ref.external_id, None))
        return await self._outcome("unpublish")

    async def update_price(self, ref: ChannelRef, new_price: Decimal, *, credentials):
        self.calls.append(("update_price", ref.external_id, new_price))
        return await self._outcome("update_price")


class FakeQueue:
    def __init__(self, *, fail=False):
        self.jobs = []
        self.fail = fail

    async def enqueue(self, job):
        if self.fail:
            raise ConnectionError("broker unreachable")
        self.jobs.append(job)
        return f"job-{len(self.jobs)}"
