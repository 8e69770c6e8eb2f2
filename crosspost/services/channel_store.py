"""
Channel registry: which external id on which platform belongs to which listing.

Two stores hold that mapping while listings migrate:

- RelationalChannelStore ("canonical"): one ChannelListing row per (listing, platform).
- EmbeddedChannelStore ("legacy"): the `cross_post_results` map embedded in the
  listing record, {platform: {"listingId": ..., "status": ...}}.

Reads go through FallbackChannelLookup (canonical first, then legacy). Writes go
to the single store chosen by configuration (settings.channel_store).
Only the canonical store is audited; legacy writes leave no AuditEvent.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.adapters.base import ChannelRef
from crosspost.models.channel_listing import ChannelListing
from crosspost.models.listing import Listing


log = logging.getLogger(__name__)

CANONICAL = "canonical"
LEGACY = "legacy"


@dataclass(frozen=True)
class ChannelLookup:
    listing_id: str
    listing: Listing
    backend: str


class ChannelStore(Protocol):
    backend: str
    records_audit: bool

    async def find_by_external_id(self, db: AsyncSession, platform: str, external_id: str) -> ChannelLookup | None:
        ...

    async def list_channels(self, db: AsyncSession, listing: Listing) -> list[ChannelRef]:
        ...

    async def record_channel(self, db: AsyncSession, listing: Listing, platform: str, external_id: str) -> None:
        ...

    async def set_channel_status(self, db: AsyncSession, listing: Listing, ref: ChannelRef, status: str) -> None:
        ...


class RelationalChannelStore:
    backend = CANONICAL
    records_audit = True

    async def find_by_external_id(self, db: AsyncSession, platform: str, external_id: str) -> ChannelLookup | None:
        stmt = (
            select(ChannelListing, Listing)
            .join(Listing, Listing.id == ChannelListing.listing_id)
            .where(ChannelListing.platform == platform, ChannelListing.external_id == external_id)
            .order_by(ChannelListing.created_at.asc(), ChannelListing.id.asc())
            .limit(1)
        )
        row = (await db.execute(stmt)).first()
        if not row:
            return None
        _channel, listing = row
        return ChannelLookup(listing_id=listing.id, listing=listing, backend=self.backend)

    async def _rows(self, db: AsyncSession, listing_id: str) -> list[ChannelListing]:
        stmt = (
            select(ChannelListing)
            .where(ChannelListing.listing_id == listing_id)
            .order_by(ChannelListing.platform.asc())
        )
        return list((await db.execute(stmt)).scalars().all())

    async def list_channels(self, db: AsyncSession, listing: Listing) -> list[ChannelRef]:
        return [
            ChannelRef(platform=r.platform, external_id=r.external_id, listing_id=r.listing_id, status=r.status)
            for r in await self._rows(db, listing.id)
        ]

    async def record_channel(self, db: AsyncSession, listing: Listing, platform: str, external_id: str) -> None:
        row = (await db.execute(
            select(ChannelListing).where(
                ChannelListing.listing_id == listing.id,
                ChannelListing.platform == platform,
            )
        )).scalar_one_or_none()

        # (listing_id, platform) is unique: a republish replaces the external id
        if row:
            row.external_id = external_id
            row.status = "active"
        else:
            db.add(ChannelListing(listing_id=listing.id, platform=platform, external_id=external_id, status="active"))
        await db.flush()

    async def set_channel_status(self, db: AsyncSession, listing: Listing, ref: ChannelRef, status: str) -> None:
        row = (await db.execute(
            select(ChannelListing).where(
                ChannelListing.listing_id == listing.id,
                ChannelListing.platform == ref.platform,
            )
        )).scalar_one_or_none()
        if row is None:
            log.warning("channel row missing listing=%s platform=%s", listing.id, ref.platform)
            return
        row.status = status
        await db.flush()


class EmbeddedChannelStore:
    backend = LEGACY
    records_audit = False

    async def find_by_external_id(self, db: AsyncSession, platform: str, external_id: str) -> ChannelLookup | None:
        stmt = (
            select(Listing)
            .where(Listing.cross_post_results[(platform, "listingId")].as_string() == external_id)
            .order_by(Listing.created_at.asc(), Listing.id.asc())
            .limit(1)
        )
        listing = (await db.execute(stmt)).scalar_one_or_none()
        if not listing:
            return None
        return ChannelLookup(listing_id=listing.id, listing=listing, backend=self.backend)

    async def list_channels(self, db: AsyncSession, listing: Listing) -> list[ChannelRef]:
        refs = []
        for platform, entry in sorted((listing.cross_post_results or {}).items()):
            if not isinstance(entry, dict) or not entry.get("listingId"):
                continue
            refs.append(ChannelRef(
                platform=platform,
                external_id=str(entry["listingId"]),
                listing_id=listing.id,
                status=entry.get("status") or "active",
            ))
        return refs

    async def record_channel(self, db: AsyncSession, listing: Listing, platform: str, external_id: str) -> None:
        # reassign so the JSON column is flagged dirty
        results = dict(listing.cross_post_results or {})
        results[platform] = {"listingId": external_id, "status": "active"}
        listing.cross_post_results = results
        await db.flush()

    async def set_channel_status(self, db: AsyncSession, listing: Listing, ref: ChannelRef, status: str) -> None:
        results = dict(listing.cross_post_results or {})
        entry = results.get(ref.platform)
        if not isinstance(entry, dict):
            return
        results[ref.platform] = {**entry, "status": status}
        listing.cross_post_results = results
        await db.flush()


class FallbackChannelLookup:
    """
    Ordered lookup across stores. A store that errors (e.g. table not migrated
    yet) is skipped in favour of the next one; the last store's errors propagate.
    """

    def __init__(self, stores: Sequence[ChannelStore]):
        if not stores:
            raise ValueError("FallbackChannelLookup needs at least one store")
        self._stores = list(stores)

    @property
    def stores(self) -> list[ChannelStore]:
        return list(self._stores)

    def store_for(self, backend: str) -> ChannelStore:
        for store in self._stores:
            if store.backend == backend:
                return store
        raise KeyError(f"No channel store for backend={backend}")

    async def find_listing_by_platform_listing_id(
        self,
        db: AsyncSession,
        platform: str,
        external_id: str,
    ) -> ChannelLookup | None:
        last = len(self._stores) - 1
        for i, store in enumerate(self._stores):
            if i == last:
                found = await store.find_by_external_id(db, platform, external_id)
                return found or None
            try:
                # savepoint: a failed query must not poison the outer transaction
                async with db.begin_nested():
                    found = await store.find_by_external_id(db, platform, external_id)
            except SQLAlchemyError as e:
                log.warning("channel lookup failed on %s store, falling back: %s", store.backend, e)
                continue
            if found:
                return found
        return None


def default_channel_lookup() -> FallbackChannelLookup:
    return FallbackChannelLookup([RelationalChannelStore(), EmbeddedChannelStore()])


async def promote_legacy_channels(db: AsyncSession, listing: Listing) -> int:
    """
    Copy a listing's embedded channel entries into ChannelListing rows.
    Existing rows win; safe to run repeatedly. Returns the number of rows created.
    """
    canonical = RelationalChannelStore()
    legacy = EmbeddedChannelStore()

    existing = {ref.platform for ref in await canonical.list_channels(db, listing)}
    created = 0
    for ref in await legacy.list_channels(db, listing):
        if ref.platform in existing:
            continue
        db.add(ChannelListing(
            listing_id=listing.id,
            platform=ref.platform,
            external_id=ref.external_id,
            status=ref.status,
        ))
        created += 1
    await db.flush()
    return created
