from __future__ import annotations

from typing import Any

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.models.channel_listing import ChannelListing
from crosspost.models.listing import Listing
from crosspost.services.audit import record_audit_event


EDITABLE_FIELDS = ("title", "description", "price", "image_url", "condition", "category")


async def get_owned_listing_or_404(db: AsyncSession, *, owner_id: str, listing_id: str) -> Listing:
    listing = (await db.execute(
        select(Listing).where(Listing.id == listing_id, Listing.owner_id == owner_id)
    )).scalar_one_or_none()
    if not listing:
        raise HTTPException(status_code=404, detail="Listing not found")
    return listing


async def list_channel_rows(db: AsyncSession, listing_id: str) -> list[ChannelListing]:
    stmt = select(ChannelListing).where(ChannelListing.listing_id == listing_id).order_by(ChannelListing.platform.asc())
    return list((await db.execute(stmt)).scalars().all())


def apply_listing_edits(listing: Listing, changes: dict[str, Any]) -> list[str]:
    """Direct user edits. Returns the names of fields that actually changed."""
    if listing.status in ("sold", "archived"):
        raise HTTPException(status_code=409, detail=f"Listing is {listing.status}")

    changed = []
    for field in EDITABLE_FIELDS:
        if field in changes and getattr(listing, field) != changes[field]:
            setattr(listing, field, changes[field])
            changed.append(field)
    return changed


async def archive_listing(db: AsyncSession, listing: Listing) -> bool:
    """
    Soft delete. Channel rows are kept (history is preserved by status, never by
    removal). Returns False when the listing was already archived.
    """
    if listing.status == "archived":
        return False

    listing.status = "archived"
    await record_audit_event(
        db,
        listing_id=listing.id,
        type="delist",
        detail="Listing archived (soft delete)",
        payload={},
    )
    await db.flush()
    return True
