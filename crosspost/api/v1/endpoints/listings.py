import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.adapters.base import UNSUPPORTED_PLATFORM, AdapterResult
from crosspost.adapters.registry import normalize_platform
from crosspost.api.deps import get_dispatcher, get_write_store
from crosspost.core.db import get_db
from crosspost.models.listing import Listing
from crosspost.schemas.listing import (
    ChannelListingOut,
    ListingCreate,
    ListingDetailOut,
    ListingOut,
    ListingUpdate,
    PublishOut,
    PublishRequest,
)
from crosspost.services.audit import record_audit_event
from crosspost.services.auth import Actor, get_actor
from crosspost.services.channel_store import ChannelStore
from crosspost.services.dispatcher import PublishDispatcher
from crosspost.services.listings import (
    apply_listing_edits,
    archive_listing,
    get_owned_listing_or_404,
    list_channel_rows,
)
from crosspost.services.publishing import record_publish_outcome

log = logging.getLogger(__name__)

router = APIRouter()


def _listing_out(listing: Listing) -> ListingOut:
    return ListingOut(
        id=listing.id,
        owner_id=listing.owner_id,
        title=listing.title,
        description=listing.description,
        price=listing.price,
        image_url=listing.image_url,
        condition=listing.condition,
        category=listing.category,
        status=listing.status,
        sold_at=listing.sold_at,
        created_at=listing.created_at,
        updated_at=listing.updated_at,
    )


@router.post("/listings", response_model=ListingOut, status_code=201)
async def create_listing(
    payload: ListingCreate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = Listing(
        owner_id=actor.user_id,
        title=payload.title,
        description=payload.description,
        price=payload.price,
        image_url=payload.image_url,
        condition=payload.condition,
        category=payload.category,
        status="draft",
        cross_post_results={},
    )
    db.add(listing)
    await db.commit()
    await db.refresh(listing)

    return _listing_out(listing)


@router.get("/listings", response_model=list[ListingOut])
async def list_listings(
    status: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> list[ListingOut]:
    stmt = select(Listing).where(Listing.owner_id == actor.user_id)
    if status:
        stmt = stmt.where(Listing.status == status)
    stmt = stmt.order_by(Listing.created_at.desc(), Listing.id.desc())

    rows = (await db.execute(stmt)).scalars().all()
    return [_listing_out(r) for r in rows]


@router.get("/listings/{listing_id}", response_model=ListingDetailOut)
async def get_listing(
    listing_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> ListingDetailOut:
    listing = await get_owned_listing_or_404(db, owner_id=actor.user_id, listing_id=listing_id)
    channels = await list_channel_rows(db, listing.id)

    return ListingDetailOut(
        **_listing_out(listing).model_dump(),
        channels=[
            ChannelListingOut(id=c.id, platform=c.platform, external_id=c.external_id, status=c.status)
            for c in channels
        ],
    )


@router.patch("/listings/{listing_id}", response_model=ListingOut)
async def update_listing(
    listing_id: str,
    payload: ListingUpdate,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> ListingOut:
    listing = await get_owned_listing_or_404(db, owner_id=actor.user_id, listing_id=listing_id)

    changed = apply_listing_edits(listing, payload.model_dump(exclude_unset=True))
    if changed:
        await db.commit()
        log.info("listing edited listing=%s fields=%s", listing.id, ",".join(changed))
    await db.refresh(listing)

    return _listing_out(listing)


@router.delete("/listings/{listing_id}")
async def delete_listing(
    listing_id: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    listing = await get_owned_listing_or_404(db, owner_id=actor.user_id, listing_id=listing_id)

    if await archive_listing(db, listing):
        await db.commit()

    return {"success": True, "archived": True}


@router.post("/listings/{listing_id}/publish", response_model=PublishOut)
async def publish_listing(
    listing_id: str,
    payload: PublishRequest,
    actor: Actor = Depends(get_actor),
    dispatcher: PublishDispatcher = Depends(get_dispatcher),
    store: ChannelStore = Depends(get_write_store),
    db: AsyncSession = Depends(get_db),
) -> PublishOut:
    listing = await get_owned_listing_or_404(db, owner_id=actor.user_id, listing_id=listing_id)

    platforms = list(dict.fromkeys(normalize_platform(p) for p in payload.platforms))

    results: dict[str, dict] = {}
    for platform in platforms:
        outcome = await dispatcher.enqueue_publish(db, listing.id, platform)
        results[platform] = outcome

        # queued jobs are recorded by the worker; inline results are recorded here
        if not dispatcher.queued and outcome.get("error_code") != UNSUPPORTED_PLATFORM:
            await record_publish_outcome(
                db,
                store=store,
                listing=listing,
                platform=platform,
                result=AdapterResult.from_dict(outcome),
                source="inline",
            )

    await record_audit_event(
        db,
        listing_id=listing.id,
        type="publish",
        detail="Publish requested",
        payload={"platforms": platforms, "queued": dispatcher.queued},
    )
    await db.commit()

    log.info("publish requested listing=%s platforms=%s queued=%s", listing.id, platforms, dispatcher.queued)
    return PublishOut(success=True, queued=dispatcher.queued, results=results)
