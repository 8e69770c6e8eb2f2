from __future__ import annotations

import asyncio
import logging
from typing import Awaitable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.adapters.base import (
    ADAPTER_FAILURE,
    NOT_FOUND,
    TIMEOUT,
    UNSUPPORTED_PLATFORM,
    AdapterResult,
    ListingSnapshot,
)
from crosspost.adapters.registry import AdapterRegistry
from crosspost.models.listing import Listing
from crosspost.services.audit import record_audit_event
from crosspost.services.channel_store import ChannelStore
from crosspost.services.credentials import load_credentials


log = logging.getLogger(__name__)

UNSUPPORTED_PLATFORM_MESSAGE = "Unsupported platform"
LISTING_NOT_FOUND_MESSAGE = "Listing not found"


def unsupported_platform(platform: str) -> AdapterResult:
    return AdapterResult.failure(platform, UNSUPPORTED_PLATFORM, UNSUPPORTED_PLATFORM_MESSAGE)


async def call_adapter(platform: str, op: str, call: Awaitable[AdapterResult], *, timeout: float) -> AdapterResult:
    """
    Run one adapter call in isolation: a timeout or an exception becomes a failed
    AdapterResult so sibling calls are never aborted.
    """
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except asyncio.TimeoutError:
        log.warning("%s %s timed out after %.1fs", platform, op, timeout)
        return AdapterResult.failure(platform, TIMEOUT, f"{platform} {op} timed out", retryable=True)
    except Exception as e:
        log.exception("%s %s raised", platform, op)
        return AdapterResult.failure(platform, ADAPTER_FAILURE, f"{type(e).__name__}: {e}")


async def publish_to_platform(
    db: AsyncSession,
    registry: AdapterRegistry,
    listing_id: str,
    platform: str,
    *,
    timeout: float,
) -> tuple[Listing | None, AdapterResult]:
    adapter = registry.get(platform)
    if adapter is None:
        return None, unsupported_platform(platform)

    listing = (await db.execute(select(Listing).where(Listing.id == listing_id))).scalar_one_or_none()
    if listing is None:
        return None, AdapterResult.failure(platform, NOT_FOUND, LISTING_NOT_FOUND_MESSAGE)

    credentials = await load_credentials(db, user_id=listing.owner_id, platform=platform)
    result = await call_adapter(
        platform,
        "publish",
        adapter.publish(ListingSnapshot.from_model(listing), credentials=credentials),
        timeout=timeout,
    )
    return listing, result


async def record_publish_outcome(
    db: AsyncSession,
    *,
    store: ChannelStore,
    listing: Listing,
    platform: str,
    result: AdapterResult,
    source: str,
    job_id: str | None = None,
) -> None:
    """
    Persist what a publish attempt produced: channel mapping + listing activation
    on success, and a `publish` audit event when the store is audited.
    """
    if result.ok and result.external_id:
        await store.record_channel(db, listing, platform, result.external_id)
        if listing.status == "draft":
            listing.status = "active"
    elif result.ok:
        log.warning("%s publish succeeded without an external id listing=%s", platform, listing.id)
    else:
        log.warning("%s publish failed listing=%s: %s", platform, listing.id, result.error_message)

    if not store.records_audit:
        return

    payload = {"source": source, "result": result.as_dict()}
    if job_id:
        payload["job_id"] = job_id
    await record_audit_event(
        db,
        listing_id=listing.id,
        type="publish",
        platform=platform,
        detail=f"Published to {platform}" if result.ok else f"Publish to {platform} failed",
        payload=payload,
    )
