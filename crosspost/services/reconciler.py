"""
Sync reconciler: applies an event reported by one marketplace (sale, price
change) to the canonical listing, then pushes the consequence to every other
marketplace the listing is published on.

The canonical change is what a successful result certifies. Sibling channels are
best-effort: each adapter call is isolated, failures are logged and kept in the
per-platform results (and in the audit payload), never turned into an overall
failure. There is no rollback of the canonical change.
"""
from __future__ import annotations

import asyncio
import logging
import weakref
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Awaitable

from opentelemetry import trace
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.adapters.base import NOT_CONFIGURED, AdapterResult, ChannelRef, PlatformAdapter
from crosspost.adapters.registry import AdapterRegistry, normalize_platform
from crosspost.models.listing import Listing
from crosspost.services.audit import record_audit_event
from crosspost.services.channel_store import ChannelStore, FallbackChannelLookup
from crosspost.services.credentials import load_credentials
from crosspost.services.publishing import call_adapter, unsupported_platform


log = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

LISTING_NOT_FOUND_FOR_PLATFORM_ID = "Listing not found for platform id"

SOLD = "sold"
PRICE_CHANGE = "price_change"

ChannelOp = Callable[[PlatformAdapter, ChannelRef, dict[str, Any]], Awaitable[AdapterResult]]


class InvalidPrice(ValueError):
    pass


def parse_new_price(value: Any, *, fallback: Decimal) -> Decimal:
    if value is None or value == "":
        return Decimal(fallback)
    if isinstance(value, bool):
        raise InvalidPrice(f"invalid new_price: {value!r}")
    try:
        price = Decimal(str(value))
        # NaN survives quantize and only fails on comparison
        if not price.is_finite():
            raise InvalidPrice(f"invalid new_price: {value!r}")
        price = price.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise InvalidPrice(f"invalid new_price: {value!r}")
    if price < 0:
        raise InvalidPrice(f"invalid new_price: {value!r}")
    return price


class SyncReconciler:
    def __init__(
        self,
        registry: AdapterRegistry,
        lookup: FallbackChannelLookup,
        *,
        adapter_timeout: float = 15.0,
    ):
        self._registry = registry
        self._lookup = lookup
        self._timeout = adapter_timeout
        # per-listing serialization within this process
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def lock_for(self, listing_id: str) -> asyncio.Lock:
        lock = self._locks.get(listing_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[listing_id] = lock
        return lock

    async def handle_sync_event(
        self,
        db: AsyncSession,
        source_platform: str,
        external_id: str,
        event_type: str,
        payload: dict[str, Any] | None = None,
        *,
        commit: bool = False,
    ) -> dict[str, Any]:
        """
        Returns {"success": bool, "error"?: str, "backend"?: str, "results"?: {...}}.

        With commit=False the session is only flushed and the caller owns the
        transaction. With commit=True the transaction is committed while the
        per-listing lock is still held, and rolled back on failure.
        """
        source = normalize_platform(source_platform)
        log.info("sync event platform=%s external_id=%s type=%s", source, external_id, event_type)

        try:
            result = await self._handle(db, source, external_id, event_type, payload or {}, commit=commit)
        except InvalidPrice as e:
            log.warning("rejecting sync event platform=%s external_id=%s: %s", source, external_id, e)
            result = {"success": False, "error": str(e)}
        except Exception as e:
            log.exception("sync event failed platform=%s external_id=%s", source, external_id)
            result = {"success": False, "error": f"{type(e).__name__}: {e}"}

        if commit and not result["success"]:
            await db.rollback()
        return result

    async def _handle(
        self,
        db: AsyncSession,
        source: str,
        external_id: str,
        event_type: str,
        payload: dict[str, Any],
        *,
        commit: bool,
    ) -> dict[str, Any]:
        found = await self._lookup.find_listing_by_platform_listing_id(db, source, external_id)
        if not found:
            log.warning("no listing for platform id platform=%s external_id=%s", source, external_id)
            return {"success": False, "error": LISTING_NOT_FOUND_FOR_PLATFORM_ID}

        store = self._lookup.store_for(found.backend)
        lock = self.lock_for(found.listing_id)
        contended = lock.locked()
        async with lock:
            if contended:
                # another event on this listing committed while we waited
                await db.refresh(found.listing)

            if event_type == SOLD:
                results = await self._apply_sold(db, store, found.listing, source)
            elif event_type == PRICE_CHANGE:
                new_price = parse_new_price(payload.get("new_price"), fallback=found.listing.price)
                results = await self._apply_price_change(db, store, found.listing, source, new_price)
            else:
                log.info("ignoring sync event type=%s listing=%s", event_type, found.listing_id)
                return {"success": True, "backend": found.backend, "ignored": True}

            if commit:
                await db.commit()

        return {
            "success": True,
            "backend": found.backend,
            "listing_id": found.listing_id,
            "results": {p: r.as_dict() for p, r in results.items()},
        }

    async def _apply_sold(
        self,
        db: AsyncSession,
        store: ChannelStore,
        listing: Listing,
        source: str,
    ) -> dict[str, AdapterResult]:
        listing.status = "sold"
        if listing.sold_at is None:
            listing.sold_at = datetime.now(timezone.utc)
        await db.flush()

        others = await self._other_channels(db, store, listing, source)
        results = await self._fan_out(
            db,
            listing,
            others,
            "unpublish",
            lambda adapter, ref, creds: adapter.unpublish(ref, credentials=creds),
        )

        for ref in others:
            if results[ref.platform].ok:
                await store.set_channel_status(db, listing, ref, "ended")

        if store.records_audit:
            await record_audit_event(
                db,
                listing_id=listing.id,
                type="sold",
                platform=source,
                detail=f"Sold on {source}",
                payload={"source_platform": source, "channels": _summaries(results)},
            )
        else:
            log.info("legacy channel store: sold on %s not audited listing=%s", source, listing.id)

        await db.flush()
        return results

    async def _apply_price_change(
        self,
        db: AsyncSession,
        store: ChannelStore,
        listing: Listing,
        source: str,
        new_price: Decimal,
    ) -> dict[str, AdapterResult]:
        listing.price = new_price
        await db.flush()

        others = await self._other_channels(db, store, listing, source)
        results = await self._fan_out(
            db,
            listing,
            others,
            "update_price",
            lambda adapter, ref, creds: adapter.update_price(ref, new_price, credentials=creds),
        )

        if store.records_audit:
            await record_audit_event(
                db,
                listing_id=listing.id,
                type="price_change",
                platform=source,
                detail=f"Price change from {source}",
                payload={"new_price": str(new_price), "source_platform": source, "channels": _summaries(results)},
            )
        else:
            log.info("legacy channel store: price change from %s not audited listing=%s", source, listing.id)

        await db.flush()
        return results

    async def _other_channels(
        self,
        db: AsyncSession,
        store: ChannelStore,
        listing: Listing,
        source: str,
    ) -> list[ChannelRef]:
        return [ref for ref in await store.list_channels(db, listing) if normalize_platform(ref.platform) != source]

    async def _fan_out(
        self,
        db: AsyncSession,
        listing: Listing,
        refs: list[ChannelRef],
        op_name: str,
        op: ChannelOp,
    ) -> dict[str, AdapterResult]:
        if not refs:
            return {}

        with tracer.start_as_current_span(f"reconcile.{op_name}") as span:
            span.set_attribute("listing.id", listing.id)
            span.set_attribute("channels", [r.platform for r in refs])

            # credentials first: the session is not safe for concurrent use
            calls = []
            for ref in refs:
                adapter = self._registry.get(ref.platform)
                if adapter is None:
                    calls.append(_resolved(unsupported_platform(ref.platform)))
                    continue
                try:
                    creds = await load_credentials(db, user_id=listing.owner_id, platform=ref.platform)
                except SQLAlchemyError:
                    raise
                except Exception as e:
                    log.exception("credentials unavailable listing=%s platform=%s", listing.id, ref.platform)
                    calls.append(_resolved(AdapterResult.failure(
                        ref.platform, NOT_CONFIGURED, f"{ref.platform} credentials unavailable: {type(e).__name__}",
                    )))
                    continue
                calls.append(call_adapter(ref.platform, op_name, op(adapter, ref, creds), timeout=self._timeout))

            outcomes = await asyncio.gather(*calls)

        results = {}
        for ref, result in zip(refs, outcomes):
            results[ref.platform] = result
            if not result.ok:
                log.warning(
                    "%s %s failed listing=%s external_id=%s: %s",
                    ref.platform, op_name, listing.id, ref.external_id, result.error_message,
                )
        return results


async def _resolved(result: AdapterResult) -> AdapterResult:
    return result


def _summaries(results: dict[str, AdapterResult]) -> dict[str, dict[str, Any]]:
    return {p: r.as_dict() for p, r in results.items()}
