from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from crosspost.adapters.base import (
    ADAPTER_FAILURE,
    NOT_CONFIGURED,
    AdapterResult,
    ChannelRef,
    ListingSnapshot,
)
from crosspost.adapters.common import failed_result, money_cents
from crosspost.services.http_client import HttpResult, MarketplaceHttpClient, bearer


log = logging.getLogger(__name__)


def _fb_condition(condition: str | None) -> str:
    c = (condition or "").lower()
    if c.startswith("new"):
        return "new"
    if "refurb" in c:
        return "refurbished"
    return "used"


def _object_missing(res: HttpResult) -> bool:
    # Graph reports deleted/unknown objects as 404 or as a 400 with error code 100
    if res.status_code == 404:
        return True
    error = res.detail.get("error") if isinstance(res.detail, dict) else None
    return res.status_code == 400 and isinstance(error, dict) and error.get("code") == 100


class FacebookAdapter:
    """Facebook catalog products (Commerce / Marketplace via Graph API)."""

    platform = "facebook"

    def __init__(self, http: MarketplaceHttpClient, *, graph_url: str = "https://graph.facebook.com/v19.0", currency: str = "USD"):
        self._http = http
        self._graph = graph_url.rstrip("/")
        self._currency = currency

    def _not_configured(self) -> AdapterResult:
        return AdapterResult.failure(self.platform, NOT_CONFIGURED, "Facebook not configured")

    async def publish(self, listing: ListingSnapshot, *, credentials: dict[str, Any]) -> AdapterResult:
        token = credentials.get("access_token")
        catalog_id = credentials.get("catalog_id")
        if not token or not catalog_id:
            return self._not_configured()

        payload: dict[str, Any] = {
            "retailer_id": listing.id,
            "name": listing.title,
            "description": listing.description or listing.title,
            "availability": "in stock",
            "condition": _fb_condition(listing.condition),
            "price": money_cents(listing.price),
            "currency": self._currency,
        }
        # Graph only accepts publicly reachable images
        if listing.image_url and listing.image_url.startswith("http"):
            payload["image_url"] = listing.image_url

        res = await self._http.post_json(url=f"{self._graph}/{catalog_id}/products", headers=bearer(token), json_body=payload)
        if not res.ok:
            return failed_result(self.platform, res, step="create_product")

        product_id = res.detail.get("id")
        if not product_id:
            return AdapterResult.failure(self.platform, ADAPTER_FAILURE, "Facebook response missing product id", detail=res.detail)

        log.info("facebook publish listing=%s product_id=%s", listing.id, product_id)
        return AdapterResult(ok=True, platform=self.platform, external_id=str(product_id))

    async def unpublish(self, ref: ChannelRef, *, credentials: dict[str, Any]) -> AdapterResult:
        token = credentials.get("access_token")
        if not token:
            return self._not_configured()

        res = await self._http.delete(url=f"{self._graph}/{ref.external_id}", headers=bearer(token))
        if _object_missing(res):
            log.info("facebook delete no-op (product not found) product_id=%s", ref.external_id)
            return AdapterResult(ok=True, platform=self.platform, detail={"noop": True})
        if not res.ok:
            return failed_result(self.platform, res, step="delete_product")
        return AdapterResult(ok=True, platform=self.platform)

    async def update_price(
        self,
        ref: ChannelRef,
        new_price: Decimal,
        *,
        credentials: dict[str, Any],
    ) -> AdapterResult:
        token = credentials.get("access_token")
        if not token:
            return self._not_configured()

        res = await self._http.post_json(
            url=f"{self._graph}/{ref.external_id}",
            headers=bearer(token),
            json_body={"price": money_cents(new_price), "currency": self._currency},
        )
        if not res.ok:
            return failed_result(self.platform, res, step="update_product")
        return AdapterResult(ok=True, platform=self.platform)
