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
from crosspost.adapters.common import failed_result, money_str
from crosspost.services.http_client import HttpResult, MarketplaceHttpClient, bearer


log = logging.getLogger(__name__)

# free-text condition -> eBay ConditionEnum
_CONDITIONS = {
    "new": "NEW",
    "new with tags": "NEW",
    "new without tags": "NEW_OTHER",
    "like new": "LIKE_NEW",
    "excellent": "USED_EXCELLENT",
    "very good": "USED_VERY_GOOD",
    "good": "USED_GOOD",
    "used": "USED_GOOD",
    "fair": "USED_ACCEPTABLE",
}


def ebay_condition(condition: str | None) -> str:
    return _CONDITIONS.get((condition or "").lower().strip(), "USED_GOOD")


# errorIds eBay returns when withdrawing an offer that is not live
_NOT_LIVE_ERROR_IDS = {25713}
_NOT_LIVE_PHRASES = ("not published", "already withdrawn", "not available", "is not active")


def _errors(detail: dict[str, Any]) -> list[dict[str, Any]]:
    errors = detail.get("errors") if isinstance(detail, dict) else None
    return [e for e in errors or [] if isinstance(e, dict)]


def _offer_not_live(res: HttpResult) -> bool:
    if res.status_code == 404:
        return True
    if res.ok or res.status_code is None or res.status_code >= 500:
        return False
    for error in _errors(res.detail):
        if error.get("errorId") in _NOT_LIVE_ERROR_IDS:
            return True
        message = str(error.get("message") or "").lower()
        if any(phrase in message for phrase in _NOT_LIVE_PHRASES):
            return True
    return False


def _offer_response(detail: dict[str, Any], offer_id: str) -> dict[str, Any] | None:
    for entry in detail.get("responses") or []:
        if isinstance(entry, dict) and str(entry.get("offerId")) == offer_id:
            return entry
    return None


class EbayAdapter:
    """
    eBay Sell Inventory API. The offer id is the external identifier we keep:
    withdraw and price updates are both addressed by offer.
    """

    platform = "ebay"

    def __init__(
        self,
        http: MarketplaceHttpClient,
        *,
        base_url: str = "https://api.ebay.com",
        marketplace_id: str = "EBAY_US",
        currency: str = "USD",
    ):
        self._http = http
        self._inventory = f"{base_url.rstrip('/')}/sell/inventory/v1"
        self._marketplace_id = marketplace_id
        self._currency = currency

    def _headers(self, token: str) -> dict[str, str]:
        return {**bearer(token), "Content-Language": "en-US"}

    def _not_configured(self) -> AdapterResult:
        return AdapterResult.failure(self.platform, NOT_CONFIGURED, "eBay not configured")

    def _inventory_item(self, listing: ListingSnapshot) -> dict[str, Any]:
        product: dict[str, Any] = {
            "title": listing.title[:80],
            "description": listing.description or listing.title,
        }
        if listing.image_url:
            product["imageUrls"] = [listing.image_url]
        return {
            "product": product,
            "condition": ebay_condition(listing.condition),
            "availability": {"shipToLocationAvailability": {"quantity": 1}},
        }

    def _offer(self, listing: ListingSnapshot, credentials: dict[str, Any]) -> dict[str, Any]:
        offer: dict[str, Any] = {
            "sku": listing.id,
            "marketplaceId": self._marketplace_id,
            "format": "FIXED_PRICE",
            "availableQuantity": 1,
            "pricingSummary": {"price": {"value": money_str(listing.price), "currency": self._currency}},
        }
        if credentials.get("category_id"):
            offer["categoryId"] = str(credentials["category_id"])
        policies = {
            k: credentials[src]
            for k, src in (
                ("fulfillmentPolicyId", "fulfillment_policy_id"),
                ("paymentPolicyId", "payment_policy_id"),
                ("returnPolicyId", "return_policy_id"),
            )
            if credentials.get(src)
        }
        if policies:
            offer["listingPolicies"] = policies
        if credentials.get("merchant_location_key"):
            offer["merchantLocationKey"] = credentials["merchant_location_key"]
        return offer

    async def publish(self, listing: ListingSnapshot, *, credentials: dict[str, Any]) -> AdapterResult:
        token = credentials.get("access_token")
        if not token:
            return self._not_configured()
        headers = self._headers(token)

        item = await self._http.put_json(
            url=f"{self._inventory}/inventory_item/{listing.id}",
            headers=headers,
            json_body=self._inventory_item(listing),
        )
        if not item.ok:
            return failed_result(self.platform, item, step="inventory_item")

        offer = await self._http.post_json(
            url=f"{self._inventory}/offer",
            headers=headers,
            json_body=self._offer(listing, credentials),
        )
        if not offer.ok:
            return failed_result(self.platform, offer, step="offer")

        offer_id = offer.detail.get("offerId")
        if not offer_id:
            return AdapterResult.failure(self.platform, ADAPTER_FAILURE, "eBay offer response missing offerId", detail=offer.detail)

        published = await self._http.post_json(url=f"{self._inventory}/offer/{offer_id}/publish", headers=headers)
        if not published.ok:
            return failed_result(self.platform, published, step="publish")

        log.info("ebay publish listing=%s offer_id=%s", listing.id, offer_id)
        return AdapterResult(
            ok=True,
            platform=self.platform,
            external_id=str(offer_id),
            detail={"ebay_listing_id": published.detail.get("listingId")},
        )

    async def unpublish(self, ref: ChannelRef, *, credentials: dict[str, Any]) -> AdapterResult:
        token = credentials.get("access_token")
        if not token:
            return self._not_configured()

        res = await self._http.post_json(
            url=f"{self._inventory}/offer/{ref.external_id}/withdraw",
            headers=self._headers(token),
        )
        if _offer_not_live(res):
            # offer gone or already withdrawn: ending it again is a no-op
            log.info("ebay withdraw no-op (offer not live) offer_id=%s status=%s", ref.external_id, res.status_code)
            return AdapterResult(ok=True, platform=self.platform, detail={"noop": True})
        if not res.ok:
            return failed_result(self.platform, res, step="withdraw")
        return AdapterResult(ok=True, platform=self.platform, detail=res.detail)

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

        body = {
            "requests": [
                {
                    "offers": [
                        {
                            "offerId": ref.external_id,
                            "availableQuantity": 1,
                            "price": {"value": money_str(new_price), "currency": self._currency},
                        }
                    ]
                }
            ]
        }
        res = await self._http.post_json(
            url=f"{self._inventory}/bulk_update_price_quantity",
            headers=self._headers(token),
            json_body=body,
        )
        if not res.ok:
            return failed_result(self.platform, res, step="bulk_update_price_quantity")

        # the bulk call answers 200 even when the offer itself was rejected
        entry = _offer_response(res.detail, ref.external_id)
        if entry is not None and entry.get("statusCode") != 200:
            messages = "; ".join(str(e.get("message")) for e in _errors(entry) if e.get("message"))
            return AdapterResult.failure(
                self.platform,
                ADAPTER_FAILURE,
                f"ebay bulk_update_price_quantity rejected offer {ref.external_id}: {messages or entry.get('statusCode')}",
                retryable=isinstance(entry.get("statusCode"), int) and entry["statusCode"] >= 500,
                detail={"step": "bulk_update_price_quantity", "status_code": entry.get("statusCode"), "response": entry},
            )
        return AdapterResult(ok=True, platform=self.platform, detail=res.detail)
