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
from crosspost.services.http_client import MarketplaceHttpClient, bearer


log = logging.getLogger(__name__)


class PoshmarkAdapter:
    """
    Poshmark has no public listing API. Live mode talks to a self-hosted
    automation service (browser-driven) that exposes a small REST surface:
    POST /listings, DELETE /listings/{id}, PATCH /listings/{id}.
    """

    platform = "poshmark"

    def __init__(self, http: MarketplaceHttpClient, *, automation_url: str | None):
        self._http = http
        self._base = automation_url.rstrip("/") if automation_url else None

    def _session_token(self, credentials: dict[str, Any]) -> str | None:
        if not self._base:
            return None
        return credentials.get("session_token")

    def _not_configured(self) -> AdapterResult:
        return AdapterResult.failure(self.platform, NOT_CONFIGURED, "Poshmark not configured")

    async def publish(self, listing: ListingSnapshot, *, credentials: dict[str, Any]) -> AdapterResult:
        token = self._session_token(credentials)
        if not token:
            return self._not_configured()

        res = await self._http.post_json(
            url=f"{self._base}/listings",
            headers=bearer(token),
            json_body={
                "reference": listing.id,
                "title": listing.title,
                "description": listing.description or listing.title,
                "price": money_str(listing.price),
                "condition": listing.condition,
                "category": listing.category,
                "image_url": listing.image_url,
            },
        )
        if not res.ok:
            return failed_result(self.platform, res, step="create_listing")

        poshmark_id = res.detail.get("id")
        if not poshmark_id:
            return AdapterResult.failure(self.platform, ADAPTER_FAILURE, "Poshmark response missing listing id", detail=res.detail)

        log.info("poshmark publish listing=%s poshmark_id=%s", listing.id, poshmark_id)
        return AdapterResult(ok=True, platform=self.platform, external_id=str(poshmark_id))

    async def unpublish(self, ref: ChannelRef, *, credentials: dict[str, Any]) -> AdapterResult:
        token = self._session_token(credentials)
        if not token:
            return self._not_configured()

        res = await self._http.delete(url=f"{self._base}/listings/{ref.external_id}", headers=bearer(token))
        if res.status_code in (404, 410):
            return AdapterResult(ok=True, platform=self.platform, detail={"noop": True})
        if not res.ok:
            return failed_result(self.platform, res, step="remove_listing")
        return AdapterResult(ok=True, platform=self.platform)

    async def update_price(
        self,
        ref: ChannelRef,
        new_price: Decimal,
        *,
        credentials: dict[str, Any],
    ) -> AdapterResult:
        token = self._session_token(credentials)
        if not token:
            return self._not_configured()

        res = await self._http.patch_json(
            url=f"{self._base}/listings/{ref.external_id}",
            headers=bearer(token),
            json_body={"price": money_str(new_price)},
        )
        if not res.ok:
            return failed_result(self.platform, res, step="update_price")
        return AdapterResult(ok=True, platform=self.platform)
