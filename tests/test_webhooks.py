import json
from decimal import Decimal

import pytest
from pydantic import SecretStr
from sqlalchemy import select

from crosspost.core.config import settings
from crosspost.core.security import sign_body
from crosspost.models.audit_event import AuditEvent

from fixtures_seed import seed_listing


@pytest.mark.asyncio
async def test_sold_webhook_reconciles_and_commits(client, db_session, adapters):
    listing = await seed_listing(db_session, channels={"ebay": "ebay_1", "facebook": "fb_1"})

    r = await client.post("/v1/webhooks/ebay", json={"listing_id": "ebay_1", "event_type": "sold"})

    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["results"]["facebook"]["success"] is True
    assert adapters["facebook"].calls == [("unpublish", "fb_1", None)]

    await db_session.refresh(listing)
    assert listing.status == "sold"


@pytest.mark.asyncio
async def test_price_change_webhook_passes_extra_fields_as_payload(client, db_session, adapters):
    listing = await seed_listing(db_session, price="25.00", channels={"ebay": "ebay_1", "facebook": "fb_1"})

    r = await client.post(
        "/v1/webhooks/facebook",
        json={"listing_id": "fb_1", "event_type": "price_change", "new_price": "20.00"},
    )

    assert r.status_code == 200
    assert adapters["ebay"].calls == [("update_price", "ebay_1", Decimal("20.00"))]
    await db_session.refresh(listing)
    assert listing.price == Decimal("20.00")


@pytest.mark.asyncio
async def test_unknown_listing_is_404(client):
    r = await client.post("/v1/webhooks/poshmark", json={"listing_id": "nope", "event_type": "sold"})

    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Listing not found for platform id"}


@pytest.mark.asyncio
async def test_missing_fields_is_400(client):
    r = await client.post("/v1/webhooks/ebay", json={"event_type": "sold"})
    assert r.status_code == 400

    r = await client.post("/v1/webhooks/ebay", json={"listing_id": "x"})
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_malformed_json_is_400(client):
    r = await client.post("/v1/webhooks/ebay", content=b"{not json", headers={"Content-Type": "application/json"})
    assert r.status_code == 400

    r = await client.post("/v1/webhooks/ebay", json=["listing_id", "event_type"])
    assert r.status_code == 400


@pytest.mark.asyncio
async def test_unknown_platform_is_404(client):
    r = await client.post("/v1/webhooks/craigslist", json={"listing_id": "x", "event_type": "sold"})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_failed_event_is_500_and_rolled_back(client, db_session):
    listing = await seed_listing(db_session, price="10.00", channels={"ebay": "ebay_2", "facebook": "fb_2"})

    r = await client.post(
        "/v1/webhooks/ebay",
        json={"listing_id": "ebay_2", "event_type": "price_change", "new_price": "free"},
    )

    assert r.status_code == 500
    assert r.json()["success"] is False
    await db_session.refresh(listing)
    assert listing.price == Decimal("10.00")
    assert (await db_session.execute(select(AuditEvent))).scalars().all() == []


@pytest.mark.asyncio
async def test_signature_enforced_when_secret_configured(client, db_session, monkeypatch):
    monkeypatch.setattr(settings, "shared_webhook_secret", SecretStr("s3cret"))
    await seed_listing(db_session, channels={"ebay": "ebay_3", "facebook": "fb_3"})
    raw = json.dumps({"listing_id": "ebay_3", "event_type": "sold"}).encode()

    r = await client.post("/v1/webhooks/ebay", content=raw, headers={"Content-Type": "application/json"})
    assert r.status_code == 401

    r = await client.post(
        "/v1/webhooks/ebay",
        content=raw,
        headers={"Content-Type": "application/json", "X-Signature": sign_body(raw, "wrong")},
    )
    assert r.status_code == 401

    r = await client.post(
        "/v1/webhooks/ebay",
        content=raw,
        headers={"Content-Type": "application/json", "X-Signature": sign_body(raw, "s3cret")},
    )
    assert r.status_code == 200
    assert r.json()["success"] is True


@pytest.mark.asyncio
async def test_nan_price_is_500_and_rolled_back(client, db_session, adapters):
    listing = await seed_listing(db_session, price="10.00", channels={"ebay": "ebay_4", "facebook": "fb_4"})
    raw = b'{"listing_id": "fb_4", "event_type": "price_change", "new_price": NaN}'

    r = await client.post("/v1/webhooks/facebook", content=raw, headers={"Content-Type": "application/json"})

    assert r.status_code == 500
    assert "new_price" in r.json()["error"]
    assert adapters["ebay"].calls == []
    await db_session.refresh(listing)
    assert listing.price == Decimal("10.00")
