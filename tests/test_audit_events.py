from datetime import datetime, timedelta, timezone

import pytest

from crosspost.models.audit_event import AuditEvent
from crosspost.services.audit import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, clamp_page_size

from fixtures_seed import seed_listing


async def _seed_events(db_session, listing_id, n, *, type="publish", platform="ebay"):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    rows = []
    for i in range(n):
        ev = AuditEvent(
            listing_id=listing_id,
            type=type,
            platform=platform,
            detail=f"event {i}",
            payload={"i": i},
            created_at=base + timedelta(minutes=i),
        )
        db_session.add(ev)
        rows.append(ev)
    await db_session.commit()
    return rows


@pytest.mark.asyncio
async def test_newest_first_with_cursor_pagination(client, db_session, seed_owner):
    listing = await seed_listing(db_session)
    await _seed_events(db_session, listing.id, 5)
    headers = seed_owner["headers"]

    r = await client.get("/v1/audit-events", params={"limit": 2}, headers=headers)
    assert r.status_code == 200
    page1 = r.json()
    assert [e["detail"] for e in page1["items"]] == ["event 4", "event 3"]
    assert page1["count"] == 2
    assert page1["next_cursor"] == page1["items"][-1]["id"]

    r = await client.get("/v1/audit-events", params={"limit": 2, "cursor": page1["next_cursor"]}, headers=headers)
    page2 = r.json()
    assert [e["detail"] for e in page2["items"]] == ["event 2", "event 1"]

    r = await client.get("/v1/audit-events", params={"limit": 2, "cursor": page2["next_cursor"]}, headers=headers)
    page3 = r.json()
    assert [e["detail"] for e in page3["items"]] == ["event 0"]
    assert page3["next_cursor"] is None


@pytest.mark.asyncio
async def test_filters(client, db_session, seed_owner):
    listing = await seed_listing(db_session)
    other = await seed_listing(db_session)
    await _seed_events(db_session, listing.id, 2, type="sold", platform="facebook")
    await _seed_events(db_session, listing.id, 1, type="price_change", platform="ebay")
    await _seed_events(db_session, other.id, 3, type="sold", platform="ebay")
    headers = seed_owner["headers"]

    r = await client.get("/v1/audit-events", params={"type": "sold", "listing_id": listing.id}, headers=headers)
    assert r.json()["count"] == 2

    r = await client.get("/v1/audit-events", params={"platform": "EBAY"}, headers=headers)
    assert r.json()["count"] == 4


@pytest.mark.asyncio
async def test_events_of_other_owners_are_hidden(client, db_session, seed_owner, seed_other_owner):
    mine = await seed_listing(db_session, owner_id="usr_owner")
    theirs = await seed_listing(db_session, owner_id="usr_other")
    await _seed_events(db_session, mine.id, 1)
    await _seed_events(db_session, theirs.id, 2)

    r = await client.get("/v1/audit-events", headers=seed_owner["headers"])
    assert [e["listing_id"] for e in r.json()["items"]] == [mine.id]

    r = await client.get("/v1/audit-events", params={"listing_id": theirs.id}, headers=seed_owner["headers"])
    assert r.json()["items"] == []


@pytest.mark.asyncio
async def test_invalid_cursor_is_400(client, seed_owner):
    r = await client.get("/v1/audit-events", params={"cursor": "aud_missing"}, headers=seed_owner["headers"])
    assert r.status_code == 400


def test_page_size_is_clamped():
    assert clamp_page_size(None) == DEFAULT_PAGE_SIZE == 50
    assert clamp_page_size(0) == 50
    assert clamp_page_size(-3) == 50
    assert clamp_page_size(10) == 10
    assert clamp_page_size(10_000) == MAX_PAGE_SIZE == 200
