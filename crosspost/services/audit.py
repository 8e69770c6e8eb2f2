from __future__ import annotations

from typing import Any

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.models.audit_event import AuditEvent
from crosspost.models.listing import Listing


DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


async def record_audit_event(
    db: AsyncSession,
    *,
    listing_id: str,
    type: str,
    platform: str | None = None,
    detail: str | None = None,
    payload: dict[str, Any] | None = None,
) -> AuditEvent:
    ev = AuditEvent(
        listing_id=listing_id,
        platform=platform,
        type=type,
        detail=detail,
        payload=payload or {},
    )
    db.add(ev)
    return ev


def clamp_page_size(limit: int | None) -> int:
    if not limit or limit < 1:
        return DEFAULT_PAGE_SIZE
    return min(limit, MAX_PAGE_SIZE)


async def list_audit_events(
    db: AsyncSession,
    *,
    owner_id: str | None = None,
    listing_id: str | None = None,
    platform: str | None = None,
    type: str | None = None,
    limit: int | None = None,
    cursor: str | None = None,
) -> tuple[list[AuditEvent], str | None]:
    """
    Newest first. `cursor` is the id of the last event of the previous page.
    Returns (events, next_cursor); next_cursor is None on the last page.
    Raises ValueError("invalid_cursor") for an unknown cursor.
    """
    take = clamp_page_size(limit)

    stmt = select(AuditEvent)
    if owner_id:
        stmt = stmt.join(Listing, Listing.id == AuditEvent.listing_id).where(Listing.owner_id == owner_id)
    if listing_id:
        stmt = stmt.where(AuditEvent.listing_id == listing_id)
    if platform:
        stmt = stmt.where(AuditEvent.platform == platform)
    if type:
        stmt = stmt.where(AuditEvent.type == type)

    if cursor:
        anchor = (await db.execute(
            select(AuditEvent.created_at, AuditEvent.id).where(AuditEvent.id == cursor)
        )).one_or_none()
        if anchor is None:
            raise ValueError("invalid_cursor")
        stmt = stmt.where(or_(
            AuditEvent.created_at < anchor.created_at,
            and_(AuditEvent.created_at == anchor.created_at, AuditEvent.id < anchor.id),
        ))

    stmt = stmt.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(take)
    rows = list((await db.execute(stmt)).scalars().all())

    next_cursor = rows[-1].id if len(rows) == take else None
    return rows, next_cursor
