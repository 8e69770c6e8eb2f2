from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.core.db import get_db
from crosspost.schemas.audit import AuditEventOut, AuditEventPage
from crosspost.services.audit import list_audit_events
from crosspost.services.auth import Actor, get_actor

router = APIRouter()


@router.get("/audit-events", response_model=AuditEventPage)
async def get_audit_events(
    listing_id: str | None = Query(default=None),
    platform: str | None = Query(default=None),
    type: str | None = Query(default=None),
    limit: int | None = Query(default=None),
    cursor: str | None = Query(default=None),
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> AuditEventPage:
    try:
        rows, next_cursor = await list_audit_events(
            db,
            owner_id=actor.user_id,
            listing_id=listing_id,
            platform=platform.lower() if platform else None,
            type=type,
            limit=limit,
            cursor=cursor,
        )
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid cursor")

    items = [
        AuditEventOut(
            id=r.id,
            listing_id=r.listing_id,
            platform=r.platform,
            type=r.type,
            detail=r.detail,
            payload=r.payload or {},
            created_at=r.created_at,
        )
        for r in rows
    ]
    return AuditEventPage(items=items, count=len(items), next_cursor=next_cursor)
