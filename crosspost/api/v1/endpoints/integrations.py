from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.adapters.registry import AdapterRegistry, normalize_platform
from crosspost.api.deps import get_adapter_registry
from crosspost.core.crypto import encrypt_json
from crosspost.core.db import get_db
from crosspost.models.marketplace_account import MarketplaceAccount
from crosspost.schemas.integrations import MarketplaceAccountOut, MarketplaceAccountUpsert
from crosspost.services.auth import Actor, get_actor

router = APIRouter()


def _account_out(row: MarketplaceAccount) -> MarketplaceAccountOut:
    return MarketplaceAccountOut(
        id=row.id,
        platform=row.platform,
        metadata=row.meta or {},
        is_active=row.is_active,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


@router.get("/integrations", response_model=list[MarketplaceAccountOut])
async def list_integrations(
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> list[MarketplaceAccountOut]:
    stmt = select(MarketplaceAccount).where(
        MarketplaceAccount.user_id == actor.user_id,
    ).order_by(MarketplaceAccount.platform.asc())

    rows = (await db.execute(stmt)).scalars().all()
    return [_account_out(r) for r in rows]


@router.put("/integrations/{platform}", response_model=MarketplaceAccountOut)
async def upsert_integration(
    platform: str,
    payload: MarketplaceAccountUpsert,
    actor: Actor = Depends(get_actor),
    registry: AdapterRegistry = Depends(get_adapter_registry),
    db: AsyncSession = Depends(get_db),
) -> MarketplaceAccountOut:
    platform = normalize_platform(platform)
    if not registry.supports(platform):
        raise HTTPException(status_code=404, detail="Unknown platform")

    # Encrypt secrets (never returned)
    ciphertext = encrypt_json(payload.secrets)

    stmt = select(MarketplaceAccount).where(
        MarketplaceAccount.user_id == actor.user_id,
        MarketplaceAccount.platform == platform,
    )
    row = (await db.execute(stmt)).scalar_one_or_none()

    if row:
        row.secret_ciphertext = ciphertext
        row.meta = payload.metadata
        row.is_active = payload.is_active
    else:
        row = MarketplaceAccount(
            user_id=actor.user_id,
            platform=platform,
            secret_ciphertext=ciphertext,
            meta=payload.metadata,
            is_active=payload.is_active,
        )
        db.add(row)

    await db.commit()
    await db.refresh(row)

    return _account_out(row)


@router.delete("/integrations/{platform}")
async def delete_integration(
    platform: str,
    actor: Actor = Depends(get_actor),
    db: AsyncSession = Depends(get_db),
) -> dict:
    res = await db.execute(
        delete(MarketplaceAccount).where(
            MarketplaceAccount.user_id == actor.user_id,
            MarketplaceAccount.platform == normalize_platform(platform),
        )
    )
    await db.commit()

    if res.rowcount == 0:
        raise HTTPException(status_code=404, detail="Integration not found")

    return {"status": "deleted"}
