from __future__ import annotations

import logging
from typing import Any

from cryptography.fernet import InvalidToken
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crosspost.core.crypto import decrypt_json
from crosspost.models.marketplace_account import MarketplaceAccount


log = logging.getLogger(__name__)


async def load_credentials(db: AsyncSession, *, user_id: str, platform: str) -> dict[str, Any]:
    """
    Decrypted secrets merged over non-secret metadata for (user, platform).
    Empty dict when the user has not connected that marketplace; adapters in
    live mode turn that into a NOT_CONFIGURED failure.
    """
    account = (await db.execute(
        select(MarketplaceAccount).where(
            MarketplaceAccount.user_id == user_id,
            MarketplaceAccount.platform == platform,
            MarketplaceAccount.is_active.is_(True),
        )
    )).scalar_one_or_none()
    if not account:
        return {}

    try:
        secrets = decrypt_json(account.secret_ciphertext)
    except InvalidToken:
        log.error("undecryptable credentials user=%s platform=%s", user_id, platform)
        return {}

    return {**(account.meta or {}), **secrets}
