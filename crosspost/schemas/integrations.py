from datetime import datetime

from pydantic import BaseModel, Field


class MarketplaceAccountUpsert(BaseModel):
    # Secrets to encrypt and store (never returned): access_token, refresh_token, ...
    secrets: dict = Field(default_factory=dict)

    # Non-secret, safe to show (catalog_id, store name, policy ids)
    metadata: dict = Field(default_factory=dict)

    is_active: bool = True


class MarketplaceAccountOut(BaseModel):
    id: str
    platform: str
    metadata: dict
    is_active: bool
    created_at: datetime
    updated_at: datetime
