from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class ListingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    price: Decimal = Field(ge=0, max_digits=10, decimal_places=2)
    image_url: str | None = Field(default=None, max_length=1000)
    condition: str | None = Field(default=None, max_length=60)
    category: str | None = Field(default=None, max_length=120)


class ListingUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=300)
    description: str | None = None
    price: Decimal | None = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    image_url: str | None = Field(default=None, max_length=1000)
    condition: str | None = Field(default=None, max_length=60)
    category: str | None = Field(default=None, max_length=120)


class ChannelListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    platform: str
    external_id: str
    status: str


class ListingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    owner_id: str
    title: str
    description: str | None
    price: Decimal
    image_url: str | None
    condition: str | None
    category: str | None
    status: str
    sold_at: datetime | None
    created_at: datetime
    updated_at: datetime


class ListingDetailOut(ListingOut):
    channels: list[ChannelListingOut] = Field(default_factory=list)


class PublishRequest(BaseModel):
    platforms: list[str] = Field(min_length=1, max_length=20)


class PublishOut(BaseModel):
    success: bool
    queued: bool
    results: dict[str, dict]
