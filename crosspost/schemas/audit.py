from datetime import datetime

from pydantic import BaseModel, ConfigDict


class AuditEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    listing_id: str
    platform: str | None
    type: str
    detail: str | None
    payload: dict
    created_at: datetime


class AuditEventPage(BaseModel):
    items: list[AuditEventOut]
    count: int
    next_cursor: str | None
