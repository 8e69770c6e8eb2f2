from datetime import datetime, timezone

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func
from sqlalchemy.types import DateTime

from crosspost.core.ids import gen_id
from crosspost.models.base import Base, JSONDict


AUDIT_EVENT_TYPES = ("publish", "price_change", "delist", "sold")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditEvent(Base):
    """Append-only. Rows are never updated or deleted."""

    __tablename__ = "audit_events"
    __table_args__ = (
        Index("ix_audit_events_listing_created", "listing_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("aud"))
    listing_id: Mapped[str] = mapped_column(String, ForeignKey("listings.id"), nullable=False)

    # null for listing-wide events
    platform: Mapped[str | None] = mapped_column(String(60), nullable=True, index=True)

    # "publish" | "price_change" | "delist" | "sold"
    type: Mapped[str] = mapped_column(String(40), nullable=False, index=True)

    detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict] = mapped_column(JSONDict, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
