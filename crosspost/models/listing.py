from datetime import datetime
from decimal import Decimal

from sqlalchemy import Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import DateTime

from crosspost.core.ids import gen_id

from crosspost.models.base import Base, JSONDict, TimestampMixin


LISTING_STATUSES = ("draft", "active", "sold", "archived")


class Listing(TimestampMixin, Base):
    __tablename__ = "listings"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("lst"))

    owner_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Canonical price; marketplaces are kept in line with this value
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0"))

    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    condition: Mapped[str | None] = mapped_column(String(60), nullable=True)
    category: Mapped[str | None] = mapped_column(String(120), nullable=True)

    # "draft" | "active" | "sold" | "archived"
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="draft")
    sold_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Legacy per-platform mapping embedded in the listing record:
    # {"ebay": {"listingId": "...", "status": "active"}, ...}
    # Superseded by channel_listings; still read as a lookup fallback.
    cross_post_results: Mapped[dict] = mapped_column(JSONDict, nullable=False, default=dict)
