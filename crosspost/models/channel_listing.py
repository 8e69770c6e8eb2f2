from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from crosspost.core.ids import gen_id
from crosspost.models.base import Base, TimestampMixin


CHANNEL_STATUSES = ("active", "ended", "archived")


class ChannelListing(TimestampMixin, Base):
    __tablename__ = "channel_listings"
    __table_args__ = (
        # one live copy per platform
        UniqueConstraint("listing_id", "platform", name="uq_channel_listing_platform"),
        Index("ix_channel_listings_platform_external_id", "platform", "external_id"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("chl"))
    listing_id: Mapped[str] = mapped_column(String, ForeignKey("listings.id"), nullable=False, index=True)

    platform: Mapped[str] = mapped_column(String(60), nullable=False)
    # platform-assigned identifier (eBay offer id, Facebook product id, ...)
    external_id: Mapped[str] = mapped_column(String(200), nullable=False)

    # "active" | "ended" | "archived"
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="active")
