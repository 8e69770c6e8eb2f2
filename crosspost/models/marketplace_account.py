from sqlalchemy import Boolean, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from crosspost.core.ids import gen_id
from crosspost.models.base import Base, JSONDict, TimestampMixin


class MarketplaceAccount(TimestampMixin, Base):
    __tablename__ = "marketplace_accounts"
    __table_args__ = (
        UniqueConstraint("user_id", "platform", name="uq_marketplace_account_user_platform"),
    )

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("mpa"))

    user_id: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    platform: Mapped[str] = mapped_column(String(60), nullable=False)

    # Encrypted JSON blob of tokens (never returned by API)
    secret_ciphertext: Mapped[str] = mapped_column(Text, nullable=False)

    # Non-secret metadata (store name, catalog id, seller handle)
    meta: Mapped[dict] = mapped_column("metadata", JSONDict, nullable=False, default=dict)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
