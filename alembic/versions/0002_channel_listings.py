from alembic import op
import sqlalchemy as sa

revision = "0002_channel_listings"
down_revision = "0001_listings_and_api_keys"
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "channel_listings",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("listing_id", sa.String(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("platform", sa.String(length=60), nullable=False),
        sa.Column("external_id", sa.String(length=200), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="active"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("listing_id", "platform", name="uq_channel_listing_platform"),
    )
    op.create_index("ix_channel_listings_listing_id", "channel_listings", ["listing_id"])
    # webhook lookups: (platform, external id) -> listing
    op.create_index("ix_channel_listings_platform_external_id", "channel_listings", ["platform", "external_id"])

def downgrade():
    op.drop_index("ix_channel_listings_platform_external_id", table_name="channel_listings")
    op.drop_index("ix_channel_listings_listing_id", table_name="channel_listings")
    op.drop_table("channel_listings")
