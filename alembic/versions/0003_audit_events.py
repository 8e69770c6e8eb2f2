from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0003_audit_events"
down_revision = "0002_channel_listings"
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("listing_id", sa.String(), sa.ForeignKey("listings.id"), nullable=False),
        sa.Column("platform", sa.String(length=60), nullable=True),
        sa.Column("type", sa.String(length=40), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_events_listing_created", "audit_events", ["listing_id", "created_at"])
    op.create_index("ix_audit_events_platform", "audit_events", ["platform"])
    op.create_index("ix_audit_events_type", "audit_events", ["type"])

def downgrade():
    op.drop_index("ix_audit_events_type", table_name="audit_events")
    op.drop_index("ix_audit_events_platform", table_name="audit_events")
    op.drop_index("ix_audit_events_listing_created", table_name="audit_events")
    op.drop_table("audit_events")
