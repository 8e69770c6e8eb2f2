from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0004_marketplace_accounts"
down_revision = "0003_audit_events"
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "marketplace_accounts",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("user_id", sa.String(length=120), nullable=False),
        sa.Column("platform", sa.String(length=60), nullable=False),
        sa.Column("secret_ciphertext", sa.Text(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "platform", name="uq_marketplace_account_user_platform"),
    )
    op.create_index("ix_marketplace_accounts_user_id", "marketplace_accounts", ["user_id"])

def downgrade():
    op.drop_index("ix_marketplace_accounts_user_id", table_name="marketplace_accounts")
    op.drop_table("marketplace_accounts")
