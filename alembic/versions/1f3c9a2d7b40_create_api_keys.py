from alembic import op
import sqlalchemy as sa

revision = "1f3c9a2d7b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "api_keys",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.String(255), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("key", sa.String(255), nullable=False),
        sa.Column("key_type", sa.String(16), nullable=False, server_default="dev"),
        sa.Column("monthly_limit", sa.Integer(), nullable=True),
        sa.Column("usage_count", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("key", name="api_keys_key_key"),
        sa.CheckConstraint("key_type IN ('dev', 'prod')", name="api_keys_key_type_check"),
        sa.CheckConstraint("usage_count >= 0", name="api_keys_usage_count_check"),
        sa.CheckConstraint(
            "monthly_limit IS NULL OR monthly_limit >= 0", name="api_keys_monthly_limit_check"
        ),
    )
    op.create_index("ix_api_keys_user_id", "api_keys", ["user_id"])


def downgrade():
    op.drop_index("ix_api_keys_user_id", table_name="api_keys")
    op.drop_table("api_keys")
