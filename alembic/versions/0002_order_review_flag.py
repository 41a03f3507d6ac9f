from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0002_order_review_flag"
down_revision = "0001_create_schema"
branch_labels = None
depends_on = None


def _columns_by_name(table_name: str) -> set[str]:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    return {column["name"] for column in inspector.get_columns(table_name)}


def upgrade() -> None:
    existing = _columns_by_name("orders")

    if "whatsapp_confirm_sent" not in existing:
        op.add_column(
            "orders",
            sa.Column("whatsapp_confirm_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        )

    if "whatsapp_confirm_at" not in existing:
        op.add_column("orders", sa.Column("whatsapp_confirm_at", sa.DateTime(timezone=True), nullable=True))

    if "whatsapp_needs_review" not in existing:
        op.add_column(
            "orders",
            sa.Column("whatsapp_needs_review", sa.Boolean(), nullable=False, server_default=sa.false()),
        )

    if "whatsapp_review_reason" not in existing:
        op.add_column("orders", sa.Column("whatsapp_review_reason", sa.Text(), nullable=True))


def downgrade() -> None:
    existing = _columns_by_name("orders")

    if "whatsapp_review_reason" in existing:
        op.drop_column("orders", "whatsapp_review_reason")

    if "whatsapp_needs_review" in existing:
        op.drop_column("orders", "whatsapp_needs_review")
