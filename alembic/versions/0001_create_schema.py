from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB


revision = "0001_create_schema"
down_revision = None
branch_labels = None
depends_on = None


def _json_type():
    return JSONB().with_variant(sa.JSON(), "sqlite")


def _table_names() -> set[str]:
    return set(sa.inspect(op.get_bind()).get_table_names())


def upgrade() -> None:
    existing = _table_names()

    # orders normalmente já existe (criada pela loja)
    if "orders" not in existing:
        op.create_table(
            "orders",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("code_suivi", sa.String(length=64), nullable=False),
            sa.Column("phone_e164", sa.String(length=20), nullable=True),
            sa.Column("client_phone", sa.String(length=40), nullable=True),
            sa.Column("first_name", sa.String(length=120), nullable=True),
            sa.Column("client_nom", sa.String(length=200), nullable=True),
            sa.Column("status", sa.String(length=32), nullable=False, server_default="nouvelle"),
            sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("canceled_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("whatsapp_confirm_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column("whatsapp_confirm_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("lang", sa.String(length=8), nullable=True),
            sa.Column("order_total", sa.Numeric(12, 2), nullable=False, server_default="0"),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_orders_code_suivi", "orders", ["code_suivi"])
        op.create_index("ix_orders_phone_e164", "orders", ["phone_e164"])
        op.create_index("ix_orders_client_phone", "orders", ["client_phone"])
        op.create_index("ix_orders_status", "orders", ["status"])

    if "whatsapp_logs" not in existing:
        op.create_table(
            "whatsapp_logs",
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("order_id", sa.Integer(), sa.ForeignKey("orders.id"), nullable=True),
            sa.Column("phone_e164", sa.String(length=20), nullable=True),
            sa.Column("locale", sa.String(length=8), nullable=True),
            sa.Column("template_name", sa.String(length=120), nullable=True),
            sa.Column("direction", sa.String(length=16), nullable=False),
            sa.Column("payload", _json_type(), nullable=True),
            sa.Column("response_status", sa.Integer(), nullable=True),
            sa.Column("response_body", _json_type(), nullable=True),
            sa.Column("wa_message_id", sa.String(length=160), nullable=True),
            sa.Column("error_text", sa.Text(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        )
        op.create_index("ix_whatsapp_logs_order_id", "whatsapp_logs", ["order_id"])
        op.create_index("ix_whatsapp_logs_phone_created", "whatsapp_logs", ["phone_e164", "created_at"])
        op.create_index("ix_whatsapp_logs_direction", "whatsapp_logs", ["direction"])


def downgrade() -> None:
    op.drop_index("ix_whatsapp_logs_direction", table_name="whatsapp_logs")
    op.drop_index("ix_whatsapp_logs_phone_created", table_name="whatsapp_logs")
    op.drop_index("ix_whatsapp_logs_order_id", table_name="whatsapp_logs")
    op.drop_table("whatsapp_logs")
