import sqlalchemy as sa
from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship

from order_confirm.core.database import Base

DIRECTION_OUTBOUND = "outbound"
DIRECTION_INBOUND = "inbound"


class WhatsAppLog(Base):
    """Append-only audit row, one per inbound message or outbound attempt."""

    __tablename__ = "whatsapp_logs"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=True, index=True)
    phone_e164 = Column(String(20), nullable=True)
    locale = Column(String(8), nullable=True)
    template_name = Column(String(120), nullable=True)
    direction = Column(String(16), nullable=False)
    payload = Column(JSONB().with_variant(sa.JSON(), "sqlite"), nullable=True)
    response_status = Column(Integer, nullable=True)
    response_body = Column(JSONB().with_variant(sa.JSON(), "sqlite"), nullable=True)
    wa_message_id = Column(String(160), nullable=True)
    error_text = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    order = relationship("Order")


Index("ix_whatsapp_logs_phone_created", WhatsAppLog.phone_e164, WhatsAppLog.created_at)
Index("ix_whatsapp_logs_direction", WhatsAppLog.direction)
