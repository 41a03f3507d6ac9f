from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text, func

from order_confirm.core.database import Base

STATUS_NEW = "nouvelle"
STATUS_CONFIRMED = "confirmee"
STATUS_IN_PREPARATION = "en_preparation"
STATUS_SHIPPED = "expediee"
STATUS_DELIVERED = "livree"
STATUS_CANCELED = "annulee"
STATUS_RETURNED = "retournee"

ORDER_STATUSES = (
    STATUS_NEW,
    STATUS_CONFIRMED,
    STATUS_IN_PREPARATION,
    STATUS_SHIPPED,
    STATUS_DELIVERED,
    STATUS_CANCELED,
    STATUS_RETURNED,
)


class Order(Base):
    """Storefront order; this service reads it and updates the messaging subset."""

    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    code_suivi = Column(String(64), nullable=False, index=True)

    # Contato (client_phone é o valor bruto digitado no checkout)
    phone_e164 = Column(String(20), nullable=True, index=True)
    client_phone = Column(String(40), nullable=True, index=True)
    first_name = Column(String(120), nullable=True)
    client_nom = Column(String(200), nullable=True)

    status = Column(String(32), default=STATUS_NEW, nullable=False, index=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    canceled_at = Column(DateTime(timezone=True), nullable=True)

    whatsapp_confirm_sent = Column(Boolean, default=False, nullable=False)
    whatsapp_confirm_at = Column(DateTime(timezone=True), nullable=True)
    whatsapp_needs_review = Column(Boolean, default=False, nullable=False)
    whatsapp_review_reason = Column(Text, nullable=True)

    lang = Column(String(8), nullable=True)
    order_total = Column(Numeric(12, 2), default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
