from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from order_confirm.core.config import MessagingSettings
from order_confirm.models.order import Order
from order_confirm.services.order_confirm_sweep import resolve_first_name, resolve_order_phone
from order_confirm.services.test_sender import (
    ERROR_CONFIG,
    ERROR_INVALID_PHONE,
    ERROR_NOT_FOUND,
    ERROR_PROVIDER,
    DirectSendResult,
)
from order_confirm.services.whatsapp_templates import OrderSnapshot, build_template_payload
from order_confirm.whatsapp.base import MISSING_CREDENTIALS_ERROR, WhatsAppProvider
from order_confirm.whatsapp.service import WhatsAppService

logger = logging.getLogger(__name__)


def send_tracking_notification(
    db: Session,
    settings: MessagingSettings,
    *,
    order_id: int,
    provider: WhatsAppProvider | None = None,
) -> DirectSendResult:
    order = db.query(Order).filter(Order.id == order_id).first()
    if order is None:
        return DirectSendResult(success=False, error="Order not found", error_kind=ERROR_NOT_FOUND)

    template_name = settings.tracking_template_name
    locale = order.lang or "fr"
    service = WhatsAppService(settings, provider)

    phone_e164 = resolve_order_phone(order)
    if not phone_e164:
        logger.info("invalid phone for tracking notification", extra={"order_id": order.id})
        service.log_skip(
            db,
            order_id=order.id,
            phone_e164=order.phone_e164 or order.client_phone,
            template_name=template_name,
            locale=locale,
        )
        return DirectSendResult(success=False, error="Invalid phone number", error_kind=ERROR_INVALID_PHONE)

    first_name = resolve_first_name(order)
    payload = build_template_payload(
        OrderSnapshot(phone_e164=phone_e164, first_name=first_name, code_suivi=order.code_suivi, lang=locale),
        template_name,
    )

    if not settings.dry_run and not settings.has_credentials and provider is None:
        service.log_skip(
            db,
            order_id=order.id,
            phone_e164=phone_e164,
            template_name=template_name,
            locale=locale,
            reason=MISSING_CREDENTIALS_ERROR,
            counter="outbound.config_error",
        )
        return DirectSendResult(
            success=False,
            error="WhatsApp credentials not configured",
            error_kind=ERROR_CONFIG,
        )

    result = service.send_template(
        db,
        payload=payload,
        phone_e164=phone_e164,
        template_name=template_name,
        locale=locale,
        order_id=order.id,
    )
    if not result.ok:
        error_kind = ERROR_CONFIG if result.is_config_error else ERROR_PROVIDER
        return DirectSendResult(success=False, error=result.error, error_kind=error_kind)

    if not result.dry_run:
        order.phone_e164 = phone_e164
        order.first_name = first_name
        db.commit()
    logger.info("tracking code sent to %s", phone_e164, extra={"order_id": order.id})
    return DirectSendResult(success=True, message_id=result.provider_message_id)
