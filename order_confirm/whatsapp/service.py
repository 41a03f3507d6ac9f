from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from order_confirm.core.config import MessagingSettings
from order_confirm.core.metrics import messaging_counters
from order_confirm.models.whatsapp_log import DIRECTION_INBOUND, DIRECTION_OUTBOUND, WhatsAppLog
from order_confirm.services.audit_log import append_whatsapp_log
from order_confirm.whatsapp.base import WhatsAppProvider, WhatsAppSendResult
from order_confirm.whatsapp.cloud_provider import CloudWhatsAppProvider
from order_confirm.whatsapp.dry_run_provider import DryRunWhatsAppProvider

logger = logging.getLogger(__name__)

INVALID_PHONE_ERROR = "Invalid phone number format"


def select_provider(settings: MessagingSettings) -> WhatsAppProvider:
    if settings.dry_run:
        return DryRunWhatsAppProvider()
    return CloudWhatsAppProvider(settings)


def get_whatsapp_provider() -> WhatsAppProvider | None:
    """Route dependency; ``None`` lets the service pick from the settings."""
    return None


class WhatsAppService:
    def __init__(self, settings: MessagingSettings, provider: WhatsAppProvider | None = None) -> None:
        self.settings = settings
        self.provider = provider or select_provider(settings)

    def send_template(
        self,
        db: Session,
        *,
        payload: dict[str, Any],
        phone_e164: str,
        template_name: str,
        locale: str | None,
        order_id: int | None = None,
    ) -> WhatsAppSendResult:
        result = self.provider.send(payload)
        append_whatsapp_log(
            db,
            direction=DIRECTION_OUTBOUND,
            order_id=order_id,
            phone_e164=phone_e164,
            locale=locale,
            template_name=template_name,
            payload=payload,
            response_status=result.http_status if result.http_status is not None else 0,
            response_body=result.response_payload,
            wa_message_id=result.provider_message_id,
            error_text=result.error,
        )
        if result.ok:
            messaging_counters.increment("outbound.sent")
        elif result.is_config_error:
            messaging_counters.increment("outbound.config_error")
        else:
            messaging_counters.increment("outbound.failed")
        return result

    def log_skip(
        self,
        db: Session,
        *,
        phone_e164: str | None,
        template_name: str,
        locale: str | None,
        order_id: int | None = None,
        reason: str = INVALID_PHONE_ERROR,
        counter: str = "outbound.skipped",
    ) -> WhatsAppLog | None:
        messaging_counters.increment(counter)
        return append_whatsapp_log(
            db,
            direction=DIRECTION_OUTBOUND,
            order_id=order_id,
            phone_e164=phone_e164,
            locale=locale,
            template_name=template_name,
            response_status=0,
            error_text=reason,
        )

    def log_inbound(
        self,
        db: Session,
        *,
        phone_e164: str | None,
        message: dict[str, Any],
        provider_message_id: str | None = None,
        error_text: str | None = None,
    ) -> WhatsAppLog | None:
        messaging_counters.increment("inbound.received")
        return append_whatsapp_log(
            db,
            direction=DIRECTION_INBOUND,
            phone_e164=phone_e164,
            payload=message,
            response_status=200,
            wa_message_id=provider_message_id,
            error_text=error_text,
        )
