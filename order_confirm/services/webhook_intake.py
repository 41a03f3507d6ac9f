from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from order_confirm.core.metrics import messaging_counters
from order_confirm.services.inbound_actions import classify_message
from order_confirm.services.order_transitions import apply_inbound_action
from order_confirm.services.phone import canonicalize_inbound_phone
from order_confirm.whatsapp.cloud_provider import InboundMessage, iter_cloud_messages
from order_confirm.whatsapp.service import WhatsAppService

logger = logging.getLogger(__name__)


@dataclass
class IntakeSummary:
    received: int = 0
    ignored: int = 0
    transitioned: int = 0
    no_match: int = 0
    malformed: int = 0
    errors: int = 0

    def as_dict(self) -> dict[str, int]:
        return asdict(self)


def _handle_message(
    db: Session,
    service: WhatsAppService,
    message: InboundMessage,
    summary: IntakeSummary,
    now: datetime | None,
) -> None:
    phone_e164 = canonicalize_inbound_phone(message.from_number)

    if message.is_malformed:
        # Auditada mas nunca classificada
        service.log_inbound(
            db,
            phone_e164=phone_e164,
            message=message.raw,
            provider_message_id=message.message_id,
            error_text=message.error,
        )
        summary.malformed += 1
        messaging_counters.increment("inbound.malformed")
        return

    action = classify_message(message)

    # Registrar sempre antes de qualquer mudança de estado
    service.log_inbound(
        db,
        phone_e164=phone_e164,
        message=message.raw,
        provider_message_id=message.message_id,
    )

    if action is None:
        summary.ignored += 1
        messaging_counters.increment("inbound.ignored")
        return

    result = apply_inbound_action(
        db,
        action=action,
        phone_e164=phone_e164,
        raw_phone=message.from_number,
        now=now,
    )
    if result.applied:
        summary.transitioned += 1
        messaging_counters.increment("inbound.transitioned")
    else:
        summary.no_match += 1
        messaging_counters.increment("inbound.no_match")


def process_webhook_delivery(
    db: Session,
    service: WhatsAppService,
    payload: dict[str, Any],
    *,
    now: datetime | None = None,
) -> IntakeSummary:
    """Process every message of one delivery; a bad message never stops the rest."""
    summary = IntakeSummary()
    for message in iter_cloud_messages(payload):
        summary.received += 1
        try:
            _handle_message(db, service, message, summary, now)
        except Exception:
            db.rollback()
            summary.errors += 1
            messaging_counters.increment("inbound.error")
            logger.exception("failed to process inbound message id=%s", message.message_id)
    logger.info("webhook delivery processed: %s", summary.as_dict())
    return summary
