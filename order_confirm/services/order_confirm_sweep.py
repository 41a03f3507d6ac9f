"""Auto-confirm sweep: one bounded pass over orders waiting for the WhatsApp confirmation.

Retry policy: a failed send leaves ``whatsapp_confirm_sent`` false, so the
order is selected again by the next run. There is no attempt counter or
backoff; an order keeps being retried until a send succeeds or someone
resolves it by hand. Orders whose phone cannot be normalized are not retried;
they are flagged with ``whatsapp_needs_review`` and leave the selection until
the phone is corrected.
"""
from __future__ import annotations

import enum
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy.orm import Session

from order_confirm.core.config import MessagingSettings
from order_confirm.core.request_context import clear_run_id, set_request_context
from order_confirm.models.order import STATUS_NEW, Order
from order_confirm.services.phone import normalize_phone
from order_confirm.services.whatsapp_templates import DEFAULT_FIRST_NAME, OrderSnapshot, build_template_payload
from order_confirm.whatsapp.base import MISSING_CREDENTIALS_ERROR, WhatsAppProvider
from order_confirm.whatsapp.service import INVALID_PHONE_ERROR, WhatsAppService

logger = logging.getLogger(__name__)

REVIEW_REASON_INVALID_PHONE = "invalid_phone"

SWEEP_COMPLETED = "completed"
SWEEP_DISABLED = "disabled"
SWEEP_CONFIG_ERROR = "config_error"


class OrderOutcome(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SweepSummary:
    status: str = SWEEP_COMPLETED
    processed: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    dry_run: bool = False
    message: str | None = None

    def record(self, outcome: OrderOutcome) -> None:
        self.processed += 1
        if outcome is OrderOutcome.SENT:
            self.sent += 1
        elif outcome is OrderOutcome.FAILED:
            self.failed += 1
        else:
            self.skipped += 1

    def as_dict(self) -> dict:
        return asdict(self)


def resolve_order_phone(order: Order) -> str | None:
    """Prefer the stored canonical phone, fall back to the raw checkout phone."""
    return normalize_phone(order.phone_e164) or normalize_phone(order.client_phone)


def resolve_first_name(order: Order) -> str:
    if order.first_name and order.first_name.strip():
        return order.first_name.strip()
    full_name = (order.client_nom or "").strip()
    if full_name:
        return full_name.split()[0]
    return DEFAULT_FIRST_NAME


def select_due_orders(db: Session, *, now: datetime, delay_minutes: int, limit: int) -> list[Order]:
    cutoff = now - timedelta(minutes=delay_minutes)
    return (
        db.query(Order)
        .filter(
            Order.status == STATUS_NEW,
            Order.whatsapp_confirm_sent.is_(False),
            Order.whatsapp_needs_review.is_(False),
            Order.created_at <= cutoff,
        )
        .order_by(Order.created_at.asc(), Order.id.asc())
        .limit(limit)
        .all()
    )


def _flag_for_review(db: Session, order: Order, reason: str) -> None:
    order.whatsapp_needs_review = True
    order.whatsapp_review_reason = reason
    db.commit()


def _process_order(
    db: Session,
    service: WhatsAppService,
    settings: MessagingSettings,
    order: Order,
    now: datetime,
) -> OrderOutcome:
    template_name = settings.template_name
    locale = order.lang or "fr"
    phone_e164 = resolve_order_phone(order)

    if not phone_e164:
        raw_phone = order.phone_e164 or order.client_phone
        logger.info("skipping order: invalid phone %s", raw_phone, extra={"order_id": order.id, "outcome": "skipped"})
        _flag_for_review(db, order, REVIEW_REASON_INVALID_PHONE)
        service.log_skip(
            db,
            order_id=order.id,
            phone_e164=raw_phone,
            template_name=template_name,
            locale=locale,
            reason=INVALID_PHONE_ERROR,
        )
        return OrderOutcome.SKIPPED

    first_name = resolve_first_name(order)
    snapshot = OrderSnapshot(
        phone_e164=phone_e164,
        first_name=first_name,
        code_suivi=order.code_suivi,
        order_total=order.order_total,
        lang=locale,
    )
    payload = build_template_payload(snapshot, template_name)

    result = service.send_template(
        db,
        payload=payload,
        phone_e164=phone_e164,
        template_name=template_name,
        locale=locale,
        order_id=order.id,
    )
    if not result.ok:
        logger.warning(
            "confirmation send failed: %s",
            result.error,
            extra={"order_id": order.id, "phone": phone_e164, "outcome": "failed"},
        )
        return OrderOutcome.FAILED

    order.whatsapp_confirm_sent = True
    order.whatsapp_confirm_at = now
    if not result.dry_run:
        order.phone_e164 = phone_e164
        order.first_name = first_name
    db.commit()
    logger.info(
        "confirmation sent to %s",
        phone_e164,
        extra={"order_id": order.id, "outcome": "sent"},
    )
    return OrderOutcome.SENT


def run_order_confirm_sweep(
    db: Session,
    settings: MessagingSettings,
    *,
    provider: WhatsAppProvider | None = None,
    now: datetime | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SweepSummary:
    summary = SweepSummary(dry_run=settings.dry_run)

    if not settings.auto_confirm_enabled:
        logger.info("auto-confirm disabled, skipping")
        summary.status = SWEEP_DISABLED
        summary.message = "Auto-confirm disabled"
        return summary

    if not settings.dry_run and not settings.has_credentials and provider is None:
        logger.warning("auto-confirm enabled without WhatsApp credentials")
        summary.status = SWEEP_CONFIG_ERROR
        summary.message = MISSING_CREDENTIALS_ERROR
        return summary

    run_id = uuid.uuid4().hex[:12]
    set_request_context(run_id=run_id)
    try:
        now = now or datetime.now(timezone.utc)
        service = WhatsAppService(settings, provider)

        logger.info(
            "selecting orders older than %s minutes (limit=%s, dry_run=%s)",
            settings.delay_minutes,
            settings.batch_limit,
            settings.dry_run,
        )
        orders = select_due_orders(
            db,
            now=now,
            delay_minutes=settings.delay_minutes,
            limit=settings.batch_limit,
        )
        order_ids = [order.id for order in orders]
        logger.info("found %s orders due for confirmation", len(orders))

        # Depois de um rollback as instâncias expiram; só o id é lido fora do try
        for index, (order_id, order) in enumerate(zip(order_ids, orders)):
            try:
                outcome = _process_order(db, service, settings, order, now)
            except Exception:
                db.rollback()
                logger.exception("unexpected error processing order", extra={"order_id": order_id})
                outcome = OrderOutcome.FAILED
            summary.record(outcome)

            is_last = index == len(orders) - 1
            if outcome is not OrderOutcome.SKIPPED and not settings.dry_run and not is_last:
                sleep(settings.send_pause_seconds)

        logger.info("processing complete: %s", summary.as_dict())
        return summary
    finally:
        clear_run_id()
