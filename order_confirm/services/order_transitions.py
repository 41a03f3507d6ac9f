from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session

from order_confirm.models.order import STATUS_CANCELED, STATUS_CONFIRMED, STATUS_NEW, Order
from order_confirm.services.inbound_actions import InboundAction
from order_confirm.services.phone import national_format

logger = logging.getLogger(__name__)


@dataclass
class TransitionResult:
    order_id: int | None
    code_suivi: str | None
    new_status: str | None
    applied: bool


def find_pending_order(db: Session, *, phone_e164: str | None, raw_phone: str | None) -> Order | None:
    """Most recent order still in ``nouvelle`` for the sender, or ``None``."""
    raw_candidates = {value for value in (raw_phone, phone_e164) if value}
    if phone_e164:
        local = national_format(phone_e164)
        if local:
            raw_candidates.add(local)

    conditions = []
    if phone_e164:
        conditions.append(Order.phone_e164 == phone_e164)
    if raw_candidates:
        conditions.append(Order.client_phone.in_(sorted(raw_candidates)))
    if not conditions:
        return None

    return (
        db.query(Order)
        .filter(Order.status == STATUS_NEW, or_(*conditions))
        .order_by(Order.created_at.desc(), Order.id.desc())
        .first()
    )


def apply_inbound_action(
    db: Session,
    *,
    action: InboundAction,
    phone_e164: str | None,
    raw_phone: str | None,
    now: datetime | None = None,
) -> TransitionResult:
    order = find_pending_order(db, phone_e164=phone_e164, raw_phone=raw_phone)
    if order is None:
        logger.info("no pending order for inbound reply", extra={"phone": phone_e164})
        return TransitionResult(order_id=None, code_suivi=None, new_status=None, applied=False)

    now = now or datetime.now(timezone.utc)
    if action is InboundAction.CONFIRM:
        values = {Order.status: STATUS_CONFIRMED, Order.confirmed_at: now}
        new_status = STATUS_CONFIRMED
    else:
        values = {Order.status: STATUS_CANCELED, Order.canceled_at: now}
        new_status = STATUS_CANCELED

    order_id = order.id
    code_suivi = order.code_suivi

    # Só aplica se ainda estiver em "nouvelle" (reentrega do provedor vira no-op)
    updated = (
        db.query(Order)
        .filter(Order.id == order_id, Order.status == STATUS_NEW)
        .update(values, synchronize_session=False)
    )
    db.commit()

    if not updated:
        logger.info("order already left nouvelle, reply ignored", extra={"order_id": order_id})
        return TransitionResult(order_id=order_id, code_suivi=code_suivi, new_status=None, applied=False)

    logger.info(
        "order %s moved to %s by customer reply",
        code_suivi,
        new_status,
        extra={"order_id": order_id, "phone": phone_e164},
    )
    return TransitionResult(order_id=order_id, code_suivi=code_suivi, new_status=new_status, applied=True)
