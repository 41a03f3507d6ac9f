from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from order_confirm.models.order import Order
from order_confirm.models.whatsapp_log import WhatsAppLog
from order_confirm.whatsapp.base import sanitize_payload

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 200


def append_whatsapp_log(
    db: Session,
    *,
    direction: str,
    order_id: Optional[int] = None,
    phone_e164: Optional[str] = None,
    locale: Optional[str] = None,
    template_name: Optional[str] = None,
    payload: Optional[Mapping[str, Any]] = None,
    response_status: Optional[int] = None,
    response_body: Optional[Mapping[str, Any]] = None,
    wa_message_id: Optional[str] = None,
    error_text: Optional[str] = None,
) -> WhatsAppLog | None:
    """Insert one audit row and commit it.

    A failed insert is rolled back and reported on the operational log only;
    the caller always continues.
    """
    entry = WhatsAppLog(
        order_id=order_id,
        phone_e164=phone_e164,
        locale=locale,
        template_name=template_name,
        direction=direction,
        payload=sanitize_payload(dict(payload)) if payload is not None else None,
        response_status=response_status,
        response_body=sanitize_payload(dict(response_body)) if response_body is not None else None,
        wa_message_id=wa_message_id,
        error_text=error_text,
    )
    try:
        db.add(entry)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            "failed to write whatsapp log",
            extra={"order_id": order_id, "phone": phone_e164},
        )
        return None
    return entry


def list_whatsapp_logs(
    db: Session,
    *,
    direction: Optional[str] = None,
    phone: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    limit: int = 50,
    offset: int = 0,
) -> list[tuple[WhatsAppLog, Optional[str]]]:
    query = db.query(WhatsAppLog, Order.code_suivi).outerjoin(Order, WhatsAppLog.order_id == Order.id)
    if direction:
        query = query.filter(WhatsAppLog.direction == direction)
    if phone:
        query = query.filter(WhatsAppLog.phone_e164 == phone)
    if from_date:
        query = query.filter(WhatsAppLog.created_at >= from_date)
    if to_date:
        query = query.filter(WhatsAppLog.created_at <= to_date)

    rows = (
        query.order_by(WhatsAppLog.created_at.desc(), WhatsAppLog.id.desc())
        .offset(max(offset, 0))
        .limit(min(max(limit, 1), MAX_LIST_LIMIT))
        .all()
    )
    return [(entry, code_suivi) for entry, code_suivi in rows]
