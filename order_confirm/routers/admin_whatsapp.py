from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from order_confirm.core.config import MessagingSettings, get_messaging_settings
from order_confirm.core.database import get_db
from order_confirm.deps import require_internal_token
from order_confirm.models.order import Order
from order_confirm.services.audit_log import list_whatsapp_logs
from order_confirm.services.phone import normalize_phone
from order_confirm.services.test_sender import (
    ERROR_CONFIG,
    ERROR_INVALID_PHONE,
    send_test_message,
)
from order_confirm.whatsapp.base import WhatsAppProvider
from order_confirm.whatsapp.service import get_whatsapp_provider

router = APIRouter(
    prefix="/api/admin/whatsapp",
    tags=["admin-whatsapp"],
    dependencies=[Depends(require_internal_token)],
)

_ERROR_STATUS = {
    ERROR_INVALID_PHONE: status.HTTP_400_BAD_REQUEST,
    ERROR_CONFIG: status.HTTP_503_SERVICE_UNAVAILABLE,
}


class WhatsAppTestMessage(BaseModel):
    phone_e164: str = Field(..., min_length=8)
    first_name: Optional[str] = None
    code_suivi: str = Field(..., min_length=1)
    order_total: Decimal = Field(..., ge=0)
    lang: Optional[str] = None


class PhoneCorrection(BaseModel):
    phone: str = Field(..., min_length=3)


def _serialize_review_order(order: Order) -> dict:
    return {
        "id": order.id,
        "code_suivi": order.code_suivi,
        "status": order.status,
        "phone_e164": order.phone_e164,
        "client_phone": order.client_phone,
        "client_nom": order.client_nom,
        "review_reason": order.whatsapp_review_reason,
        "created_at": order.created_at.isoformat() if order.created_at else None,
    }


@router.post("/test-message")
def send_whatsapp_test_message(
    payload: WhatsAppTestMessage,
    db: Session = Depends(get_db),
    settings: MessagingSettings = Depends(get_messaging_settings),
    provider: WhatsAppProvider | None = Depends(get_whatsapp_provider),
):
    result = send_test_message(
        db,
        settings,
        phone_e164=payload.phone_e164.strip(),
        first_name=payload.first_name,
        code_suivi=payload.code_suivi,
        order_total=payload.order_total,
        lang=payload.lang,
        provider=provider,
    )
    if result.success:
        return result.as_dict()
    status_code = _ERROR_STATUS.get(result.error_kind or "", status.HTTP_502_BAD_GATEWAY)
    return JSONResponse(status_code=status_code, content=result.as_dict())


@router.get("/logs", response_model=List[dict])
def get_whatsapp_logs(
    direction: Optional[str] = None,
    phone: Optional[str] = None,
    from_date: Optional[datetime] = None,
    to_date: Optional[datetime] = None,
    limit: int = 50,
    offset: int = 0,
    db: Session = Depends(get_db),
):
    rows = list_whatsapp_logs(
        db,
        direction=direction,
        phone=phone,
        from_date=from_date,
        to_date=to_date,
        limit=limit,
        offset=offset,
    )
    return [
        {
            "id": entry.id,
            "order_id": entry.order_id,
            "order_code": order_code,
            "phone_e164": entry.phone_e164,
            "locale": entry.locale,
            "template_name": entry.template_name,
            "direction": entry.direction,
            "response_status": entry.response_status,
            "wa_message_id": entry.wa_message_id,
            "error_text": entry.error_text,
            "created_at": entry.created_at.isoformat() if entry.created_at else None,
        }
        for entry, order_code in rows
    ]


@router.get("/review-queue", response_model=List[dict])
def get_review_queue(limit: int = 100, db: Session = Depends(get_db)):
    orders = (
        db.query(Order)
        .filter(Order.whatsapp_needs_review.is_(True))
        .order_by(Order.created_at.asc(), Order.id.asc())
        .limit(min(max(limit, 1), 500))
        .all()
    )
    return [_serialize_review_order(order) for order in orders]


@router.post("/orders/{order_id}/phone")
def correct_order_phone(order_id: int, payload: PhoneCorrection, db: Session = Depends(get_db)):
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")

    phone_e164 = normalize_phone(payload.phone)
    if not phone_e164:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid phone number")

    order.phone_e164 = phone_e164
    order.whatsapp_needs_review = False
    order.whatsapp_review_reason = None
    db.commit()
    db.refresh(order)
    return {"id": order.id, "phone_e164": order.phone_e164, "needs_review": order.whatsapp_needs_review}
