from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from order_confirm.core.config import MessagingSettings, get_messaging_settings
from order_confirm.core.database import get_db
from order_confirm.deps import require_internal_token
from order_confirm.services.test_sender import ERROR_CONFIG, ERROR_INVALID_PHONE, ERROR_NOT_FOUND
from order_confirm.services.tracking_notification import send_tracking_notification
from order_confirm.whatsapp.base import WhatsAppProvider
from order_confirm.whatsapp.service import get_whatsapp_provider

router = APIRouter(
    prefix="/api/whatsapp",
    tags=["whatsapp-notifications"],
    dependencies=[Depends(require_internal_token)],
)


@router.post("/orders/{order_id}/tracking-notification")
def post_tracking_notification(
    order_id: int,
    db: Session = Depends(get_db),
    settings: MessagingSettings = Depends(get_messaging_settings),
    provider: WhatsAppProvider | None = Depends(get_whatsapp_provider),
):
    result = send_tracking_notification(db, settings, order_id=order_id, provider=provider)
    if result.success:
        return result.as_dict()
    if result.error_kind == ERROR_NOT_FOUND:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=result.as_dict())
    if result.error_kind in (ERROR_INVALID_PHONE, ERROR_CONFIG):
        return result.as_dict()
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=result.as_dict())
