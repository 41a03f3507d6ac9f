from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from order_confirm.core.config import MessagingSettings, get_messaging_settings
from order_confirm.core.database import get_db
from order_confirm.deps import require_internal_token
from order_confirm.services.order_confirm_sweep import run_order_confirm_sweep
from order_confirm.whatsapp.base import WhatsAppProvider
from order_confirm.whatsapp.service import get_whatsapp_provider

router = APIRouter(prefix="/api/jobs", tags=["jobs"], dependencies=[Depends(require_internal_token)])
logger = logging.getLogger(__name__)


@router.post("/order-confirm")
def trigger_order_confirm_sweep(
    db: Session = Depends(get_db),
    settings: MessagingSettings = Depends(get_messaging_settings),
    provider: WhatsAppProvider | None = Depends(get_whatsapp_provider),
):
    try:
        summary = run_order_confirm_sweep(db, settings, provider=provider)
    except Exception as exc:
        logger.exception("order confirmation sweep crashed")
        return JSONResponse(
            status_code=500,
            content={"error": str(exc), "processed": 0, "sent": 0, "failed": 0, "skipped": 0},
        )
    return summary.as_dict()
