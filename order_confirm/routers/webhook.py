import hmac
import json
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from order_confirm.core.config import MessagingSettings, get_messaging_settings
from order_confirm.core.database import get_db
from order_confirm.services.webhook_intake import process_webhook_delivery
from order_confirm.whatsapp.base import WhatsAppProvider
from order_confirm.whatsapp.service import WhatsAppService, get_whatsapp_provider

router = APIRouter(prefix="/api/whatsapp", tags=["whatsapp-webhook"])
logger = logging.getLogger(__name__)


def _token_matches(incoming: str | None, configured: str) -> bool:
    if not configured or incoming is None:
        return False
    return hmac.compare_digest(incoming, configured)


@router.get("/webhook")
async def verify_webhook(
    request: Request,
    settings: MessagingSettings = Depends(get_messaging_settings),
):
    qp = request.query_params
    mode = qp.get("hub.mode")
    token = qp.get("hub.verify_token")
    challenge = qp.get("hub.challenge")

    if mode == "subscribe" and _token_matches(token, settings.verify_token):
        logger.info("webhook verified")
        return PlainTextResponse(challenge or "")

    logger.warning("webhook verification failed mode=%s", mode)
    return PlainTextResponse("Forbidden", status_code=403)


@router.post("/webhook")
async def receive_webhook(
    request: Request,
    db: Session = Depends(get_db),
    settings: MessagingSettings = Depends(get_messaging_settings),
    provider: WhatsAppProvider | None = Depends(get_whatsapp_provider),
):
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("webhook body is not valid JSON")
        return PlainTextResponse("Internal Server Error", status_code=500)

    if not isinstance(payload, dict):
        logger.warning("webhook body is not an object, ignored")
        return PlainTextResponse("OK")

    service = WhatsAppService(settings, provider)
    try:
        process_webhook_delivery(db, service, payload)
    except Exception:
        logger.exception("error processing webhook")
        return PlainTextResponse("Internal Server Error", status_code=500)
    return PlainTextResponse("OK")
