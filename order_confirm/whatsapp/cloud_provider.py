from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Iterator

import httpx

from order_confirm.core.config import MessagingSettings
from order_confirm.whatsapp.base import (
    MISSING_CREDENTIALS_ERROR,
    STATUS_CONFIG_ERROR,
    STATUS_FAILED,
    STATUS_SENT,
    WhatsAppProvider,
    WhatsAppSendResult,
    safe_json,
)

logger = logging.getLogger(__name__)

MALFORMED_NOT_OBJECT = "Malformed message: not an object"
MALFORMED_NO_SENDER = "Malformed message: missing sender"
MALFORMED_UNREADABLE = "Malformed message: unreadable body"


@dataclass
class InboundMessage:
    message_id: str | None
    from_number: str | None
    message_type: str
    text: str = ""
    button_id: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)
    error: str | None = None

    @property
    def is_malformed(self) -> bool:
        return self.error is not None


def _message_id(msg: dict[str, Any]) -> str | None:
    value = msg.get("id")
    return str(value) if value is not None else None


def _malformed(msg: Any, reason: str) -> InboundMessage:
    # Mantém a mensagem crua para a auditoria
    if not isinstance(msg, dict):
        return InboundMessage(message_id=None, from_number=None, message_type="unknown", raw={"raw": msg}, error=reason)
    sender = msg.get("from")
    return InboundMessage(
        message_id=_message_id(msg),
        from_number=str(sender) if isinstance(sender, (str, int)) and sender else None,
        message_type=str(msg.get("type") or "unknown"),
        raw=msg,
        error=reason,
    )


def _parse_message(msg: dict[str, Any]) -> InboundMessage:
    msg_type = msg.get("type") or "text"
    text = ""
    button_id = None

    if msg_type == "text":
        text = ((msg.get("text") or {}).get("body")) or ""
    elif msg_type == "interactive":
        interactive = msg.get("interactive") or {}
        if interactive.get("type") == "button_reply":
            reply = interactive.get("button_reply") or {}
            button_id = reply.get("id")
            text = reply.get("title") or ""
    elif msg_type == "button":
        # Quick reply de template
        button = msg.get("button") or {}
        button_id = button.get("payload")
        text = button.get("text") or ""

    return InboundMessage(
        message_id=_message_id(msg),
        from_number=str(msg["from"]),
        message_type=msg_type,
        text=str(text).strip(),
        button_id=button_id,
        raw=msg,
    )


def iter_cloud_messages(payload: dict[str, Any]) -> Iterator[InboundMessage]:
    """Yield every message of a Cloud API delivery.

    Messages that cannot be read are still yielded, with ``error`` set, so the
    caller can audit them; broken entries and non-message changes are skipped.
    """
    entries = payload.get("entry") if isinstance(payload, dict) else None
    if not isinstance(entries, list):
        return

    for entry in entries:
        changes = entry.get("changes") if isinstance(entry, dict) else None
        if not isinstance(changes, list):
            logger.warning("webhook entry without changes ignored")
            continue
        for change in changes:
            if not isinstance(change, dict) or change.get("field") != "messages":
                continue
            value = change.get("value") or {}
            messages = value.get("messages") if isinstance(value, dict) else None
            if not isinstance(messages, list):
                continue
            for msg in messages:
                if not isinstance(msg, dict):
                    logger.warning("malformed webhook message")
                    yield _malformed(msg, MALFORMED_NOT_OBJECT)
                    continue
                if not msg.get("from"):
                    logger.warning("webhook message without sender id=%s", msg.get("id"))
                    yield _malformed(msg, MALFORMED_NO_SENDER)
                    continue
                try:
                    parsed = _parse_message(msg)
                except (AttributeError, TypeError):
                    logger.warning("malformed webhook message id=%s", msg.get("id"))
                    yield _malformed(msg, MALFORMED_UNREADABLE)
                    continue
                yield parsed


class CloudWhatsAppProvider(WhatsAppProvider):
    def __init__(
        self,
        settings: MessagingSettings,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def send(self, payload: dict[str, Any]) -> WhatsAppSendResult:
        settings = self._settings
        if not settings.has_credentials:
            logger.warning("WhatsApp credentials missing, send skipped")
            return WhatsAppSendResult(status=STATUS_CONFIG_ERROR, error=MISSING_CREDENTIALS_ERROR)

        headers = {"Authorization": f"Bearer {settings.wa_token}", "Content-Type": "application/json"}

        try:
            with httpx.Client(timeout=settings.http_timeout_seconds, transport=self._transport) as client:
                response = client.post(settings.messages_url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("WhatsApp request failed: %s", exc)
            return WhatsAppSendResult(status=STATUS_FAILED, http_status=0, error=str(exc) or exc.__class__.__name__)

        body_text = response.text
        try:
            data = response.json()
        except json.JSONDecodeError:
            data = {"raw": body_text}
        if not isinstance(data, dict):
            data = {"raw": data}

        if 200 <= response.status_code < 300:
            provider_id = None
            messages = data.get("messages")
            if isinstance(messages, list) and messages and isinstance(messages[0], dict):
                provider_id = messages[0].get("id")
            return WhatsAppSendResult(
                status=STATUS_SENT,
                http_status=response.status_code,
                provider_message_id=provider_id,
                response_payload=data,
            )

        return WhatsAppSendResult(
            status=STATUS_FAILED,
            http_status=response.status_code,
            error=f"WhatsApp API error {response.status_code}: {safe_json(data)}",
            response_payload=data,
        )
