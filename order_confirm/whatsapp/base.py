from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Protocol

STATUS_SENT = "sent"
STATUS_FAILED = "failed"
STATUS_CONFIG_ERROR = "config_error"

MISSING_CREDENTIALS_ERROR = "Missing WhatsApp credentials"


@dataclass
class WhatsAppSendResult:
    status: str
    http_status: int | None = None
    provider_message_id: str | None = None
    error: str | None = None
    response_payload: dict[str, Any] | None = None
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.status == STATUS_SENT

    @property
    def is_config_error(self) -> bool:
        return self.status == STATUS_CONFIG_ERROR


class WhatsAppProvider(Protocol):
    def send(self, payload: dict[str, Any]) -> WhatsAppSendResult:
        ...


SENSITIVE_KEYS = {"access_token", "verify_token", "webhook_secret", "authorization", "token"}


def _mask_value(value: Any) -> Any:
    if value is None:
        return None
    text = str(value)
    if len(text) <= 4:
        return "****"
    return f"****{text[-4:]}"


def sanitize_payload(payload: dict[str, Any]) -> dict[str, Any]:
    def _sanitize(value: Any) -> Any:
        if isinstance(value, dict):
            return {key: _sanitize_value(key, inner) for key, inner in value.items()}
        if isinstance(value, list):
            return [_sanitize(item) for item in value]
        return value

    def _sanitize_value(key: str, value: Any) -> Any:
        if str(key).lower() in SENSITIVE_KEYS:
            return _mask_value(value)
        return _sanitize(value)

    return _sanitize(payload)


def safe_json(payload: Any) -> str:
    try:
        return json.dumps(payload, ensure_ascii=False)
    except (TypeError, ValueError):
        return "{}"
