from __future__ import annotations

import logging
import time
from typing import Any

from order_confirm.whatsapp.base import STATUS_SENT, WhatsAppProvider, WhatsAppSendResult, safe_json

logger = logging.getLogger(__name__)


class DryRunWhatsAppProvider(WhatsAppProvider):
    """Records a synthetic success without calling the provider."""

    def send(self, payload: dict[str, Any]) -> WhatsAppSendResult:
        logger.info("DRY RUN - would send: %s", safe_json(payload))
        return WhatsAppSendResult(
            status=STATUS_SENT,
            http_status=200,
            provider_message_id=f"dry_run_{int(time.time() * 1000)}",
            dry_run=True,
        )
