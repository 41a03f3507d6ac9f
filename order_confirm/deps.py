from __future__ import annotations

import hmac

from fastapi import Header, HTTPException, status

from order_confirm.core import config


def require_internal_token(x_internal_token: str | None = Header(default=None)) -> None:
    configured = (config.INTERNAL_API_TOKEN or "").strip()
    incoming = (x_internal_token or "").strip()
    if not configured:
        if config.IS_PROD:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="INTERNAL_API_TOKEN must be configured in production",
            )
        return
    if not hmac.compare_digest(incoming, configured):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
