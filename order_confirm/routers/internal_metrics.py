from __future__ import annotations

from fastapi import APIRouter, Depends

from order_confirm.core.metrics import messaging_counters, request_metrics
from order_confirm.deps import require_internal_token

router = APIRouter(prefix="/internal/metrics", tags=["internal-metrics"])


@router.get("")
def get_metrics(_auth: None = Depends(require_internal_token)):
    return {
        "requests": request_metrics.snapshot(),
        "messaging": messaging_counters.snapshot(),
    }
