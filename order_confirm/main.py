import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from order_confirm.core.database import engine
from order_confirm.core.logging_setup import configure_logging
from order_confirm.core.startup_checks import ensure_schema, validate_database_environment
from order_confirm.middleware.observability import ObservabilityMiddleware
import order_confirm.models  # noqa: F401  registra os models no metadata

from order_confirm.routers.admin_whatsapp import router as admin_whatsapp_router
from order_confirm.routers.internal_metrics import router as internal_metrics_router
from order_confirm.routers.jobs import router as jobs_router
from order_confirm.routers.notifications import router as notifications_router
from order_confirm.routers.webhook import router as webhook_router

configure_logging()

logger = logging.getLogger(__name__)


def _startup_tasks() -> None:
    validate_database_environment()
    ensure_schema(engine)
    logger.info("order confirmation service started")


@asynccontextmanager
async def lifespan(_: FastAPI):
    _startup_tasks()
    yield


app = FastAPI(
    title="Order Confirmation Messaging API",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)

app.add_middleware(ObservabilityMiddleware)

app.include_router(webhook_router)
app.include_router(notifications_router)
app.include_router(jobs_router)
app.include_router(admin_whatsapp_router)
app.include_router(internal_metrics_router)


@app.get("/")
def health():
    return {"status": "ok"}
