from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from order_confirm.core.config import DATABASE_URL, IS_DEV, IS_PROD
from order_confirm.core.database import Base

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"
REQUIRED_TABLES = {"orders", "whatsapp_logs"}


def validate_database_environment() -> None:
    if IS_PROD and DATABASE_URL.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", MIGRATIONS_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")


def ensure_schema(engine: Engine) -> None:
    """Create tables on a local SQLite database; elsewhere require migrations."""
    inspector = inspect(engine)
    missing = sorted(table for table in REQUIRED_TABLES if not inspector.has_table(table))
    if not missing:
        return

    if IS_DEV and DATABASE_URL.startswith("sqlite"):
        logger.info("%s creating local tables: %s", MIGRATIONS_PREFIX, ",".join(missing))
        Base.metadata.create_all(bind=engine)
        return

    logger.critical("%s tables missing / migrations not applied missing=%s", MIGRATIONS_PREFIX, ",".join(missing))
    raise RuntimeError("tables missing / migrations not applied (run: alembic upgrade head)")
