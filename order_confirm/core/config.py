from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

# Carrega o .env da raiz do projeto
load_dotenv()

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("invalid integer for %s=%r, using %s", name, raw, default)
        return default


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("invalid number for %s=%r, using %s", name, raw, default)
        return default


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./order_confirm.db")
ENV = os.getenv("ENVIRONMENT", os.getenv("ENV", "dev"))
ENV_NORMALIZED = ENV.strip().lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_STAGE = ENV_NORMALIZED in {"stage", "staging"}
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

INTERNAL_API_TOKEN = os.getenv("INTERNAL_API_TOKEN", "").strip()

DEFAULT_TEMPLATE_NAME = "order_confirm"
DEFAULT_TRACKING_TEMPLATE_NAME = "tracking_notification"
DEFAULT_API_VERSION = "v20.0"


@dataclass(frozen=True)
class MessagingSettings:
    """Flags and credentials for one messaging invocation.

    Built from the environment at the edge (route dependency or CLI) and
    passed down explicitly, so services never read ``os.environ`` themselves.
    """

    auto_confirm_enabled: bool = False
    delay_minutes: int = 120
    template_name: str = DEFAULT_TEMPLATE_NAME
    tracking_template_name: str = DEFAULT_TRACKING_TEMPLATE_NAME
    dry_run: bool = False
    wa_token: str = ""
    wa_phone_number_id: str = ""
    verify_token: str = ""
    api_version: str = DEFAULT_API_VERSION
    batch_limit: int = 200
    send_pause_seconds: float = 0.1
    http_timeout_seconds: float = 20.0

    @classmethod
    def from_env(cls) -> "MessagingSettings":
        return cls(
            auto_confirm_enabled=env_flag("AUTO_CONFIRM_ENABLED"),
            delay_minutes=env_int("DELAY_MINUTES", 120),
            template_name=(os.getenv("WA_TEMPLATE_NAME") or DEFAULT_TEMPLATE_NAME).strip(),
            tracking_template_name=(
                os.getenv("WA_TRACKING_TEMPLATE_NAME") or DEFAULT_TRACKING_TEMPLATE_NAME
            ).strip(),
            dry_run=env_flag("DRY_RUN"),
            wa_token=os.getenv("WA_TOKEN", "").strip(),
            wa_phone_number_id=os.getenv("WA_PHONE_NUMBER_ID", "").strip(),
            verify_token=os.getenv("WA_VERIFY_TOKEN", "").strip(),
            api_version=(os.getenv("META_API_VERSION") or DEFAULT_API_VERSION).strip(),
            batch_limit=max(env_int("SWEEP_BATCH_LIMIT", 200), 1),
            send_pause_seconds=max(env_int("SWEEP_SEND_PAUSE_MS", 100), 0) / 1000,
            http_timeout_seconds=env_float("WA_HTTP_TIMEOUT_SECONDS", 20.0),
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.wa_token and self.wa_phone_number_id)

    @property
    def messages_url(self) -> str:
        return f"https://graph.facebook.com/{self.api_version}/{self.wa_phone_number_id}/messages"


def get_messaging_settings() -> MessagingSettings:
    return MessagingSettings.from_env()
