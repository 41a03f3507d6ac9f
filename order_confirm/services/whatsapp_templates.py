from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from order_confirm.services.phone import to_provider_recipient

DEFAULT_LANGUAGE = "fr"
SUPPORTED_LANGUAGES = {"fr", "ar"}
DEFAULT_FIRST_NAME = "Client"

# Ordem e quantidade precisam bater com o template aprovado no provedor
TEMPLATE_PARAMETERS: dict[str, tuple[str, ...]] = {
    "order_confirm": ("first_name", "code_suivi", "order_total"),
    "tracking_notification": ("first_name", "code_suivi"),
}
FALLBACK_PARAMETERS = TEMPLATE_PARAMETERS["order_confirm"]


@dataclass(frozen=True)
class OrderSnapshot:
    phone_e164: str
    first_name: str | None
    code_suivi: str | None
    order_total: Any = None
    lang: str | None = None


def resolve_language(locale: str | None) -> str:
    if not locale:
        return DEFAULT_LANGUAGE
    base = locale.strip().lower().replace("_", "-").split("-", 1)[0]
    return base if base in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def format_amount(value: Any) -> str:
    if value is None or value == "":
        return "0"
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return str(value)
    if amount == amount.to_integral_value():
        return str(amount.quantize(Decimal(1)))
    return format(amount.normalize(), "f")


def template_parameters(template_name: str) -> tuple[str, ...]:
    return TEMPLATE_PARAMETERS.get(template_name, FALLBACK_PARAMETERS)


def _parameter_text(snapshot: OrderSnapshot, field: str) -> str:
    if field == "first_name":
        return (snapshot.first_name or "").strip() or DEFAULT_FIRST_NAME
    if field == "code_suivi":
        return snapshot.code_suivi or ""
    if field == "order_total":
        return format_amount(snapshot.order_total)
    raise KeyError(f"Unknown template parameter: {field}")


def build_template_payload(snapshot: OrderSnapshot, template_name: str) -> dict[str, Any]:
    parameters = [
        {"type": "text", "text": _parameter_text(snapshot, field)}
        for field in template_parameters(template_name)
    ]
    return {
        "messaging_product": "whatsapp",
        "to": to_provider_recipient(snapshot.phone_e164),
        "type": "template",
        "template": {
            "name": template_name,
            "language": {"code": resolve_language(snapshot.lang)},
            "components": [{"type": "body", "parameters": parameters}],
        },
    }
