from decimal import Decimal

from order_confirm.services.whatsapp_templates import (
    OrderSnapshot,
    build_template_payload,
    format_amount,
    resolve_language,
)


def _snapshot(**overrides):
    values = {
        "phone_e164": "+212612345678",
        "first_name": "Amina",
        "code_suivi": "CMD-1001",
        "order_total": Decimal("249.00"),
        "lang": "fr",
    }
    values.update(overrides)
    return OrderSnapshot(**values)


def test_order_confirm_payload_has_three_ordered_body_parameters():
    payload = build_template_payload(_snapshot(), "order_confirm")

    assert payload["messaging_product"] == "whatsapp"
    assert payload["to"] == "212612345678"
    assert payload["type"] == "template"
    assert payload["template"]["name"] == "order_confirm"
    assert payload["template"]["language"] == {"code": "fr"}
    assert payload["template"]["components"] == [
        {
            "type": "body",
            "parameters": [
                {"type": "text", "text": "Amina"},
                {"type": "text", "text": "CMD-1001"},
                {"type": "text", "text": "249"},
            ],
        }
    ]


def test_missing_first_name_falls_back_to_client():
    payload = build_template_payload(_snapshot(first_name="  "), "order_confirm")
    assert payload["template"]["components"][0]["parameters"][0]["text"] == "Client"


def test_tracking_template_only_sends_name_and_code():
    payload = build_template_payload(_snapshot(), "tracking_notification")
    texts = [p["text"] for p in payload["template"]["components"][0]["parameters"]]
    assert texts == ["Amina", "CMD-1001"]


def test_unknown_template_uses_confirmation_layout():
    payload = build_template_payload(_snapshot(), "order_confirm_v2")
    assert payload["template"]["name"] == "order_confirm_v2"
    assert len(payload["template"]["components"][0]["parameters"]) == 3


def test_resolve_language_defaults_to_french():
    assert resolve_language(None) == "fr"
    assert resolve_language("ar_MA") == "ar"
    assert resolve_language("en") == "fr"


def test_format_amount():
    assert format_amount(Decimal("249.00")) == "249"
    assert format_amount(Decimal("249.50")) == "249.5"
    assert format_amount(99) == "99"
    assert format_amount(None) == "0"
