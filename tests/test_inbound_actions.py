import pytest

from order_confirm.services.inbound_actions import InboundAction, classify_message, classify_text
from order_confirm.whatsapp.cloud_provider import InboundMessage


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Je veux confirmer", InboundAction.CONFIRM),
        ("CONFIRMER", InboundAction.CONFIRM),
        ("1", InboundAction.CONFIRM),
        ("  1  ", InboundAction.CONFIRM),
        ("Annuler svp", InboundAction.CANCEL),
        ("2", InboundAction.CANCEL),
        ("تأكيد", InboundAction.CONFIRM),
        ("إلغاء", InboundAction.CANCEL),
    ],
)
def test_classify_text(text, expected):
    assert classify_text(text) is expected


@pytest.mark.parametrize("text", ["", "bonjour", "12", "3", None])
def test_classify_text_ignores_unrelated(text):
    assert classify_text(text) is None


def test_confirm_rule_wins_when_both_keywords_present():
    assert classify_text("confirmer ou annuler ?") is InboundAction.CONFIRM


def test_classify_message_by_button_id():
    confirm = InboundMessage(message_id="m", from_number="212", message_type="interactive", button_id="confirm_order")
    cancel = InboundMessage(message_id="m", from_number="212", message_type="interactive", button_id="cancel_order")
    unknown = InboundMessage(message_id="m", from_number="212", message_type="interactive", button_id="other")

    assert classify_message(confirm) is InboundAction.CONFIRM
    assert classify_message(cancel) is InboundAction.CANCEL
    assert classify_message(unknown) is None


def test_template_quick_reply_falls_back_to_text():
    message = InboundMessage(message_id="m", from_number="212", message_type="button", text="Annuler")
    assert classify_message(message) is InboundAction.CANCEL


def test_media_messages_are_ignored():
    message = InboundMessage(message_id="m", from_number="212", message_type="image")
    assert classify_message(message) is None
