from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Callable, Sequence

from order_confirm.whatsapp.cloud_provider import InboundMessage


class InboundAction(str, enum.Enum):
    CONFIRM = "confirm"
    CANCEL = "cancel"


BUTTON_ACTIONS: dict[str, InboundAction] = {
    "confirm_order": InboundAction.CONFIRM,
    "cancel_order": InboundAction.CANCEL,
}


@dataclass(frozen=True)
class TextRule:
    name: str
    matches: Callable[[str], bool]
    action: InboundAction


def contains(keyword: str) -> Callable[[str], bool]:
    return lambda text: keyword in text


def equals(value: str) -> Callable[[str], bool]:
    return lambda text: text == value


# Avaliadas em ordem; a primeira que casar decide
TEXT_RULES: tuple[TextRule, ...] = (
    TextRule("confirm-keyword", contains("confirmer"), InboundAction.CONFIRM),
    TextRule("confirm-shorthand", equals("1"), InboundAction.CONFIRM),
    TextRule("confirm-keyword-ar", contains("تأكيد"), InboundAction.CONFIRM),
    TextRule("cancel-keyword", contains("annuler"), InboundAction.CANCEL),
    TextRule("cancel-shorthand", equals("2"), InboundAction.CANCEL),
    TextRule("cancel-keyword-ar", contains("إلغاء"), InboundAction.CANCEL),
    TextRule("cancel-keyword-ar-plain", contains("الغاء"), InboundAction.CANCEL),
)


def classify_text(text: str | None, rules: Sequence[TextRule] = TEXT_RULES) -> InboundAction | None:
    normalized = (text or "").strip().lower()
    if not normalized:
        return None
    for rule in rules:
        if rule.matches(normalized):
            return rule.action
    return None


def classify_message(message: InboundMessage) -> InboundAction | None:
    if message.message_type == "interactive":
        return BUTTON_ACTIONS.get(message.button_id or "")
    if message.message_type == "button":
        action = BUTTON_ACTIONS.get(message.button_id or "")
        return action or classify_text(message.text)
    if message.message_type == "text":
        return classify_text(message.text)
    return None
