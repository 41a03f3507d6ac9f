"""Moroccan phone normalization.

Canonical numbers look like ``+212612345678``: country code 212 followed by a
nine-digit subscriber number whose first digit is 5 (fixed), 6 or 7 (mobile).
Parsing goes through ``phonenumbers`` with Morocco as the default region; the
canonical pattern is the final gate. Invalid input never raises; callers get
``None`` and decide whether to skip.
"""
from __future__ import annotations

import re

import phonenumbers
from phonenumbers import NumberParseException, PhoneNumberFormat

DEFAULT_REGION = "MA"
COUNTRY_CODE = "212"
INTERNATIONAL_PREFIX = f"+{COUNTRY_CODE}"
TRUNK_PREFIX = "0"

CANONICAL_PATTERN = re.compile(r"\+212[5-7][0-9]{8}")


def is_valid_phone(phone: str | None) -> bool:
    if not phone:
        return False
    return CANONICAL_PATTERN.fullmatch(phone) is not None


def _format_e164(raw: str, region: str | None) -> str | None:
    try:
        number = phonenumbers.parse(raw, region)
    except NumberParseException:
        return None
    return phonenumbers.format_number(number, PhoneNumberFormat.E164)


def canonicalize_phone(raw: str | None) -> str | None:
    """Best-effort E.164 form, without the Moroccan range check."""
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    return _format_e164(text, DEFAULT_REGION)


def normalize_phone(raw: str | None) -> str | None:
    candidate = canonicalize_phone(raw)
    if candidate and is_valid_phone(candidate):
        return candidate
    return None


def canonicalize_inbound_phone(raw: str | None) -> str | None:
    # O provedor envia apenas dígitos, já com o código do país (ex: 212612345678)
    if raw is None:
        return None
    digits = phonenumbers.normalize_digits_only(str(raw))
    if not digits:
        return None
    return _format_e164("+" + digits, None)


def national_format(phone_e164: str) -> str | None:
    if not is_valid_phone(phone_e164):
        return None
    return TRUNK_PREFIX + phone_e164[len(INTERNATIONAL_PREFIX):]


def to_provider_recipient(phone_e164: str) -> str:
    return phone_e164.lstrip("+")
