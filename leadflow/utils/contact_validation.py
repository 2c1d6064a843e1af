"""
contact_validation.py — Phone and email validation for CRM leads

Turns the raw phone/email typed into the CRM into canonical contacts, or
drops them. Nothing invalid ever reaches the identity directory.

Business Rules:
- Phones shorter than 8 characters are rejected outright
- Phones are parsed against the national numbering plan (region BR by default)
  and returned in E.164 ("+5511987654321")
- Emails must be 5..254 chars, contain "@" and ".", match a simplified
  RFC 5322 pattern and must not contain placeholder digit runs
  ("999999", "111111", "000000", "123456789")
- Accepted emails are trimmed and lowercased

Called by: services/pipeline.py
Depends on: phonenumbers
"""

import re
from dataclasses import dataclass

import phonenumbers
from loguru import logger

from ..config import settings

_FAKE_EMAIL_PATTERNS = ("999999", "111111", "000000", "123456789")

_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


@dataclass(frozen=True)
class ContactInput:
    """Canonical contacts for one lead. Either may be None."""

    phone: str | None = None
    email: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.phone is None and self.email is None


def normalize_email(raw: str | None) -> str:
    return (raw or "").strip().lower()


def validate_phone(raw: str | None, region: str | None = None) -> tuple[bool, str]:
    """Validate a phone number. Returns (True, e164) or (False, reason)."""
    value = (raw or "").strip()
    if len(value) < 8:
        return False, "Phone too short"
    try:
        parsed = phonenumbers.parse(value, region or settings.phone_region)
    except phonenumbers.NumberParseException as e:
        return False, f"Unparseable phone: {e}"
    if not phonenumbers.is_valid_number(parsed):
        return False, "Invalid phone number"
    return True, phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def validate_email(raw: str | None) -> bool:
    email = normalize_email(raw)
    if len(email) < 5 or len(email) > 254:
        return False
    if "@" not in email or "." not in email:
        return False
    if any(p in email for p in _FAKE_EMAIL_PATTERNS):
        return False
    return bool(_EMAIL_RE.match(email))


def canonicalize_contacts(raw_phone: str | None, raw_email: str | None) -> ContactInput:
    phone = None
    if raw_phone:
        ok, result = validate_phone(raw_phone)
        if ok:
            phone = result
        else:
            logger.info("Dropping phone {!r}: {}", raw_phone, result)

    email = None
    if raw_email:
        if validate_email(raw_email):
            email = normalize_email(raw_email)
        else:
            logger.info("Dropping invalid email {!r}", raw_email)

    return ContactInput(phone=phone, email=email)
