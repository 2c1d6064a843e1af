"""
test_contact_validation.py — Tests for leadflow/utils/contact_validation.py

Covers: phone validation against the BR numbering plan, email format and
placeholder-pattern rejection, canonicalize_contacts dropping bad values.

Called by: pytest
Depends on: leadflow/utils/contact_validation.py
"""

import pytest

from leadflow.utils.contact_validation import (
    ContactInput,
    canonicalize_contacts,
    normalize_email,
    validate_email,
    validate_phone,
)
from leadflow.utils.normalization import digits_only

# ── validate_phone ───────────────────────────────────────────────────


def test_valid_mobile_canonicalizes_to_e164():
    assert validate_phone("11987654321") == (True, "+5511987654321")


def test_formatted_mobile_canonicalizes_to_same_e164():
    assert validate_phone("(11) 98765-4321") == (True, "+5511987654321")


def test_international_prefix_accepted():
    assert validate_phone("+55 11 98765-4321") == (True, "+5511987654321")


@pytest.mark.parametrize("raw", ["", "   ", "123", "1234567", None])
def test_short_phone_rejected(raw):
    ok, reason = validate_phone(raw)
    assert ok is False
    assert reason == "Phone too short"


def test_unparseable_phone_rejected():
    ok, reason = validate_phone("not a phone number")
    assert ok is False
    assert reason


def test_invalid_number_rejected():
    ok, reason = validate_phone("00000000000")
    assert ok is False
    assert reason != "Phone too short"


# ── validate_email ───────────────────────────────────────────────────


@pytest.mark.parametrize("raw", ["a@b.com", "maria.silva@example.com.br", "  John@Example.COM  "])
def test_valid_emails(raw):
    assert validate_email(raw) is True


@pytest.mark.parametrize(
    "raw",
    [
        "1199999999333@gmail.com",
        "user111111@gmail.com",
        "000000@test.com",
        "abc123456789@mail.com",
    ],
)
def test_placeholder_digit_runs_rejected(raw):
    assert validate_email(raw) is False


@pytest.mark.parametrize("raw", ["", "a@b", "abcd", "no-at-sign.com", "a b@c.com", "@example.com", None])
def test_malformed_emails_rejected(raw):
    assert validate_email(raw) is False


def test_overlong_email_rejected():
    assert validate_email("a" * 250 + "@x.com") is False


# ── canonicalize_contacts ────────────────────────────────────────────


def test_canonicalize_keeps_valid_values():
    contacts = canonicalize_contacts("11987654321", "  Maria@Example.com ")
    assert contacts == ContactInput(phone="+5511987654321", email="maria@example.com")
    assert not contacts.is_empty


def test_canonicalize_drops_invalid_values():
    contacts = canonicalize_contacts("123", "1199999999333@gmail.com")
    assert contacts.phone is None
    assert contacts.email is None
    assert contacts.is_empty


def test_canonicalize_handles_missing_values():
    contacts = canonicalize_contacts(None, "a@b.com")
    assert contacts.phone is None
    assert contacts.email == "a@b.com"


def test_helpers():
    assert digits_only("(11) 98765-4321") == "11987654321"
    assert digits_only(None) == ""
    assert normalize_email("  A@B.COM ") == "a@b.com"
