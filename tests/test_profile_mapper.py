"""
test_profile_mapper.py — Tests for leadflow/services/profile_mapper.py

Covers: basic info parsing (name normalization, DD/MM/YYYY dates, sex letter),
risk label mapping, party kind, contact primaries and whatsapp, address
confidence by position and relationship tag, quality score.

Called by: pytest
Depends on: leadflow/services/profile_mapper.py, tests/conftest.py (broker_payload)
"""

from datetime import date

import pytest

from leadflow.services.profile_mapper import (
    CONFIDENCE_HIGH,
    CONFIDENCE_LOW,
    CONFIDENCE_LOWEST,
    CONFIDENCE_MEDIUM,
    address_confidence,
    map_profile,
    party_kind,
    quality_score,
    risk_score,
)


def test_basic_info(broker_payload):
    mapped = map_profile("123.456.789-01", broker_payload())
    assert mapped.national_id == "12345678901"
    assert mapped.kind == "person"
    assert mapped.basic.display_name == "Maria da Silva"
    assert mapped.basic.normalized_name == "MARIA DA SILVA"
    assert mapped.basic.birth_date == date(1985, 3, 15)
    assert mapped.basic.sex == "F"
    assert mapped.basic.mother_name == "Ana da Silva"


def test_accents_stripped_from_normalized_name(broker_payload):
    mapped = map_profile("12345678901", broker_payload(name="  José   Conceição "))
    assert mapped.basic.display_name == "José Conceição"
    assert mapped.basic.normalized_name == "JOSE CONCEICAO"


def test_unparsable_birth_date_is_none(broker_payload):
    payload = broker_payload()
    payload["DadosBasicos"]["dataNascimento"] = "1985-03-15"
    assert map_profile("12345678901", payload).basic.birth_date is None


def test_missing_sections_do_not_raise():
    mapped = map_profile("12345678901", {})
    assert mapped.basic.display_name is None
    assert mapped.economic.risk_score is None
    assert mapped.contacts == []
    assert mapped.addresses == []
    assert mapped.quality_score == 0.0


def test_economic_info(broker_payload):
    econ = map_profile("12345678901", broker_payload()).economic
    assert econ.income == 3500.0
    assert econ.credit_score == 720
    assert econ.risk_label == "BAIXO RISCO"
    assert econ.risk_score == 0.3


@pytest.mark.parametrize(
    "label,expected",
    [
        ("BAIXISSIMO RISCO", 0.1),
        ("BAIXO RISCO", 0.3),
        ("MEDIO RISCO", 0.5),
        ("MÉDIO RISCO", 0.5),
        ("ALTO RISCO", 0.7),
        ("ALTISSIMO RISCO", 0.9),
        ("DESCONHECIDO", None),
        (None, None),
    ],
)
def test_risk_score(label, expected):
    assert risk_score(label) == expected


def test_party_kind():
    assert party_kind("12345678901") == "person"
    assert party_kind("12.345.678/0001-90") == "company"


def test_contacts(broker_payload):
    contacts = map_profile("12345678901", broker_payload()).contacts
    by_key = {(c.contact_type, c.value): c for c in contacts}

    primary_email = by_key[("email", "maria@example.com")]
    assert primary_email.is_primary is True
    assert primary_email.is_verified is True
    assert primary_email.confidence == 0.9

    second_email = by_key[("email", "maria.silva@example.org")]
    assert second_email.is_primary is False
    assert second_email.is_verified is False
    assert second_email.confidence == 0.7

    assert by_key[("phone", "11987654321")].is_primary is True
    assert by_key[("phone", "1133334444")].is_primary is False
    assert by_key[("whatsapp", "11987654321")].is_primary is True
    assert ("whatsapp", "1133334444") not in by_key


def test_duplicate_contacts_in_payload_collapsed(broker_payload):
    payload = broker_payload()
    payload["emails"].append({"email": "MARIA@example.com"})
    emails = [c for c in map_profile("12345678901", payload).contacts if c.contact_type == "email"]
    assert len(emails) == 2


def test_addresses(broker_payload):
    addresses = map_profile("12345678901", broker_payload()).addresses
    assert len(addresses) == 2
    first, second = addresses
    assert first.is_primary is True
    assert first.confidence == CONFIDENCE_HIGH
    assert first.postal_code == "01001000"
    assert first.state == "SP"
    assert second.is_primary is False
    assert second.relationship_hint == "CONJUGE"
    assert second.confidence == CONFIDENCE_LOW
    assert first.fingerprint != second.fingerprint


def test_address_without_street_or_zip_skipped():
    payload = {"enderecos": [{"bairro": "Centro", "cidade": "Recife"}, {"logradouro": "Rua A"}]}
    addresses = map_profile("12345678901", payload).addresses
    assert len(addresses) == 1
    assert addresses[0].street == "Rua A"


@pytest.mark.parametrize(
    "position,hint,expected",
    [
        (0, None, CONFIDENCE_HIGH),
        (0, "CONJUGE", CONFIDENCE_LOW),
        (0, "Esposa", CONFIDENCE_LOW),
        (2, "COMPANHEIRA", CONFIDENCE_LOW),
        (0, "MAE", CONFIDENCE_LOWEST),
        (3, "PAI", CONFIDENCE_LOWEST),
        (1, "GENITORA", CONFIDENCE_LOWEST),
        (0, "IRMAO", CONFIDENCE_LOW),
        (1, None, CONFIDENCE_MEDIUM),
        (5, "", CONFIDENCE_MEDIUM),
    ],
)
def test_address_confidence(position, hint, expected):
    assert address_confidence(position, hint) == expected


def test_quality_score(broker_payload):
    assert quality_score(broker_payload()) == 1.0
    payload = broker_payload()
    del payload["enderecos"]
    del payload["DadosEconomicos"]
    assert quality_score(payload) == round(5 / 7, 2)
