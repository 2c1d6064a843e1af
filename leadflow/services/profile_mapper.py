"""
profile_mapper.py — Broker payload → typed canonical records

Pure functions: no I/O, no session. The store consumes MappedProfile.

Business Rules:
- DadosBasicos.nome → display name and normalized name (upper, no accents)
- dataNascimento "DD/MM/YYYY" → date; unparsable → None
- sexo "M - MASCULINO" → "M"
- 14-digit ID → company, otherwise person
- Risk label → numeric score (BAIXISSIMO 0.1 … ALTISSIMO 0.9); unknown → None
- Emails lowercased, phones digits-only; first of each contact type is primary
- whatsapp == "SIM" yields an extra whatsapp contact for that number
- Address confidence comes from list position and relationship tag only,
  never from the address content
- quality_score = populated sections / 7

Called by: services/pipeline.py, services/party_store.py
Depends on: utils/normalization.py
"""

import hashlib
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..utils.normalization import (
    clean_text,
    digits_only,
    normalize_name,
    normalize_sex,
    parse_amount,
    parse_br_date,
    parse_int,
)

RISK_SCORES = (
    ("BAIXISSIMO", 0.1),
    ("ALTISSIMO", 0.9),
    ("BAIXO", 0.3),
    ("MEDIO", 0.5),
    ("ALTO", 0.7),
)

CONFIDENCE_HIGH = 0.95
CONFIDENCE_MEDIUM = 0.75
CONFIDENCE_LOW = 0.50
CONFIDENCE_LOWEST = 0.30

_SPOUSE_TAGS = ("CONJUGE", "ESPOSA", "ESPOSO", "MARIDO", "COMPANHEIR")
_PARENT_TAGS = ("MAE", "PAI", "GENITOR")
_RELATIONSHIP_KEYS = ("relacao", "vinculo", "tipoVinculo")


@dataclass
class BasicInfo:
    display_name: str | None = None
    normalized_name: str | None = None
    birth_date: date | None = None
    sex: str | None = None
    mother_name: str | None = None


@dataclass
class EconomicInfo:
    income: float | None = None
    credit_score: int | None = None
    risk_label: str | None = None
    risk_score: float | None = None


@dataclass
class MappedContact:
    contact_type: str
    value: str
    is_primary: bool = False
    is_verified: bool = False
    confidence: float = 0.7


@dataclass
class MappedAddress:
    street_type: str | None = None
    street: str | None = None
    number: str | None = None
    complement: str | None = None
    neighborhood: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    relationship_hint: str | None = None
    confidence: float = CONFIDENCE_MEDIUM
    is_primary: bool = False

    @property
    def fingerprint(self) -> str:
        parts = [
            normalize_name(v) or ""
            for v in (
                self.street_type,
                self.street,
                self.number,
                self.complement,
                self.neighborhood,
                self.city,
                self.state,
            )
        ]
        parts.append(self.postal_code or "")
        return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


@dataclass
class MappedProfile:
    national_id: str
    kind: str
    basic: BasicInfo
    economic: EconomicInfo
    contacts: list[MappedContact] = field(default_factory=list)
    addresses: list[MappedAddress] = field(default_factory=list)
    quality_score: float = 0.0


def party_kind(national_id: str) -> str:
    return "company" if len(digits_only(national_id)) == 14 else "person"


def risk_score(label: Any) -> float | None:
    s = normalize_name(label)
    if not s:
        return None
    for token, score in RISK_SCORES:
        if token in s:
            return score
    return None


def address_confidence(position: int, relationship_hint: str | None) -> float:
    """Confidence for the address at `position` (0-based) in the broker list."""
    tag = normalize_name(relationship_hint)
    if tag:
        if any(t in tag for t in _SPOUSE_TAGS):
            return CONFIDENCE_LOW
        if any(tag == t or tag.startswith(t) for t in _PARENT_TAGS):
            return CONFIDENCE_LOWEST
        return CONFIDENCE_LOW
    return CONFIDENCE_HIGH if position == 0 else CONFIDENCE_MEDIUM


def _section(payload: dict, key: str) -> dict:
    value = payload.get(key)
    return value if isinstance(value, dict) else {}


def _items(payload: dict, key: str) -> list:
    value = payload.get(key)
    return value if isinstance(value, list) else []


def map_basic(payload: dict) -> BasicInfo:
    basic = _section(payload, "DadosBasicos")
    return BasicInfo(
        display_name=clean_text(basic.get("nome")),
        normalized_name=normalize_name(basic.get("nome")),
        birth_date=parse_br_date(basic.get("dataNascimento")),
        sex=normalize_sex(basic.get("sexo")),
        mother_name=clean_text(basic.get("nomeMae")),
    )


def map_economic(payload: dict) -> EconomicInfo:
    econ = _section(payload, "DadosEconomicos")
    score = econ.get("score") if isinstance(econ.get("score"), dict) else {}
    label = clean_text(score.get("scoreCSBAFaixaRisco"))
    return EconomicInfo(
        income=parse_amount(econ.get("renda")),
        credit_score=parse_int(score.get("scoreCSBA")),
        risk_label=label,
        risk_score=risk_score(label),
    )


def map_contacts(payload: dict) -> list[MappedContact]:
    contacts: list[MappedContact] = []
    seen: set[tuple[str, str]] = set()
    primary_taken: set[str] = set()

    def add(contact_type: str, value: str, verified: bool = False) -> None:
        if not value or (contact_type, value) in seen:
            return
        seen.add((contact_type, value))
        primary = contact_type not in primary_taken
        primary_taken.add(contact_type)
        contacts.append(
            MappedContact(
                contact_type=contact_type,
                value=value,
                is_primary=primary,
                is_verified=verified,
                confidence=0.9 if primary else 0.7,
            )
        )

    for item in _items(payload, "emails"):
        if isinstance(item, dict):
            email = (clean_text(item.get("email")) or "").lower()
            add("email", email, verified=(clean_text(item.get("qualidade")) or "").upper() == "BOM")
        elif isinstance(item, str):
            add("email", item.strip().lower())

    for item in _items(payload, "telefones"):
        if isinstance(item, dict):
            number = digits_only(item.get("telefone"))
            add("phone", number)
            if (clean_text(item.get("whatsapp")) or "").upper() == "SIM":
                add("whatsapp", number)
        elif isinstance(item, str):
            add("phone", digits_only(item))

    return contacts


def _relationship_hint(item: dict) -> str | None:
    for key in _RELATIONSHIP_KEYS:
        hint = clean_text(item.get(key))
        if hint:
            return hint
    return None


def map_addresses(payload: dict) -> list[MappedAddress]:
    addresses: list[MappedAddress] = []
    for position, item in enumerate(_items(payload, "enderecos")):
        if not isinstance(item, dict):
            continue
        street = clean_text(item.get("logradouro"))
        cep = digits_only(item.get("cep")) or None
        if not street and not cep:
            continue
        hint = _relationship_hint(item)
        addresses.append(
            MappedAddress(
                street_type=clean_text(item.get("tipoLogradouro")),
                street=street,
                number=clean_text(item.get("logradouroNumero")),
                complement=clean_text(item.get("complemento")),
                neighborhood=clean_text(item.get("bairro")),
                city=clean_text(item.get("cidade")),
                state=(clean_text(item.get("uf")) or "").upper()[:2] or None,
                postal_code=cep,
                relationship_hint=hint,
                confidence=address_confidence(position, hint),
                is_primary=position == 0,
            )
        )
    return addresses


def quality_score(payload: dict) -> float:
    basic = map_basic(payload)
    sections = (
        basic.display_name,
        basic.birth_date,
        basic.mother_name,
        _section(payload, "DadosEconomicos"),
        _items(payload, "emails"),
        _items(payload, "telefones"),
        _items(payload, "enderecos"),
    )
    filled = sum(1 for s in sections if s)
    return round(filled / len(sections), 2)


def map_profile(national_id: str, payload: dict) -> MappedProfile:
    nid = digits_only(national_id)
    return MappedProfile(
        national_id=nid,
        kind=party_kind(nid),
        basic=map_basic(payload),
        economic=map_economic(payload),
        contacts=map_contacts(payload),
        addresses=map_addresses(payload),
        quality_score=quality_score(payload),
    )
