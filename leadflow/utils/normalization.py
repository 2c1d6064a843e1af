"""Deterministic normalization of broker and CRM values.

  - Names: "  José  da Silva " → "JOSE DA SILVA"
  - Dates: "15/03/1985" → date(1985, 3, 15)
  - Sex: "M - MASCULINO" → "M"
  - Money: "3.500,50" → 3500.5

Design: prefer less data if it means better data. Return None for ambiguous values.
"""

import re
import unicodedata
from datetime import date, datetime
from typing import Any

_WS = re.compile(r"\s+")


def digits_only(raw: Any) -> str:
    if raw is None:
        return ""
    return re.sub(r"\D", "", str(raw))


def clean_text(raw: Any) -> str | None:
    """Trim and collapse whitespace. Empty → None."""
    if raw is None:
        return None
    s = _WS.sub(" ", str(raw)).strip()
    return s or None


def normalize_name(raw: Any) -> str | None:
    """Upper-case, strip accents, collapse whitespace."""
    s = clean_text(raw)
    if not s:
        return None
    decomposed = unicodedata.normalize("NFKD", s)
    stripped = "".join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.upper()


def parse_br_date(raw: Any) -> date | None:
    """Parse DD/MM/YYYY. Unparsable → None."""
    s = clean_text(raw)
    if not s:
        return None
    try:
        return datetime.strptime(s, "%d/%m/%Y").date()
    except ValueError:
        return None


def normalize_sex(raw: Any) -> str | None:
    s = clean_text(raw)
    if not s:
        return None
    first = s[0].upper()
    return first if first.isalpha() else None


def parse_amount(raw: Any) -> float | None:
    """Parse a broker money value. Accepts numbers and BR-formatted strings."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    s = str(raw).strip().replace("R$", "").replace(" ", "")
    if not s:
        return None
    if "," in s:
        s = s.replace(".", "").replace(",", ".")
    try:
        return float(s)
    except ValueError:
        return None


def parse_int(raw: Any) -> int | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return int(float(str(raw).strip()))
    except (ValueError, TypeError):
        return None
