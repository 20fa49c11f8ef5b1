# Role: Deterministic numeric helpers. Strips currency symbols and thousands separators from one literal
# ("£3,250.50" -> 3250.5) and classifies numeric tokens (currency-marked, per-unit, phone-like).

from __future__ import annotations

import re
from typing import Optional

CURRENCY_SYMBOLS = "£$€"
CURRENCY_WORDS = {"gbp", "usd", "eur", "pound", "pounds", "quid", "dollar", "dollars", "euro", "euros"}
PER_UNIT_WORDS = {"ea", "each", "per", "pp", "apiece"}
PRICE_PREPOSITIONS = {"at", "@"}

_NUMBER = re.compile(r"^[£$€]?\s*(\d{1,3}(?:,\d{3})+|\d+)(?:\.(\d+))?$")
_INTEGER = re.compile(r"^\d+$")
_PHONE = re.compile(r"^\+?\d{7,15}$")


def is_number_token(token: str) -> bool:
    return bool(token) and _NUMBER.match(token.strip()) is not None


def is_integer_token(token: str) -> bool:
    return bool(_INTEGER.match(token or ""))


def has_currency_symbol(token: str) -> bool:
    return bool(token) and token[0] in CURRENCY_SYMBOLS


def is_phone_token(token: str) -> bool:
    return bool(_PHONE.match(token or ""))


def parse_number(literal: str) -> Optional[float]:
    """
    Parse one numeric literal after stripping currency symbols and thousands separators.
    Rejects non-positive values. No rounding here.
    """
    if not literal:
        return None
    m = _NUMBER.match(literal.strip())
    if not m:
        return None
    whole = m.group(1).replace(",", "")
    frac = m.group(2)
    try:
        value = float(f"{whole}.{frac}") if frac else float(whole)
    except ValueError:
        return None
    return value if value > 0 else None


def round_money(value: Optional[float]) -> Optional[float]:
    if value is None:
        return None
    return round(float(value), 2)
