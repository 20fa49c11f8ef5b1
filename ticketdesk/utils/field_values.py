# Role: Reads a follow-up reply as the value of ONE awaited field (no re-classification).
# Returns draft updates for apply_updates(), or None when the reply does not have the field's shape.

from __future__ import annotations

import re
from typing import Any, Dict, Optional

from ticketdesk.models.intent import MissingField
from ticketdesk.nlu.amounts import is_integer_token, is_phone_token
from ticketdesk.nlu.extractors import (
    Utterance,
    extract_amount,
    extract_area,
    extract_event_query,
    extract_quantity,
)
from ticketdesk.nlu.normalizer import collapse_whitespace, split_punct

_LEADING_FILLERS = re.compile(
    r"^(?:(?:it\s+was|it's|its|that's|thats|from|to|with|via|using|the|called|named|name\s+is|his\s+name\s+is|"
    r"her\s+name\s+is|for|in|into|is|bank|account)\s+)+",
    re.IGNORECASE,
)
_TRAILING_FILLERS = re.compile(r"\s+(?:bank|account|please|thanks|thank\s+you)$", re.IGNORECASE)
_OUT_WORDS = {"made", "paid", "out", "sent", "outgoing", "payment", "i paid", "we paid"}
_IN_WORDS = {"received", "in", "incoming", "got", "receipt", "they paid"}


def _free_text(text: str, max_words: int = 6) -> Optional[str]:
    cleaned = collapse_whitespace(text).strip(" .,!?:;\"'")
    cleaned = _LEADING_FILLERS.sub("", cleaned)
    cleaned = _TRAILING_FILLERS.sub("", cleaned).strip(" .,!?:;\"'")
    if not cleaned or not any(ch.isalpha() for ch in cleaned):
        return None
    if len(cleaned.split(" ")) > max_words:
        return None
    return cleaned


def _parse_amount(text: str) -> Optional[Dict[str, Any]]:
    amount, per_unit = extract_amount(Utterance(text))
    if amount is None:
        return None
    return {"amount": amount, "per_ticket": per_unit}


def _parse_quantity(text: str) -> Optional[Dict[str, Any]]:
    utt = Utterance(text)
    quantity = extract_quantity(utt)
    if quantity is None:
        integers = [c for c in utt.cores if is_integer_token(c)]
        if len(integers) == 1:
            quantity = int(integers[0])
    if quantity is None or quantity < 1:
        return None
    return {"quantity": quantity}


def _parse_area(text: str) -> Optional[Dict[str, Any]]:
    area = extract_area(Utterance(text))
    if area is None:
        area = _free_text(text, max_words=4)
    return {"area": area} if area else None


def _parse_event(text: str) -> Optional[Dict[str, Any]]:
    utt = Utterance(text)
    query = extract_event_query(utt)
    return {"event_query": query} if query else None


def _parse_bank(text: str) -> Optional[Dict[str, Any]]:
    if re.search(r"\bcash\b", text, re.IGNORECASE):
        return {"bank_name": "Cash", "mode": "standard"}
    name = _free_text(text, max_words=4)
    return {"bank_name": name, "mode": "standard"} if name else None


def _parse_direction(text: str) -> Optional[Dict[str, Any]]:
    low = collapse_whitespace(text).lower().strip(" .!?")
    if low in _IN_WORDS or any(w in low.split() for w in ("received", "incoming", "receipt")):
        return {"direction": "in"}
    if low in _OUT_WORDS or any(w in low.split() for w in ("made", "paid", "sent", "outgoing")):
        return {"direction": "out"}
    return None


def _parse_phone(text: str) -> Optional[Dict[str, Any]]:
    # "+44 7700 900123" -> "+447700900123"
    compact = re.sub(r"[\s\-().]", "", text or "")
    for token in (compact, *collapse_whitespace(text).split(" ")):
        core = split_punct(token)[1]
        if is_phone_token(core):
            return {"phone": core}
    return None


def parse_field_value(field: MissingField, text: str) -> Optional[Dict[str, Any]]:
    """
    Interpret `text` only as a value for `field`.
    Counterparty/name replies are free text; numeric fields need a number of the right shape.
    """
    if not text or not text.strip():
        return None

    if field == MissingField.AMOUNT:
        return _parse_amount(text)
    if field == MissingField.QUANTITY:
        return _parse_quantity(text)
    if field == MissingField.AREA:
        return _parse_area(text)
    if field == MissingField.EVENT:
        return _parse_event(text)
    if field == MissingField.BANK:
        return _parse_bank(text)
    if field == MissingField.DIRECTION:
        return _parse_direction(text)
    if field == MissingField.PHONE:
        return _parse_phone(text)
    if field == MissingField.COUNTERPARTY:
        name = _free_text(text, max_words=5)
        return {"counterparty_name": name} if name else None
    if field == MissingField.NAME:
        name = _free_text(text, max_words=5)
        return {"name": name} if name else None
    return None
