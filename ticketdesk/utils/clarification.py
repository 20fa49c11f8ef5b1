# Role: Deterministic "one question" builder. Converts the first missing field into a single user-facing
# question, worded for the kind of draft being filled in.

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import ticketdesk.config as config
from ticketdesk.models.drafts import TransactionDraft
from ticketdesk.models.entities import DirectoryEntry, EntityCandidate
from ticketdesk.models.intent import IntentKind, MissingField, TransactionType

logger = logging.getLogger(__name__)

UNDERSTOOD_EXAMPLES = (
    '• "Bought 2 tickets from Benny for Arsenal vs Spurs at £100 each"\n'
    '• "Sold 2 tickets to John for Chelsea vs Leeds Longside Lower 150 ea"\n'
    '• "Paid Benny £3,250 from HSBC"\n'
    "• \"What's my profit for Arsenal vs Spurs?\"\n"
    "• \"What's my balance with Benny?\""
)


def not_understood_message() -> str:
    return "I didn't quite understand that. Try commands like:\n" + UNDERSTOOD_EXAMPLES


def _bank_list(banks: Optional[Sequence[DirectoryEntry]]) -> str:
    if not banks:
        return ""
    names = ", ".join(b.name for b in banks[:6])
    return f" Available accounts: {names}."


def build_clarification_question(
    missing_info: List[MissingField],
    kind: Optional[IntentKind] = None,
    draft=None,
    banks: Optional[Sequence[DirectoryEntry]] = None,
) -> str:
    # Step 1: log missing_info in debug mode (helps trace dialog state).
    if config.DEBUG:
        logger.debug("CLARIFICATION_BUILDER missing_info=%s kind=%s", [m.value for m in missing_info], kind)

    if not missing_info:
        return "Anything else you'd like to change before I save this?"

    first = missing_info[0]
    tx_type = draft.transaction_type if isinstance(draft, TransactionDraft) else None

    # Step 2: map field -> one friendly question.
    if first == MissingField.COUNTERPARTY:
        if kind == IntentKind.PURCHASE:
            return "Who did you buy the tickets from?"
        if kind == IntentKind.ORDER:
            return "Who did you sell the tickets to?"
        if kind == IntentKind.QUERY_VENDOR_BALANCE:
            return "Which counterparty do you want the balance for?"
        if tx_type == TransactionType.SALARY:
            return "Who is this salary for?"
        if tx_type == TransactionType.PAYMENT_RECEIVED:
            return "Who was the payment from?"
        return "Who is the counterparty for this payment?"

    if first == MissingField.EVENT:
        if kind == IntentKind.QUERY_PROFIT_LOSS:
            return "Which match are you asking about?"
        return "Which match are the tickets for? (e.g. Arsenal vs Spurs)"

    if first == MissingField.QUANTITY:
        return "How many tickets?"

    if first == MissingField.AREA:
        return "Which area or section? (e.g. Shortside Upper)"

    if first == MissingField.AMOUNT:
        if kind == IntentKind.PURCHASE:
            return "What did they cost? (a total, or per ticket like \"100 each\")"
        if kind == IntentKind.ORDER:
            return "What was the selling price? (a total, or per ticket like \"150 each\")"
        return "How much was the payment?"

    if first == MissingField.BANK:
        if tx_type == TransactionType.BANK_CHARGE:
            return "Which bank charged you?" + _bank_list(banks)
        if tx_type == TransactionType.PAYMENT_RECEIVED:
            return "Which account did the money go into? (or say cash)" + _bank_list(banks)
        return "Was this paid by cash or bank transfer? If bank, which account?" + _bank_list(banks)

    if first == MissingField.DIRECTION:
        return "Was this a payment you made or received?"

    if first == MissingField.NAME:
        return "What's the counterparty's name?"

    if first == MissingField.PHONE:
        return "What's their phone number? (e.g. +447700900123)"

    return "What's one more detail I need to complete this?"


def build_disambiguation_question(field: MissingField, typed: str, candidates: Sequence[EntityCandidate]) -> str:
    what = {
        MissingField.COUNTERPARTY: "counterparties",
        MissingField.BANK: "bank accounts",
        MissingField.EVENT: "matches",
    }.get(field, "options")

    lines = [f'I found several {what} matching "{typed}". Which one did you mean?']
    for i, candidate in enumerate(candidates, start=1):
        suffix = f" ({candidate.date[:10]})" if candidate.date else ""
        lines.append(f"{i}. {candidate.display_name}{suffix}")
    if field == MissingField.COUNTERPARTY:
        lines.append('Reply with a number or name, or say "new" to create a new counterparty.')
    else:
        lines.append("Reply with a number or name.")
    return "\n".join(lines)


def build_not_found_question(field: MissingField, typed: str, banks: Optional[Sequence[DirectoryEntry]] = None) -> str:
    if field == MissingField.COUNTERPARTY:
        return (
            f'I couldn\'t find a counterparty called "{typed}". '
            'Say "create" to add them as a new counterparty, or type the name again.'
        )
    if field == MissingField.BANK:
        return f'I couldn\'t find a bank account called "{typed}".' + _bank_list(banks) + " Which account was it?"
    return f'No event found for "{typed}". Which match is it? (e.g. Arsenal vs Spurs)'
