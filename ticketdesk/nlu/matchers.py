# Role: The ordered dispatch table of pure matchers. Each matcher looks at one utterance and either returns
# an IntentResult (kind + typed draft + missing fields) or None. Order is priority: the classifier takes
# the first confident result and never consults lower matchers.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from ticketdesk.core.validator import SYSTEM_COUNTERPARTY, missing_fields, uses_bank_mode
from ticketdesk.models.drafts import CounterpartyDraft, QueryDraft, TransactionDraft
from ticketdesk.models.intent import IntentKind, ManualCategory, MissingField, TransactionType
from ticketdesk.nlu.extractors import (
    NAME_FILLERS,
    ROLE_WORDS,
    Utterance,
    extract_amount,
    extract_area,
    extract_bank,
    extract_email,
    extract_event_query,
    extract_name_after,
    extract_name_before,
    extract_phone,
    extract_quantity,
    extract_role,
    extract_seat_details,
    looks_like_event_phrase,
)


@dataclass(frozen=True)
class IntentResult:
    kind: IntentKind
    confidence: float
    payload: Optional[object] = None
    missing_fields: List[MissingField] = field(default_factory=list)
    explanation: str = ""
    transaction_type: Optional[TransactionType] = None


@dataclass(frozen=True)
class MatchContext:
    # User messages of the current tile, oldest first (the message being classified excluded).
    recent_user_messages: Tuple[str, ...] = ()


Matcher = Callable[[Utterance, MatchContext], Optional[IntentResult]]

UNKNOWN = IntentResult(kind=IntentKind.UNKNOWN, confidence=0.0, explanation="No matcher recognised the message")

_GREETING = re.compile(
    r"^(hi|hello|hey|hiya|howdy|greetings|good morning|good afternoon|good evening|what's up|whats up|sup|yo)\b"
)

_BUY_VERBS = {"bought", "buy", "buying", "purchase", "purchased"}
_SELL_VERBS = {"sold", "sell", "selling"}
_PAY_OUT_VERBS = {"paid", "pay", "paying", "transferred", "transfer", "sent"}
_PAY_IN_VERBS = {"received", "receive"}
_SALARY_WORDS = {"salary", "salaries", "wages"}
_FEE_WORDS = {"fee", "fees", "subscription"}
_BANK_CHARGE_PHRASES = ("bank charge", "bank charges", "bank charged", "charged by", "bank fee", "bank fees", "bank deducted")
_CREATE_VERBS = {"create", "add", "new", "register"}
_CREATE_NOUNS = {"counterparty", "contact"} | ROLE_WORDS
_PROFIT_WORDS = {"profit", "p&l", "pnl"}
_PROFIT_PHRASES = ("p & l", "profit and loss")
_BALANCE_WORDS = {"owes", "owe", "owed", "owing"}
_BALANCE_PHRASES = ("position with", "balance with", "balance for", "balance of", "position on")
# "between me and Benny": the pronoun side is skipped
_BETWEEN_FILLERS = NAME_FILLERS | {"me", "us", "and"}
_GENERIC_WORDS = {"summary", "transactions"}
_GENERIC_PHRASES = ("recent activity",)

_TRIGGER_VOCAB = (
    _BUY_VERBS | _SELL_VERBS | _PAY_OUT_VERBS | _PAY_IN_VERBS | _SALARY_WORDS | _FEE_WORDS
    | _CREATE_VERBS | _PROFIT_WORDS | _BALANCE_WORDS | _GENERIC_WORDS | {"balance", "position", "tickets"}
)


def _result(kind: IntentKind, confidence: float, draft, explanation: str) -> IntentResult:
    return IntentResult(
        kind=kind,
        confidence=confidence,
        payload=draft,
        missing_fields=missing_fields(kind, draft),
        explanation=explanation,
        transaction_type=getattr(draft, "transaction_type", None),
    )


# -----------------------------
# 1) Greeting
# -----------------------------

def match_greeting(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    m = _GREETING.match(utt.lower)
    if not m:
        return None
    rest = utt.lower[m.end():].split()
    # Key line: "hey, bought 2 tickets..." is a request, not a greeting.
    if len(rest) > 4 or any(w in _TRIGGER_VOCAB or any(ch.isdigit() for ch in w) for w in rest):
        return None
    return IntentResult(kind=IntentKind.GREETING, confidence=1.0, explanation="Greeting")


# -----------------------------
# 2) Create counterparty
# -----------------------------

def _declared_role_index(utt: Utterance) -> Optional[int]:
    for i, word in enumerate(utt.words):
        if word == "is" and utt.word(i + 1) in {"a", "an"} and utt.word(i + 2) in ROLE_WORDS:
            return i
    return None


def _explicit_create(utt: Utterance) -> bool:
    # "create new counterparty", "add contact", "new trader": the noun follows the verb closely
    for i in utt.indexes_of(_CREATE_VERBS):
        if any(utt.word(j) in _CREATE_NOUNS for j in (i + 1, i + 2)):
            return True
    return False


def match_create_counterparty(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    explicit = _explicit_create(utt)
    declared_at = _declared_role_index(utt)
    if not explicit and declared_at is None:
        return None

    phone = extract_phone(utt)
    email = extract_email(utt)
    role = extract_role(utt) or "trader"

    name = None
    if declared_at is not None:
        name = extract_name_before(utt, {"is"})
    if not name:
        name = extract_name_after(utt, _CREATE_NOUNS)
    if not name:
        name = extract_name_after(utt, {"named", "called", "name"})

    draft = CounterpartyDraft(name=name, phone=phone, role=role, email=email)
    return _result(
        IntentKind.CREATE_COUNTERPARTY,
        0.9,
        draft,
        f"Create {role} {name or '(unnamed)'}",
    )


# -----------------------------
# 3/4) Buy and sell
# -----------------------------

def _extract_order_number(utt: Utterance) -> Optional[str]:
    for i in utt.indexes_of({"order", "ref", "reference"}):
        j = i + 1
        if utt.word(j) in {"#", "no", "number", ":"}:
            j += 1
        core = utt.cores[j].lstrip("#") if j < len(utt) else ""
        if utt.free(j) and any(ch.isdigit() for ch in core):
            utt.consume(i, j)
            return core
    return None


def _inventory_draft(utt: Utterance, tx_type: TransactionType, name_triggers: Sequence[str]) -> TransactionDraft:
    # Key line: numbers tied to seats/quantity are consumed before the amount is picked.
    seats = extract_seat_details(utt)
    order_number = _extract_order_number(utt) if tx_type == TransactionType.SELL else None
    quantity = extract_quantity(utt)
    area = extract_area(utt)
    amount, per_unit = extract_amount(utt)
    counterparty = extract_name_after(utt, name_triggers)
    event_query = extract_event_query(utt)

    is_buy = tx_type == TransactionType.BUY
    return TransactionDraft(
        transaction_type=tx_type,
        counterparty_name=counterparty,
        quantity=quantity,
        area=area,
        block=seats.get("block"),
        row=seats.get("row"),
        seats=seats.get("seats"),
        event_query=event_query,
        amount=amount,
        per_ticket=per_unit,
        direction="out" if is_buy else "in",
        category=ManualCategory.TICKET_PURCHASE if is_buy else ManualCategory.TICKET_SALE,
        order_number=order_number,
    )


def match_buy(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    if not utt.has_word(*_BUY_VERBS):
        return None
    confidence = 0.9 if utt.has_word("from", "off") else 0.75
    draft = _inventory_draft(utt, TransactionType.BUY, ("from", "off"))
    return _result(IntentKind.PURCHASE, confidence, draft, f"Purchase from {draft.counterparty_name or '(unknown)'}")


def match_sell(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    if not utt.has_word(*_SELL_VERBS):
        return None
    confidence = 0.9 if utt.has_word("to") else 0.75
    draft = _inventory_draft(utt, TransactionType.SELL, ("to",))
    return _result(IntentKind.ORDER, confidence, draft, f"Sale to {draft.counterparty_name or '(unknown)'}")


# -----------------------------
# 5) Payment made / received
# -----------------------------

def _has_manual_subtype(utt: Utterance) -> bool:
    return (
        utt.has_word(*_SALARY_WORDS)
        or utt.has_word(*_FEE_WORDS)
        or utt.has_phrase(*_BANK_CHARGE_PHRASES)
        or utt.has_phrase("api usage")
    )


def _is_paid_me(utt: Utterance) -> Optional[int]:
    # "Benny paid me 500"
    for i, word in enumerate(utt.words):
        if word in {"paid", "sent", "transferred"} and utt.word(i + 1) in {"me", "us"} and i > 0:
            return i
    return None


def _manual_draft(
    utt: Utterance,
    tx_type: TransactionType,
    direction: str,
    category: ManualCategory,
    counterparty: Optional[str],
    bank: Optional[str],
    amount: Optional[float],
    notes: Optional[str] = None,
) -> TransactionDraft:
    draft = TransactionDraft(
        transaction_type=tx_type,
        counterparty_name=counterparty,
        amount=amount,
        direction=direction,
        category=category,
        bank_name=bank,
        notes=notes,
    )
    draft.mode = "standard" if uses_bank_mode(draft) else "journal_voucher"
    return draft


def match_payment(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    paid_me_at = _is_paid_me(utt)
    incoming = (
        utt.has_word(*_PAY_IN_VERBS)
        or utt.has_phrase("got paid", "payment received", "payment from")
        or paid_me_at is not None
    )
    outgoing = utt.has_word(*_PAY_OUT_VERBS) or utt.has_phrase("payment made", "payment to")
    if not (incoming or outgoing):
        return None
    # Salary, fee and bank-charge shapes have their own matchers further down.
    if _has_manual_subtype(utt):
        return None

    amount, _ = extract_amount(utt)
    if incoming:
        counterparty = None
        if paid_me_at is not None:
            counterparty = extract_name_before(utt, {utt.words[paid_me_at]})
        if not counterparty:
            counterparty = extract_name_after(utt, ("from", "by", "received", "receive"))
        bank = extract_bank(utt, incoming=True)
        tx_type, direction = TransactionType.PAYMENT_RECEIVED, "in"
    else:
        counterparty = extract_name_after(utt, tuple(_PAY_OUT_VERBS) + ("to", "payment"))
        bank = extract_bank(utt)
        tx_type, direction = TransactionType.PAYMENT_MADE, "out"

    draft = _manual_draft(utt, tx_type, direction, ManualCategory.OTHER, counterparty, bank, amount)
    verb = "received from" if incoming else "made to"
    return _result(
        IntentKind.MANUAL_TRANSACTION,
        0.85,
        draft,
        f"Payment {verb} {counterparty or '(unknown)'}",
    )


# -----------------------------
# 6) Bank charge
# -----------------------------

def match_bank_charge(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    if not utt.has_phrase(*_BANK_CHARGE_PHRASES):
        return None
    amount, _ = extract_amount(utt)
    bank = extract_bank(utt)
    draft = TransactionDraft(
        transaction_type=TransactionType.BANK_CHARGE,
        # Key line: the bank itself is the counterparty of a charge.
        counterparty_name=bank,
        bank_name=bank,
        amount=amount,
        direction="out",
        category=ManualCategory.OTHER,
        mode="standard",
        notes="Bank charges",
    )
    return _result(IntentKind.MANUAL_TRANSACTION, 0.8, draft, f"Bank charge from {bank or '(unknown bank)'}")


# -----------------------------
# 7) Salary
# -----------------------------

def match_salary(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    if not utt.has_word(*_SALARY_WORDS):
        return None
    if not (utt.has_word(*_PAY_OUT_VERBS) or utt.has_word("staff", "payment")):
        return None

    amount, _ = extract_amount(utt)
    counterparty = extract_name_after(utt, tuple(_PAY_OUT_VERBS) + ("to", "for"))
    bank = extract_bank(utt)
    draft = _manual_draft(
        utt,
        TransactionType.SALARY,
        "out",
        ManualCategory.SALARY,
        counterparty,
        bank,
        amount,
        notes="Salary payment",
    )
    return _result(IntentKind.MANUAL_TRANSACTION, 0.85, draft, f"Salary for {counterparty or 'staff'}")


# -----------------------------
# 8) Fee
# -----------------------------

def match_fee(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    if not (utt.has_word(*_FEE_WORDS) or utt.has_phrase("api usage")):
        return None

    if utt.has_word("bot"):
        notes, category = "AI Bot Fee", ManualCategory.AI_BOT
    elif utt.has_word("api"):
        notes, category = "API Usage Fee", ManualCategory.OTHER
    else:
        notes, category = "Subscription Fee", ManualCategory.OTHER

    amount, _ = extract_amount(utt)
    counterparty = extract_name_after(utt, tuple(_PAY_OUT_VERBS) + ("to", "for")) or SYSTEM_COUNTERPARTY
    bank = extract_bank(utt)
    draft = _manual_draft(utt, TransactionType.FEE, "out", category, counterparty, bank, amount, notes=notes)
    return _result(IntentKind.MANUAL_TRANSACTION, 0.8, draft, notes)


# -----------------------------
# 9) Profit / loss query
# -----------------------------

def _event_from(text: str) -> Optional[str]:
    utt = Utterance(text)
    extract_seat_details(utt)
    extract_quantity(utt)
    extract_area(utt)
    extract_amount(utt)
    extract_name_after(utt, ("from", "to", "off"))
    return extract_event_query(utt)


def match_profit_query(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    if not (utt.has_word(*_PROFIT_WORDS) or utt.has_phrase(*_PROFIT_PHRASES)):
        return None

    event_query = extract_event_query(utt, extra_stop=("break", "down", "make", "and"))
    explanation = "Profit/loss query"
    if not event_query:
        # "profit on the match?" -> most recent event phrase in this tile
        for previous in reversed(ctx.recent_user_messages):
            if looks_like_event_phrase(previous):
                event_query = _event_from(previous)
                if event_query:
                    explanation = "Profit/loss query (event taken from earlier in the conversation)"
                    break

    draft = QueryDraft(query_type="profit", event_query=event_query)
    return _result(IntentKind.QUERY_PROFIT_LOSS, 0.85 if event_query else 0.6, draft, explanation)


# -----------------------------
# 10) Balance query
# -----------------------------

def match_balance_query(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    phrase = utt.has_phrase(*_BALANCE_PHRASES)
    if not (phrase or utt.has_word(*_BALANCE_WORDS) or utt.has_word("balance", "position")):
        return None

    name = None
    if phrase:
        name = extract_name_after(utt, ("with", "for", "of", "on"))
    if not name:
        name = extract_name_before(utt, _BALANCE_WORDS | {"balance", "position"})
    if not name:
        name = extract_name_after(utt, _BALANCE_WORDS)
    if not name:
        name = extract_name_after(utt, ("between", "and"), fillers=_BETWEEN_FILLERS)

    draft = QueryDraft(query_type="balance", counterparty_name=name)
    return _result(IntentKind.QUERY_VENDOR_BALANCE, 0.85, draft, f"Balance with {name or '(unknown)'}")


# -----------------------------
# 11) Generic query
# -----------------------------

def match_generic_query(utt: Utterance, ctx: MatchContext) -> Optional[IntentResult]:
    if not (utt.has_word(*_GENERIC_WORDS) or utt.has_phrase(*_GENERIC_PHRASES)):
        return None
    return _result(IntentKind.QUERY, 0.6, QueryDraft(query_type="generic"), "Transactions summary")


MATCHERS: List[Tuple[str, Matcher]] = [
    ("greeting", match_greeting),
    ("create_counterparty", match_create_counterparty),
    ("buy", match_buy),
    ("sell", match_sell),
    ("payment", match_payment),
    ("bank_charge", match_bank_charge),
    ("salary", match_salary),
    ("fee", match_fee),
    ("profit_query", match_profit_query),
    ("balance_query", match_balance_query),
    ("generic_query", match_generic_query),
]
