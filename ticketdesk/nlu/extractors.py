# Role: Token-level field extraction shared by all matchers. Works on the whitespace-collapsed original text
# (case preserved for names) and tracks which tokens each extractor consumed, so later extractors
# (event phrase, fallback amount) only see what is left.

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ticketdesk.nlu.amounts import (
    CURRENCY_SYMBOLS,
    CURRENCY_WORDS,
    PER_UNIT_WORDS,
    PRICE_PREPOSITIONS,
    has_currency_symbol,
    is_integer_token,
    is_number_token,
    is_phone_token,
    parse_number,
)
from ticketdesk.nlu.normalizer import KNOWN_CLUBS, collapse_whitespace, expand_nicknames, split_punct

ROLE_WORDS = {"trader", "vendor", "customer", "supplier", "broker", "agent", "client", "partner", "member"}
TICKET_WORDS = {"ticket", "tickets", "tix"}
SEPARATOR_WORDS = {"vs", "vs.", "v", "v.", "@"}

AREA_SIDES = {"short": "Shortside", "shortside": "Shortside", "long": "Longside", "longside": "Longside"}
AREA_LEVELS = {"upper", "lower", "hospitality", "central", "middle"}
AREA_WORDS = set(AREA_SIDES) | AREA_LEVELS | {"side", "area", "section", "stand", "block", "row", "seat", "seats"}

STRUCTURAL_WORDS = {
    # verbs
    "bought", "buy", "buying", "purchase", "purchased", "sold", "sell", "selling", "sale",
    "paid", "pay", "payment", "made", "transferred", "transfer", "sent", "send",
    "received", "receive", "got", "get", "charged", "charge", "charges", "deducted",
    "create", "add", "new", "owes", "owe", "owed", "owing",
    # prepositions, articles, pronouns
    "from", "to", "for", "at", "with", "by", "via", "using", "through", "into", "in", "on", "of",
    "and", "or", "the", "a", "an", "i", "me", "my", "we", "us", "our", "you", "your", "he", "she",
    "they", "them", "him", "her", "it", "is", "are", "was", "were", "be", "this", "that", "these",
    "those", "just", "also", "please", "some", "back", "off", "total", "today", "yesterday",
    "tonight", "tomorrow", "game", "match", "fixture", "how", "much", "what", "whats", "what's",
    "who", "does", "do", "did", "show", "tell", "give", "about",
    # domain nouns
    "ea", "each", "per", "pp", "apiece", "bank", "account", "cash", "money", "cost", "price",
    "salary", "salaries", "staff", "wages", "fee", "fees", "subscription", "api", "usage", "bot",
    "ai", "monthly", "profit", "loss", "p&l", "pnl", "balance", "position", "summary",
    "transactions", "transaction", "recent", "activity", "counterparty", "contact", "called",
    "named", "name", "phone", "number", "mobile", "role", "email",
} | TICKET_WORDS | SEPARATOR_WORDS | CURRENCY_WORDS | ROLE_WORDS | AREA_WORDS

NAME_FILLERS = {"to", "from", "the", "a", "an", "with", "by", "back", "named", "called", "name", "is", "new", ":"}

_NAME_TOKEN = re.compile(r"^[A-Za-z][A-Za-z'’.\-]*$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
_MAX_NAME_TOKENS = 4
_QUANTITY_WINDOW = 5


class Utterance:
    """
    One operator message split into tokens. `cores` drop edge punctuation, `words` are lowercased cores.
    Extractors mark token indexes as consumed so the event phrase is what remains.
    """

    def __init__(self, text: str) -> None:
        self.raw = collapse_whitespace(text)
        self.tokens: List[str] = self.raw.split(" ") if self.raw else []
        parts = [split_punct(t) for t in self.tokens]
        self.cores: List[str] = [p[1] for p in parts]
        self.trails: List[str] = [p[2] for p in parts]
        self.words: List[str] = [c.lower() for c in self.cores]
        self.lower = " ".join(self.words)
        self.consumed: Set[int] = set()

        letters = [ch for ch in self.raw if ch.isalpha()]
        # Key line: all-caps or all-lowercase input is matched case-insensitively.
        self.mixed_case = any(ch.isupper() for ch in letters) and any(ch.islower() for ch in letters)

    def __len__(self) -> int:
        return len(self.tokens)

    @property
    def is_empty(self) -> bool:
        return not self.tokens

    def has_word(self, *words: str) -> bool:
        wanted = set(words)
        return any(w in wanted for w in self.words)

    def has_phrase(self, *phrases: str) -> bool:
        padded = f" {self.lower} "
        return any(f" {p} " in padded for p in phrases)

    def indexes_of(self, words: Iterable[str]) -> List[int]:
        wanted = set(words)
        return [i for i, w in enumerate(self.words) if w in wanted]

    def consume(self, *indexes: int) -> None:
        self.consumed.update(i for i in indexes if 0 <= i < len(self.tokens))

    def free(self, i: int) -> bool:
        return 0 <= i < len(self.tokens) and i not in self.consumed

    def word(self, i: int) -> str:
        return self.words[i] if 0 <= i < len(self.words) else ""


# -----------------------------
# Names
# -----------------------------

def _is_name_token(utt: Utterance, i: int, strict_case: bool) -> bool:
    if not utt.free(i):
        return False
    core = utt.cores[i]
    if not _NAME_TOKEN.match(core):
        return False
    if utt.words[i] in STRUCTURAL_WORDS or utt.words[i] in KNOWN_CLUBS:
        return False
    if strict_case and not core[0].isupper():
        return False
    return True


def _run_forward(utt: Utterance, start: int, strict_case: bool) -> List[int]:
    run: List[int] = []
    i = start
    while i < len(utt) and len(run) < _MAX_NAME_TOKENS and _is_name_token(utt, i, strict_case):
        run.append(i)
        # "Ali Saad, trader" -> a comma ends the name
        if utt.trails[i] and utt.trails[i] not in {".", "'"}:
            break
        i += 1
    return run


def _run_backward(utt: Utterance, end: int, strict_case: bool) -> List[int]:
    run: List[int] = []
    i = end
    while i >= 0 and len(run) < _MAX_NAME_TOKENS and _is_name_token(utt, i, strict_case):
        if run and utt.trails[i] and utt.trails[i] not in {".", "'"}:
            break
        run.insert(0, i)
        i -= 1
    return run


def _skip_fillers(utt: Utterance, i: int, fillers: Set[str]) -> int:
    hops = 0
    while i < len(utt) and utt.words[i] in fillers and hops < 3:
        i += 1
        hops += 1
    return i


def _take(utt: Utterance, run: List[int]) -> str:
    utt.consume(*run)
    return " ".join(utt.cores[i] for i in run)


def extract_name_after(
    utt: Utterance,
    triggers: Iterable[str],
    fillers: Set[str] = NAME_FILLERS,
) -> Optional[str]:
    """
    Longest run of name-like tokens right after a trigger word (fillers skipped).
    Mixed-case input needs capitalized tokens first; a lenient pass follows if that finds nothing.
    """
    positions = utt.indexes_of(triggers)
    passes = (True, False) if utt.mixed_case else (False,)
    for strict in passes:
        for pos in positions:
            start = _skip_fillers(utt, pos + 1, fillers)
            run = _run_forward(utt, start, strict)
            if run:
                utt.consume(pos)
                return _take(utt, run)
    return None


def extract_name_before(utt: Utterance, triggers: Iterable[str]) -> Optional[str]:
    positions = utt.indexes_of(triggers)
    passes = (True, False) if utt.mixed_case else (False,)
    for strict in passes:
        for pos in positions:
            run = _run_backward(utt, pos - 1, strict)
            if run:
                utt.consume(pos)
                return _take(utt, run)
    return None


# -----------------------------
# Numbers
# -----------------------------

def _is_free_number(utt: Utterance, i: int) -> bool:
    return utt.free(i) and is_number_token(utt.cores[i])


def extract_quantity(utt: Utterance) -> Optional[int]:
    # Integer followed (within a few words, no other number between) by ticket/tickets/tix.
    for i, core in enumerate(utt.cores):
        if not utt.free(i) or not is_integer_token(core):
            continue
        if utt.word(i + 1) in PER_UNIT_WORDS or utt.word(i + 1) in CURRENCY_WORDS:
            continue
        if utt.word(i - 1) in PRICE_PREPOSITIONS or utt.word(i - 1) in CURRENCY_SYMBOLS:
            continue
        for j in range(i + 1, min(len(utt), i + 2 + _QUANTITY_WINDOW)):
            if is_number_token(utt.cores[j]):
                break
            if utt.words[j] in TICKET_WORDS:
                qty = int(core)
                if qty >= 1:
                    utt.consume(i)
                    return qty
                break

    # "qty 2" / "quantity: 2"
    for i in utt.indexes_of({"qty", "quantity"}):
        j = i + 1
        if _is_free_number(utt, j) and is_integer_token(utt.cores[j]):
            utt.consume(i, j)
            return int(utt.cores[j])
    return None


def extract_amount(utt: Utterance) -> Tuple[Optional[float], bool]:
    """
    Returns (amount, per_unit). Priority:
      1) currency-marked literal (£100, 100 GBP, £ 100)
      2) per-unit or priced literal (100 ea, 100 each, at 100, @ 100)
      3) first remaining numeric literal
    """
    marked: List[int] = []
    priced: List[int] = []
    plain: List[int] = []

    for i, core in enumerate(utt.cores):
        if not _is_free_number(utt, i):
            continue
        prev_word = utt.word(i - 1)
        next_word = utt.word(i + 1)
        if has_currency_symbol(core) or next_word in CURRENCY_WORDS or prev_word in CURRENCY_WORDS or (
            prev_word and prev_word in CURRENCY_SYMBOLS
        ):
            marked.append(i)
        elif next_word in PER_UNIT_WORDS or prev_word in PRICE_PREPOSITIONS or prev_word == "for":
            priced.append(i)
        else:
            plain.append(i)

    for bucket in (marked, priced, plain):
        for i in bucket:
            value = parse_number(utt.cores[i])
            if value is None:
                continue
            utt.consume(i)
            per_unit = _is_per_unit(utt, i)
            return value, per_unit
    return None, False


def _is_per_unit(utt: Utterance, i: int) -> bool:
    following = [utt.word(i + 1), utt.word(i + 2)]
    if following[0] in PER_UNIT_WORDS:
        return True
    # "100 gbp each"
    if following[0] in CURRENCY_WORDS and following[1] in PER_UNIT_WORDS:
        return True
    prev_word = utt.word(i - 1)
    if prev_word in CURRENCY_SYMBOLS:
        prev_word = utt.word(i - 2)
    return prev_word in PRICE_PREPOSITIONS


def extract_phone(utt: Utterance) -> Optional[str]:
    for i, core in enumerate(utt.cores):
        if utt.free(i) and is_phone_token(core):
            utt.consume(i)
            return core
    return None


def extract_email(utt: Utterance) -> Optional[str]:
    for i, core in enumerate(utt.cores):
        if utt.free(i) and _EMAIL.match(core):
            utt.consume(i)
            return core
    return None


# -----------------------------
# Seats / area / bank / role
# -----------------------------

def extract_seat_details(utt: Utterance) -> Dict[str, str]:
    details: Dict[str, str] = {}
    for key, words in (("block", {"block"}), ("row", {"row"}), ("seats", {"seat", "seats"})):
        for i in utt.indexes_of(words):
            j = i + 1
            if utt.free(i) and utt.free(j) and utt.words[j] not in STRUCTURAL_WORDS:
                details[key] = utt.cores[j]
                utt.consume(i, j)
                break
    return details


def extract_area(utt: Utterance) -> Optional[str]:
    # 1) Known stadium phrases: "short upper", "longside lower", "short side hospitality"
    for i, word in enumerate(utt.words):
        if not utt.free(i) or word not in AREA_SIDES:
            continue
        j = i + 1
        if utt.word(j) == "side":
            j += 1
        if utt.word(j) in AREA_LEVELS and utt.free(j):
            utt.consume(*range(i, j + 1))
            return f"{AREA_SIDES[word]} {utt.words[j].title()}"

    # 2) A lone level word that only makes sense as an area
    for i, word in enumerate(utt.words):
        if utt.free(i) and word == "hospitality":
            utt.consume(i)
            return "Hospitality"

    # 3) Explicit "area X" / "section X"
    for i in utt.indexes_of({"area", "section", "stand"}):
        j = _skip_fillers(utt, i + 1, {":", "is"})
        if utt.free(i) and utt.free(j) and utt.words[j] not in STRUCTURAL_WORDS - AREA_LEVELS:
            taken = [j]
            if utt.free(j + 1) and utt.word(j + 1) in AREA_LEVELS:
                taken.append(j + 1)
            utt.consume(i, *taken)
            return " ".join(utt.cores[k] for k in taken)
    return None


_BANK_TRIGGERS_OUT = ("from", "via", "using", "through", "with", "by")
_BANK_TRIGGERS_IN = ("into", "to", "via", "using", "through", "in")


def extract_bank(utt: Utterance, incoming: bool = False) -> Optional[str]:
    for i, word in enumerate(utt.words):
        if utt.free(i) and word == "cash":
            utt.consume(i)
            return "Cash"

    triggers = _BANK_TRIGGERS_IN if incoming else _BANK_TRIGGERS_OUT
    name = extract_name_after(utt, triggers, fillers={"the", "a", "my", "our"})
    if name:
        for i in utt.indexes_of({"bank", "account"}):
            utt.consume(i)
        return name

    return extract_name_before(utt, {"bank", "account"})


def extract_role(utt: Utterance) -> Optional[str]:
    # "is a supplier" wins; otherwise the first role word anywhere.
    for i, word in enumerate(utt.words):
        if word == "is" and utt.word(i + 1) in {"a", "an"} and utt.word(i + 2) in ROLE_WORDS:
            utt.consume(i, i + 1, i + 2)
            return utt.words[i + 2]
    for i, word in enumerate(utt.words):
        if word in ROLE_WORDS and utt.free(i):
            utt.consume(i)
            return word
    return None


# -----------------------------
# Event phrase
# -----------------------------

def extract_event_query(utt: Utterance, extra_stop: Sequence[str] = ()) -> Optional[str]:
    """
    What is left after the other extractors ran: unconsumed tokens minus structural words,
    keeping versus separators between team words. Nicknames are expanded, case preserved.
    """
    stop = STRUCTURAL_WORDS - SEPARATOR_WORDS | set(extra_stop)
    kept: List[str] = []
    for i, core in enumerate(utt.cores):
        if not utt.free(i) or not core:
            continue
        word = utt.words[i]
        if word in SEPARATOR_WORDS:
            kept.append(core)
            continue
        if word in stop or is_number_token(core) or word in CURRENCY_SYMBOLS:
            continue
        if not any(ch.isalpha() for ch in core):
            continue
        kept.append(core)

    while kept and kept[0].lower() in SEPARATOR_WORDS:
        kept.pop(0)
    while kept and kept[-1].lower() in SEPARATOR_WORDS:
        kept.pop()
    if not kept:
        return None
    return expand_nicknames(" ".join(kept))


def looks_like_event_phrase(text: str) -> bool:
    utt = Utterance(text)
    if any(w in SEPARATOR_WORDS for w in utt.words[1:-1]) or utt.has_word("versus"):
        return True
    return any(w in KNOWN_CLUBS for w in utt.words)
