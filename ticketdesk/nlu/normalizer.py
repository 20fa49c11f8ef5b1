# Role: Deterministic text normalization shared by every matcher and by the candidate-query builder.
# Lowercases, collapses whitespace, and expands team nicknames to canonical club names (fixed defaults).

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, List, Tuple

_WS = re.compile(r"\s+")
_EDGE_PUNCT = re.compile(r"^([\"'(\[]*)(.*?)([\"'?!,;:)\].]*)$")

# Key line: ambiguous nicknames map to one fixed club ("blues" is always Chelsea).
NICKNAMES: Dict[str, str] = {
    "spurs": "Tottenham",
    "gunners": "Arsenal",
    "blues": "Chelsea",
    "reds": "Liverpool",
    "whites": "Leeds",
    "toffees": "Everton",
    "hammers": "West Ham",
    "magpies": "Newcastle",
    "villans": "Aston Villa",
    "saints": "Southampton",
    "foxes": "Leicester",
    "wolves": "Wolverhampton",
    "seagulls": "Brighton",
    "cherries": "Bournemouth",
    "utd": "Manchester United",
    "united": "Manchester United",
    "city": "Manchester City",
}

BIGRAM_NICKNAMES: Dict[str, str] = {
    "red devils": "Manchester United",
    "man utd": "Manchester United",
}

# "united"/"city" after one of these is already a full club name.
CLUB_PREFIXES = {
    "manchester", "man", "newcastle", "leeds", "west", "sheffield", "leicester", "norwich",
    "cardiff", "swansea", "birmingham", "coventry", "stoke", "bristol", "hull", "exeter",
    "oxford", "cambridge", "carlisle", "southend", "peterborough", "rotherham", "luton",
}
_PREFIX_SENSITIVE = {"united", "city", "utd"}

KNOWN_CLUBS = {
    "arsenal", "tottenham", "chelsea", "liverpool", "leeds", "everton", "newcastle", "manchester",
    "aston", "villa", "southampton", "leicester", "wolverhampton", "brighton", "bournemouth",
    "fulham", "brentford", "palace", "crystal", "nottingham", "forest", "burnley", "sheffield",
    "luton", "ipswich", "barcelona", "madrid", "juventus", "milan", "inter", "bayern", "psg",
    "celtic", "rangers", "dortmund", "napoli", "ajax", "benfica", "porto",
} | set(NICKNAMES)


@dataclass(frozen=True)
class NormalizedText:
    normalized: str
    tokens: List[str]


def collapse_whitespace(text: str) -> str:
    return _WS.sub(" ", text or "").strip()


def split_punct(token: str) -> Tuple[str, str, str]:
    # "(Spurs)," -> ("(", "Spurs", "),")
    m = _EDGE_PUNCT.match(token)
    if not m:
        return "", token, ""
    return m.group(1), m.group(2), m.group(3)


def _expand(tokens: List[str]) -> List[str]:
    out: List[str] = []
    i = 0
    while i < len(tokens):
        lead, core, trail = split_punct(tokens[i])
        key = core.lower()

        if i + 1 < len(tokens) and not trail:
            lead2, core2, trail2 = split_punct(tokens[i + 1])
            bigram = f"{key} {core2.lower()}"
            if not lead2 and bigram in BIGRAM_NICKNAMES:
                out.append(f"{lead}{BIGRAM_NICKNAMES[bigram]}{trail2}")
                i += 2
                continue

        canonical = NICKNAMES.get(key)
        if canonical and key in _PREFIX_SENSITIVE and i > 0:
            prev = split_punct(tokens[i - 1])[1].lower()
            if prev in CLUB_PREFIXES:
                canonical = None

        out.append(f"{lead}{canonical}{trail}" if canonical else tokens[i])
        i += 1
    return out


def expand_nicknames(text: str) -> str:
    """Case-preserving nickname expansion: "Arsenal Spurs" -> "Arsenal Tottenham"."""
    text = collapse_whitespace(text)
    if not text:
        return ""
    return " ".join(_expand(text.split(" ")))


def normalize(text: str) -> NormalizedText:
    """
    Lowercase, collapse whitespace, trim, and expand nicknames per token.
    Pure and idempotent: normalize(normalize(x).normalized) == normalize(x).
    """
    collapsed = collapse_whitespace(text).lower()
    if not collapsed:
        return NormalizedText(normalized="", tokens=[])

    expanded = " ".join(_expand(collapsed.split(" "))).lower()
    # Key line: canonical names can be multi-word, so re-split after expansion.
    tokens = expanded.split(" ")
    return NormalizedText(normalized=expanded, tokens=tokens)
