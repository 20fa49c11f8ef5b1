# Role: Turns one event phrase ("arsenal vs tottenham") into an ordered, de-duplicated list of catalog search
# strings (full phrase, home segment, away segment, single tokens), capped at 4.

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from ticketdesk.nlu.normalizer import normalize

MAX_CANDIDATES = 4

# Key line: separators only count when surrounded by whitespace ("v" inside a word never splits).
_SEPARATOR = re.compile(r"\s+(?:vs\.?|v\.?|@)\s+", re.IGNORECASE)
_SEPARATOR_WORDS = {"vs", "vs.", "v", "v.", "@"}


@dataclass(frozen=True)
class SplitPhrase:
    full: str
    tokens: List[str] = field(default_factory=list)
    home_tokens: List[str] = field(default_factory=list)
    away_tokens: List[str] = field(default_factory=list)

    @property
    def has_sides(self) -> bool:
        return bool(self.home_tokens or self.away_tokens)


def _tokens(segment: str) -> List[str]:
    return [t for t in segment.split(" ") if t and t.lower() not in _SEPARATOR_WORDS]


def split_versus(phrase: str) -> SplitPhrase:
    norm = normalize(phrase).normalized
    if not norm:
        return SplitPhrase(full="")

    # Key line: pad so a leading/trailing separator still sees whitespace on both sides.
    parts = _SEPARATOR.split(f" {norm} ", maxsplit=1)
    tokens = _tokens(norm)
    full = " ".join(tokens)

    if len(parts) < 2:
        return SplitPhrase(full=full, tokens=tokens)

    return SplitPhrase(
        full=full,
        tokens=tokens,
        home_tokens=_tokens(parts[0].strip()),
        away_tokens=_tokens(parts[1].strip()),
    )


def build_candidate_queries(phrase: str, limit: int = MAX_CANDIDATES) -> List[str]:
    """
    Candidate order: full phrase without separators, home segment, away segment, each token.
    Stops after `limit` distinct non-empty strings.
    """
    split = split_versus(phrase)
    ordered = [split.full, " ".join(split.home_tokens), " ".join(split.away_tokens), *split.tokens]

    out: List[str] = []
    for candidate in ordered:
        candidate = candidate.strip()
        if candidate and candidate not in out:
            out.append(candidate)
        if len(out) >= limit:
            break
    return out
