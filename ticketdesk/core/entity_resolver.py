# Role: Resolves typed names to ids. Counterparties and banks are matched against the cached directories
# (exact, then containment); events go to the catalog with up to 4 candidate queries in parallel, then get
# de-duplicated, token-filtered, stripped of past/terminal fixtures, and sorted by date.

from __future__ import annotations

import logging
import re
from concurrent.futures import CancelledError, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import ticketdesk.config as config
from ticketdesk.core.lookups import LookupHandle, LookupRegistry
from ticketdesk.models.entities import DirectoryEntry, EntityCandidate, Fixture, Resolution
from ticketdesk.nlu.candidate_queries import SplitPhrase, build_candidate_queries, split_versus
from ticketdesk.tools.catalog_client import CatalogClient

logger = logging.getLogger(__name__)

MAX_PARALLEL_LOOKUPS = 4

EXACT_SCORE = 1.0
PREFIX_SCORE = 0.8
SUBSTRING_SCORE = 0.6

TERMINAL_STATUS_CODES = {
    "FT", "AET", "PEN", "1H", "2H", "HT", "ET", "BT", "P", "SUSP", "INT", "CANC", "PST", "ABD", "AWD", "WO", "LIVE",
}
TERMINAL_STATUS_MARKERS = (
    "CANCEL", "POSTPONE", "FINISHED", "ABANDON", "IN_PLAY", "IN PLAY", "SUSPENDED", "INTERRUPTED", "LIVE",
)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


# -----------------------------
# Directory matching
# -----------------------------

def rank_directory(name: str, entries: Sequence[DirectoryEntry]) -> List[EntityCandidate]:
    """Exact > prefix > substring (either direction); ties keep directory order."""
    query = (name or "").strip().lower()
    if not query:
        return []

    scored: List[Tuple[float, int, EntityCandidate]] = []
    for position, entry in enumerate(entries):
        known = entry.name.strip().lower()
        if not known:
            continue
        if known == query:
            score = EXACT_SCORE
        elif known.startswith(query):
            score = PREFIX_SCORE
        elif query in known or known in query:
            score = SUBSTRING_SCORE
        else:
            continue
        scored.append((-score, position, EntityCandidate(id=entry.id, display_name=entry.name, score=score)))

    scored.sort(key=lambda item: (item[0], item[1]))
    return [candidate for _, _, candidate in scored]


def resolve_directory(name: str, entries: Sequence[DirectoryEntry]) -> Resolution:
    # 1) Exact (case-insensitive) matches win outright
    # 2) Otherwise containment matches
    # 3) 0 -> not_found, 1 -> resolved, >=2 -> ambiguous
    ranked = rank_directory(name, entries)
    exact = [c for c in ranked if c.score == EXACT_SCORE]
    pool = exact or ranked

    if not pool:
        return Resolution(status="not_found", query=name or "")
    if len(pool) == 1:
        return Resolution(status="resolved", query=name, candidates=pool)
    return Resolution(status="ambiguous", query=name, candidates=pool)


# -----------------------------
# Fixture filtering
# -----------------------------

def is_terminal_status(status: Optional[str]) -> bool:
    s = (status or "").strip().upper()
    if not s:
        return False
    if s in TERMINAL_STATUS_CODES:
        return True
    if any(part in TERMINAL_STATUS_CODES for part in re.split(r"[^A-Z0-9]+", s) if part):
        return True
    return any(marker in s for marker in TERMINAL_STATUS_MARKERS)


_ISO_DATETIME = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2})?)?)(?:\.(?P<frac>\d+))?(?P<tz>Z|[+-]\d{2}:?\d{2})?$"
)


def _normalize_iso(raw: str) -> str:
    # Key line: any fraction length, "Z" and "+0000" offsets all reduce to the form fromisoformat accepts.
    m = _ISO_DATETIME.match(raw)
    if not m:
        return raw
    out = m.group("base")
    if m.group("frac"):
        out += "." + (m.group("frac") + "000000")[:6]
    tz = m.group("tz")
    if tz == "Z":
        out += "+00:00"
    elif tz:
        out += tz if ":" in tz else f"{tz[:3]}:{tz[3:]}"
    return out


def parse_fixture_date(value: Optional[str]) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    raw = _normalize_iso(value.strip())
    try:
        parsed = datetime.fromisoformat(raw)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_upcoming(fixture: Fixture, now: datetime) -> bool:
    when = parse_fixture_date(fixture.date)
    if when is None:
        return False
    # A date without a time counts for the whole day.
    if len(fixture.date.strip()) == 10:
        return when.date() >= now.date()
    return when > now


def dedup_key(fixture: Fixture) -> str:
    if fixture.id:
        return fixture.id
    return f"{fixture.home_team}-{fixture.away_team}-{fixture.date}"


def fixture_matches(fixture: Fixture, split: SplitPhrase) -> bool:
    home = fixture.home_team.lower()
    away = fixture.away_team.lower()
    if split.has_sides:
        if split.home_tokens and not all(t in home for t in split.home_tokens):
            return False
        if split.away_tokens and not all(t in away for t in split.away_tokens):
            return False
        return True
    combined = f"{home} {away}"
    return bool(split.tokens) and all(t in combined for t in split.tokens)


def filter_fixtures(fixtures: Sequence[Fixture], phrase: str, now: datetime) -> List[Fixture]:
    # 1) Dedup by id (fallback home-away-date)
    # 2) Token filter against team names
    # 3) Drop past and terminal fixtures
    # 4) Sort ascending by date
    split = split_versus(phrase)
    seen: Dict[str, Fixture] = {}
    for fixture in fixtures:
        key = dedup_key(fixture)
        if key not in seen:
            seen[key] = fixture

    kept = [
        f
        for f in seen.values()
        if fixture_matches(f, split) and is_upcoming(f, now) and not is_terminal_status(f.status)
    ]
    kept.sort(key=lambda f: parse_fixture_date(f.date))
    return kept


def fixture_candidate(fixture: Fixture) -> EntityCandidate:
    return EntityCandidate(id=dedup_key(fixture), display_name=fixture.display_name, score=1.0, date=fixture.date)


class EntityResolver:
    def __init__(
        self,
        catalog_client: Optional[CatalogClient] = None,
        registry: Optional[LookupRegistry] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        # Key line: clock is injectable so "future date" filtering is testable.
        self.catalog_client = catalog_client or CatalogClient()
        self.registry = registry or LookupRegistry()
        self._clock = clock or _utc_now

    def resolve_counterparty(self, name: str, vendors: Sequence[DirectoryEntry]) -> Resolution:
        return resolve_directory(name, vendors)

    def resolve_bank(self, name: str, banks: Sequence[DirectoryEntry]) -> Resolution:
        return resolve_directory(name, banks)

    def _search_one(self, query: str) -> List[Fixture]:
        # Key line: a failing candidate degrades to no results; it never blocks the others.
        try:
            result = self.catalog_client.search(query)
        except Exception as e:
            logger.warning("catalog search %r raised: %s", query, e)
            return []
        if not result.ok:
            if config.DEBUG:
                logger.debug("catalog search %r failed: %s", query, result.error)
            return []
        return list(result.data)

    def _collect(self, queries: List[str], handle: LookupHandle) -> Optional[List[Fixture]]:
        collected: List[Fixture] = []
        with ThreadPoolExecutor(max_workers=min(MAX_PARALLEL_LOOKUPS, len(queries))) as pool:
            futures = [pool.submit(self._search_one, q) for q in queries]
            handle.attach(futures)
            for future in futures:
                try:
                    collected.extend(future.result())
                except CancelledError:
                    return None
                if handle.cancelled:
                    return None
        return collected

    def resolve_event(self, phrase: str, *, auto_select: bool = False, lookup_key: str = "event") -> Resolution:
        # 1) Build candidate queries (<= 4)
        # 2) Search all of them in parallel under a cancellable handle
        # 3) Filter + sort; auto-select the earliest when asked
        queries = build_candidate_queries(phrase)
        if not queries:
            return Resolution(status="not_found", query=phrase or "")

        handle = self.registry.begin(lookup_key)
        try:
            fixtures = self._collect(queries, handle)
            if fixtures is None or not self.registry.is_current(handle):
                if config.DEBUG:
                    logger.debug("lookup %s superseded; discarding results for %r", lookup_key, phrase)
                return Resolution(status="stale", query=phrase)

            kept = filter_fixtures(fixtures, phrase, self._clock())
        finally:
            self.registry.finish(handle)

        if config.DEBUG:
            logger.debug("EVENT %r queries=%s raw=%d kept=%d", phrase, queries, len(fixtures), len(kept))

        candidates = [fixture_candidate(f) for f in kept]
        if not candidates:
            return Resolution(status="not_found", query=phrase)
        if auto_select or len(candidates) == 1:
            return Resolution(status="resolved", query=phrase, candidates=candidates[:1])
        return Resolution(status="ambiguous", query=phrase, candidates=candidates)
