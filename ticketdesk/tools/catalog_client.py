# Role: External tool adapter for the fixtures catalog. One search string in, a list of Fixture out.
# Failures never raise: they come back as ok=False so the resolver can degrade to "no results".

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests

import ticketdesk.config as config
from ticketdesk.models.entities import Fixture

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogSearchResult:
    ok: bool
    data: List[Fixture] = field(default_factory=list)
    error: Optional[str] = None


def _auth_headers() -> dict:
    if config.BACKEND_TOKEN:
        return {"Authorization": f"Bearer {config.BACKEND_TOKEN}"}
    return {}


def _fixture_from(raw: dict) -> Fixture:
    # Catalog rows use camelCase; accept snake_case too.
    fixture_id = raw.get("id") if raw.get("id") is not None else raw.get("fixture_id")
    return Fixture(
        id=str(fixture_id) if fixture_id is not None else None,
        home_team=raw.get("homeTeam") or raw.get("home_team") or "",
        away_team=raw.get("awayTeam") or raw.get("away_team") or "",
        date=raw.get("date"),
        status=raw.get("status"),
        league=raw.get("league"),
    )


class CatalogClient:
    SEARCH_PATH = "/football/search-fixtures"
    LIMIT = 50

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None) -> None:
        self._base_url = base_url
        self._session = session or requests.Session()

    @property
    def base_url(self) -> str:
        return (self._base_url or config.BACKEND_BASE_URL).rstrip("/")

    def search(self, query: str) -> CatalogSearchResult:
        # 1) Validate input
        # 2) GET search endpoint (upcoming fixtures only)
        # 3) Map rows to Fixture
        if not query or not query.strip():
            return CatalogSearchResult(ok=False, error="Empty search query")

        params = {"query": query.strip(), "upcomingOnly": "true", "limit": self.LIMIT}
        try:
            r = self._session.get(
                f"{self.base_url}{self.SEARCH_PATH}",
                params=params,
                headers=_auth_headers(),
                timeout=config.HTTP_TIMEOUT_SECONDS,
            )
            r.raise_for_status()
            payload = r.json()

            rows = payload.get("data", payload) if isinstance(payload, dict) else payload
            if not isinstance(rows, list):
                return CatalogSearchResult(ok=False, error="Bad catalog payload: expected a list")

            fixtures = [_fixture_from(row) for row in rows if isinstance(row, dict)]

            if config.DEBUG:
                logger.debug("CATALOG search %r -> %d fixture(s)", query, len(fixtures))

            return CatalogSearchResult(ok=True, data=fixtures)

        except requests.RequestException as e:
            return CatalogSearchResult(ok=False, error=f"Catalog request failed: {e}")
        except (TypeError, ValueError) as e:
            return CatalogSearchResult(ok=False, error=f"Bad catalog payload: {e}")
