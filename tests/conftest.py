"""
Shared fixtures: directory snapshots, a fake catalog, a mocked records adapter, and a FlowController wired
to them with a fixed clock.
"""
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from ticketdesk.core.entity_resolver import EntityResolver
from ticketdesk.core.flow_controller import FlowController
from ticketdesk.models.entities import DirectoryEntry, Fixture
from ticketdesk.tools.catalog_client import CatalogSearchResult
from ticketdesk.tools.records_client import RecordResult, RecordsClient

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

VENDORS = [
    DirectoryEntry(id="v1", name="Benny", balance=250.0),
    DirectoryEntry(id="v2", name="John Smith", balance=-120.0),
    DirectoryEntry(id="v3", name="John Doe", balance=0.0),
    DirectoryEntry(id="v4", name="Ali Saad", balance=0.0),
]

BANKS = [
    DirectoryEntry(id="b1", name="HSBC", balance=10000.0),
    DirectoryEntry(id="b2", name="Barclays", balance=2500.0),
    DirectoryEntry(id="b3", name="Cash", balance=300.0),
]

FIXTURES = [
    Fixture(id="f1", home_team="Arsenal", away_team="Tottenham Hotspur", date="2026-04-12T15:00:00Z", status="NS"),
    Fixture(id="f2", home_team="Chelsea", away_team="Leeds United", date="2026-03-20T19:45:00Z", status="NS"),
    Fixture(id="f3", home_team="Chelsea", away_team="Liverpool", date="2026-05-02T12:30:00Z", status="NS"),
    Fixture(id="f0", home_team="Arsenal", away_team="Tottenham Hotspur", date="2025-10-01T15:00:00Z", status="FT"),
]


def fixed_clock() -> datetime:
    return NOW


class FakeCatalog:
    """Substring search over FIXTURES; records every query it was asked."""

    def __init__(self, fixtures=None, fail_on=()):
        self.fixtures = list(FIXTURES if fixtures is None else fixtures)
        self.fail_on = set(fail_on)
        self.queries = []

    def search(self, query):
        self.queries.append(query)
        if query in self.fail_on:
            return CatalogSearchResult(ok=False, error="catalog down")
        q = query.lower()
        hits = [
            f
            for f in self.fixtures
            if any(part in f"{f.home_team} {f.away_team}".lower() for part in q.split())
        ]
        return CatalogSearchResult(ok=True, data=hits)


@pytest.fixture
def catalog():
    return FakeCatalog()


@pytest.fixture
def records():
    client = MagicMock(spec=RecordsClient)
    client.list_vendors.return_value = RecordResult(ok=True, data=list(VENDORS))
    client.list_banks.return_value = RecordResult(ok=True, data=list(BANKS))
    client.create_purchase.return_value = RecordResult(ok=True, data={"id": "r1"})
    client.create_order.return_value = RecordResult(ok=True, data={"id": "r2"})
    client.create_manual_transaction.return_value = RecordResult(ok=True, data={"id": "t1"})
    client.create_counterparty.return_value = RecordResult(ok=True, data={"id": "v9", "name": "New Guy"})
    return client


@pytest.fixture
def resolver(catalog):
    return EntityResolver(catalog_client=catalog, clock=fixed_clock)


@pytest.fixture
def flow(records, resolver):
    return FlowController(entity_resolver=resolver, records_client=records)
