import asyncio

import pytest

from app.application.lookup_use_case import InteractionLookup
from app.domain.errors import LookupFailed
from app.domain.severity import Severity


def _products(catalog, *ids):
    return [catalog.products[i] for i in ids]


def test_finds_stored_pair_and_names_it(catalog, interactions):
    rows = asyncio.run(InteractionLookup(interactions, catalog).find(_products(catalog, 2, 1, 3)))
    assert len(rows) == 1
    row = rows[0]
    assert row.severity is Severity.SEVERE and row.source_severity == "high"
    assert {row.substance_1, row.substance_2} == {"Warfarin", "Vitamin K2 (MK-7)"}
    assert row.origin == "stored"


def test_fewer_than_two_products_skips_query(catalog, interactions):
    lookup = InteractionLookup(interactions, catalog)
    assert asyncio.run(lookup.find(_products(catalog, 1))) == []
    assert asyncio.run(lookup.find(_products(catalog, 1, 1))) == []
    assert interactions.queries == 0


def test_store_failure_becomes_lookup_failed(catalog, interactions):
    interactions.down = True
    with pytest.raises(LookupFailed):
        asyncio.run(InteractionLookup(interactions, catalog).find(_products(catalog, 1, 2)))
