"""Pytest fixtures for fooddesk tests."""

import tempfile
from datetime import datetime
from decimal import Decimal
from pathlib import Path

import pytest

from fooddesk.clock import FixedClock
from fooddesk.models import DeliveryZone, Product
from fooddesk.store import FileStore


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """A FileStore in an empty temporary data directory."""
    return FileStore(temp_dir / "data")


@pytest.fixture
def clock():
    """Shop-local clock pinned to 2024-01-01 14:30."""
    return FixedClock(datetime(2024, 1, 1, 14, 30))


@pytest.fixture
def products():
    return [
        Product.create(name="Pad Thai", price=Decimal("100"), cost_to_make=Decimal("40"), category="Noodles"),
        Product.create(name="Thai Tea", price=Decimal("45"), cost_to_make=Decimal("10"), category="Drinks"),
        Product.create(name="Fried Rice", price=Decimal("80"), cost_to_make=Decimal("30")),
    ]


@pytest.fixture
def zones():
    return [
        DeliveryZone.create(zone_name="Bangna", fee=Decimal("40"), area_keywords=["Bangna", "Bang Na"]),
        DeliveryZone.create(zone_name="Sukhumvit", fee=Decimal("60"), area_keywords=["sukhumvit"]),
    ]


@pytest.fixture
def seeded_store(store, products, zones):
    """Store pre-filled with the sample products and zones."""
    for p in products:
        store.create_product(p)
    for z in zones:
        store.create_zone(z)
    return store

