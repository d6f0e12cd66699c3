"""Pytest configuration and fixtures."""

import itertools
from datetime import date, datetime, timezone

import pytest

from estate_ledger.ledger.common import Clock, IdFactory
from estate_ledger.models import (
    Address,
    LateFeeSettings,
    LateFeeType,
    Lease,
    OwningEntity,
    Property,
)
from estate_ledger.service import LedgerService
from estate_ledger.store import LedgerStore

TODAY = date(2024, 3, 15)
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def seed() -> int:
    """Fixed seed for reproducible tests."""
    return 42


@pytest.fixture
def today() -> date:
    """Reference date used across ledger tests."""
    return TODAY


@pytest.fixture
def clock() -> Clock:
    """Clock frozen at noon UTC on the reference date."""
    return lambda: NOW


@pytest.fixture
def id_factory() -> IdFactory:
    """Sequential ids (``id-1``, ``id-2``, ...)."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def store() -> LedgerStore:
    """Store with one entity, one property and two leases."""
    store = LedgerStore()
    store.add_entity(
        OwningEntity(
            entity_id="ent-001",
            legal_name="Maple Holdings LLC",
            late_fee_settings=LateFeeSettings(
                enabled=True,
                fee_type=LateFeeType.FLAT,
                amount=5000,
                grace_days=5,
            ),
        )
    )
    store.add_property(
        Property(
            property_id="prop-001",
            entity_id="ent-001",
            name="Main Street Duplex",
            address=Address(
                street1="100 Main St",
                city="Springfield",
                state="IL",
                postal_code="62701",
            ),
        )
    )
    store.add_lease(
        Lease(
            lease_id="lease-001",
            entity_id="ent-001",
            property_id="prop-001",
            start_date=date(2023, 5, 1),
            end_date=date(2024, 4, 30),
            monthly_rent=150000,
            tenant_ids=["tenant-001"],
            unit="A",
        )
    )
    store.add_lease(
        Lease(
            lease_id="lease-002",
            entity_id="ent-001",
            property_id="prop-001",
            start_date=date(2024, 1, 1),
            end_date=date(2024, 12, 31),
            monthly_rent=120000,
            tenant_ids=["tenant-002", "tenant-003"],
            unit="B",
        )
    )
    return store


@pytest.fixture
def ledger(store: LedgerStore, clock: Clock, id_factory: IdFactory) -> LedgerService:
    """Ledger service over the sample store with a frozen clock."""
    return LedgerService(store=store, clock=clock, id_factory=id_factory)
