"""Owning entities, properties and leases as seen by the ledger.

These records belong to the surrounding property-management system; the
ledger only reads them (lease lookup, display names, late-fee settings).
"""

from dataclasses import dataclass, field
from datetime import date, datetime

from estate_ledger.models.base import Address
from estate_ledger.models.enums import EntityStatus, LateFeeType, LeaseStatus


@dataclass(frozen=True)
class LateFeeSettings:
    """Late-fee policy of an owning entity."""

    enabled: bool = False
    fee_type: LateFeeType = LateFeeType.FLAT
    amount: int | None = None  # cents for flat fees, percent for percentage fees
    max_amount: int | None = None  # cap in cents for percentage fees
    grace_days: int = 5


@dataclass
class OwningEntity:
    """Legal entity (e.g. an LLC) that owns properties."""

    entity_id: str
    legal_name: str
    status: EntityStatus = EntityStatus.ACTIVE
    late_fee_settings: LateFeeSettings = field(default_factory=LateFeeSettings)
    created_at: datetime | None = None


@dataclass
class Property:
    """Real estate property held by an owning entity."""

    property_id: str
    entity_id: str
    name: str
    address: Address
    created_at: datetime | None = None


@dataclass
class Lease:
    """Lease agreement between an owning entity and its tenants."""

    lease_id: str
    entity_id: str
    property_id: str
    start_date: date
    end_date: date
    monthly_rent: int  # cents
    tenant_ids: list[str] = field(default_factory=list)
    unit: str | None = None
    status: LeaseStatus = LeaseStatus.ACTIVE
    created_at: datetime | None = None
