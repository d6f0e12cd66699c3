"""Charge models for the lease ledger."""

from dataclasses import dataclass, field
from datetime import date, datetime

from estate_ledger.models.enums import ChargeStatus, ChargeType


def derive_charge_status(amount: int, paid_amount: int) -> ChargeStatus:
    """Status implied by the two monetary fields of a non-void charge."""
    if paid_amount >= amount:
        return ChargeStatus.PAID
    if paid_amount > 0:
        return ChargeStatus.PARTIAL
    return ChargeStatus.OPEN


@dataclass(frozen=True)
class Charge:
    """A single obligation owed by a lease for a billing period.

    Amounts are integer cents. ``status`` is computed from ``amount`` and
    ``paid_amount`` (or the void stamp) on every read and cannot be assigned.
    """

    charge_id: str
    entity_id: str
    lease_id: str
    period: str  # YYYY-MM
    charge_type: ChargeType
    amount: int
    due_date: date
    paid_amount: int = 0
    description: str | None = None
    linked_charge_id: str | None = None  # e.g. late fee -> originating rent charge
    tenant_ids: tuple[str, ...] = field(default_factory=tuple)
    voided_at: datetime | None = None
    voided_by: str | None = None
    void_reason: str | None = None
    late_fee_applied_at: datetime | None = None
    late_fee_charge_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def status(self) -> ChargeStatus:
        if self.voided_at is not None:
            return ChargeStatus.VOID
        return derive_charge_status(self.amount, self.paid_amount)

    @property
    def remaining_balance(self) -> int:
        return self.amount - self.paid_amount

    @property
    def is_open(self) -> bool:
        """True for open and partially paid charges."""
        return self.status in (ChargeStatus.OPEN, ChargeStatus.PARTIAL)


@dataclass(frozen=True)
class ChargeBalance:
    """Aggregate balance of all non-void charges on a lease."""

    total_charges: int
    total_paid: int
    balance: int
    overdue_amount: int
    open_charges: int
