"""Payment models for the lease ledger."""

from dataclasses import dataclass, field
from datetime import date, datetime

from estate_ledger.models.enums import PaymentMethodType, PaymentStatus


@dataclass(frozen=True)
class PaymentMethod:
    """How a payment was made, with method-specific details."""

    method_type: PaymentMethodType
    check_number: str | None = None
    last4: str | None = None
    brand: str | None = None
    bank_name: str | None = None


@dataclass(frozen=True)
class Allocation:
    """Portion of a payment applied to one charge."""

    charge_id: str
    amount: int


@dataclass(frozen=True)
class Payment:
    """Money received against a lease. Immutable once recorded."""

    payment_id: str
    entity_id: str
    lease_id: str
    payer_id: str
    amount: int
    method: PaymentMethod
    status: PaymentStatus
    payment_date: date
    allocations: tuple[Allocation, ...] = field(default_factory=tuple)
    memo: str | None = None
    recorded_by: str | None = None
    currency: str = "usd"
    created_at: datetime | None = None

    @property
    def allocated_amount(self) -> int:
        return sum(a.amount for a in self.allocations)

    @property
    def unallocated_amount(self) -> int:
        """Part of the payment not applied to any charge."""
        return self.amount - self.allocated_amount
