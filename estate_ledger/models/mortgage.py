"""Mortgage models."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from estate_ledger.models.enums import (
    MortgagePaymentStatus,
    MortgageStatus,
    MortgageType,
    PaymentFrequency,
)


@dataclass(frozen=True)
class Mortgage:
    """Long-term amortizing loan secured by a property.

    Property address and entity name are not stored here; readers resolve
    them from ``property_id`` / ``entity_id``.
    """

    mortgage_id: str
    entity_id: str
    property_id: str
    lender: str
    mortgage_type: MortgageType
    original_amount: int  # cents
    current_balance: int  # cents
    interest_rate: Decimal  # annual percent, e.g. Decimal("6.5")
    term_months: int
    monthly_payment: int  # principal + interest, cents
    payment_frequency: PaymentFrequency
    payment_due_day: int  # 1-28
    origination_date: date
    first_payment_date: date
    maturity_date: date
    next_payment_date: date | None  # None once paid off
    loan_number: str | None = None
    escrow_amount: int | None = None
    escrow_included: bool = False
    property_tax_annual: int | None = None
    insurance_annual: int | None = None
    status: MortgageStatus = MortgageStatus.ACTIVE
    notes: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def total_payment(self) -> int:
        """P&I plus escrow, in cents."""
        return self.monthly_payment + (self.escrow_amount or 0)


@dataclass(frozen=True)
class MortgagePayment:
    """An applied loan payment. Immutable once created."""

    payment_id: str
    mortgage_id: str
    payment_date: date
    due_date: date | None
    amount: int
    principal_amount: int
    interest_amount: int
    remaining_balance: int
    status: MortgagePaymentStatus = MortgagePaymentStatus.COMPLETED
    escrow_amount: int | None = None
    notes: str | None = None
    recorded_by: str | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class AmortizationEntry:
    """One period of an amortization schedule (amounts in cents)."""

    payment_number: int
    payment_date: date
    payment: int
    principal: int
    interest: int
    balance: int
    cumulative_interest: int


@dataclass(frozen=True)
class ExtraPaymentSavings:
    """Effect of paying a fixed extra amount every month."""

    extra_monthly: int
    interest_saved: int
    months_saved: int
    new_payoff_date: date | None


@dataclass(frozen=True)
class MortgageSummary:
    """Progress and projections for a mortgage."""

    current_balance: int
    monthly_payment: int
    next_payment_date: date | None
    days_until_payment: int | None
    principal_paid: int
    interest_paid: int
    percent_paid_off: Decimal  # 0-100, two places
    remaining_payments: int
    total_cost: int
    total_interest: int
    remaining_interest: int
    payoff_date: date | None
    extra_payment_savings: ExtraPaymentSavings | None = None
