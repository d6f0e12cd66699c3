"""Tests for ledger models."""

import dataclasses
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from estate_ledger.models import (
    Address,
    Allocation,
    Charge,
    ChargeStatus,
    ChargeType,
    Mortgage,
    MortgageType,
    Payment,
    PaymentFrequency,
    PaymentMethod,
    PaymentMethodType,
    PaymentStatus,
    derive_charge_status,
)


def _charge(**overrides) -> Charge:
    fields = dict(
        charge_id="chg-001",
        entity_id="ent-001",
        lease_id="lease-001",
        period="2024-03",
        charge_type=ChargeType.RENT,
        amount=150000,
        due_date=date(2024, 3, 1),
    )
    fields.update(overrides)
    return Charge(**fields)


class TestChargeStatus:
    """Tests for derived charge status."""

    @pytest.mark.parametrize(
        "amount,paid,expected",
        [
            (150000, 0, ChargeStatus.OPEN),
            (150000, 1, ChargeStatus.PARTIAL),
            (150000, 149999, ChargeStatus.PARTIAL),
            (150000, 150000, ChargeStatus.PAID),
        ],
    )
    def test_status_follows_amounts(self, amount: int, paid: int, expected: ChargeStatus) -> None:
        """Test status is derived from amount and paid amount."""
        charge = _charge(amount=amount, paid_amount=paid)

        assert charge.status is expected
        assert derive_charge_status(amount, paid) is expected

    def test_void_overrides_amounts(self) -> None:
        """Test that a void stamp wins over the amounts."""
        charge = _charge(voided_at=datetime(2024, 3, 2, tzinfo=timezone.utc))

        assert charge.status is ChargeStatus.VOID
        assert charge.is_open is False

    def test_status_cannot_be_assigned(self) -> None:
        """Test that status is not a stored field."""
        charge = _charge()

        with pytest.raises(dataclasses.FrozenInstanceError):
            charge.status = ChargeStatus.PAID  # type: ignore[misc]
        assert "status" not in {f.name for f in dataclasses.fields(Charge)}

    def test_status_updates_with_replace(self) -> None:
        charge = _charge()
        paid = dataclasses.replace(charge, paid_amount=150000)

        assert charge.status is ChargeStatus.OPEN
        assert paid.status is ChargeStatus.PAID

    def test_remaining_and_open(self) -> None:
        charge = _charge(paid_amount=50000)

        assert charge.remaining_balance == 100000
        assert charge.is_open is True


class TestPayment:
    """Tests for Payment."""

    def test_unallocated_amount(self) -> None:
        """Test allocated and unallocated amounts."""
        payment = Payment(
            payment_id="pay-001",
            entity_id="ent-001",
            lease_id="lease-001",
            payer_id="tenant-001",
            amount=100000,
            method=PaymentMethod(method_type=PaymentMethodType.CHECK, check_number="1042"),
            status=PaymentStatus.SUCCEEDED,
            payment_date=date(2024, 3, 1),
            allocations=(Allocation("chg-001", 60000), Allocation("chg-002", 25000)),
        )

        assert payment.allocated_amount == 85000
        assert payment.unallocated_amount == 15000
        assert payment.currency == "usd"


class TestMortgage:
    """Tests for Mortgage."""

    def _mortgage(self, **overrides) -> Mortgage:
        fields = dict(
            mortgage_id="mtg-001",
            entity_id="ent-001",
            property_id="prop-001",
            lender="First Bank",
            mortgage_type=MortgageType.FIXED,
            original_amount=30000000,
            current_balance=30000000,
            interest_rate=Decimal("6.5"),
            term_months=360,
            monthly_payment=189620,
            payment_frequency=PaymentFrequency.MONTHLY,
            payment_due_day=1,
            origination_date=date(2023, 12, 1),
            first_payment_date=date(2024, 1, 1),
            maturity_date=date(2053, 12, 1),
            next_payment_date=date(2024, 1, 1),
        )
        fields.update(overrides)
        return Mortgage(**fields)

    def test_total_payment_without_escrow(self) -> None:
        assert self._mortgage().total_payment == 189620

    def test_total_payment_with_escrow(self) -> None:
        """Test total payment includes escrow."""
        mortgage = self._mortgage(escrow_amount=45000, escrow_included=True)

        assert mortgage.total_payment == 234620


class TestAddress:
    """Tests for Address."""

    def test_one_line(self) -> None:
        address = Address(street1="100 Main St", city="Springfield", state="IL", postal_code="62701")

        assert address.one_line() == "100 Main St, Springfield, IL"
        assert address.country == "US"
