"""Tests for scenarios."""

from datetime import date
from unittest.mock import MagicMock

import pytest

from estate_ledger.models import ChargeStatus, ChargeType, MortgageStatus
from estate_ledger.scenarios import RentRollScenario

REFERENCE = date(2024, 3, 15)


@pytest.fixture
def scenario(seed: int) -> RentRollScenario:
    """Small generated portfolio."""
    scenario = RentRollScenario(
        num_entities=2,
        properties_per_entity=2,
        months=3,
        reference_date=REFERENCE,
        seed=seed,
    )
    scenario.generate()
    return scenario


class TestRentRollScenario:
    """Tests for RentRollScenario."""

    def test_generate_scenario(self, scenario: RentRollScenario) -> None:
        """Test rent roll generation."""
        store = scenario.store

        assert len(store.entities) == 2
        assert len(store.properties) == 4
        assert len(store.leases) == 4
        rent = [c for c in store.charges.values() if c.charge_type is ChargeType.RENT]
        assert len(rent) == 16

    def test_charges_never_overpaid(self, scenario: RentRollScenario) -> None:
        for charge in scenario.store.charges.values():
            assert 0 <= charge.paid_amount <= charge.amount

    def test_payments_match_allocations(self, scenario: RentRollScenario) -> None:
        """Test every charge's paid amount is the sum of its allocations."""
        allocated: dict[str, int] = {}
        for payment in scenario.store.payments.values():
            assert payment.allocated_amount <= payment.amount
            for allocation in payment.allocations:
                allocated[allocation.charge_id] = allocated.get(allocation.charge_id, 0) + allocation.amount

        for charge in scenario.store.charges.values():
            assert charge.paid_amount == allocated.get(charge.charge_id, 0)

    def test_balance_identity(self, scenario: RentRollScenario) -> None:
        for lease_id in scenario.store.leases:
            balance = scenario.service.get_charge_balance(lease_id, REFERENCE)
            assert balance.balance == balance.total_charges - balance.total_paid

    def test_late_fees_linked(self, scenario: RentRollScenario) -> None:
        charges = scenario.store.charges
        for fee in (c for c in charges.values() if c.charge_type is ChargeType.LATE_FEE):
            original = charges[fee.linked_charge_id]
            assert original.late_fee_charge_id == fee.charge_id
            assert fee.due_date == REFERENCE

    def test_mortgages_replayed(self, scenario: RentRollScenario) -> None:
        """Test mortgage balances match their last recorded payment."""
        for mortgage in scenario.store.mortgages.values():
            payments = scenario.store.get_mortgage_payments(mortgage.mortgage_id)
            if payments:
                assert mortgage.current_balance == payments[-1].remaining_balance
                assert mortgage.next_payment_date > REFERENCE
            assert mortgage.status is MortgageStatus.ACTIVE

    def test_reproducible(self, seed: int) -> None:
        """Test the same seed produces the same ledger."""
        totals = []
        for _ in range(2):
            scenario = RentRollScenario(
                num_entities=1, properties_per_entity=2, months=2, reference_date=REFERENCE, seed=seed
            )
            scenario.generate()
            totals.append(scenario.get_summary())

        assert totals[0] == totals[1]

    def test_summary(self, scenario: RentRollScenario) -> None:
        summary = scenario.get_summary()

        assert summary["leases"] == 4
        assert summary["total_billed"] == summary["total_collected"] + summary["total_outstanding"]
        assert summary["overdue_amount"] <= summary["total_outstanding"]
        assert sum(summary["charge_status_distribution"].values()) == summary["charges"]
        assert set(summary["charge_status_distribution"]) <= {s.value for s in ChargeStatus}
        assert summary["critical_alerts"] <= summary["alerts"]

    def test_summary_empty(self) -> None:
        scenario = RentRollScenario(num_entities=0, reference_date=REFERENCE, seed=1)
        scenario.generate()

        assert scenario.get_summary() == {}

    def test_export(self, scenario: RentRollScenario) -> None:
        """Test every record type is written to each sink."""
        sink = MagicMock()

        scenario.export([sink])

        written = [call.args[0] for call in sink.write_batch.call_args_list]
        assert written == [
            "entities",
            "properties",
            "leases",
            "charges",
            "payments",
            "mortgages",
            "mortgage_payments",
            "alerts",
        ]
        charges_call = sink.write_batch.call_args_list[3]
        assert len(charges_call.args[1]) == len(scenario.store.charges)

    def test_audit_trail(self, scenario: RentRollScenario) -> None:
        events = scenario.service.audit.events

        assert len(events) >= len(scenario.store.charges) + len(scenario.store.payments)
        assert all(e.actor_id == "system:rent-roll" for e in events)
