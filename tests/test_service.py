"""Tests for the LedgerService facade."""

import logging
from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from estate_ledger import LedgerService, __version__
from estate_ledger.config import AlertConfig, LedgerConfig
from estate_ledger.exceptions import SinkError
from estate_ledger.models import AuditEvent, ChargeStatus, ChargeType, MortgageStatus
from estate_ledger.store import LedgerStore

ACTOR = "user-001"


class TestLedgerService:
    """Tests for LedgerService wiring."""

    def test_defaults(self) -> None:
        service = LedgerService()

        assert isinstance(service.store, LedgerStore)
        assert isinstance(service.config, LedgerConfig)
        assert service.today() == service.clock().date()
        assert __version__ == "0.1.0"

    def test_shared_store_and_audit(self, ledger: LedgerService) -> None:
        """Test all sub-services share one store and one audit log."""
        assert ledger.charges.store is ledger.store
        assert ledger.payments.store is ledger.store
        assert ledger.mortgages.store is ledger.store
        assert ledger.charges.audit is ledger.audit
        assert ledger.payments.audit is ledger.audit
        assert ledger.mortgages.audit is ledger.audit

    def test_alert_config(self, store: LedgerStore, clock) -> None:
        config = LedgerConfig(alerts=AlertConfig(lease_expiry_days=10))
        service = LedgerService(store=store, config=config, clock=clock)

        assert service.get_alerts() == []

    def test_sinks_receive_events(self, store: LedgerStore, clock) -> None:
        sink = MagicMock()
        service = LedgerService(store=store, sinks=[sink], clock=clock)

        service.create_charge("lease-001", "2024-03", ChargeType.RENT, 150000, date(2024, 3, 1), ACTOR)

        event = sink.write_event.call_args.args[0]
        assert isinstance(event, AuditEvent)
        assert event.entity_type == "charge"

    def test_close(self, store: LedgerStore, caplog: pytest.LogCaptureFixture) -> None:
        """Test close reaches every sink and reports failed deliveries."""
        failing = MagicMock()
        failing.write_event.side_effect = SinkError("down")
        plain = SimpleNamespace(write_event=lambda event: None)
        service = LedgerService(store=store, sinks=[failing, plain])
        service.create_charge("lease-001", "2024-03", ChargeType.RENT, 150000, date(2024, 3, 1), ACTOR)

        with caplog.at_level(logging.WARNING, logger="estate_ledger"):
            service.close()

        failing.close.assert_called_once()
        assert "1 audit events failed" in caplog.text


class TestLedgerWorkflow:
    """End-to-end billing and collection through the facade."""

    def test_month_of_activity(self, ledger: LedgerService, today: date) -> None:
        """Test billing, paying, fining and voiding keep the balance consistent."""
        feb = ledger.create_charge("lease-001", "2024-02", ChargeType.RENT, 150000, date(2024, 2, 1), ACTOR)
        mar = ledger.create_charge("lease-001", "2024-03", ChargeType.RENT, 150000, date(2024, 3, 1), ACTOR)
        parking = ledger.create_charge("lease-001", "2024-03", "parking", 7500, date(2024, 3, 1), ACTOR)

        ledger.record_payment("lease-001", "tenant-001", 200000, "bank_transfer", ACTOR)
        fee = ledger.apply_late_fee(mar.charge_id, ACTOR)
        ledger.void_charge(fee.charge_id, "Courtesy waiver", ACTOR)

        balance = ledger.get_charge_balance("lease-001")

        assert ledger.store.get_charge(feb.charge_id).status is ChargeStatus.PAID
        assert ledger.store.get_charge(mar.charge_id).status is ChargeStatus.PARTIAL
        assert ledger.store.get_charge(parking.charge_id).status is ChargeStatus.OPEN
        assert balance.total_charges == 307500
        assert balance.total_paid == 200000
        assert balance.balance == 107500
        assert balance.overdue_amount == 107500
        assert balance.open_charges == 2
        assert ledger.get_unapplied_credit("lease-001") == 0

    def test_mortgage_lifecycle(self, ledger: LedgerService) -> None:
        """Test paying a mortgage to zero through the facade."""
        mortgage = ledger.mortgages.create_mortgage(
            entity_id="ent-001",
            property_id="prop-001",
            lender="First Bank",
            original_amount=30000,
            interest_rate=0,
            term_months=3,
            first_payment_date=date(2024, 1, 1),
            actor_id=ACTOR,
        )

        for month in (1, 2, 3):
            ledger.record_mortgage_payment(
                mortgage.mortgage_id, 10000, 10000, 0, date(2024, month, 1), ACTOR
            )

        summary = ledger.get_mortgage_summary(mortgage.mortgage_id)
        assert ledger.mortgages.get_mortgage(mortgage.mortgage_id).status is MortgageStatus.PAID_OFF
        assert summary.current_balance == 0
        assert summary.principal_paid == 30000
        assert summary.next_payment_date is None
