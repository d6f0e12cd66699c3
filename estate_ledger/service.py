"""Ledger facade exposed to the surrounding property-management system."""

import logging
from collections.abc import Iterable
from datetime import date

from estate_ledger.config import LedgerConfig
from estate_ledger.ledger import (
    AlertAggregator,
    AuditLog,
    AuditSink,
    ChargeLedger,
    LateFeeService,
    MortgageService,
    PaymentAllocator,
)
from estate_ledger.ledger.allocation import AllocationInput
from estate_ledger.ledger.common import Clock, IdFactory, utcnow
from estate_ledger.models import (
    Alert,
    Charge,
    ChargeBalance,
    ChargeType,
    ExtraPaymentSavings,
    MortgagePayment,
    MortgagePaymentStatus,
    MortgageSummary,
    Payment,
    PaymentMethod,
    PaymentMethodType,
)
from estate_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


class LedgerService:
    """Single entry point to the ledger.

    Wires the charge ledger, payment allocator, mortgage and late-fee
    services and the alert aggregator around one store and one audit log.
    Operations that depend on the current date take ``today``; when it is
    omitted the injected clock supplies it.

    Parameters
    ----------
    store : LedgerStore | None
        Backing store (a fresh one by default).
    config : LedgerConfig | None
        Configuration; alert windows come from ``config.alerts``.
    sinks : list[AuditSink] | None
        Audit destinations.
    clock : Clock | None
        Timestamp source, ``datetime.now(timezone.utc)`` by default.
    id_factory : IdFactory | None
        Record id generator.
    """

    def __init__(
        self,
        store: LedgerStore | None = None,
        config: LedgerConfig | None = None,
        sinks: list[AuditSink] | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.store = store if store is not None else LedgerStore()
        self.config = config or LedgerConfig()
        self.clock = clock or utcnow
        self.audit = AuditLog(sinks=sinks, clock=self.clock, history_size=self.config.audit_history_size)

        self.charges = ChargeLedger(self.store, self.audit, self.clock, id_factory)
        self.payments = PaymentAllocator(self.store, self.charges, self.audit, self.clock, id_factory)
        self.mortgages = MortgageService(self.store, self.audit, self.clock, id_factory)
        self.late_fees = LateFeeService(self.store, self.charges)
        self.alerts = AlertAggregator(self.store, self.config.alerts)

    def today(self) -> date:
        return self.clock().date()

    # Charges

    def create_charge(
        self,
        lease_id: str,
        period: str,
        charge_type: ChargeType | str,
        amount: int,
        due_date: date,
        actor_id: str,
        description: str | None = None,
        linked_charge_id: str | None = None,
    ) -> Charge:
        return self.charges.create_charge(
            lease_id, period, charge_type, amount, due_date, actor_id, description, linked_charge_id
        )

    def void_charge(self, charge_id: str, reason: str, actor_id: str) -> Charge:
        return self.charges.void_charge(charge_id, reason, actor_id)

    def get_charge_balance(self, lease_id: str, today: date | None = None) -> ChargeBalance:
        return self.charges.get_balance(lease_id, today or self.today())

    def apply_late_fee(self, charge_id: str, actor_id: str, today: date | None = None) -> Charge:
        return self.late_fees.apply_late_fee(charge_id, actor_id, today or self.today())

    # Payments

    def record_payment(
        self,
        lease_id: str,
        payer_id: str,
        amount: int,
        method: PaymentMethod | PaymentMethodType | str,
        actor_id: str,
        allocations: Iterable[AllocationInput] | None = None,
        memo: str | None = None,
        payment_date: date | None = None,
    ) -> Payment:
        return self.payments.record_payment(
            lease_id, payer_id, amount, method, actor_id, allocations, memo, payment_date
        )

    def get_unapplied_credit(self, lease_id: str) -> int:
        return self.payments.get_unapplied_credit(lease_id)

    # Mortgages

    def get_mortgage_summary(
        self,
        mortgage_id: str,
        today: date | None = None,
        extra_monthly: int | None = None,
    ) -> MortgageSummary:
        return self.mortgages.get_mortgage_summary(mortgage_id, today or self.today(), extra_monthly)

    def record_mortgage_payment(
        self,
        mortgage_id: str,
        amount: int,
        principal_amount: int,
        interest_amount: int,
        payment_date: date,
        actor_id: str,
        escrow_amount: int | None = None,
        due_date: date | None = None,
        status: MortgagePaymentStatus = MortgagePaymentStatus.COMPLETED,
        notes: str | None = None,
    ) -> MortgagePayment:
        return self.mortgages.record_mortgage_payment(
            mortgage_id,
            amount,
            principal_amount,
            interest_amount,
            payment_date,
            actor_id,
            escrow_amount=escrow_amount,
            due_date=due_date,
            status=status,
            notes=notes,
        )

    def calculate_extra_payment_savings(self, mortgage_id: str, extra_monthly: int) -> ExtraPaymentSavings:
        return self.mortgages.calculate_extra_payment_savings(mortgage_id, extra_monthly)

    # Alerts

    def get_alerts(
        self,
        today: date | None = None,
        entity_ids: list[str] | None = None,
        include_mortgages: bool = True,
    ) -> list[Alert]:
        return self.alerts.get_alerts(today or self.today(), entity_ids, include_mortgages)

    def close(self) -> None:
        """Close every audit sink."""
        for sink in self.audit.sinks:
            close = getattr(sink, "close", None)
            if close is not None:
                close()
        if self.audit.failures:
            logger.warning("%d audit events failed to reach a sink", self.audit.failures)
