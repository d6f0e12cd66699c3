"""Rent roll scenario: a small property portfolio with billing history."""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from dateutil.relativedelta import relativedelta

from estate_ledger.config import LedgerConfig
from estate_ledger.generators import (
    EntityGenerator,
    LeaseGenerator,
    MortgageGenerator,
    PropertyGenerator,
)
from estate_ledger.ledger import amortization
from estate_ledger.models import (
    AlertSeverity,
    ChargeStatus,
    ChargeType,
    Lease,
    MortgageStatus,
    OwningEntity,
    PaymentMethodType,
    Property,
)
from estate_ledger.service import LedgerService
from estate_ledger.store import LedgerStore

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system:rent-roll"

PAYMENT_METHODS = [
    PaymentMethodType.BANK_TRANSFER,
    PaymentMethodType.CHECK,
    PaymentMethodType.CARD,
    PaymentMethodType.MONEY_ORDER,
    PaymentMethodType.CASH,
]


class RentRollScenario:
    """Generate a property portfolio and run it through the ledger.

    This scenario creates:
    - Owning entities with late-fee policies
    - Properties, each with one active lease
    - Monthly rent charges from lease start to the reference date
    - Tenant payments with realistic behavior:
        - On time (full rent within a few days)
        - Partial (30-80% of rent)
        - Missed
    - Late fees on charges past their grace period
    - Mortgages on some properties with their payment history

    Everything goes through ``LedgerService``, so the result obeys the same
    invariants and produces the same audit trail as live traffic.
    """

    def __init__(
        self,
        num_entities: int = 3,
        properties_per_entity: int = 4,
        months: int = 6,
        on_time_rate: float = 0.80,
        partial_rate: float = 0.10,
        missed_rate: float = 0.10,
        mortgage_rate: float = 0.50,
        reference_date: date | None = None,
        seed: int | None = None,
        *,
        config: LedgerConfig | None = None,
    ) -> None:
        """Initialize rent roll scenario.

        Parameters
        ----------
        num_entities : int
            Number of owning entities.
        properties_per_entity : int
            Properties (and leases) per entity.
        months : int
            Rent periods already elapsed on each lease.
        on_time_rate : float
            Probability a period is paid in full.
        partial_rate : float
            Probability a period is paid partially.
        missed_rate : float
            Probability a period is not paid.
        mortgage_rate : float
            Probability a property carries a mortgage.
        reference_date : date | None
            Simulated "today" (default: current date).
        seed : int | None
            Random seed for reproducibility.
        config : LedgerConfig | None
            Ledger configuration (alert windows, grace days).
        """
        self.num_entities = num_entities
        self.properties_per_entity = properties_per_entity
        self.months = months
        self.on_time_rate = on_time_rate
        self.partial_rate = partial_rate
        self.missed_rate = missed_rate
        self.mortgage_rate = mortgage_rate
        self.reference_date = reference_date or date.today()
        self.seed = seed

        if seed is not None:
            random.seed(seed)

        now = datetime.combine(self.reference_date, time(12), tzinfo=timezone.utc)
        self.store = LedgerStore()
        self.service = LedgerService(store=self.store, config=config, clock=lambda: now)

        self._entity_gen = EntityGenerator(seed=seed)
        self._property_gen = PropertyGenerator(seed=seed)
        self._lease_gen = LeaseGenerator(seed=seed)
        self._mortgage_gen = MortgageGenerator(seed=seed)

    def generate(self) -> LedgerStore:
        """Generate all data for the scenario.

        Returns
        -------
        LedgerStore
            Store containing all generated records.
        """
        logger.info(
            "Starting rent roll scenario: %d entities x %d properties, %d months as of %s",
            self.num_entities,
            self.properties_per_entity,
            self.months,
            self.reference_date,
        )

        for _ in range(self.num_entities):
            entity = self._entity_gen.generate()
            self.store.add_entity(entity)

            for _ in range(self.properties_per_entity):
                prop = self._property_gen.generate(entity.entity_id)
                self.store.add_property(prop)

                lease = self._lease_gen.generate(prop, self.reference_date, months_active=self.months)
                self.store.add_lease(lease)
                self._bill_and_collect(lease)

                if random.random() < self.mortgage_rate:
                    self._originate_mortgage(entity, prop)

        logger.info(
            "Generated %d leases with %d charges and %d payments",
            len(self.store.leases),
            len(self.store.charges),
            len(self.store.payments),
        )

        self._apply_late_fees()

        logger.info(
            "Generated %d mortgages with %d payments",
            len(self.store.mortgages),
            len(self.store.mortgage_payments),
        )
        return self.store

    def _bill_and_collect(self, lease: Lease) -> None:
        """Bill every rent period up to the reference date and simulate payments."""
        due = lease.start_date
        while due <= self.reference_date:
            self.service.create_charge(
                lease_id=lease.lease_id,
                period=due.strftime("%Y-%m"),
                charge_type=ChargeType.RENT,
                amount=lease.monthly_rent,
                due_date=due,
                actor_id=SYSTEM_ACTOR,
                description=f"Rent {due:%B %Y}",
            )

            behavior = random.choices(
                ["on_time", "partial", "missed"],
                weights=[self.on_time_rate, self.partial_rate, self.missed_rate],
                k=1,
            )[0]

            if behavior != "missed":
                amount = lease.monthly_rent
                if behavior == "partial":
                    amount = lease.monthly_rent * random.randint(30, 80) // 100
                paid_on = min(due + timedelta(days=random.randint(0, 4)), self.reference_date)
                # No explicit allocations: the ledger pays the oldest charges first
                self.service.record_payment(
                    lease_id=lease.lease_id,
                    payer_id=lease.tenant_ids[0],
                    amount=amount,
                    method=random.choice(PAYMENT_METHODS),
                    actor_id=SYSTEM_ACTOR,
                    payment_date=paid_on,
                )

            due = due + relativedelta(months=1)

    def _originate_mortgage(self, entity: OwningEntity, prop: Property) -> None:
        """Create a mortgage and replay the payments already due."""
        terms = self._mortgage_gen.generate(self.reference_date)
        mortgage = self.service.mortgages.create_mortgage(
            entity_id=entity.entity_id,
            property_id=prop.property_id,
            lender=terms.lender,
            original_amount=terms.original_amount,
            interest_rate=terms.interest_rate,
            term_months=terms.term_months,
            first_payment_date=terms.first_payment_date,
            actor_id=SYSTEM_ACTOR,
            mortgage_type=terms.mortgage_type,
            loan_number=terms.loan_number,
            escrow_amount=terms.escrow_amount,
            escrow_included=terms.escrow_included,
            property_tax_annual=terms.property_tax_annual,
            insurance_annual=terms.insurance_annual,
        )

        escrow = terms.escrow_amount or 0
        for entry in amortization.amortization_schedule(mortgage):
            if entry.payment_date > self.reference_date:
                break
            self.service.record_mortgage_payment(
                mortgage_id=mortgage.mortgage_id,
                amount=entry.payment + escrow,
                principal_amount=entry.principal,
                interest_amount=entry.interest,
                payment_date=entry.payment_date,
                actor_id=SYSTEM_ACTOR,
                escrow_amount=terms.escrow_amount,
                due_date=entry.payment_date,
            )

    def _apply_late_fees(self) -> None:
        """Apply late fees to overdue charges of entities that charge them."""
        applied = 0
        for entity in self.store.entities.values():
            if not entity.late_fee_settings.enabled:
                continue
            for overdue in self.service.late_fees.get_overdue_charges(entity.entity_id, self.reference_date):
                self.service.apply_late_fee(overdue.charge.charge_id, SYSTEM_ACTOR, self.reference_date)
                applied += 1
        logger.info("Applied %d late fees", applied)

    def export(self, sinks: list[Any]) -> None:
        """Export generated data to sinks.

        Parameters
        ----------
        sinks : list[Any]
            List of sink instances (KafkaSink, PostgresSink, etc.).
        """
        alerts = self.service.get_alerts(self.reference_date)
        for sink in sinks:
            sink.write_batch("entities", list(self.store.entities.values()))
            sink.write_batch("properties", list(self.store.properties.values()))
            sink.write_batch("leases", list(self.store.leases.values()))
            sink.write_batch("charges", list(self.store.charges.values()))
            sink.write_batch("payments", list(self.store.payments.values()))
            sink.write_batch("mortgages", list(self.store.mortgages.values()))
            sink.write_batch("mortgage_payments", list(self.store.mortgage_payments.values()))
            sink.write_batch("alerts", alerts)

        logger.info("Exported rent roll to %d sinks", len(sinks))

    def get_summary(self) -> dict[str, Any]:
        """Get summary statistics for the portfolio.

        Returns
        -------
        dict[str, Any]
            Portfolio summary; amounts in cents.
        """
        charges = [c for c in self.store.charges.values() if c.status is not ChargeStatus.VOID]
        if not charges:
            return {}

        status_counts: dict[str, int] = {}
        for charge in charges:
            status_counts[charge.status.value] = status_counts.get(charge.status.value, 0) + 1

        overdue = 0
        unapplied = 0
        for lease_id in self.store.leases:
            overdue += self.service.get_charge_balance(lease_id, self.reference_date).overdue_amount
            unapplied += self.service.get_unapplied_credit(lease_id)

        mortgages = list(self.store.mortgages.values())
        alerts = self.service.get_alerts(self.reference_date)

        return {
            **self.store.summary(),
            "total_billed": sum(c.amount for c in charges),
            "total_collected": sum(c.paid_amount for c in charges),
            "total_outstanding": sum(c.remaining_balance for c in charges),
            "overdue_amount": overdue,
            "unapplied_credit": unapplied,
            "late_fees": sum(1 for c in charges if c.charge_type is ChargeType.LATE_FEE),
            "charge_status_distribution": status_counts,
            "mortgage_balance": sum(m.current_balance for m in mortgages),
            "active_mortgages": sum(1 for m in mortgages if m.status is MortgageStatus.ACTIVE),
            "alerts": len(alerts),
            "critical_alerts": sum(1 for a in alerts if a.severity is AlertSeverity.CRITICAL),
        }
