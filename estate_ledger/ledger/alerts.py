"""Due-date alerts across owning entities."""

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from datetime import date, timedelta

from estate_ledger.config import AlertConfig
from estate_ledger.models import (
    Alert,
    AlertSeverity,
    AlertType,
    EntityStatus,
    LeaseStatus,
    Mortgage,
    MortgageStatus,
    OwningEntity,
)
from estate_ledger.money import format_cents
from estate_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


def _days(n: int) -> str:
    return f"{n} day" if n == 1 else f"{n} days"


def sort_alerts(alerts: Iterable[Alert]) -> list[Alert]:
    """Critical first, then earliest due date; undated alerts last within a severity."""
    return sorted(
        alerts,
        key=lambda a: (
            a.severity is not AlertSeverity.CRITICAL,
            a.due_date is None,
            a.due_date or date.max,
        ),
    )


class AlertAggregator:
    """Collect time-sensitive obligations and rank them.

    Each owning entity is scanned independently on a thread pool, as is the
    mortgage portfolio; scans only read the store. The merged result is
    sorted by :func:`sort_alerts`.

    Parameters
    ----------
    store : LedgerStore
        Store to scan.
    config : AlertConfig | None
        Look-ahead windows and critical thresholds.
    max_workers : int
        Thread pool size.
    """

    def __init__(
        self,
        store: LedgerStore,
        config: AlertConfig | None = None,
        max_workers: int = 4,
    ) -> None:
        self.store = store
        self.config = config or AlertConfig()
        self.max_workers = max_workers

    def get_alerts(
        self,
        today: date,
        entity_ids: list[str] | None = None,
        include_mortgages: bool = True,
    ) -> list[Alert]:
        """All alerts for the given (default: all active) entities as of ``today``."""
        if entity_ids is None:
            entities = [e for e in self.store.entities.values() if e.status is EntityStatus.ACTIVE]
        else:
            entities = [e for e in (self.store.get_entity(eid) for eid in entity_ids) if e is not None]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [executor.submit(self.scan_entity, entity, today) for entity in entities]
            if include_mortgages:
                futures.append(executor.submit(self.scan_mortgages, entities, today))
            results = [future.result() for future in futures]

        alerts = sort_alerts(alert for batch in results for alert in batch)
        logger.info(
            "Collected %d alerts (%d critical) across %d entities",
            len(alerts),
            sum(1 for a in alerts if a.severity is AlertSeverity.CRITICAL),
            len(entities),
        )
        return alerts

    def scan_entity(self, entity: OwningEntity, today: date) -> list[Alert]:
        """Lease, overdue and payment-due alerts of one entity."""
        cfg = self.config
        alerts: list[Alert] = []

        lease_horizon = today + timedelta(days=cfg.lease_expiry_days)
        for lease in self.store.get_entity_leases(entity.entity_id):
            if lease.status is not LeaseStatus.ACTIVE:
                continue
            if today <= lease.end_date <= lease_horizon:
                days_left = (lease.end_date - today).days
                alerts.append(
                    Alert(
                        alert_id=f"lease-{lease.lease_id}",
                        alert_type=AlertType.LEASE_EXPIRING,
                        severity=AlertSeverity.CRITICAL if days_left <= cfg.lease_critical_days else AlertSeverity.WARNING,
                        title="Lease Expiring",
                        description=f"Lease expires in {_days(days_left)}",
                        entity_id=entity.entity_id,
                        entity_name=entity.legal_name,
                        target_type="lease",
                        target_id=lease.lease_id,
                        due_date=lease.end_date,
                    )
                )

        due_horizon = today + timedelta(days=cfg.payment_due_days)
        for charge in self.store.get_entity_charges(entity.entity_id):
            if not charge.is_open:
                continue
            outstanding = charge.remaining_balance

            if charge.due_date < today:
                days_overdue = (today - charge.due_date).days
                alerts.append(
                    Alert(
                        alert_id=f"charge-{charge.charge_id}",
                        alert_type=AlertType.CHARGE_OVERDUE,
                        severity=(
                            AlertSeverity.CRITICAL if days_overdue > cfg.overdue_critical_days else AlertSeverity.WARNING
                        ),
                        title="Overdue Charge",
                        description=f"{format_cents(outstanding)} overdue by {_days(days_overdue)}",
                        entity_id=entity.entity_id,
                        entity_name=entity.legal_name,
                        target_type="charge",
                        target_id=charge.charge_id,
                        due_date=charge.due_date,
                        amount=outstanding,
                    )
                )
            elif charge.due_date <= due_horizon and outstanding > 0:
                days_until = (charge.due_date - today).days
                when = "due today" if days_until == 0 else f"due in {_days(days_until)}"
                alerts.append(
                    Alert(
                        alert_id=f"payment-{charge.charge_id}",
                        alert_type=AlertType.PAYMENT_DUE,
                        severity=(
                            AlertSeverity.CRITICAL if days_until <= cfg.payment_due_critical_days else AlertSeverity.WARNING
                        ),
                        title="Payment Due",
                        description=f"{format_cents(outstanding)} {when}",
                        entity_id=entity.entity_id,
                        entity_name=entity.legal_name,
                        target_type="charge",
                        target_id=charge.charge_id,
                        due_date=charge.due_date,
                        amount=outstanding,
                    )
                )

        return alerts

    def scan_mortgages(self, entities: list[OwningEntity], today: date) -> list[Alert]:
        """Payment-due alerts for active mortgages of ``entities``."""
        horizon = today + timedelta(days=self.config.mortgage_due_days)
        alerts: list[Alert] = []
        for entity in entities:
            for mortgage in self.store.get_entity_mortgages(entity.entity_id):
                if mortgage.status is not MortgageStatus.ACTIVE or mortgage.next_payment_date is None:
                    continue
                if mortgage.next_payment_date <= horizon:
                    alerts.append(self._mortgage_alert(mortgage, entity, today))
        return alerts

    def _mortgage_alert(self, mortgage: Mortgage, entity: OwningEntity, today: date) -> Alert:
        days_until = (mortgage.next_payment_date - today).days
        prop = self.store.get_property(mortgage.property_id)
        address = prop.address.one_line() if prop is not None else mortgage.property_id
        amount = mortgage.total_payment
        title = "Mortgage Payment Due TODAY" if days_until <= 0 else f"Mortgage Payment Due in {_days(days_until)}"
        return Alert(
            alert_id=f"mortgage-{mortgage.mortgage_id}",
            alert_type=AlertType.MORTGAGE_PAYMENT_DUE,
            severity=(
                AlertSeverity.CRITICAL if days_until <= self.config.mortgage_critical_days else AlertSeverity.WARNING
            ),
            title=title,
            description=f"{address} - {format_cents(amount)} to {mortgage.lender}",
            entity_id=entity.entity_id,
            entity_name=entity.legal_name,
            target_type="mortgage",
            target_id=mortgage.mortgage_id,
            due_date=mortgage.next_payment_date,
            amount=amount,
        )
