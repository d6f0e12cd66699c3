"""Charge ledger: obligations owed by a lease and their balances."""

import logging
import re
from dataclasses import replace
from datetime import date
from typing import Any

from estate_ledger.exceptions import (
    AlreadyVoidError,
    InvalidAllocationError,
    InvalidStateError,
    NotFoundError,
    ReferentialIntegrityError,
)
from estate_ledger.ledger.audit import AuditLog
from estate_ledger.ledger.common import Clock, IdFactory, new_id, utcnow
from estate_ledger.models import AuditAction, Charge, ChargeBalance, ChargeStatus, ChargeType
from estate_ledger.money import format_cents
from estate_ledger.sinks.serialization import to_dict
from estate_ledger.store import LedgerStore

logger = logging.getLogger(__name__)

PERIOD_PATTERN = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def validate_period(period: str) -> str:
    """Return ``period`` if it is a valid ``YYYY-MM`` billing period."""
    if not isinstance(period, str) or not PERIOD_PATTERN.match(period):
        raise ValueError(f"Period must be in YYYY-MM format, got {period!r}")
    return period


def validate_amount(amount: int, name: str = "amount") -> int:
    """Return ``amount`` if it is a positive integer number of cents."""
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"{name} must be integer cents, got {type(amount).__name__}")
    if amount <= 0:
        raise ValueError(f"{name} must be positive, got {amount}")
    return amount


def _state(charge: Charge) -> dict[str, Any]:
    return {"status": charge.status.value, "paid_amount": charge.paid_amount}


class ChargeLedger:
    """Create, void and settle charges, and report lease balances.

    Parameters
    ----------
    store : LedgerStore
        Backing store; provides the lease lookup and atomic charge updates.
    audit : AuditLog | None
        Audit trail receiving create/update/void events.
    clock : Clock | None
        Source of record timestamps.
    id_factory : IdFactory | None
        Generator for new charge ids.
    """

    def __init__(
        self,
        store: LedgerStore,
        audit: AuditLog | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.store = store
        self.clock = clock or utcnow
        self.audit = audit or AuditLog(clock=self.clock)
        self.id_factory = id_factory or new_id

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
        """Create an open charge against a lease.

        Raises
        ------
        NotFoundError
            The lease does not exist.
        ReferentialIntegrityError
            ``linked_charge_id`` does not name a charge on the same lease.
        ValueError
            Malformed period, charge type or amount.
        """
        validate_period(period)
        validate_amount(amount)
        charge_type = ChargeType(charge_type)

        with self.store.lock:
            lease = self.store.get_lease(lease_id)
            if lease is None:
                raise NotFoundError(f"Lease {lease_id} not found", entity_id=lease_id)

            if linked_charge_id is not None:
                linked = self.store.get_charge(linked_charge_id)
                if linked is None or linked.lease_id != lease_id:
                    raise ReferentialIntegrityError(
                        f"Linked charge {linked_charge_id} not found on lease {lease_id}",
                        entity_id=linked_charge_id,
                    )

            now = self.clock()
            charge = Charge(
                charge_id=self.id_factory(),
                entity_id=lease.entity_id,
                lease_id=lease_id,
                period=period,
                charge_type=charge_type,
                amount=amount,
                due_date=due_date,
                description=description,
                linked_charge_id=linked_charge_id,
                tenant_ids=tuple(lease.tenant_ids),
                created_at=now,
                updated_at=now,
            )
            self.store.add_charge(charge)

        self.audit.record(
            entity_id=charge.entity_id,
            actor_id=actor_id,
            action=AuditAction.CREATE,
            entity_type="charge",
            target_id=charge.charge_id,
            collection="charges",
            after=to_dict(charge),
        )
        logger.info(
            "Created %s charge %s on lease %s for %s due %s",
            charge_type.value,
            charge.charge_id,
            lease_id,
            format_cents(amount),
            due_date,
        )
        return charge

    def void_charge(self, charge_id: str, reason: str, actor_id: str) -> Charge:
        """Void an unpaid charge.

        Raises
        ------
        NotFoundError
            The charge does not exist.
        AlreadyVoidError
            The charge is already void.
        InvalidStateError
            The charge is paid or partially paid.
        """
        before: dict[str, Any] = {}

        def _void(charge: Charge) -> Charge:
            status = charge.status
            if status is ChargeStatus.VOID:
                raise AlreadyVoidError(
                    f"Charge {charge_id} is already void", entity_id=charge_id, status=status.value
                )
            if status in (ChargeStatus.PAID, ChargeStatus.PARTIAL):
                raise InvalidStateError(
                    f"Cannot void charge {charge_id} with status {status.value}; reverse its payments first",
                    entity_id=charge_id,
                    status=status.value,
                )
            before.update(_state(charge))
            now = self.clock()
            return replace(charge, voided_at=now, voided_by=actor_id, void_reason=reason, updated_at=now)

        voided = self.store.update_charge(charge_id, _void)

        self.audit.record(
            entity_id=voided.entity_id,
            actor_id=actor_id,
            action=AuditAction.VOID,
            entity_type="charge",
            target_id=charge_id,
            collection="charges",
            before=before,
            after={**_state(voided), "void_reason": reason},
        )
        logger.info("Voided charge %s: %s", charge_id, reason)
        return voided

    def increment_paid(self, charge_id: str, amount: int) -> tuple[Charge, Charge]:
        """Atomically add ``amount`` to a charge's paid amount.

        Returns the charge before and after the update. Emits no audit
        event; callers that batch several increments audit after commit.
        """
        validate_amount(amount)
        before: list[Charge] = []

        def _increment(charge: Charge) -> Charge:
            if charge.status is ChargeStatus.VOID:
                raise InvalidStateError(
                    f"Cannot apply payment to void charge {charge_id}",
                    entity_id=charge_id,
                    status=ChargeStatus.VOID.value,
                )
            new_paid = charge.paid_amount + amount
            if new_paid > charge.amount:
                raise InvalidAllocationError(
                    f"Applying {format_cents(amount)} to charge {charge_id} exceeds its remaining "
                    f"balance of {format_cents(charge.remaining_balance)}",
                    entity_id=charge_id,
                    status=charge.status.value,
                )
            before.append(charge)
            return replace(charge, paid_amount=new_paid, updated_at=self.clock())

        after = self.store.update_charge(charge_id, _increment)
        return before[0], after

    def apply_payment(self, charge_id: str, amount: int, actor_id: str) -> Charge:
        """Apply ``amount`` cents of a payment to a charge."""
        before, after = self.increment_paid(charge_id, amount)
        self.audit_payment_applied(before, after, actor_id)
        return after

    def audit_payment_applied(self, before: Charge, after: Charge, actor_id: str) -> None:
        """Record the paid amount change of a charge in the audit trail."""
        self.audit.record(
            entity_id=after.entity_id,
            actor_id=actor_id,
            action=AuditAction.UPDATE,
            entity_type="charge",
            target_id=after.charge_id,
            collection="charges",
            before=_state(before),
            after=_state(after),
        )

    def get_balance(self, lease_id: str, today: date) -> ChargeBalance:
        """Aggregate the non-void charges of a lease as of ``today``."""
        if self.store.get_lease(lease_id) is None:
            raise NotFoundError(f"Lease {lease_id} not found", entity_id=lease_id)

        total_charges = total_paid = overdue = open_count = 0
        for charge in self.store.get_lease_charges(lease_id):
            if charge.status is ChargeStatus.VOID:
                continue
            total_charges += charge.amount
            total_paid += charge.paid_amount
            if charge.is_open:
                open_count += 1
                if charge.due_date < today:
                    overdue += charge.remaining_balance

        return ChargeBalance(
            total_charges=total_charges,
            total_paid=total_paid,
            balance=total_charges - total_paid,
            overdue_amount=overdue,
            open_charges=open_count,
        )

    # Queries

    def get_charge(self, charge_id: str) -> Charge:
        """Charge by id; raises ``NotFoundError`` when missing."""
        charge = self.store.get_charge(charge_id)
        if charge is None:
            raise NotFoundError(f"Charge {charge_id} not found", entity_id=charge_id)
        return charge

    def get_open_charges(self, lease_id: str) -> list[Charge]:
        """Open and partial charges, oldest due date first, creation order for ties."""
        open_charges = [c for c in self.store.get_lease_charges(lease_id) if c.is_open]
        return sorted(open_charges, key=lambda c: c.due_date)

    def list_charges_for_lease(
        self, lease_id: str, status: ChargeStatus | None = None
    ) -> list[Charge]:
        """Charges of a lease, newest due date first."""
        charges = self.store.get_lease_charges(lease_id)
        if status is not None:
            charges = [c for c in charges if c.status is ChargeStatus(status)]
        return sorted(charges, key=lambda c: c.due_date, reverse=True)

    def list_charges(
        self,
        entity_id: str,
        status: ChargeStatus | None = None,
        charge_type: ChargeType | None = None,
        lease_id: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[Charge]:
        """Charges of an entity filtered by status, type, lease and due-date range."""
        if lease_id is not None:
            charges = [c for c in self.store.get_lease_charges(lease_id) if c.entity_id == entity_id]
        else:
            charges = self.store.get_entity_charges(entity_id)

        if status is not None:
            charges = [c for c in charges if c.status is ChargeStatus(status)]
        if charge_type is not None:
            charges = [c for c in charges if c.charge_type is ChargeType(charge_type)]
        if from_date is not None:
            charges = [c for c in charges if c.due_date >= from_date]
        if to_date is not None:
            charges = [c for c in charges if c.due_date <= to_date]

        return sorted(charges, key=lambda c: c.due_date, reverse=True)
