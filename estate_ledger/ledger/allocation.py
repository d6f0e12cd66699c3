"""Payment recording and allocation against open charges."""

import logging
from collections.abc import Iterable, Mapping
from datetime import date
from typing import Any

from estate_ledger.exceptions import (
    InvalidAllocationError,
    InvalidStateError,
    NotFoundError,
)
from estate_ledger.ledger.audit import AuditLog
from estate_ledger.ledger.charges import ChargeLedger, validate_amount
from estate_ledger.ledger.common import Clock, IdFactory, new_id
from estate_ledger.models import (
    Allocation,
    AuditAction,
    Charge,
    ChargeStatus,
    Payment,
    PaymentMethod,
    PaymentMethodType,
    PaymentStatus,
)
from estate_ledger.money import format_cents
from estate_ledger.sinks.serialization import to_dict
from estate_ledger.store import LedgerStore

logger = logging.getLogger(__name__)

AllocationInput = Allocation | Mapping[str, Any] | tuple[str, int]


def allocate_fifo(charges: Iterable[Charge], amount: int) -> list[Allocation]:
    """Distribute ``amount`` across open charges, oldest due date first.

    Charges due on the same day keep their input order, so passing charges
    in creation order breaks ties by creation. Each charge receives at most
    its remaining balance; whatever is left after the last charge is simply
    not allocated.

    Parameters
    ----------
    charges : Iterable[Charge]
        Candidate charges; void and fully paid charges are skipped.
    amount : int
        Payment amount in cents.

    Returns
    -------
    list[Allocation]
        Allocations in application order.
    """
    if amount < 0:
        raise ValueError(f"amount must be non-negative, got {amount}")

    remaining = amount
    allocations: list[Allocation] = []
    for charge in sorted((c for c in charges if c.is_open), key=lambda c: c.due_date):
        if remaining == 0:
            break
        applied = min(remaining, charge.remaining_balance)
        if applied > 0:
            allocations.append(Allocation(charge_id=charge.charge_id, amount=applied))
            remaining -= applied
    return allocations


def _coerce_allocation(value: AllocationInput) -> Allocation:
    if isinstance(value, Allocation):
        return value
    if isinstance(value, Mapping):
        return Allocation(charge_id=value["charge_id"], amount=value["amount"])
    charge_id, amount = value
    return Allocation(charge_id=charge_id, amount=amount)


def _coerce_method(method: PaymentMethod | PaymentMethodType | str) -> PaymentMethod:
    if isinstance(method, PaymentMethod):
        return method
    return PaymentMethod(method_type=PaymentMethodType(method))


class PaymentAllocator:
    """Record lease payments and apply them to charges.

    The allocation plan, the payment record and every charge increment are
    written inside one store transaction: either all of them land or none
    do. Audit events are emitted only after the transaction commits.
    """

    def __init__(
        self,
        store: LedgerStore,
        charges: ChargeLedger,
        audit: AuditLog | None = None,
        clock: Clock | None = None,
        id_factory: IdFactory | None = None,
    ) -> None:
        self.store = store
        self.charges = charges
        self.clock = clock or charges.clock
        self.audit = audit or charges.audit
        self.id_factory = id_factory or new_id

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
        """Record a succeeded payment and allocate it.

        Parameters
        ----------
        lease_id : str
            Lease the payment is made against.
        payer_id : str
            Paying tenant.
        amount : int
            Total payment in cents.
        method : PaymentMethod | PaymentMethodType | str
            Payment method, or just its type.
        actor_id : str
            User recording the payment.
        allocations : Iterable[AllocationInput] | None
            Explicit allocations. None or empty means FIFO auto-allocation.
        memo : str | None
            Free-text note.
        payment_date : date | None
            Date received; defaults to the clock's date.

        Returns
        -------
        Payment
            The stored payment, with the allocations actually applied.

        Raises
        ------
        NotFoundError
            The lease or an allocation's charge does not exist.
        InvalidAllocationError
            Explicit allocations exceed the payment or a charge's balance.
        InvalidStateError
            An explicit allocation targets a void charge.
        """
        validate_amount(amount)
        method = _coerce_method(method)

        lease = self.store.get_lease(lease_id)
        if lease is None:
            raise NotFoundError(f"Lease {lease_id} not found", entity_id=lease_id)

        explicit = [_coerce_allocation(a) for a in allocations or ()]
        allocated = sum(a.amount for a in explicit)
        if allocated > amount:
            raise InvalidAllocationError(
                f"Allocations total {format_cents(allocated)} exceeds payment amount {format_cents(amount)}",
                entity_id=lease_id,
            )

        now = self.clock()
        applied: list[tuple[Charge, Charge]] = []
        payment: Payment | None = None
        try:
            with self.store.transaction():
                if explicit:
                    self._validate_explicit(lease_id, explicit)
                    plan = explicit
                else:
                    plan = allocate_fifo(self.charges.get_open_charges(lease_id), amount)

                payment = Payment(
                    payment_id=self.id_factory(),
                    entity_id=lease.entity_id,
                    lease_id=lease_id,
                    payer_id=payer_id,
                    amount=amount,
                    method=method,
                    status=PaymentStatus.SUCCEEDED,
                    payment_date=payment_date or now.date(),
                    allocations=tuple(plan),
                    memo=memo,
                    recorded_by=actor_id,
                    created_at=now,
                )
                self.store.add_payment(payment)

                for allocation in plan:
                    applied.append(self.charges.increment_paid(allocation.charge_id, allocation.amount))
        except Exception:
            if payment is not None:
                logger.error(
                    "Payment on lease %s rolled back after %d of %d allocations",
                    lease_id,
                    len(applied),
                    len(payment.allocations),
                    exc_info=True,
                    extra={"extra": {"lease_id": lease_id, "payment_id": payment.payment_id}},
                )
            raise

        for before, after in applied:
            self.charges.audit_payment_applied(before, after, actor_id)

        self.audit.record(
            entity_id=payment.entity_id,
            actor_id=actor_id,
            action=AuditAction.CREATE,
            entity_type="payment",
            target_id=payment.payment_id,
            collection="payments",
            after=to_dict(payment),
        )

        logger.info(
            "Recorded payment %s on lease %s: %s across %d charges",
            payment.payment_id,
            lease_id,
            format_cents(amount),
            len(payment.allocations),
        )
        if payment.unallocated_amount:
            logger.info(
                "Payment %s left %s unallocated on lease %s",
                payment.payment_id,
                format_cents(payment.unallocated_amount),
                lease_id,
            )
        return payment

    def _validate_explicit(self, lease_id: str, allocations: list[Allocation]) -> None:
        """Check explicit allocations against the stored charges. Mutates nothing."""
        per_charge: dict[str, int] = {}
        for allocation in allocations:
            if isinstance(allocation.amount, bool) or not isinstance(allocation.amount, int) or allocation.amount <= 0:
                raise InvalidAllocationError(
                    f"Allocation to charge {allocation.charge_id} must be a positive amount of cents",
                    entity_id=allocation.charge_id,
                )
            per_charge[allocation.charge_id] = per_charge.get(allocation.charge_id, 0) + allocation.amount

        for charge_id, total in per_charge.items():
            charge = self.store.get_charge(charge_id)
            if charge is None or charge.lease_id != lease_id:
                raise NotFoundError(f"Charge {charge_id} not found on lease {lease_id}", entity_id=charge_id)
            if charge.status is ChargeStatus.VOID:
                raise InvalidStateError(
                    f"Cannot allocate to void charge {charge_id}",
                    entity_id=charge_id,
                    status=ChargeStatus.VOID.value,
                )
            if total > charge.remaining_balance:
                raise InvalidAllocationError(
                    f"Allocation of {format_cents(total)} exceeds remaining balance "
                    f"{format_cents(charge.remaining_balance)} of charge {charge_id}",
                    entity_id=charge_id,
                    status=charge.status.value,
                )

    # Queries

    def get_payment(self, payment_id: str) -> Payment:
        """Payment by id; raises ``NotFoundError`` when missing."""
        payment = self.store.get_payment(payment_id)
        if payment is None:
            raise NotFoundError(f"Payment {payment_id} not found", entity_id=payment_id)
        return payment

    def list_payments_for_lease(self, lease_id: str) -> list[Payment]:
        """Payments of a lease, newest first."""
        return list(reversed(sorted(self.store.get_lease_payments(lease_id), key=lambda p: p.payment_date)))

    def list_payments(
        self,
        entity_id: str,
        status: PaymentStatus | None = None,
        lease_id: str | None = None,
        payer_id: str | None = None,
        from_date: date | None = None,
        to_date: date | None = None,
    ) -> list[Payment]:
        """Payments of an entity filtered by status, lease, payer and date range, newest first."""
        payments = self.store.get_entity_payments(entity_id)
        if status is not None:
            payments = [p for p in payments if p.status is PaymentStatus(status)]
        if lease_id is not None:
            payments = [p for p in payments if p.lease_id == lease_id]
        if payer_id is not None:
            payments = [p for p in payments if p.payer_id == payer_id]
        if from_date is not None:
            payments = [p for p in payments if p.payment_date >= from_date]
        if to_date is not None:
            payments = [p for p in payments if p.payment_date <= to_date]
        return list(reversed(sorted(payments, key=lambda p: p.payment_date)))

    def get_unapplied_credit(self, lease_id: str) -> int:
        """Sum of succeeded payment amounts on a lease not applied to any charge."""
        if self.store.get_lease(lease_id) is None:
            raise NotFoundError(f"Lease {lease_id} not found", entity_id=lease_id)
        return sum(
            p.unallocated_amount
            for p in self.store.get_lease_payments(lease_id)
            if p.status is PaymentStatus.SUCCEEDED
        )
