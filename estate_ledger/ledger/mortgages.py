"""Mortgage lifecycle: creation, updates, payments and projections."""

import logging
from dataclasses import fields, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from dateutil.relativedelta import relativedelta

from estate_ledger.exceptions import InvalidStateError, NotFoundError, ReferentialIntegrityError
from estate_ledger.ledger import amortization
from estate_ledger.ledger.audit import AuditLog
from estate_ledger.ledger.charges import validate_amount
from estate_ledger.ledger.common import Clock, IdFactory, new_id, utcnow
from estate_ledger.models import (
    AuditAction,
    ExtraPaymentSavings,
    Mortgage,
    MortgagePayment,
    MortgagePaymentStatus,
    MortgageStatus,
    MortgageSummary,
    MortgageType,
    PaymentFrequency,
)
from estate_ledger.money import format_cents, to_decimal
from estate_ledger.sinks.serialization import serialize_value, to_dict
from estate_ledger.store import LedgerStore

logger = logging.getLogger(__name__)

# Fields a caller may change through update_mortgage. Loan terms, the
# property link and audit stamps are fixed at creation.
UPDATABLE_FIELDS = frozenset(
    {
        "lender",
        "loan_number",
        "mortgage_type",
        "current_balance",
        "interest_rate",
        "monthly_payment",
        "escrow_amount",
        "payment_due_day",
        "next_payment_date",
        "escrow_included",
        "property_tax_annual",
        "insurance_annual",
        "status",
        "notes",
    }
)

MAX_DUE_DAY = 28


def next_payment_after(current: date, frequency: PaymentFrequency) -> date:
    """Due date following ``current`` for the given payment frequency."""
    frequency = PaymentFrequency(frequency)
    if frequency is PaymentFrequency.WEEKLY:
        return current + timedelta(days=7)
    if frequency is PaymentFrequency.BI_WEEKLY:
        return current + timedelta(days=14)
    return current + relativedelta(months=1)


def _non_negative(value: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be non-negative integer cents, got {value!r}")
    return value


class MortgageService:
    """Manage mortgages and their payment history.

    Parameters
    ----------
    store : LedgerStore
        Backing store.
    audit : AuditLog | None
        Audit trail for mortgage and mortgage payment mutations.
    clock : Clock | None
        Source of record timestamps.
    id_factory : IdFactory | None
        Generator for mortgage and payment ids.
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

    def get_mortgage(self, mortgage_id: str) -> Mortgage:
        """Mortgage by id; raises ``NotFoundError`` when missing."""
        mortgage = self.store.get_mortgage(mortgage_id)
        if mortgage is None:
            raise NotFoundError(f"Mortgage {mortgage_id} not found", entity_id=mortgage_id)
        return mortgage

    def create_mortgage(
        self,
        entity_id: str,
        property_id: str,
        lender: str,
        original_amount: int,
        interest_rate: Decimal | int | float | str,
        term_months: int,
        first_payment_date: date,
        actor_id: str,
        mortgage_type: MortgageType = MortgageType.FIXED,
        origination_date: date | None = None,
        current_balance: int | None = None,
        monthly_payment: int | None = None,
        next_payment_date: date | None = None,
        payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
        payment_due_day: int | None = None,
        loan_number: str | None = None,
        escrow_amount: int | None = None,
        escrow_included: bool = False,
        property_tax_annual: int | None = None,
        insurance_annual: int | None = None,
        notes: str | None = None,
    ) -> Mortgage:
        """Create a mortgage on a property of the entity.

        ``monthly_payment`` defaults to the level payment for the terms,
        ``current_balance`` to ``original_amount`` and ``next_payment_date``
        to ``first_payment_date``. The maturity date is the due date of
        payment number ``term_months``.
        """
        if self.store.get_entity(entity_id) is None:
            raise NotFoundError(f"Entity {entity_id} not found", entity_id=entity_id)
        prop = self.store.get_property(property_id)
        if prop is None or prop.entity_id != entity_id:
            raise ReferentialIntegrityError(
                f"Property {property_id} not found for entity {entity_id}", entity_id=property_id
            )

        validate_amount(original_amount, "original_amount")
        if term_months <= 0:
            raise ValueError(f"term_months must be positive, got {term_months}")
        rate = to_decimal(interest_rate)
        if monthly_payment is None:
            monthly_payment = amortization.monthly_payment(original_amount, rate, term_months)
        if current_balance is None:
            current_balance = original_amount
        _non_negative(current_balance, "current_balance")
        if escrow_amount is not None:
            _non_negative(escrow_amount, "escrow_amount")

        due_day = payment_due_day or min(first_payment_date.day, MAX_DUE_DAY)
        if not 1 <= due_day <= MAX_DUE_DAY:
            raise ValueError(f"payment_due_day must be between 1 and {MAX_DUE_DAY}, got {due_day}")

        now = self.clock()
        mortgage = Mortgage(
            mortgage_id=self.id_factory(),
            entity_id=entity_id,
            property_id=property_id,
            lender=lender,
            mortgage_type=MortgageType(mortgage_type),
            original_amount=original_amount,
            current_balance=current_balance,
            interest_rate=rate,
            term_months=term_months,
            monthly_payment=monthly_payment,
            payment_frequency=PaymentFrequency(payment_frequency),
            payment_due_day=due_day,
            origination_date=origination_date or first_payment_date - relativedelta(months=1),
            first_payment_date=first_payment_date,
            maturity_date=first_payment_date + relativedelta(months=term_months - 1),
            next_payment_date=next_payment_date or first_payment_date,
            loan_number=loan_number,
            escrow_amount=escrow_amount,
            escrow_included=escrow_included,
            property_tax_annual=property_tax_annual,
            insurance_annual=insurance_annual,
            status=MortgageStatus.ACTIVE if current_balance > 0 else MortgageStatus.PAID_OFF,
            notes=notes,
            created_by=actor_id,
            created_at=now,
            updated_at=now,
        )
        if mortgage.status is MortgageStatus.PAID_OFF:
            mortgage = replace(mortgage, next_payment_date=None)

        self.store.add_mortgage(mortgage)
        self._audit(mortgage, actor_id, AuditAction.CREATE, "mortgage", mortgage.mortgage_id, after=to_dict(mortgage))
        logger.info(
            "Created mortgage %s with %s: %s at %s%% for %d months",
            mortgage.mortgage_id,
            lender,
            format_cents(original_amount),
            rate,
            term_months,
        )
        return mortgage

    def update_mortgage(self, mortgage_id: str, actor_id: str, **changes: Any) -> Mortgage:
        """Apply a partial update. ``total_payment`` follows the new components."""
        known = {f.name for f in fields(Mortgage)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown mortgage fields: {sorted(unknown)}")
        protected = set(changes) - UPDATABLE_FIELDS
        if protected:
            raise ValueError(f"Mortgage fields cannot be changed: {sorted(protected)}")
        for name in ("escrow_amount", "property_tax_annual", "insurance_annual"):
            if changes.get(name) is not None:
                _non_negative(changes[name], name)
        if "current_balance" in changes:
            _non_negative(changes["current_balance"], "current_balance")
        if "payment_due_day" in changes:
            due_day = changes["payment_due_day"]
            if isinstance(due_day, bool) or not isinstance(due_day, int) or not 1 <= due_day <= MAX_DUE_DAY:
                raise ValueError(f"payment_due_day must be between 1 and {MAX_DUE_DAY}, got {due_day!r}")
        if "mortgage_type" in changes:
            changes["mortgage_type"] = MortgageType(changes["mortgage_type"])
        if "status" in changes:
            changes["status"] = MortgageStatus(changes["status"])
        if "monthly_payment" in changes:
            validate_amount(changes["monthly_payment"], "monthly_payment")
        if "interest_rate" in changes:
            changes["interest_rate"] = to_decimal(changes["interest_rate"])

        before: dict[str, Any] = {}

        def _update(mortgage: Mortgage) -> Mortgage:
            before.update({name: serialize_value(getattr(mortgage, name)) for name in changes})
            before["total_payment"] = mortgage.total_payment
            return replace(mortgage, **changes, updated_at=self.clock())

        updated = self.store.update_mortgage(mortgage_id, _update)
        after = {name: serialize_value(getattr(updated, name)) for name in changes}
        after["total_payment"] = updated.total_payment
        self._audit(updated, actor_id, AuditAction.UPDATE, "mortgage", mortgage_id, before=before, after=after)
        logger.info("Updated mortgage %s: %s", mortgage_id, ", ".join(sorted(changes)))
        return updated

    def delete_mortgage(self, mortgage_id: str, actor_id: str) -> None:
        """Delete a mortgage and its payment history."""
        mortgage = self.get_mortgage(mortgage_id)
        removed = self.store.delete_mortgage(mortgage_id)
        self._audit(mortgage, actor_id, AuditAction.DELETE, "mortgage", mortgage_id, before=to_dict(mortgage))
        logger.info("Deleted mortgage %s with %d payments", mortgage_id, len(removed))

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
        """Record a loan payment and roll the mortgage forward.

        The balance drops by the principal portion (never below zero) and
        the next due date advances one period. A zero balance marks the
        mortgage paid off and clears ``next_payment_date``.

        Raises
        ------
        NotFoundError
            The mortgage does not exist.
        InvalidStateError
            The mortgage is not active.
        """
        validate_amount(amount)
        _non_negative(principal_amount, "principal_amount")
        _non_negative(interest_amount, "interest_amount")
        if escrow_amount is not None:
            _non_negative(escrow_amount, "escrow_amount")

        with self.store.transaction():
            mortgage = self.get_mortgage(mortgage_id)
            if mortgage.status is not MortgageStatus.ACTIVE:
                raise InvalidStateError(
                    f"Cannot record payment on mortgage {mortgage_id} with status {mortgage.status.value}",
                    entity_id=mortgage_id,
                    status=mortgage.status.value,
                )

            new_balance = max(0, mortgage.current_balance - principal_amount)
            now = self.clock()
            payment = MortgagePayment(
                payment_id=self.id_factory(),
                mortgage_id=mortgage_id,
                payment_date=payment_date,
                due_date=due_date or mortgage.next_payment_date,
                amount=amount,
                principal_amount=principal_amount,
                interest_amount=interest_amount,
                remaining_balance=new_balance,
                status=MortgagePaymentStatus(status),
                escrow_amount=escrow_amount,
                notes=notes,
                recorded_by=actor_id,
                created_at=now,
            )
            self.store.add_mortgage_payment(payment)

            if new_balance == 0:
                new_status, next_date = MortgageStatus.PAID_OFF, None
            else:
                anchor = mortgage.next_payment_date or payment_date
                new_status, next_date = MortgageStatus.ACTIVE, next_payment_after(anchor, mortgage.payment_frequency)

            updated = self.store.update_mortgage(
                mortgage_id,
                lambda m: replace(
                    m,
                    current_balance=new_balance,
                    next_payment_date=next_date,
                    status=new_status,
                    updated_at=now,
                ),
            )

        self._audit(
            updated, actor_id, AuditAction.CREATE, "mortgage_payment", payment.payment_id, after=to_dict(payment)
        )
        self._audit(
            updated,
            actor_id,
            AuditAction.UPDATE,
            "mortgage",
            mortgage_id,
            before={"current_balance": mortgage.current_balance, "status": mortgage.status.value},
            after={"current_balance": updated.current_balance, "status": updated.status.value},
        )
        logger.info(
            "Recorded mortgage payment %s on %s: %s (principal %s, interest %s), balance %s",
            payment.payment_id,
            mortgage_id,
            format_cents(amount),
            format_cents(principal_amount),
            format_cents(interest_amount),
            format_cents(new_balance),
        )
        if updated.status is MortgageStatus.PAID_OFF:
            logger.info("Mortgage %s paid off", mortgage_id)
        return payment

    def get_payment_history(self, mortgage_id: str) -> list[MortgagePayment]:
        """Payments of a mortgage, newest first."""
        self.get_mortgage(mortgage_id)
        payments = self.store.get_mortgage_payments(mortgage_id)
        return list(reversed(sorted(payments, key=lambda p: p.payment_date)))

    def get_mortgage_summary(
        self, mortgage_id: str, today: date, extra_monthly: int | None = None
    ) -> MortgageSummary:
        mortgage = self.get_mortgage(mortgage_id)
        return amortization.mortgage_summary(
            mortgage, self.store.get_mortgage_payments(mortgage_id), today, extra_monthly
        )

    def calculate_extra_payment_savings(self, mortgage_id: str, extra_monthly: int) -> ExtraPaymentSavings:
        return amortization.extra_payment_savings(self.get_mortgage(mortgage_id), extra_monthly)

    def list_mortgages(
        self,
        entity_id: str | None = None,
        property_id: str | None = None,
        status: MortgageStatus | None = None,
        lender: str | None = None,
        upcoming_days: int | None = None,
        today: date | None = None,
    ) -> list[Mortgage]:
        """Filter mortgages; sorted by next payment date, paid-off loans last."""
        if entity_id is not None:
            mortgages = self.store.get_entity_mortgages(entity_id)
        else:
            mortgages = list(self.store.mortgages.values())

        if property_id is not None:
            mortgages = [m for m in mortgages if m.property_id == property_id]
        if status is not None:
            mortgages = [m for m in mortgages if m.status is MortgageStatus(status)]
        if lender is not None:
            mortgages = [m for m in mortgages if m.lender == lender]
        if upcoming_days is not None:
            if today is None:
                raise ValueError("today is required when filtering by upcoming_days")
            horizon = today + timedelta(days=upcoming_days)
            mortgages = [
                m for m in mortgages if m.next_payment_date is not None and m.next_payment_date <= horizon
            ]

        return sorted(mortgages, key=lambda m: (m.next_payment_date is None, m.next_payment_date or date.max))

    def get_upcoming_payments(
        self, days_ahead: int, today: date, entity_id: str | None = None
    ) -> list[Mortgage]:
        """Active mortgages due within ``days_ahead`` days of ``today`` (overdue included)."""
        return self.list_mortgages(
            entity_id=entity_id, status=MortgageStatus.ACTIVE, upcoming_days=days_ahead, today=today
        )

    def get_unique_lenders(self, entity_id: str | None = None) -> list[str]:
        return sorted({m.lender for m in self.list_mortgages(entity_id=entity_id)})

    def resolve_display(self, mortgage: Mortgage) -> tuple[str, str]:
        """Property address and entity name for a mortgage, looked up at read time."""
        prop = self.store.get_property(mortgage.property_id)
        entity = self.store.get_entity(mortgage.entity_id)
        address = prop.address.one_line() if prop is not None else mortgage.property_id
        name = entity.legal_name if entity is not None else mortgage.entity_id
        return address, name

    def _audit(
        self,
        mortgage: Mortgage,
        actor_id: str,
        action: AuditAction,
        entity_type: str,
        target_id: str,
        before: dict[str, Any] | None = None,
        after: dict[str, Any] | None = None,
    ) -> None:
        collection = "mortgages" if entity_type == "mortgage" else f"mortgages/{mortgage.mortgage_id}/payments"
        self.audit.record(
            entity_id=mortgage.entity_id,
            actor_id=actor_id,
            action=action,
            entity_type=entity_type,
            target_id=target_id,
            collection=collection,
            before=before,
            after=after,
        )
