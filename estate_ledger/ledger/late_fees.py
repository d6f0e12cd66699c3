"""Late fees on overdue charges."""

import logging
from dataclasses import asdict, dataclass, replace
from datetime import date, timedelta
from typing import Any

from estate_ledger.exceptions import InvalidStateError, NotFoundError
from estate_ledger.ledger.charges import ChargeLedger
from estate_ledger.models import (
    AuditAction,
    Charge,
    ChargeStatus,
    ChargeType,
    LateFeeSettings,
    LateFeeType,
)
from estate_ledger.money import HUNDRED, format_cents, round_cents, to_decimal
from estate_ledger.sinks.serialization import serialize_value
from estate_ledger.store import LedgerStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OverdueCharge:
    """A charge eligible for a late fee."""

    charge: Charge
    days_overdue: int


def calculate_late_fee(charge_amount: int, paid_amount: int, settings: LateFeeSettings) -> int:
    """Late fee in cents for a charge under ``settings``.

    Flat fees charge ``settings.amount`` cents. Percentage fees charge
    ``settings.amount`` percent of the remaining balance, capped at
    ``settings.max_amount`` when set. Returns 0 when fees are disabled,
    unconfigured, or nothing is owed.
    """
    if not settings.enabled or not settings.amount:
        return 0

    remaining = charge_amount - paid_amount
    if remaining <= 0:
        return 0

    if LateFeeType(settings.fee_type) is LateFeeType.PERCENTAGE:
        fee = round_cents(remaining * to_decimal(settings.amount) / HUNDRED)
        if settings.max_amount and fee > settings.max_amount:
            fee = settings.max_amount
        return fee

    return settings.amount


class LateFeeService:
    """Per-entity late-fee settings and application."""

    def __init__(self, store: LedgerStore, charges: ChargeLedger) -> None:
        self.store = store
        self.charges = charges

    def get_settings(self, entity_id: str) -> LateFeeSettings:
        """Late-fee settings of an owning entity."""
        entity = self.store.get_entity(entity_id)
        if entity is None:
            raise NotFoundError(f"Entity {entity_id} not found", entity_id=entity_id)
        return entity.late_fee_settings

    def update_settings(self, entity_id: str, actor_id: str, **changes: Any) -> LateFeeSettings:
        """Partially update an entity's late-fee settings."""
        current = self.get_settings(entity_id)
        if "fee_type" in changes:
            changes["fee_type"] = LateFeeType(changes["fee_type"])
        updated = replace(current, **changes)
        for name in ("amount", "max_amount"):
            value = getattr(updated, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        if updated.grace_days < 0:
            raise ValueError(f"grace_days must be non-negative, got {updated.grace_days}")

        self.store.update_entity(entity_id, lambda e: replace(e, late_fee_settings=updated))
        self.charges.audit.record(
            entity_id=entity_id,
            actor_id=actor_id,
            action=AuditAction.UPDATE,
            entity_type="entity_settings",
            target_id=entity_id,
            collection="settings",
            before={"late_fee_settings": serialize_value(asdict(current))},
            after={"late_fee_settings": serialize_value(asdict(updated))},
        )
        logger.info("Updated late fee settings for entity %s", entity_id)
        return updated

    def get_overdue_charges(self, entity_id: str, today: date) -> list[OverdueCharge]:
        """Open charges past the grace period with no late fee yet, oldest first."""
        settings = self.get_settings(entity_id)
        cutoff = today - timedelta(days=settings.grace_days)

        overdue = [
            OverdueCharge(charge=c, days_overdue=(today - c.due_date).days)
            for c in self.store.get_entity_charges(entity_id)
            if c.is_open
            and c.due_date < cutoff
            and c.charge_type is not ChargeType.LATE_FEE
            and c.late_fee_applied_at is None
        ]
        return sorted(overdue, key=lambda o: o.charge.due_date)

    def apply_late_fee(self, charge_id: str, actor_id: str, today: date) -> Charge:
        """Create a late-fee charge for an overdue charge.

        The fee is due ``today``, linked to the original charge, and the
        original is stamped so a second fee cannot be applied.

        Returns
        -------
        Charge
            The new late-fee charge.

        Raises
        ------
        NotFoundError
            The charge or its entity does not exist.
        InvalidStateError
            Late fees are disabled, the charge is paid, void, itself a late
            fee, already has a fee, is within its grace period, or the fee
            would be zero.
        """
        with self.store.transaction():
            charge = self.charges.get_charge(charge_id)
            settings = self.get_settings(charge.entity_id)
            status = charge.status.value

            if not settings.enabled:
                raise InvalidStateError(
                    f"Late fees are not enabled for entity {charge.entity_id}", entity_id=charge.entity_id
                )
            if charge.status in (ChargeStatus.PAID, ChargeStatus.VOID):
                raise InvalidStateError(
                    f"Cannot apply late fee to {status} charge {charge_id}", entity_id=charge_id, status=status
                )
            if charge.charge_type is ChargeType.LATE_FEE:
                raise InvalidStateError(
                    f"Cannot apply late fee to late fee charge {charge_id}", entity_id=charge_id, status=status
                )
            if charge.late_fee_applied_at is not None:
                raise InvalidStateError(
                    f"Late fee already applied to charge {charge_id}", entity_id=charge_id, status=status
                )
            if today < charge.due_date + timedelta(days=settings.grace_days):
                raise InvalidStateError(
                    f"Charge {charge_id} is still within its {settings.grace_days} day grace period",
                    entity_id=charge_id,
                    status=status,
                )

            fee = calculate_late_fee(charge.amount, charge.paid_amount, settings)
            if fee <= 0:
                raise InvalidStateError(
                    f"Calculated late fee for charge {charge_id} is zero", entity_id=charge_id, status=status
                )

            late_fee = self.charges.create_charge(
                lease_id=charge.lease_id,
                period=charge.period,
                charge_type=ChargeType.LATE_FEE,
                amount=fee,
                due_date=today,
                actor_id=actor_id,
                description=f"Late fee for {charge.charge_type.value} charge ({charge.period})",
                linked_charge_id=charge_id,
            )
            now = self.charges.clock()
            marked = self.store.update_charge(
                charge_id,
                lambda c: replace(c, late_fee_applied_at=now, late_fee_charge_id=late_fee.charge_id, updated_at=now),
            )

        self.charges.audit.record(
            entity_id=marked.entity_id,
            actor_id=actor_id,
            action=AuditAction.UPDATE,
            entity_type="charge",
            target_id=charge_id,
            collection="charges",
            before={"late_fee_applied_at": None, "late_fee_charge_id": None},
            after={
                "late_fee_applied_at": serialize_value(marked.late_fee_applied_at),
                "late_fee_charge_id": marked.late_fee_charge_id,
            },
        )

        logger.info(
            "Applied late fee %s of %s to charge %s",
            late_fee.charge_id,
            format_cents(fee),
            charge_id,
        )
        return late_fee
