"""Ledger data store with referential integrity and transactional updates."""

import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, TypeVar

from estate_ledger.exceptions import NotFoundError, ReferentialIntegrityError
from estate_ledger.models import (
    Charge,
    Lease,
    Mortgage,
    MortgagePayment,
    OwningEntity,
    Payment,
    Property,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class LedgerStore:
    """In-memory store for ledger records with relationship tracking.

    Dict insertion order is creation order, which the ledger relies on to
    break ties between charges due on the same day.

    All writes go through the store lock. ``transaction()`` holds the lock
    for a block of writes and restores the previous state if the block
    raises; ``update_charge`` is an atomic read-modify-write of one charge.
    """

    # Collaborator records
    entities: dict[str, OwningEntity] = field(default_factory=dict)
    properties: dict[str, Property] = field(default_factory=dict)
    leases: dict[str, Lease] = field(default_factory=dict)

    # Ledger records
    charges: dict[str, Charge] = field(default_factory=dict)
    payments: dict[str, Payment] = field(default_factory=dict)
    mortgages: dict[str, Mortgage] = field(default_factory=dict)
    mortgage_payments: dict[str, MortgagePayment] = field(default_factory=dict)

    # Relationship indexes
    _entity_properties: dict[str, list[str]] = field(default_factory=dict)
    _entity_leases: dict[str, list[str]] = field(default_factory=dict)
    _entity_mortgages: dict[str, list[str]] = field(default_factory=dict)
    _lease_charges: dict[str, list[str]] = field(default_factory=dict)
    _lease_payments: dict[str, list[str]] = field(default_factory=dict)
    _mortgage_payments: dict[str, list[str]] = field(default_factory=dict)

    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    # ------------------------------------------------------------------
    # Inserts
    # ------------------------------------------------------------------

    def add_entity(self, entity: OwningEntity) -> None:
        """Add an owning entity to the store."""
        with self._lock:
            self.entities[entity.entity_id] = entity
            self._entity_properties.setdefault(entity.entity_id, [])
            self._entity_leases.setdefault(entity.entity_id, [])
            self._entity_mortgages.setdefault(entity.entity_id, [])

    def add_property(self, prop: Property) -> None:
        """Add a property to the store."""
        with self._lock:
            if prop.entity_id not in self.entities:
                raise ReferentialIntegrityError(f"Entity {prop.entity_id} not found")

            self.properties[prop.property_id] = prop
            self._entity_properties[prop.entity_id].append(prop.property_id)

    def add_lease(self, lease: Lease) -> None:
        """Add a lease to the store."""
        with self._lock:
            if lease.entity_id not in self.entities:
                raise ReferentialIntegrityError(f"Entity {lease.entity_id} not found")

            if lease.property_id not in self.properties:
                raise ReferentialIntegrityError(f"Property {lease.property_id} not found")

            self.leases[lease.lease_id] = lease
            self._entity_leases[lease.entity_id].append(lease.lease_id)
            self._lease_charges[lease.lease_id] = []
            self._lease_payments[lease.lease_id] = []

    def add_charge(self, charge: Charge) -> None:
        """Add a charge to the store."""
        with self._lock:
            if charge.lease_id not in self.leases:
                raise ReferentialIntegrityError(f"Lease {charge.lease_id} not found")

            self.charges[charge.charge_id] = charge
            self._lease_charges[charge.lease_id].append(charge.charge_id)

    def add_payment(self, payment: Payment) -> None:
        """Add a payment to the store."""
        with self._lock:
            if payment.lease_id not in self.leases:
                raise ReferentialIntegrityError(f"Lease {payment.lease_id} not found")

            self.payments[payment.payment_id] = payment
            self._lease_payments[payment.lease_id].append(payment.payment_id)

    def add_mortgage(self, mortgage: Mortgage) -> None:
        """Add a mortgage to the store."""
        with self._lock:
            if mortgage.entity_id not in self.entities:
                raise ReferentialIntegrityError(f"Entity {mortgage.entity_id} not found")

            if mortgage.property_id not in self.properties:
                raise ReferentialIntegrityError(f"Property {mortgage.property_id} not found")

            self.mortgages[mortgage.mortgage_id] = mortgage
            self._entity_mortgages[mortgage.entity_id].append(mortgage.mortgage_id)
            self._mortgage_payments[mortgage.mortgage_id] = []

    def add_mortgage_payment(self, payment: MortgagePayment) -> None:
        """Add a mortgage payment to the store."""
        with self._lock:
            if payment.mortgage_id not in self.mortgages:
                raise ReferentialIntegrityError(f"Mortgage {payment.mortgage_id} not found")

            self.mortgage_payments[payment.payment_id] = payment
            self._mortgage_payments[payment.mortgage_id].append(payment.payment_id)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------

    def _update(self, records: dict[str, T], key: str, fn: Callable[[T], T], label: str) -> T:
        with self._lock:
            current = records.get(key)
            if current is None:
                raise NotFoundError(f"{label} {key} not found", entity_id=key)
            updated = fn(current)
            records[key] = updated
            return updated

    def update_charge(self, charge_id: str, fn: Callable[[Charge], Charge]) -> Charge:
        """Atomically replace a charge with ``fn(current)``.

        ``fn`` runs under the store lock against the stored version, so
        concurrent increments never read a stale ``paid_amount``. Any
        exception raised by ``fn`` leaves the charge untouched.
        """
        return self._update(self.charges, charge_id, fn, "Charge")

    def update_mortgage(self, mortgage_id: str, fn: Callable[[Mortgage], Mortgage]) -> Mortgage:
        """Atomically replace a mortgage with ``fn(current)``."""
        return self._update(self.mortgages, mortgage_id, fn, "Mortgage")

    def update_entity(self, entity_id: str, fn: Callable[[OwningEntity], OwningEntity]) -> OwningEntity:
        """Atomically replace an owning entity with ``fn(current)``."""
        return self._update(self.entities, entity_id, fn, "Entity")

    def delete_mortgage(self, mortgage_id: str) -> list[MortgagePayment]:
        """Remove a mortgage together with its payment history.

        Returns the removed payments.
        """
        with self._lock:
            mortgage = self.mortgages.pop(mortgage_id, None)
            if mortgage is None:
                raise NotFoundError(f"Mortgage {mortgage_id} not found", entity_id=mortgage_id)
            self._entity_mortgages[mortgage.entity_id].remove(mortgage_id)
            payment_ids = self._mortgage_payments.pop(mortgage_id, [])
            return [self.mortgage_payments.pop(pid) for pid in payment_ids]

    @contextmanager
    def transaction(self) -> Iterator["LedgerStore"]:
        """Hold the store lock for a block of writes.

        If the block raises, every collection is restored to its state at
        entry and the exception propagates. Transactions nest; an inner
        failure only rolls back the inner block.
        """
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield self
            except BaseException:
                self._restore(snapshot)
                logger.debug("Transaction rolled back")
                raise

    def _snapshot(self) -> dict[str, Any]:
        # Ledger records are frozen, so copying the containers is enough.
        state: dict[str, Any] = {}
        for name in (
            "entities",
            "properties",
            "leases",
            "charges",
            "payments",
            "mortgages",
            "mortgage_payments",
        ):
            state[name] = dict(getattr(self, name))
        for name in (
            "_entity_properties",
            "_entity_leases",
            "_entity_mortgages",
            "_lease_charges",
            "_lease_payments",
            "_mortgage_payments",
        ):
            state[name] = {k: list(v) for k, v in getattr(self, name).items()}
        return state

    def _restore(self, state: dict[str, Any]) -> None:
        for name, value in state.items():
            setattr(self, name, value)

    # ------------------------------------------------------------------
    # Query methods
    # ------------------------------------------------------------------

    def get_entity(self, entity_id: str) -> OwningEntity | None:
        return self.entities.get(entity_id)

    def get_property(self, property_id: str) -> Property | None:
        return self.properties.get(property_id)

    def get_lease(self, lease_id: str) -> Lease | None:
        return self.leases.get(lease_id)

    def get_charge(self, charge_id: str) -> Charge | None:
        return self.charges.get(charge_id)

    def get_payment(self, payment_id: str) -> Payment | None:
        return self.payments.get(payment_id)

    def get_mortgage(self, mortgage_id: str) -> Mortgage | None:
        return self.mortgages.get(mortgage_id)

    def get_entity_properties(self, entity_id: str) -> list[Property]:
        """Get all properties of an entity."""
        return [self.properties[pid] for pid in self._entity_properties.get(entity_id, [])]

    def get_entity_leases(self, entity_id: str) -> list[Lease]:
        """Get all leases of an entity."""
        return [self.leases[lid] for lid in self._entity_leases.get(entity_id, [])]

    def get_entity_mortgages(self, entity_id: str) -> list[Mortgage]:
        """Get all mortgages of an entity."""
        return [self.mortgages[mid] for mid in self._entity_mortgages.get(entity_id, [])]

    def get_lease_charges(self, lease_id: str) -> list[Charge]:
        """Get all charges of a lease in creation order."""
        return [self.charges[cid] for cid in self._lease_charges.get(lease_id, [])]

    def get_lease_payments(self, lease_id: str) -> list[Payment]:
        """Get all payments of a lease in recording order."""
        return [self.payments[pid] for pid in self._lease_payments.get(lease_id, [])]

    def get_entity_charges(self, entity_id: str) -> list[Charge]:
        """Get all charges across the leases of an entity."""
        charges: list[Charge] = []
        for lease_id in self._entity_leases.get(entity_id, []):
            charges.extend(self.get_lease_charges(lease_id))
        return charges

    def get_entity_payments(self, entity_id: str) -> list[Payment]:
        """Get all payments across the leases of an entity."""
        payments: list[Payment] = []
        for lease_id in self._entity_leases.get(entity_id, []):
            payments.extend(self.get_lease_payments(lease_id))
        return payments

    def get_mortgage_payments(self, mortgage_id: str) -> list[MortgagePayment]:
        """Get all payments of a mortgage in recording order."""
        return [self.mortgage_payments[pid] for pid in self._mortgage_payments.get(mortgage_id, [])]

    def summary(self) -> dict[str, int]:
        """Return summary counts of all records."""
        return {
            "entities": len(self.entities),
            "properties": len(self.properties),
            "leases": len(self.leases),
            "charges": len(self.charges),
            "payments": len(self.payments),
            "mortgages": len(self.mortgages),
            "mortgage_payments": len(self.mortgage_payments),
        }
