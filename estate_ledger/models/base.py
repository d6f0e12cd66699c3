"""Base models shared across the ledger."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from estate_ledger.models.enums import AuditAction


@dataclass
class Address:
    """Postal address of a property."""

    street1: str
    city: str
    state: str
    postal_code: str
    street2: str = ""
    country: str = "US"

    def one_line(self) -> str:
        """Short display form used in alerts (``street, city, state``)."""
        return f"{self.street1}, {self.city}, {self.state}"


@dataclass
class AuditEvent:
    """Audit record envelope emitted for every ledger mutation."""

    event_id: str
    entity_id: str  # Owning entity the record belongs to
    actor_id: str
    action: AuditAction
    entity_type: str  # charge, payment, mortgage, ...
    target_id: str
    entity_path: str  # e.g. entities/<id>/charges/<id>
    changes: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
