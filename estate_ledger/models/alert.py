"""Alert model for due-date notifications."""

from dataclasses import dataclass
from datetime import date

from estate_ledger.models.enums import AlertSeverity, AlertType


@dataclass(frozen=True)
class Alert:
    """A time-sensitive obligation surfaced to property owners."""

    alert_id: str  # <target_type>-<target_id>, stable across scans
    alert_type: AlertType
    severity: AlertSeverity
    title: str
    description: str
    entity_id: str
    entity_name: str
    target_type: str
    target_id: str
    due_date: date | None = None
    amount: int | None = None
