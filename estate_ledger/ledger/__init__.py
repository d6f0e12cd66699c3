"""Ledger services: charges, payments, mortgages, late fees and alerts."""

from estate_ledger.ledger import amortization
from estate_ledger.ledger.alerts import AlertAggregator, sort_alerts
from estate_ledger.ledger.allocation import PaymentAllocator, allocate_fifo
from estate_ledger.ledger.audit import AuditLog, AuditSink
from estate_ledger.ledger.charges import ChargeLedger
from estate_ledger.ledger.late_fees import LateFeeService, OverdueCharge, calculate_late_fee
from estate_ledger.ledger.mortgages import MortgageService

__all__ = [
    "AlertAggregator",
    "AuditLog",
    "AuditSink",
    "ChargeLedger",
    "LateFeeService",
    "MortgageService",
    "OverdueCharge",
    "PaymentAllocator",
    "allocate_fifo",
    "amortization",
    "calculate_late_fee",
    "sort_alerts",
]
