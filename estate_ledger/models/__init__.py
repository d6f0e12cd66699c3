"""Ledger domain models."""

from estate_ledger.models.alert import Alert
from estate_ledger.models.base import Address, AuditEvent
from estate_ledger.models.charge import Charge, ChargeBalance, derive_charge_status
from estate_ledger.models.enums import (
    AlertSeverity,
    AlertType,
    AuditAction,
    ChargeStatus,
    ChargeType,
    EntityStatus,
    LateFeeType,
    LeaseStatus,
    MortgagePaymentStatus,
    MortgageStatus,
    MortgageType,
    PaymentFrequency,
    PaymentMethodType,
    PaymentStatus,
)
from estate_ledger.models.lease import LateFeeSettings, Lease, OwningEntity, Property
from estate_ledger.models.mortgage import (
    AmortizationEntry,
    ExtraPaymentSavings,
    Mortgage,
    MortgagePayment,
    MortgageSummary,
)
from estate_ledger.models.payment import Allocation, Payment, PaymentMethod

__all__ = [
    "Address",
    "Alert",
    "AlertSeverity",
    "AlertType",
    "Allocation",
    "AmortizationEntry",
    "AuditAction",
    "AuditEvent",
    "Charge",
    "ChargeBalance",
    "ChargeStatus",
    "ChargeType",
    "EntityStatus",
    "ExtraPaymentSavings",
    "LateFeeSettings",
    "LateFeeType",
    "Lease",
    "LeaseStatus",
    "Mortgage",
    "MortgagePayment",
    "MortgagePaymentStatus",
    "MortgageStatus",
    "MortgageSummary",
    "MortgageType",
    "OwningEntity",
    "Payment",
    "PaymentFrequency",
    "PaymentMethod",
    "PaymentMethodType",
    "PaymentStatus",
    "Property",
    "derive_charge_status",
]
