"""Enumeration types for ledger entities."""

from enum import Enum


class ChargeType(str, Enum):
    RENT = "rent"
    LATE_FEE = "late_fee"
    UTILITY = "utility"
    DEPOSIT = "deposit"
    PET_DEPOSIT = "pet_deposit"
    PET_RENT = "pet_rent"
    PARKING = "parking"
    DAMAGE = "damage"
    OTHER = "other"


class ChargeStatus(str, Enum):
    OPEN = "open"
    PARTIAL = "partial"
    PAID = "paid"
    VOID = "void"


class PaymentMethodType(str, Enum):
    CASH = "cash"
    CHECK = "check"
    MONEY_ORDER = "money_order"
    BANK_TRANSFER = "bank_transfer"
    CARD = "card"
    OTHER = "other"


class PaymentStatus(str, Enum):
    SUCCEEDED = "succeeded"
    PENDING = "pending"
    FAILED = "failed"
    REFUNDED = "refunded"
    CANCELED = "canceled"


class MortgageType(str, Enum):
    FIXED = "fixed"
    ADJUSTABLE = "adjustable"
    INTEREST_ONLY = "interest_only"
    BALLOON = "balloon"


class MortgageStatus(str, Enum):
    ACTIVE = "active"
    PAID_OFF = "paid_off"
    DEFAULTED = "defaulted"
    REFINANCED = "refinanced"


class PaymentFrequency(str, Enum):
    MONTHLY = "monthly"
    BI_WEEKLY = "bi_weekly"
    WEEKLY = "weekly"


class MortgagePaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    LATE = "late"
    MISSED = "missed"


class LeaseStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ENDED = "ended"
    TERMINATED = "terminated"


class EntityStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class LateFeeType(str, Enum):
    FLAT = "flat"
    PERCENTAGE = "percentage"


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    VOID = "void"
    DELETE = "delete"


class AlertType(str, Enum):
    LEASE_EXPIRING = "lease_expiring"
    CHARGE_OVERDUE = "charge_overdue"
    PAYMENT_DUE = "payment_due"
    MORTGAGE_PAYMENT_DUE = "mortgage_payment_due"


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"
