"""
Data Models Package

This package contains all Pydantic models used in Shop Ledger.
All data flowing through the ledger must conform to these schemas.
"""

from shopledger.models.payment import (
    CustomerDueSummary,
    DueAmountSummary,
    MonthlyPaymentTotal,
    NewPayment,
    PaymentDraft,
    PaymentMethod,
    PaymentPatch,
    PaymentRecord,
    PaymentTotals,
    ValidationIssue,
    ValidationResult,
    derive_due_amount,
)
from shopledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Payment models
    "CustomerDueSummary",
    "DueAmountSummary",
    "MonthlyPaymentTotal",
    "NewPayment",
    "PaymentDraft",
    "PaymentMethod",
    "PaymentPatch",
    "PaymentRecord",
    "PaymentTotals",
    "ValidationIssue",
    "ValidationResult",
    "derive_due_amount",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
