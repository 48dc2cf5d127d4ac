"""
Core Data Models for Shop Ledger

These models define the strict schemas for customer payments and the
due-balance views derived from them. They are designed to:
1. Enforce amount invariants at runtime
2. Keep optional fields truly optional (None, never "")
3. Make the due amount impossible to set by hand
4. Be serializable for storage and logging

DESIGN DECISION: Input shapes (PaymentDraft, PaymentPatch) have NO due_amount
field and forbid unknown fields. The only way a due figure enters the system
is through NewPayment, which the validator builds from amount/total_amount.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class PaymentMethod(str, Enum):
    """How the customer paid."""
    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    NET_BANKING = "net_banking"
    WALLET = "wallet"
    CHEQUE = "cheque"
    OTHER = "other"


def derive_due_amount(
    amount: Optional[Decimal],
    total_amount: Optional[Decimal],
) -> Optional[Decimal]:
    """
    Amount still owed after paying `amount` against `total_amount`.

    None when there is no total to settle against.
    """
    if total_amount is None or amount is None:
        return None
    return max(Decimal("0"), total_amount - amount)


# =============================================================================
# INPUT MODELS
# =============================================================================

class PaymentDraft(BaseModel):
    """
    A payment as entered by the user, before validation.

    customer_name is kept exactly as typed. "Alice" and "alice " are
    different customers as far as the ledger is concerned.
    """
    model_config = ConfigDict(extra="forbid")

    customer_name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Who paid (free text, not normalized)"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        decimal_places=2,
        description="Amount actually paid in this record"
    )
    total_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        decimal_places=2,
        description="Transaction total this payment settles"
    )
    is_partial_payment: bool = Field(
        default=False,
        description="Part of a partial-settlement chain"
    )
    payment_method: PaymentMethod = Field(
        default=PaymentMethod.CASH,
        description="Payment method"
    )
    description: Optional[str] = Field(
        default=None,
        max_length=500,
    )
    payment_date: date = Field(
        default_factory=date.today,
        description="Calendar date of the payment"
    )
    parent_payment_id: Optional[UUID] = Field(
        default=None,
        description="Record whose due this payment follows up"
    )


class PaymentPatch(BaseModel):
    """
    Partial update of an existing payment.

    Only fields that were explicitly set are applied, so passing
    total_amount=None clears the total while omitting it keeps it.
    """
    model_config = ConfigDict(extra="forbid")

    customer_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[Decimal] = Field(default=None, gt=0, decimal_places=2)
    total_amount: Optional[Decimal] = Field(default=None, ge=0, decimal_places=2)
    is_partial_payment: Optional[bool] = None
    payment_method: Optional[PaymentMethod] = None
    description: Optional[str] = Field(default=None, max_length=500)
    payment_date: Optional[date] = None

    def changes(self) -> dict:
        """Fields the caller actually set."""
        return self.model_dump(exclude_unset=True)


class NewPayment(PaymentDraft):
    """
    A validated payment, ready to be written by a store.

    CRITICAL: due_amount must match the amounts. Building one with a
    hand-picked due_amount fails.
    """

    due_amount: Optional[Decimal] = Field(
        default=None,
        ge=0,
        description="Derived: max(0, total_amount - amount)"
    )

    @model_validator(mode='after')
    def validate_amounts(self) -> 'NewPayment':
        """Enforce the partial-payment invariants."""
        if (
            self.is_partial_payment
            and self.total_amount is not None
            and self.amount > self.total_amount
        ):
            raise ValueError("Amount cannot exceed total amount for a partial payment")

        if self.due_amount != derive_due_amount(self.amount, self.total_amount):
            raise ValueError("Due amount must be derived from total amount and amount")

        return self


# =============================================================================
# STORED RECORD
# =============================================================================

class PaymentRecord(BaseModel):
    """
    A customer payment as persisted by a store.

    id, owner_id and created_at are assigned by the store and never change.
    """
    model_config = ConfigDict(frozen=True)

    # Identity
    id: UUID
    owner_id: str = Field(..., min_length=1)

    customer_name: str
    amount: Decimal = Field(..., gt=0)
    total_amount: Optional[Decimal] = None
    due_amount: Optional[Decimal] = Field(default=None, ge=0)
    is_partial_payment: bool = False
    payment_method: PaymentMethod = PaymentMethod.CASH
    description: Optional[str] = None
    payment_date: date
    parent_payment_id: Optional[UUID] = None

    # Timestamps
    created_at: datetime
    updated_at: datetime

    @model_validator(mode='after')
    def validate_partial_amount(self) -> 'PaymentRecord':
        if (
            self.is_partial_payment
            and self.total_amount is not None
            and self.amount > self.total_amount
        ):
            raise ValueError("Amount cannot exceed total amount for a partial payment")
        return self

    def editable_fields(self) -> dict:
        """The user-editable part of this record, keyed like PaymentDraft."""
        return self.model_dump(
            exclude={"id", "owner_id", "due_amount", "created_at", "updated_at"}
        )


# =============================================================================
# DUE-BALANCE VIEWS
# =============================================================================

class CustomerDueSummary(BaseModel):
    """Outstanding balance of one customer."""

    customer_name: str
    payment_count: int = Field(..., ge=1)
    last_payment_date: date
    total_due: Decimal = Field(..., ge=0)


class DueAmountSummary(BaseModel):
    """Totals across every customer that still owes money."""

    total_due_amount: Decimal = Decimal("0")
    customers_with_due: int = Field(default=0, ge=0)
    average_due_per_customer: Decimal = Decimal("0")


class PaymentTotals(BaseModel):
    """Money received, overall and per payment method."""

    total_received: Decimal = Decimal("0")
    payment_count: int = Field(default=0, ge=0)
    by_method: dict[PaymentMethod, Decimal] = Field(default_factory=dict)


class MonthlyPaymentTotal(BaseModel):
    """Money received in one calendar month."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$", description="YYYY-MM")
    total_received: Decimal = Decimal("0")
    payment_count: int = Field(default=0, ge=0)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing_field', 'amount_exceeds_total')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of checking a payment form.

    Used by the UI to block submission early. The ledger service
    enforces the same rules again before writing.
    """

    is_valid: bool
    due_amount: Optional[Decimal] = Field(
        default=None,
        description="Due amount the payment would carry if saved"
    )
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
