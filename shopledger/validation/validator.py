"""
Partial-Payment Validation

DESIGN DECISION: The same rules run in two places:

AT ENTRY (advisory):
- check() never raises; it returns issues and a live due preview
- The UI uses it to block submission and show the derived due amount

AT THE LEDGER BOUNDARY (enforced):
- validate() raises PaymentValidationError
- It is the only producer of NewPayment, the shape stores accept
- So no path can persist a payment whose amounts don't reconcile

IMPORTANT: due_amount is never an input. It is always
max(0, total_amount - amount), recomputed whenever either changes.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from shopledger.config import LedgerSettings, get_settings
from shopledger.models.payment import (
    NewPayment,
    PaymentDraft,
    PaymentPatch,
    PaymentRecord,
    ValidationIssue,
    ValidationResult,
    derive_due_amount,
)
from shopledger.services.storage import NotFoundError, PersistenceError


class ValidationCode(str, Enum):
    """Why a payment was refused."""
    AMOUNT_EXCEEDS_TOTAL = "amount_exceeds_total"
    MISSING_FIELD = "missing_field"
    INVALID_VALUE = "invalid_value"


class PaymentValidationError(Exception):
    """A payment failed validation and was not persisted."""

    def __init__(self, code: ValidationCode, field: str, message: str):
        super().__init__(message)
        self.code = code
        self.field = field
        self.message = message


PaymentInput = Union[PaymentDraft, dict[str, Any]]
PatchInput = Union[PaymentPatch, dict[str, Any]]


def _to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a form value; None for blanks and non-numeric text."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


REQUIRED_FIELDS = ("customer_name", "amount", "payment_method", "payment_date")


def _issue_from_error(error: dict) -> ValidationIssue:
    """Translate one pydantic error into a ValidationIssue."""
    field = ".".join(str(part) for part in error.get("loc", ())) or "payment"
    error_type = error.get("type", "")

    # A blank form field arrives as None
    blank_required = field in REQUIRED_FIELDS and error.get("input", "") is None

    if error_type == "missing" or blank_required or (
        field == "customer_name" and error_type == "string_too_short"
    ):
        code = ValidationCode.MISSING_FIELD
        message = f"{field.replace('_', ' ').capitalize()} is required"
    elif error_type == "extra_forbidden" and field == "due_amount":
        code = ValidationCode.INVALID_VALUE
        message = "Due amount is calculated automatically and cannot be entered"
    else:
        code = ValidationCode.INVALID_VALUE
        message = f"{field.replace('_', ' ').capitalize()}: {error.get('msg', 'invalid value')}"

    return ValidationIssue(
        field=field,
        issue_type=code.value,
        message=message,
        severity="error",
    )


def _raise_for_pydantic(exc: PydanticValidationError) -> None:
    issue = _issue_from_error(exc.errors()[0])
    raise PaymentValidationError(
        ValidationCode(issue.issue_type), issue.field, issue.message
    ) from exc


class PaymentValidator:
    """
    Validates payments before they are written.

    Stateless apart from settings; safe to share between requests.
    """

    def __init__(self, settings: Optional[LedgerSettings] = None):
        self._settings = settings or get_settings().ledger

    def preview_due_amount(self, amount: Any, total_amount: Any) -> Optional[Decimal]:
        """
        Due amount for the current form values.

        Read-only helper for live display; tolerates blanks and text.
        """
        return derive_due_amount(_to_decimal(amount), _to_decimal(total_amount))

    def _amount_exceeds_total(self, draft: PaymentDraft) -> bool:
        return (
            draft.is_partial_payment
            and draft.total_amount is not None
            and draft.amount > draft.total_amount
        )

    def check(self, candidate: PaymentInput) -> ValidationResult:
        """
        Advisory check of a payment form.

        Never raises. Returns every issue found plus the due amount
        the payment would carry.
        """
        issues: list[ValidationIssue] = []
        draft: Optional[PaymentDraft] = None

        if isinstance(candidate, PaymentDraft):
            draft = candidate
        else:
            try:
                draft = PaymentDraft.model_validate(candidate)
            except PydanticValidationError as e:
                issues.extend(_issue_from_error(err) for err in e.errors())

        if draft is not None:
            due_amount = derive_due_amount(draft.amount, draft.total_amount)

            if self._amount_exceeds_total(draft):
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type=ValidationCode.AMOUNT_EXCEEDS_TOTAL.value,
                    message=(
                        f"Amount ({draft.amount}) is more than the "
                        f"total amount ({draft.total_amount})"
                    ),
                    severity="error",
                    suggested_fix="Enter an amount up to the total, or correct the total",
                ))

            max_amount = Decimal(str(self._settings.max_payment_amount))
            if draft.amount > max_amount:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="suspicious_value",
                    message=(
                        f"Amount ({self._settings.currency_symbol}{draft.amount:,.2f}) "
                        "seems unusually high"
                    ),
                    severity="warning",
                    suggested_fix="Please verify this amount is correct",
                ))

            if draft.is_partial_payment and draft.total_amount is None:
                issues.append(ValidationIssue(
                    field="total_amount",
                    issue_type="missing_total",
                    message="Partial payment has no total amount, so no due will be tracked",
                    severity="warning",
                    suggested_fix="Enter the full transaction amount",
                ))
        else:
            raw = candidate if isinstance(candidate, dict) else {}
            due_amount = self.preview_due_amount(raw.get("amount"), raw.get("total_amount"))

        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            due_amount=due_amount,
            issues=issues,
            warnings=[i.message for i in issues if i.severity == "warning"],
        )

    def validate(self, candidate: PaymentInput) -> NewPayment:
        """
        Enforce the payment rules and derive the due amount.

        Raises:
            PaymentValidationError: On the first rule the payment breaks
        """
        if isinstance(candidate, PaymentDraft):
            draft = candidate
        else:
            try:
                draft = PaymentDraft.model_validate(candidate)
            except PydanticValidationError as e:
                _raise_for_pydantic(e)

        if self._amount_exceeds_total(draft):
            raise PaymentValidationError(
                ValidationCode.AMOUNT_EXCEEDS_TOTAL,
                "amount",
                f"Amount ({draft.amount}) cannot exceed total amount ({draft.total_amount})",
            )

        return NewPayment(
            **draft.model_dump(exclude={"due_amount"}),
            due_amount=derive_due_amount(draft.amount, draft.total_amount),
        )

    def validate_update(
        self,
        existing: PaymentRecord,
        patch: PatchInput,
    ) -> NewPayment:
        """
        Validate an existing payment with a patch applied.

        The merged payment is checked as a whole, so lowering a total
        below an unchanged amount is caught too.
        """
        if not isinstance(patch, PaymentPatch):
            try:
                patch = PaymentPatch.model_validate(patch)
            except PydanticValidationError as e:
                _raise_for_pydantic(e)

        merged = {**existing.editable_fields(), **patch.changes()}
        return self.validate(merged)

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of a form check.
        """
        if result.is_valid and not result.warnings:
            if result.due_amount:
                return f"Due after this payment: {self._settings.currency_symbol}{result.due_amount:,.2f}"
            return "All checks passed."

        lines = []

        if not result.is_valid:
            lines.append("Please fix the following before saving:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     {issue.suggested_fix}")

        if result.warnings:
            lines.append("Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


def get_user_friendly_message(error: Exception) -> str:
    """Short text for a toast about a failed ledger operation."""
    if isinstance(error, PaymentValidationError):
        return error.message
    if isinstance(error, NotFoundError):
        return "Payment not found. It may have been deleted already."
    if isinstance(error, PersistenceError):
        return "Failed to save payment. Please try again."
    return "Something went wrong. Please try again."
