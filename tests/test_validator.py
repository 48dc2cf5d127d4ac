"""
Tests for partial-payment validation.
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from uuid import uuid4

from shopledger.models.payment import PaymentRecord
from shopledger.services.storage import NotFoundError, PersistenceError
from shopledger.validation import (
    PaymentValidationError,
    ValidationCode,
    get_user_friendly_message,
)


def partial(amount, total, **extra):
    return {
        "customer_name": "Alice",
        "amount": amount,
        "total_amount": total,
        "is_partial_payment": True,
        **extra,
    }


class TestPreviewDueAmount:
    """Live due display for the form."""

    def test_preview(self, validator):
        assert validator.preview_due_amount("400", "1000") == Decimal("600")

    def test_preview_clamps_at_zero(self, validator):
        assert validator.preview_due_amount("1500", "1000") == Decimal("0")

    def test_preview_tolerates_blank_and_text(self, validator):
        assert validator.preview_due_amount("", "1000") is None
        assert validator.preview_due_amount("abc", "1000") is None
        assert validator.preview_due_amount("400", None) is None


class TestValidate:
    """Enforced rules at the ledger boundary."""

    def test_derives_due_amount(self, validator):
        payment = validator.validate(partial("400", "1000"))
        assert payment.due_amount == Decimal("600")
        assert payment.amount == Decimal("400")

    def test_full_payment_has_no_due(self, validator):
        payment = validator.validate({"customer_name": "Bob", "amount": "250"})
        assert payment.due_amount is None
        assert payment.total_amount is None

    def test_amount_equal_to_total_is_allowed(self, validator):
        payment = validator.validate(partial("1000", "1000"))
        assert payment.due_amount == Decimal("0")

    def test_partial_amount_over_total(self, validator):
        with pytest.raises(PaymentValidationError) as exc_info:
            validator.validate(partial("1200", "1000"))
        assert exc_info.value.code == ValidationCode.AMOUNT_EXCEEDS_TOTAL
        assert exc_info.value.field == "amount"

    def test_non_partial_overpayment_has_zero_due(self, validator):
        """Only partial payments are capped by the total."""
        payment = validator.validate({
            "customer_name": "Alice",
            "amount": "1200",
            "total_amount": "1000",
        })
        assert payment.due_amount == Decimal("0")

    def test_missing_customer_name(self, validator):
        with pytest.raises(PaymentValidationError) as exc_info:
            validator.validate({"amount": "100"})
        assert exc_info.value.code == ValidationCode.MISSING_FIELD
        assert exc_info.value.field == "customer_name"

    def test_empty_customer_name(self, validator):
        with pytest.raises(PaymentValidationError) as exc_info:
            validator.validate({"customer_name": "", "amount": "100"})
        assert exc_info.value.code == ValidationCode.MISSING_FIELD

    def test_blank_amount_is_missing(self, validator):
        """The form sends an empty amount box as None."""
        with pytest.raises(PaymentValidationError) as exc_info:
            validator.validate({"customer_name": "Alice", "amount": None})
        assert exc_info.value.code == ValidationCode.MISSING_FIELD
        assert exc_info.value.field == "amount"
        assert exc_info.value.message == "Amount is required"

    def test_blank_customer_name_is_missing(self, validator):
        with pytest.raises(PaymentValidationError) as exc_info:
            validator.validate({"customer_name": None, "amount": "100"})
        assert exc_info.value.code == ValidationCode.MISSING_FIELD
        assert exc_info.value.message == "Customer name is required"

    def test_blank_amount_reported_by_check(self, validator):
        result = validator.check({"customer_name": "Alice", "amount": None})
        assert result.is_valid is False
        assert result.issues[0].issue_type == "missing_field"

    def test_zero_amount(self, validator):
        with pytest.raises(PaymentValidationError) as exc_info:
            validator.validate({"customer_name": "Alice", "amount": "0"})
        assert exc_info.value.code == ValidationCode.INVALID_VALUE
        assert exc_info.value.field == "amount"

    def test_due_amount_cannot_be_supplied(self, validator):
        with pytest.raises(PaymentValidationError) as exc_info:
            validator.validate(partial("400", "1000", due_amount="1"))
        assert exc_info.value.code == ValidationCode.INVALID_VALUE
        assert exc_info.value.field == "due_amount"
        assert "calculated automatically" in exc_info.value.message


class TestValidateUpdate:
    """Patches are checked against the merged payment."""

    @pytest.fixture
    def existing(self):
        return PaymentRecord(
            id=uuid4(),
            owner_id="shop-1",
            customer_name="Alice",
            amount=Decimal("400"),
            total_amount=Decimal("1000"),
            due_amount=Decimal("600"),
            is_partial_payment=True,
            payment_date=date(2024, 6, 1),
            created_at=datetime(2024, 6, 1),
            updated_at=datetime(2024, 6, 1),
        )

    def test_due_recomputed_from_patch(self, validator, existing):
        payment = validator.validate_update(existing, {"amount": "700"})
        assert payment.due_amount == Decimal("300")
        assert payment.customer_name == "Alice"

    def test_lowering_total_below_amount_is_caught(self, validator, existing):
        with pytest.raises(PaymentValidationError) as exc_info:
            validator.validate_update(existing, {"total_amount": "300"})
        assert exc_info.value.code == ValidationCode.AMOUNT_EXCEEDS_TOTAL

    def test_clearing_total_clears_due(self, validator, existing):
        payment = validator.validate_update(existing, {"total_amount": None})
        assert payment.due_amount is None

    def test_unknown_patch_field(self, validator, existing):
        with pytest.raises(PaymentValidationError):
            validator.validate_update(existing, {"due_amount": "0"})


class TestCheck:
    """Advisory form checks."""

    def test_valid_form(self, validator):
        result = validator.check(partial("400", "1000"))
        assert result.is_valid is True
        assert result.due_amount == Decimal("600")
        assert result.issues == []

    def test_reports_amount_exceeds_total(self, validator):
        result = validator.check(partial("1200", "1000"))
        assert result.is_valid is False
        assert result.issues[0].issue_type == "amount_exceeds_total"

    def test_invalid_form_still_previews_due(self, validator):
        result = validator.check({"amount": "400", "total_amount": "1000"})
        assert result.is_valid is False
        assert result.due_amount == Decimal("600")

    def test_high_amount_is_a_warning(self, validator):
        result = validator.check({"customer_name": "Alice", "amount": "500000"})
        assert result.is_valid is True
        assert len(result.warnings) == 1

    def test_partial_without_total_is_a_warning(self, validator):
        result = validator.check({
            "customer_name": "Alice",
            "amount": "100",
            "is_partial_payment": True,
        })
        assert result.is_valid is True
        assert result.issues[0].issue_type == "missing_total"

    def test_summary_text(self, validator):
        result = validator.check(partial("400", "1000"))
        assert validator.get_user_friendly_summary(result) == "Due after this payment: ₹600.00"


class TestUserFriendlyMessage:

    def test_messages(self):
        error = PaymentValidationError(ValidationCode.MISSING_FIELD, "amount", "Amount is required")
        assert get_user_friendly_message(error) == "Amount is required"
        assert "not found" in get_user_friendly_message(NotFoundError("x"))
        assert "Failed to save" in get_user_friendly_message(PersistenceError("x"))
        assert "went wrong" in get_user_friendly_message(RuntimeError("x"))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
