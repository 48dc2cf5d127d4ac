"""Payment validation package."""

from shopledger.validation.validator import (
    PaymentValidationError,
    PaymentValidator,
    ValidationCode,
    get_user_friendly_message,
)

__all__ = [
    "PaymentValidationError",
    "PaymentValidator",
    "ValidationCode",
    "get_user_friendly_message",
]
