"""Payment input validation."""

from mindfulpay.validation.validator import PaymentValidationError, PaymentValidator

__all__ = ["PaymentValidationError", "PaymentValidator"]
