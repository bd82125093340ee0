"""
UPI payment code parser.

Scanned QR codes carry a URI of the form

    upi://pay?pa=<payee>&pn=<name>&am=<amount>&cu=<currency>&tn=<note>

Only `pa` is mandatory. Anything that is not a pay URI in the
configured scheme, or whose fields do not make sense, is rejected
with InvalidPaymentCodeError before any payment check runs.
"""

from decimal import Decimal, InvalidOperation
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from mindfulpay.config import get_settings
from mindfulpay.models.payment import PaymentCode, is_valid_payee_id


class InvalidPaymentCodeError(ValueError):
    """The scanned code is not a usable UPI payment URI."""

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


def _single(params: dict[str, list[str]], name: str) -> Optional[str]:
    values = params.get(name)
    if not values:
        return None
    value = values[0].strip()
    return value or None


def parse_payment_code(
    code: str,
    scheme: Optional[str] = None,
    currency: Optional[str] = None,
) -> PaymentCode:
    """
    Parse a `upi://pay?...` URI.

    Args:
        code: Raw text decoded from the QR image
        scheme: Expected URI scheme (default from PaymentSettings)
        currency: Only currency accepted in `cu` (default from PaymentSettings)

    Raises:
        InvalidPaymentCodeError: For anything that is not a valid pay URI
    """
    payment_settings = get_settings().payments
    scheme = (scheme or payment_settings.scheme).lower()
    currency = (currency or payment_settings.currency).upper()

    if not code or not code.strip():
        raise InvalidPaymentCodeError("Empty payment code", code)

    parts = urlsplit(code.strip())
    if parts.scheme.lower() != scheme:
        raise InvalidPaymentCodeError(f"Not a {scheme}:// payment code", code)

    # upi://pay?... puts "pay" in the netloc, upi:pay?... in the path
    action = (parts.netloc or parts.path).strip("/").lower()
    if action != "pay":
        raise InvalidPaymentCodeError(f"Unsupported {scheme} action: {action or 'none'}", code)

    params = parse_qs(parts.query, keep_blank_values=True)

    payee_id = _single(params, "pa")
    if not payee_id:
        raise InvalidPaymentCodeError("Payment code has no payee address", code)
    if not is_valid_payee_id(payee_id):
        raise InvalidPaymentCodeError(f"Invalid payee address: {payee_id}", code)

    amount: Optional[Decimal] = None
    raw_amount = _single(params, "am")
    if raw_amount is not None:
        try:
            amount = Decimal(raw_amount)
        except InvalidOperation:
            raise InvalidPaymentCodeError(f"Invalid amount in payment code: {raw_amount}", code)
        if not amount.is_finite() or amount <= 0:
            raise InvalidPaymentCodeError(f"Invalid amount in payment code: {raw_amount}", code)

    code_currency = _single(params, "cu")
    if code_currency is not None and code_currency.upper() != currency:
        raise InvalidPaymentCodeError(f"Unsupported currency: {code_currency}", code)

    return PaymentCode(
        payee_id=payee_id,
        payee_name=_single(params, "pn"),
        amount=amount,
        note=_single(params, "tn"),
        currency=code_currency.upper() if code_currency else None,
    )
