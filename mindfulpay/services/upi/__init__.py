"""UPI hand-off and payment code parsing."""

from mindfulpay.services.upi.dispatcher import (
    DispatchError,
    SystemUriOpener,
    UpiPaymentDispatcher,
    UriOpener,
    build_upi_uri,
)
from mindfulpay.services.upi.parser import (
    InvalidPaymentCodeError,
    parse_payment_code,
)

__all__ = [
    "DispatchError",
    "InvalidPaymentCodeError",
    "SystemUriOpener",
    "UpiPaymentDispatcher",
    "UriOpener",
    "build_upi_uri",
    "parse_payment_code",
]
