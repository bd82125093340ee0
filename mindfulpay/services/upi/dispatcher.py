"""
UPI Payment Dispatcher

Hands an approved payment to whichever UPI app the device has
registered for the `upi://` scheme.

DESIGN DECISION: Opening the URI is behind the UriOpener interface.
The dispatcher only builds the URI and reports what happened; the
actual OS call is a thin, swappable collaborator.
"""

import asyncio
import webbrowser
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional
from urllib.parse import quote

import structlog

from mindfulpay.config import get_settings
from mindfulpay.models.payment import DispatchResult


logger = structlog.get_logger(__name__)


class DispatchError(Exception):
    """The payment could not be handed to a UPI app."""
    pass


class UriOpener(ABC):
    """Platform facility that opens a URI in the registered handler."""

    @abstractmethod
    async def can_open(self, uri: str) -> bool:
        """Whether some app is registered for this URI."""
        pass

    @abstractmethod
    async def open(self, uri: str) -> None:
        """
        Open the URI.

        Raises:
            DispatchError: If the handler could not be launched
        """
        pass


class SystemUriOpener(UriOpener):
    """Opens URIs through the desktop's default handler (webbrowser module)."""

    async def can_open(self, uri: str) -> bool:
        # webbrowser cannot ask the OS ahead of time; open() reports failure
        return True

    async def open(self, uri: str) -> None:
        opened = await asyncio.to_thread(webbrowser.open, uri)
        if not opened:
            raise DispatchError(f"No application accepted {uri.split(':', 1)[0]}:// links")


def build_upi_uri(
    payee_id: str,
    amount: Decimal,
    note: str,
    payee_name: Optional[str] = None,
    scheme: Optional[str] = None,
    currency: Optional[str] = None,
) -> str:
    """
    Build `scheme://pay?pa=..&am=..&cu=..&tn=..`.

    The amount is always written with two decimals.
    """
    payment_settings = get_settings().payments
    scheme = scheme or payment_settings.scheme
    currency = currency or payment_settings.currency

    params = [f"pa={quote(payee_id, safe='@')}"]
    if payee_name:
        params.append(f"pn={quote(payee_name, safe='')}")
    params.append(f"am={Decimal(amount):.2f}")
    params.append(f"cu={currency}")
    params.append(f"tn={quote(note, safe='')}")
    return f"{scheme}://pay?{'&'.join(params)}"


class UpiPaymentDispatcher:
    """Builds the UPI URI and asks the opener to launch it."""

    def __init__(
        self,
        opener: Optional[UriOpener] = None,
        scheme: Optional[str] = None,
        currency: Optional[str] = None,
    ):
        payment_settings = get_settings().payments
        self._opener = opener or SystemUriOpener()
        self._scheme = scheme or payment_settings.scheme
        self._currency = currency or payment_settings.currency

    async def dispatch(
        self,
        payee_id: str,
        amount: Decimal,
        note: str,
        payee_name: Optional[str] = None,
    ) -> DispatchResult:
        """
        Launch the UPI app for a payment.

        Never raises; a missing handler or a failing OS call is
        reported as an unsuccessful DispatchResult.
        """
        uri = build_upi_uri(
            payee_id,
            amount,
            note,
            payee_name=payee_name,
            scheme=self._scheme,
            currency=self._currency,
        )

        try:
            if not await self._opener.can_open(uri):
                logger.error("upi_handler_missing", uri=uri)
                return DispatchResult(
                    success=False,
                    uri=uri,
                    error_message="No UPI app available to handle this payment",
                )
            await self._opener.open(uri)
        except Exception as e:
            logger.error("upi_launch_failed", uri=uri, error=str(e))
            return DispatchResult(success=False, uri=uri, error_message=str(e))

        logger.info("upi_app_launched", uri=uri)
        return DispatchResult(success=True, uri=uri)
