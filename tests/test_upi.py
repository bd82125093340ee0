"""Tests for UPI payment codes and the dispatcher."""

from decimal import Decimal
from unittest.mock import patch

import pytest

from mindfulpay.services.upi import (
    DispatchError,
    InvalidPaymentCodeError,
    SystemUriOpener,
    UpiPaymentDispatcher,
    build_upi_uri,
    parse_payment_code,
)

from conftest import FakeOpener


class TestParsePaymentCode:
    """Tests for reading scanned upi://pay codes."""

    def test_full_code(self):
        code = parse_payment_code(
            "upi://pay?pa=merchant@okhdfc&pn=Corner%20Store&am=125.50&cu=INR&tn=Groceries"
        )
        assert code.payee_id == "merchant@okhdfc"
        assert code.payee_name == "Corner Store"
        assert code.amount == Decimal("125.50")
        assert code.currency == "INR"
        assert code.note == "Groceries"

    def test_payee_only(self):
        code = parse_payment_code("upi://pay?pa=friend@ybl")
        assert code.payee_id == "friend@ybl"
        assert code.amount is None
        assert code.payee_name is None

    def test_scheme_is_case_insensitive(self):
        assert parse_payment_code("UPI://pay?pa=friend@ybl").payee_id == "friend@ybl"

    @pytest.mark.parametrize(
        "raw",
        [
            "",
            "   ",
            "https://pay?pa=friend@ybl",
            "upi://collect?pa=friend@ybl",
            "upi://pay?pn=Nobody",
            "upi://pay?pa=",
            "upi://pay?pa=no-handle",
            "upi://pay?pa=a@b@c",
            "upi://pay?pa=shop%09@upi",
            "upi://pay?pa=" + "a" * 230 + "@upi",
            "upi://pay?pa=friend@ybl&am=abc",
            "upi://pay?pa=friend@ybl&am=-1",
            "upi://pay?pa=friend@ybl&am=0",
            "upi://pay?pa=friend@ybl&am=NaN",
            "upi://pay?pa=friend@ybl&cu=USD",
        ],
    )
    def test_rejects_invalid_codes(self, raw):
        with pytest.raises(InvalidPaymentCodeError):
            parse_payment_code(raw)

    def test_error_keeps_code(self):
        with pytest.raises(InvalidPaymentCodeError) as exc_info:
            parse_payment_code("hello")
        assert exc_info.value.code == "hello"


class TestBuildUri:

    def test_minimal(self):
        uri = build_upi_uri("shop@upi", Decimal("100"), "Lunch", scheme="upi", currency="INR")
        assert uri == "upi://pay?pa=shop@upi&am=100.00&cu=INR&tn=Lunch"

    def test_escapes_note_and_name(self):
        uri = build_upi_uri(
            "shop@upi",
            Decimal("9.5"),
            "Tea & snacks",
            payee_name="Chai Point",
            scheme="upi",
            currency="INR",
        )
        assert "pn=Chai%20Point" in uri
        assert "tn=Tea%20%26%20snacks" in uri
        assert "am=9.50" in uri

    def test_built_uri_parses_back(self):
        uri = build_upi_uri("shop@upi", Decimal("42.10"), "Books", scheme="upi", currency="INR")
        code = parse_payment_code(uri, scheme="upi", currency="INR")
        assert code.payee_id == "shop@upi"
        assert code.amount == Decimal("42.10")
        assert code.note == "Books"


class TestUpiPaymentDispatcher:
    """Tests for handing payments to the UPI app."""

    @pytest.mark.asyncio
    async def test_success(self):
        opener = FakeOpener()
        dispatcher = UpiPaymentDispatcher(opener, scheme="upi", currency="INR")

        result = await dispatcher.dispatch("shop@upi", Decimal("10"), "Snacks")

        assert result.success is True
        assert result.error_message is None
        assert opener.opened == [result.uri]

    @pytest.mark.asyncio
    async def test_no_handler(self):
        dispatcher = UpiPaymentDispatcher(FakeOpener(available=False))
        result = await dispatcher.dispatch("shop@upi", Decimal("10"), "Snacks")
        assert result.success is False
        assert "No UPI app" in result.error_message

    @pytest.mark.asyncio
    async def test_open_raises(self):
        dispatcher = UpiPaymentDispatcher(FakeOpener(error=DispatchError("launch refused")))
        result = await dispatcher.dispatch("shop@upi", Decimal("10"), "Snacks")
        assert result.success is False
        assert result.error_message == "launch refused"


class TestSystemUriOpener:

    @pytest.mark.asyncio
    async def test_opens_with_webbrowser(self):
        with patch("mindfulpay.services.upi.dispatcher.webbrowser.open", return_value=True) as mock_open:
            await SystemUriOpener().open("upi://pay?pa=a@b")
        mock_open.assert_called_once_with("upi://pay?pa=a@b")

    @pytest.mark.asyncio
    async def test_raises_when_nothing_opened(self):
        with patch("mindfulpay.services.upi.dispatcher.webbrowser.open", return_value=False):
            with pytest.raises(DispatchError):
                await SystemUriOpener().open("upi://pay?pa=a@b")
