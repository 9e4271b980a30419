"""Unit tests for the payment and transfer HTTP clients (httpx.MockTransport)."""

import json

import httpx
import pytest

from src.mk_checkout.infrastructure.payment_client import PaymentAuthorization, PaymentClient
from src.mk_common.errors import CollaboratorError, PaymentDeclinedError
from src.mk_payout.domain.models import Withdrawal
from src.mk_payout.infrastructure.transfer_client import TransferClient


def _payment_client(handler) -> PaymentClient:
    return PaymentClient("https://pay.test/", "pk_test", 5.0, httpx.MockTransport(handler))


def _transfer_client(handler) -> TransferClient:
    return TransferClient("https://bank.test", "tk_test", 5.0, httpx.MockTransport(handler))


class TestPaymentAuthorize:
    async def test_authorized(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["key"] = request.headers["Idempotency-Key"]
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "authorized", "processor": "netopia"})

        result = await _payment_client(handler).authorize("INV-1", "buyer-1", 11599, "idem-1")

        assert result == PaymentAuthorization(authorized=True, processor="netopia")
        assert seen["path"] == "/payments"
        assert seen["key"] == "idem-1"
        assert seen["auth"] == "Bearer pk_test"
        assert seen["body"] == {
            "invoice_number": "INV-1",
            "buyer_id": "buyer-1",
            "amount_cents": 11599,
            "currency": "RON",
        }

    async def test_redirect_is_not_authorized_yet(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"status": "redirect", "approval_url": "https://pay.test/approve/1"}
            )

        result = await _payment_client(handler).authorize("INV-1", "buyer-1", 11599, "idem-1")

        assert result.authorized is False
        assert result.approval_url == "https://pay.test/approve/1"

    async def test_declined_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "declined", "message": "Card expired"})

        with pytest.raises(PaymentDeclinedError, match="Card expired"):
            await _payment_client(handler).authorize("INV-1", "buyer-1", 11599, "idem-1")

    async def test_server_error_is_collaborator_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="maintenance")

        with pytest.raises(CollaboratorError, match="503"):
            await _payment_client(handler).authorize("INV-1", "buyer-1", 11599, "idem-1")

    async def test_timeout_is_collaborator_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        with pytest.raises(CollaboratorError):
            await _payment_client(handler).authorize("INV-1", "buyer-1", 11599, "idem-1")


class TestPaymentRefund:
    async def test_refund_uses_instruction_id_as_key(self) -> None:
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["key"] = request.headers["Idempotency-Key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"status": "accepted"})

        await _payment_client(handler).refund("ord-1", 8000, "ri-1")

        assert seen["path"] == "/refunds"
        assert seen["key"] == "ri-1"
        assert seen["body"]["amount_cents"] == 8000


class TestTransferSubmit:
    async def test_returns_reference(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Idempotency-Key"] == "wd-1"
            assert json.loads(request.content)["amount_cents"] == 5000
            return httpx.Response(202, json={"reference": 77})

        ref = await _transfer_client(handler).submit(Withdrawal("wd-1", "seller-1", 5000, "requested"))

        assert ref == "77"

    async def test_missing_reference(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(202, json={})

        ref = await _transfer_client(handler).submit(Withdrawal("wd-1", "seller-1", 5000, "requested"))

        assert ref is None

    async def test_rejection_is_collaborator_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "bad iban"})

        with pytest.raises(CollaboratorError, match="wd-1"):
            await _transfer_client(handler).submit(Withdrawal("wd-1", "seller-1", 5000, "requested"))
