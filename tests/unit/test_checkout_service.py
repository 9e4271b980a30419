"""Unit tests for CheckoutService with mock catalog, submissions, lock and orders."""

from unittest.mock import AsyncMock

import pytest

from src.mk_checkout.application.schemas import PlaceOrderRequest
from src.mk_checkout.application.service import CheckoutService
from src.mk_checkout.domain.models import Listing, Submission
from src.mk_checkout.domain.rules import request_fingerprint
from src.mk_checkout.infrastructure.payment_client import PaymentAuthorization
from src.mk_common.errors import (
    CodNotAvailableError,
    CourierRequiredError,
    DuplicateSubmissionError,
    ListingNotFoundError,
    ListingUnavailableError,
    PaymentDeclinedError,
    PriceMismatchError,
    SelfPurchaseError,
    SubmissionInProgressError,
)
from src.mk_order.domain.models import CodPayment

ADDRESS = {
    "first_name": "Ana",
    "last_name": "Popescu",
    "email": "ana@example.com",
    "street": "Strada Lipscani 10",
    "city": "Bucuresti",
    "region": "Ilfov",
    "postal_code": "030031",
    "phone": "0712345678",
}


def _listing(listing_id: str = "lst-1", seller_id: str = "seller-1", price: int = 10000, **kw: object) -> Listing:
    fields: dict[str, object] = {
        "id": listing_id,
        "seller_id": seller_id,
        "title": f"Item {listing_id}",
        "price": price,
        "is_active": True,
        "seller_country": "Romania",
        "cod_enabled": True,
    }
    fields.update(kw)
    return Listing(**fields)  # type: ignore[arg-type]


def _card_request(**kw: object) -> PlaceOrderRequest:
    data: dict[str, object] = {
        "items": [{"listing_id": "lst-1", "price": 10000}],
        "shipping_address": ADDRESS,
        "shipping_method": "standard",
        "shipping_cost": 1599,
        "payment_method": "card",
        "idempotency_key": "key-12345678",
    }
    data.update(kw)
    return PlaceOrderRequest(**data)


def _cod_request(**kw: object) -> PlaceOrderRequest:
    # cargus: 2% + 5.00 fixed, transport 16.00
    data: dict[str, object] = {
        "payment_method": "cod",
        "shipping_cost": 1600,
        "cod_fees": 700,
        "courier": {"courier_id": "cargus", "delivery_type": "home"},
    }
    data.update(kw)
    return _card_request(**data)


class _Fixture:
    def __init__(self, listings: list[Listing] | None = None, client: object = None) -> None:
        self.catalog = AsyncMock()
        self.catalog.get_many.return_value = {lst.id: lst for lst in ([_listing()] if listings is None else listings)}
        self.submissions = AsyncMock()
        self.submissions.get.return_value = None
        self.lock = AsyncMock()
        self.lock.acquire.return_value = True
        self.orders = AsyncMock()
        self.client = client
        self.service = CheckoutService(
            catalog=self.catalog,
            submissions=self.submissions,
            lock=self.lock,
            orders=self.orders,
            payment_client_factory=lambda: self.client,
        )

    def placed(self) -> list:
        return [c.args[1] for c in self.orders.place.await_args_list]


class TestCardCheckout:
    async def test_places_pending_order_without_processor(self) -> None:
        f = _Fixture()
        db = AsyncMock()

        resp = await f.service.place_order(db, "buyer-1", _card_request())

        assert resp.success is True
        assert resp.total_cents == 11599
        assert resp.total_display == "115.99 RON"
        assert resp.invoice_number is not None and resp.invoice_number.startswith("INV-")
        orders = f.placed()
        assert len(orders) == 1
        assert orders[0].status.value == "pending"
        assert orders[0].total == 11599
        assert orders[0].guest_email == "ana@example.com"
        f.submissions.insert.assert_awaited_once()
        db.commit.assert_awaited_once()
        f.lock.release.assert_awaited_once()

    async def test_authorized_card_is_paid(self) -> None:
        client = AsyncMock()
        client.authorize.return_value = PaymentAuthorization(True, "stripe", None)
        f = _Fixture(client=client)

        resp = await f.service.place_order(AsyncMock(), "buyer-1", _card_request())

        assert resp.processor == "stripe"
        assert f.placed()[0].status.value == "paid"
        _, _, amount, key = client.authorize.await_args.args
        assert amount == 11599
        assert key == "key-12345678"

    async def test_redirect_keeps_order_pending(self) -> None:
        client = AsyncMock()
        client.authorize.return_value = PaymentAuthorization(False, "paypal", "https://pay/approve")
        f = _Fixture(client=client)

        resp = await f.service.place_order(AsyncMock(), "buyer-1", _card_request())

        assert resp.approval_url == "https://pay/approve"
        assert f.placed()[0].status.value == "pending"

    async def test_declined_persists_nothing(self) -> None:
        client = AsyncMock()
        client.authorize.side_effect = PaymentDeclinedError("Card declined")
        f = _Fixture(client=client)
        db = AsyncMock()

        with pytest.raises(PaymentDeclinedError):
            await f.service.place_order(db, "buyer-1", _card_request())

        f.orders.place.assert_not_awaited()
        db.rollback.assert_awaited_once()
        f.lock.release.assert_awaited_once()

    async def test_multi_seller_splits_shipping(self) -> None:
        f = _Fixture([_listing("a", "s1"), _listing("b", "s2", price=5000), _listing("c", "s1", price=2000)])
        req = _card_request(
            items=[
                {"listing_id": "a", "price": 10000},
                {"listing_id": "b", "price": 5000},
                {"listing_id": "c", "price": 2000},
            ],
            shipping_cost=2 * 1599,
        )

        resp = await f.service.place_order(AsyncMock(), "buyer-1", req)

        orders = f.placed()
        assert [o.listing_id for o in orders] == ["a", "c", "b"]
        assert [o.shipping_cost for o in orders] == [1599, 0, 1599]
        assert len({o.invoice_number for o in orders}) == 1
        assert sum(o.total for o in orders) == resp.total_cents == 17000 + 2 * 1599


class TestCodCheckout:
    async def test_cod_order_is_paid_with_fee(self) -> None:
        f = _Fixture()

        resp = await f.service.place_order(AsyncMock(), "buyer-1", _cod_request())

        order = f.placed()[0]
        assert order.status.value == "paid"
        assert isinstance(order.payment, CodPayment)
        assert order.cod_fee == 700
        assert order.shipping_cost == 1600
        assert resp.total_cents == 10000 + 1600 + 700

    async def test_cod_not_available(self) -> None:
        f = _Fixture([_listing(cod_enabled=False)])
        with pytest.raises(CodNotAvailableError):
            await f.service.place_order(AsyncMock(), "buyer-1", _cod_request())

    async def test_cod_requires_courier(self) -> None:
        f = _Fixture()
        with pytest.raises(CourierRequiredError):
            await f.service.place_order(AsyncMock(), "buyer-1", _cod_request(courier=None))

    async def test_stale_cod_fee(self) -> None:
        f = _Fixture()
        with pytest.raises(PriceMismatchError):
            await f.service.place_order(AsyncMock(), "buyer-1", _cod_request(cod_fees=600))


class TestValidation:
    async def test_unknown_listing(self) -> None:
        f = _Fixture([])
        with pytest.raises(ListingNotFoundError):
            await f.service.place_order(AsyncMock(), "buyer-1", _card_request())

    async def test_inactive_listing(self) -> None:
        f = _Fixture([_listing(is_active=False)])
        with pytest.raises(ListingUnavailableError):
            await f.service.place_order(AsyncMock(), "buyer-1", _card_request())

    async def test_own_listing(self) -> None:
        f = _Fixture([_listing(seller_id="buyer-1")])
        with pytest.raises(SelfPurchaseError):
            await f.service.place_order(AsyncMock(), "buyer-1", _card_request())

    async def test_price_changed(self) -> None:
        f = _Fixture([_listing(price=12000)])
        with pytest.raises(PriceMismatchError):
            await f.service.place_order(AsyncMock(), "buyer-1", _card_request())

    async def test_shipping_changed(self) -> None:
        f = _Fixture()
        with pytest.raises(PriceMismatchError):
            await f.service.place_order(AsyncMock(), "buyer-1", _card_request(shipping_cost=999))


class TestIdempotency:
    async def test_replays_stored_response(self) -> None:
        f = _Fixture()
        req = _card_request()
        stored = {"success": True, "invoice_number": "INV-OLD", "total_cents": 11599, "orders": []}
        f.submissions.get.return_value = Submission(
            "buyer-1", req.idempotency_key, request_fingerprint(req.fingerprint_payload()), stored
        )

        resp = await f.service.place_order(AsyncMock(), "buyer-1", req)

        assert resp.invoice_number == "INV-OLD"
        f.orders.place.assert_not_awaited()
        f.catalog.get_many.assert_not_awaited()

    async def test_same_key_different_cart(self) -> None:
        f = _Fixture()
        f.submissions.get.return_value = Submission("buyer-1", "key-12345678", "0" * 64, {})

        with pytest.raises(DuplicateSubmissionError):
            await f.service.place_order(AsyncMock(), "buyer-1", _card_request())

    async def test_concurrent_submission_rejected(self) -> None:
        f = _Fixture()
        f.lock.acquire.return_value = False

        with pytest.raises(SubmissionInProgressError):
            await f.service.place_order(AsyncMock(), "buyer-1", _card_request())

        f.submissions.get.assert_not_awaited()
        f.lock.release.assert_not_awaited()
