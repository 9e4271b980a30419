"""End-to-end: checkout -> payment webhook -> ship -> deliver -> seller balance.

Requires PostgreSQL with migrations applied and Redis. PAYMENT_API_URL must be
unset so card orders wait for the payment webhook.
"""

import json
import uuid

import pytest
from httpx import AsyncClient

from config.settings import settings
from src.mk_webhooks.domain.signature import compute_signature

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]

ADDRESS = {
    "first_name": "Ana",
    "last_name": "Popescu",
    "street": "Strada Lipscani 12",
    "city": "Bucuresti",
    "region": "Bucuresti",
    "postal_code": "030031",
    "phone": "0722 123 456",
}


def _card_request(listing_id: str, price: int) -> dict:
    return {
        "items": [{"listing_id": listing_id, "price": price}],
        "shipping_address": ADDRESS,
        "shipping_method": "standard",
        "shipping_cost": 1599,
        "payment_method": "card",
        "idempotency_key": f"idem-{uuid.uuid4().hex}",
    }


async def _send_webhook(client: AsyncClient, source: str, event: dict):
    body = json.dumps(event).encode()
    return await client.post(
        f"/api/v1/webhooks/{source}",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Signature": compute_signature(settings.WEBHOOK_SECRET, body),
        },
    )


class TestCardOrderSettlement:
    async def test_full_lifecycle(self, client: AsyncClient, seller, buyer, seed_listing) -> None:
        seller_id, seller_headers = seller
        _, buyer_headers = buyer
        listing_id = await seed_listing(seller_id, 10000)

        resp = await client.post(
            "/api/v1/checkout/orders", json=_card_request(listing_id, 10000), headers=buyer_headers
        )
        assert resp.status_code == 201, resp.text
        placed = resp.json()["data"]
        assert placed["success"] is True
        assert placed["total_cents"] == 11599
        order_id = placed["orders"][0]["id"]
        assert placed["orders"][0]["status"] == "pending"

        event = {
            "id": f"evt_{uuid.uuid4().hex}",
            "type": "payment.authorized",
            "data": {"invoice_number": placed["invoice_number"]},
        }
        resp = await _send_webhook(client, "payment", event)
        assert resp.status_code == 200
        assert resp.json()["data"]["duplicate"] is False

        resp = await client.post(
            f"/api/v1/orders/{order_id}/tracking",
            json={"carrier": "fan_courier", "tracking_number": "FAN123456"},
            headers=seller_headers,
        )
        assert resp.json()["data"]["status"] == "shipped"

        resp = await client.post(
            f"/api/v1/orders/{order_id}/confirm-delivery", headers=buyer_headers
        )
        delivered = resp.json()["data"]
        assert delivered["status"] == "delivered"
        assert delivered["seller_commission_cents"] == 1000
        assert delivered["payout_amount_cents"] == 9000

        resp = await client.get("/api/v1/wallet/balance", headers=seller_headers)
        balance = resp.json()["data"]
        assert balance["pending_balance_cents"] == 9000
        assert balance["payout_balance_cents"] == 0

        # A replayed confirmation does not credit the seller twice.
        await client.post(f"/api/v1/orders/{order_id}/confirm-delivery", headers=buyer_headers)
        resp = await client.get("/api/v1/wallet/balance", headers=seller_headers)
        assert resp.json()["data"]["pending_balance_cents"] == 9000

        resp = await _send_webhook(client, "payment", event)
        assert resp.json()["data"]["duplicate"] is True

    async def test_checkout_replay_returns_same_orders(
        self, client: AsyncClient, seller, buyer, seed_listing
    ) -> None:
        seller_id, _ = seller
        _, buyer_headers = buyer
        listing_id = await seed_listing(seller_id, 5000)
        request = _card_request(listing_id, 5000)

        first = await client.post("/api/v1/checkout/orders", json=request, headers=buyer_headers)
        second = await client.post("/api/v1/checkout/orders", json=request, headers=buyer_headers)

        assert first.status_code == 201
        assert second.json()["data"]["orders"] == first.json()["data"]["orders"]

    async def test_stale_price_is_rejected(
        self, client: AsyncClient, seller, buyer, seed_listing
    ) -> None:
        seller_id, _ = seller
        _, buyer_headers = buyer
        listing_id = await seed_listing(seller_id, 10000)

        resp = await client.post(
            "/api/v1/checkout/orders", json=_card_request(listing_id, 9000), headers=buyer_headers
        )

        assert resp.status_code == 409
        assert resp.json()["code"] == 3007

    async def test_seller_cannot_withdraw_without_kyc(self, client: AsyncClient, seller) -> None:
        _, seller_headers = seller
        resp = await client.post(
            "/api/v1/wallet/withdraw", json={"amount_cents": 100}, headers=seller_headers
        )
        assert resp.status_code == 403
