"""Integration tests for the unauthenticated surfaces: pricing and webhooks."""

import json

import pytest
from httpx import AsyncClient

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]


class TestPricing:
    async def test_card_quote(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/pricing/quote",
            json={"items": [{"listing_id": "l1", "seller_id": "s1", "price": 10000}]},
        )
        data = resp.json()["data"]
        assert data["total_cents"] == 11599
        assert data["total_display"] == "115.99 RON"

    async def test_cod_quote(self, client: AsyncClient) -> None:
        resp = await client.post(
            "/api/v1/pricing/quote",
            json={
                "items": [{
                    "listing_id": "l1", "seller_id": "s1", "price": 10000,
                    "seller_country": "Romania", "cod_enabled": True,
                }],
                "payment_method": "cod",
                "courier_id": "cargus",
            },
        )
        data = resp.json()["data"]
        assert data["cod_available"] is True
        assert data["shipping_cost_cents"] == 1600
        assert data["cod_extra_fees_cents"] == 700

    async def test_couriers(self, client: AsyncClient) -> None:
        resp = await client.get("/api/v1/pricing/couriers")
        ids = {c["id"] for c in resp.json()["data"]["couriers"]}
        assert {"fan_courier", "cargus", "sameday"} <= ids


class TestWebhookAuth:
    async def test_missing_signature_rejected(self, client: AsyncClient) -> None:
        body = json.dumps({"id": "evt-x", "type": "payment.authorized", "data": {}})
        resp = await client.post("/api/v1/webhooks/payment", content=body)
        assert resp.status_code == 401
        assert resp.json()["code"] == 6001

    async def test_wrong_signature_rejected(self, client: AsyncClient) -> None:
        body = json.dumps({"id": "evt-x", "type": "payment.authorized", "data": {}})
        resp = await client.post(
            "/api/v1/webhooks/payment", content=body, headers={"X-Signature": "00" * 32}
        )
        assert resp.status_code == 401
