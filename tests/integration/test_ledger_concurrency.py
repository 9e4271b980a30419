"""Concurrent ledger writes against PostgreSQL.

Requires PostgreSQL with migrations applied and Redis. Balances are seeded
directly; every writer below runs on its own session, so the row-level
conditional UPDATE is what keeps the balance from going negative.
"""

import asyncio
import json
import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import text

from config.settings import settings
from src.mk_common.database import async_session_factory
from src.mk_common.errors import InsufficientPayoutBalanceError
from src.mk_payout.application.schemas import WithdrawResponse
from src.mk_payout.application.service import PayoutLedgerService
from src.mk_payout.domain.models import SellerStanding
from src.mk_webhooks.domain.signature import compute_signature

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]

_SEED_AVAILABLE_SQL = text("""
    UPDATE seller_balances SET payout_balance = :amount WHERE seller_id = :seller_id
""")

_BALANCE_SQL = text("""
    SELECT pending_balance, payout_balance, in_transfer_balance
    FROM seller_balances WHERE seller_id = :seller_id
""")

_COUNT_ENTRIES_SQL = text("""
    SELECT COUNT(*) FROM balance_entries
    WHERE seller_id = :seller_id AND entry_type = :entry_type
""")


async def _seed_available(seller_id: str, amount: int) -> None:
    async with async_session_factory() as session:
        await session.execute(_SEED_AVAILABLE_SQL, {"seller_id": seller_id, "amount": amount})
        await session.commit()


async def _balance(seller_id: str):
    async with async_session_factory() as session:
        return (await session.execute(_BALANCE_SQL, {"seller_id": seller_id})).one()


async def _count_entries(seller_id: str, entry_type: str) -> int:
    async with async_session_factory() as session:
        result = await session.execute(
            _COUNT_ENTRIES_SQL, {"seller_id": seller_id, "entry_type": entry_type}
        )
        return result.scalar_one()


async def _place_paid_order(client: AsyncClient, listing_id: str, buyer_headers: dict) -> str:
    request = {
        "items": [{"listing_id": listing_id, "price": 10000}],
        "shipping_address": {
            "first_name": "Ioana",
            "last_name": "Ionescu",
            "street": "Bulevardul Eroilor 5",
            "city": "Cluj-Napoca",
            "region": "Cluj",
            "postal_code": "400129",
            "phone": "0744 555 666",
        },
        "shipping_method": "standard",
        "shipping_cost": 1599,
        "payment_method": "card",
        "idempotency_key": f"idem-{uuid.uuid4().hex}",
    }
    resp = await client.post("/api/v1/checkout/orders", json=request, headers=buyer_headers)
    assert resp.status_code == 201, resp.text
    placed = resp.json()["data"]
    body = json.dumps(
        {
            "id": f"evt_{uuid.uuid4().hex}",
            "type": "payment.authorized",
            "data": {"invoice_number": placed["invoice_number"]},
        }
    ).encode()
    await client.post(
        "/api/v1/webhooks/payment",
        content=body,
        headers={
            "Content-Type": "application/json",
            "X-Signature": compute_signature(settings.WEBHOOK_SECRET, body),
        },
    )
    return placed["orders"][0]["id"]


async def _withdraw(service: PayoutLedgerService, standing: SellerStanding, amount: int):
    async with async_session_factory() as session:
        return await service.withdraw(session, standing, amount)


class TestConcurrentWithdrawals:
    async def test_only_one_of_two_overlapping_withdrawals_succeeds(self, seller) -> None:
        seller_id, _ = seller
        await _seed_available(seller_id, 10000)
        service = PayoutLedgerService(transfer_client_factory=lambda: None)
        standing = SellerStanding(seller_id, "verified")

        results = await asyncio.gather(
            _withdraw(service, standing, 6000),
            _withdraw(service, standing, 6000),
            return_exceptions=True,
        )

        assert sum(isinstance(r, WithdrawResponse) for r in results) == 1
        assert sum(isinstance(r, InsufficientPayoutBalanceError) for r in results) == 1
        _, available, in_transfer = await _balance(seller_id)
        assert available == 4000
        assert in_transfer == 6000
        assert await _count_entries(seller_id, "WITHDRAWAL") == 1

    async def test_withdrawals_never_drive_balance_negative(self, seller) -> None:
        seller_id, _ = seller
        await _seed_available(seller_id, 5000)
        service = PayoutLedgerService(transfer_client_factory=lambda: None)
        standing = SellerStanding(seller_id, "verified")

        results = await asyncio.gather(
            *(_withdraw(service, standing, 1500) for _ in range(5)),
            return_exceptions=True,
        )

        succeeded = sum(isinstance(r, WithdrawResponse) for r in results)
        assert succeeded == 3
        assert all(
            isinstance(r, (WithdrawResponse, InsufficientPayoutBalanceError)) for r in results
        )
        _, available, in_transfer = await _balance(seller_id)
        assert available == 500
        assert in_transfer == 4500


class TestConcurrentDelivery:
    async def test_overlapping_confirmations_credit_once(
        self, client: AsyncClient, seller, buyer, seed_listing
    ) -> None:
        seller_id, seller_headers = seller
        _, buyer_headers = buyer
        listing_id = await seed_listing(seller_id, 10000)

        order_id = await _place_paid_order(client, listing_id, buyer_headers)
        await client.post(
            f"/api/v1/orders/{order_id}/tracking",
            json={"carrier": "sameday", "tracking_number": "SD987654"},
            headers=seller_headers,
        )

        first, second = await asyncio.gather(
            client.post(f"/api/v1/orders/{order_id}/confirm-delivery", headers=buyer_headers),
            client.post(f"/api/v1/orders/{order_id}/confirm-delivery", headers=buyer_headers),
        )

        assert first.status_code == 200, first.text
        assert second.status_code == 200, second.text
        assert await _count_entries(seller_id, "SALE_CREDIT") == 1
        pending, _, _ = await _balance(seller_id)
        assert pending == 9000
