"""Integration-test fixtures.

All integration tests share a single event-loop so that the module-level
SQLAlchemy async engine pool and Redis pool (both created at import time)
remain valid across the entire test session.

Listings have no write API; ``seed_listing`` inserts them directly.
"""

import uuid
from collections.abc import Awaitable, Callable

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text

from src.main import app
from src.mk_common.database import async_session_factory

_INSERT_LISTING_SQL = text("""
    INSERT INTO listings (id, seller_id, title, price, cod_enabled, cod_fee_bps,
                          cod_fixed_fee, cod_transport_fee)
    VALUES (:id, :seller_id, :title, :price, :cod_enabled, :cod_fee_bps,
            :cod_fixed_fee, :cod_transport_fee)
""")

Party = tuple[str, dict[str, str]]


@pytest_asyncio.fixture(loop_scope="session", scope="session")
async def client() -> AsyncClient:  # type: ignore[override]
    """Session-scoped async HTTP client: keeps the engine pool alive."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def _register_and_login(client: AsyncClient, prefix: str, country: str | None) -> Party:
    uid = uuid.uuid4().hex[:8]
    user = {
        "username": f"{prefix}_{uid}",
        "email": f"{prefix}_{uid}@example.com",
        "password": "TestPass123",
        "country": country,
    }
    reg = await client.post("/api/v1/auth/register", json=user)
    assert reg.status_code == 201, reg.text
    login = await client.post(
        "/api/v1/auth/login",
        json={"username": user["username"], "password": user["password"]},
    )
    token = login.json()["data"]["access_token"]
    return reg.json()["data"]["user_id"], {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture(loop_scope="session")
async def seller(client: AsyncClient) -> Party:
    """A fresh Romania-based seller: (user_id, auth headers)."""
    return await _register_and_login(client, "seller", "RO")


@pytest_asyncio.fixture(loop_scope="session")
async def buyer(client: AsyncClient) -> Party:
    return await _register_and_login(client, "buyer", None)


@pytest_asyncio.fixture(loop_scope="session")
async def seed_listing() -> Callable[..., Awaitable[str]]:
    async def _seed(
        seller_id: str,
        price: int,
        cod_enabled: bool = False,
        cod_fee_bps: int = 0,
        cod_fixed_fee: int = 0,
        cod_transport_fee: int = 0,
    ) -> str:
        listing_id = f"lst_{uuid.uuid4().hex[:12]}"
        async with async_session_factory() as session:
            await session.execute(
                _INSERT_LISTING_SQL,
                {
                    "id": listing_id,
                    "seller_id": seller_id,
                    "title": f"Test listing {listing_id}",
                    "price": price,
                    "cod_enabled": cod_enabled,
                    "cod_fee_bps": cod_fee_bps,
                    "cod_fixed_fee": cod_fixed_fee,
                    "cod_transport_fee": cod_transport_fee,
                },
            )
            await session.commit()
        return listing_id

    return _seed
