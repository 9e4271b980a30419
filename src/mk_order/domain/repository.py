"""OrderRepository Protocol: interface contract for persistence layer."""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import OrderStatus
from src.mk_order.domain.models import Order, OrderEvent


class OrderRepositoryProtocol(Protocol):
    async def insert(self, db: AsyncSession, order: Order) -> None: ...

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None: ...

    async def list_by_invoice(self, db: AsyncSession, invoice_number: str) -> list[Order]: ...

    async def compare_and_set(
        self, db: AsyncSession, order: Order, expected: OrderStatus
    ) -> bool: ...

    async def add_event(self, db: AsyncSession, event: OrderEvent) -> None: ...

    async def annotate_refund(
        self, db: AsyncSession, order_id: str, refund_amount: int, at: datetime
    ) -> None: ...

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: str,
        status: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[Order]: ...

    async def list_all(
        self,
        db: AsyncSession,
        status: str | None,
        seller_id: str | None,
        buyer_id: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[Order]: ...

    async def list_events(self, db: AsyncSession, order_id: str) -> list[OrderEvent]: ...
