"""OrderService: the only component that changes an order's status.

Every transition goes through ``_apply``: the pure state machine decides the
next Order, the repository writes it with a compare-and-swap on the previous
status, an audit event is appended, and the financial side effect (ledger
credit on delivered, reversal when a delivered order is cancelled or
refunded) runs in the same transaction.

User actions (tracking, confirm, seller cancel) commit here. The ``apply_*``
methods run inside a transaction owned by the admin or webhook service.
"""

import logging
from collections.abc import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import ActorRole, OrderStatus
from src.mk_common.errors import (
    OrderAccessDeniedError,
    OrderConcurrentUpdateError,
    OrderNotFoundError,
)
from src.mk_order.application.schemas import (
    OrderEventResponse,
    OrderListResponse,
    OrderResponse,
)
from src.mk_order.domain import state_machine as sm
from src.mk_order.domain.models import Order, OrderEvent
from src.mk_order.domain.repository import OrderRepositoryProtocol
from src.mk_order.infrastructure.persistence import OrderRepository
from src.mk_payout.application.service import PayoutLedgerService
from src.mk_pricing.domain.commission import CommissionPolicy

logger = logging.getLogger(__name__)

Transition = Callable[[Order], Order]


def default_commission_policy() -> CommissionPolicy:
    return CommissionPolicy(
        rate_bps=settings.SELLER_COMMISSION_BPS,
        fixed=settings.SELLER_COMMISSION_FIXED_CENTS,
    )


class OrderService:
    def __init__(
        self,
        repo: OrderRepositoryProtocol | None = None,
        ledger: PayoutLedgerService | None = None,
        policy: CommissionPolicy | None = None,
        cancel_window_hours: int | None = None,
    ) -> None:
        self._repo: OrderRepositoryProtocol = repo or OrderRepository()
        self._ledger = ledger or PayoutLedgerService()
        self._policy = policy or default_commission_policy()
        self._cancel_window_hours = (
            settings.SELLER_CANCEL_WINDOW_HOURS
            if cancel_window_hours is None
            else cancel_window_hours
        )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    async def load(self, db: AsyncSession, order_id: str) -> Order:
        order = await self._repo.get_by_id(db, order_id)
        if order is None:
            raise OrderNotFoundError(order_id)
        return order

    async def _apply(
        self,
        db: AsyncSession,
        before: Order,
        after: Order,
        actor_id: str | None,
        actor_role: ActorRole,
        note: str | None = None,
    ) -> Order:
        if after is before:
            logger.info(
                "Order %s already %s; idempotency hit (%s)",
                before.id, before.status.value, actor_role.value,
            )
            return before

        if not await self._repo.compare_and_set(db, after, before.status):
            # Lost a race: fine if the winner produced the same outcome.
            current = await self._repo.get_by_id(db, before.id)
            if current is not None and current.status == after.status:
                logger.info("Order %s concurrently moved to %s; idempotency hit", before.id, after.status.value)
                return current
            raise OrderConcurrentUpdateError(before.id)

        await self._repo.add_event(
            db,
            OrderEvent(
                order_id=after.id,
                from_status=before.status.value,
                to_status=after.status.value,
                actor_id=actor_id,
                actor_role=actor_role.value,
                note=note,
            ),
        )

        if after.status == OrderStatus.DELIVERED:
            await self._ledger.credit_delivered_order(db, after)
        elif before.status == OrderStatus.DELIVERED and after.status in (
            OrderStatus.CANCELLED,
            OrderStatus.REFUNDED,
        ):
            await self._ledger.reverse_payout(db, after.id, before.refund_amount or 0)

        logger.info(
            "Order %s: %s -> %s by %s %s",
            after.id, before.status.value, after.status.value, actor_role.value, actor_id,
        )
        return after

    async def _transition(
        self,
        db: AsyncSession,
        order_id: str,
        transition: Transition,
        actor_id: str | None,
        actor_role: ActorRole,
        note: str | None = None,
    ) -> Order:
        """Load, transition and persist, inside the caller's transaction."""
        order = await self.load(db, order_id)
        return await self._apply(db, order, transition(order), actor_id, actor_role, note)

    async def _committed(
        self,
        db: AsyncSession,
        order_id: str,
        transition: Transition,
        actor_id: str,
        actor_role: ActorRole,
        note: str | None = None,
    ) -> OrderResponse:
        try:
            order = await self._transition(db, order_id, transition, actor_id, actor_role, note)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return OrderResponse.from_order(order)

    async def place(self, db: AsyncSession, order: Order, actor_id: str) -> Order:
        """Persist a new order in its initial state (checkout's transaction)."""
        await self._repo.insert(db, order)
        await self._repo.add_event(
            db,
            OrderEvent(
                order_id=order.id,
                from_status=None,
                to_status=order.status.value,
                actor_id=actor_id,
                actor_role=ActorRole.BUYER.value,
                note=order.invoice_number,
            ),
        )
        logger.info(
            "Order %s placed: invoice=%s seller=%s status=%s total=%d",
            order.id, order.invoice_number, order.seller_id, order.status.value, order.total,
        )
        return order

    # ------------------------------------------------------------------
    # Buyer / seller actions (own their transaction)
    # ------------------------------------------------------------------

    async def add_tracking(
        self,
        db: AsyncSession,
        order_id: str,
        seller_id: str,
        carrier: str,
        tracking_number: str,
    ) -> OrderResponse:
        return await self._committed(
            db,
            order_id,
            lambda o: sm.add_tracking(o, seller_id, carrier, tracking_number, utc_now()),
            seller_id,
            ActorRole.SELLER,
            note=f"{carrier} {tracking_number}",
        )

    async def confirm_delivery(
        self, db: AsyncSession, order_id: str, buyer_id: str
    ) -> OrderResponse:
        return await self._committed(
            db,
            order_id,
            lambda o: sm.confirm_delivery(o, buyer_id, utc_now(), self._policy),
            buyer_id,
            ActorRole.BUYER,
        )

    async def seller_cancel(
        self, db: AsyncSession, order_id: str, seller_id: str, reason: str | None
    ) -> OrderResponse:
        return await self._committed(
            db,
            order_id,
            lambda o: sm.seller_cancel(o, seller_id, utc_now(), self._cancel_window_hours, reason),
            seller_id,
            ActorRole.SELLER,
            note=reason,
        )

    # ------------------------------------------------------------------
    # Privileged actions (caller owns the transaction)
    # ------------------------------------------------------------------

    async def apply_admin_override(
        self,
        db: AsyncSession,
        order_id: str,
        admin_id: str,
        target: OrderStatus,
        carrier: str | None = None,
        tracking_number: str | None = None,
        note: str | None = None,
    ) -> Order:
        return await self._transition(
            db,
            order_id,
            lambda o: sm.admin_override(
                o, target, utc_now(), self._policy, carrier, tracking_number, note
            ),
            admin_id,
            ActorRole.ADMIN,
            note=note,
        )

    async def apply_payment_authorized(self, db: AsyncSession, invoice_number: str) -> list[Order]:
        orders = await self._repo.list_by_invoice(db, invoice_number)
        if not orders:
            raise OrderNotFoundError(invoice_number)
        return [
            await self._apply(
                db, o, sm.authorize_payment(o, utc_now()), None, ActorRole.PAYMENT_PROCESSOR
            )
            for o in orders
        ]

    async def apply_payment_failed(
        self, db: AsyncSession, invoice_number: str, reason: str | None
    ) -> list[Order]:
        """Cancel the invoice's orders that are still waiting for payment."""
        orders = await self._repo.list_by_invoice(db, invoice_number)
        if not orders:
            raise OrderNotFoundError(invoice_number)
        result: list[Order] = []
        for o in orders:
            if o.status != OrderStatus.PENDING:
                result.append(o)
                continue
            result.append(
                await self._apply(
                    db, o, sm.cancel(o, utc_now(), reason), None, ActorRole.PAYMENT_PROCESSOR, reason
                )
            )
        return result

    async def apply_refund(
        self,
        db: AsyncSession,
        order_id: str,
        reason: str | None,
        actor_id: str | None,
        actor_role: ActorRole,
    ) -> Order:
        return await self._transition(
            db,
            order_id,
            lambda o: sm.refund(o, utc_now(), reason),
            actor_id,
            actor_role,
            note=reason,
        )

    async def annotate_refund(self, db: AsyncSession, order_id: str, refund_amount: int) -> None:
        await self._repo.annotate_refund(db, order_id, refund_amount, utc_now())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_order(self, db: AsyncSession, order_id: str, user_id: str) -> OrderResponse:
        order = await self.load(db, order_id)
        if user_id not in (order.buyer_id, order.seller_id):
            raise OrderAccessDeniedError(order_id)
        return OrderResponse.from_order(order)

    async def list_events(self, db: AsyncSession, order_id: str) -> list[OrderEventResponse]:
        events = await self._repo.list_events(db, order_id)
        return [OrderEventResponse.from_event(e) for e in events]

    async def list_orders(
        self,
        db: AsyncSession,
        user_id: str,
        role: str,
        status: str | None,
        limit: int,
        cursor: str | None,
    ) -> OrderListResponse:
        orders = await self._repo.list_for_user(db, user_id, role, status, limit + 1, cursor)
        return self._page(orders, limit)

    async def list_all(
        self,
        db: AsyncSession,
        status: str | None,
        seller_id: str | None,
        buyer_id: str | None,
        limit: int,
        cursor: str | None,
    ) -> OrderListResponse:
        orders = await self._repo.list_all(db, status, seller_id, buyer_id, limit + 1, cursor)
        return self._page(orders, limit)

    @staticmethod
    def _page(orders: list[Order], limit: int) -> OrderListResponse:
        has_more = len(orders) > limit
        page = orders[:limit]
        return OrderListResponse(
            items=[OrderResponse.from_order(o) for o in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )
