"""OrderRepository: raw SQL persistence implementation.

Status changes are compare-and-swap on (id, expected status): a concurrent
writer that got there first makes the UPDATE match zero rows, and the
service decides whether that is an idempotent duplicate or a conflict.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_common.enums import (
    DeliveryType,
    OrderPayoutStatus,
    OrderStatus,
    PaymentMethod,
    ShippingMethod,
)
from src.mk_order.domain.models import (
    Cancelled,
    CardPayment,
    CodPayment,
    Delivered,
    Order,
    OrderEvent,
    OrderPayment,
    OrderState,
    Paid,
    Pending,
    Refunded,
    Shipped,
)

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_ORDER_SQL = text("""
    INSERT INTO orders (id, invoice_number, buyer_id, seller_id, listing_id,
        amount, shipping_cost, buyer_fee,
        payment_method, shipping_method, processor,
        courier_id, delivery_type, locker_id, cod_fee,
        status, paid_at, shipping_address, guest_email, payout_status)
    VALUES (:id, :invoice_number, :buyer_id, :seller_id, :listing_id,
        :amount, :shipping_cost, :buyer_fee,
        :payment_method, :shipping_method, :processor,
        :courier_id, :delivery_type, :locker_id, :cod_fee,
        :status, :paid_at, :shipping_address, :guest_email, 'none')
""")

_CAS_STATUS_SQL = text("""
    UPDATE orders
    SET status = :status,
        paid_at = COALESCE(:paid_at, paid_at),
        carrier = COALESCE(:carrier, carrier),
        tracking_number = COALESCE(:tracking_number, tracking_number),
        shipped_at = COALESCE(:shipped_at, shipped_at),
        delivery_confirmed_at = COALESCE(:delivered_at, delivery_confirmed_at),
        closed_at = COALESCE(:closed_at, closed_at),
        close_reason = COALESCE(:close_reason, close_reason),
        seller_commission = COALESCE(:seller_commission, seller_commission),
        payout_amount = COALESCE(:payout_amount, payout_amount),
        updated_at = NOW()
    WHERE id = :id AND status = :expected
    RETURNING id
""")

_ANNOTATE_REFUND_SQL = text("""
    UPDATE orders
    SET refund_amount = COALESCE(refund_amount, 0) + :refund_amount,
        refunded_amount_at = :at,
        updated_at = NOW()
    WHERE id = :id
""")

_INSERT_EVENT_SQL = text("""
    INSERT INTO order_events (order_id, from_status, to_status, actor_id, actor_role, note)
    VALUES (:order_id, :from_status, :to_status, :actor_id, :actor_role, :note)
""")

_SELECT_COLUMNS = """
    id, invoice_number, buyer_id, seller_id, listing_id,
    amount, shipping_cost, buyer_fee,
    payment_method, shipping_method, processor,
    courier_id, delivery_type, locker_id, cod_fee,
    status, paid_at, carrier, tracking_number, shipped_at, delivery_confirmed_at,
    closed_at, close_reason,
    shipping_address, guest_email,
    seller_commission, payout_amount, payout_status,
    refund_amount, refunded_amount_at, created_at, updated_at
"""

_GET_ORDER_BY_ID_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE id = :id
""")

_LIST_BY_INVOICE_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders WHERE invoice_number = :invoice_number
    ORDER BY id
""")

_LIST_FOR_BUYER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE buyer_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_FOR_SELLER_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE seller_id = :user_id
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_ALL_SQL = text(f"""
    SELECT {_SELECT_COLUMNS}
    FROM orders
    WHERE (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:seller_id AS TEXT) IS NULL OR seller_id = :seller_id)
      AND (CAST(:buyer_id AS TEXT) IS NULL OR buyer_id = :buyer_id)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

_LIST_EVENTS_SQL = text("""
    SELECT id, order_id, from_status, to_status, actor_id, actor_role, note, created_at
    FROM order_events
    WHERE order_id = :order_id
    ORDER BY id
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_state(row: Any) -> OrderState:
    status = OrderStatus(row.status)
    if status == OrderStatus.PENDING:
        return Pending()
    if status == OrderStatus.PAID:
        return Paid(paid_at=row.paid_at or row.created_at)
    if status == OrderStatus.SHIPPED:
        return Shipped(
            carrier=row.carrier or "",
            tracking_number=row.tracking_number or "",
            shipped_at=row.shipped_at or row.updated_at,
        )
    if status == OrderStatus.DELIVERED:
        return Delivered(
            carrier=row.carrier or "",
            tracking_number=row.tracking_number or "",
            delivered_at=row.delivery_confirmed_at or row.updated_at,
        )
    if status == OrderStatus.CANCELLED:
        return Cancelled(reason=row.close_reason, cancelled_at=row.closed_at or row.updated_at)
    return Refunded(reason=row.close_reason, refunded_at=row.closed_at or row.updated_at)


def _row_to_payment(row: Any) -> OrderPayment:
    if row.payment_method == PaymentMethod.COD.value:
        return CodPayment(
            courier_id=row.courier_id,
            delivery_type=DeliveryType(row.delivery_type),
            cod_fee=row.cod_fee,
            locker_id=row.locker_id,
        )
    return CardPayment(
        shipping_method=ShippingMethod(row.shipping_method),
        processor=row.processor,
    )


def _row_to_order(row: Any) -> Order:
    """Convert a DB result row to an Order domain object."""
    return Order(
        id=row.id,
        invoice_number=row.invoice_number,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        listing_id=row.listing_id,
        amount=row.amount,
        shipping_cost=row.shipping_cost,
        buyer_fee=row.buyer_fee,
        payment=_row_to_payment(row),
        state=_row_to_state(row),
        shipping_address=row.shipping_address,
        guest_email=row.guest_email,
        seller_commission=row.seller_commission,
        payout_amount=row.payout_amount,
        payout_status=OrderPayoutStatus(row.payout_status),
        refund_amount=row.refund_amount,
        refunded_amount_at=row.refunded_amount_at,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _row_to_event(row: Any) -> OrderEvent:
    return OrderEvent(
        id=row.id,
        order_id=row.order_id,
        from_status=row.from_status,
        to_status=row.to_status,
        actor_id=row.actor_id,
        actor_role=row.actor_role,
        note=row.note,
        created_at=row.created_at,
    )


def _state_params(state: OrderState) -> dict[str, Any]:
    params: dict[str, Any] = {
        "paid_at": None,
        "carrier": None,
        "tracking_number": None,
        "shipped_at": None,
        "delivered_at": None,
        "closed_at": None,
        "close_reason": None,
    }
    if isinstance(state, Paid):
        params["paid_at"] = state.paid_at
    elif isinstance(state, Shipped):
        params.update(
            carrier=state.carrier,
            tracking_number=state.tracking_number,
            shipped_at=state.shipped_at,
        )
    elif isinstance(state, Delivered):
        params.update(
            carrier=state.carrier,
            tracking_number=state.tracking_number,
            delivered_at=state.delivered_at,
        )
    elif isinstance(state, Cancelled):
        params.update(closed_at=state.cancelled_at, close_reason=state.reason)
    elif isinstance(state, Refunded):
        params.update(closed_at=state.refunded_at, close_reason=state.reason)
    return params


def _payment_params(payment: OrderPayment) -> dict[str, Any]:
    if isinstance(payment, CodPayment):
        return {
            "payment_method": PaymentMethod.COD.value,
            "shipping_method": None,
            "processor": None,
            "courier_id": payment.courier_id,
            "delivery_type": payment.delivery_type.value,
            "locker_id": payment.locker_id,
            "cod_fee": payment.cod_fee,
        }
    return {
        "payment_method": PaymentMethod.CARD.value,
        "shipping_method": payment.shipping_method.value,
        "processor": payment.processor,
        "courier_id": None,
        "delivery_type": None,
        "locker_id": None,
        "cod_fee": 0,
    }


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class OrderRepository:
    """Concrete implementation of OrderRepositoryProtocol using raw SQL."""

    async def insert(self, db: AsyncSession, order: Order) -> None:
        await db.execute(
            _INSERT_ORDER_SQL,
            {
                "id": order.id,
                "invoice_number": order.invoice_number,
                "buyer_id": order.buyer_id,
                "seller_id": order.seller_id,
                "listing_id": order.listing_id,
                "amount": order.amount,
                "shipping_cost": order.shipping_cost,
                "buyer_fee": order.buyer_fee,
                "status": order.status.value,
                "paid_at": order.state.paid_at if isinstance(order.state, Paid) else None,
                "shipping_address": order.shipping_address,
                "guest_email": order.guest_email,
                **_payment_params(order.payment),
            },
        )

    async def get_by_id(self, db: AsyncSession, order_id: str) -> Order | None:
        result = await db.execute(_GET_ORDER_BY_ID_SQL, {"id": order_id})
        row = result.fetchone()
        return _row_to_order(row) if row else None

    async def list_by_invoice(self, db: AsyncSession, invoice_number: str) -> list[Order]:
        result = await db.execute(_LIST_BY_INVOICE_SQL, {"invoice_number": invoice_number})
        return [_row_to_order(row) for row in result.fetchall()]

    async def compare_and_set(
        self, db: AsyncSession, order: Order, expected: OrderStatus
    ) -> bool:
        result = await db.execute(
            _CAS_STATUS_SQL,
            {
                "id": order.id,
                "expected": expected.value,
                "status": order.status.value,
                "seller_commission": order.seller_commission,
                "payout_amount": order.payout_amount,
                **_state_params(order.state),
            },
        )
        return result.fetchone() is not None

    async def add_event(self, db: AsyncSession, event: OrderEvent) -> None:
        await db.execute(
            _INSERT_EVENT_SQL,
            {
                "order_id": event.order_id,
                "from_status": event.from_status,
                "to_status": event.to_status,
                "actor_id": event.actor_id,
                "actor_role": event.actor_role,
                "note": event.note,
            },
        )

    async def annotate_refund(
        self, db: AsyncSession, order_id: str, refund_amount: int, at: datetime
    ) -> None:
        await db.execute(
            _ANNOTATE_REFUND_SQL,
            {"id": order_id, "refund_amount": refund_amount, "at": at},
        )

    async def list_for_user(
        self,
        db: AsyncSession,
        user_id: str,
        role: str,
        status: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[Order]:
        sql = _LIST_FOR_SELLER_SQL if role == "selling" else _LIST_FOR_BUYER_SQL
        result = await db.execute(
            sql,
            {"user_id": user_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_all(
        self,
        db: AsyncSession,
        status: str | None,
        seller_id: str | None,
        buyer_id: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[Order]:
        result = await db.execute(
            _LIST_ALL_SQL,
            {
                "status": status,
                "seller_id": seller_id,
                "buyer_id": buyer_id,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_order(row) for row in result.fetchall()]

    async def list_events(self, db: AsyncSession, order_id: str) -> list[OrderEvent]:
        result = await db.execute(_LIST_EVENTS_SQL, {"order_id": order_id})
        return [_row_to_event(row) for row in result.fetchall()]
