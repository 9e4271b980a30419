"""Order lifecycle transitions.

Each transition is a total function of (order, actor, inputs, now): it
returns the next Order or raises a specific AppError. A transition that
would leave the order where it already is (re-confirming a delivered order,
re-authorizing a paid one, cancelling a cancelled one) returns the SAME
object, so callers detect the idempotent case with ``new is order``.

    pending ──authorize──▶ paid ──add_tracking──▶ shipped ──confirm──▶ delivered
       │                    │                        │
       └──── cancel / refund (admin, webhook) ───────┴──▶ cancelled / refunded

Entering ``delivered`` also fixes the settlement split:
``seller_commission + payout_amount == amount``.
"""

from dataclasses import replace
from datetime import datetime

from src.mk_common.datetime_utils import hours_between
from src.mk_common.enums import OrderStatus, TERMINAL_ORDER_STATUSES
from src.mk_common.errors import (
    CancelWindowExpiredError,
    InvalidOrderTransitionError,
    NotOrderBuyerError,
    NotOrderSellerError,
    TrackingRequiredError,
)
from src.mk_order.domain.carriers import normalize_carrier
from src.mk_order.domain.models import (
    Cancelled,
    Delivered,
    Order,
    OrderState,
    Paid,
    Pending,
    Refunded,
    Shipped,
)
from src.mk_pricing.domain.commission import CommissionPolicy, settle


def _reject(order: Order, action: str) -> InvalidOrderTransitionError:
    return InvalidOrderTransitionError(order.id, order.status.value, action)


def _with_state(order: Order, state: OrderState, now: datetime) -> Order:
    return replace(order, state=state, updated_at=now)


def authorize_payment(order: Order, now: datetime) -> Order:
    """Payment processor confirmed the charge."""
    if isinstance(order.state, Paid):
        return order
    if not isinstance(order.state, Pending):
        raise _reject(order, "be marked paid")
    return _with_state(order, Paid(paid_at=now), now)


def add_tracking(
    order: Order,
    actor_id: str,
    carrier: str,
    tracking_number: str,
    now: datetime,
) -> Order:
    if actor_id != order.seller_id:
        raise NotOrderSellerError(order.id)
    if not carrier or not carrier.strip() or not tracking_number or not tracking_number.strip():
        raise TrackingRequiredError()
    if not isinstance(order.state, Paid):
        raise _reject(order, "be shipped")
    state = Shipped(
        carrier=normalize_carrier(carrier),
        tracking_number=tracking_number.strip(),
        shipped_at=now,
    )
    return _with_state(order, state, now)


def _deliver(order: Order, now: datetime, policy: CommissionPolicy) -> Order:
    assert isinstance(order.state, Shipped)
    commission, payout_amount = settle(order.amount, policy)
    return replace(
        order,
        state=Delivered(
            carrier=order.state.carrier,
            tracking_number=order.state.tracking_number,
            delivered_at=now,
        ),
        seller_commission=commission,
        payout_amount=payout_amount,
        updated_at=now,
    )


def confirm_delivery(
    order: Order,
    actor_id: str,
    now: datetime,
    policy: CommissionPolicy,
) -> Order:
    """Buyer confirms receipt. Re-confirming a delivered order is a no-op."""
    if actor_id != order.buyer_id:
        raise NotOrderBuyerError(order.id)
    if isinstance(order.state, Delivered):
        return order
    if not isinstance(order.state, Shipped):
        raise _reject(order, "be confirmed as delivered")
    return _deliver(order, now, policy)


def seller_cancel(
    order: Order,
    actor_id: str,
    now: datetime,
    window_hours: int,
    reason: str | None = None,
) -> Order:
    """Seller backs out of a sale before shipping, within the cancel window."""
    if actor_id != order.seller_id:
        raise NotOrderSellerError(order.id)
    if isinstance(order.state, Cancelled):
        return order
    if not isinstance(order.state, (Pending, Paid)):
        raise _reject(order, "be cancelled by the seller")
    if order.created_at is not None and hours_between(order.created_at, now) > window_hours:
        raise CancelWindowExpiredError(order.id, window_hours)
    return _with_state(order, Cancelled(reason=reason, cancelled_at=now), now)


def cancel(order: Order, now: datetime, reason: str | None = None) -> Order:
    """Privileged cancel (admin or payment webhook); no guard."""
    if isinstance(order.state, Cancelled):
        return order
    return _with_state(order, Cancelled(reason=reason, cancelled_at=now), now)


def refund(order: Order, now: datetime, reason: str | None = None) -> Order:
    """Privileged refund (admin or payment webhook); no guard."""
    if isinstance(order.state, Refunded):
        return order
    return _with_state(order, Refunded(reason=reason, refunded_at=now), now)


def admin_override(
    order: Order,
    target: OrderStatus,
    now: datetime,
    policy: CommissionPolicy,
    carrier: str | None = None,
    tracking_number: str | None = None,
    note: str | None = None,
) -> Order:
    """Unconditional admin status write, constrained only by data integrity.

    - cancelled / refunded are reachable from anywhere;
    - a terminal order cannot be moved back into the active lifecycle;
    - shipped needs a carrier and tracking number (supplied or already held);
    - delivered is only reachable from shipped, so settlement always has
      tracking behind it.
    """
    if target == order.status:
        return order
    if target == OrderStatus.CANCELLED:
        return cancel(order, now, note)
    if target == OrderStatus.REFUNDED:
        return refund(order, now, note)
    if order.status in TERMINAL_ORDER_STATUSES:
        raise _reject(order, f"be moved to {target.value}")

    if target == OrderStatus.PENDING:
        return _with_state(order, Pending(), now)
    if target == OrderStatus.PAID:
        return _with_state(order, Paid(paid_at=now), now)
    if target == OrderStatus.SHIPPED:
        carrier = carrier or order.carrier
        tracking_number = tracking_number or order.tracking_number
        if not carrier or not carrier.strip() or not tracking_number or not tracking_number.strip():
            raise TrackingRequiredError()
        state = Shipped(
            carrier=normalize_carrier(carrier),
            tracking_number=tracking_number.strip(),
            shipped_at=now,
        )
        return _with_state(order, state, now)
    # target == DELIVERED
    if not isinstance(order.state, Shipped):
        raise _reject(order, "be delivered before it has shipped")
    return _deliver(order, now, policy)
