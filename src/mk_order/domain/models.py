"""Order domain model: pure dataclasses, no SQLAlchemy dependency.

The lifecycle state is a tagged variant: one frozen dataclass per status,
carrying only the data that exists in that status. ``Order.status`` is
derived from the variant, so an order cannot be "shipped" without a carrier
and tracking number.

Payment is a closed sum as well: ``CardPayment`` or ``CodPayment``.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import ClassVar

from src.mk_common.enums import (
    DeliveryType,
    OrderPayoutStatus,
    OrderStatus,
    PaymentMethod,
    ShippingMethod,
    TERMINAL_ORDER_STATUSES,
)

# ---------------------------------------------------------------------------
# Lifecycle variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Pending:
    status: ClassVar[OrderStatus] = OrderStatus.PENDING


@dataclass(frozen=True)
class Paid:
    paid_at: datetime
    status: ClassVar[OrderStatus] = OrderStatus.PAID


@dataclass(frozen=True)
class Shipped:
    carrier: str
    tracking_number: str
    shipped_at: datetime
    status: ClassVar[OrderStatus] = OrderStatus.SHIPPED


@dataclass(frozen=True)
class Delivered:
    carrier: str
    tracking_number: str
    delivered_at: datetime
    status: ClassVar[OrderStatus] = OrderStatus.DELIVERED


@dataclass(frozen=True)
class Cancelled:
    reason: str | None
    cancelled_at: datetime
    status: ClassVar[OrderStatus] = OrderStatus.CANCELLED


@dataclass(frozen=True)
class Refunded:
    reason: str | None
    refunded_at: datetime
    status: ClassVar[OrderStatus] = OrderStatus.REFUNDED


OrderState = Pending | Paid | Shipped | Delivered | Cancelled | Refunded

# ---------------------------------------------------------------------------
# Payment variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CardPayment:
    shipping_method: ShippingMethod
    processor: str | None = None
    method: ClassVar[PaymentMethod] = PaymentMethod.CARD


@dataclass(frozen=True)
class CodPayment:
    courier_id: str
    delivery_type: DeliveryType
    cod_fee: int  # cents, collected by the courier on top of amount + shipping
    locker_id: str | None = None
    method: ClassVar[PaymentMethod] = PaymentMethod.COD


OrderPayment = CardPayment | CodPayment

# ---------------------------------------------------------------------------
# Order
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Order:
    id: str
    invoice_number: str
    buyer_id: str
    seller_id: str
    listing_id: str | None  # None for legacy cart checkouts
    # Money (cents). amount is the goods price the commission applies to.
    amount: int
    shipping_cost: int
    buyer_fee: int
    payment: OrderPayment
    state: OrderState
    shipping_address: str = ""
    guest_email: str | None = None
    seller_commission: int | None = None
    payout_amount: int | None = None
    payout_status: OrderPayoutStatus = OrderPayoutStatus.NONE
    # Running total of completed return refunds; status is not changed by it
    refund_amount: int | None = None
    refunded_amount_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def status(self) -> OrderStatus:
        return self.state.status

    @property
    def payment_method(self) -> PaymentMethod:
        return self.payment.method

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    @property
    def cod_fee(self) -> int:
        return self.payment.cod_fee if isinstance(self.payment, CodPayment) else 0

    @property
    def total(self) -> int:
        """What the buyer is charged for this order."""
        return self.amount + self.shipping_cost + self.buyer_fee + self.cod_fee

    @property
    def carrier(self) -> str | None:
        if isinstance(self.state, (Shipped, Delivered)):
            return self.state.carrier
        return None

    @property
    def tracking_number(self) -> str | None:
        if isinstance(self.state, (Shipped, Delivered)):
            return self.state.tracking_number
        return None

    @property
    def delivery_confirmed_at(self) -> datetime | None:
        if isinstance(self.state, Delivered):
            return self.state.delivered_at
        return None


@dataclass(frozen=True)
class OrderEvent:
    """Audit row appended for every persisted transition."""

    order_id: str
    from_status: str | None
    to_status: str
    actor_id: str | None
    actor_role: str
    note: str | None = None
    id: int | None = None
    created_at: datetime | None = None
