from datetime import datetime

from pydantic import BaseModel, Field

from config.settings import settings
from src.mk_common.enums import OrderStatus
from src.mk_common.money import cents_to_display
from src.mk_order.domain.carriers import carrier_label
from src.mk_order.domain.models import CardPayment, CodPayment, Order, OrderEvent


class AddTrackingRequest(BaseModel):
    carrier: str = Field(..., min_length=1, max_length=64)
    tracking_number: str = Field(..., min_length=1, max_length=100)


class CancelOrderRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class AdminStatusRequest(BaseModel):
    status: OrderStatus
    carrier: str | None = Field(None, max_length=64)
    tracking_number: str | None = Field(None, max_length=100)
    note: str | None = Field(None, max_length=500)


class OrderResponse(BaseModel):
    id: str
    invoice_number: str
    buyer_id: str
    seller_id: str
    listing_id: str | None
    status: str
    amount_cents: int
    shipping_cost_cents: int
    buyer_fee_cents: int
    cod_fee_cents: int
    total_cents: int
    total_display: str
    payment_method: str
    shipping_method: str | None = None
    courier_id: str | None = None
    delivery_type: str | None = None
    locker_id: str | None = None
    carrier: str | None = None
    carrier_label: str | None = None
    tracking_number: str | None = None
    delivery_confirmed_at: datetime | None = None
    seller_commission_cents: int | None = None
    payout_amount_cents: int | None = None
    payout_status: str
    refund_amount_cents: int | None = None
    shipping_address: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        payment = order.payment
        return cls(
            id=order.id,
            invoice_number=order.invoice_number,
            buyer_id=order.buyer_id,
            seller_id=order.seller_id,
            listing_id=order.listing_id,
            status=order.status.value,
            amount_cents=order.amount,
            shipping_cost_cents=order.shipping_cost,
            buyer_fee_cents=order.buyer_fee,
            cod_fee_cents=order.cod_fee,
            total_cents=order.total,
            total_display=cents_to_display(order.total, settings.CURRENCY),
            payment_method=order.payment_method.value,
            shipping_method=(
                payment.shipping_method.value if isinstance(payment, CardPayment) else None
            ),
            courier_id=payment.courier_id if isinstance(payment, CodPayment) else None,
            delivery_type=(
                payment.delivery_type.value if isinstance(payment, CodPayment) else None
            ),
            locker_id=payment.locker_id if isinstance(payment, CodPayment) else None,
            carrier=order.carrier,
            carrier_label=carrier_label(order.carrier),
            tracking_number=order.tracking_number,
            delivery_confirmed_at=order.delivery_confirmed_at,
            seller_commission_cents=order.seller_commission,
            payout_amount_cents=order.payout_amount,
            payout_status=order.payout_status.value,
            refund_amount_cents=order.refund_amount,
            shipping_address=order.shipping_address,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


class OrderEventResponse(BaseModel):
    from_status: str | None
    to_status: str
    actor_id: str | None
    actor_role: str
    note: str | None
    created_at: datetime | None

    @classmethod
    def from_event(cls, event: OrderEvent) -> "OrderEventResponse":
        return cls(
            from_status=event.from_status,
            to_status=event.to_status,
            actor_id=event.actor_id,
            actor_role=event.actor_role,
            note=event.note,
            created_at=event.created_at,
        )


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    next_cursor: str | None
    has_more: bool
