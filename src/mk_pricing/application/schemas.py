from pydantic import BaseModel, Field

from src.mk_common.enums import PaymentMethod, ShippingMethod
from src.mk_pricing.domain.models import CartPricing, CheckoutItem, CourierProfile, PriceBreakdown


class QuoteItem(BaseModel):
    listing_id: str = Field(..., min_length=1, max_length=64)
    seller_id: str = Field(..., min_length=1, max_length=64)
    price: int = Field(..., ge=0)
    seller_country: str | None = Field(None, max_length=64)
    cod_enabled: bool = False
    cod_fee_bps: int | None = Field(None, ge=0, le=10_000)
    cod_fixed_fee: int | None = Field(None, ge=0)
    cod_transport_fee: int | None = Field(None, ge=0)

    def to_item(self) -> CheckoutItem:
        return CheckoutItem(**self.model_dump())


class QuoteRequest(BaseModel):
    items: list[QuoteItem] = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.CARD
    courier_id: str | None = None
    shipping_method: ShippingMethod = ShippingMethod.STANDARD


class BreakdownResponse(BaseModel):
    subtotal_cents: int
    shipping_cost_cents: int
    cod_extra_fees_cents: int
    buyer_fee_cents: int
    total_cents: int

    @classmethod
    def from_breakdown(cls, b: PriceBreakdown) -> "BreakdownResponse":
        return cls(
            subtotal_cents=b.subtotal,
            shipping_cost_cents=b.shipping_cost,
            cod_extra_fees_cents=b.cod_extra_fees,
            buyer_fee_cents=b.buyer_fee,
            total_cents=b.total,
        )


class SellerQuote(BaseModel):
    seller_id: str
    listing_ids: list[str]
    breakdown: BreakdownResponse


class QuoteResponse(BaseModel):
    payment_method: str
    cod_available: bool
    sellers: list[SellerQuote]
    subtotal_cents: int
    shipping_cost_cents: int
    cod_extra_fees_cents: int
    buyer_fee_cents: int
    total_cents: int
    total_display: str

    @classmethod
    def from_pricing(
        cls, pricing: CartPricing, cod_available: bool, total_display: str
    ) -> "QuoteResponse":
        return cls(
            payment_method=pricing.payment_method.value,
            cod_available=cod_available,
            sellers=[
                SellerQuote(
                    seller_id=s.seller_id,
                    listing_ids=[i.listing_id for i in s.items],
                    breakdown=BreakdownResponse.from_breakdown(s.breakdown),
                )
                for s in pricing.sellers
            ],
            subtotal_cents=pricing.subtotal,
            shipping_cost_cents=pricing.shipping_cost,
            cod_extra_fees_cents=pricing.cod_extra_fees,
            buyer_fee_cents=pricing.buyer_fee,
            total_cents=pricing.total,
            total_display=total_display,
        )


class CourierResponse(BaseModel):
    id: str
    name: str
    cod_fee_bps: int
    cod_fixed_fee_cents: int
    base_shipping_cost_cents: int
    supports_lockers: bool
    delivery_time: str

    @classmethod
    def from_profile(cls, c: CourierProfile) -> "CourierResponse":
        return cls(
            id=c.id,
            name=c.name,
            cod_fee_bps=c.cod_fee_bps,
            cod_fixed_fee_cents=c.cod_fixed_fee,
            base_shipping_cost_cents=c.base_shipping_cost,
            supports_lockers=c.supports_lockers,
            delivery_time=c.delivery_time,
        )
