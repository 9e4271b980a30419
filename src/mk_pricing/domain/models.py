"""Pricing value objects: frozen dataclasses, all money in cents."""

from dataclasses import dataclass, field

from src.mk_common.enums import PaymentMethod


@dataclass(frozen=True)
class CheckoutItem:
    """Listing snapshot as seen at checkout time."""

    listing_id: str
    seller_id: str
    price: int
    seller_country: str | None = None
    cod_enabled: bool = False
    # Per-listing COD overrides; None or 0 means "use the courier default"
    cod_fee_bps: int | None = None
    cod_fixed_fee: int | None = None
    cod_transport_fee: int | None = None


@dataclass(frozen=True)
class CourierProfile:
    id: str
    name: str
    cod_fee_bps: int
    cod_fixed_fee: int
    base_shipping_cost: int
    supports_lockers: bool = False
    delivery_time: str = ""


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: int
    shipping_cost: int
    cod_extra_fees: int
    buyer_fee: int
    total: int
    payment_method: PaymentMethod


@dataclass(frozen=True)
class SellerBreakdown:
    seller_id: str
    items: tuple[CheckoutItem, ...]
    breakdown: PriceBreakdown


@dataclass(frozen=True)
class CartPricing:
    """Per-seller breakdowns plus the cart-level sums the buyer is charged."""

    payment_method: PaymentMethod
    sellers: tuple[SellerBreakdown, ...] = field(default_factory=tuple)

    @property
    def subtotal(self) -> int:
        return sum(s.breakdown.subtotal for s in self.sellers)

    @property
    def shipping_cost(self) -> int:
        return sum(s.breakdown.shipping_cost for s in self.sellers)

    @property
    def cod_extra_fees(self) -> int:
        return sum(s.breakdown.cod_extra_fees for s in self.sellers)

    @property
    def buyer_fee(self) -> int:
        return sum(s.breakdown.buyer_fee for s in self.sellers)

    @property
    def total(self) -> int:
        return sum(s.breakdown.total for s in self.sellers)
