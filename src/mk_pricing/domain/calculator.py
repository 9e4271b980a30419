"""Checkout price calculation.

Pure functions of their arguments: no I/O, no clock, no settings. The same
items, method and courier always produce the same breakdown, which is what
checkout re-pricing and reconciliation rely on.

Money is integer cents; COD percentages are basis points (200 bps == 2%).
"""

from collections.abc import Mapping, Sequence

from src.mk_common.enums import PaymentMethod, ShippingMethod
from src.mk_common.errors import CodNotAvailableError, CourierRequiredError, EmptyCartError
from src.mk_common.money import percent_of
from src.mk_pricing.domain.models import (
    CartPricing,
    CheckoutItem,
    CourierProfile,
    PriceBreakdown,
    SellerBreakdown,
)

ROMANIA_ALIASES = frozenset({"romania", "ro", "românia"})

CARD_SHIPPING_RATES: Mapping[ShippingMethod, int] = {
    ShippingMethod.STANDARD: 1599,
    ShippingMethod.EXPRESS: 2499,
    ShippingMethod.OVERNIGHT: 3499,
}


def is_romanian_country(value: str | None) -> bool:
    return value is not None and value.strip().lower() in ROMANIA_ALIASES


def is_cod_available(items: Sequence[CheckoutItem]) -> bool:
    """COD needs every item COD-enabled and at least one Romanian seller."""
    if not items:
        return False
    if not all(item.cod_enabled for item in items):
        return False
    return any(is_romanian_country(item.seller_country) for item in items)


def card_shipping_cost(
    method: ShippingMethod,
    rates: Mapping[ShippingMethod, int] = CARD_SHIPPING_RATES,
) -> int:
    return rates[method]


def _override_or_default(override: int | None, default: int) -> int:
    # 0 on a listing means "not configured", same as NULL
    return override if override else default


def calculate_breakdown(
    items: Sequence[CheckoutItem],
    payment_method: PaymentMethod,
    courier: CourierProfile | None = None,
    shipping_method: ShippingMethod = ShippingMethod.STANDARD,
    rates: Mapping[ShippingMethod, int] = CARD_SHIPPING_RATES,
    cod_available: bool | None = None,
) -> PriceBreakdown:
    """Price one group of items.

    COD takes percentage, fixed fee and transport from the first item's own
    settings when present, else from the courier:
        cod_extra_fees = ceil(subtotal * bps / 10000) + fixed
        shipping_cost  = transport
    Card uses the flat shipping rate table; buyer_fee is 0 for both methods.

    cod_available lets a caller pricing a sub-group pass the eligibility
    decided over the whole cart.
    """
    if not items:
        raise EmptyCartError()

    subtotal = sum(item.price for item in items)
    buyer_fee = 0
    cod_extra_fees = 0

    if payment_method == PaymentMethod.COD:
        eligible = is_cod_available(items) if cod_available is None else cod_available
        if not eligible:
            raise CodNotAvailableError()
        if courier is None:
            raise CourierRequiredError()
        first = items[0]
        fee_bps = _override_or_default(first.cod_fee_bps, courier.cod_fee_bps)
        fixed_fee = _override_or_default(first.cod_fixed_fee, courier.cod_fixed_fee)
        shipping_cost = _override_or_default(first.cod_transport_fee, courier.base_shipping_cost)
        cod_extra_fees = percent_of(subtotal, fee_bps) + fixed_fee
    else:
        shipping_cost = card_shipping_cost(shipping_method, rates)

    return PriceBreakdown(
        subtotal=subtotal,
        shipping_cost=shipping_cost,
        cod_extra_fees=cod_extra_fees,
        buyer_fee=buyer_fee,
        total=subtotal + shipping_cost + buyer_fee + cod_extra_fees,
        payment_method=payment_method,
    )


def group_by_seller(items: Sequence[CheckoutItem]) -> list[tuple[str, list[CheckoutItem]]]:
    """Group items by seller, preserving first-seen seller and item order."""
    groups: dict[str, list[CheckoutItem]] = {}
    for item in items:
        groups.setdefault(item.seller_id, []).append(item)
    return list(groups.items())


def price_by_seller(
    items: Sequence[CheckoutItem],
    payment_method: PaymentMethod,
    courier: CourierProfile | None = None,
    shipping_method: ShippingMethod = ShippingMethod.STANDARD,
    rates: Mapping[ShippingMethod, int] = CARD_SHIPPING_RATES,
) -> CartPricing:
    """Price each seller's items as an independent sub-order.

    COD eligibility is still decided over the whole cart; only the fee
    settings ("first item") are resolved per seller.
    """
    if not items:
        raise EmptyCartError()

    cod_available = is_cod_available(items)
    sellers = tuple(
        SellerBreakdown(
            seller_id=seller_id,
            items=tuple(group),
            breakdown=calculate_breakdown(
                group,
                payment_method,
                courier=courier,
                shipping_method=shipping_method,
                rates=rates,
                cod_available=cod_available,
            ),
        )
        for seller_id, group in group_by_seller(items)
    )
    return CartPricing(payment_method=payment_method, sellers=sellers)
