"""PricingService: thin application wrapper over the pure calculator."""

from config.settings import settings
from src.mk_common.money import cents_to_display
from src.mk_pricing.application.schemas import CourierResponse, QuoteRequest, QuoteResponse
from src.mk_pricing.domain.calculator import is_cod_available, price_by_seller
from src.mk_pricing.domain.couriers import COURIERS, get_courier


class PricingService:
    def quote(self, req: QuoteRequest) -> QuoteResponse:
        items = [i.to_item() for i in req.items]
        courier = get_courier(req.courier_id) if req.courier_id else None
        pricing = price_by_seller(items, req.payment_method, courier, req.shipping_method)
        return QuoteResponse.from_pricing(
            pricing,
            cod_available=is_cod_available(items),
            total_display=cents_to_display(pricing.total, settings.CURRENCY),
        )

    def list_couriers(self) -> list[CourierResponse]:
        return [CourierResponse.from_profile(c) for c in COURIERS.values()]
