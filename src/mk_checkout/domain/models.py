"""Checkout domain models: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from src.mk_pricing.domain.models import CheckoutItem


@dataclass(frozen=True)
class Listing:
    """Catalog snapshot of a listing, joined with its seller's country."""

    id: str
    seller_id: str
    title: str
    price: int  # cents
    is_active: bool
    seller_country: str | None = None
    cod_enabled: bool = False
    cod_fee_bps: int | None = None
    cod_fixed_fee: int | None = None
    cod_transport_fee: int | None = None

    def to_item(self) -> CheckoutItem:
        return CheckoutItem(
            listing_id=self.id,
            seller_id=self.seller_id,
            price=self.price,
            seller_country=self.seller_country,
            cod_enabled=self.cod_enabled,
            cod_fee_bps=self.cod_fee_bps,
            cod_fixed_fee=self.cod_fixed_fee,
            cod_transport_fee=self.cod_transport_fee,
        )


@dataclass(frozen=True)
class Submission:
    """A completed place-order call, stored so a retry replays the same response."""

    buyer_id: str
    idempotency_key: str
    fingerprint: str             # sha256 of the canonical request body
    response: dict[str, Any]
    created_at: datetime | None = None
