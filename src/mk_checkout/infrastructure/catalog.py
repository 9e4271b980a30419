"""Read-only view of the listing catalog.

Listings are owned by the catalog; checkout only reads a snapshot of price,
availability and COD settings, plus the seller's country from ``users``.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_checkout.domain.models import Listing

_GET_LISTINGS_SQL = text("""
    SELECT l.id, l.seller_id, l.title, l.price, l.is_active, l.cod_enabled,
           l.cod_fee_bps, l.cod_fixed_fee, l.cod_transport_fee,
           u.country AS seller_country
    FROM listings l
    LEFT JOIN users u ON u.id::text = l.seller_id
    WHERE l.id = ANY(CAST(:ids AS VARCHAR[]))
""")


def _row_to_listing(row: Any) -> Listing:
    return Listing(
        id=row.id,
        seller_id=row.seller_id,
        title=row.title,
        price=row.price,
        is_active=row.is_active,
        seller_country=row.seller_country,
        cod_enabled=row.cod_enabled,
        cod_fee_bps=row.cod_fee_bps,
        cod_fixed_fee=row.cod_fixed_fee,
        cod_transport_fee=row.cod_transport_fee,
    )


class ListingCatalog:
    async def get_many(
        self, db: AsyncSession, listing_ids: Sequence[str]
    ) -> dict[str, Listing]:
        if not listing_ids:
            return {}
        result = await db.execute(_GET_LISTINGS_SQL, {"ids": list(listing_ids)})
        return {row.id: _row_to_listing(row) for row in result.fetchall()}
