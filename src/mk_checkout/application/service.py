"""CheckoutService: server side of place-order.

Flow for one call:
  1. Redis in-flight lock on (buyer, idempotency key); a concurrent duplicate
     gets SubmissionInProgressError instead of a second set of orders.
  2. Stored submission with the same key: same fingerprint replays the stored
     response, a different fingerprint is a DuplicateSubmissionError.
  3. Re-price the cart from catalog snapshots and reject any mismatch with
     what the buyer was shown.
  4. Authorize card payments, insert one order per item and the submission,
     commit. Any failure rolls back and nothing is persisted.
"""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_checkout.application.schemas import (
    PlacedOrder,
    PlaceOrderRequest,
    PlaceOrderResponse,
)
from src.mk_checkout.domain.models import Listing, Submission
from src.mk_checkout.domain.repository import (
    ListingCatalogProtocol,
    SubmissionLockProtocol,
    SubmissionRepositoryProtocol,
)
from src.mk_checkout.domain.rules import request_fingerprint, validate_cod_selection
from src.mk_checkout.infrastructure.catalog import ListingCatalog
from src.mk_checkout.infrastructure.lock import RedisSubmissionLock
from src.mk_checkout.infrastructure.payment_client import (
    PaymentAuthorization,
    PaymentClient,
    get_payment_client,
)
from src.mk_checkout.infrastructure.persistence import SubmissionRepository
from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import PaymentMethod
from src.mk_common.errors import (
    CodNotAvailableError,
    DuplicateSubmissionError,
    ListingNotFoundError,
    ListingUnavailableError,
    PriceMismatchError,
    SelfPurchaseError,
    SubmissionInProgressError,
)
from src.mk_common.id_generator import generate_id, generate_invoice_number
from src.mk_common.money import cents_to_display
from src.mk_order.application.service import OrderService
from src.mk_order.domain.models import CardPayment, CodPayment, Order, Paid, Pending
from src.mk_pricing.domain.calculator import is_cod_available, price_by_seller
from src.mk_pricing.domain.couriers import get_courier
from src.mk_pricing.domain.models import CartPricing, CheckoutItem

logger = logging.getLogger(__name__)


class CheckoutService:
    def __init__(
        self,
        catalog: ListingCatalogProtocol | None = None,
        submissions: SubmissionRepositoryProtocol | None = None,
        lock: SubmissionLockProtocol | None = None,
        orders: OrderService | None = None,
        payment_client_factory: Callable[[], PaymentClient | None] = get_payment_client,
    ) -> None:
        self._catalog: ListingCatalogProtocol = catalog or ListingCatalog()
        self._submissions: SubmissionRepositoryProtocol = submissions or SubmissionRepository()
        self._lock: SubmissionLockProtocol = lock or RedisSubmissionLock()
        self._orders = orders or OrderService()
        self._payment_client_factory = payment_client_factory

    async def place_order(
        self, db: AsyncSession, buyer_id: str, req: PlaceOrderRequest
    ) -> PlaceOrderResponse:
        lock_key = f"checkout:{buyer_id}:{req.idempotency_key}"
        owner = generate_id()
        if not await self._lock.acquire(lock_key, owner):
            raise SubmissionInProgressError()
        try:
            return await self._place(db, buyer_id, req)
        finally:
            await self._lock.release(lock_key, owner)

    async def _place(
        self, db: AsyncSession, buyer_id: str, req: PlaceOrderRequest
    ) -> PlaceOrderResponse:
        fingerprint = request_fingerprint(req.fingerprint_payload())
        try:
            existing = await self._submissions.get(db, buyer_id, req.idempotency_key)
            if existing is not None:
                if existing.fingerprint != fingerprint:
                    raise DuplicateSubmissionError(req.idempotency_key)
                logger.info(
                    "Checkout replay for buyer %s key %s; idempotency hit", buyer_id, req.idempotency_key
                )
                return PlaceOrderResponse.model_validate(existing.response)

            items = await self._load_items(db, buyer_id, req)
            pricing = self._reprice(items, req)

            now = utc_now()
            invoice_number = generate_invoice_number(now)
            authorization = await self._authorize(buyer_id, req, invoice_number, pricing.total)

            orders = _build_orders(buyer_id, req, pricing, invoice_number, authorization, now)
            for order in orders:
                await self._orders.place(db, order, buyer_id)

            response = PlaceOrderResponse(
                success=True,
                orders=[
                    PlacedOrder(
                        id=o.id, seller_id=o.seller_id, status=o.status.value, total_cents=o.total
                    )
                    for o in orders
                ],
                invoice_number=invoice_number,
                total_cents=pricing.total,
                total_display=cents_to_display(pricing.total, settings.CURRENCY),
                payment_method=req.payment_method.value,
                processor=authorization.processor if authorization else None,
                approval_url=authorization.approval_url if authorization else None,
            )
            await self._submissions.insert(
                db,
                Submission(
                    buyer_id=buyer_id,
                    idempotency_key=req.idempotency_key,
                    fingerprint=fingerprint,
                    response=response.model_dump(mode="json"),
                ),
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info(
            "Checkout placed: buyer=%s invoice=%s orders=%d total=%d method=%s",
            buyer_id, invoice_number, len(orders), pricing.total, req.payment_method.value,
        )
        return response

    async def _load_items(
        self, db: AsyncSession, buyer_id: str, req: PlaceOrderRequest
    ) -> list[CheckoutItem]:
        listings = await self._catalog.get_many(db, [i.listing_id for i in req.items])
        items: list[CheckoutItem] = []
        for submitted in req.items:
            listing: Listing | None = listings.get(submitted.listing_id)
            if listing is None:
                raise ListingNotFoundError(submitted.listing_id)
            if not listing.is_active:
                raise ListingUnavailableError(listing.id)
            if listing.seller_id == buyer_id:
                raise SelfPurchaseError(listing.id)
            if listing.price != submitted.price:
                raise PriceMismatchError(
                    f"{listing.title} costs {cents_to_display(listing.price, settings.CURRENCY)}"
                )
            items.append(listing.to_item())
        return items

    def _reprice(self, items: list[CheckoutItem], req: PlaceOrderRequest) -> CartPricing:
        courier = None
        if req.payment_method == PaymentMethod.COD:
            if not is_cod_available(items):
                raise CodNotAvailableError()
            selection = req.courier
            courier = get_courier(selection.courier_id) if selection else None
            validate_cod_selection(
                courier,
                selection.delivery_type if selection else None,
                selection.locker_id if selection else None,
            )

        pricing = price_by_seller(items, req.payment_method, courier, req.shipping_method)
        if pricing.shipping_cost != req.shipping_cost:
            raise PriceMismatchError(
                f"shipping is {pricing.shipping_cost}, submitted {req.shipping_cost}"
            )
        if pricing.buyer_fee != req.buyer_fee:
            raise PriceMismatchError(f"buyer fee is {pricing.buyer_fee}, submitted {req.buyer_fee}")
        if req.cod_fees is not None and pricing.cod_extra_fees != req.cod_fees:
            raise PriceMismatchError(
                f"COD fees are {pricing.cod_extra_fees}, submitted {req.cod_fees}"
            )
        return pricing

    async def _authorize(
        self, buyer_id: str, req: PlaceOrderRequest, invoice_number: str, total: int
    ) -> PaymentAuthorization | None:
        if req.payment_method != PaymentMethod.CARD:
            return None
        client = self._payment_client_factory()
        if client is None:
            logger.info("No payment processor configured; invoice %s waits for authorization", invoice_number)
            return None
        return await client.authorize(invoice_number, buyer_id, total, req.idempotency_key)


def _build_orders(
    buyer_id: str,
    req: PlaceOrderRequest,
    pricing: CartPricing,
    invoice_number: str,
    authorization: PaymentAuthorization | None,
    now: datetime,
) -> list[Order]:
    """One order per item; each seller's shipping and COD fees ride on their first item."""
    if req.payment_method == PaymentMethod.COD:
        # Cleared for shipping; the courier collects cash at delivery.
        state = Paid(paid_at=now)
    elif authorization is not None and authorization.authorized and not authorization.approval_url:
        state = Paid(paid_at=now)
    else:
        state = Pending()

    address = req.shipping_address.one_line()
    orders: list[Order] = []
    for seller in pricing.sellers:
        for index, item in enumerate(seller.items):
            first = index == 0
            if req.payment_method == PaymentMethod.COD:
                selection = req.courier
                payment = CodPayment(
                    courier_id=selection.courier_id,
                    delivery_type=selection.delivery_type,
                    cod_fee=seller.breakdown.cod_extra_fees if first else 0,
                    locker_id=selection.locker_id,
                )
            else:
                payment = CardPayment(
                    shipping_method=req.shipping_method,
                    processor=authorization.processor if authorization else None,
                )
            orders.append(
                Order(
                    id=generate_id(),
                    invoice_number=invoice_number,
                    buyer_id=buyer_id,
                    seller_id=item.seller_id,
                    listing_id=item.listing_id,
                    amount=item.price,
                    shipping_cost=seller.breakdown.shipping_cost if first else 0,
                    buyer_fee=seller.breakdown.buyer_fee if first else 0,
                    payment=payment,
                    state=state,
                    shipping_address=address,
                    guest_email=req.guest_email or req.shipping_address.email,
                    created_at=now,
                    updated_at=now,
                )
            )
    return orders
