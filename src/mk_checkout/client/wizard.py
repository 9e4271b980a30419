"""Checkout wizard: shipping -> payment -> review -> submit.

Stages are strictly sequential. Going back keeps everything entered; moving
forward needs the current stage's data to be valid. The wizard holds one
idempotency key per distinct request, so a retry after a timeout reaches the
server with the same key and cannot create a second set of orders. A placed
order moves the wizard to ``done``.
"""

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from src.mk_checkout.application.schemas import (
    CourierSelection,
    PlaceOrderItem,
    PlaceOrderRequest,
    ShippingAddress,
)
from src.mk_checkout.client.http import PlaceOrderClient
from src.mk_checkout.domain.rules import request_fingerprint, validate_cod_selection
from src.mk_common.enums import DeliveryType, PaymentMethod, ShippingMethod
from src.mk_common.errors import (
    AppError,
    CheckoutStageError,
    CodNotAvailableError,
    EmptyCartError,
    SubmissionInProgressError,
)
from src.mk_pricing.domain.calculator import is_cod_available, price_by_seller
from src.mk_pricing.domain.couriers import get_courier
from src.mk_pricing.domain.models import CartPricing, CheckoutItem

logger = logging.getLogger(__name__)

CONSENT_TEXT = (
    "By placing this order you accept the Terms of Sale and the Privacy Policy "
    "and confirm that the order implies an obligation to pay."
)


class WizardStage(str, Enum):
    SHIPPING = "shipping"
    PAYMENT = "payment"
    REVIEW = "review"
    DONE = "done"


_STAGE_ORDER = (WizardStage.SHIPPING, WizardStage.PAYMENT, WizardStage.REVIEW)


@dataclass(frozen=True)
class PaymentSelection:
    method: PaymentMethod
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    courier_id: str | None = None
    delivery_type: DeliveryType | None = None
    locker_id: str | None = None


@dataclass(frozen=True)
class ReviewSummary:
    pricing: CartPricing
    consent_text: str = CONSENT_TEXT


@dataclass(frozen=True)
class RedirectOutcome:
    """Card payment needs the buyer at the processor's approval page."""

    approval_url: str
    invoice_number: str | None


@dataclass(frozen=True)
class ConfirmationOutcome:
    invoice_number: str
    order_ids: tuple[str, ...]
    total: int


@dataclass(frozen=True)
class FailedOutcome:
    message: str


SubmitOutcome = RedirectOutcome | ConfirmationOutcome | FailedOutcome


def validate_address(data: Mapping[str, Any], authenticated: bool) -> dict[str, str]:
    """Field-scoped messages for the shipping form; empty when it is valid."""
    errors: dict[str, str] = {}
    try:
        ShippingAddress.model_validate(dict(data))
    except ValidationError as exc:
        for err in exc.errors():
            field = str(err["loc"][0]) if err["loc"] else "__all__"
            errors.setdefault(field, err["msg"].removeprefix("Value error, "))
    if not authenticated and not data.get("email") and "email" not in errors:
        errors["email"] = "Email is required for guest checkout"
    return errors


class CheckoutWizard:
    def __init__(self, items: Sequence[CheckoutItem], authenticated: bool = True) -> None:
        self._items: list[CheckoutItem] = list(items)
        self._authenticated = authenticated
        self._stage = WizardStage.SHIPPING
        self._address_input: dict[str, Any] = {}
        self._address: ShippingAddress | None = None
        self._payment: PaymentSelection | None = None
        self._idempotency_key: str | None = None
        self._key_fingerprint: str | None = None
        self._in_flight = False
        self._outcome: SubmitOutcome | None = None
        self.last_error: str | None = None

    @property
    def stage(self) -> WizardStage:
        return self._stage

    @property
    def items(self) -> tuple[CheckoutItem, ...]:
        return tuple(self._items)

    @property
    def address_input(self) -> dict[str, Any]:
        return dict(self._address_input)

    @property
    def payment(self) -> PaymentSelection | None:
        return self._payment

    @property
    def cod_available(self) -> bool:
        return is_cod_available(self._items)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def _require(self, stage: WizardStage, action: str) -> None:
        if self._stage != stage:
            raise CheckoutStageError(self._stage.value, action)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def submit_shipping(self, data: Mapping[str, Any]) -> dict[str, str]:
        """Validate the address; advance to payment when there are no errors."""
        self._require(WizardStage.SHIPPING, "enter shipping details")
        self._address_input = dict(data)
        errors = validate_address(data, self._authenticated)
        if errors:
            return errors
        self._address = ShippingAddress.model_validate(dict(data))
        self._stage = WizardStage.PAYMENT
        return {}

    def select_payment(
        self,
        method: PaymentMethod,
        courier_id: str | None = None,
        delivery_type: DeliveryType | None = None,
        locker_id: str | None = None,
        shipping_method: ShippingMethod = ShippingMethod.STANDARD,
    ) -> None:
        self._require(WizardStage.PAYMENT, "choose a payment method")
        if method == PaymentMethod.COD:
            if not self.cod_available:
                raise CodNotAvailableError()
            courier = get_courier(courier_id) if courier_id else None
            validate_cod_selection(courier, delivery_type, locker_id)
        else:
            courier_id = delivery_type = locker_id = None
        self._payment = PaymentSelection(
            method=method,
            shipping_method=shipping_method,
            courier_id=courier_id,
            delivery_type=delivery_type,
            locker_id=locker_id,
        )
        self._stage = WizardStage.REVIEW

    def go_back(self, stage: WizardStage) -> None:
        if self._stage == WizardStage.DONE or stage == WizardStage.DONE:
            raise CheckoutStageError(self._stage.value, f"go back to {stage.value}")
        if _STAGE_ORDER.index(stage) >= _STAGE_ORDER.index(self._stage):
            raise CheckoutStageError(self._stage.value, f"go back to {stage.value}")
        if self._in_flight:
            raise SubmissionInProgressError()
        self._stage = stage

    # ------------------------------------------------------------------
    # Review / submit
    # ------------------------------------------------------------------

    def review(self) -> ReviewSummary:
        self._require(WizardStage.REVIEW, "review the order")
        return ReviewSummary(pricing=self._pricing())

    def _pricing(self) -> CartPricing:
        if not self._items:
            raise EmptyCartError()
        payment = self._payment
        courier = get_courier(payment.courier_id) if payment.courier_id else None
        return price_by_seller(self._items, payment.method, courier, payment.shipping_method)

    def build_request(self) -> PlaceOrderRequest:
        """The place-order request for the current cart and choices.

        The idempotency key is kept for as long as the request stays the same
        and replaced when the buyer changes the cart, address or payment.
        """
        self._require(WizardStage.REVIEW, "submit")
        pricing = self._pricing()
        payment = self._payment
        courier = None
        if payment.method == PaymentMethod.COD:
            courier = CourierSelection(
                courier_id=payment.courier_id,
                delivery_type=payment.delivery_type,
                locker_id=payment.locker_id,
            )
        payload: dict[str, Any] = {
            "items": [PlaceOrderItem(listing_id=i.listing_id, price=i.price) for i in self._items],
            "shipping_address": self._address,
            "shipping_method": payment.shipping_method,
            "shipping_cost": pricing.shipping_cost,
            "buyer_fee": pricing.buyer_fee,
            "payment_method": payment.method,
            "guest_email": None if self._authenticated else self._address.email,
            "courier": courier,
            "cod_fees": pricing.cod_extra_fees if payment.method == PaymentMethod.COD else None,
        }
        draft = PlaceOrderRequest(**payload, idempotency_key="pending-key")
        fingerprint = request_fingerprint(draft.fingerprint_payload())
        if fingerprint != self._key_fingerprint:
            self._idempotency_key = uuid.uuid4().hex
            self._key_fingerprint = fingerprint
        return draft.model_copy(update={"idempotency_key": self._idempotency_key})

    async def submit(self, client: PlaceOrderClient) -> SubmitOutcome:
        """Place the order. Once it has been placed, returns the same outcome again."""
        if self._stage == WizardStage.DONE and self._outcome is not None:
            return self._outcome
        if self._in_flight:
            raise SubmissionInProgressError()
        request = self.build_request()

        self._in_flight = True
        try:
            response = await client.place_order(request)
        except AppError as exc:
            self.last_error = exc.message
            logger.info("Checkout submit failed: %s", exc.message)
            return FailedOutcome(exc.message)
        finally:
            self._in_flight = False

        if not response.success:
            self.last_error = response.error or "The order could not be placed"
            return FailedOutcome(self.last_error)

        self.last_error = None
        self._items = []
        outcome: SubmitOutcome
        if response.approval_url:
            outcome = RedirectOutcome(response.approval_url, response.invoice_number)
        else:
            outcome = ConfirmationOutcome(
                invoice_number=response.invoice_number or "",
                order_ids=tuple(o.id for o in response.orders),
                total=response.total_cents,
            )
        self._outcome = outcome
        self._stage = WizardStage.DONE
        return outcome
