"""Place-order request/response and the shipping address form.

Responses are wrapped in ApiResponse at the router layer.
"""

import re

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.mk_common.enums import DeliveryType, PaymentMethod, ShippingMethod

_RO_POSTAL = re.compile(r"^\d{6}$")
_GENERIC_POSTAL = re.compile(r"^[A-Za-z0-9]{3,10}$")
_PHONE = re.compile(r"^\+?\d{7,20}$")


class ShippingAddress(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr | None = None
    street: str = Field(..., min_length=5, max_length=200)
    unit: str | None = Field(None, max_length=50)
    city: str = Field(..., min_length=2, max_length=100)
    region: str = Field(..., min_length=2, max_length=100)
    postal_code: str
    phone: str

    @field_validator("first_name", "last_name", "street", "city", "region", mode="before")
    @classmethod
    def strip_text(cls, v: object) -> object:
        return v.strip() if isinstance(v, str) else v

    @field_validator("postal_code")
    @classmethod
    def postal_code_format(cls, v: str) -> str:
        """Romanian 6-digit code, or a generic 3-10 character alphanumeric code."""
        compact = v.replace(" ", "").replace("-", "")
        if _RO_POSTAL.match(compact) or _GENERIC_POSTAL.match(compact):
            return v.strip()
        raise ValueError("Enter a valid postal code")

    @field_validator("phone")
    @classmethod
    def phone_format(cls, v: str) -> str:
        compact = re.sub(r"[\s\-().]", "", v)
        if not _PHONE.match(compact):
            raise ValueError("Enter a valid phone number (7-20 digits)")
        return compact

    def one_line(self) -> str:
        parts = [
            f"{self.first_name} {self.last_name}",
            self.street,
            self.unit,
            f"{self.postal_code} {self.city}",
            self.region,
            self.phone,
        ]
        return ", ".join(p for p in parts if p)


class CourierSelection(BaseModel):
    courier_id: str = Field(..., min_length=1, max_length=32)
    delivery_type: DeliveryType = DeliveryType.HOME
    locker_id: str | None = Field(None, max_length=64)


class PlaceOrderItem(BaseModel):
    listing_id: str = Field(..., min_length=1, max_length=64)
    price: int = Field(..., ge=0, description="Price in cents as shown to the buyer")


class PlaceOrderRequest(BaseModel):
    items: list[PlaceOrderItem] = Field(..., min_length=1)
    shipping_address: ShippingAddress
    shipping_method: ShippingMethod = ShippingMethod.STANDARD
    shipping_cost: int = Field(..., ge=0)
    buyer_fee: int = Field(0, ge=0)
    payment_method: PaymentMethod
    guest_email: EmailStr | None = None
    courier: CourierSelection | None = None
    cod_fees: int | None = Field(None, ge=0, description="COD extra fees the buyer was shown")
    idempotency_key: str = Field(..., min_length=8, max_length=128)

    def fingerprint_payload(self) -> dict:
        """The request minus its idempotency key, in JSON-compatible form."""
        return self.model_dump(mode="json", exclude={"idempotency_key"})


class PlacedOrder(BaseModel):
    id: str
    seller_id: str
    status: str
    total_cents: int


class PlaceOrderResponse(BaseModel):
    success: bool
    orders: list[PlacedOrder] = []
    invoice_number: str | None = None
    total_cents: int = 0
    total_display: str | None = None
    payment_method: str | None = None
    processor: str | None = None
    approval_url: str | None = None
    error: str | None = None
