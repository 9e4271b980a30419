"""Checkout rules shared by the wizard and the place-order service."""

import hashlib
import json
from typing import Any

from src.mk_common.enums import DeliveryType
from src.mk_common.errors import (
    CourierRequiredError,
    LockerNotSupportedError,
    LockerRequiredError,
)
from src.mk_pricing.domain.models import CourierProfile


def validate_cod_selection(
    courier: CourierProfile | None,
    delivery_type: DeliveryType | None,
    locker_id: str | None,
) -> None:
    """COD needs a courier and a delivery type; locker delivery needs a locker."""
    if courier is None or delivery_type is None:
        raise CourierRequiredError()
    if delivery_type == DeliveryType.LOCKER:
        if not courier.supports_lockers:
            raise LockerNotSupportedError(courier.name)
        if not locker_id or not locker_id.strip():
            raise LockerRequiredError()


def request_fingerprint(payload: dict[str, Any]) -> str:
    """sha256 over canonical JSON; equal requests give equal fingerprints."""
    raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), default=str).encode("utf-8")
    return hashlib.sha256(raw).hexdigest()
