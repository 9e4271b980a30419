"""Built-in Romanian courier table used for COD defaults and locker support."""

from src.mk_common.errors import UnknownCourierError
from src.mk_pricing.domain.models import CourierProfile

COURIERS: dict[str, CourierProfile] = {
    c.id: c
    for c in (
        CourierProfile("fan_courier", "FAN Courier", 150, 300, 1800, True, "1-2 business days"),
        CourierProfile("cargus", "Cargus", 200, 500, 1600, True, "1-2 business days"),
        CourierProfile("sameday", "Sameday", 200, 400, 1700, True, "1-2 business days"),
        CourierProfile("dpd", "DPD Romania", 150, 400, 1900, False, "2-3 business days"),
        CourierProfile("gls", "GLS Romania", 200, 300, 1800, False, "2-3 business days"),
    )
}


def get_courier(courier_id: str) -> CourierProfile:
    try:
        return COURIERS[courier_id]
    except KeyError:
        raise UnknownCourierError(courier_id) from None
