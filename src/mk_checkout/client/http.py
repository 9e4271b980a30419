"""httpx transport the checkout wizard uses to reach the place-order endpoint."""

import logging
import uuid

import httpx

from src.mk_checkout.application.schemas import PlaceOrderRequest, PlaceOrderResponse
from src.mk_common.errors import CollaboratorError

logger = logging.getLogger(__name__)

PLACE_ORDER_PATH = "/api/v1/checkout/orders"


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return f"Checkout failed with HTTP {r.status_code}"
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        detail = body.get("detail")
        if isinstance(detail, list) and detail:
            return str(detail[0].get("msg", detail[0]))
        if detail:
            return str(detail)
    return f"Checkout failed with HTTP {r.status_code}"


class PlaceOrderClient:
    def __init__(
        self,
        base_url: str,
        access_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._timeout = timeout
        self._transport = transport

    async def place_order(self, request: PlaceOrderRequest) -> PlaceOrderResponse:
        """Returns the collaborator's answer; a rejection is ``success=False`` with its message."""
        request_id = f"chk_{uuid.uuid4().hex[:12]}"
        headers = {"Idempotency-Key": request.idempotency_key, "X-Request-ID": request_id}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                r = await client.post(
                    PLACE_ORDER_PATH, json=request.model_dump(mode="json"), headers=headers
                )
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            logger.warning("Place order %s transport failure: %s", request_id, exc)
            raise CollaboratorError(f"Could not reach checkout: {exc}") from exc

        if r.status_code >= 400:
            return PlaceOrderResponse(success=False, error=_error_message(r))
        body = r.json()
        if body.get("code", 0) != 0:
            return PlaceOrderResponse(success=False, error=body.get("message"))
        return PlaceOrderResponse.model_validate(body["data"])
