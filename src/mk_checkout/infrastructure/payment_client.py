"""HTTP client for the external payment processor.

``authorize`` is called during place-order, before the checkout transaction
commits; ``refund`` is called after a refund instruction has been committed.
Both send an Idempotency-Key so a retried call cannot charge or refund twice.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from config.settings import settings
from src.mk_common.errors import CollaboratorError, PaymentDeclinedError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentAuthorization:
    authorized: bool
    processor: str | None = None
    approval_url: str | None = None  # buyer must complete payment at the processor


class PaymentClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport

    async def _post(self, path: str, payload: dict[str, Any], idempotency_key: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                r = await client.post(
                    path,
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Idempotency-Key": idempotency_key,
                    },
                )
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as exc:
            raise CollaboratorError(
                f"Payment processor error {exc.response.status_code}: {exc.response.text[:200]}"
            ) from exc
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise CollaboratorError(f"Payment processor unavailable: {exc}") from exc

    async def authorize(
        self,
        invoice_number: str,
        buyer_id: str,
        amount: int,
        idempotency_key: str,
    ) -> PaymentAuthorization:
        body = await self._post(
            "/payments",
            {
                "invoice_number": invoice_number,
                "buyer_id": buyer_id,
                "amount_cents": amount,
                "currency": settings.CURRENCY,
            },
            idempotency_key,
        )
        status = body.get("status")
        if status == "declined":
            raise PaymentDeclinedError(body.get("message") or "Payment declined")
        logger.info("Payment %s for invoice %s", status, invoice_number)
        return PaymentAuthorization(
            authorized=status == "authorized",
            processor=body.get("processor"),
            approval_url=body.get("approval_url"),
        )

    async def refund(self, order_id: str, amount: int, instruction_id: str) -> None:
        await self._post(
            "/refunds",
            {"order_id": order_id, "amount_cents": amount, "currency": settings.CURRENCY},
            instruction_id,
        )
        logger.info("Refund sent: order=%s amount=%d instruction=%s", order_id, amount, instruction_id)


def get_payment_client() -> PaymentClient | None:
    """None when no processor is configured: card orders wait for the webhook."""
    if not settings.PAYMENT_API_URL:
        return None
    return PaymentClient(
        settings.PAYMENT_API_URL,
        settings.PAYMENT_API_KEY,
        settings.COLLABORATOR_TIMEOUT_SECONDS,
    )
