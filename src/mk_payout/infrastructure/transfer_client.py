"""HTTP client for the external bank-transfer collaborator.

Submitting a withdrawal only hands it over; completion or failure arrives
later as a ``transfer.completed`` / ``transfer.failed`` webhook.
"""

import logging

import httpx

from config.settings import settings
from src.mk_common.errors import CollaboratorError
from src.mk_payout.domain.models import Withdrawal

logger = logging.getLogger(__name__)


class TransferClient:
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

    async def submit(self, withdrawal: Withdrawal) -> str | None:
        """POST the transfer; returns the collaborator's reference if it sends one.

        The withdrawal id doubles as the collaborator's idempotency key.
        """
        payload = {
            "withdrawal_id": withdrawal.id,
            "seller_id": withdrawal.seller_id,
            "amount_cents": withdrawal.amount,
            "currency": settings.CURRENCY,
        }
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as client:
                r = await client.post(
                    "/transfers",
                    json=payload,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Idempotency-Key": withdrawal.id,
                    },
                )
                r.raise_for_status()
                body = r.json()
        except httpx.HTTPStatusError as exc:
            raise CollaboratorError(
                f"Transfer service rejected withdrawal {withdrawal.id}: {exc.response.status_code}"
            ) from exc
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise CollaboratorError(f"Transfer service unavailable: {exc}") from exc

        reference = body.get("reference")
        logger.info("Transfer submitted withdrawal=%s reference=%s", withdrawal.id, reference)
        return str(reference) if reference is not None else None


def get_transfer_client() -> TransferClient | None:
    """None when no transfer collaborator is configured (manual processing)."""
    if not settings.TRANSFER_API_URL:
        return None
    return TransferClient(
        settings.TRANSFER_API_URL,
        settings.TRANSFER_API_KEY,
        settings.COLLABORATOR_TIMEOUT_SECONDS,
    )
