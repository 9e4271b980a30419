"""WebhookService: collaborator events in, the same services as user actions out.

An event is recorded on (source, id) in the same transaction as its effect.
A replay finds the row and is acknowledged without touching anything; a
failed effect rolls the record back too, so the sender's retry is processed.
"""

import logging
from typing import Any

from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.enums import ActorRole, KycStatus
from src.mk_common.errors import (
    InvalidWebhookPayloadError,
    InvalidWebhookSignatureError,
    UnsupportedWebhookEventError,
)
from src.mk_gateway.user.service import UserService
from src.mk_order.application.service import OrderService
from src.mk_payout.application.service import PayoutLedgerService
from src.mk_webhooks.application.schemas import WebhookAck, WebhookEvent
from src.mk_webhooks.domain.repository import WebhookEventRepositoryProtocol
from src.mk_webhooks.domain.signature import verify_signature
from src.mk_webhooks.infrastructure.persistence import WebhookEventRepository

logger = logging.getLogger(__name__)

EVENT_TYPES: dict[str, frozenset[str]] = {
    "payment": frozenset(
        {"payment.authorized", "payment.failed", "payment.cancelled", "payment.refunded"}
    ),
    "transfer": frozenset({"transfer.completed", "transfer.failed"}),
    "identity": frozenset({"identity.status_changed"}),
}


def _require(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None or str(value).strip() == "":
        raise InvalidWebhookPayloadError(f"missing {key}")
    return str(value)


class WebhookService:
    def __init__(
        self,
        repo: WebhookEventRepositoryProtocol | None = None,
        orders: OrderService | None = None,
        ledger: PayoutLedgerService | None = None,
        users: UserService | None = None,
        secret: str | None = None,
    ) -> None:
        self._repo: WebhookEventRepositoryProtocol = repo or WebhookEventRepository()
        self._ledger = ledger or PayoutLedgerService()
        self._orders = orders or OrderService(ledger=self._ledger)
        self._users = users or UserService()
        self._secret = settings.WEBHOOK_SECRET if secret is None else secret

    def parse(self, source: str, body: bytes, signature: str | None) -> WebhookEvent:
        if not verify_signature(self._secret, body, signature):
            raise InvalidWebhookSignatureError()
        try:
            event = WebhookEvent.model_validate_json(body)
        except ValidationError as exc:
            raise InvalidWebhookPayloadError(exc.errors()[0]["msg"]) from exc
        if event.type not in EVENT_TYPES.get(source, frozenset()):
            raise UnsupportedWebhookEventError(source, event.type)
        return event

    async def handle(
        self, db: AsyncSession, source: str, body: bytes, signature: str | None
    ) -> WebhookAck:
        event = self.parse(source, body, signature)
        try:
            recorded = await self._repo.record_once(
                db, source, event.id, event.type, event.model_dump(mode="json")
            )
            if not recorded:
                await db.rollback()
                logger.info("Webhook %s/%s already processed; idempotency hit", source, event.id)
                return WebhookAck(event_id=event.id, type=event.type, duplicate=True)
            await self._dispatch(db, event)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Webhook %s/%s processed: %s", source, event.id, event.type)
        return WebhookAck(event_id=event.id, type=event.type, duplicate=False)

    async def _dispatch(self, db: AsyncSession, event: WebhookEvent) -> None:
        data = event.data
        match event.type:
            case "payment.authorized":
                await self._orders.apply_payment_authorized(db, _require(data, "invoice_number"))
            case "payment.failed" | "payment.cancelled":
                await self._orders.apply_payment_failed(
                    db, _require(data, "invoice_number"), data.get("reason") or event.type
                )
            case "payment.refunded":
                await self._orders.apply_refund(
                    db,
                    _require(data, "order_id"),
                    data.get("reason"),
                    None,
                    ActorRole.PAYMENT_PROCESSOR,
                )
            case "transfer.completed":
                await self._ledger.complete_withdrawal(
                    db, _require(data, "withdrawal_id"), data.get("reference")
                )
            case "transfer.failed":
                await self._ledger.fail_withdrawal(
                    db, _require(data, "withdrawal_id"), data.get("reason")
                )
            case "identity.status_changed":
                raw_status = _require(data, "status")
                try:
                    status = KycStatus(raw_status)
                except ValueError:
                    raise InvalidWebhookPayloadError(f"unknown status {raw_status}") from None
                await self._users.set_kyc_status(db, _require(data, "user_id"), status)
            case _:
                raise UnsupportedWebhookEventError("unknown", event.type)
