"""Unit tests for webhook signature checks and event dispatch."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.mk_common.enums import ActorRole, KycStatus
from src.mk_common.errors import (
    InvalidWebhookPayloadError,
    InvalidWebhookSignatureError,
    OrderNotFoundError,
    UnsupportedWebhookEventError,
)
from src.mk_webhooks.application.service import WebhookService
from src.mk_webhooks.domain.signature import compute_signature, verify_signature

SECRET = "whsec_test"


def _body(event_type: str, event_id: str = "evt-1", **data: object) -> bytes:
    return json.dumps({"id": event_id, "type": event_type, "data": data}).encode()


class _Fixture:
    def __init__(self) -> None:
        self.repo = AsyncMock()
        self.repo.record_once.return_value = True
        self.orders = AsyncMock()
        self.ledger = AsyncMock()
        self.users = AsyncMock()
        self.db = MagicMock()
        self.db.commit = AsyncMock()
        self.db.rollback = AsyncMock()
        self.service = WebhookService(
            repo=self.repo, orders=self.orders, ledger=self.ledger, users=self.users, secret=SECRET
        )

    async def deliver(self, source: str, body: bytes):
        return await self.service.handle(self.db, source, body, compute_signature(SECRET, body))


class TestSignature:
    def test_valid_signature(self) -> None:
        body = b'{"id":"1"}'
        assert verify_signature(SECRET, body, compute_signature(SECRET, body)) is True

    def test_upper_case_hex_accepted(self) -> None:
        body = b'{"id":"1"}'
        assert verify_signature(SECRET, body, compute_signature(SECRET, body).upper()) is True

    def test_tampered_body_rejected(self) -> None:
        signature = compute_signature(SECRET, b'{"amount":100}')
        assert verify_signature(SECRET, b'{"amount":900}', signature) is False

    def test_missing_signature_rejected(self) -> None:
        assert verify_signature(SECRET, b"{}", None) is False

    def test_unconfigured_secret_rejects_everything(self) -> None:
        assert verify_signature("", b"{}", compute_signature("", b"{}")) is False


class TestParse:
    def test_bad_signature(self) -> None:
        f = _Fixture()
        with pytest.raises(InvalidWebhookSignatureError):
            f.service.parse("payment", _body("payment.authorized"), "deadbeef")

    def test_malformed_json(self) -> None:
        f = _Fixture()
        body = b"not json"
        with pytest.raises(InvalidWebhookPayloadError):
            f.service.parse("payment", body, compute_signature(SECRET, body))

    def test_event_from_wrong_source(self) -> None:
        f = _Fixture()
        body = _body("transfer.completed")
        with pytest.raises(UnsupportedWebhookEventError):
            f.service.parse("payment", body, compute_signature(SECRET, body))

    def test_unknown_source(self) -> None:
        f = _Fixture()
        body = _body("payment.authorized")
        with pytest.raises(UnsupportedWebhookEventError):
            f.service.parse("courier", body, compute_signature(SECRET, body))


class TestHandle:
    async def test_payment_authorized_marks_order_paid(self) -> None:
        f = _Fixture()
        ack = await f.deliver("payment", _body("payment.authorized", invoice_number="INV-1"))

        f.orders.apply_payment_authorized.assert_awaited_once_with(f.db, "INV-1")
        f.db.commit.assert_awaited_once()
        assert ack.duplicate is False
        assert ack.event_id == "evt-1"

    async def test_records_event_before_effect(self) -> None:
        f = _Fixture()
        await f.deliver("payment", _body("payment.authorized", invoice_number="INV-1"))
        args = f.repo.record_once.await_args.args
        assert args[1:4] == ("payment", "evt-1", "payment.authorized")

    async def test_payment_failed_uses_event_type_as_reason(self) -> None:
        f = _Fixture()
        await f.deliver("payment", _body("payment.cancelled", invoice_number="INV-2"))
        f.orders.apply_payment_failed.assert_awaited_once_with(f.db, "INV-2", "payment.cancelled")

    async def test_payment_refunded_cancels_as_processor(self) -> None:
        f = _Fixture()
        await f.deliver(
            "payment", _body("payment.refunded", order_id="ord-9", reason="chargeback")
        )
        f.orders.apply_refund.assert_awaited_once_with(
            f.db, "ord-9", "chargeback", None, ActorRole.PAYMENT_PROCESSOR
        )

    async def test_transfer_completed(self) -> None:
        f = _Fixture()
        await f.deliver(
            "transfer", _body("transfer.completed", withdrawal_id="wd-1", reference="BANK-77")
        )
        f.ledger.complete_withdrawal.assert_awaited_once_with(f.db, "wd-1", "BANK-77")

    async def test_transfer_failed(self) -> None:
        f = _Fixture()
        await f.deliver("transfer", _body("transfer.failed", withdrawal_id="wd-1", reason="iban"))
        f.ledger.fail_withdrawal.assert_awaited_once_with(f.db, "wd-1", "iban")

    async def test_identity_status_changed(self) -> None:
        f = _Fixture()
        await f.deliver(
            "identity", _body("identity.status_changed", user_id="u-1", status="verified")
        )
        f.users.set_kyc_status.assert_awaited_once_with(f.db, "u-1", KycStatus.VERIFIED)

    async def test_unknown_kyc_status_rolls_back(self) -> None:
        f = _Fixture()
        with pytest.raises(InvalidWebhookPayloadError):
            await f.deliver(
                "identity", _body("identity.status_changed", user_id="u-1", status="maybe")
            )
        f.db.rollback.assert_awaited_once()
        f.db.commit.assert_not_awaited()

    async def test_missing_field_rolls_back(self) -> None:
        f = _Fixture()
        with pytest.raises(InvalidWebhookPayloadError):
            await f.deliver("payment", _body("payment.authorized"))
        f.orders.apply_payment_authorized.assert_not_awaited()
        f.db.rollback.assert_awaited_once()

    async def test_replay_is_acknowledged_without_effect(self) -> None:
        f = _Fixture()
        f.repo.record_once.return_value = False

        ack = await f.deliver("payment", _body("payment.authorized", invoice_number="INV-1"))

        assert ack.duplicate is True
        f.orders.apply_payment_authorized.assert_not_awaited()
        f.db.commit.assert_not_awaited()
        f.db.rollback.assert_awaited_once()

    async def test_failed_effect_rolls_back_dedupe_record(self) -> None:
        f = _Fixture()
        f.orders.apply_payment_authorized.side_effect = OrderNotFoundError("INV-404")

        with pytest.raises(OrderNotFoundError):
            await f.deliver("payment", _body("payment.authorized", invoice_number="INV-404"))

        f.repo.record_once.assert_awaited_once()
        f.db.rollback.assert_awaited_once()
        f.db.commit.assert_not_awaited()
