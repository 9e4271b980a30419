"""Unit tests for ReturnService and DisputeService with mock collaborators."""

from dataclasses import replace
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from src.mk_common.enums import DisputeStatus, ReturnStatus, ShippingMethod
from src.mk_common.errors import (
    CollaboratorError,
    DisputeAccessDeniedError,
    InvalidReturnTransitionError,
    NotOrderBuyerError,
    OpenReturnExistsError,
    OrderFullyRefundedError,
    RefundExceedsOrderError,
    ReturnAccessDeniedError,
    ReturnNotEligibleError,
)
from src.mk_order.domain.models import CardPayment, Delivered, Order, OrderState, Paid
from src.mk_payout.domain.models import RefundDebit
from src.mk_resolution.application.service import DisputeService, ReturnService
from src.mk_resolution.domain.models import Dispute, RefundInstruction, Return

NOW = datetime.now(UTC)


def _order(
    state: OrderState | None = None, amount: int = 8000, refund_amount: int | None = None
) -> Order:
    return Order(
        id="ord-1",
        invoice_number="INV-1",
        buyer_id="buyer-1",
        seller_id="seller-1",
        listing_id="lst-1",
        amount=amount,
        shipping_cost=1599,
        buyer_fee=0,
        payment=CardPayment(shipping_method=ShippingMethod.STANDARD),
        state=state or Delivered(carrier="dhl", tracking_number="TRK", delivered_at=NOW),
        seller_commission=800,
        payout_amount=7200,
        refund_amount=refund_amount,
    )


def _return(status: str = "pending", refund_amount: int | None = None) -> Return:
    return Return(
        "ret-1", "ord-1", "buyer-1", "seller-1", "damaged", None, status,
        refund_amount=refund_amount,
    )


def _instruction(status: str = "pending") -> RefundInstruction:
    return RefundInstruction("rfi-1", "ret-1", "ord-1", "buyer-1", "seller-1", 8000, status=status)


class _Fixture:
    def __init__(self, order: Order | None = None, client: object = None) -> None:
        self.repo = AsyncMock()
        self.repo.find_open_for_order.return_value = None
        self.repo.compare_and_set.return_value = True
        self.instructions = AsyncMock()
        self.instructions.get_by_return.return_value = None
        self.orders = AsyncMock()
        self.orders.load.return_value = order or _order()
        self.ledger = AsyncMock()
        self.client = client
        self.service = ReturnService(
            repo=self.repo,
            instructions=self.instructions,
            orders=self.orders,
            ledger=self.ledger,
            payment_client_factory=lambda: self.client,
        )


class TestCreateReturn:
    async def test_opens_pending_return(self) -> None:
        f = _Fixture()
        db = AsyncMock()

        resp = await f.service.create_return(db, "buyer-1", "ord-1", "damaged", "cracked screen")

        assert resp.status == "pending"
        assert resp.seller_id == "seller-1"
        f.repo.insert.assert_awaited_once()
        db.commit.assert_awaited_once()

    async def test_only_buyer(self) -> None:
        f = _Fixture()
        with pytest.raises(NotOrderBuyerError):
            await f.service.create_return(AsyncMock(), "seller-1", "ord-1", "damaged", None)

    async def test_order_must_be_delivered(self) -> None:
        f = _Fixture(order=_order(Paid(paid_at=NOW)))
        with pytest.raises(ReturnNotEligibleError):
            await f.service.create_return(AsyncMock(), "buyer-1", "ord-1", "damaged", None)

    async def test_one_open_return_per_order(self) -> None:
        f = _Fixture()
        f.repo.find_open_for_order.return_value = _return()
        with pytest.raises(OpenReturnExistsError):
            await f.service.create_return(AsyncMock(), "buyer-1", "ord-1", "damaged", None)

    async def test_fully_refunded_order_cannot_reopen(self) -> None:
        f = _Fixture(order=_order(refund_amount=8000))
        db = AsyncMock()

        with pytest.raises(OrderFullyRefundedError):
            await f.service.create_return(db, "buyer-1", "ord-1", "damaged", None)
        f.repo.insert.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_partially_refunded_order_can_reopen(self) -> None:
        f = _Fixture(order=_order(refund_amount=3000))

        resp = await f.service.create_return(AsyncMock(), "buyer-1", "ord-1", "damaged", None)

        assert resp.status == "pending"

    async def test_concurrent_insert_maps_to_open_return(self) -> None:
        f = _Fixture()
        f.repo.insert.side_effect = IntegrityError("INSERT", {}, Exception("uq_returns_open_per_order"))
        db = AsyncMock()

        with pytest.raises(OpenReturnExistsError):
            await f.service.create_return(db, "buyer-1", "ord-1", "damaged", None)
        db.rollback.assert_awaited_once()


class TestSellerUpdate:
    async def test_approve(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return()

        resp = await f.service.seller_update_status(
            AsyncMock(), "seller-1", "ret-1", ReturnStatus.APPROVED
        )

        assert resp.status == "approved"
        f.ledger.debit_for_refund.assert_not_awaited()

    async def test_complete_with_refund_debits_seller_once(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return("approved")
        f.instructions.insert_once.side_effect = lambda db, instr: instr
        f.ledger.debit_for_refund.return_value = RefundDebit(8000, 8000, 0)
        db = AsyncMock()

        resp = await f.service.seller_update_status(
            db, "seller-1", "ret-1", ReturnStatus.COMPLETED, refund_amount=8000
        )

        assert resp.status == "completed"
        assert resp.refund_amount_cents == 8000
        assert resp.refund_instruction is not None
        assert resp.refund_instruction.seller_debited_cents == 8000
        assert resp.refund_instruction.shortfall_cents == 0
        f.ledger.debit_for_refund.assert_awaited_once_with(db, "seller-1", 8000, "RETURN", "ret-1")
        f.orders.annotate_refund.assert_awaited_once_with(db, "ord-1", 8000)
        f.instructions.record_debit.assert_awaited_once()
        db.commit.assert_awaited_once()

    async def test_second_return_cannot_refund_past_order_amount(self) -> None:
        f = _Fixture(order=_order(refund_amount=8000))
        f.repo.get.return_value = replace(_return("approved"), id="ret-2")
        db = AsyncMock()

        with pytest.raises(RefundExceedsOrderError):
            await f.service.seller_update_status(
                db, "seller-1", "ret-2", ReturnStatus.COMPLETED, refund_amount=8000
            )

        f.repo.compare_and_set.assert_not_awaited()
        f.instructions.insert_once.assert_not_awaited()
        f.ledger.debit_for_refund.assert_not_awaited()
        db.rollback.assert_awaited_once()

    async def test_second_return_refunds_the_remainder(self) -> None:
        f = _Fixture(order=_order(refund_amount=3000))
        f.repo.get.return_value = replace(_return("approved"), id="ret-2")
        f.instructions.insert_once.side_effect = lambda db, instr: instr
        f.ledger.debit_for_refund.return_value = RefundDebit(5000, 5000, 0)
        db = AsyncMock()

        resp = await f.service.seller_update_status(
            db, "seller-1", "ret-2", ReturnStatus.COMPLETED, refund_amount=5000
        )

        assert resp.refund_amount_cents == 5000
        f.ledger.debit_for_refund.assert_awaited_once_with(db, "seller-1", 5000, "RETURN", "ret-2")
        f.orders.annotate_refund.assert_awaited_once_with(db, "ord-1", 5000)

    async def test_repeated_completion_does_not_debit_again(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return("completed", refund_amount=8000)
        f.instructions.get_by_return.return_value = _instruction("sent")

        resp = await f.service.seller_update_status(
            AsyncMock(), "seller-1", "ret-1", ReturnStatus.COMPLETED, refund_amount=8000
        )

        assert resp.refund_instruction is not None
        assert resp.refund_instruction.status == "sent"
        f.repo.compare_and_set.assert_not_awaited()
        f.ledger.debit_for_refund.assert_not_awaited()

    async def test_existing_instruction_is_reused(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return("approved")
        f.instructions.insert_once.return_value = None
        f.instructions.get_by_return.return_value = _instruction()

        await f.service.seller_update_status(
            AsyncMock(), "seller-1", "ret-1", ReturnStatus.COMPLETED, refund_amount=8000
        )

        f.ledger.debit_for_refund.assert_not_awaited()

    async def test_refund_sent_after_commit(self) -> None:
        client = AsyncMock()
        f = _Fixture(client=client)
        f.repo.get.return_value = _return("approved")
        f.instructions.insert_once.side_effect = lambda db, instr: instr
        f.ledger.debit_for_refund.return_value = RefundDebit(8000, 8000, 0)
        db = AsyncMock()

        resp = await f.service.seller_update_status(
            db, "seller-1", "ret-1", ReturnStatus.COMPLETED, refund_amount=8000
        )

        client.refund.assert_awaited_once()
        f.instructions.mark_sent.assert_awaited_once()
        assert resp.refund_instruction is not None
        assert resp.refund_instruction.status == "sent"
        assert db.commit.await_count == 2

    async def test_refund_send_failure_leaves_pending(self) -> None:
        client = AsyncMock()
        client.refund.side_effect = CollaboratorError("processor down")
        f = _Fixture(client=client)

        result = await f.service.send_refund(AsyncMock(), _instruction())

        assert result.status == "pending"
        f.instructions.mark_sent.assert_not_awaited()

    async def test_seller_cannot_cancel(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return()
        with pytest.raises(InvalidReturnTransitionError):
            await f.service.seller_update_status(
                AsyncMock(), "seller-1", "ret-1", ReturnStatus.CANCELLED
            )

    async def test_other_seller_denied(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return()
        with pytest.raises(ReturnAccessDeniedError):
            await f.service.seller_update_status(
                AsyncMock(), "seller-2", "ret-1", ReturnStatus.APPROVED
            )

    async def test_lost_race_to_other_status(self) -> None:
        f = _Fixture()
        f.repo.get.side_effect = [_return(), _return("cancelled")]
        f.repo.compare_and_set.return_value = False
        db = AsyncMock()

        with pytest.raises(InvalidReturnTransitionError):
            await f.service.seller_update_status(db, "seller-1", "ret-1", ReturnStatus.APPROVED)
        db.rollback.assert_awaited_once()


class TestBuyerActions:
    async def test_cancel(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return()
        resp = await f.service.cancel_return(AsyncMock(), "buyer-1", "ret-1")
        assert resp.status == "cancelled"

    async def test_tracking_on_closed_return(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return("rejected")
        f.repo.set_tracking.return_value = None
        with pytest.raises(InvalidReturnTransitionError):
            await f.service.add_tracking(AsyncMock(), "buyer-1", "ret-1", "RT123")

    async def test_tracking(self) -> None:
        f = _Fixture()
        f.repo.get.return_value = _return("approved")
        f.repo.set_tracking.return_value = replace(
            _return("approved"), return_tracking_number="RT123"
        )
        resp = await f.service.add_tracking(AsyncMock(), "buyer-1", "ret-1", " RT123 ")
        assert resp.return_tracking_number == "RT123"
        assert f.repo.set_tracking.await_args.args[2] == "RT123"


class TestDisputes:
    def _service(self, orders: AsyncMock, returns: AsyncMock | None = None) -> tuple[DisputeService, AsyncMock]:
        repo = AsyncMock()
        repo.compare_and_set.return_value = True
        return DisputeService(repo=repo, returns=returns or AsyncMock(), orders=orders), repo

    async def test_buyer_reports_seller(self) -> None:
        orders = AsyncMock()
        orders.load.return_value = _order()
        svc, repo = self._service(orders)

        resp = await svc.create_dispute(AsyncMock(), "buyer-1", "ord-1", "not_received", "nothing")

        assert resp.reported_user_id == "seller-1"
        assert resp.status == "pending"

    async def test_seller_reports_buyer(self) -> None:
        orders = AsyncMock()
        orders.load.return_value = _order()
        svc, _ = self._service(orders)

        resp = await svc.create_dispute(AsyncMock(), "seller-1", "ord-1", "abuse", None)

        assert resp.reported_user_id == "buyer-1"

    async def test_stranger_denied(self) -> None:
        orders = AsyncMock()
        orders.load.return_value = _order()
        svc, _ = self._service(orders)
        db = AsyncMock()

        with pytest.raises(DisputeAccessDeniedError):
            await svc.create_dispute(db, "stranger", "ord-1", "abuse", None)
        db.rollback.assert_awaited_once()

    async def test_status_same_target_is_noop(self) -> None:
        svc, repo = self._service(AsyncMock())
        repo.get.return_value = Dispute("dsp-1", "ord-1", "b", "s", "r", None, "investigating")

        result = await svc.apply_admin_status(MagicMock(), "dsp-1", DisputeStatus.INVESTIGATING)

        assert result.status == "investigating"
        repo.compare_and_set.assert_not_awaited()

    async def test_resolve(self) -> None:
        svc, repo = self._service(AsyncMock())
        repo.get.return_value = Dispute("dsp-1", "ord-1", "b", "s", "r", None, "investigating")

        result = await svc.apply_admin_status(
            MagicMock(), "dsp-1", DisputeStatus.RESOLVED, resolution="refunded buyer"
        )

        assert result.resolution == "refunded buyer"

    async def test_remedy_delegates_to_returns(self) -> None:
        returns = AsyncMock()
        svc, repo = self._service(AsyncMock(), returns)
        dispute = Dispute("dsp-1", "ord-1", "b", "s", "r", None, "investigating")
        repo.get.return_value = dispute
        db = MagicMock()

        await svc.remedy_with_return(db, "dsp-1", 5000, "partial")

        returns.open_for_dispute.assert_awaited_once_with(db, dispute, 5000, "partial")


class TestOpenForDispute:
    async def test_creates_and_approves(self) -> None:
        f = _Fixture()
        dispute = Dispute("dsp-1", "ord-1", "buyer-1", "seller-1", "not_as_described", "x", "investigating")

        ret = await f.service.open_for_dispute(AsyncMock(), dispute, 5000, "remedy")

        assert ret.status == "approved"
        assert ret.dispute_id == "dsp-1"
        assert ret.reason == "dispute:not_as_described"
        assert ret.refund_amount == 5000

    async def test_existing_approved_return_is_reused(self) -> None:
        f = _Fixture()
        f.repo.find_open_for_order.return_value = _return("approved")
        dispute = Dispute("dsp-1", "ord-1", "buyer-1", "seller-1", "r", None, "investigating")

        ret = await f.service.open_for_dispute(AsyncMock(), dispute, None, None)

        assert ret.id == "ret-1"
        f.repo.insert.assert_not_awaited()
        f.repo.compare_and_set.assert_not_awaited()
