"""ReturnService and DisputeService.

A completed return with a refund amount is the only place this module moves
money: it writes one refund instruction per return, debits the seller through
the payout ledger and annotates the order, all in one transaction. The
processor refund call happens after commit.

Disputes record a conversation and a resolution; they never touch balances.
An admin turns a dispute into money only through ``remedy_with_return``.
"""

import logging
from collections.abc import Callable
from dataclasses import replace

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_checkout.infrastructure.payment_client import PaymentClient, get_payment_client
from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import DisputeStatus, OrderStatus, RefundInstructionStatus, ReturnStatus
from src.mk_common.errors import (
    CollaboratorError,
    DisputeAccessDeniedError,
    DisputeNotFoundError,
    InvalidDisputeTransitionError,
    InvalidReturnTransitionError,
    NotOrderBuyerError,
    OpenReturnExistsError,
    OrderFullyRefundedError,
    ReturnAccessDeniedError,
    ReturnNotEligibleError,
    ReturnNotFoundError,
)
from src.mk_common.id_generator import generate_id
from src.mk_order.application.service import OrderService
from src.mk_order.domain.models import Order
from src.mk_payout.application.service import PayoutLedgerService
from src.mk_resolution.application.schemas import (
    DisputeListResponse,
    DisputeResponse,
    ReturnListResponse,
    ReturnResponse,
)
from src.mk_resolution.domain.models import Dispute, RefundInstruction, Return
from src.mk_resolution.domain.repository import (
    DisputeRepositoryProtocol,
    RefundInstructionRepositoryProtocol,
    ReturnRepositoryProtocol,
)
from src.mk_resolution.domain.transitions import transition_dispute, transition_return
from src.mk_resolution.infrastructure.persistence import (
    DisputeRepository,
    RefundInstructionRepository,
    ReturnRepository,
)

logger = logging.getLogger(__name__)

# Targets the seller of the order may choose; cancel belongs to the buyer.
SELLER_RETURN_TARGETS = frozenset(
    {ReturnStatus.APPROVED, ReturnStatus.REJECTED, ReturnStatus.COMPLETED}
)


class ReturnService:
    def __init__(
        self,
        repo: ReturnRepositoryProtocol | None = None,
        instructions: RefundInstructionRepositoryProtocol | None = None,
        orders: OrderService | None = None,
        ledger: PayoutLedgerService | None = None,
        payment_client_factory: Callable[[], PaymentClient | None] = get_payment_client,
    ) -> None:
        self._repo: ReturnRepositoryProtocol = repo or ReturnRepository()
        self._instructions: RefundInstructionRepositoryProtocol = (
            instructions or RefundInstructionRepository()
        )
        self._ledger = ledger or PayoutLedgerService()
        self._orders = orders or OrderService(ledger=self._ledger)
        self._payment_client_factory = payment_client_factory

    async def load(self, db: AsyncSession, return_id: str) -> Return:
        ret = await self._repo.get(db, return_id)
        if ret is None:
            raise ReturnNotFoundError(return_id)
        return ret

    # ------------------------------------------------------------------
    # Buyer actions
    # ------------------------------------------------------------------

    async def create_return(
        self,
        db: AsyncSession,
        buyer_id: str,
        order_id: str,
        reason: str,
        description: str | None,
    ) -> ReturnResponse:
        try:
            order = await self._orders.load(db, order_id)
            if order.buyer_id != buyer_id:
                raise NotOrderBuyerError(order_id)
            ret = await self._open_return(db, order, reason, description)
            await db.commit()
        except IntegrityError as exc:
            # uq_returns_open_per_order: a concurrent request opened one first
            await db.rollback()
            raise OpenReturnExistsError(order_id) from exc
        except Exception:
            await db.rollback()
            raise
        logger.info("Return %s opened for order %s by buyer %s", ret.id, order_id, buyer_id)
        return ReturnResponse.from_return(ret)

    async def cancel_return(
        self, db: AsyncSession, buyer_id: str, return_id: str
    ) -> ReturnResponse:
        try:
            ret = await self.load(db, return_id)
            if ret.buyer_id != buyer_id:
                raise ReturnAccessDeniedError(return_id)
            ret, _ = await self._apply_status(db, ret, ReturnStatus.CANCELLED)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return ReturnResponse.from_return(ret)

    async def add_tracking(
        self, db: AsyncSession, buyer_id: str, return_id: str, tracking_number: str
    ) -> ReturnResponse:
        try:
            ret = await self.load(db, return_id)
            if ret.buyer_id != buyer_id:
                raise ReturnAccessDeniedError(return_id)
            updated = await self._repo.set_tracking(db, return_id, tracking_number.strip())
            if updated is None:
                raise InvalidReturnTransitionError(return_id, ret.status, "add_tracking")
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Return %s tracking set: %s", return_id, tracking_number)
        return ReturnResponse.from_return(updated)

    # ------------------------------------------------------------------
    # Seller / admin actions
    # ------------------------------------------------------------------

    async def seller_update_status(
        self,
        db: AsyncSession,
        seller_id: str,
        return_id: str,
        target: ReturnStatus,
        admin_notes: str | None = None,
        refund_amount: int | None = None,
    ) -> ReturnResponse:
        try:
            ret = await self.load(db, return_id)
            if ret.seller_id != seller_id:
                raise ReturnAccessDeniedError(return_id)
            if target not in SELLER_RETURN_TARGETS:
                raise InvalidReturnTransitionError(return_id, ret.status, target.value)
            ret, instruction = await self._apply_status(
                db, ret, target, admin_notes, refund_amount
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        if instruction is not None:
            instruction = await self.send_refund(db, instruction)
        return ReturnResponse.from_return(ret, instruction)

    async def apply_admin_status(
        self,
        db: AsyncSession,
        return_id: str,
        target: ReturnStatus,
        admin_notes: str | None = None,
        refund_amount: int | None = None,
    ) -> tuple[Return, RefundInstruction | None]:
        """Any legal transition; runs inside the admin service's transaction."""
        ret = await self.load(db, return_id)
        return await self._apply_status(db, ret, target, admin_notes, refund_amount)

    async def open_for_dispute(
        self,
        db: AsyncSession,
        dispute: Dispute,
        refund_amount: int | None,
        admin_notes: str | None,
    ) -> Return:
        """Create and approve a return for the disputed order (caller's transaction)."""
        order = await self._orders.load(db, dispute.order_id)
        existing = await self._repo.find_open_for_order(db, order.id)
        if existing is not None:
            if existing.status == ReturnStatus.APPROVED.value:
                logger.info("Return %s already approved for order %s; idempotency hit", existing.id, order.id)
                return existing
            ret, _ = await self._apply_status(
                db, existing, ReturnStatus.APPROVED, admin_notes, refund_amount
            )
            return ret

        ret = await self._open_return(
            db, order, f"dispute:{dispute.reason}", dispute.description, dispute_id=dispute.id
        )
        ret, _ = await self._apply_status(db, ret, ReturnStatus.APPROVED, admin_notes, refund_amount)
        logger.info("Return %s opened as remedy for dispute %s", ret.id, dispute.id)
        return ret

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    async def _open_return(
        self,
        db: AsyncSession,
        order: Order,
        reason: str,
        description: str | None,
        dispute_id: str | None = None,
    ) -> Return:
        if order.status != OrderStatus.DELIVERED:
            raise ReturnNotEligibleError(order.id, order.status.value)
        if _refundable(order) <= 0:
            raise OrderFullyRefundedError(order.id)
        if await self._repo.find_open_for_order(db, order.id) is not None:
            raise OpenReturnExistsError(order.id)
        now = utc_now()
        ret = Return(
            id=generate_id(),
            order_id=order.id,
            buyer_id=order.buyer_id,
            seller_id=order.seller_id,
            reason=reason,
            description=description,
            status=ReturnStatus.PENDING.value,
            dispute_id=dispute_id,
            created_at=now,
            updated_at=now,
        )
        await self._repo.insert(db, ret)
        return ret

    async def _apply_status(
        self,
        db: AsyncSession,
        ret: Return,
        target: ReturnStatus,
        admin_notes: str | None = None,
        refund_amount: int | None = None,
    ) -> tuple[Return, RefundInstruction | None]:
        if ret.status == target.value:
            logger.info("Return %s already %s; idempotency hit", ret.id, target.value)
            return ret, await self._instructions.get_by_return(db, ret.id)

        order = await self._orders.load(db, ret.order_id)
        after = transition_return(
            ret, target, utc_now(), _refundable(order), admin_notes, refund_amount
        )
        if not await self._repo.compare_and_set(db, after, ret.status):
            current = await self._repo.get(db, ret.id)
            if current is not None and current.status == target.value:
                logger.info("Return %s concurrently moved to %s; idempotency hit", ret.id, target.value)
                return current, await self._instructions.get_by_return(db, ret.id)
            raise InvalidReturnTransitionError(
                ret.id, current.status if current else ret.status, target.value
            )

        instruction = None
        if target == ReturnStatus.COMPLETED and after.refund_amount:
            instruction = await self._issue_refund(db, after)
        logger.info("Return %s: %s -> %s", ret.id, ret.status, after.status)
        return after, instruction

    async def _issue_refund(self, db: AsyncSession, ret: Return) -> RefundInstruction:
        """One instruction per return; the seller debit rides on the same insert."""
        amount = ret.refund_amount or 0
        instruction = await self._instructions.insert_once(
            db,
            RefundInstruction(
                id=generate_id(),
                return_id=ret.id,
                order_id=ret.order_id,
                buyer_id=ret.buyer_id,
                seller_id=ret.seller_id,
                amount=amount,
            ),
        )
        if instruction is None:
            existing = await self._instructions.get_by_return(db, ret.id)
            logger.info("Refund instruction for return %s exists; idempotency hit", ret.id)
            return existing

        debit = await self._ledger.debit_for_refund(db, ret.seller_id, amount, "RETURN", ret.id)
        await self._instructions.record_debit(db, instruction.id, debit.debited, debit.shortfall)
        await self._orders.annotate_refund(db, ret.order_id, amount)
        logger.info(
            "Refund instruction %s: refund %d to buyer %s, seller %s debited %d (shortfall %d)",
            instruction.id, amount, ret.buyer_id, ret.seller_id, debit.debited, debit.shortfall,
        )
        return replace(instruction, seller_debited=debit.debited, shortfall=debit.shortfall)

    async def send_refund(
        self, db: AsyncSession, instruction: RefundInstruction
    ) -> RefundInstruction:
        """After commit: ask the processor to pay the buyer back.

        A failure leaves the instruction pending for manual handling.
        """
        if instruction.status == RefundInstructionStatus.SENT.value:
            return instruction
        client = self._payment_client_factory()
        if client is None:
            logger.info("No payment processor configured; refund %s awaits manual processing", instruction.id)
            return instruction
        try:
            await client.refund(instruction.order_id, instruction.amount, instruction.id)
        except CollaboratorError as exc:
            logger.error("Refund %s not sent: %s", instruction.id, exc.message)
            return instruction
        try:
            await self._instructions.mark_sent(db, instruction.id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return replace(instruction, status=RefundInstructionStatus.SENT.value)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_return(self, db: AsyncSession, return_id: str, user_id: str) -> ReturnResponse:
        ret = await self.load(db, return_id)
        if user_id not in (ret.buyer_id, ret.seller_id):
            raise ReturnAccessDeniedError(return_id)
        return ReturnResponse.from_return(ret, await self._instructions.get_by_return(db, ret.id))

    async def list_returns(
        self,
        db: AsyncSession,
        user_id: str,
        role: str,
        status: str | None,
        limit: int,
        cursor: str | None,
    ) -> ReturnListResponse:
        buyer_id = user_id if role == "buyer" else None
        seller_id = user_id if role == "seller" else None
        rows = await self._repo.list(db, buyer_id, seller_id, status, limit + 1, cursor)
        return _return_page(rows, limit)

    async def list_all(
        self, db: AsyncSession, status: str | None, limit: int, cursor: str | None
    ) -> ReturnListResponse:
        rows = await self._repo.list(db, None, None, status, limit + 1, cursor)
        return _return_page(rows, limit)


class DisputeService:
    def __init__(
        self,
        repo: DisputeRepositoryProtocol | None = None,
        returns: ReturnService | None = None,
        orders: OrderService | None = None,
    ) -> None:
        self._repo: DisputeRepositoryProtocol = repo or DisputeRepository()
        self._orders = orders or OrderService()
        self._returns = returns or ReturnService(orders=self._orders)

    async def load(self, db: AsyncSession, dispute_id: str) -> Dispute:
        dispute = await self._repo.get(db, dispute_id)
        if dispute is None:
            raise DisputeNotFoundError(dispute_id)
        return dispute

    async def create_dispute(
        self,
        db: AsyncSession,
        user_id: str,
        order_id: str,
        reason: str,
        description: str | None,
    ) -> DisputeResponse:
        try:
            order = await self._orders.load(db, order_id)
            if user_id == order.buyer_id:
                reported = order.seller_id
            elif user_id == order.seller_id:
                reported = order.buyer_id
            else:
                raise DisputeAccessDeniedError(order_id)
            now = utc_now()
            dispute = Dispute(
                id=generate_id(),
                order_id=order_id,
                reporter_id=user_id,
                reported_user_id=reported,
                reason=reason,
                description=description,
                status=DisputeStatus.PENDING.value,
                created_at=now,
                updated_at=now,
            )
            await self._repo.insert(db, dispute)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Dispute %s opened on order %s by %s", dispute.id, order_id, user_id)
        return DisputeResponse.from_dispute(dispute)

    async def apply_admin_status(
        self,
        db: AsyncSession,
        dispute_id: str,
        target: DisputeStatus,
        resolution: str | None = None,
        admin_notes: str | None = None,
    ) -> Dispute:
        dispute = await self.load(db, dispute_id)
        if dispute.status == target.value:
            logger.info("Dispute %s already %s; idempotency hit", dispute_id, target.value)
            return dispute
        after = transition_dispute(dispute, target, utc_now(), resolution, admin_notes)
        if not await self._repo.compare_and_set(db, after, dispute.status):
            current = await self._repo.get(db, dispute_id)
            if current is not None and current.status == target.value:
                return current
            raise InvalidDisputeTransitionError(
                dispute_id, current.status if current else dispute.status, target.value
            )
        logger.info("Dispute %s: %s -> %s", dispute_id, dispute.status, after.status)
        return after

    async def remedy_with_return(
        self,
        db: AsyncSession,
        dispute_id: str,
        refund_amount: int | None = None,
        admin_notes: str | None = None,
    ) -> Return:
        dispute = await self.load(db, dispute_id)
        return await self._returns.open_for_dispute(db, dispute, refund_amount, admin_notes)

    async def list_disputes(
        self,
        db: AsyncSession,
        user_id: str,
        status: str | None,
        limit: int,
        cursor: str | None,
    ) -> DisputeListResponse:
        rows = await self._repo.list(db, user_id, status, limit + 1, cursor)
        return _dispute_page(rows, limit)

    async def list_all(
        self, db: AsyncSession, status: str | None, limit: int, cursor: str | None
    ) -> DisputeListResponse:
        rows = await self._repo.list(db, None, status, limit + 1, cursor)
        return _dispute_page(rows, limit)


def _refundable(order: Order) -> int:
    return order.amount - (order.refund_amount or 0)


def _return_page(rows: list[Return], limit: int) -> ReturnListResponse:
    has_more = len(rows) > limit
    page = rows[:limit]
    return ReturnListResponse(
        items=[ReturnResponse.from_return(r) for r in page],
        next_cursor=page[-1].id if has_more and page else None,
        has_more=has_more,
    )


def _dispute_page(rows: list[Dispute], limit: int) -> DisputeListResponse:
    has_more = len(rows) > limit
    page = rows[:limit]
    return DisputeListResponse(
        items=[DisputeResponse.from_dispute(d) for d in page],
        next_cursor=page[-1].id if has_more and page else None,
        has_more=has_more,
    )
