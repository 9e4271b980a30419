"""AdminService: privileged overrides.

Overrides bypass actor guards, never the state machine's own rules, and run
through the same services as user actions. This service owns the
transaction: a storage failure rolls everything back and propagates; there
is no silent retry of a financial mutation.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_admin.application.schemas import InvariantsResponse, ReleasedPayoutsResponse
from src.mk_common.datetime_utils import utc_now
from src.mk_common.enums import DisputeStatus, OrderStatus, ReturnStatus
from src.mk_gateway.user.service import UserService
from src.mk_order.application.schemas import OrderListResponse, OrderResponse
from src.mk_order.application.service import OrderService
from src.mk_payout.application.schemas import PayoutItem
from src.mk_payout.application.service import PayoutLedgerService
from src.mk_payout.domain.invariants import verify_ledger_invariants
from src.mk_resolution.application.schemas import (
    DisputeListResponse,
    DisputeResponse,
    ReturnListResponse,
    ReturnResponse,
)
from src.mk_resolution.application.service import DisputeService, ReturnService

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        orders: OrderService | None = None,
        ledger: PayoutLedgerService | None = None,
        returns: ReturnService | None = None,
        disputes: DisputeService | None = None,
        users: UserService | None = None,
    ) -> None:
        self._ledger = ledger or PayoutLedgerService()
        self._orders = orders or OrderService(ledger=self._ledger)
        self._returns = returns or ReturnService(orders=self._orders, ledger=self._ledger)
        self._disputes = disputes or DisputeService(returns=self._returns, orders=self._orders)
        self._users = users or UserService()

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    async def list_orders(
        self,
        db: AsyncSession,
        status: str | None,
        seller_id: str | None,
        buyer_id: str | None,
        limit: int,
        cursor: str | None,
    ) -> OrderListResponse:
        return await self._orders.list_all(db, status, seller_id, buyer_id, limit, cursor)

    async def override_order_status(
        self,
        db: AsyncSession,
        admin_id: str,
        order_id: str,
        target: OrderStatus,
        carrier: str | None = None,
        tracking_number: str | None = None,
        note: str | None = None,
    ) -> OrderResponse:
        try:
            order = await self._orders.apply_admin_override(
                db, order_id, admin_id, target, carrier, tracking_number, note
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s set order %s to %s", admin_id, order_id, target.value)
        return OrderResponse.from_order(order)

    # ------------------------------------------------------------------
    # Returns / disputes
    # ------------------------------------------------------------------

    async def list_returns(
        self, db: AsyncSession, status: str | None, limit: int, cursor: str | None
    ) -> ReturnListResponse:
        return await self._returns.list_all(db, status, limit, cursor)

    async def update_return_status(
        self,
        db: AsyncSession,
        admin_id: str,
        return_id: str,
        target: ReturnStatus,
        admin_notes: str | None = None,
        refund_amount: int | None = None,
    ) -> ReturnResponse:
        try:
            ret, instruction = await self._returns.apply_admin_status(
                db, return_id, target, admin_notes, refund_amount
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s set return %s to %s", admin_id, return_id, target.value)
        if instruction is not None:
            instruction = await self._returns.send_refund(db, instruction)
        return ReturnResponse.from_return(ret, instruction)

    async def list_disputes(
        self, db: AsyncSession, status: str | None, limit: int, cursor: str | None
    ) -> DisputeListResponse:
        return await self._disputes.list_all(db, status, limit, cursor)

    async def update_dispute_status(
        self,
        db: AsyncSession,
        admin_id: str,
        dispute_id: str,
        target: DisputeStatus,
        resolution: str | None = None,
        admin_notes: str | None = None,
    ) -> DisputeResponse:
        try:
            dispute = await self._disputes.apply_admin_status(
                db, dispute_id, target, resolution, admin_notes
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s set dispute %s to %s", admin_id, dispute_id, target.value)
        return DisputeResponse.from_dispute(dispute)

    async def remedy_dispute(
        self,
        db: AsyncSession,
        admin_id: str,
        dispute_id: str,
        refund_amount: int | None = None,
        admin_notes: str | None = None,
    ) -> ReturnResponse:
        try:
            ret = await self._disputes.remedy_with_return(db, dispute_id, refund_amount, admin_notes)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s remedied dispute %s with return %s", admin_id, dispute_id, ret.id)
        return ReturnResponse.from_return(ret)

    # ------------------------------------------------------------------
    # Payouts / users
    # ------------------------------------------------------------------

    async def release_payout(self, db: AsyncSession, admin_id: str, payout_id: str) -> PayoutItem:
        try:
            payout = await self._ledger.release_payout(db, payout_id)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s released payout %s", admin_id, payout_id)
        return PayoutItem.from_payout(payout)

    async def release_matured(
        self, db: AsyncSession, admin_id: str, limit: int
    ) -> ReleasedPayoutsResponse:
        try:
            payouts = await self._ledger.release_matured(db, utc_now(), limit)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s released %d matured payouts", admin_id, len(payouts))
        return ReleasedPayoutsResponse(released=[p.id for p in payouts], count=len(payouts))

    async def set_withdrawal_block(
        self, db: AsyncSession, admin_id: str, user_id: str, blocked: bool, reason: str | None
    ) -> dict[str, object]:
        try:
            await self._users.set_withdrawal_block(db, user_id, blocked, reason)
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        logger.info("Admin %s set withdrawal block on %s: %s", admin_id, user_id, blocked)
        return {"user_id": user_id, "withdrawal_blocked": blocked, "reason": reason if blocked else None}

    async def check_invariants(self, db: AsyncSession) -> InvariantsResponse:
        violations = await verify_ledger_invariants(db)
        return InvariantsResponse(ok=not violations, violations=violations)
