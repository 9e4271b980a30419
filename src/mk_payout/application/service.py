"""PayoutLedgerService: the only writer of payouts, seller balances and withdrawals.

Transaction ownership:
- ``withdraw`` is a user action and owns its transaction (commit/rollback).
- Everything else (credit, release, transfer settlement, refund debit,
  reversal) executes inside the caller's transaction: the order, resolution,
  admin and webhook services commit, so a ledger effect is persisted together
  with the state change that caused it or not at all.
"""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from src.mk_common.enums import (
    WITHDRAWAL_ELIGIBLE_KYC,
    BalanceBucket,
    BalanceEntryType,
    KycStatus,
    OrderPayoutStatus,
    OrderStatus,
    PayoutStatus,
    WithdrawalStatus,
)
from src.mk_common.errors import (
    CollaboratorError,
    InsufficientPayoutBalanceError,
    InternalError,
    KycNotVerifiedError,
    PayoutNotFoundError,
    PayoutNotReleasableError,
    WithdrawalBlockedError,
    WithdrawalNotFoundError,
    WithdrawalStateError,
)
from src.mk_common.id_generator import generate_id
from src.mk_common.money import cents_to_display, validate_amount
from src.mk_order.domain.models import Order
from src.mk_payout.application.schemas import (
    BalanceEntryItem,
    BalanceResponse,
    LedgerResponse,
    PayoutItem,
    PayoutListResponse,
    WithdrawalItem,
    WithdrawalListResponse,
    WithdrawResponse,
    cursor_decode,
    cursor_encode,
)
from src.mk_payout.domain.models import (
    Payout,
    RefundDebit,
    SellerBalance,
    SellerStanding,
    Withdrawal,
)
from src.mk_payout.domain.repository import PayoutRepositoryProtocol
from src.mk_payout.infrastructure.persistence import PayoutRepository
from src.mk_payout.infrastructure.transfer_client import TransferClient, get_transfer_client

logger = logging.getLogger(__name__)


def _kyc_allows_withdrawal(kyc_status: str) -> bool:
    try:
        return KycStatus(kyc_status) in WITHDRAWAL_ELIGIBLE_KYC
    except ValueError:
        return False


class PayoutLedgerService:
    def __init__(
        self,
        repo: PayoutRepositoryProtocol | None = None,
        transfer_client_factory: Callable[[], TransferClient | None] = get_transfer_client,
        hold_days: int | None = None,
    ) -> None:
        self._repo: PayoutRepositoryProtocol = repo or PayoutRepository()
        self._transfer_client_factory = transfer_client_factory
        self._hold_days = settings.PAYOUT_HOLD_DAYS if hold_days is None else hold_days

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def credit_delivered_order(self, db: AsyncSession, order: Order) -> Payout:
        """Credit the seller's pending balance for a delivered order, at most once.

        A second call for the same order (retried webhook, concurrent confirm)
        finds the existing payout and changes nothing.
        """
        if order.status != OrderStatus.DELIVERED or order.payout_amount is None:
            raise InternalError(f"Order {order.id} is not settled; cannot credit payout")
        commission = order.seller_commission or 0

        payout = Payout(
            id=generate_id(),
            order_id=order.id,
            seller_id=order.seller_id,
            gross_amount=order.amount,
            seller_commission=commission,
            buyer_fee=order.buyer_fee,
            net_amount=order.payout_amount,
            status=PayoutStatus.PENDING.value,
        )
        inserted = await self._repo.insert_payout_once(db, payout)
        if inserted is None:
            existing = await self._repo.get_payout_by_order(db, order.id)
            if existing is None:
                raise InternalError(f"Payout conflict for order {order.id} but no payout found")
            logger.info("Payout credit idempotency hit: order=%s payout=%s", order.id, existing.id)
            return existing

        balance = await self._repo.credit_pending(db, order.seller_id, inserted.net_amount)
        await self._repo.add_entry(
            db,
            order.seller_id,
            BalanceEntryType.SALE_CREDIT.value,
            BalanceBucket.PENDING.value,
            inserted.net_amount,
            balance.pending_balance,
            "ORDER",
            order.id,
            f"Sale {order.id}: {order.amount} - commission {commission}",
        )
        await self._repo.set_order_payout_status(db, order.id, OrderPayoutStatus.PENDING.value)
        logger.info(
            "Payout credited: order=%s seller=%s net=%d commission=%d",
            order.id, order.seller_id, inserted.net_amount, commission,
        )
        return inserted

    async def release_payout(self, db: AsyncSession, payout_id: str) -> Payout:
        """Move a pending payout's net amount from pending to available."""
        payout = await self._repo.mark_payout(
            db, payout_id, PayoutStatus.PENDING.value, PayoutStatus.PROCESSED.value
        )
        if payout is None:
            existing = await self._repo.get_payout(db, payout_id)
            if existing is None:
                raise PayoutNotFoundError(payout_id)
            if existing.status == PayoutStatus.PROCESSED.value:
                logger.info("Payout release idempotency hit: payout=%s", payout_id)
                return existing
            raise PayoutNotReleasableError(payout_id, existing.status)

        balance, moved = await self._repo.release_pending(db, payout.seller_id, payout.net_amount)
        if moved > 0:
            await self._repo.add_entry(
                db, payout.seller_id,
                BalanceEntryType.RELEASE_OUT.value, BalanceBucket.PENDING.value,
                -moved, balance.pending_balance,
                "PAYOUT", payout.id, f"Release of payout {payout.id}",
            )
            await self._repo.add_entry(
                db, payout.seller_id,
                BalanceEntryType.RELEASE_IN.value, BalanceBucket.AVAILABLE.value,
                moved, balance.payout_balance,
                "PAYOUT", payout.id, f"Release of payout {payout.id}",
            )
        if moved < payout.net_amount:
            logger.warning(
                "Payout %s released %d of %d; the rest was already taken by refunds",
                payout.id, moved, payout.net_amount,
            )
        await self._repo.set_order_payout_status(db, payout.order_id, OrderPayoutStatus.PAID.value)
        logger.info("Payout released: payout=%s seller=%s moved=%d", payout.id, payout.seller_id, moved)
        return payout

    async def release_matured(
        self, db: AsyncSession, now: datetime, limit: int = 100
    ) -> list[Payout]:
        """Release every pending payout older than the hold period."""
        cutoff = now - timedelta(days=self._hold_days)
        payout_ids = await self._repo.list_matured_payout_ids(db, cutoff, limit)
        return [await self.release_payout(db, payout_id) for payout_id in payout_ids]

    # ------------------------------------------------------------------
    # Compensation
    # ------------------------------------------------------------------

    async def debit_for_refund(
        self,
        db: AsyncSession,
        seller_id: str,
        amount: int,
        ref_type: str,
        ref_id: str,
        entry_type: BalanceEntryType = BalanceEntryType.REFUND_DEBIT,
    ) -> RefundDebit:
        """Debit pending first, then available, never below zero."""
        validate_amount(amount)
        balance, debit = await self._repo.debit_for_refund(db, seller_id, amount)
        if debit.from_pending:
            await self._repo.add_entry(
                db, seller_id, entry_type.value, BalanceBucket.PENDING.value,
                -debit.from_pending, balance.pending_balance,
                ref_type, ref_id, f"{entry_type.value} for {ref_type.lower()} {ref_id}",
            )
        if debit.from_available:
            await self._repo.add_entry(
                db, seller_id, entry_type.value, BalanceBucket.AVAILABLE.value,
                -debit.from_available, balance.payout_balance,
                ref_type, ref_id, f"{entry_type.value} for {ref_type.lower()} {ref_id}",
            )
        if debit.shortfall:
            logger.warning(
                "Refund debit short: seller=%s ref=%s requested=%d debited=%d",
                seller_id, ref_id, amount, debit.debited,
            )
        logger.info("Seller debited: seller=%s ref=%s amount=%d", seller_id, ref_id, debit.debited)
        return debit

    async def reverse_payout(
        self, db: AsyncSession, order_id: str, already_refunded: int = 0
    ) -> RefundDebit | None:
        """Undo the credit of an order that was cancelled or refunded after delivery.

        ``already_refunded`` is what a completed return has already debited,
        so the seller is never charged twice for the same money.
        """
        payout = await self._repo.get_payout_by_order(db, order_id)
        if payout is None or payout.status == PayoutStatus.FAILED.value:
            return None
        if payout.status == PayoutStatus.PENDING.value:
            await self._repo.mark_payout(
                db, payout.id, PayoutStatus.PENDING.value, PayoutStatus.FAILED.value
            )

        amount = max(0, payout.net_amount - already_refunded)
        debit = RefundDebit(0, 0, 0)
        if amount > 0:
            debit = await self.debit_for_refund(
                db, payout.seller_id, amount, "PAYOUT", payout.id,
                entry_type=BalanceEntryType.PAYOUT_REVERSAL,
            )
        await self._repo.set_order_payout_status(db, order_id, OrderPayoutStatus.NONE.value)
        logger.info("Payout reversed: order=%s payout=%s debited=%d", order_id, payout.id, debit.debited)
        return debit

    # ------------------------------------------------------------------
    # Withdrawals
    # ------------------------------------------------------------------

    async def withdraw(
        self, db: AsyncSession, standing: SellerStanding, amount: int
    ) -> WithdrawResponse:
        validate_amount(amount)
        if standing.withdrawal_blocked:
            raise WithdrawalBlockedError(standing.withdrawal_blocked_reason)
        if not _kyc_allows_withdrawal(standing.kyc_status):
            raise KycNotVerifiedError(standing.kyc_status)

        seller_id = standing.seller_id
        try:
            balance = await self._repo.debit_available_to_transfer(db, seller_id, amount)
            if balance is None:
                current = await self._repo.get_balance(db, seller_id)
                raise InsufficientPayoutBalanceError(amount, current.payout_balance if current else 0)

            withdrawal = Withdrawal(
                id=generate_id(),
                seller_id=seller_id,
                amount=amount,
                status=WithdrawalStatus.REQUESTED.value,
            )
            await self._repo.insert_withdrawal(db, withdrawal)
            await self._repo.add_entry(
                db, seller_id,
                BalanceEntryType.WITHDRAWAL.value, BalanceBucket.AVAILABLE.value,
                -amount, balance.payout_balance,
                "WITHDRAWAL", withdrawal.id, f"Withdrawal {withdrawal.id}",
            )
            await self._repo.add_entry(
                db, seller_id,
                BalanceEntryType.WITHDRAWAL_IN_TRANSFER.value, BalanceBucket.IN_TRANSFER.value,
                amount, balance.in_transfer_balance,
                "WITHDRAWAL", withdrawal.id, f"Withdrawal {withdrawal.id} in transfer",
            )
            await db.commit()
        except Exception:
            await db.rollback()
            raise

        logger.info("Withdrawal requested: seller=%s withdrawal=%s amount=%d", seller_id, withdrawal.id, amount)
        await self._hand_to_transfer(withdrawal)
        return WithdrawResponse(
            withdrawal=WithdrawalItem.from_withdrawal(withdrawal),
            balance=BalanceResponse.from_balance(balance),
        )

    async def _hand_to_transfer(self, withdrawal: Withdrawal) -> None:
        """After commit: the funds already sit in in_transfer, the hand-off can be redone."""
        client = self._transfer_client_factory()
        if client is None:
            logger.info("No transfer service configured; withdrawal %s awaits manual processing", withdrawal.id)
            return
        try:
            await client.submit(withdrawal)
        except CollaboratorError as exc:
            logger.error("Transfer hand-off failed for withdrawal %s: %s", withdrawal.id, exc.message)

    async def complete_withdrawal(
        self, db: AsyncSession, withdrawal_id: str, transfer_reference: str | None
    ) -> Withdrawal:
        withdrawal = await self._repo.mark_withdrawal(
            db, withdrawal_id, WithdrawalStatus.COMPLETED.value, transfer_reference, None
        )
        if withdrawal is None:
            return await self._settled_or_raise(db, withdrawal_id, WithdrawalStatus.COMPLETED)

        balance = await self._repo.settle_transfer(
            db, withdrawal.seller_id, withdrawal.amount, returned=False
        )
        if balance is None:
            raise InternalError(f"In-transfer balance short for withdrawal {withdrawal_id}")
        await self._repo.add_entry(
            db, withdrawal.seller_id,
            BalanceEntryType.WITHDRAWAL_COMPLETED.value, BalanceBucket.IN_TRANSFER.value,
            -withdrawal.amount, balance.in_transfer_balance,
            "WITHDRAWAL", withdrawal.id, f"Transfer {transfer_reference or ''} completed".strip(),
        )
        logger.info("Withdrawal completed: withdrawal=%s reference=%s", withdrawal_id, transfer_reference)
        return withdrawal

    async def fail_withdrawal(
        self, db: AsyncSession, withdrawal_id: str, reason: str | None
    ) -> Withdrawal:
        """The transfer bounced: the amount returns to the available balance."""
        withdrawal = await self._repo.mark_withdrawal(
            db, withdrawal_id, WithdrawalStatus.FAILED.value, None, reason
        )
        if withdrawal is None:
            return await self._settled_or_raise(db, withdrawal_id, WithdrawalStatus.FAILED)

        balance = await self._repo.settle_transfer(
            db, withdrawal.seller_id, withdrawal.amount, returned=True
        )
        if balance is None:
            raise InternalError(f"In-transfer balance short for withdrawal {withdrawal_id}")
        await self._repo.add_entry(
            db, withdrawal.seller_id,
            BalanceEntryType.WITHDRAWAL_FAILED.value, BalanceBucket.IN_TRANSFER.value,
            -withdrawal.amount, balance.in_transfer_balance,
            "WITHDRAWAL", withdrawal.id, f"Transfer failed: {reason or 'unknown'}",
        )
        await self._repo.add_entry(
            db, withdrawal.seller_id,
            BalanceEntryType.WITHDRAWAL_RETURNED.value, BalanceBucket.AVAILABLE.value,
            withdrawal.amount, balance.payout_balance,
            "WITHDRAWAL", withdrawal.id, "Failed transfer returned to balance",
        )
        logger.info("Withdrawal failed: withdrawal=%s reason=%s", withdrawal_id, reason)
        return withdrawal

    async def _settled_or_raise(
        self, db: AsyncSession, withdrawal_id: str, target: WithdrawalStatus
    ) -> Withdrawal:
        existing = await self._repo.get_withdrawal(db, withdrawal_id)
        if existing is None:
            raise WithdrawalNotFoundError(withdrawal_id)
        if existing.status == target.value:
            logger.info("Withdrawal %s idempotency hit: already %s", withdrawal_id, target.value)
            return existing
        raise WithdrawalStateError(withdrawal_id, existing.status, target.value)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_balance(self, db: AsyncSession, seller_id: str) -> BalanceResponse:
        balance = await self._repo.get_balance(db, seller_id)
        return BalanceResponse.from_balance(balance or SellerBalance(seller_id, 0, 0, 0))

    async def list_ledger(
        self,
        db: AsyncSession,
        seller_id: str,
        cursor: str | None,
        limit: int,
        entry_type: str | None,
    ) -> LedgerResponse:
        last_id = cursor_decode(cursor)
        cursor_id = last_id if isinstance(last_id, int) else None
        # Fetch limit+1 to detect has_more without a COUNT(*) query
        entries = await self._repo.list_entries(db, seller_id, cursor_id, limit + 1, entry_type)
        has_more = len(entries) > limit
        page = entries[:limit]
        items = [
            BalanceEntryItem(
                id=e.id,
                entry_type=e.entry_type,
                bucket=e.bucket,
                amount_cents=e.amount,
                amount_display=cents_to_display(e.amount, settings.CURRENCY),
                balance_after_cents=e.balance_after,
                reference_type=e.reference_type,
                reference_id=e.reference_id,
                description=e.description,
                created_at=e.created_at.isoformat() if e.created_at else "",
            )
            for e in page
        ]
        next_cursor = cursor_encode(page[-1].id) if has_more and page else None
        return LedgerResponse(items=items, next_cursor=next_cursor, has_more=has_more)

    async def list_payouts(
        self, db: AsyncSession, seller_id: str, limit: int, cursor: str | None
    ) -> PayoutListResponse:
        payouts = await self._repo.list_payouts(db, seller_id, limit + 1, cursor)
        has_more = len(payouts) > limit
        page = payouts[:limit]
        return PayoutListResponse(
            items=[PayoutItem.from_payout(p) for p in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )

    async def list_withdrawals(
        self, db: AsyncSession, seller_id: str, limit: int, cursor: str | None
    ) -> WithdrawalListResponse:
        withdrawals = await self._repo.list_withdrawals(db, seller_id, limit + 1, cursor)
        has_more = len(withdrawals) > limit
        page = withdrawals[:limit]
        return WithdrawalListResponse(
            items=[WithdrawalItem.from_withdrawal(w) for w in page],
            next_cursor=page[-1].id if has_more and page else None,
            has_more=has_more,
        )
