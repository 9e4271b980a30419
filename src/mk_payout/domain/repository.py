"""Repository Protocol: dependency inversion for testability.

Unit tests inject a mock that conforms to this Protocol.
Infrastructure layer provides the real implementation.
"""

from datetime import datetime
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_payout.domain.models import (
    BalanceEntry,
    Payout,
    RefundDebit,
    SellerBalance,
    Withdrawal,
)


class PayoutRepositoryProtocol(Protocol):
    # --- payouts ---
    async def insert_payout_once(self, db: AsyncSession, payout: Payout) -> Payout | None: ...

    async def get_payout(self, db: AsyncSession, payout_id: str) -> Payout | None: ...

    async def get_payout_by_order(self, db: AsyncSession, order_id: str) -> Payout | None: ...

    async def mark_payout(
        self, db: AsyncSession, payout_id: str, expected: str, status: str
    ) -> Payout | None: ...

    async def list_matured_payout_ids(
        self, db: AsyncSession, created_before: datetime, limit: int
    ) -> list[str]: ...

    async def list_payouts(
        self, db: AsyncSession, seller_id: str, limit: int, cursor_id: str | None
    ) -> list[Payout]: ...

    async def set_order_payout_status(
        self, db: AsyncSession, order_id: str, status: str
    ) -> None: ...

    # --- balances ---
    async def get_balance(self, db: AsyncSession, seller_id: str) -> SellerBalance | None: ...

    async def credit_pending(
        self, db: AsyncSession, seller_id: str, amount: int
    ) -> SellerBalance: ...

    async def release_pending(
        self, db: AsyncSession, seller_id: str, amount: int
    ) -> tuple[SellerBalance, int]: ...

    async def debit_available_to_transfer(
        self, db: AsyncSession, seller_id: str, amount: int
    ) -> SellerBalance | None: ...

    async def settle_transfer(
        self, db: AsyncSession, seller_id: str, amount: int, returned: bool
    ) -> SellerBalance | None: ...

    async def debit_for_refund(
        self, db: AsyncSession, seller_id: str, amount: int
    ) -> tuple[SellerBalance, RefundDebit]: ...

    # --- entries ---
    async def add_entry(
        self,
        db: AsyncSession,
        seller_id: str,
        entry_type: str,
        bucket: str,
        amount: int,
        balance_after: int,
        ref_type: str,
        ref_id: str,
        description: str,
    ) -> BalanceEntry: ...

    async def list_entries(
        self,
        db: AsyncSession,
        seller_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[BalanceEntry]: ...

    # --- withdrawals ---
    async def insert_withdrawal(self, db: AsyncSession, withdrawal: Withdrawal) -> None: ...

    async def get_withdrawal(self, db: AsyncSession, withdrawal_id: str) -> Withdrawal | None: ...

    async def mark_withdrawal(
        self,
        db: AsyncSession,
        withdrawal_id: str,
        status: str,
        transfer_reference: str | None,
        failure_reason: str | None,
    ) -> Withdrawal | None: ...

    async def list_withdrawals(
        self, db: AsyncSession, seller_id: str, limit: int, cursor_id: str | None
    ) -> list[Withdrawal]: ...
