"""PayoutRepository: concrete implementation of PayoutRepositoryProtocol.

All balance-mutating operations are a single PostgreSQL statement
(UPDATE ... RETURNING, or a CTE that locks the row it reads). A result of
0 rows means a business constraint was violated (insufficient balance).
No balance is ever read in one round trip and written back in another.

Transaction ownership: the CALLER (application service) commits.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_payout.domain.models import (
    BalanceEntry,
    Payout,
    RefundDebit,
    SellerBalance,
    Withdrawal,
)

_BALANCE_COLUMNS = "seller_id, pending_balance, payout_balance, in_transfer_balance, version, updated_at"

_PAYOUT_COLUMNS = """
    id, order_id, seller_id, gross_amount, seller_commission, buyer_fee,
    net_amount, status, created_at, processed_at
"""

_WITHDRAWAL_COLUMNS = """
    id, seller_id, amount, status, transfer_reference, failure_reason,
    created_at, completed_at
"""

# ---------------------------------------------------------------------------
# SQL: payouts
# ---------------------------------------------------------------------------

_INSERT_PAYOUT_SQL = text(f"""
    INSERT INTO payouts (id, order_id, seller_id, gross_amount, seller_commission,
                         buyer_fee, net_amount, status)
    VALUES (:id, :order_id, :seller_id, :gross_amount, :seller_commission,
            :buyer_fee, :net_amount, 'pending')
    ON CONFLICT (order_id) DO NOTHING
    RETURNING {_PAYOUT_COLUMNS}
""")

_GET_PAYOUT_SQL = text(f"SELECT {_PAYOUT_COLUMNS} FROM payouts WHERE id = :id")

_GET_PAYOUT_BY_ORDER_SQL = text(f"SELECT {_PAYOUT_COLUMNS} FROM payouts WHERE order_id = :order_id")

_MARK_PAYOUT_SQL = text(f"""
    UPDATE payouts
    SET status = :status,
        processed_at = CASE WHEN CAST(:status AS TEXT) = 'processed' THEN NOW() ELSE processed_at END
    WHERE id = :id AND status = :expected
    RETURNING {_PAYOUT_COLUMNS}
""")

_LIST_MATURED_SQL = text("""
    SELECT id FROM payouts
    WHERE status = 'pending' AND created_at <= :created_before
    ORDER BY created_at
    LIMIT :limit
""")

_LIST_PAYOUTS_SQL = text(f"""
    SELECT {_PAYOUT_COLUMNS}
    FROM payouts
    WHERE seller_id = :seller_id
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

_SET_ORDER_PAYOUT_STATUS_SQL = text("""
    UPDATE orders SET payout_status = :status, updated_at = NOW() WHERE id = :order_id
""")

# ---------------------------------------------------------------------------
# SQL: seller_balances mutations
# ---------------------------------------------------------------------------

_GET_BALANCE_SQL = text(f"SELECT {_BALANCE_COLUMNS} FROM seller_balances WHERE seller_id = :seller_id")

_CREDIT_PENDING_SQL = text(f"""
    INSERT INTO seller_balances (seller_id, pending_balance)
    VALUES (:seller_id, :amount)
    ON CONFLICT (seller_id) DO UPDATE
        SET pending_balance = seller_balances.pending_balance + EXCLUDED.pending_balance,
            version = seller_balances.version + 1,
            updated_at = NOW()
    RETURNING {_BALANCE_COLUMNS}
""")

# Moves up to :amount from pending to available. A refund may already have
# taken part of the pending credit, so the move is capped at what is there.
_RELEASE_PENDING_SQL = text("""
    WITH cur AS (
        SELECT seller_id, LEAST(pending_balance, :amount) AS moved
        FROM seller_balances
        WHERE seller_id = :seller_id
        FOR UPDATE
    )
    UPDATE seller_balances b
    SET pending_balance = b.pending_balance - cur.moved,
        payout_balance  = b.payout_balance  + cur.moved,
        version = b.version + 1,
        updated_at = NOW()
    FROM cur
    WHERE b.seller_id = cur.seller_id
    RETURNING b.seller_id, b.pending_balance, b.payout_balance, b.in_transfer_balance,
              b.version, b.updated_at, cur.moved
""")

_DEBIT_TO_TRANSFER_SQL = text(f"""
    UPDATE seller_balances
    SET payout_balance      = payout_balance      - :amount,
        in_transfer_balance = in_transfer_balance + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE seller_id = :seller_id AND payout_balance >= :amount
    RETURNING {_BALANCE_COLUMNS}
""")

_TRANSFER_COMPLETED_SQL = text(f"""
    UPDATE seller_balances
    SET in_transfer_balance = in_transfer_balance - :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE seller_id = :seller_id AND in_transfer_balance >= :amount
    RETURNING {_BALANCE_COLUMNS}
""")

_TRANSFER_RETURNED_SQL = text(f"""
    UPDATE seller_balances
    SET in_transfer_balance = in_transfer_balance - :amount,
        payout_balance      = payout_balance      + :amount,
        version = version + 1,
        updated_at = NOW()
    WHERE seller_id = :seller_id AND in_transfer_balance >= :amount
    RETURNING {_BALANCE_COLUMNS}
""")

# Pending first, then available; never below zero. What cannot be covered
# is the shortfall, reported back to the caller.
_DEBIT_FOR_REFUND_SQL = text("""
    WITH cur AS (
        SELECT seller_id,
               LEAST(pending_balance, :amount) AS from_pending,
               LEAST(payout_balance, :amount - LEAST(pending_balance, :amount)) AS from_available
        FROM seller_balances
        WHERE seller_id = :seller_id
        FOR UPDATE
    )
    UPDATE seller_balances b
    SET pending_balance = b.pending_balance - cur.from_pending,
        payout_balance  = b.payout_balance  - cur.from_available,
        version = b.version + 1,
        updated_at = NOW()
    FROM cur
    WHERE b.seller_id = cur.seller_id
    RETURNING b.seller_id, b.pending_balance, b.payout_balance, b.in_transfer_balance,
              b.version, b.updated_at, cur.from_pending, cur.from_available
""")

# ---------------------------------------------------------------------------
# SQL: balance_entries
# ---------------------------------------------------------------------------

_INSERT_ENTRY_SQL = text("""
    INSERT INTO balance_entries
        (seller_id, entry_type, bucket, amount, balance_after,
         reference_type, reference_id, description)
    VALUES
        (:seller_id, :entry_type, :bucket, :amount, :balance_after,
         :reference_type, :reference_id, :description)
    RETURNING id, seller_id, entry_type, bucket, amount, balance_after,
              reference_type, reference_id, description, created_at
""")

_LIST_ENTRIES_SQL = text("""
    SELECT id, seller_id, entry_type, bucket, amount, balance_after,
           reference_type, reference_id, description, created_at
    FROM balance_entries
    WHERE seller_id = :seller_id
      AND (CAST(:cursor_id AS BIGINT) IS NULL OR id < :cursor_id)
      AND (CAST(:entry_type AS TEXT) IS NULL OR entry_type = :entry_type)
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: withdrawals
# ---------------------------------------------------------------------------

_INSERT_WITHDRAWAL_SQL = text("""
    INSERT INTO withdrawals (id, seller_id, amount, status)
    VALUES (:id, :seller_id, :amount, 'requested')
""")

_GET_WITHDRAWAL_SQL = text(f"SELECT {_WITHDRAWAL_COLUMNS} FROM withdrawals WHERE id = :id")

_MARK_WITHDRAWAL_SQL = text(f"""
    UPDATE withdrawals
    SET status = :status,
        transfer_reference = COALESCE(:transfer_reference, transfer_reference),
        failure_reason = :failure_reason,
        completed_at = NOW()
    WHERE id = :id AND status = 'requested'
    RETURNING {_WITHDRAWAL_COLUMNS}
""")

_LIST_WITHDRAWALS_SQL = text(f"""
    SELECT {_WITHDRAWAL_COLUMNS}
    FROM withdrawals
    WHERE seller_id = :seller_id
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_balance(row: Any) -> SellerBalance:
    return SellerBalance(
        seller_id=str(row.seller_id),
        pending_balance=row.pending_balance,
        payout_balance=row.payout_balance,
        in_transfer_balance=row.in_transfer_balance,
        version=row.version,
        updated_at=row.updated_at,
    )


def _row_to_payout(row: Any) -> Payout:
    return Payout(
        id=row.id,
        order_id=row.order_id,
        seller_id=str(row.seller_id),
        gross_amount=row.gross_amount,
        seller_commission=row.seller_commission,
        buyer_fee=row.buyer_fee,
        net_amount=row.net_amount,
        status=row.status,
        created_at=row.created_at,
        processed_at=row.processed_at,
    )


def _row_to_entry(row: Any) -> BalanceEntry:
    return BalanceEntry(
        id=row.id,
        seller_id=str(row.seller_id),
        entry_type=row.entry_type,
        bucket=row.bucket,
        amount=row.amount,
        balance_after=row.balance_after,
        reference_type=row.reference_type,
        reference_id=row.reference_id,
        description=row.description,
        created_at=row.created_at,
    )


def _row_to_withdrawal(row: Any) -> Withdrawal:
    return Withdrawal(
        id=row.id,
        seller_id=str(row.seller_id),
        amount=row.amount,
        status=row.status,
        transfer_reference=row.transfer_reference,
        failure_reason=row.failure_reason,
        created_at=row.created_at,
        completed_at=row.completed_at,
    )


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PayoutRepository:
    # --- payouts ---

    async def insert_payout_once(self, db: AsyncSession, payout: Payout) -> Payout | None:
        """Insert the payout unless the order already has one; None on conflict."""
        result = await db.execute(
            _INSERT_PAYOUT_SQL,
            {
                "id": payout.id,
                "order_id": payout.order_id,
                "seller_id": payout.seller_id,
                "gross_amount": payout.gross_amount,
                "seller_commission": payout.seller_commission,
                "buyer_fee": payout.buyer_fee,
                "net_amount": payout.net_amount,
            },
        )
        row = result.fetchone()
        return _row_to_payout(row) if row else None

    async def get_payout(self, db: AsyncSession, payout_id: str) -> Payout | None:
        result = await db.execute(_GET_PAYOUT_SQL, {"id": payout_id})
        row = result.fetchone()
        return _row_to_payout(row) if row else None

    async def get_payout_by_order(self, db: AsyncSession, order_id: str) -> Payout | None:
        result = await db.execute(_GET_PAYOUT_BY_ORDER_SQL, {"order_id": order_id})
        row = result.fetchone()
        return _row_to_payout(row) if row else None

    async def mark_payout(
        self, db: AsyncSession, payout_id: str, expected: str, status: str
    ) -> Payout | None:
        result = await db.execute(
            _MARK_PAYOUT_SQL, {"id": payout_id, "expected": expected, "status": status}
        )
        row = result.fetchone()
        return _row_to_payout(row) if row else None

    async def list_matured_payout_ids(
        self, db: AsyncSession, created_before: datetime, limit: int
    ) -> list[str]:
        result = await db.execute(
            _LIST_MATURED_SQL, {"created_before": created_before, "limit": limit}
        )
        return [row.id for row in result.fetchall()]

    async def list_payouts(
        self, db: AsyncSession, seller_id: str, limit: int, cursor_id: str | None
    ) -> list[Payout]:
        result = await db.execute(
            _LIST_PAYOUTS_SQL,
            {"seller_id": seller_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_payout(row) for row in result.fetchall()]

    async def set_order_payout_status(
        self, db: AsyncSession, order_id: str, status: str
    ) -> None:
        await db.execute(_SET_ORDER_PAYOUT_STATUS_SQL, {"order_id": order_id, "status": status})

    # --- balances ---

    async def get_balance(self, db: AsyncSession, seller_id: str) -> SellerBalance | None:
        result = await db.execute(_GET_BALANCE_SQL, {"seller_id": seller_id})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def credit_pending(
        self, db: AsyncSession, seller_id: str, amount: int
    ) -> SellerBalance:
        result = await db.execute(_CREDIT_PENDING_SQL, {"seller_id": seller_id, "amount": amount})
        return _row_to_balance(result.fetchone())

    async def release_pending(
        self, db: AsyncSession, seller_id: str, amount: int
    ) -> tuple[SellerBalance, int]:
        """Returns (balance after, amount actually moved)."""
        result = await db.execute(
            _RELEASE_PENDING_SQL, {"seller_id": seller_id, "amount": amount}
        )
        row = result.fetchone()
        if row is None:
            return SellerBalance(seller_id, 0, 0, 0), 0
        return _row_to_balance(row), row.moved

    async def debit_available_to_transfer(
        self, db: AsyncSession, seller_id: str, amount: int
    ) -> SellerBalance | None:
        """None means payout_balance < amount; nothing was changed."""
        result = await db.execute(
            _DEBIT_TO_TRANSFER_SQL, {"seller_id": seller_id, "amount": amount}
        )
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def settle_transfer(
        self, db: AsyncSession, seller_id: str, amount: int, returned: bool
    ) -> SellerBalance | None:
        sql = _TRANSFER_RETURNED_SQL if returned else _TRANSFER_COMPLETED_SQL
        result = await db.execute(sql, {"seller_id": seller_id, "amount": amount})
        row = result.fetchone()
        return _row_to_balance(row) if row else None

    async def debit_for_refund(
        self, db: AsyncSession, seller_id: str, amount: int
    ) -> tuple[SellerBalance, RefundDebit]:
        result = await db.execute(
            _DEBIT_FOR_REFUND_SQL, {"seller_id": seller_id, "amount": amount}
        )
        row = result.fetchone()
        if row is None:
            return SellerBalance(seller_id, 0, 0, 0), RefundDebit(amount, 0, 0)
        return _row_to_balance(row), RefundDebit(amount, row.from_pending, row.from_available)

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
    ) -> BalanceEntry:
        result = await db.execute(
            _INSERT_ENTRY_SQL,
            {
                "seller_id": seller_id,
                "entry_type": entry_type,
                "bucket": bucket,
                "amount": amount,
                "balance_after": balance_after,
                "reference_type": ref_type,
                "reference_id": ref_id,
                "description": description,
            },
        )
        return _row_to_entry(result.fetchone())

    async def list_entries(
        self,
        db: AsyncSession,
        seller_id: str,
        cursor_id: int | None,
        limit: int,
        entry_type: str | None,
    ) -> list[BalanceEntry]:
        result = await db.execute(
            _LIST_ENTRIES_SQL,
            {
                "seller_id": seller_id,
                "cursor_id": cursor_id,
                "limit": limit,
                "entry_type": entry_type,
            },
        )
        return [_row_to_entry(row) for row in result.fetchall()]

    # --- withdrawals ---

    async def insert_withdrawal(self, db: AsyncSession, withdrawal: Withdrawal) -> None:
        await db.execute(
            _INSERT_WITHDRAWAL_SQL,
            {"id": withdrawal.id, "seller_id": withdrawal.seller_id, "amount": withdrawal.amount},
        )

    async def get_withdrawal(self, db: AsyncSession, withdrawal_id: str) -> Withdrawal | None:
        result = await db.execute(_GET_WITHDRAWAL_SQL, {"id": withdrawal_id})
        row = result.fetchone()
        return _row_to_withdrawal(row) if row else None

    async def mark_withdrawal(
        self,
        db: AsyncSession,
        withdrawal_id: str,
        status: str,
        transfer_reference: str | None,
        failure_reason: str | None,
    ) -> Withdrawal | None:
        """CAS requested -> status; None if the withdrawal is no longer requested."""
        result = await db.execute(
            _MARK_WITHDRAWAL_SQL,
            {
                "id": withdrawal_id,
                "status": status,
                "transfer_reference": transfer_reference,
                "failure_reason": failure_reason,
            },
        )
        row = result.fetchone()
        return _row_to_withdrawal(row) if row else None

    async def list_withdrawals(
        self, db: AsyncSession, seller_id: str, limit: int, cursor_id: str | None
    ) -> list[Withdrawal]:
        result = await db.execute(
            _LIST_WITHDRAWALS_SQL,
            {"seller_id": seller_id, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_withdrawal(row) for row in result.fetchall()]
