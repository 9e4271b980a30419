"""Raw SQL repositories for returns, disputes and refund instructions."""

from typing import Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from src.mk_resolution.domain.models import Dispute, RefundInstruction, Return

# ---------------------------------------------------------------------------
# SQL: returns
# ---------------------------------------------------------------------------

_RETURN_COLUMNS = """
    id, order_id, buyer_id, seller_id, reason, description, status, admin_notes,
    refund_amount, return_tracking_number, dispute_id, created_at, updated_at, resolved_at
"""

_INSERT_RETURN_SQL = text("""
    INSERT INTO returns (id, order_id, buyer_id, seller_id, reason, description,
                         status, admin_notes, refund_amount, dispute_id)
    VALUES (:id, :order_id, :buyer_id, :seller_id, :reason, :description,
            :status, :admin_notes, :refund_amount, :dispute_id)
""")

_GET_RETURN_SQL = text(f"SELECT {_RETURN_COLUMNS} FROM returns WHERE id = :id")

_FIND_OPEN_RETURN_SQL = text(f"""
    SELECT {_RETURN_COLUMNS} FROM returns
    WHERE order_id = :order_id AND status IN ('pending', 'approved')
""")

_CAS_RETURN_SQL = text("""
    UPDATE returns
    SET status = :status, admin_notes = :admin_notes, refund_amount = :refund_amount,
        resolved_at = :resolved_at, updated_at = NOW()
    WHERE id = :id AND status = :expected
    RETURNING id
""")

_SET_RETURN_TRACKING_SQL = text(f"""
    UPDATE returns
    SET return_tracking_number = :tracking_number, updated_at = NOW()
    WHERE id = :id AND status IN ('pending', 'approved')
    RETURNING {_RETURN_COLUMNS}
""")

_LIST_RETURNS_SQL = text(f"""
    SELECT {_RETURN_COLUMNS}
    FROM returns
    WHERE (CAST(:buyer_id AS TEXT) IS NULL OR buyer_id = :buyer_id)
      AND (CAST(:seller_id AS TEXT) IS NULL OR seller_id = :seller_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: disputes
# ---------------------------------------------------------------------------

_DISPUTE_COLUMNS = """
    id, order_id, reporter_id, reported_user_id, reason, description, status,
    resolution, admin_notes, created_at, updated_at, resolved_at
"""

_INSERT_DISPUTE_SQL = text("""
    INSERT INTO disputes (id, order_id, reporter_id, reported_user_id, reason,
                          description, status)
    VALUES (:id, :order_id, :reporter_id, :reported_user_id, :reason,
            :description, :status)
""")

_GET_DISPUTE_SQL = text(f"SELECT {_DISPUTE_COLUMNS} FROM disputes WHERE id = :id")

_CAS_DISPUTE_SQL = text("""
    UPDATE disputes
    SET status = :status, resolution = :resolution, admin_notes = :admin_notes,
        resolved_at = :resolved_at, updated_at = NOW()
    WHERE id = :id AND status = :expected
    RETURNING id
""")

_LIST_DISPUTES_SQL = text(f"""
    SELECT {_DISPUTE_COLUMNS}
    FROM disputes
    WHERE (CAST(:party_id AS TEXT) IS NULL
           OR reporter_id = :party_id OR reported_user_id = :party_id)
      AND (CAST(:status AS TEXT) IS NULL OR status = :status)
      AND (CAST(:cursor_id AS TEXT) IS NULL OR id < :cursor_id)
    ORDER BY id DESC
    LIMIT :limit
""")

# ---------------------------------------------------------------------------
# SQL: refund_instructions
# ---------------------------------------------------------------------------

_INSTRUCTION_COLUMNS = """
    id, return_id, order_id, buyer_id, seller_id, amount, seller_debited,
    shortfall, status, created_at
"""

_INSERT_INSTRUCTION_SQL = text(f"""
    INSERT INTO refund_instructions (id, return_id, order_id, buyer_id, seller_id, amount)
    VALUES (:id, :return_id, :order_id, :buyer_id, :seller_id, :amount)
    ON CONFLICT (return_id) DO NOTHING
    RETURNING {_INSTRUCTION_COLUMNS}
""")

_RECORD_DEBIT_SQL = text("""
    UPDATE refund_instructions
    SET seller_debited = :seller_debited, shortfall = :shortfall
    WHERE id = :id
""")

_MARK_SENT_SQL = text("""
    UPDATE refund_instructions SET status = 'sent', sent_at = NOW()
    WHERE id = :id AND status = 'pending'
""")

_GET_INSTRUCTION_BY_RETURN_SQL = text(
    f"SELECT {_INSTRUCTION_COLUMNS} FROM refund_instructions WHERE return_id = :return_id"
)


# ---------------------------------------------------------------------------
# Row mappers
# ---------------------------------------------------------------------------


def _row_to_return(row: Any) -> Return:
    return Return(
        id=row.id,
        order_id=row.order_id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        reason=row.reason,
        description=row.description,
        status=row.status,
        admin_notes=row.admin_notes,
        refund_amount=row.refund_amount,
        return_tracking_number=row.return_tracking_number,
        dispute_id=row.dispute_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        resolved_at=row.resolved_at,
    )


def _row_to_dispute(row: Any) -> Dispute:
    return Dispute(
        id=row.id,
        order_id=row.order_id,
        reporter_id=row.reporter_id,
        reported_user_id=row.reported_user_id,
        reason=row.reason,
        description=row.description,
        status=row.status,
        resolution=row.resolution,
        admin_notes=row.admin_notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
        resolved_at=row.resolved_at,
    )


def _row_to_instruction(row: Any) -> RefundInstruction:
    return RefundInstruction(
        id=row.id,
        return_id=row.return_id,
        order_id=row.order_id,
        buyer_id=row.buyer_id,
        seller_id=row.seller_id,
        amount=row.amount,
        seller_debited=row.seller_debited,
        shortfall=row.shortfall,
        status=row.status,
        created_at=row.created_at,
    )


# ---------------------------------------------------------------------------
# Repositories
# ---------------------------------------------------------------------------


class ReturnRepository:
    async def insert(self, db: AsyncSession, ret: Return) -> None:
        await db.execute(
            _INSERT_RETURN_SQL,
            {
                "id": ret.id,
                "order_id": ret.order_id,
                "buyer_id": ret.buyer_id,
                "seller_id": ret.seller_id,
                "reason": ret.reason,
                "description": ret.description,
                "status": ret.status,
                "admin_notes": ret.admin_notes,
                "refund_amount": ret.refund_amount,
                "dispute_id": ret.dispute_id,
            },
        )

    async def get(self, db: AsyncSession, return_id: str) -> Return | None:
        result = await db.execute(_GET_RETURN_SQL, {"id": return_id})
        row = result.fetchone()
        return _row_to_return(row) if row else None

    async def find_open_for_order(self, db: AsyncSession, order_id: str) -> Return | None:
        result = await db.execute(_FIND_OPEN_RETURN_SQL, {"order_id": order_id})
        row = result.fetchone()
        return _row_to_return(row) if row else None

    async def compare_and_set(self, db: AsyncSession, ret: Return, expected: str) -> bool:
        result = await db.execute(
            _CAS_RETURN_SQL,
            {
                "id": ret.id,
                "expected": expected,
                "status": ret.status,
                "admin_notes": ret.admin_notes,
                "refund_amount": ret.refund_amount,
                "resolved_at": ret.resolved_at,
            },
        )
        return result.fetchone() is not None

    async def set_tracking(
        self, db: AsyncSession, return_id: str, tracking_number: str
    ) -> Return | None:
        result = await db.execute(
            _SET_RETURN_TRACKING_SQL, {"id": return_id, "tracking_number": tracking_number}
        )
        row = result.fetchone()
        return _row_to_return(row) if row else None

    async def list(
        self,
        db: AsyncSession,
        buyer_id: str | None,
        seller_id: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[Return]:
        result = await db.execute(
            _LIST_RETURNS_SQL,
            {
                "buyer_id": buyer_id,
                "seller_id": seller_id,
                "status": status,
                "cursor_id": cursor_id,
                "limit": limit,
            },
        )
        return [_row_to_return(row) for row in result.fetchall()]


class DisputeRepository:
    async def insert(self, db: AsyncSession, dispute: Dispute) -> None:
        await db.execute(
            _INSERT_DISPUTE_SQL,
            {
                "id": dispute.id,
                "order_id": dispute.order_id,
                "reporter_id": dispute.reporter_id,
                "reported_user_id": dispute.reported_user_id,
                "reason": dispute.reason,
                "description": dispute.description,
                "status": dispute.status,
            },
        )

    async def get(self, db: AsyncSession, dispute_id: str) -> Dispute | None:
        result = await db.execute(_GET_DISPUTE_SQL, {"id": dispute_id})
        row = result.fetchone()
        return _row_to_dispute(row) if row else None

    async def compare_and_set(self, db: AsyncSession, dispute: Dispute, expected: str) -> bool:
        result = await db.execute(
            _CAS_DISPUTE_SQL,
            {
                "id": dispute.id,
                "expected": expected,
                "status": dispute.status,
                "resolution": dispute.resolution,
                "admin_notes": dispute.admin_notes,
                "resolved_at": dispute.resolved_at,
            },
        )
        return result.fetchone() is not None

    async def list(
        self,
        db: AsyncSession,
        party_id: str | None,
        status: str | None,
        limit: int,
        cursor_id: str | None,
    ) -> list[Dispute]:
        result = await db.execute(
            _LIST_DISPUTES_SQL,
            {"party_id": party_id, "status": status, "cursor_id": cursor_id, "limit": limit},
        )
        return [_row_to_dispute(row) for row in result.fetchall()]


class RefundInstructionRepository:
    async def insert_once(
        self, db: AsyncSession, instruction: RefundInstruction
    ) -> RefundInstruction | None:
        """None when the return already has an instruction."""
        result = await db.execute(
            _INSERT_INSTRUCTION_SQL,
            {
                "id": instruction.id,
                "return_id": instruction.return_id,
                "order_id": instruction.order_id,
                "buyer_id": instruction.buyer_id,
                "seller_id": instruction.seller_id,
                "amount": instruction.amount,
            },
        )
        row = result.fetchone()
        return _row_to_instruction(row) if row else None

    async def record_debit(
        self, db: AsyncSession, instruction_id: str, seller_debited: int, shortfall: int
    ) -> None:
        await db.execute(
            _RECORD_DEBIT_SQL,
            {"id": instruction_id, "seller_debited": seller_debited, "shortfall": shortfall},
        )

    async def mark_sent(self, db: AsyncSession, instruction_id: str) -> None:
        await db.execute(_MARK_SENT_SQL, {"id": instruction_id})

    async def get_by_return(
        self, db: AsyncSession, return_id: str
    ) -> RefundInstruction | None:
        result = await db.execute(_GET_INSTRUCTION_BY_RETURN_SQL, {"return_id": return_id})
        row = result.fetchone()
        return _row_to_instruction(row) if row else None
