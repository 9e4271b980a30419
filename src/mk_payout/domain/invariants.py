"""Ledger reconciliation.

- every seller bucket equals the sum of its balance_entries;
- no bucket is negative;
- every payout satisfies net_amount + seller_commission == gross_amount.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

_BUCKET_SUMS_SQL = text("""
    SELECT b.seller_id,
           b.pending_balance, b.payout_balance, b.in_transfer_balance,
           COALESCE(SUM(e.amount) FILTER (WHERE e.bucket = 'PENDING'), 0)     AS pending_sum,
           COALESCE(SUM(e.amount) FILTER (WHERE e.bucket = 'AVAILABLE'), 0)   AS available_sum,
           COALESCE(SUM(e.amount) FILTER (WHERE e.bucket = 'IN_TRANSFER'), 0) AS in_transfer_sum
    FROM seller_balances b
    LEFT JOIN balance_entries e ON e.seller_id = b.seller_id
    GROUP BY b.seller_id, b.pending_balance, b.payout_balance, b.in_transfer_balance
""")

_PAYOUT_SPLIT_SQL = text("""
    SELECT id, gross_amount, seller_commission, net_amount
    FROM payouts
    WHERE net_amount + seller_commission <> gross_amount
""")


@dataclass(frozen=True)
class BucketSnapshot:
    seller_id: str
    pending_balance: int
    payout_balance: int
    in_transfer_balance: int
    pending_sum: int
    available_sum: int
    in_transfer_sum: int


def check_bucket_snapshot(snap: BucketSnapshot) -> list[str]:
    """Pure check of one seller's stored buckets against its entries."""
    violations: list[str] = []
    pairs = (
        ("pending", snap.pending_balance, snap.pending_sum),
        ("available", snap.payout_balance, snap.available_sum),
        ("in_transfer", snap.in_transfer_balance, snap.in_transfer_sum),
    )
    for name, stored, summed in pairs:
        if stored < 0:
            violations.append(f"seller {snap.seller_id}: {name} balance negative ({stored})")
        if stored != summed:
            violations.append(
                f"seller {snap.seller_id}: {name} balance {stored} != entries sum {summed}"
            )
    return violations


async def verify_ledger_invariants(db: AsyncSession) -> list[str]:
    """Returns violation strings; empty means the ledger reconciles."""
    violations: list[str] = []

    rows = (await db.execute(_BUCKET_SUMS_SQL)).fetchall()
    for row in rows:
        violations.extend(
            check_bucket_snapshot(
                BucketSnapshot(
                    seller_id=str(row.seller_id),
                    pending_balance=row.pending_balance,
                    payout_balance=row.payout_balance,
                    in_transfer_balance=row.in_transfer_balance,
                    pending_sum=row.pending_sum,
                    available_sum=row.available_sum,
                    in_transfer_sum=row.in_transfer_sum,
                )
            )
        )

    for row in (await db.execute(_PAYOUT_SPLIT_SQL)).fetchall():
        violations.append(
            f"payout {row.id}: net {row.net_amount} + commission {row.seller_commission}"
            f" != gross {row.gross_amount}"
        )

    for msg in violations:
        logger.error("Ledger invariant violated: %s", msg)
    return violations
