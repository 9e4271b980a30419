"""Tests for the ledger reconciliation checks."""

from unittest.mock import AsyncMock, MagicMock

from src.mk_payout.domain.invariants import (
    BucketSnapshot,
    check_bucket_snapshot,
    verify_ledger_invariants,
)


def _snap(**overrides: int) -> BucketSnapshot:
    values = {
        "pending_balance": 9000,
        "payout_balance": 2500,
        "in_transfer_balance": 0,
        "pending_sum": 9000,
        "available_sum": 2500,
        "in_transfer_sum": 0,
    }
    values.update(overrides)
    return BucketSnapshot(seller_id="seller-1", **values)


def _rows(*rows: object) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = list(rows)
    return result


class TestCheckBucketSnapshot:
    def test_reconciled(self) -> None:
        assert check_bucket_snapshot(_snap()) == []

    def test_drift_reported_per_bucket(self) -> None:
        violations = check_bucket_snapshot(_snap(payout_balance=2600))
        assert violations == ["seller seller-1: available balance 2600 != entries sum 2500"]

    def test_negative_bucket(self) -> None:
        violations = check_bucket_snapshot(_snap(in_transfer_balance=-1, in_transfer_sum=-1))
        assert violations == ["seller seller-1: in_transfer balance negative (-1)"]

    def test_negative_and_drifted(self) -> None:
        violations = check_bucket_snapshot(_snap(pending_balance=-5))
        assert len(violations) == 2
        assert all("pending" in v for v in violations)


class TestVerifyLedgerInvariants:
    async def test_clean_ledger(self) -> None:
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_rows(_snap()), _rows()])
        assert await verify_ledger_invariants(db) == []

    async def test_reports_bucket_and_payout_violations(self) -> None:
        payout = MagicMock(id="pay-1", gross_amount=10000, seller_commission=1000, net_amount=8000)
        db = MagicMock()
        db.execute = AsyncMock(side_effect=[_rows(_snap(pending_sum=8000)), _rows(payout)])

        violations = await verify_ledger_invariants(db)

        assert violations == [
            "seller seller-1: pending balance 9000 != entries sum 8000",
            "payout pay-1: net 8000 + commission 1000 != gross 10000",
        ]
