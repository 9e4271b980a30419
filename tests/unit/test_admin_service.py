"""Unit tests for AdminService: overrides commit or roll back as one unit."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.mk_admin.application.service import AdminService
from src.mk_common.enums import OrderStatus
from src.mk_common.errors import InvalidOrderTransitionError, UserNotFoundError
from src.mk_payout.domain.models import Payout


def _payout(pid: str = "pay-1") -> Payout:
    return Payout(pid, "ord-1", "seller-1", 10000, 1000, 0, 9000, "processed")


def _db() -> MagicMock:
    db = MagicMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    return db


def _service() -> tuple[AdminService, AsyncMock, AsyncMock, AsyncMock]:
    orders, ledger, users = AsyncMock(), AsyncMock(), AsyncMock()
    service = AdminService(
        orders=orders, ledger=ledger, returns=AsyncMock(), disputes=AsyncMock(), users=users
    )
    return service, orders, ledger, users


class TestOverrides:
    async def test_rejected_override_rolls_back(self) -> None:
        service, orders, _, _ = _service()
        orders.apply_admin_override.side_effect = InvalidOrderTransitionError(
            "ord-1", "refunded", "move to shipped"
        )
        db = _db()

        with pytest.raises(InvalidOrderTransitionError):
            await service.override_order_status(db, "admin-1", "ord-1", OrderStatus.SHIPPED)

        db.rollback.assert_awaited_once()
        db.commit.assert_not_awaited()

    async def test_release_payout_commits(self) -> None:
        service, _, ledger, _ = _service()
        ledger.release_payout.return_value = _payout()
        db = _db()

        item = await service.release_payout(db, "admin-1", "pay-1")

        assert item.status == "processed"
        assert item.net_amount_display == "90.00 RON"
        db.commit.assert_awaited_once()

    async def test_release_matured_reports_ids(self) -> None:
        service, _, ledger, _ = _service()
        ledger.release_matured.return_value = [_payout("pay-1"), _payout("pay-2")]
        db = _db()

        result = await service.release_matured(db, "admin-1", 50)

        assert result.released == ["pay-1", "pay-2"]
        assert result.count == 2
        assert ledger.release_matured.await_args.args[2] == 50


class TestWithdrawalBlock:
    async def test_block(self) -> None:
        service, _, _, users = _service()
        db = _db()

        result = await service.set_withdrawal_block(db, "admin-1", "seller-1", True, "chargebacks")

        users.set_withdrawal_block.assert_awaited_once_with(db, "seller-1", True, "chargebacks")
        assert result["reason"] == "chargebacks"
        db.commit.assert_awaited_once()

    async def test_unknown_user_rolls_back(self) -> None:
        service, _, _, users = _service()
        users.set_withdrawal_block.side_effect = UserNotFoundError("ghost")
        db = _db()

        with pytest.raises(UserNotFoundError):
            await service.set_withdrawal_block(db, "admin-1", "ghost", True, None)
        db.rollback.assert_awaited_once()


class TestInvariants:
    async def test_ok_when_no_violations(self) -> None:
        service, _, _, _ = _service()
        with patch(
            "src.mk_admin.application.service.verify_ledger_invariants",
            AsyncMock(return_value=[]),
        ):
            result = await service.check_invariants(_db())
        assert result.ok is True

    async def test_reports_violations(self) -> None:
        service, _, _, _ = _service()
        with patch(
            "src.mk_admin.application.service.verify_ledger_invariants",
            AsyncMock(return_value=["seller s: pending balance negative (-1)"]),
        ):
            result = await service.check_invariants(_db())
        assert result.ok is False
        assert len(result.violations) == 1
