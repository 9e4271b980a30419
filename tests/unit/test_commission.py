"""Tests for mk_pricing.domain.commission."""

import pytest

from src.mk_pricing.domain.commission import (
    CommissionPolicy,
    compute_commission,
    compute_settlement,
    settle,
)


class TestComputeCommission:
    def test_ten_percent(self) -> None:
        assert compute_commission(10000, 1000) == 1000

    def test_rounds_up(self) -> None:
        # 10% of 0.99 = 0.099 -> 10 cents
        assert compute_commission(99, 1000) == 10

    def test_fixed_wins_over_rate(self) -> None:
        assert compute_commission(10000, 1000, fixed=250) == 250

    def test_never_exceeds_amount(self) -> None:
        assert compute_commission(100, 1000, fixed=500) == 100

    def test_zero_amount(self) -> None:
        assert compute_commission(0, 1000) == 0


class TestSettlement:
    def test_card_order(self) -> None:
        commission, payout = compute_settlement(10000, 1000)
        assert commission == 1000
        assert payout == 9000

    @pytest.mark.parametrize("amount", [1, 99, 101, 3333, 10000, 999_999])
    @pytest.mark.parametrize("rate", [0, 1, 250, 1000, 10_000])
    def test_parts_sum_to_amount(self, amount: int, rate: int) -> None:
        commission, payout = compute_settlement(amount, rate)
        assert commission + payout == amount
        assert commission >= 0
        assert payout >= 0

    def test_policy(self) -> None:
        assert settle(10000, CommissionPolicy(rate_bps=1000, fixed=300)) == (300, 9700)
