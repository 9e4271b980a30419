"""Seller commission and payout split for a delivered order.

The rate is always passed in (from settings at the call site), never read here.
"""

from dataclasses import dataclass

from src.mk_common.money import percent_of


@dataclass(frozen=True)
class CommissionPolicy:
    """Active platform commission: a fixed fee (> 0) wins over the rate."""

    rate_bps: int
    fixed: int = 0


def compute_commission(amount: int, rate_bps: int, fixed: int = 0) -> int:
    """Fixed commission when configured (> 0), else ceil(amount * rate_bps / 10000).

    Never exceeds the order amount.
    """
    if amount <= 0:
        return 0
    commission = fixed if fixed > 0 else percent_of(amount, rate_bps)
    return min(commission, amount)


def compute_settlement(amount: int, rate_bps: int, fixed: int = 0) -> tuple[int, int]:
    """Return (seller_commission, payout_amount); the two always sum to amount."""
    commission = compute_commission(amount, rate_bps, fixed)
    return commission, amount - commission


def settle(amount: int, policy: CommissionPolicy) -> tuple[int, int]:
    return compute_settlement(amount, policy.rate_bps, policy.fixed)
