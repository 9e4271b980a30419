"""Domain models for mk_payout: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Payout:
    """One per settled order; net_amount is immutable once processed."""

    id: str
    order_id: str
    seller_id: str
    gross_amount: int       # cents, order amount
    seller_commission: int  # cents
    buyer_fee: int          # cents
    net_amount: int         # cents, gross_amount - seller_commission
    status: str             # PayoutStatus value
    created_at: datetime | None = None
    processed_at: datetime | None = None


@dataclass
class SellerBalance:
    seller_id: str
    pending_balance: int      # cents, credited but not yet withdrawable
    payout_balance: int       # cents, available for withdrawal
    in_transfer_balance: int  # cents, withdrawn and awaiting transfer confirmation
    version: int = 0
    updated_at: datetime | None = None

    @property
    def total_balance(self) -> int:
        return self.pending_balance + self.payout_balance + self.in_transfer_balance


@dataclass
class BalanceEntry:
    id: int                          # BIGSERIAL
    seller_id: str
    entry_type: str                  # BalanceEntryType value
    bucket: str                      # BalanceBucket value
    amount: int                      # cents, positive=credit negative=debit
    balance_after: int               # cents, bucket snapshot after op
    reference_type: str | None = None
    reference_id: str | None = None
    description: str | None = None
    created_at: datetime | None = None


@dataclass
class Withdrawal:
    id: str
    seller_id: str
    amount: int                      # cents
    status: str                      # WithdrawalStatus value
    transfer_reference: str | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(frozen=True)
class SellerStanding:
    """The account flags a withdrawal is gated on, read from the users row."""

    seller_id: str
    kyc_status: str
    withdrawal_blocked: bool = False
    withdrawal_blocked_reason: str | None = None


@dataclass(frozen=True)
class RefundDebit:
    """Result of debiting a seller for a refund: what was taken, and from where."""

    requested: int
    from_pending: int
    from_available: int

    @property
    def debited(self) -> int:
        return self.from_pending + self.from_available

    @property
    def shortfall(self) -> int:
        return self.requested - self.debited
