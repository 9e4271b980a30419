"""Pydantic schemas and cursor utilities for the wallet API."""

import base64
import json

from pydantic import BaseModel, Field

from config.settings import settings
from src.mk_common.money import cents_to_display
from src.mk_payout.domain.models import Payout, SellerBalance, Withdrawal

# ---------------------------------------------------------------------------
# Cursor-based pagination utilities
# ---------------------------------------------------------------------------


def cursor_encode(last_id: int | str) -> str:
    """Encode the last seen primary key into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> int | str | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        last_id = payload["id"]
    except Exception:
        return None
    return last_id if isinstance(last_id, (int, str)) else None


def _display(cents: int) -> str:
    return cents_to_display(cents, settings.CURRENCY)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class WithdrawRequest(BaseModel):
    amount_cents: int = Field(..., gt=0, description="Amount to withdraw in cents")


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    seller_id: str
    pending_balance_cents: int
    pending_balance_display: str
    payout_balance_cents: int
    payout_balance_display: str
    in_transfer_balance_cents: int
    in_transfer_balance_display: str

    @classmethod
    def from_balance(cls, balance: SellerBalance) -> "BalanceResponse":
        return cls(
            seller_id=balance.seller_id,
            pending_balance_cents=balance.pending_balance,
            pending_balance_display=_display(balance.pending_balance),
            payout_balance_cents=balance.payout_balance,
            payout_balance_display=_display(balance.payout_balance),
            in_transfer_balance_cents=balance.in_transfer_balance,
            in_transfer_balance_display=_display(balance.in_transfer_balance),
        )


class WithdrawalItem(BaseModel):
    id: str
    amount_cents: int
    amount_display: str
    status: str
    transfer_reference: str | None
    failure_reason: str | None
    created_at: str | None

    @classmethod
    def from_withdrawal(cls, w: Withdrawal) -> "WithdrawalItem":
        return cls(
            id=w.id,
            amount_cents=w.amount,
            amount_display=_display(w.amount),
            status=w.status,
            transfer_reference=w.transfer_reference,
            failure_reason=w.failure_reason,
            created_at=w.created_at.isoformat() if w.created_at else None,
        )


class WithdrawResponse(BaseModel):
    withdrawal: WithdrawalItem
    balance: BalanceResponse
    message: str = "Withdrawal requested; transfers settle in 1-3 business days"


class BalanceEntryItem(BaseModel):
    id: int
    entry_type: str
    bucket: str
    amount_cents: int
    amount_display: str
    balance_after_cents: int
    reference_type: str | None
    reference_id: str | None
    description: str | None
    created_at: str  # ISO8601 string


class LedgerResponse(BaseModel):
    items: list[BalanceEntryItem]
    next_cursor: str | None
    has_more: bool


class PayoutItem(BaseModel):
    id: str
    order_id: str
    gross_amount_cents: int
    seller_commission_cents: int
    net_amount_cents: int
    net_amount_display: str
    status: str
    created_at: str | None
    processed_at: str | None

    @classmethod
    def from_payout(cls, p: Payout) -> "PayoutItem":
        return cls(
            id=p.id,
            order_id=p.order_id,
            gross_amount_cents=p.gross_amount,
            seller_commission_cents=p.seller_commission,
            net_amount_cents=p.net_amount,
            net_amount_display=_display(p.net_amount),
            status=p.status,
            created_at=p.created_at.isoformat() if p.created_at else None,
            processed_at=p.processed_at.isoformat() if p.processed_at else None,
        )


class PayoutListResponse(BaseModel):
    items: list[PayoutItem]
    next_cursor: str | None
    has_more: bool


class WithdrawalListResponse(BaseModel):
    items: list[WithdrawalItem]
    next_cursor: str | None
    has_more: bool
