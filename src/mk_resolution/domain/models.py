"""Return / dispute domain models: pure dataclasses, no SQLAlchemy dependency."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class Return:
    id: str
    order_id: str
    buyer_id: str
    seller_id: str
    reason: str
    description: str | None
    status: str                           # ReturnStatus value
    admin_notes: str | None = None
    refund_amount: int | None = None      # cents, <= what the order still has refundable
    return_tracking_number: str | None = None
    dispute_id: str | None = None         # set when created as a dispute remedy
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resolved_at: datetime | None = None


@dataclass(frozen=True)
class Dispute:
    id: str
    order_id: str
    reporter_id: str
    reported_user_id: str
    reason: str
    description: str | None
    status: str                           # DisputeStatus value
    resolution: str | None = None         # set iff status in {resolved, dismissed}
    admin_notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    resolved_at: datetime | None = None


@dataclass(frozen=True)
class RefundInstruction:
    """Refund ``amount`` to the buyer and debit the seller ``amount``; one per return."""

    id: str
    return_id: str
    order_id: str
    buyer_id: str
    seller_id: str
    amount: int
    seller_debited: int = 0
    shortfall: int = 0
    status: str = "pending"               # RefundInstructionStatus value
    created_at: datetime | None = None
