"""Global enums: values must match DB CHECK constraints exactly."""

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


TERMINAL_ORDER_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)


class PaymentMethod(str, Enum):
    CARD = "card"
    COD = "cod"


class ShippingMethod(str, Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"


class DeliveryType(str, Enum):
    HOME = "home"
    LOCKER = "locker"


class OrderPayoutStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    PAID = "paid"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"


class WithdrawalStatus(str, Enum):
    REQUESTED = "requested"
    COMPLETED = "completed"
    FAILED = "failed"


class BalanceBucket(str, Enum):
    PENDING = "PENDING"
    AVAILABLE = "AVAILABLE"
    IN_TRANSFER = "IN_TRANSFER"


class BalanceEntryType(str, Enum):
    # Delivery settlement
    SALE_CREDIT = "SALE_CREDIT"
    # Maturation (paired)
    RELEASE_OUT = "RELEASE_OUT"
    RELEASE_IN = "RELEASE_IN"
    # Withdrawal (paired on request / failure)
    WITHDRAWAL = "WITHDRAWAL"
    WITHDRAWAL_IN_TRANSFER = "WITHDRAWAL_IN_TRANSFER"
    WITHDRAWAL_COMPLETED = "WITHDRAWAL_COMPLETED"
    WITHDRAWAL_FAILED = "WITHDRAWAL_FAILED"
    WITHDRAWAL_RETURNED = "WITHDRAWAL_RETURNED"
    # Compensation
    REFUND_DEBIT = "REFUND_DEBIT"
    PAYOUT_REVERSAL = "PAYOUT_REVERSAL"


class ReturnStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class DisputeStatus(str, Enum):
    PENDING = "pending"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class KycStatus(str, Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    VERIFIED = "verified"
    APPROVED = "approved"
    REJECTED = "rejected"


WITHDRAWAL_ELIGIBLE_KYC = frozenset({KycStatus.VERIFIED, KycStatus.APPROVED})


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ActorRole(str, Enum):
    """Who drove a transition: recorded on every order_events row."""

    BUYER = "buyer"
    SELLER = "seller"
    ADMIN = "admin"
    PAYMENT_PROCESSOR = "payment_processor"
    SYSTEM = "system"


class RefundInstructionStatus(str, Enum):
    PENDING = "pending"
    SENT = "sent"
