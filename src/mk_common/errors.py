"""Unified error codes and custom exceptions.

Error code ranges:
  1xxx: Auth/User
  2xxx: Wallet / Payout ledger
  3xxx: Checkout / Pricing
  4xxx: Order lifecycle
  5xxx: Returns / Disputes
  6xxx: Webhooks
  9xxx: System / Collaborators
"""


class AppError(Exception):
    """Base application error."""

    def __init__(
        self,
        code: int,
        message: str,
        http_status: int = 500,
    ) -> None:
        self.code = code
        self.message = message
        self.http_status = http_status
        super().__init__(message)


# --- 1xxx: Auth/User ---

class UsernameExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1001, "Username already exists", 409)


class EmailExistsError(AppError):
    def __init__(self) -> None:
        super().__init__(1002, "Email already exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self) -> None:
        super().__init__(1003, "Invalid username or password", 401)


class AccountDisabledError(AppError):
    def __init__(self) -> None:
        super().__init__(1004, "Account is disabled", 403)


class InvalidRefreshTokenError(AppError):
    def __init__(self) -> None:
        super().__init__(1005, "Refresh token is invalid or expired", 401)


class AdminRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(1006, "Admin role required", 403)


class UserNotFoundError(AppError):
    def __init__(self, user_id: str) -> None:
        super().__init__(1007, f"User not found: {user_id}", 404)


# --- 2xxx: Wallet / Payout ledger ---

class InsufficientPayoutBalanceError(AppError):
    def __init__(self, required: int, available: int) -> None:
        super().__init__(
            2001,
            f"Insufficient payout balance: required {required} cents, available {available} cents",
            422,
        )


class SellerBalanceNotFoundError(AppError):
    def __init__(self, seller_id: str) -> None:
        super().__init__(2002, f"Balance not found for seller {seller_id}", 404)


class KycNotVerifiedError(AppError):
    def __init__(self, status: str) -> None:
        super().__init__(
            2003, f"Identity verification required before withdrawal (status: {status})", 403
        )


class InvalidAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(2004, f"Amount must be positive, got {amount}", 422)


class WithdrawalBlockedError(AppError):
    def __init__(self, reason: str | None) -> None:
        super().__init__(2005, f"Withdrawals are blocked: {reason or 'under review'}", 403)


class WithdrawalNotFoundError(AppError):
    def __init__(self, withdrawal_id: str) -> None:
        super().__init__(2006, f"Withdrawal not found: {withdrawal_id}", 404)


class PayoutNotFoundError(AppError):
    def __init__(self, payout_id: str) -> None:
        super().__init__(2007, f"Payout not found: {payout_id}", 404)


class PayoutNotReleasableError(AppError):
    def __init__(self, payout_id: str, status: str) -> None:
        super().__init__(2008, f"Payout {payout_id} in status {status} cannot be released", 422)


class WithdrawalStateError(AppError):
    def __init__(self, withdrawal_id: str, status: str, action: str) -> None:
        super().__init__(2009, f"Withdrawal {withdrawal_id} in status {status} cannot be {action}", 409)


# --- 3xxx: Checkout / Pricing ---

class EmptyCartError(AppError):
    def __init__(self) -> None:
        super().__init__(3001, "Cart is empty", 422)


class CodNotAvailableError(AppError):
    def __init__(self) -> None:
        super().__init__(
            3002,
            "Cash on delivery requires every item to accept COD and a seller based in Romania",
            422,
        )


class CourierRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(3003, "A courier must be selected for cash on delivery", 422)


class UnknownCourierError(AppError):
    def __init__(self, courier_id: str) -> None:
        super().__init__(3004, f"Unknown courier: {courier_id}", 422)


class ListingNotFoundError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3005, f"Listing not found: {listing_id}", 404)


class ListingUnavailableError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3006, f"Listing is no longer available: {listing_id}", 422)


class PriceMismatchError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(3007, f"Submitted prices are out of date: {detail}", 409)


class DuplicateSubmissionError(AppError):
    def __init__(self, idempotency_key: str) -> None:
        super().__init__(
            3008, f"Idempotency key {idempotency_key} was already used for a different cart", 409
        )


class SubmissionInProgressError(AppError):
    def __init__(self) -> None:
        super().__init__(3009, "This checkout is already being processed", 409)


class SelfPurchaseError(AppError):
    def __init__(self, listing_id: str) -> None:
        super().__init__(3010, f"You cannot buy your own listing: {listing_id}", 422)


class LockerRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(3011, "A locker location is required for locker delivery", 422)


class PaymentDeclinedError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(3012, message, 402)


class CheckoutStageError(AppError):
    def __init__(self, stage: str, action: str) -> None:
        super().__init__(3013, f"Cannot {action} while on the {stage} step", 422)


class LockerNotSupportedError(AppError):
    def __init__(self, courier_name: str) -> None:
        super().__init__(3014, f"{courier_name} does not deliver to lockers", 422)


# --- 4xxx: Order lifecycle ---

class NotOrderBuyerError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4001, f"Only the buyer can confirm delivery of order {order_id}", 403)


class NotOrderSellerError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4002, f"Only the seller can perform this action on order {order_id}", 403)


class InvalidOrderTransitionError(AppError):
    def __init__(self, order_id: str, status: str, action: str) -> None:
        super().__init__(4003, f"Order {order_id} in status {status} cannot {action}", 422)


class OrderNotFoundError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4004, f"Order not found: {order_id}", 404)


class TrackingRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(4005, "Both carrier and tracking number are required", 422)


class CancelWindowExpiredError(AppError):
    def __init__(self, order_id: str, hours: int) -> None:
        super().__init__(
            4006, f"Order {order_id} can only be cancelled within {hours} hours of placement", 422
        )


class OrderConcurrentUpdateError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4007, f"Order {order_id} was modified concurrently, retry", 409)


class OrderAccessDeniedError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(4008, f"Not a party to order {order_id}", 403)


# --- 5xxx: Returns / Disputes ---

class ReturnNotFoundError(AppError):
    def __init__(self, return_id: str) -> None:
        super().__init__(5001, f"Return not found: {return_id}", 404)


class DisputeNotFoundError(AppError):
    def __init__(self, dispute_id: str) -> None:
        super().__init__(5002, f"Dispute not found: {dispute_id}", 404)


class InvalidReturnTransitionError(AppError):
    def __init__(self, return_id: str, current: str, target: str) -> None:
        super().__init__(5003, f"Return {return_id} cannot move from {current} to {target}", 422)


class InvalidDisputeTransitionError(AppError):
    def __init__(self, dispute_id: str, current: str, target: str) -> None:
        super().__init__(5004, f"Dispute {dispute_id} cannot move from {current} to {target}", 422)


class ReturnNotEligibleError(AppError):
    def __init__(self, order_id: str, status: str) -> None:
        super().__init__(
            5005, f"Order {order_id} in status {status} is not eligible for a return", 422
        )


class OpenReturnExistsError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(5006, f"Order {order_id} already has an open return", 409)


class RefundExceedsOrderError(AppError):
    def __init__(self, refund_amount: int, refundable: int) -> None:
        super().__init__(
            5007,
            f"Refund amount {refund_amount} cents exceeds the {refundable} cents still refundable on the order",
            422,
        )


class ResolutionRequiredError(AppError):
    def __init__(self) -> None:
        super().__init__(5008, "A resolution is required to close a dispute", 422)


class ReturnAccessDeniedError(AppError):
    def __init__(self, return_id: str) -> None:
        super().__init__(5009, f"Not allowed to change return {return_id}", 403)


class DisputeAccessDeniedError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(5010, f"Only the buyer or seller of order {order_id} can open a dispute", 403)


class ResolutionNotAllowedError(AppError):
    def __init__(self, status: str) -> None:
        super().__init__(5011, f"A resolution can only be recorded when closing a dispute, not for {status}", 422)


class InvalidRefundAmountError(AppError):
    def __init__(self, amount: int) -> None:
        super().__init__(5012, f"Refund amount must be positive, got {amount}", 422)


class OrderFullyRefundedError(AppError):
    def __init__(self, order_id: str) -> None:
        super().__init__(5013, f"Order {order_id} has already been refunded in full", 409)


# --- 6xxx: Webhooks ---

class InvalidWebhookSignatureError(AppError):
    def __init__(self) -> None:
        super().__init__(6001, "Invalid webhook signature", 401)


class UnsupportedWebhookEventError(AppError):
    def __init__(self, source: str, event_type: str) -> None:
        super().__init__(6002, f"Unsupported {source} event: {event_type}", 422)


class InvalidWebhookPayloadError(AppError):
    def __init__(self, detail: str) -> None:
        super().__init__(6003, f"Invalid webhook payload: {detail}", 422)


# --- 9xxx: System / Collaborators ---

class InternalError(AppError):
    def __init__(self, detail: str = "Internal server error") -> None:
        super().__init__(9002, detail, 500)


class CollaboratorError(AppError):
    """An external collaborator failed; message is surfaced verbatim where safe."""

    def __init__(self, detail: str) -> None:
        super().__init__(9003, detail, 502)
