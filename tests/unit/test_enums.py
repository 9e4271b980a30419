"""Tests for mk_common.enums: values must match DB CHECK constraints."""

from src.mk_common.enums import (
    TERMINAL_ORDER_STATUSES,
    WITHDRAWAL_ELIGIBLE_KYC,
    ActorRole,
    BalanceBucket,
    KycStatus,
    OrderStatus,
    PaymentMethod,
    ReturnStatus,
)


class TestAllEnumsAreStr:
    def test_order_status_is_str(self) -> None:
        assert isinstance(OrderStatus.PAID, str)
        assert OrderStatus.PAID == "paid"

    def test_payment_method_values(self) -> None:
        assert {m.value for m in PaymentMethod} == {"card", "cod"}


class TestOrderStatus:
    def test_all_values(self) -> None:
        assert {s.value for s in OrderStatus} == {
            "pending", "paid", "shipped", "delivered", "cancelled", "refunded",
        }

    def test_terminal_statuses(self) -> None:
        assert TERMINAL_ORDER_STATUSES == {
            OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED,
        }
        assert OrderStatus.SHIPPED not in TERMINAL_ORDER_STATUSES


class TestLedgerEnums:
    def test_buckets_are_upper_case(self) -> None:
        assert [b.value for b in BalanceBucket] == ["PENDING", "AVAILABLE", "IN_TRANSFER"]

    def test_withdrawal_eligible_kyc(self) -> None:
        assert KycStatus.VERIFIED in WITHDRAWAL_ELIGIBLE_KYC
        assert KycStatus.APPROVED in WITHDRAWAL_ELIGIBLE_KYC
        assert KycStatus.PENDING not in WITHDRAWAL_ELIGIBLE_KYC


class TestResolutionEnums:
    def test_return_status_values(self) -> None:
        assert ReturnStatus("completed") is ReturnStatus.COMPLETED

    def test_actor_roles(self) -> None:
        assert ActorRole.PAYMENT_PROCESSOR.value == "payment_processor"
