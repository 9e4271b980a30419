"""Tests for mk_common.money."""

import pytest

from src.mk_common.errors import InvalidAmountError
from src.mk_common.money import cents_to_display, percent_of, validate_amount


class TestPercentOf:
    def test_exact(self) -> None:
        assert percent_of(10000, 200) == 200

    def test_rounds_up(self) -> None:
        # 333 * 1.5% = 4.995 -> 5
        assert percent_of(333, 150) == 5

    def test_smallest_fee_is_one_cent(self) -> None:
        assert percent_of(1, 1) == 1

    def test_zero_amount(self) -> None:
        assert percent_of(0, 1000) == 0

    def test_zero_bps(self) -> None:
        assert percent_of(10000, 0) == 0


class TestCentsToDisplay:
    def test_basic(self) -> None:
        assert cents_to_display(11599) == "115.99 RON"

    def test_thousands(self) -> None:
        assert cents_to_display(123456789) == "1,234,567.89 RON"

    def test_negative(self) -> None:
        assert cents_to_display(-8000) == "-80.00 RON"

    def test_currency(self) -> None:
        assert cents_to_display(5, "EUR") == "0.05 EUR"


class TestValidateAmount:
    def test_positive_ok(self) -> None:
        validate_amount(1)

    @pytest.mark.parametrize("amount", [0, -1])
    def test_rejects_non_positive(self, amount: int) -> None:
        with pytest.raises(InvalidAmountError) as exc_info:
            validate_amount(amount)
        assert exc_info.value.code == 2004
