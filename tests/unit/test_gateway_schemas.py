"""Unit tests for mk_gateway Pydantic schemas."""

import pytest
from pydantic import ValidationError

from src.mk_gateway.user.schemas import RegisterRequest


class TestRegisterRequest:
    def test_valid_input_with_country(self) -> None:
        req = RegisterRequest(
            username="ro_seller", email="seller@example.ro", password="SecureP4ss", country="RO"
        )
        assert req.country == "RO"

    def test_country_is_optional(self) -> None:
        req = RegisterRequest(username="buyer", email="b@example.com", password="SecureP4ss")
        assert req.country is None

    def test_username_too_short(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="ab", email="a@b.com", password="SecureP4ss")

    def test_username_invalid_chars(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="seller!", email="a@b.com", password="SecureP4ss")

    def test_invalid_email(self) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="seller", email="not-an-email", password="SecureP4ss")

    @pytest.mark.parametrize("password", ["Ab1", "alllower1", "ALLUPPER1", "NoDigitPass"])
    def test_weak_password(self, password: str) -> None:
        with pytest.raises(ValidationError):
            RegisterRequest(username="seller", email="a@b.com", password=password)

    def test_password_over_72_bytes(self) -> None:
        with pytest.raises(ValidationError, match="72 bytes"):
            RegisterRequest(username="seller", email="a@b.com", password="Aa1" + "€" * 30)
