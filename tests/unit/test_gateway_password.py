"""Unit tests for password hashing utilities."""

from src.mk_gateway.auth.password import exceeds_bcrypt_limit, hash_password, verify_password


def test_hash_is_not_plain():
    hashed = hash_password("Seller2026")
    assert hashed != "Seller2026"
    assert hashed.startswith("$2")


def test_verify_correct_password():
    assert verify_password("Seller2026", hash_password("Seller2026")) is True


def test_verify_wrong_password():
    assert verify_password("Buyer2026", hash_password("Seller2026")) is False


def test_same_plain_produces_different_hashes():
    assert hash_password("Seller2026") != hash_password("Seller2026")


def test_password_over_bcrypt_limit_never_verifies():
    hashed = hash_password("Seller2026")
    assert verify_password("Seller2026" + "x" * 80, hashed) is False


def test_limit_counts_bytes_not_characters():
    # 25 three-byte characters = 75 bytes
    assert exceeds_bcrypt_limit("€" * 25) is True
    assert exceeds_bcrypt_limit("a" * 72) is False
