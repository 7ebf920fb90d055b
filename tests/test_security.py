"""Tests for password hashing and verification codes."""

from __future__ import annotations

from app.core import security
from app.core.security import (
    codes_match,
    generate_verification_code,
    hash_password,
    verify_password,
)


def test_hash_is_not_the_plaintext_and_verifies():
    hashed = hash_password("secret")

    assert hashed != "secret"
    assert hashed.startswith("$2")
    assert verify_password("secret", hashed)
    assert not verify_password("Secret", hashed)


def test_hashes_are_salted():
    assert hash_password("secret") != hash_password("secret")


def test_verify_password_rejects_malformed_hash():
    assert verify_password("secret", "not-a-bcrypt-hash") is False


def test_codes_are_six_digit_strings_in_range():
    for _ in range(200):
        code = generate_verification_code()
        assert isinstance(code, str)
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999


def test_code_bounds_are_reachable(monkeypatch):
    monkeypatch.setattr(security.secrets, "randbelow", lambda n: 0)
    assert generate_verification_code() == "100000"

    monkeypatch.setattr(security.secrets, "randbelow", lambda n: n - 1)
    assert generate_verification_code() == "999999"


def test_codes_compare_as_text():
    assert codes_match("482913", "482913")
    assert codes_match("482913", " 482913 ")
    assert codes_match("482913", 482913)
    assert not codes_match("482913", "482914")
    assert not codes_match("012345", "12345")
    assert not codes_match(None, "482913")
    assert not codes_match("482913", None)
