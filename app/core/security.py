# app/core/security.py
import secrets

import bcrypt

# bcrypt cost factor
BCRYPT_ROUNDS = 10

CODE_MIN = 100000
CODE_MAX = 999999


def hash_password(password: str) -> str:
    """
    One-way salted hash of a secret.

    Returns the bcrypt hash as text, suitable for `User.password_hash`.
    """
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """
    Check a candidate secret against a stored bcrypt hash.

    bcrypt.checkpw compares in constant time. A malformed stored hash is
    treated as a mismatch.
    """
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def generate_verification_code() -> str:
    """
    Six-digit one-time code, uniform over [100000, 999999].

    Returned as text: codes are always compared as strings.
    """
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def codes_match(expected: str | None, supplied: str | int | None) -> bool:
    """Constant-time, string-normalized comparison of verification codes."""
    if expected is None or supplied is None:
        return False
    return secrets.compare_digest(
        str(expected).strip().encode(), str(supplied).strip().encode()
    )
