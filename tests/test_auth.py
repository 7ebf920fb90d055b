"""Tests for the token issuer and the access guard."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from app.core.auth import TokenIssuer, authenticate, authorize
from app.core.errors import Forbidden, InvalidToken, TokenExpired, Unauthenticated
from app.schemas.user import Principal


@pytest.fixture()
def issuer() -> TokenIssuer:
    return TokenIssuer(secret="test-secret")


def test_issue_embeds_identity_role_and_seven_day_expiry(issuer):
    account_id = uuid.uuid4()
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    token = issuer.issue(account_id, "coach", now=now)
    claims = jwt.get_unverified_claims(token)

    assert claims["sub"] == str(account_id)
    assert claims["role"] == "coach"
    assert claims["iat"] == int(now.timestamp())
    assert claims["exp"] - claims["iat"] == int(timedelta(days=7).total_seconds())


def test_issue_is_deterministic_for_the_same_instant(issuer):
    account_id = uuid.uuid4()
    now = datetime(2026, 1, 1, tzinfo=timezone.utc)

    assert issuer.issue(account_id, "student", now=now) == issuer.issue(
        account_id, "student", now=now
    )


def test_verify_round_trip(issuer):
    account_id = uuid.uuid4()

    principal = issuer.verify(issuer.issue(account_id, "owner"))

    assert principal == Principal(account_id=account_id, role="owner")


def test_verify_rejects_expired_token(issuer):
    old = datetime.now(timezone.utc) - timedelta(days=8)
    token = issuer.issue(uuid.uuid4(), "student", now=old)

    with pytest.raises(TokenExpired):
        issuer.verify(token)


def test_verify_rejects_token_signed_with_another_secret(issuer):
    token = TokenIssuer(secret="rotated").issue(uuid.uuid4(), "owner")

    with pytest.raises(InvalidToken):
        issuer.verify(token)


def test_verify_rejects_garbage_and_bad_claims(issuer):
    with pytest.raises(InvalidToken):
        issuer.verify("not.a.token")

    bad_role = jwt.encode(
        {"sub": str(uuid.uuid4()), "role": "admin"}, "test-secret", algorithm="HS256"
    )
    with pytest.raises(InvalidToken):
        issuer.verify(bad_role)

    no_sub = jwt.encode({"role": "owner"}, "test-secret", algorithm="HS256")
    with pytest.raises(InvalidToken):
        issuer.verify(no_sub)


def test_authenticate_requires_a_token(issuer):
    with pytest.raises(Unauthenticated):
        authenticate(issuer, None)
    with pytest.raises(Unauthenticated):
        authenticate(issuer, "")


def test_student_is_never_authorized_as_owner(issuer):
    principal = authenticate(issuer, issuer.issue(uuid.uuid4(), "student"))

    with pytest.raises(Forbidden):
        authorize(principal, ["owner"])


def test_authorize_allows_listed_roles():
    principal = Principal(account_id=uuid.uuid4(), role="coach")

    assert authorize(principal, ["coach", "owner"]) is principal
