"""Tests for the account store."""

from __future__ import annotations

from datetime import timedelta

import pytest

from app.core.errors import Conflict
from app.models.user import SECRET_FIELDS, User, utcnow


def _user(email: str = "ann@x.com", code: str | None = "123456") -> User:
    return User(
        email=email,
        full_name="Ann",
        password_hash="$2b$10$hash",
        accepted_terms=True,
        verification_code=code,
        verification_code_issued_at=utcnow(),
    )


def test_create_assigns_id_and_timestamps(session, repo):
    user = repo.create(session, _user())

    assert user.id is not None
    assert user.created_at is not None
    assert user.role == "student"
    assert user.is_verified is False


def test_duplicate_email_is_rejected_by_the_store(session, repo):
    repo.create(session, _user())

    with pytest.raises(Conflict):
        repo.create(session, _user())

    assert len(repo.list_all(session)) == 1


def test_find_by_email(session, repo):
    repo.create(session, _user())

    assert repo.find_by_email(session, "ann@x.com").full_name == "Ann"
    assert repo.find_by_email(session, "bob@x.com") is None


def test_activate_applies_once(session, repo):
    repo.create(session, _user())

    assert repo.activate(session, "ann@x.com", "123456", {"country": "GH"}) is True
    assert repo.activate(session, "ann@x.com", "123456", {}) is False

    user = repo.find_by_email(session, "ann@x.com")
    assert user.is_verified is True
    assert user.verification_code is None
    assert user.verification_code_issued_at is None
    assert user.country == "GH"


def test_activate_requires_the_stored_code(session, repo):
    repo.create(session, _user())

    assert repo.activate(session, "ann@x.com", "654321", {}) is False
    assert repo.find_by_email(session, "ann@x.com").is_verified is False


def test_reissue_code_only_for_unverified(session, repo):
    repo.create(session, _user())
    later = utcnow() + timedelta(minutes=1)

    assert repo.reissue_code(session, "ann@x.com", "222222", later) is True
    assert repo.find_by_email(session, "ann@x.com").verification_code == "222222"

    repo.activate(session, "ann@x.com", "222222", {})
    assert repo.reissue_code(session, "ann@x.com", "333333", later) is False
    assert repo.find_by_email(session, "ann@x.com").verification_code is None


def test_save_persists_changes_and_bumps_updated_at(session, repo):
    user = repo.create(session, _user())
    before = user.updated_at

    user.phone_number = "+233 20 000 0000"
    saved = repo.save(session, user)

    assert saved.phone_number == "+233 20 000 0000"
    assert saved.updated_at >= before


def test_list_all_returns_every_account(session, repo):
    repo.create(session, _user("ann@x.com"))
    repo.create(session, _user("bob@x.com"))

    emails = [row["email"] for row in repo.list_all(session)]

    assert sorted(emails) == ["ann@x.com", "bob@x.com"]


def test_list_all_leaves_out_secret_columns(session, repo):
    repo.create(session, _user())

    (row,) = repo.list_all(session)

    assert row["full_name"] == "Ann"
    assert SECRET_FIELDS.isdisjoint(row)


def test_list_all_with_custom_exclusions(session, repo):
    repo.create(session, _user())

    (row,) = repo.list_all(session, exclude={"phone_number"})

    assert "phone_number" not in row
    assert row["password_hash"] == "$2b$10$hash"
