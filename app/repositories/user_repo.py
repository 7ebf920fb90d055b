# app/repositories/user_repo.py
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlmodel import Session, select

from app.core.errors import Conflict, StoreUnavailable
from app.models.user import SECRET_FIELDS, User, utcnow


class UserRepository:
    """
    Data access layer for User.

    Responsibilities:
      - Pure DB operations (CRUD + queries)
      - Uniqueness and one-shot activation are decided by the database
        (unique index, conditional UPDATE), never by read-then-write
      - No FastAPI, no HTTP, no business logic
    """

    # ----- Queries -----

    def find_by_email(self, session: Session, email: str) -> User | None:
        """Return a User by normalized email, or None if not found."""
        stmt = select(User).where(User.email == email)
        try:
            return session.exec(stmt).first()
        except OperationalError as exc:
            raise StoreUnavailable() from exc

    def list_all(
        self, session: Session, exclude: Iterable[str] = SECRET_FIELDS
    ) -> list[dict[str, Any]]:
        """
        Every account, oldest first, as plain dicts.

        Args:
            exclude: column names left out of each row (secrets by default)
        """
        stmt = select(User).order_by(User.created_at)
        try:
            users = session.exec(stmt).all()
        except OperationalError as exc:
            raise StoreUnavailable() from exc
        omitted = set(exclude)
        return [user.model_dump(exclude=omitted) for user in users]

    # ----- Writes -----

    def create(self, session: Session, user: User) -> User:
        """
        Insert a new User and return the persisted row.

        Raises:
            Conflict: the unique email index rejected the insert.
        """
        session.add(user)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise Conflict() from exc
        except OperationalError as exc:
            session.rollback()
            raise StoreUnavailable() from exc
        session.refresh(user)
        return user

    def save(self, session: Session, user: User) -> User:
        """Persist changes to an existing User."""
        user.updated_at = utcnow()
        session.add(user)
        try:
            session.commit()
        except OperationalError as exc:
            session.rollback()
            raise StoreUnavailable() from exc
        session.refresh(user)
        return user

    def activate(
        self,
        session: Session,
        email: str,
        code: str,
        profile: dict[str, str],
        now: datetime | None = None,
    ) -> bool:
        """
        Flip an account to verified if, and only if, it is still unverified
        and still holds `code`.

        Runs as one conditional UPDATE, so among concurrent attempts at most
        one matches a row.

        Returns:
            True if this call activated the account.
        """
        values = {
            **profile,
            "is_verified": True,
            "verification_code": None,
            "verification_code_issued_at": None,
            "updated_at": now or utcnow(),
        }
        stmt = (
            update(User)
            .where(User.email == email)
            .where(User.is_verified == False)  # noqa: E712
            .where(User.verification_code == code)
            .values(**values)
        )
        return self._execute_update(session, stmt)

    def reissue_code(
        self, session: Session, email: str, code: str, issued_at: datetime
    ) -> bool:
        """
        Replace the pending code of a still-unverified account.

        Returns:
            False if the account was verified in the meantime.
        """
        stmt = (
            update(User)
            .where(User.email == email)
            .where(User.is_verified == False)  # noqa: E712
            .values(
                verification_code=code,
                verification_code_issued_at=issued_at,
                updated_at=issued_at,
            )
        )
        return self._execute_update(session, stmt)

    def _execute_update(self, session: Session, stmt) -> bool:
        try:
            result = session.exec(stmt)
            session.commit()
        except OperationalError as exc:
            session.rollback()
            raise StoreUnavailable() from exc
        return result.rowcount == 1
