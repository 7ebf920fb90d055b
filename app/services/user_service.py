# app/services/user_service.py
from typing import Any

from sqlmodel import Session

from app.repositories.user_repo import UserRepository


class UserService:
    """
    Read-side operations on accounts.

    Role gating happens at the router (require_roles); this layer only
    orchestrates the repository.
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    def list_users(self, session: Session) -> list[dict[str, Any]]:
        """All accounts (owner only), without password hashes or codes."""
        return self.repo.list_all(session)
