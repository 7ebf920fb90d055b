# app/services/session_service.py
import logging

from sqlmodel import Session

from app.core.auth import TokenIssuer
from app.core.errors import InvalidCredentials, NotFound, NotVerified
from app.core.security import verify_password
from app.repositories.user_repo import UserRepository
from app.schemas.user import LoginRequest, LoginResponse, UserSummary

logger = logging.getLogger(__name__)


class SessionService:
    """
    Login: credential check, verification gate, token issuance.

    Check order is fixed: unknown email -> NotFound, wrong password ->
    InvalidCredentials, unverified -> NotVerified. The verification status
    is only revealed to a caller who knows the password.
    """

    def __init__(self, repo: UserRepository, issuer: TokenIssuer):
        self.repo = repo
        self.issuer = issuer

    def login(self, session: Session, payload: LoginRequest) -> LoginResponse:
        user = self.repo.find_by_email(session, payload.email)
        if user is None:
            raise NotFound()

        if not verify_password(payload.password, user.password_hash):
            logger.info("Rejected login for account %s: bad password", user.id)
            raise InvalidCredentials()

        if not user.is_verified:
            raise NotVerified()

        token = self.issuer.issue(user.id, user.role)
        logger.info("Account %s logged in", user.id)
        return LoginResponse(
            message="Login successful",
            token=token,
            user=UserSummary(
                id=user.id,
                full_name=user.full_name,
                email=user.email,
                role=user.role,
            ),
        )
