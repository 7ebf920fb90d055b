# app/core/auth.py
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Iterable

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError, ExpiredSignatureError

from app.core.config import get_settings
from app.core.errors import Forbidden, InvalidToken, TokenExpired, Unauthenticated
from app.schemas.user import Principal, Role

# HTTP Bearer scheme:
# - auto_error=False => a missing Authorization header reaches
#   get_current_principal, which answers with our own 401 body.
bearer_scheme = HTTPBearer(auto_error=False)


class TokenIssuer:
    """
    Mints and validates signed session tokens.

    Claims:
      - sub:  account id (UUID as string)
      - role: account role at login time
      - iat / exp: issued-at and expiry (iat + ttl), unix seconds

    The signing secret is process-wide; rotating it invalidates every
    outstanding token. There is no revocation list.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", ttl: timedelta = timedelta(days=7)):
        self.secret = secret
        self.algorithm = algorithm
        self.ttl = ttl

    def issue(self, account_id: uuid.UUID, role: str, now: datetime | None = None) -> str:
        """Sign a token for `account_id`; equal inputs and time give an equal token."""
        now = now or datetime.now(timezone.utc)
        payload: dict[str, Any] = {
            "sub": str(account_id),
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + self.ttl).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def verify(self, token: str) -> Principal:
        """
        Decode and verify a token (signature + exp).

        Raises:
            TokenExpired: exp is in the past.
            InvalidToken: bad signature, malformed token or claims.
        """
        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpired() from exc
        except JWTError as exc:
            raise InvalidToken() from exc

        try:
            return Principal(account_id=uuid.UUID(payload["sub"]), role=payload["role"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidToken() from exc


@lru_cache
def get_token_issuer() -> TokenIssuer:
    """Process-wide issuer built from settings."""
    settings = get_settings()
    return TokenIssuer(
        secret=settings.JWT_SECRET,
        algorithm=settings.JWT_ALG,
        ttl=timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS),
    )


# -------- Access guard --------


def authenticate(issuer: TokenIssuer, token: str | None) -> Principal:
    """
    Resolve the caller from a presented bearer token.

    Raises:
        Unauthenticated (or its InvalidToken / TokenExpired subclasses).
    """
    if not token:
        raise Unauthenticated()
    return issuer.verify(token)


def authorize(principal: Principal, allowed_roles: Iterable[Role]) -> Principal:
    """
    Pure role-membership check.

    Raises:
        Forbidden: principal.role is not in allowed_roles.
    """
    if principal.role not in set(allowed_roles):
        raise Forbidden()
    return principal


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> Principal:
    """
    Enforce authentication.

    Attached to a route, requests without a valid token are rejected with
    401 before the handler runs.
    """
    token = credentials.credentials if credentials is not None else None
    return authenticate(issuer, token)


def require_roles(*roles: Role):
    """
    Dependency factory: allow only principals holding one of `roles`.

    Usage:
        @router.get("/all", dependencies=[Depends(require_roles("owner"))])
    """

    def _require(principal: Principal = Depends(get_current_principal)) -> Principal:
        return authorize(principal, roles)

    return _require


require_owner = require_roles("owner")
