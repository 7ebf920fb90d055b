# app/models/user.py
import uuid
from datetime import datetime, timezone

from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Columns never handed out by listings.
SECRET_FIELDS = frozenset(
    {"password_hash", "verification_code", "verification_code_issued_at"}
)


class User(SQLModel, table=True):
    """
    Persistent account record.

    Identity:
      - id: UUID assigned at creation, never changes
      - email: stored stripped + lower-cased; the unique index on the
        normalized value makes uniqueness case-insensitive

    Lifecycle:
      - inserted unverified at registration, with `verification_code`
        and `verification_code_issued_at` set
      - activated in place by a successful verification, which sets
        `is_verified` and clears both code columns

    Role:
      - "student" | "coach" | "owner" (validated before insert)
    """

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )

    email: str = Field(
        unique=True,
        index=True,
        max_length=255,
        description="Normalized (lower-case) email address",
    )

    full_name: str = Field(max_length=200)
    phone_number: str = Field(default="", max_length=50)
    country: str = Field(default="", max_length=100)
    profile_photo_url: str = Field(default="", description="Public URL in photo storage")

    # bcrypt output, never the raw secret
    password_hash: str

    role: str = Field(
        default="student",
        index=True,
        description="Application role: student | coach | owner",
    )

    accepted_terms: bool = Field(default=False)

    is_verified: bool = Field(default=False)
    verification_code: str | None = Field(default=None, max_length=6)
    verification_code_issued_at: datetime | None = Field(default=None)

    created_at: datetime = Field(
        default_factory=utcnow,
        description="Creation timestamp (UTC)",
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        description="Last modification timestamp (UTC)",
    )
