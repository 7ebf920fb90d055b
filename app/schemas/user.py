# app/schemas/user.py
import uuid
from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, EmailStr, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Role = Literal["student", "coach", "owner"]
DEFAULT_ROLE = "student"

# bcrypt only looks at the first 72 bytes of a secret.
MAX_PASSWORD_BYTES = 72


def _normalize_email(v: Any) -> Any:
    if isinstance(v, str):
        return v.strip().lower()
    return v


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return v
    return v.strip()


# -------- Requests --------


class RegisterRequest(BaseModel):
    """
    Registration payload.

    This is the single place where registration input is validated and
    normalized:
      - full_name: required, stripped, non-empty
      - email: valid address, stripped + lower-cased
      - password: 5..72 bytes
      - accepted_terms: literal true or the string "true"
      - role: case-folded, defaults to "student", must be a known role
    """

    model_config = ConfigDict(extra="forbid")

    full_name: str = Field(max_length=200)
    email: EmailStr
    password: str = Field(min_length=5)
    # Self-selected at sign-up, owner included; nothing here restricts it.
    role: Role = DEFAULT_ROLE
    phone_number: str = Field(default="", max_length=50)
    country: str = Field(default="", max_length=100)
    accepted_terms: bool

    @field_validator("full_name")
    @classmethod
    def normalize_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("fullName cannot be empty")
        return v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if len(v.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError("password is too long")
        return v

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, v: Any) -> Any:
        if v is None:
            return DEFAULT_ROLE
        if isinstance(v, str):
            return v.strip().lower() or DEFAULT_ROLE
        return v

    @field_validator("phone_number", "country", mode="before")
    @classmethod
    def blank_optional(cls, v: Any) -> Any:
        if v is None:
            return ""
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("accepted_terms", mode="before")
    @classmethod
    def require_terms(cls, v: Any) -> bool:
        if v is True or v == "true":
            return True
        raise ValueError("You must accept the terms and conditions")


class VerifyEmailRequest(BaseModel):
    """
    Code confirmation plus optional profile fields to confirm or fill in
    at activation time.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    email: EmailStr
    code: str = Field(min_length=1, max_length=12)
    full_name: str | None = Field(default=None, max_length=200, alias="fullName")
    phone_number: str | None = Field(default=None, max_length=50, alias="phoneNumber")
    country: str | None = Field(default=None, max_length=100)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)

    @field_validator("code", mode="before")
    @classmethod
    def code_as_text(cls, v: Any) -> Any:
        # Codes are compared as text; a JSON number must not lose digits.
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("full_name", "phone_number", "country")
    @classmethod
    def strip_fields(cls, v: str | None) -> str | None:
        return _strip_optional(v)

    def profile_fields(self) -> dict[str, str]:
        """Non-empty profile fields to write on activation."""
        fields = {
            "full_name": self.full_name,
            "phone_number": self.phone_number,
            "country": self.country,
        }
        return {k: v for k, v in fields.items() if v}


class ResendCodeRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    email: EmailStr
    password: str = Field(min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Any:
        return _normalize_email(v)


# -------- Responses --------


class PendingRegistration(BaseModel):
    """
    Register / resend response.

    `code` is only filled when EXPOSE_VERIFICATION_CODE is enabled.
    """

    message: str
    email: str
    code: str | None = None


class VerifiedAccount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    id: uuid.UUID
    email: str
    full_name: str = Field(alias="fullName")
    role: Role
    is_verified: bool = Field(alias="isVerified")


class UserSummary(BaseModel):
    """Minimal public profile returned on login."""

    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    full_name: str = Field(alias="fullName")
    email: str
    role: Role


class LoginResponse(BaseModel):
    message: str
    token: str
    user: UserSummary


class UserRead(BaseModel):
    """
    Listing schema returned to owners.

    Built from UserRepository.list_all rows, which already leave out
    SECRET_FIELDS. Serialized in camelCase like the other responses.
    """

    model_config = ConfigDict(
        from_attributes=True, populate_by_name=True, alias_generator=to_camel
    )

    id: uuid.UUID
    email: str
    full_name: str
    phone_number: str
    country: str
    profile_photo_url: str
    role: Role
    accepted_terms: bool
    is_verified: bool
    created_at: datetime
    updated_at: datetime


class Principal(BaseModel):
    """Authenticated identity + role extracted from a validated token."""

    account_id: uuid.UUID
    role: Role
