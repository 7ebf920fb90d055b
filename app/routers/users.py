# app/routers/users.py
import pydantic
from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlmodel import Session

from app.core.auth import TokenIssuer, get_token_issuer, require_owner
from app.core.config import Settings, get_settings
from app.core.email_client import Notifier, get_email_client
from app.core.errors import ValidationError
from app.core.storage_utils import PhotoStorage, get_photo_store
from app.database import get_session
from app.repositories.user_repo import UserRepository
from app.schemas.user import (
    LoginRequest,
    LoginResponse,
    PendingRegistration,
    RegisterRequest,
    ResendCodeRequest,
    UserRead,
    VerifiedAccount,
    VerifyEmailRequest,
)
from app.services.session_service import SessionService
from app.services.user_service import UserService
from app.services.verification_service import PhotoUpload, VerificationService

router = APIRouter(prefix="/users", tags=["Users"])

repo = UserRepository()
user_service = UserService(repo)

# Form field names as clients send them.
REGISTER_FIELD_NAMES = {
    "full_name": "fullName",
    "phone_number": "phoneNumber",
    "accepted_terms": "acceptedTerms",
}


def get_verification_service(
    notifier: Notifier = Depends(get_email_client),
    photo_store: PhotoStorage | None = Depends(get_photo_store),
    settings: Settings = Depends(get_settings),
) -> VerificationService:
    return VerificationService(repo, notifier, photo_store, settings)


def get_session_service(
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> SessionService:
    return SessionService(repo, issuer)


def _parse_register_form(**fields) -> RegisterRequest:
    """Validate form fields, reporting failures as a 400 ValidationError."""
    try:
        return RegisterRequest(**fields)
    except pydantic.ValidationError as exc:
        names = sorted(
            {
                REGISTER_FIELD_NAMES.get(str(err["loc"][0]), str(err["loc"][0]))
                for err in exc.errors()
                if err.get("loc")
            }
        )
        raise ValidationError(f"Invalid or missing fields: {', '.join(names)}.") from exc


# -------- Registration & verification --------


@router.post(
    "/register",
    response_model=PendingRegistration,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def register(
    full_name: str | None = Form(None, alias="fullName"),
    email: str | None = Form(None),
    password: str | None = Form(None),
    role: str | None = Form(None),
    phone_number: str | None = Form(None, alias="phoneNumber"),
    country: str | None = Form(None),
    accepted_terms: str | None = Form(None, alias="acceptedTerms"),
    profile_photo: UploadFile | None = File(None, alias="profilePhoto"),
    session: Session = Depends(get_session),
    service: VerificationService = Depends(get_verification_service),
    settings: Settings = Depends(get_settings),
):
    """
    Create an unverified account and email it a 6-digit code.

    Multipart form; `profilePhoto` is an optional JPEG/PNG/WEBP image.
    The response never contains the password (nor the code, unless
    EXPOSE_VERIFICATION_CODE is enabled outside production).
    """
    payload = _parse_register_form(
        full_name=full_name,
        email=email,
        password=password,
        role=role,
        phone_number=phone_number,
        country=country,
        accepted_terms=accepted_terms,
    )

    photo = None
    if profile_photo is not None and profile_photo.filename:
        photo = PhotoUpload(
            content_type=profile_photo.content_type or "",
            # One byte past the limit is enough to reject an oversized image.
            file_bytes=profile_photo.file.read(settings.MAX_PHOTO_BYTES + 1),
        )

    return service.register(session, payload, photo)


@router.post("/verify-email", response_model=VerifiedAccount)
def verify_email(
    payload: VerifyEmailRequest,
    session: Session = Depends(get_session),
    service: VerificationService = Depends(get_verification_service),
):
    """
    Consume the emailed code and activate the account.

    Optional `fullName`, `phoneNumber`, `country` overwrite the values given
    at registration.
    """
    return service.verify_code(session, payload)


@router.post(
    "/resend-code",
    response_model=PendingRegistration,
    response_model_exclude_none=True,
)
def resend_code(
    payload: ResendCodeRequest,
    session: Session = Depends(get_session),
    service: VerificationService = Depends(get_verification_service),
):
    """Issue a fresh code for an account that is not verified yet."""
    return service.resend_code(session, payload)


# -------- Session --------


@router.post("/login", response_model=LoginResponse)
def login(
    payload: LoginRequest,
    session: Session = Depends(get_session),
    service: SessionService = Depends(get_session_service),
):
    """
    Exchange email + password for a 7-day bearer token.

    Blocked with 403 until the email is verified.
    """
    return service.login(session, payload)


# -------- Owner endpoints --------


@router.get(
    "/all",
    response_model=list[UserRead],
    dependencies=[Depends(require_owner)],
)
def list_users(session: Session = Depends(get_session)):
    """
    List all accounts (owner only).

    Password hashes and verification codes are never included.
    """
    return user_service.list_users(session)
