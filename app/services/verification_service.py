# app/services/verification_service.py
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlmodel import Session

from app.core.config import Settings
from app.core.email_client import Notifier
from app.core.errors import (
    AlreadyVerified,
    CodeExpired,
    Conflict,
    InvalidCode,
    NotFound,
    PhotoTooLarge,
    UploadFailed,
    ValidationError,
)
from app.core.security import codes_match, generate_verification_code, hash_password
from app.core.storage_utils import (
    ALLOWED_IMAGE_CONTENT_TYPES,
    PhotoStorage,
    generate_filename,
)
from app.models.user import User, utcnow
from app.repositories.user_repo import UserRepository
from app.schemas.user import (
    PendingRegistration,
    RegisterRequest,
    ResendCodeRequest,
    VerifiedAccount,
    VerifyEmailRequest,
)

logger = logging.getLogger(__name__)


@dataclass
class PhotoUpload:
    content_type: str
    file_bytes: bytes


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class VerificationService:
    """
    Registration and email verification.

    Lifecycle:
      - register: the account is inserted unverified, holding a fresh
        6-digit code and its issuance time, then the code is emailed
      - verify_code: one-shot activation; sets is_verified and clears the
        code in a single conditional UPDATE
      - resend_code: re-issues a code for an account that is still
        unverified (e.g. after the first email failed)

    Slow work (bcrypt, photo upload, SMTP) runs outside any transaction.
    """

    def __init__(
        self,
        repo: UserRepository,
        notifier: Notifier,
        photo_store: PhotoStorage | None,
        settings: Settings,
    ):
        self.repo = repo
        self.notifier = notifier
        self.photo_store = photo_store
        self.settings = settings

    @property
    def code_ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.VERIFICATION_CODE_TTL_MINUTES)

    # ----- Helpers -----

    def _pending(self, message: str, email: str, code: str) -> PendingRegistration:
        return PendingRegistration(
            message=message,
            email=email,
            code=code if self.settings.EXPOSE_VERIFICATION_CODE else None,
        )

    def _upload_photo(self, photo: PhotoUpload) -> str:
        """
        Validate and upload a profile photo, returning its public URL.

        Path pattern:
            users/<uuid4>.<ext>
        """
        ext = ALLOWED_IMAGE_CONTENT_TYPES.get(photo.content_type)
        if ext is None:
            raise ValidationError("Unsupported image type. Allowed: JPEG, PNG, WEBP.")
        if len(photo.file_bytes) > self.settings.MAX_PHOTO_BYTES:
            max_mb = self.settings.MAX_PHOTO_BYTES // (1024 * 1024)
            raise PhotoTooLarge(f"Image too large (max {max_mb}MB).")
        if self.photo_store is None:
            raise UploadFailed()

        path = f"users/{generate_filename(ext)}"
        return self.photo_store.upload(path, photo.file_bytes, photo.content_type)

    def _discard_photo(self, url: str) -> None:
        try:
            self.photo_store.delete_public_url(url)
        except Exception:
            logger.exception("Could not remove orphaned profile photo %s", url)

    def _send_code(self, user: User, code: str) -> None:
        self.notifier.send_verification_code(
            to_email=user.email,
            full_name=user.full_name,
            code=code,
            ttl_minutes=self.settings.VERIFICATION_CODE_TTL_MINUTES,
        )

    def _is_expired(self, issued_at: datetime | None, now: datetime) -> bool:
        if issued_at is None:
            return True
        return _as_utc(now) - _as_utc(issued_at) > self.code_ttl

    # ----- Operations -----

    def register(
        self,
        session: Session,
        payload: RegisterRequest,
        photo: PhotoUpload | None = None,
        now: datetime | None = None,
    ) -> PendingRegistration:
        """
        Create an unverified account and email it a verification code.

        Raises:
            Conflict: the email is already registered (verified or not).
            ValidationError: the photo has a bad type or size.
            UploadFailed: the photo could not be stored.
            NotifyFailed: the code email could not be sent. The account
                stays unverified with its code, so resend_code can recover.
        """
        email = payload.email
        if self.repo.find_by_email(session, email) is not None:
            raise Conflict()

        code = generate_verification_code()
        password_hash = hash_password(payload.password)

        photo_url = ""
        if photo is not None:
            photo_url = self._upload_photo(photo)

        user = User(
            email=email,
            full_name=payload.full_name,
            phone_number=payload.phone_number,
            country=payload.country,
            profile_photo_url=photo_url,
            password_hash=password_hash,
            role=payload.role,
            accepted_terms=payload.accepted_terms,
            is_verified=False,
            verification_code=code,
            verification_code_issued_at=now or utcnow(),
        )
        try:
            user = self.repo.create(session, user)
        except Conflict:
            # Lost a concurrent registration race on the unique index.
            if photo_url:
                self._discard_photo(photo_url)
            raise

        logger.info("Registered account %s (role=%s), sending code", user.id, user.role)
        self._send_code(user, code)

        return self._pending(
            "User registered successfully. Verification email sent.", user.email, code
        )

    def verify_code(
        self,
        session: Session,
        payload: VerifyEmailRequest,
        now: datetime | None = None,
    ) -> VerifiedAccount:
        """
        Consume a verification code and activate the account.

        Raises:
            NotFound: no account for this email.
            AlreadyVerified: the account was activated before (or by a
                concurrent request).
            InvalidCode: the code does not match, compared as text.
            CodeExpired: the code is older than the validity window.
        """
        now = now or utcnow()
        user = self.repo.find_by_email(session, payload.email)
        if user is None:
            raise NotFound("User not found. Please register first.")
        if user.is_verified:
            raise AlreadyVerified()
        if not codes_match(user.verification_code, payload.code):
            raise InvalidCode()
        if self._is_expired(user.verification_code_issued_at, now):
            raise CodeExpired()

        activated = self.repo.activate(
            session,
            email=user.email,
            code=user.verification_code,
            profile=payload.profile_fields(),
            now=now,
        )
        # The commit expired `user`; reads below reload the current row.
        if not activated:
            session.refresh(user)
            if user.is_verified:
                raise AlreadyVerified()
            # A resend replaced the code in between.
            raise InvalidCode()

        session.refresh(user)
        logger.info("Verified account %s", user.id)
        return VerifiedAccount(
            message="Email verified successfully. You can now log in.",
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            role=user.role,
            is_verified=user.is_verified,
        )

    def resend_code(
        self,
        session: Session,
        payload: ResendCodeRequest,
        now: datetime | None = None,
    ) -> PendingRegistration:
        """
        Issue and email a fresh code for an unverified account.

        The previous code stops working immediately.

        Raises:
            NotFound, AlreadyVerified, NotifyFailed.
        """
        user = self.repo.find_by_email(session, payload.email)
        if user is None:
            raise NotFound("User not found. Please register first.")
        if user.is_verified:
            raise AlreadyVerified()

        code = generate_verification_code()
        if not self.repo.reissue_code(session, user.email, code, now or utcnow()):
            raise AlreadyVerified()

        session.refresh(user)
        logger.info("Re-sending verification code to account %s", user.id)
        self._send_code(user, code)

        return self._pending("Verification email sent.", user.email, code)
