# app/core/errors.py
"""
Domain errors for the account service.

Services raise these; `register_exception_handlers` turns them into JSON
responses of the form {"message": ..., "error": ...}. Messages are safe to
show to clients: driver errors, SMTP replies and stack traces only go to
the log.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AccountError(Exception):
    """Base class for every error the API reports to callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Request failed."

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    @property
    def error(self) -> str:
        return type(self).__name__


class ValidationError(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid request."


class PhotoTooLarge(ValidationError):
    status_code = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    message = "Image too large."


class Conflict(AccountError):
    status_code = status.HTTP_409_CONFLICT
    message = "User already exists."


class NotFound(AccountError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "User not found."


class InvalidCredentials(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials."


class InvalidCode(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid or incorrect verification code."


class CodeExpired(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Verification code has expired. Please request a new one."


class AlreadyVerified(AccountError):
    status_code = status.HTTP_409_CONFLICT
    message = "User already verified."


class NotVerified(AccountError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Please verify your email first."


class Forbidden(AccountError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "You do not have access to this resource."


class Unauthenticated(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Authentication required."


class InvalidToken(Unauthenticated):
    message = "Invalid token."


class TokenExpired(Unauthenticated):
    message = "Token expired."


class UploadFailed(AccountError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Profile photo upload failed."


class NotifyFailed(AccountError):
    status_code = status.HTTP_502_BAD_GATEWAY
    message = "Error sending verification email."


class StoreUnavailable(AccountError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "User store is unavailable."


def _error_response(exc: AccountError) -> JSONResponse:
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "error": exc.error},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Install the JSON error mapping on the app.

    - AccountError subclasses -> their own status + message
    - request body/form validation -> 400 ValidationError (field names only)
    - anything else -> 500 with a generic message
    """

    @app.exception_handler(AccountError)
    async def handle_account_error(request: Request, exc: AccountError):
        return _error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        fields = sorted(
            {str(err["loc"][-1]) for err in exc.errors() if err.get("loc")}
        )
        message = "Invalid request."
        if fields:
            message = f"Invalid or missing fields: {', '.join(fields)}."
        return _error_response(ValidationError(message))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal server error.", "error": "InternalError"},
        )
