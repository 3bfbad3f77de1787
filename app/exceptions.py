"""
Custom exception classes and FastAPI exception handlers.

Why custom exceptions?
  FastAPI's default HTTPException works, but custom exceptions let the
  service layer raise domain-specific errors (like VersionConflictError)
  without importing HTTP concepts. The handler layer then translates
  these into proper HTTP responses.

  This separation means:
    - Service code is testable without HTTP
    - Error responses are consistent across all endpoints
    - Adding new error types is straightforward

Exception hierarchy:
    AccountRecordError (base)
    ├── AccountNotFoundError       — no record with that account number (404)
    ├── InvalidAccountDataError    — input fails a field constraint (400)
    ├── VersionConflictError       — stale version on a conditional update (409)
    ├── DuplicateUserError         — username or email already registered (400)
    ├── AuthenticationFailedError  — bad credentials or disabled user (401)
    ├── AccessDeniedError          — authenticated but lacks the role (403)
    └── ImportPipelineError        — startup import failures (never reach HTTP)
        ├── LineParseError         — a data line could not be parsed
        └── BatchWriteError        — a batch insert failed and was rolled back

Every error body has the same shape:
    {"detail": "...", "error_type": "...", "correlation_id": "..."}
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.logging_config import ensure_correlation_id

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class AccountRecordError(Exception):
    """Base exception for all Account Record Service domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type: str = "internal_error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class AccountNotFoundError(AccountRecordError):
    """Raised when no account record has the requested account number."""

    status_code = status.HTTP_404_NOT_FOUND
    error_type = "account_not_found"

    def __init__(self, account_number: str):
        self.account_number = account_number
        super().__init__(f"Account not found with account number: {account_number}")


class InvalidAccountDataError(AccountRecordError):
    """Raised when a field fails validation before reaching the store."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "validation_error"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(f"{field}: {message}")


class VersionConflictError(AccountRecordError):
    """
    Raised when a conditional update finds a different stored version.

    Another writer committed first. The caller must re-fetch the record
    and retry with the new version; nothing is retried automatically.

    Attributes:
        account_number: The record that was being updated.
        expected_version: The version the caller based its change on.
    """

    status_code = status.HTTP_409_CONFLICT
    error_type = "version_conflict"

    def __init__(self, account_number: str, expected_version: int):
        self.account_number = account_number
        self.expected_version = expected_version
        super().__init__(
            f"Account {account_number} was modified concurrently "
            f"(expected version {expected_version}); re-fetch and retry"
        )


class DuplicateUserError(AccountRecordError):
    """Raised when registering with a username or email that's already in use."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_type = "duplicate_user"

    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        if field == "username":
            super().__init__("Username is already taken")
        else:
            super().__init__("Email is already in use")


class AuthenticationFailedError(AccountRecordError):
    """Raised when login credentials are incorrect or the user is disabled."""

    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_failed"

    def __init__(self, detail: str = "Invalid username or password"):
        super().__init__(detail)


class AccessDeniedError(AccountRecordError):
    """Raised when an authenticated user lacks the role an endpoint requires."""

    status_code = status.HTTP_403_FORBIDDEN
    error_type = "access_denied"

    def __init__(self, detail: str = "You do not have access to this resource"):
        super().__init__(detail)


# ---------------------------------------------------------------------------
# Import pipeline exceptions
# ---------------------------------------------------------------------------

class ImportPipelineError(AccountRecordError):
    """Base class for failures while importing the accounts file."""


class LineParseError(ImportPipelineError):
    """
    Raised when a data line of the import file cannot be parsed.

    The import stops at the first bad line; batches written before it
    stay committed.
    """

    def __init__(self, line_number: int, reason: str):
        self.line_number = line_number
        self.reason = reason
        super().__init__(f"Line {line_number}: {reason}")


class BatchWriteError(ImportPipelineError):
    """Raised when a batch insert fails. The whole batch is rolled back."""

    def __init__(self, batch_size: int, reason: str):
        self.batch_size = batch_size
        self.reason = reason
        super().__init__(f"Failed to write batch of {batch_size} records: {reason}")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_response(
    status_code: int,
    detail,
    error_type: str,
    headers: dict[str, str] | None = None,
    **extra,
) -> JSONResponse:
    correlation_id = ensure_correlation_id()
    content = {
        "detail": detail,
        "error_type": error_type,
        "correlation_id": correlation_id,
        **extra,
    }
    response_headers = {"X-Correlation-ID": correlation_id}
    if headers:
        response_headers.update(headers)
    return JSONResponse(status_code=status_code, content=content, headers=response_headers)


def internal_error_response() -> JSONResponse:
    """Generic 500 body; the details stay in the logs."""
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        "internal_error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers with the FastAPI application.

    Domain errors map through their own status_code/error_type. Request
    validation failures become 400 (not FastAPI's default 422). Anything
    unexpected is logged with its traceback and returned as a generic 500.

    This is called once during app startup in main.py.
    """

    @app.exception_handler(AccountRecordError)
    async def account_record_error_handler(
        request: Request, exc: AccountRecordError
    ) -> JSONResponse:
        logger.warning(
            "%s %s failed: %s (%s)",
            request.method, request.url.path, exc.detail, exc.error_type,
        )
        extra = {}
        if isinstance(exc, VersionConflictError):
            extra["expected_version"] = exc.expected_version
        headers = None
        if exc.status_code == status.HTTP_401_UNAUTHORIZED:
            headers = {"WWW-Authenticate": "Bearer"}
        return _error_response(
            exc.status_code, exc.detail, exc.error_type, headers=headers, **extra
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = {
            ".".join(str(part) for part in error["loc"] if part != "body"): error["msg"]
            for error in exc.errors()
        }
        logger.warning("Validation error on %s %s: %s", request.method, request.url.path, errors)
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            "Validation failed",
            "validation_error",
            errors=errors,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        error_types = {
            status.HTTP_401_UNAUTHORIZED: "authentication_failed",
            status.HTTP_403_FORBIDDEN: "access_denied",
            status.HTTP_404_NOT_FOUND: "not_found",
            status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
        }
        return _error_response(
            exc.status_code,
            exc.detail,
            error_types.get(exc.status_code, "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.exception("Unexpected error on %s %s", request.method, request.url.path)
        return internal_error_response()
