"""
Botanica Backend — Custom Exception Hierarchy
===============================================

What:  Application-specific exceptions for the failure modes of the service.
How:   Each exception carries a user-facing message and an optional context
       dict. Global exception handlers (registered in main.py) turn them into
       structured JSON responses with the matching HTTP status code.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    BotanicaError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── AccessDeniedError        → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── IdentityProviderError    → 502 Bad Gateway
    ├── FileStorageError         → 500 Internal Server Error
    │   ├── StorageBucketNotFoundError → 503 Service Unavailable
    │   ├── StoragePermissionError     → 503 Service Unavailable
    │   └── UploadTimeoutError         → 504 Gateway Timeout
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional

LOGIN_URL = "/api/admin/login"


class BotanicaError(Exception):
    """
    Base exception for all Botanica application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BotanicaError):
    """
    Raised when client input fails a business rule.

    When:    File type or size rejected, text over its visible-length limit,
             unknown category ids, quantity driven below zero.
    HTTP:    400 Bad Request (schema-level problems stay FastAPI's 422)
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class AuthenticationError(BotanicaError):
    """
    Raised when a request carries no session, or a session that does not verify.

    HTTP:    401 Unauthorized, with the login entry point in the details.
    """

    def __init__(
        self,
        message: str = "Sign in to continue.",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx.setdefault("login_url", LOGIN_URL)
        super().__init__(message=message, context=ctx)


class AccessDeniedError(BotanicaError):
    """
    Raised when a signed-in user is not an administrator.

    The admin gate fails closed: lookup errors raise this too.
    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        email: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if email:
            message = (
                f"Access denied. {email} is not a registered admin. "
                "Please contact the administrator to grant access."
            )
        else:
            message = "Access denied."
        ctx = context or {}
        ctx.setdefault("login_url", LOGIN_URL)
        super().__init__(message=message, context=ctx)
        self.email = email


class NotFoundError(BotanicaError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services turn that None into
    this exception.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(BotanicaError):
    """
    Raised when a write collides with an existing row (unique constraint).

    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "The record already exists.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class IdentityProviderError(BotanicaError):
    """
    Raised when the OAuth identity provider rejects a request or cannot be reached.

    HTTP:    502 Bad Gateway
    """

    def __init__(
        self,
        message: str = "The sign-in provider could not complete the request. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(BotanicaError):
    """
    Raised when object storage operations fail.

    When:    Bucket missing, permission denied, disk full, I/O error.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageBucketNotFoundError(FileStorageError):
    """Raised when the image bucket does not exist (pre-flight or upload)."""

    def __init__(self, bucket: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["bucket"] = bucket
        super().__init__(
            message=f'Storage bucket "{bucket}" not found. Please create it before uploading images.',
            context=ctx,
        )


class StoragePermissionError(FileStorageError):
    """Raised when the bucket exists but this process may not read or write it."""

    def __init__(self, bucket: str, context: Optional[Dict[str, Any]] = None):
        ctx = context or {}
        ctx["bucket"] = bucket
        super().__init__(
            message=f'Permission denied. Please check the access policies of storage bucket "{bucket}".',
            context=ctx,
        )


class UploadTimeoutError(FileStorageError):
    """
    Raised when an upload to object storage exceeds the configured timeout.

    HTTP:    504 Gateway Timeout
    """

    def __init__(
        self,
        timeout_seconds: float = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Upload timeout after {timeout_seconds:.0f} seconds. The file may be too large "
            "or your connection is slow. Try a smaller image."
        )
        ctx = context or {}
        ctx["timeout_seconds"] = timeout_seconds
        super().__init__(message=message, context=ctx)
        self.timeout_seconds = timeout_seconds


class DatabaseError(BotanicaError):
    """
    Raised when database operations fail in a way we have no friendlier message for.

    The client always receives a generic message; driver details are logged.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
