"""
Lime Core Backend — Custom Exception Hierarchy
================================================

What:  Defines application-specific faults for the different error scenarios.
How:   Each exception carries a user-facing message, the HTTP status it maps
       to, a machine-readable code, and an optional context dict. The envelope
       layer (`lime_core.envelope`) and the global handlers in `main.py` turn
       them into `{status: "error", data: null, message}` responses.
Who:   Raised by services, dependencies and middleware.

Exception Hierarchy:
    LimeError (base)                            → 500
    ├── ValidationError          VALIDATION_ERROR        → 400
    ├── AuthenticationError      AUTHENTICATION_ERROR    → 401
    ├── PermissionDeniedError    PERMISSION_DENIED       → 403
    ├── NotFoundError            NOT_FOUND               → 404
    ├── RateLimitExceededError   RATE_LIMIT_EXCEEDED     → 429
    ├── DatabaseError            <operation code>        → 500
    └── IdentityProviderError    IDENTITY_PROVIDER_ERROR → 502
"""

from typing import Any, Dict, Optional


class LimeError(Exception):
    """
    Base exception for all Lime application errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        status_code: HTTP status the envelope is sent with
        code:        Machine-readable fault code, e.g. "TEMPLATE_CREATE_ERROR"
        context:     Additional debug info (logged but NOT returned to client)
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        self.message = message
        self.context = context or {}
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        super().__init__(self.message)


class ValidationError(LimeError):
    """
    Raised when client input fails validation or a request cannot be honoured.

    When:    Bad credentials, malformed OAuth callback, invalid body fields.
    HTTP:    400 Bad Request
    """

    status_code = 400
    code = "VALIDATION_ERROR"

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


class AuthenticationError(LimeError):
    """Missing, malformed or expired bearer token. HTTP 401."""

    status_code = 401
    code = "AUTHENTICATION_ERROR"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class PermissionDeniedError(LimeError):
    """The identity is valid but may not act on the requested tenant. HTTP 403."""

    status_code = 403
    code = "PERMISSION_DENIED"

    def __init__(
        self,
        message: str = "You do not have access to this organization",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(LimeError):
    """
    Raised when a requested resource does not exist within the caller's tenant.

    HTTP:    404 Not Found
    Message: "<Resource> not found", e.g. "Template not found"

    SQLAlchemy returns None for missing records; services convert that to
    NotFoundError only where an operation cannot proceed without the record
    (duplicate, membership views). Plain lookups return None and the
    envelope layer answers with the same message.
    """

    status_code = 404
    code = "NOT_FOUND"

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ):
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=f"{resource} not found", context=ctx, code=code)
        self.resource = resource
        self.resource_id = resource_id


class RateLimitExceededError(LimeError):
    """Client exceeded the per-IP request budget. HTTP 429."""

    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests. Please wait {retry_after} seconds before retrying."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class DatabaseError(LimeError):
    """
    Raised when a persistence operation fails unexpectedly.

    The message names the failed operation ("Failed to create template");
    the code is the fixed operation tag ("TEMPLATE_CREATE_ERROR"). Driver
    details go into context and are logged server-side only.
    HTTP: 500 Internal Server Error
    """

    status_code = 500
    code = "DATABASE_ERROR"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        code: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context, code=code)


class IdentityProviderError(LimeError):
    """The external identity provider rejected or failed the handshake. HTTP 502."""

    status_code = 502
    code = "IDENTITY_PROVIDER_ERROR"

    def __init__(
        self,
        message: str = "Identity provider request failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
