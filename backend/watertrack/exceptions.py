"""
WaterTrack Backend: Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for the different failure scenarios.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services, the record store and dependencies; caught by the
       global handlers, which are the single translation point to HTTP.

Exception Hierarchy:
    WaterTrackError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthenticationError      → 401 Unauthorized
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict
    ├── FileStorageError         → 500 Internal Server Error
    └── StoreError               → 500 Internal Server Error (not retried)
"""

from typing import Any, Dict, Optional


class WaterTrackError(Exception):
    """
    Base exception for all WaterTrack application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only for 4xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(WaterTrackError):
    """
    Raised when client input fails a business rule.

    When:    ml outside (0, 5000], goal outside (0, 15000], timezone offset
             outside ±14h, inverted date range, empty profile update,
             unsupported avatar file.
    HTTP:    400 Bad Request

    Pydantic schema failures keep FastAPI's 422; this covers the rules the
    services enforce themselves.
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


class AuthenticationError(WaterTrackError):
    """
    Raised when the caller cannot be authenticated or lacks a required proof.

    When:    Missing/invalid/expired bearer token, wrong credentials,
             unverified email, account deletion without password validation.
    HTTP:    401 Unauthorized (with WWW-Authenticate: Bearer)
    """

    def __init__(
        self,
        message: str = "Not authorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(WaterTrackError):
    """
    Raised when a requested resource does not exist.

    When:    No daily record for the date, no intake with the given id,
             unknown verification/recovery token, unknown email.
    HTTP:    404 Not Found

    Missing records are never silently created here; the only
    create-on-miss path is the explicit find-or-create of a day record.
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
        self.resource = resource


class ConflictError(WaterTrackError):
    """
    Raised when the request collides with existing state.

    When:    Registering an email that is already in use.
    HTTP:    409 Conflict

    Concurrent day-record creation never reaches this: the unique
    (user_id, entry_date) constraint plus ON CONFLICT DO NOTHING absorbs it.
    """

    def __init__(
        self,
        message: str = "The resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(WaterTrackError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, directory not writable, I/O error
             while storing an avatar.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StoreError(WaterTrackError):
    """
    Raised when the persistence layer fails.

    When:    Connection lost mid-query, driver timeout, unexpected constraint
             violation, unsupported database dialect.
    HTTP:    500 Internal Server Error

    The client message is always generic; driver details stay in the logs.
    Nothing is retried at this layer; each mutation is a single atomic
    operation, so a failure leaves no partial state behind.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)

