"""
AtlasPM Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for every error the API can report.
Why:   Each error kind maps to one HTTP status, and the kind must survive
       being raised deep inside a transaction. A conflict must never come
       back to the client as a generic server error.
How:   Each exception carries a message and optional context dict.
       Global exception handlers (registered in main.py) turn them into
       structured JSON error responses.
Who:   Raised by services and the update protocol; caught by global handlers.

Exception Hierarchy:
    AtlasPMError (base)
    ├── ValidationError          → 422 Unprocessable Entity (field rules)
    ├── BadRequestError          → 400 Bad Request (dangling references)
    ├── NotFoundError            → 404 Not Found
    ├── EditConflictError        → 409 Conflict (stale version)
    ├── DuplicateKeyError        → 422 Unprocessable Entity (unique violation)
    ├── StoreError               → 500 Internal Server Error
    └── RateLimitExceededError   → 429 Too Many Requests
"""

from typing import Any, Dict, Optional


class AtlasPMError(Exception):
    """
    Base exception for all AtlasPM application errors.

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


class ValidationError(AtlasPMError):
    """
    Raised when client input fails a semantic check.

    Carries a field → message mapping so several problems can be reported in
    one response, the same shape FastAPI uses for schema errors.

    Example response:
        {
            "error": "validation_error",
            "message": "The request failed validation",
            "details": {"fields": {"client_names": "Umbrella cannot be found"}}
        }
    """

    def __init__(
        self,
        message: str = "The request failed validation",
        field: Optional[str] = None,
        fields: Optional[Dict[str, str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        errors = dict(fields or {})
        if field:
            errors.setdefault(field, message)
        ctx = context or {}
        if errors:
            ctx["fields"] = errors
        super().__init__(message=message, context=ctx)
        self.field = field
        self.fields = errors


class BadRequestError(AtlasPMError):
    """
    Raised when a request refers to rows that do not exist.

    HTTP: 400 Bad Request. Used by timesheet creation when the referenced
    project, client, user or activity is missing.
    """

    def __init__(
        self,
        message: str = "The request could not be processed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(AtlasPMError):
    """
    Raised when a requested resource does not exist.

    Services convert SQLAlchemy's `None` results into this exception so the
    route layer never has to check for missing rows itself.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id is not None:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.resource_id = resource_id


class EditConflictError(AtlasPMError):
    """
    Raised when a version-guarded update matched zero rows.

    What:    The row changed (or vanished) after the caller read it.
    HTTP:    409 Conflict

    The conflict is never retried automatically: the client must re-fetch
    the resource and resubmit against the new version.
    """

    def __init__(
        self,
        resource: str = "record",
        resource_id: Optional[Any] = None,
        expected_version: Optional[int] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = "unable to update the record due to an edit conflict, please try again"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id is not None:
            ctx["resource_id"] = str(resource_id)
        if expected_version is not None:
            ctx["expected_version"] = expected_version
        super().__init__(message=message, context=ctx)
        self.resource = resource
        self.expected_version = expected_version


class DuplicateKeyError(AtlasPMError):
    """
    Raised when an insert or update violates a uniqueness constraint.

    HTTP: 422. The field name is reported so forms can highlight it.
    """

    def __init__(
        self,
        field: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        msg = message or f"a record with this {field} already exists"
        ctx = context or {}
        ctx["fields"] = {field: msg}
        super().__init__(message=msg, context=ctx)
        self.field = field


class StoreError(AtlasPMError):
    """
    Raised for any backing-store failure that is not otherwise classified.

    Connection loss, deadline exceeded, foreign-key violations on update.
    The client only ever sees a generic message; `context` is logged.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(AtlasPMError):
    """Raised when a client exceeds the per-IP request rate limit."""

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
