"""
AtlasPM Backend — Shared Pydantic Schemas
==========================================

What:  Response pieces every endpoint shares: error body, pagination
       metadata, delete confirmation, health report.
Why:   Clients parse errors and list metadata the same way for every
       resource, so the shapes are defined once.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field


# ══════════════════════════════════════════════════════════════════════════
# Error Response: one shape for every endpoint
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Fields:
        error: Machine-readable error code (e.g., "edit_conflict", "not_found")
        message: Human-readable description for display to users
        details: Optional extra context (e.g., {"fields": {"name": "..."}})
        request_id: Correlation ID for tracing this error in server logs

    Example:
        {
            "error": "edit_conflict",
            "message": "unable to update the record due to an edit conflict, please try again",
            "details": null,
            "request_id": "3f2a9c1e"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


# ══════════════════════════════════════════════════════════════════════════
# Listing
# ══════════════════════════════════════════════════════════════════════════


class PageMetadata(BaseModel):
    """
    Pagination state for list responses.

    All fields are omitted (null) when the result set is empty.
    `page_size` reports the effective size, so a "no limit" request
    (page_size=0) comes back with page_size == total_records.
    """
    current_page: Optional[int] = Field(default=None, description="Page returned")
    page_size: Optional[int] = Field(default=None, description="Effective page size")
    first_page: Optional[int] = Field(default=None, description="Always 1 when present")
    last_page: Optional[int] = Field(default=None, description="Last page number")
    total_records: Optional[int] = Field(default=None, description="Rows matching the filters")


class MessageResponse(BaseModel):
    """Confirmation body for deletes."""
    message: str = Field(description="Human-readable confirmation")


# ══════════════════════════════════════════════════════════════════════════
# Health
# ══════════════════════════════════════════════════════════════════════════


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    A backend that can't reach its database is effectively down, so the
    database probe decides between healthy and unhealthy.
    """
    status: str = Field(description="Overall service status: healthy, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")


# ══════════════════════════════════════════════════════════════════════════
# Shared validators
# ══════════════════════════════════════════════════════════════════════════


def ensure_unique(values: Optional[Iterable], label: str = "values") -> Optional[List]:
    """Rejects lists with repeated entries; passes None through."""
    if values is None:
        return None
    items = list(values)
    if len(set(items)) != len(items):
        raise ValueError(f"must not contain duplicate {label}")
    return items


def ensure_not_blank(value: Optional[str]) -> Optional[str]:
    if value is not None and value.strip() == "":
        raise ValueError("must not be an empty string")
    return value


def patch_fields(payload: BaseModel) -> Tuple[Dict[str, Any], Optional[int]]:
    """
    Split a PATCH body into (column changes, expected version).

    Fields the client did not send, or sent as null, are left out: null
    means "no change" for every PATCH endpoint.
    """
    sent = payload.model_dump(exclude_unset=True)
    expected_version = sent.pop("version", None)
    return {k: v for k, v in sent.items() if v is not None}, expected_version
