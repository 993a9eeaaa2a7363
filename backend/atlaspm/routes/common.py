"""
Shared route plumbing: list query parameters and list response headers.
"""

from fastapi import Query, Response

from atlaspm.schemas.common import ErrorResponse, PageMetadata
from atlaspm.services.pagination import ListParams

# Error responses every item endpoint can produce, for the OpenAPI docs
ITEM_ERRORS = {
    404: {"description": "Resource not found", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}

WRITE_ERRORS = {
    400: {"description": "Referenced record does not exist", "model": ErrorResponse},
    422: {"description": "Validation failed or duplicate value", "model": ErrorResponse},
    500: {"description": "Server error", "model": ErrorResponse},
}

UPDATE_ERRORS = {
    **WRITE_ERRORS,
    404: {"description": "Resource not found", "model": ErrorResponse},
    409: {"description": "Edit conflict: the version is stale", "model": ErrorResponse},
}


def list_params(
    page: int = Query(default=1, description="Page number, starting at 1"),
    page_size: int = Query(
        default=0,
        description="Items per page (max 100). 0 returns every matching record.",
    ),
    sort: str = Query(
        default="",
        description="Sort key from the resource's safelist; prefix with '-' for descending",
    ),
) -> ListParams:
    """
    Bounds are checked by ListParams.validate against the resource's sort
    safelist, so every list endpoint reports bad paging the same way.
    """
    return ListParams(page=page, page_size=page_size, sort=sort)


def set_total_count(response: Response, metadata: PageMetadata) -> None:
    response.headers["X-Total-Count"] = str(metadata.total_records or 0)
