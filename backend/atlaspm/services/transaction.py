"""
AtlasPM Backend — Store Boundary (Deadlines & Error Classification)
====================================================================

What:  The `store_operation` decorator every service method goes through.
Why:   Two rules hold for every database call, whichever resource it is for:
       1. It finishes within a deadline (DB_TIMEOUT_SECONDS, default 3s).
          A call that runs over is cancelled; its transaction rolls back.
       2. Driver errors reach the caller as one of our own error kinds.
          A unique violation is a DuplicateKeyError naming the field, not a
          500. Our own errors (EditConflictError, NotFoundError, ...) pass
          through untouched.
How:   asyncio.wait_for around the wrapped coroutine, then a small
       classifier over sqlalchemy.exc.IntegrityError messages:

           PostgreSQL: duplicate key value violates unique constraint "project_project_id_key"
           SQLite:     UNIQUE constraint failed: project.project_id

       Both name the table and column, which is all we need.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from atlaspm.config import settings
from atlaspm.exceptions import AtlasPMError, BadRequestError, DuplicateKeyError, StoreError

logger = logging.getLogger(__name__)

_FK_MARKERS = ("foreign key constraint", "violates foreign key")
_UNIQUE_MARKERS = ("unique constraint", "duplicate key")


def classify_integrity_error(
    exc: IntegrityError,
    table: str,
    duplicates: Optional[Dict[str, str]] = None,
) -> AtlasPMError:
    """
    Map an IntegrityError onto DuplicateKeyError, BadRequestError or StoreError.

    Args:
        exc: The error raised by the driver
        table: Table whose unique columns `duplicates` describes
        duplicates: column → client-facing message for each unique column
    """
    detail = str(exc.orig) if exc.orig is not None else str(exc)
    lowered = detail.lower()

    if any(marker in lowered for marker in _UNIQUE_MARKERS):
        for column, message in (duplicates or {}).items():
            if f"{table}_{column}_key" in detail or f"{table}.{column}" in detail:
                return DuplicateKeyError(field=column, message=message)

    if any(marker in lowered for marker in _FK_MARKERS):
        return BadRequestError(
            message="the request references a record that does not exist or is still in use",
            context={"table": table},
        )

    return StoreError(context={"table": table, "error_type": type(exc.orig).__name__})


def store_operation(
    table: str,
    duplicates: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> Callable:
    """
    Decorate an async service method with a deadline and error classification.

    Usage:
        @store_operation("project", duplicates={"project_id": "..."})
        async def update_project(self, db, project_id, payload): ...
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            deadline = timeout if timeout is not None else settings.db_timeout_seconds
            try:
                return await asyncio.wait_for(func(*args, **kwargs), timeout=deadline)
            except AtlasPMError:
                raise
            except asyncio.TimeoutError:
                logger.error("%s on %s exceeded %.1fs deadline", func.__name__, table, deadline)
                raise StoreError(
                    message="The database did not respond in time. Please try again.",
                    context={"operation": func.__name__, "timeout": deadline},
                )
            except IntegrityError as e:
                classified = classify_integrity_error(e, table, duplicates)
                if isinstance(classified, StoreError):
                    logger.error("Integrity error in %s: %s", func.__name__, e.orig)
                raise classified from e
            except SQLAlchemyError as e:
                logger.error("Database error in %s: %s", func.__name__, str(e), exc_info=True)
                raise StoreError(
                    context={"operation": func.__name__, "error_type": type(e).__name__},
                ) from e

        return wrapper

    return decorator
