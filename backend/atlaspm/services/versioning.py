"""
AtlasPM Backend — Version Guard
================================

What:  Optimistic-concurrency check for single-row updates.
Why:   Two people editing the same project must not silently overwrite each
       other. The loser of the race gets an EditConflictError and re-reads.
How:   One conditional UPDATE matching both the primary key and the version
       the caller last observed:

           UPDATE project
              SET name = :name, ..., version = version + 1, updated_at = :now
            WHERE internal_id = :pk AND version = :expected
        RETURNING version, updated_at

       Zero rows back means the row changed (or was deleted) since the caller
       read it. Nothing is retried here.

Who:   Called by the orchestrator (services/orchestrator.py) only.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import inspect, update
from sqlalchemy.ext.asyncio import AsyncSession

from atlaspm.exceptions import EditConflictError
from atlaspm.models.common import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VersionStamp:
    """What a successful guarded update hands back."""
    version: int
    updated_at: datetime


def primary_key_column(model):
    pk = inspect(model).primary_key
    if len(pk) != 1:
        raise TypeError(f"{model.__name__} must have a single-column primary key")
    return pk[0]


async def guarded_update(
    session: AsyncSession,
    model,
    pk_value: Any,
    expected_version: int,
    values: Optional[Mapping[str, Any]] = None,
    resource: Optional[str] = None,
    now: Optional[datetime] = None,
) -> VersionStamp:
    """
    Apply `values` to one row if and only if its version still matches.

    Args:
        session: Session with an open transaction (the orchestrator's)
        model: Mapped class with `version` and `updated_at` columns
        pk_value: Primary key of the row to update
        expected_version: Version the caller last read
        values: Column name → new value (may be empty: a pure version bump)
        resource: Name used in error messages (defaults to the table name)
        now: Timestamp to record (defaults to current UTC time)

    Returns:
        VersionStamp with the incremented version and new updated_at

    Raises:
        EditConflictError: No row matched (stale version or row deleted)
    """
    pk_col = primary_key_column(model)
    changes: Dict[str, Any] = dict(values or {})
    changes.pop("version", None)
    changes["updated_at"] = now or utcnow()

    stmt = (
        update(model)
        .where(pk_col == pk_value, model.version == expected_version)
        .values(version=model.version + 1, **changes)
        .returning(model.version, model.updated_at)
        .execution_options(synchronize_session=False)
    )

    result = await session.execute(stmt)
    row = result.first()
    if row is None:
        name = resource or model.__tablename__
        logger.info(
            "Edit conflict on %s %s (expected version %d)", name, pk_value, expected_version
        )
        raise EditConflictError(
            resource=name,
            resource_id=pk_value,
            expected_version=expected_version,
        )

    return VersionStamp(version=row[0], updated_at=row[1])
